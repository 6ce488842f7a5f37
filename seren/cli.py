"""seren command-line interface.

Usage::

    seren init [path]
    seren add app <name> [--framework react|hono] [--tailwind]
    seren add package <name>
    seren add auth [--app <name>] [--force]

Parses arguments, builds the ``InvocationContext`` and ``Config`` once, runs
one ``ProjectGenerator`` pipeline and maps ``SerenError`` subclasses to exit
codes.  Nothing below this module reads ``sys.argv`` or the process cwd.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.prompt import Prompt

from seren import __version__
from seren.config import Config
from seren.errors import SerenError
from seren.scaffolder.generator import Chooser, GenerationResult, ProjectGenerator
from seren.scaffolder.models import InvocationContext, MaterializeOutcome
from seren.utils import console, print_error, print_success, print_summary_table, print_warning

_EPILOG = (
    "Frameworks:\n"
    "  react    Vite + React + TypeScript\n"
    "  hono     Hono + Node.js + TypeScript ('server' is an alias)\n"
    "\n"
    "Examples:\n"
    "  seren init\n"
    "  seren init my-project\n"
    "  seren add app web --framework react --tailwind\n"
    "  seren add app api --framework hono\n"
    "  seren add package utils\n"
    "  seren add package db\n"
    "  seren add auth --app api\n"
)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for every seren command."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--no-install",
        action="store_true",
        help="Do not run the package manager after changing dependencies",
    )
    common.add_argument(
        "--no-git",
        action="store_true",
        help="Do not initialize a git repository (init only)",
    )

    parser = argparse.ArgumentParser(
        prog="seren",
        description="seren - a CLI for scaffolding monorepo projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=_EPILOG,
    )
    parser.add_argument("-v", "--version", action="version", version=__version__)
    commands = parser.add_subparsers(dest="command", metavar="<command>")

    init_parser = commands.add_parser(
        "init", parents=[common], help="Create a new monorepo (defaults to current directory)"
    )
    init_parser.add_argument("path", nargs="?", default=".", help="Target directory")

    add_parser = commands.add_parser("add", help="Add an app, a package or auth wiring")
    add_commands = add_parser.add_subparsers(dest="artifact", metavar="<artifact>", required=True)

    app_parser = add_commands.add_parser("app", parents=[common], help="Add an app")
    app_parser.add_argument("name", help="App name (directory under apps/)")
    app_parser.add_argument(
        "--framework", "-f", default=None, help="react or hono (prompted when omitted)"
    )
    app_parser.add_argument("--tailwind", action="store_true", help="Add Tailwind CSS (React only)")

    package_parser = add_commands.add_parser(
        "package", parents=[common], help='Add a shared package (use "db" for Drizzle + Neon)'
    )
    package_parser.add_argument("name", help="Package name (directory under packages/)")

    auth_parser = add_commands.add_parser(
        "auth", parents=[common], help="Wire better-auth into a server app"
    )
    auth_parser.add_argument("--app", default=None, help="Server app to wire (prompted when several)")
    auth_parser.add_argument(
        "--force", action="store_true", help="Replace a server entry point that has been edited"
    )
    return parser


def prompt_choice(question: str, options: list[str]) -> str:
    """Ask the user to pick one of *options* on the terminal."""
    return Prompt.ask(question, choices=options, default=options[0], console=console)


async def _dispatch(args: argparse.Namespace, generator: ProjectGenerator) -> GenerationResult:
    if args.command == "init":
        return await generator.init(args.path)
    if args.artifact == "app":
        return await generator.add_app(args.name, args.framework, tailwind=args.tailwind)
    if args.artifact == "package":
        return await generator.add_package(args.name)
    return await generator.add_auth(args.app, force=args.force)


def report(result: GenerationResult) -> None:
    """Print what a command did."""
    changes: dict[str, str] = {}
    for written in result.written:
        for path, outcome in written.outcomes.items():
            if outcome is not MaterializeOutcome.UNCHANGED:
                changes[path] = outcome.value
    for path in result.modified:
        changes[path] = "modified"
    if changes:
        print_summary_table(changes, title="Files", columns=("Path", "Change"))

    print_success(result.summary)
    for warning in result.warnings:
        print_warning(warning)

    if result.next_steps:
        console.print()
        console.print("Next steps:")
        for step in result.next_steps:
            console.print(f"  {step}")


def run(
    argv: Sequence[str] | None = None,
    context: InvocationContext | None = None,
    chooser: Chooser | None = prompt_choice,
) -> int:
    """Run one seren command and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    if context is None:
        context = InvocationContext(cwd=Path.cwd(), interactive=sys.stdin.isatty())

    try:
        config = Config.from_env()
    except ValueError as exc:
        print_error(f"Invalid SEREN_* environment setting: {exc}")
        return 2
    if args.no_install:
        config.install_dependencies = False
    if args.no_git:
        config.init_git = False

    generator = ProjectGenerator(context, config, chooser=chooser)
    try:
        result = asyncio.run(_dispatch(args, generator))
    except SerenError as exc:
        print_error(str(exc))
        return exc.exit_code
    except KeyboardInterrupt:
        print_error("Interrupted; files written so far were kept.")
        return 130

    report(result)
    return 0


def main() -> None:
    """CLI entry point for ``seren`` and ``python -m seren``."""
    sys.exit(run())


if __name__ == "__main__":
    main()
