"""Shared utility functions for seren.

Provides async command execution, JSON reading, name validation and
Rich-based console reporting.  Errors are raised with clear messages and
never silently swallowed.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously.

    Args:
        cmd: Argument vector; the first element is the executable.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
            ``None`` waits for as long as the process runs.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  If *capture* is ``False``
        the stdout/stderr strings will be empty.

    Raises:
        FileNotFoundError: If the executable cannot be found.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=stdout_pipe,
        stderr=stderr_pipe,
        cwd=str(cwd) if cwd else None,
        env=merged_env,
    )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------

_PACKAGE_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


def is_valid_package_name(name: str) -> bool:
    """Return ``True`` if *name* can be used as an unscoped npm package name.

    Lowercase letters, digits, ``.``, ``_`` and ``-`` only; must start with a
    letter or digit; at most 214 characters.

    Examples::

        is_valid_package_name("web")      -> True
        is_valid_package_name("My App")   -> False
        is_valid_package_name("-flag")    -> False
    """
    return len(name) <= 214 and bool(_PACKAGE_NAME_RE.match(name))


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file whose top level is an object.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the top-level value is not an object.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {file_path}")
    return data


def dump_json(data: dict[str, Any]) -> str:
    """Serialize *data* the way generated manifests are written (2-space indent)."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(
    data: dict[str, str],
    title: str = "Summary",
    columns: tuple[str, str] = ("Item", "Value"),
) -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
        columns: Header of the key column and of the value column.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column(columns[0], style="dim", no_wrap=True)
    table.add_column(columns[1])

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]✓[/bold green] {escape(message)}")


def print_error(message: str) -> None:
    """Print a red error message on stderr."""
    err_console.print(f"[bold red]✗ {escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message on stderr."""
    err_console.print(f"[bold yellow]! {escape(message)}[/bold yellow]")
