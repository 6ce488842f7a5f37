"""External collaborators: version control and dependency installation.

Both are fire-and-forget process invocations.  Output is never parsed; a
non-zero exit (or a missing executable) becomes an ``ExternalToolError``.
"""

from __future__ import annotations

from pathlib import Path

from seren.config import Config
from seren.errors import ExternalToolError
from seren.utils import run_command


async def init_repository(path: Path, config: Config) -> None:
    """Run ``git init`` on *path*.  Output is discarded."""
    cmd = [config.git_executable, "init", str(path)]
    await _invoke(cmd, cwd=None, capture=True, hint="Is git installed?")


async def install_dependencies(root: Path, config: Config) -> None:
    """Run ``<package_manager> install`` at the workspace root.

    The child inherits the caller's standard streams so installer progress is
    visible to the user.
    """
    await _invoke(
        config.install_command,
        cwd=root,
        capture=False,
        hint=f"Run '{' '.join(config.install_command)}' manually to retry.",
    )


async def _invoke(cmd: list[str], cwd: Path | None, capture: bool, hint: str) -> None:
    cmd_str = " ".join(cmd)
    try:
        returncode, _stdout, stderr = await run_command(cmd, cwd=cwd, capture=capture)
    except (FileNotFoundError, PermissionError) as exc:
        raise ExternalToolError(
            f"Could not run '{cmd_str}': {exc}. {hint}", command=cmd_str
        ) from exc

    if returncode != 0:
        detail = f"\n{stderr}" if stderr else ""
        raise ExternalToolError(
            f"'{cmd_str}' failed (exit {returncode}). {hint}{detail}",
            command=cmd_str,
            returncode=returncode,
        )
