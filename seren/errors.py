"""Exception hierarchy for seren.

Every failure the tool reports to the user derives from ``SerenError``.  The
CLI is the only place that maps these to exit codes; the engine raises them
and never swallows them.
"""

from __future__ import annotations

from pathlib import Path


class SerenError(Exception):
    """Base class for all reportable seren failures."""

    exit_code: int = 1


class UsageError(SerenError):
    """Raised for missing or invalid arguments.  No filesystem mutation is attempted."""

    exit_code = 2


class PreconditionError(SerenError):
    """Raised when the on-disk state does not allow the requested step."""


class NotAWorkspace(PreconditionError):
    """Raised when no usable root manifest exists at the workspace root."""

    def __init__(self, root_path: str | Path, reason: str = "no package.json found") -> None:
        self.root_path = Path(root_path)
        self.reason = reason
        super().__init__(
            f"Not a seren workspace: {self.root_path} ({reason}). "
            "Run 'seren init' first or change into the workspace root."
        )


class AlreadyExists(SerenError):
    """Raised when a write would overwrite differing content or a file in the way."""

    def __init__(self, path: str | Path, what: str = "existing file with different content") -> None:
        self.path = Path(path)
        super().__init__(f"Refusing to overwrite {what}: {self.path}")


class FilesystemError(SerenError):
    """Raised when a file under the workspace cannot be read or written."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot access {self.path}: {reason}")


class ExternalToolError(SerenError):
    """Raised when ``git`` or the package manager exits unsuccessfully.

    Treated as non-fatal by the CLI: files already written stay on disk and
    the user can retry the external step by hand.
    """

    exit_code = 0

    def __init__(self, message: str, command: str = "", returncode: int | None = None) -> None:
        self.command = command
        self.returncode = returncode
        super().__init__(message)
