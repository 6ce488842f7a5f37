"""Filesystem materializer.

Applies rendered ``FileUnit`` objects under a base directory.  Units are
applied one at a time, each write awaited before the next starts; parent
directories are created as needed.  There is no rollback: a failure partway
through leaves earlier writes in place.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

from seren.errors import AlreadyExists, FilesystemError, PreconditionError

from .models import FileUnit, MaterializeOutcome, MaterializeResult, WritePolicy, WriteMode


async def materialize(
    base_dir: str | Path,
    units: Iterable[FileUnit],
    policy: WritePolicy | None = None,
) -> MaterializeResult:
    """Write *units* under *base_dir* according to each unit's mode.

    Args:
        base_dir: Directory the unit paths are relative to.  Created if absent.
        units: Units in application order.
        policy: Batch-level rules; ``require_empty_root`` refuses to write
            anything into a directory that already has entries.

    Returns:
        A ``MaterializeResult`` recording what happened to every path.

    Raises:
        PreconditionError: If the policy requires an empty base dir and it is not.
        AlreadyExists: If a create-mode unit collides with differing content,
            or a plain file sits where a parent directory is needed.
        FilesystemError: If an existing file cannot be read or a write fails.
    """
    policy = policy or WritePolicy()
    base = Path(base_dir)

    if policy.require_empty_root and await asyncio.to_thread(_has_entries, base):
        raise PreconditionError(f"Directory is not empty: {base}. Use an empty directory.")

    result = MaterializeResult(base_dir=base)
    for unit in units:
        outcome = await asyncio.to_thread(_apply_unit, base, unit)
        # Several units may target one path (e.g. two env blocks); keep the
        # most significant outcome for reporting.
        previous = result.outcomes.get(unit.relative_path)
        if previous is None or outcome not in (MaterializeOutcome.UNCHANGED, MaterializeOutcome.SKIPPED):
            result.outcomes[unit.relative_path] = outcome
    return result


def _has_entries(path: Path) -> bool:
    if not path.exists():
        return False
    if not path.is_dir():
        raise PreconditionError(f"Target exists and is not a directory: {path}")
    return any(path.iterdir())


def _apply_unit(base: Path, unit: FileUnit) -> MaterializeOutcome:
    """Synchronous helper: apply one unit and report the outcome."""
    target = base / unit.relative_path
    blocker = _file_ancestor(base, target)
    if blocker is not None:
        raise AlreadyExists(blocker, "file where a directory is needed")
    existing = _read_existing(target)

    if unit.mode is WriteMode.CREATE:
        if existing is None:
            _write_file(target, unit.content)
            return MaterializeOutcome.CREATED
        if existing == unit.content:
            return MaterializeOutcome.UNCHANGED
        raise AlreadyExists(target)

    if unit.mode is WriteMode.CREATE_OR_REPLACE:
        if existing == unit.content:
            return MaterializeOutcome.UNCHANGED
        _write_file(target, unit.content)
        return MaterializeOutcome.CREATED if existing is None else MaterializeOutcome.REPLACED

    # APPEND_IF_ABSENT
    assert unit.marker is not None  # enforced by FileUnit validation
    if existing is None:
        _write_file(target, unit.content)
        return MaterializeOutcome.CREATED
    if unit.marker in existing:
        return MaterializeOutcome.SKIPPED
    separator = "" if not existing or existing.endswith("\n") else "\n"
    _write_file(target, existing + separator + unit.content)
    return MaterializeOutcome.APPENDED


def _file_ancestor(base: Path, target: Path) -> Path | None:
    """Return the first existing non-directory on the way from *base* to *target*."""
    for ancestor in reversed(target.parents):
        if ancestor != base and base not in ancestor.parents:
            continue
        if ancestor.exists() and not ancestor.is_dir():
            return ancestor
    return None


def _read_existing(target: Path) -> str | None:
    if not target.exists():
        return None
    if target.is_dir():
        raise AlreadyExists(target, "directory")
    try:
        return target.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        raise FilesystemError(target, "existing file is not UTF-8 text") from None
    except OSError as exc:
        raise FilesystemError(target, exc.strerror or str(exc)) from exc


def _write_file(path: Path, content: str) -> None:
    """Create parent dirs and write content."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(path, exc.strerror or str(exc)) from exc
