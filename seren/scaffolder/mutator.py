"""Project mutator.

Read-modify-write operations on artifacts that already exist on disk:
patching a manifest's dependency map, appending definitions to a schema
module and replacing a generated entry point.  The text transformations are
pure functions; ``ProjectMutator`` adds the I/O and routes every write
through the materializer.

Callers are expected to run :meth:`ProjectMutator.require` for every file a
step depends on before the first mutation, so a missing prerequisite never
leaves a half-applied change behind.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Callable, Sequence
from pathlib import Path

from seren.errors import FilesystemError, PreconditionError, UsageError
from seren.utils import dump_json

from .materializer import materialize
from .models import FileUnit, WriteMode


# ---------------------------------------------------------------------------
# Pure transformations
# ---------------------------------------------------------------------------

def merge_dependencies(manifest_text: str, section: str, entries: dict[str, str]) -> str:
    """Set or overwrite *entries* in one dependency *section* of a manifest.

    Unrelated keys and the existing key order are preserved; new keys are
    appended to the section, which is created at the end of the manifest if
    absent.

    Raises:
        PreconditionError: If the manifest is not a JSON object or the
            section is present but is not an object.
    """
    try:
        manifest = json.loads(manifest_text)
    except json.JSONDecodeError as exc:
        raise PreconditionError(f"Manifest is not valid JSON: {exc}") from exc
    if not isinstance(manifest, dict):
        raise PreconditionError("Manifest is not a JSON object")

    current = manifest.get(section, {})
    if not isinstance(current, dict):
        raise PreconditionError(f"Manifest field '{section}' is not an object")
    manifest[section] = {**current, **entries}
    return dump_json(manifest)


def merge_named_import(source: str, module: str, names: Sequence[str]) -> str:
    """Ensure ``import { <names> } from "<module>";`` covers every name in *names*.

    An existing named import of *module* is extended in place (names sorted);
    otherwise a new import line is prepended.
    """
    pattern = re.compile(
        r"import\s*\{(?P<names>[^}]*)\}\s*from\s*(?P<q>[\"'])" + re.escape(module) + r"(?P=q);?"
    )
    match = pattern.search(source)
    if match is None:
        line = f'import {{ {", ".join(sorted(names))} }} from "{module}";\n'
        return line + ("\n" if source.strip() else "") + source

    existing = [n.strip() for n in match.group("names").split(",") if n.strip()]
    missing = [n for n in names if n not in existing]
    if not missing:
        return source
    merged = sorted([*existing, *missing])
    replacement = f'import {{ {", ".join(merged)} }} from "{module}";'
    return source[: match.start()] + replacement + source[match.end():]


def append_definitions(
    source: str,
    module: str,
    names: Sequence[str],
    definitions: str,
    marker: str,
) -> str:
    """Import *names* from *module* and append *definitions* after *source*.

    Existing content is kept verbatim.  If *marker* is already present the
    source is returned unchanged, so repeating the call is harmless.
    """
    if marker in source:
        return source
    updated = merge_named_import(source, module, names)
    if updated.strip():
        updated = updated.rstrip("\n") + "\n\n"
    return updated + definitions


def select_candidate(
    candidates: Sequence[str],
    requested: str | None,
    chooser: Callable[[str, list[str]], str] | None,
    *,
    what: str = "candidate",
) -> str:
    """Pick exactly one of *candidates*, never by guessing.

    - an explicit *requested* name must be one of the candidates;
    - a single candidate is taken as-is;
    - several candidates need *chooser* (an interactive prompt).

    Raises:
        PreconditionError: If there are no candidates, or *requested* is not one.
        UsageError: If a choice is needed but no *chooser* is available.
    """
    options = list(candidates)
    if not options:
        raise PreconditionError(f"No eligible {what} found.")
    if requested is not None:
        if requested not in options:
            raise PreconditionError(
                f"'{requested}' is not an eligible {what}. Choose one of: {', '.join(options)}"
            )
        return requested
    if len(options) == 1:
        return options[0]
    if chooser is None:
        raise UsageError(
            f"Several {what}s found ({', '.join(options)}); pick one explicitly."
        )
    choice = chooser(f"Select a {what}:", options)
    if choice not in options:
        raise UsageError(f"'{choice}' is not one of: {', '.join(options)}")
    return choice


# ---------------------------------------------------------------------------
# ProjectMutator
# ---------------------------------------------------------------------------

class ProjectMutator:
    """Applies in-place modifications to files under a workspace root."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def require(self, relative_path: str, description: str) -> None:
        """Fail fast if a prerequisite file is missing."""
        if not (self.root / relative_path).is_file():
            raise PreconditionError(f"{description} not found: {relative_path}")

    async def read(self, relative_path: str) -> str:
        path = self.root / relative_path
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except UnicodeDecodeError:
            raise FilesystemError(path, "existing file is not UTF-8 text") from None
        except OSError as exc:
            raise FilesystemError(path, exc.strerror or str(exc)) from exc

    async def _replace(self, relative_path: str, content: str) -> bool:
        result = await materialize(
            self.root,
            [FileUnit(relative_path=relative_path, content=content, mode=WriteMode.CREATE_OR_REPLACE)],
        )
        return result.changed

    async def patch_manifest(
        self, relative_path: str, section: str, entries: dict[str, str]
    ) -> bool:
        """Merge *entries* into a manifest section.  Returns whether the file changed."""
        current = await self.read(relative_path)
        return await self._replace(relative_path, merge_dependencies(current, section, entries))

    async def append_schema(
        self,
        relative_path: str,
        *,
        module: str,
        names: Sequence[str],
        definitions: str,
        marker: str,
    ) -> bool:
        """Append table definitions to a schema module.  Returns whether the file changed."""
        current = await self.read(relative_path)
        updated = append_definitions(current, module, names, definitions, marker)
        if updated == current:
            return False
        return await self._replace(relative_path, updated)

    async def replace_entry_point(self, relative_path: str, content: str) -> bool:
        """Replace a generated entry point wholesale.  Returns whether the file changed."""
        return await self._replace(relative_path, content)
