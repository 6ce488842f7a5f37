"""Workspace reader.

Reads the root manifest of an existing workspace to discover its scope, and
classifies existing members by the recognised dependencies their manifests
declare.  Strictly read-only.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

from seren.errors import NotAWorkspace
from seren.utils import is_valid_package_name, load_json

from .models import Capability, MemberGroup, WorkspaceDescriptor

MANIFEST_NAME = "package.json"

# Dependency identifier -> capability it signals.
RECOGNISED_DEPENDENCIES: dict[str, Capability] = {
    "react": Capability.UI_FRAMEWORK,
    "hono": Capability.SERVER_FRAMEWORK,
    "drizzle-orm": Capability.DATA_ACCESS,
    "better-auth": Capability.AUTH,
    "tailwindcss": Capability.STYLING,
}


def read_workspace(root_path: str | Path) -> WorkspaceDescriptor:
    """Read the workspace rooted at *root_path*.

    Raises:
        NotAWorkspace: If the root manifest is missing, unreadable, has no
            string ``name``, a name that is not a valid unscoped package name,
            or no ``workspaces`` array.
    """
    root = Path(root_path)
    manifest_path = root / MANIFEST_NAME
    if not manifest_path.is_file():
        raise NotAWorkspace(root)

    try:
        manifest = load_json(manifest_path)
    except (json.JSONDecodeError, ValueError, OSError) as exc:
        raise NotAWorkspace(root, f"unreadable {MANIFEST_NAME}: {exc}") from exc

    name = manifest.get("name")
    if not isinstance(name, str) or not name:
        raise NotAWorkspace(root, f"{MANIFEST_NAME} has no name")
    if not is_valid_package_name(name):
        raise NotAWorkspace(root, f"{MANIFEST_NAME} name '{name}' cannot be used as a scope")
    if not isinstance(manifest.get("workspaces"), list):
        raise NotAWorkspace(root, f"{MANIFEST_NAME} declares no workspaces")

    members: dict[str, frozenset[Capability]] = {}
    for group in MemberGroup:
        for member in list_members(root, group):
            members[f"{group.value}/{member}"] = member_capabilities(root / group.value / member)

    return WorkspaceDescriptor(root_path=root, root_name=name, members=members)


def list_members(root_path: str | Path, group: MemberGroup) -> Iterator[str]:
    """Yield the names of member directories under ``<root>/<group>``.

    Names come out sorted; hidden entries and plain files are skipped.  A
    missing group directory yields nothing.
    """
    group_dir = Path(root_path) / group.value
    if not group_dir.is_dir():
        return
    for entry in sorted(group_dir.iterdir()):
        if entry.is_dir() and not entry.name.startswith("."):
            yield entry.name


def member_capabilities(member_path: str | Path) -> frozenset[Capability]:
    """Return the capabilities declared by the manifest in *member_path*.

    Both ``dependencies`` and ``devDependencies`` are inspected.  A member
    without a readable manifest declares nothing.
    """
    manifest_path = Path(member_path) / MANIFEST_NAME
    try:
        manifest = load_json(manifest_path)
    except (OSError, json.JSONDecodeError, ValueError):
        return frozenset()

    declared: set[str] = set()
    for section in ("dependencies", "devDependencies"):
        entries = manifest.get(section)
        if isinstance(entries, dict):
            declared.update(entries)

    return frozenset(
        cap for dep, cap in RECOGNISED_DEPENDENCIES.items() if dep in declared
    )



def member_name(member_path: str | Path) -> str | None:
    """Return the ``name`` declared by the manifest in *member_path*, if any."""
    try:
        manifest = load_json(Path(member_path) / MANIFEST_NAME)
    except (OSError, json.JSONDecodeError, ValueError):
        return None
    name = manifest.get("name")
    return name if isinstance(name, str) else None
