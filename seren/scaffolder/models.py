"""Pydantic v2 models for the scaffold generation engine.

Defines the invocation context, the workspace snapshot read from disk, the
artifact request handed to a renderer, the ``FileUnit`` a renderer produces,
and the typed records for the JSON files seren generates.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ArtifactKind(str, Enum):
    """The things seren knows how to generate."""
    ROOT_WORKSPACE = "root-workspace"
    SHARED_CONFIG_PACKAGE = "shared-config-package"
    UI_APP = "ui-app"
    SERVER_APP = "server-app"
    LIBRARY_PACKAGE = "library-package"
    DATA_PACKAGE = "data-package"
    AUTH_WIRING = "auth-wiring"


class Feature(str, Enum):
    """Optional, strictly additive feature toggles."""
    TAILWIND = "tailwind"


class Framework(str, Enum):
    """App frameworks accepted by ``seren add app``."""
    REACT = "react"
    HONO = "hono"


class MemberGroup(str, Enum):
    """Conventional workspace subdirectories holding members."""
    APPS = "apps"
    PACKAGES = "packages"


class Capability(str, Enum):
    """What a member's manifest says it can do, keyed on recognised dependencies."""
    UI_FRAMEWORK = "ui-framework"
    SERVER_FRAMEWORK = "server-framework"
    DATA_ACCESS = "data-access"
    AUTH = "auth"
    STYLING = "styling"


class ConfigVariant(str, Enum):
    """Base variants exported by the shared TypeScript config package."""
    BASE = "base"
    REACT = "react"
    NODE = "node"


class WriteMode(str, Enum):
    """How the materializer treats an existing file at a unit's path."""
    CREATE = "create"
    CREATE_OR_REPLACE = "create_or_replace"
    APPEND_IF_ABSENT = "append_if_absent"


# ---------------------------------------------------------------------------
# Invocation & workspace state
# ---------------------------------------------------------------------------

class InvocationContext(BaseModel):
    """Process-wide inputs captured once, instead of read ambiently."""
    model_config = ConfigDict(frozen=True)

    cwd: Path = Field(..., description="Directory the command was invoked from")
    interactive: bool = Field(
        default=False, description="Whether missing choices may be asked for on the terminal"
    )


class WorkspaceDescriptor(BaseModel):
    """Snapshot of an existing workspace, derived from manifests on disk."""
    model_config = ConfigDict(frozen=True)

    root_path: Path
    root_name: str = Field(..., description="Scope applied to every member identity")
    members: dict[str, frozenset[Capability]] = Field(
        default_factory=dict,
        description="Member path (e.g. 'apps/web') -> declared capabilities",
    )

    @property
    def scope(self) -> str:
        return self.root_name

    def members_with(self, capability: Capability, group: MemberGroup | None = None) -> list[str]:
        """Return member paths declaring *capability*, optionally limited to one group."""
        prefix = f"{group.value}/" if group else ""
        return sorted(
            path for path, caps in self.members.items()
            if capability in caps and path.startswith(prefix)
        )

    def has_member(self, group: MemberGroup, name: str) -> bool:
        return f"{group.value}/{name}" in self.members


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

class ArtifactSpec(BaseModel):
    """A request to generate one artifact."""
    model_config = ConfigDict(frozen=True)

    kind: ArtifactKind
    name: str = Field(..., min_length=1)
    flags: frozenset[Feature] = Field(default_factory=frozenset)

    def has(self, feature: Feature) -> bool:
        return feature in self.flags


class FileUnit(BaseModel):
    """One file to write: the atomic output of a renderer."""
    model_config = ConfigDict(frozen=True)

    relative_path: str = Field(..., min_length=1, description="POSIX path relative to the base dir")
    content: str
    mode: WriteMode = WriteMode.CREATE
    marker: Optional[str] = Field(
        default=None, description="Text whose presence means the content is already there"
    )

    @model_validator(mode="after")
    def _check_marker(self) -> "FileUnit":
        if self.mode is WriteMode.APPEND_IF_ABSENT and not self.marker:
            raise ValueError("append_if_absent units need a non-empty marker")
        if Path(self.relative_path).is_absolute() or ".." in Path(self.relative_path).parts:
            raise ValueError(f"unit path must stay inside the base dir: {self.relative_path}")
        return self


class WritePolicy(BaseModel):
    """Batch-level rules applied by the materializer."""
    require_empty_root: bool = Field(
        default=False, description="Fail unless the base dir is absent or empty"
    )


class MaterializeOutcome(str, Enum):
    CREATED = "created"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"
    APPENDED = "appended"
    SKIPPED = "skipped"


class MaterializeResult(BaseModel):
    """What the materializer did to each path, in the order units were applied."""
    base_dir: Path
    outcomes: dict[str, MaterializeOutcome] = Field(default_factory=dict)

    def paths(self, outcome: MaterializeOutcome) -> list[str]:
        return [p for p, o in self.outcomes.items() if o is outcome]

    @property
    def changed(self) -> bool:
        return any(
            o not in (MaterializeOutcome.UNCHANGED, MaterializeOutcome.SKIPPED)
            for o in self.outcomes.values()
        )


# ---------------------------------------------------------------------------
# Generated JSON records
# ---------------------------------------------------------------------------

class PackageManifest(BaseModel):
    """A ``package.json``.  Field order is the serialized key order."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    private: bool = True
    type: Optional[str] = None
    workspaces: Optional[list[str]] = None
    scripts: Optional[dict[str, str]] = None
    exports: Optional[dict[str, str]] = None
    dependencies: Optional[dict[str, str]] = None
    dev_dependencies: Optional[dict[str, str]] = Field(default=None, alias="devDependencies")

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TsConfig(BaseModel):
    """A ``tsconfig.json`` or one of the shared base variants."""
    model_config = ConfigDict(populate_by_name=True)

    extends: Optional[str] = None
    compiler_options: Optional[dict[str, Any]] = Field(default=None, alias="compilerOptions")
    include: Optional[list[str]] = None

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ManifestBuilder:
    """Assembles a ``PackageManifest`` step by step, then builds it once.

    Sections stay ``None`` (and therefore absent from the JSON) until
    something is added to them, so optional features only ever add keys.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._type: str | None = None
        self._workspaces: list[str] | None = None
        self._scripts: dict[str, str] | None = None
        self._exports: dict[str, str] | None = None
        self._dependencies: dict[str, str] | None = None
        self._dev_dependencies: dict[str, str] | None = None

    def module_type(self, value: str) -> "ManifestBuilder":
        self._type = value
        return self

    def workspaces(self, *globs: str) -> "ManifestBuilder":
        self._workspaces = [*(self._workspaces or []), *globs]
        return self

    def script(self, name: str, command: str) -> "ManifestBuilder":
        self._scripts = {**(self._scripts or {}), name: command}
        return self

    def export(self, subpath: str, target: str) -> "ManifestBuilder":
        self._exports = {**(self._exports or {}), subpath: target}
        return self

    def dependencies(self, entries: dict[str, str]) -> "ManifestBuilder":
        self._dependencies = {**(self._dependencies or {}), **entries}
        return self

    def dev_dependencies(self, entries: dict[str, str]) -> "ManifestBuilder":
        self._dev_dependencies = {**(self._dev_dependencies or {}), **entries}
        return self

    def build(self) -> PackageManifest:
        return PackageManifest(
            name=self._name,
            type=self._type,
            workspaces=self._workspaces,
            scripts=self._scripts,
            exports=self._exports,
            dependencies=self._dependencies,
            dev_dependencies=self._dev_dependencies,
        )
