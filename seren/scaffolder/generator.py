"""Main scaffolding orchestrator.

One pipeline per command.  Every "add" pipeline reads the workspace fresh
through the workspace reader, renders with the scope it found, applies the
result through the materializer or mutator, and only then calls the external
tools.  External tool failures are collected as warnings: the files written
before them stay on disk.
"""

from __future__ import annotations

import secrets
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from seren.config import Config
from seren.errors import ExternalToolError, PreconditionError, UsageError
from seren.tools import init_repository, install_dependencies
from seren.utils import is_valid_package_name

from .materializer import materialize
from .models import (
    ArtifactKind,
    ArtifactSpec,
    Capability,
    Feature,
    Framework,
    InvocationContext,
    MaterializeResult,
    MemberGroup,
    WorkspaceDescriptor,
    WritePolicy,
)
from .mutator import ProjectMutator, select_candidate
from .renderers import (
    DATA_PACKAGE_NAME,
    SHARED_CONFIG_NAME,
    member_dir,
    member_identity,
    render_artifact,
    render_auth_wiring,
    render_server_entry,
)
from .workspace import member_name, read_workspace

Chooser = Callable[[str, list[str]], str]

FRAMEWORK_ALIASES: dict[str, Framework] = {
    "react": Framework.REACT,
    "hono": Framework.HONO,
    "server": Framework.HONO,
}


@dataclass
class GenerationResult:
    """What one command did, for the CLI to report."""

    root: Path
    summary: str
    written: list[MaterializeResult] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    installed: bool = False


def parse_framework(value: str) -> Framework:
    """Map a ``--framework`` value (``react``, ``hono`` or ``server``) to a ``Framework``."""
    try:
        return FRAMEWORK_ALIASES[value.strip().lower()]
    except KeyError:
        raise UsageError(
            f"Unknown framework: {value}. Use 'react' or 'hono' ('server' is an alias for 'hono')."
        ) from None


class ProjectGenerator:
    """Runs seren's commands against the filesystem.

    Args:
        context: Working directory and interactivity of this invocation.
        config: External tool settings and generated-file knobs.
        chooser: Callback used when a required choice was not supplied; it
            receives a question and the options and returns one option.
            ``None`` means choices must come from flags.
    """

    def __init__(
        self,
        context: InvocationContext,
        config: Config | None = None,
        chooser: Chooser | None = None,
    ) -> None:
        self.context = context
        self.config = config or Config()
        self.chooser = chooser

    # -- init --------------------------------------------------------------

    async def init(self, path: str = ".") -> GenerationResult:
        """Create a new workspace at *path* (relative to the invocation cwd)."""
        target = (self.context.cwd / path).resolve()
        name = target.name
        _validate_name(name, what="workspace")

        spec = ArtifactSpec(kind=ArtifactKind.ROOT_WORKSPACE, name=name)
        units = [
            *render_artifact(spec, name, package_manager=self.config.package_manager),
            *render_artifact(
                ArtifactSpec(kind=ArtifactKind.SHARED_CONFIG_PACKAGE, name=SHARED_CONFIG_NAME),
                name,
            ),
        ]
        written = await materialize(target, units, WritePolicy(require_empty_root=True))

        result = GenerationResult(root=target, summary=f"Created monorepo: {name}", written=[written])
        if self.config.init_git:
            await self._external(result, init_repository(target, self.config))

        if target != self.context.cwd.resolve():
            result.next_steps.append(f"cd {path}")
        result.next_steps.append(" ".join(self.config.install_command))
        return result

    # -- add app -----------------------------------------------------------

    async def add_app(
        self,
        name: str,
        framework: Framework | str | None = None,
        *,
        tailwind: bool = False,
    ) -> GenerationResult:
        """Add a React or Hono app under ``apps/<name>``."""
        _validate_name(name, what="app")
        workspace = read_workspace(self.context.cwd)

        if framework is None:
            framework = self._choose("framework", [f.value for f in Framework], "--framework")
        if not isinstance(framework, Framework):
            framework = parse_framework(framework)
        if tailwind and framework is not Framework.REACT:
            raise UsageError("--tailwind is only supported for React apps.")

        self._check_identity_free(workspace, MemberGroup.APPS, name)

        flags = frozenset({Feature.TAILWIND}) if tailwind else frozenset()
        kind = ArtifactKind.UI_APP if framework is Framework.REACT else ArtifactKind.SERVER_APP
        spec = ArtifactSpec(kind=kind, name=name, flags=flags)
        units = render_artifact(spec, workspace.scope, port=self.config.server_port)
        written = await materialize(workspace.root_path, units)

        label = "React" if framework is Framework.REACT else "Hono"
        result = GenerationResult(
            root=workspace.root_path, summary=f"Created {label} app: {name}", written=[written]
        )
        await self._install(result)
        return result

    # -- add package -------------------------------------------------------

    async def add_package(self, name: str) -> GenerationResult:
        """Add a shared package; the name ``db`` selects the data-access variant."""
        _validate_name(name, what="package")
        workspace = read_workspace(self.context.cwd)
        self._check_identity_free(workspace, MemberGroup.PACKAGES, name)

        kind = ArtifactKind.DATA_PACKAGE if name == DATA_PACKAGE_NAME else ArtifactKind.LIBRARY_PACKAGE
        units = render_artifact(ArtifactSpec(kind=kind, name=name), workspace.scope)
        written = await materialize(workspace.root_path, units)

        summary = (
            "Created db package with Drizzle + Neon"
            if kind is ArtifactKind.DATA_PACKAGE
            else f"Created package: {name}"
        )
        result = GenerationResult(root=workspace.root_path, summary=summary, written=[written])
        if kind is ArtifactKind.DATA_PACKAGE:
            result.next_steps.append(
                f"Set DATABASE_URL in {member_dir(MemberGroup.PACKAGES, name)}/.env"
            )
        await self._install(result)
        return result

    # -- add auth ----------------------------------------------------------

    async def add_auth(self, app: str | None = None, *, force: bool = False) -> GenerationResult:
        """Wire better-auth into a server app, backed by the ``db`` package.

        Every prerequisite is checked before anything is written.  The
        server entry point is replaced only if it is still the generated one
        (or already wired); custom entry points need ``force``.
        """
        workspace = read_workspace(self.context.cwd)
        root = workspace.root_path
        db_path = member_dir(MemberGroup.PACKAGES, DATA_PACKAGE_NAME)
        if Capability.DATA_ACCESS not in workspace.members.get(db_path, frozenset()):
            raise PreconditionError(
                "No data-access package found. Run 'seren add package db' first."
            )

        candidates = [
            path.split("/", 1)[1]
            for path in workspace.members_with(Capability.SERVER_FRAMEWORK, MemberGroup.APPS)
        ]
        chosen = select_candidate(
            candidates, app, self._interactive_chooser(), what="server app"
        )

        wiring = render_auth_wiring(
            ArtifactSpec(kind=ArtifactKind.AUTH_WIRING, name=chosen),
            workspace.scope,
            secret=secrets.token_hex(32),
            base_url=self.config.auth_base_url,
            port=self.config.server_port,
        )

        mutator = ProjectMutator(root)
        mutator.require(wiring.schema_path, "Schema file of the db package")
        mutator.require(f"{wiring.app_dir}/package.json", f"Manifest of app '{chosen}'")
        mutator.require(wiring.entry_point_path, f"Entry point of app '{chosen}'")

        current_entry = await mutator.read(wiring.entry_point_path)
        known_entries = {
            render_server_entry(chosen, self.config.server_port),
            wiring.entry_point,
        }
        if current_entry not in known_entries and not force:
            raise PreconditionError(
                f"{wiring.entry_point_path} has been edited since it was generated. "
                "Re-run with --force to replace it."
            )

        written = await materialize(root, wiring.units)
        result = GenerationResult(
            root=root, summary=f"Added auth to app: {chosen}", written=[written]
        )
        if await mutator.replace_entry_point(wiring.entry_point_path, wiring.entry_point):
            result.modified.append(wiring.entry_point_path)
        if await mutator.append_schema(
            wiring.schema_path,
            module=wiring.schema_module,
            names=wiring.schema_imports,
            definitions=wiring.schema_definitions,
            marker=wiring.schema_marker,
        ):
            result.modified.append(wiring.schema_path)
        manifest_path = f"{wiring.app_dir}/package.json"
        if await mutator.patch_manifest(manifest_path, "dependencies", wiring.dependencies):
            result.modified.append(manifest_path)

        result.next_steps.append(f"Set DATABASE_URL in {wiring.app_dir}/.env")
        result.next_steps.append(f"cd {db_path} && npx drizzle-kit push")
        await self._install(result)
        return result

    # -- Helpers -----------------------------------------------------------

    def _interactive_chooser(self) -> Chooser | None:
        return self.chooser if self.context.interactive else None

    def _choose(self, what: str, options: list[str], flag: str) -> str:
        chooser = self._interactive_chooser()
        if chooser is None:
            raise UsageError(f"No {what} given; pass one with {flag}.")
        return chooser(f"Select a {what}:", options)

    def _check_identity_free(
        self, workspace: WorkspaceDescriptor, group: MemberGroup, name: str
    ) -> None:
        """A member identity may be held by only one directory across apps and packages.

        An existing directory at the target path is accepted only when its
        manifest already carries the identity, i.e. it is this member generated
        earlier.
        """
        identity = member_identity(workspace.scope, name)
        for other in MemberGroup:
            if other is not group and workspace.has_member(other, name):
                raise PreconditionError(
                    f"{identity} already exists as {member_dir(other, name)}; "
                    "member names must be unique across apps and packages."
                )
        target = member_dir(group, name)
        if workspace.has_member(group, name) and member_name(workspace.root_path / target) != identity:
            raise PreconditionError(
                f"{target} already exists and is not the member {identity}. "
                "Remove it or choose another name."
            )

    async def _install(self, result: GenerationResult) -> None:
        if not self.config.install_dependencies:
            result.next_steps.append(" ".join(self.config.install_command))
            return
        result.installed = await self._external(
            result, install_dependencies(result.root, self.config)
        )

    async def _external(self, result: GenerationResult, call: Awaitable[None]) -> bool:
        try:
            await call
        except ExternalToolError as exc:
            result.warnings.append(str(exc))
            return False
        return True


def _validate_name(name: str, *, what: str) -> None:
    if not is_valid_package_name(name):
        raise UsageError(
            f"Invalid {what} name: '{name}'. Use lowercase letters, digits, '.', '_' or '-'."
        )
