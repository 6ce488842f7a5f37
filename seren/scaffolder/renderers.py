"""Pure renderers: one function per artifact kind.

Each renderer maps an ``ArtifactSpec`` plus the workspace scope (and a few
options) to an ordered list of ``FileUnit`` objects.  Nothing here touches the
filesystem; the scope is always passed in by the caller, never derived.

Cross-file references all go through the naming helpers at the top of the
module, so a member's manifest identity, the dependency entries that point
at it and the ``extends`` references into the shared config package can only
ever agree.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from seren.utils import dump_json

from .models import (
    ArtifactKind,
    ArtifactSpec,
    ConfigVariant,
    Feature,
    FileUnit,
    ManifestBuilder,
    MemberGroup,
    PackageManifest,
    TsConfig,
    WriteMode,
)
from .templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Conventions shared by every renderer
# ---------------------------------------------------------------------------

# Version selector meaning "the copy inside this workspace".
WORKSPACE_VERSION = "*"

SHARED_CONFIG_NAME = "tsconfig"
DATA_PACKAGE_NAME = "db"

ENTRY_POINT = "src/index.ts"
SCHEMA_FILE = "src/schema.ts"
SCHEMA_EXPORT = "./schema"
ENV_FILE = ".env"

WORKSPACE_GLOBS = (f"{MemberGroup.APPS.value}/*", f"{MemberGroup.PACKAGES.value}/*")

DEPENDENCY_VERSIONS: dict[str, str] = {
    "react": "^19.2.0",
    "react-dom": "^19.2.0",
    "@types/react": "^19.2.5",
    "@types/react-dom": "^19.2.3",
    "@vitejs/plugin-react": "^5.1.1",
    "typescript": "~5.9.3",
    "vite": "^7.2.4",
    "tailwindcss": "^4.1.10",
    "@tailwindcss/vite": "^4.1.10",
    "hono": "^4.7.0",
    "@hono/node-server": "^1.14.0",
    "@types/node": "^22.10.2",
    "tsx": "^4.19.0",
    "drizzle-orm": "^0.44.2",
    "@neondatabase/serverless": "^1.0.1",
    "dotenv": "^16.5.0",
    "drizzle-kit": "^0.31.1",
    "better-auth": "^1.2.8",
}

_STRICT_COMPILER_OPTIONS: dict[str, object] = {
    "allowUnreachableCode": False,
    "allowUnusedLabels": False,
    "exactOptionalPropertyTypes": True,
    "noFallthroughCasesInSwitch": True,
    "noImplicitOverride": True,
    "noImplicitReturns": True,
    "noUncheckedIndexedAccess": True,
    "noUnusedLocals": True,
    "noUnusedParameters": True,
    "strict": True,
    "target": "ES2022",
    "module": "ESNext",
    "moduleResolution": "bundler",
    "skipLibCheck": True,
    "noEmit": True,
    "verbatimModuleSyntax": True,
    "noUncheckedSideEffectImports": True,
}

_VARIANT_COMPILER_OPTIONS: dict[ConfigVariant, dict[str, object]] = {
    ConfigVariant.REACT: {"lib": ["ES2022", "DOM", "DOM.Iterable"], "jsx": "react-jsx"},
    ConfigVariant.NODE: {"lib": ["ES2023"], "types": ["node"]},
}

_renderer = TemplateRenderer()


def member_identity(scope: str, name: str) -> str:
    """Manifest ``name`` of a member: ``@scope/name``."""
    return f"@{scope}/{name}"


def workspace_dependency(scope: str, name: str) -> dict[str, str]:
    """Dependency entry pointing at the workspace-local copy of member *name*."""
    return {member_identity(scope, name): WORKSPACE_VERSION}


def config_export_key(variant: ConfigVariant) -> str:
    return f"./{variant.value}"


def config_exports() -> dict[str, str]:
    """Export map of the shared config package, one entry per base variant."""
    return {config_export_key(v): f"./{v.value}.json" for v in ConfigVariant}


def config_reference(scope: str, variant: ConfigVariant) -> str:
    """``extends`` value selecting *variant* of the shared config package."""
    return f"{member_identity(scope, SHARED_CONFIG_NAME)}/{variant.value}"


def schema_import(scope: str) -> str:
    """Import specifier of the data package's schema module."""
    return member_identity(scope, DATA_PACKAGE_NAME) + SCHEMA_EXPORT[1:]


def member_dir(group: MemberGroup, name: str) -> str:
    return f"{group.value}/{name}"


def versions(*names: str) -> dict[str, str]:
    return {n: DEPENDENCY_VERSIONS[n] for n in names}


def _json_unit(relative_path: str, record: PackageManifest | TsConfig) -> FileUnit:
    return FileUnit(relative_path=relative_path, content=dump_json(record.to_json_dict()))


def _tsconfig_unit(
    base: str,
    scope: str,
    variant: ConfigVariant,
    include: list[str],
    compiler_options: dict[str, object] | None = None,
) -> FileUnit:
    record = TsConfig(
        extends=config_reference(scope, variant),
        compiler_options=compiler_options,
        include=include,
    )
    return _json_unit(f"{base}/tsconfig.json", record)


# ---------------------------------------------------------------------------
# Root workspace & shared config
# ---------------------------------------------------------------------------

def render_root_workspace(spec: ArtifactSpec, *, package_manager: str = "npm") -> list[FileUnit]:
    """Root ``package.json``, ``.gitignore``, README and the empty ``apps/`` dir.

    The workspace name *is* the scope, so this is the only renderer that
    takes its scope from the spec.
    """
    manifest = ManifestBuilder(spec.name).workspaces(*WORKSPACE_GLOBS).build()
    ctx = {"name": spec.name, "package_manager": package_manager}
    return [
        _json_unit("package.json", manifest),
        _renderer.render_unit("root/gitignore.j2", ".gitignore", ctx),
        _renderer.render_unit("root/README.md.j2", "README.md", ctx),
        FileUnit(relative_path=f"{MemberGroup.APPS.value}/.gitkeep", content=""),
    ]


def render_shared_config(scope: str) -> list[FileUnit]:
    """The shared TypeScript config package with its three base variants."""
    base = member_dir(MemberGroup.PACKAGES, SHARED_CONFIG_NAME)
    manifest = PackageManifest(
        name=member_identity(scope, SHARED_CONFIG_NAME),
        exports=config_exports(),
    )
    units = [_json_unit(f"{base}/package.json", manifest)]
    for variant in ConfigVariant:
        if variant is ConfigVariant.BASE:
            record = TsConfig(compiler_options=dict(_STRICT_COMPILER_OPTIONS))
        else:
            record = TsConfig(
                extends=f"./{ConfigVariant.BASE.value}.json",
                compiler_options=_VARIANT_COMPILER_OPTIONS[variant],
            )
        units.append(_json_unit(f"{base}/{variant.value}.json", record))
    return units


# ---------------------------------------------------------------------------
# Apps
# ---------------------------------------------------------------------------

def render_ui_app(spec: ArtifactSpec, scope: str) -> list[FileUnit]:
    """Vite + React app.  ``Feature.TAILWIND`` only ever adds to the output."""
    tailwind = spec.has(Feature.TAILWIND)
    base = member_dir(MemberGroup.APPS, spec.name)

    builder = (
        ManifestBuilder(member_identity(scope, spec.name))
        .script("dev", "vite")
        .script("build", "vite build")
        .dependencies(versions("react", "react-dom"))
        .dev_dependencies(workspace_dependency(scope, SHARED_CONFIG_NAME))
        .dev_dependencies(
            versions("@types/react", "@types/react-dom", "@vitejs/plugin-react", "typescript", "vite")
        )
    )
    if tailwind:
        builder.dev_dependencies(versions("tailwindcss", "@tailwindcss/vite"))

    ctx = {"name": spec.name, "tailwind": tailwind}
    return [
        _json_unit(f"{base}/package.json", builder.build()),
        *_renderer.render_tree(
            "ui_app", base, ctx, skip_patterns=[] if tailwind else ["index.css"]
        ),
        _tsconfig_unit(
            base,
            scope,
            ConfigVariant.REACT,
            include=["src", "vite.config.ts"],
            compiler_options={"types": ["vite/client"]},
        ),
    ]


def render_server_entry(name: str, port: int) -> str:
    """Content of a freshly generated server app's entry point."""
    return _renderer.render("server_app/src/index.ts.j2", {"name": name, "port": port})


def render_server_app(spec: ArtifactSpec, scope: str, *, port: int = 3000) -> list[FileUnit]:
    """Hono app running on Node."""
    base = member_dir(MemberGroup.APPS, spec.name)
    manifest = (
        ManifestBuilder(member_identity(scope, spec.name))
        .module_type("module")
        .script("dev", f"tsx watch {ENTRY_POINT}")
        .script("build", "tsc")
        .script("start", "node dist/index.js")
        .dependencies(versions("hono", "@hono/node-server"))
        .dev_dependencies(workspace_dependency(scope, SHARED_CONFIG_NAME))
        .dev_dependencies(versions("@types/node", "tsx", "typescript"))
        .build()
    )
    return [
        _json_unit(f"{base}/package.json", manifest),
        FileUnit(relative_path=f"{base}/{ENTRY_POINT}", content=render_server_entry(spec.name, port)),
        _tsconfig_unit(
            base,
            scope,
            ConfigVariant.NODE,
            include=["src"],
            compiler_options={"outDir": "dist", "noEmit": False},
        ),
    ]


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

def render_library_package(spec: ArtifactSpec, scope: str) -> list[FileUnit]:
    """Plain shared TypeScript package exporting ``src/index.ts``."""
    base = member_dir(MemberGroup.PACKAGES, spec.name)
    manifest = (
        ManifestBuilder(member_identity(scope, spec.name))
        .export(".", f"./{ENTRY_POINT}")
        .dev_dependencies(workspace_dependency(scope, SHARED_CONFIG_NAME))
        .dev_dependencies(versions("typescript"))
        .build()
    )
    return [
        _json_unit(f"{base}/package.json", manifest),
        *_renderer.render_tree("library_package", base, {"name": spec.name}),
        _tsconfig_unit(base, scope, ConfigVariant.BASE, include=["src"]),
    ]


def render_data_package(spec: ArtifactSpec, scope: str) -> list[FileUnit]:
    """Drizzle + Neon data-access package with an empty schema module."""
    base = member_dir(MemberGroup.PACKAGES, spec.name)
    manifest = (
        ManifestBuilder(member_identity(scope, spec.name))
        .export(".", f"./{ENTRY_POINT}")
        .export(SCHEMA_EXPORT, f"./{SCHEMA_FILE}")
        .dependencies(versions("drizzle-orm", "@neondatabase/serverless", "dotenv"))
        .dev_dependencies(workspace_dependency(scope, SHARED_CONFIG_NAME))
        .dev_dependencies(versions("drizzle-kit", "tsx", "typescript"))
        .build()
    )
    ctx = {"name": spec.name, "schema_path": SCHEMA_FILE}
    return [
        _json_unit(f"{base}/package.json", manifest),
        _renderer.render_unit(
            "data_package/env.j2",
            f"{base}/{ENV_FILE}",
            ctx,
            mode=WriteMode.APPEND_IF_ABSENT,
            marker="DATABASE_URL=",
        ),
        _renderer.render_unit("data_package/src/index.ts.j2", f"{base}/{ENTRY_POINT}", ctx),
        FileUnit(relative_path=f"{base}/{SCHEMA_FILE}", content=""),
        _renderer.render_unit("data_package/drizzle.config.ts.j2", f"{base}/drizzle.config.ts", ctx),
        _tsconfig_unit(base, scope, ConfigVariant.BASE, include=["src", "drizzle.config.ts"]),
    ]


# ---------------------------------------------------------------------------
# Auth wiring
# ---------------------------------------------------------------------------

SCHEMA_TABLE_MODULE = "drizzle-orm/pg-core"
SCHEMA_TABLE_IMPORTS = ("boolean", "pgTable", "text", "timestamp")
AUTH_TABLES = ("user", "session", "account", "verification")
AUTH_ENV_MARKER = "BETTER_AUTH_SECRET="


class AuthWiring(BaseModel):
    """Everything ``add auth`` changes, rendered up front.

    ``units`` are new files for the materializer; the remaining fields are
    handed to the project mutator because they modify existing artifacts.
    """
    model_config = ConfigDict(frozen=True)

    app_dir: str
    units: list[FileUnit]
    entry_point_path: str
    entry_point: str
    schema_path: str
    schema_module: str = SCHEMA_TABLE_MODULE
    schema_imports: tuple[str, ...] = SCHEMA_TABLE_IMPORTS
    schema_definitions: str
    schema_marker: str = Field(..., description="Present once the tables have been appended")
    dependencies: dict[str, str]


def render_auth_wiring(
    spec: ArtifactSpec,
    scope: str,
    *,
    secret: str,
    base_url: str,
    port: int = 3000,
) -> AuthWiring:
    """better-auth on the server app named by ``spec.name``, backed by the data package."""
    app_dir = member_dir(MemberGroup.APPS, spec.name)
    db_dir = member_dir(MemberGroup.PACKAGES, DATA_PACKAGE_NAME)
    ctx = {
        "name": spec.name,
        "port": port,
        "db_import": member_identity(scope, DATA_PACKAGE_NAME),
        "schema_import": schema_import(scope),
        "secret": secret,
        "base_url": base_url,
    }
    definitions = _renderer.render("auth_wiring/schema.ts.j2", ctx)
    return AuthWiring(
        app_dir=app_dir,
        units=[
            _renderer.render_unit("auth_wiring/auth.ts.j2", f"{app_dir}/src/auth.ts", ctx),
            _renderer.render_unit(
                "auth_wiring/env.j2",
                f"{app_dir}/{ENV_FILE}",
                ctx,
                mode=WriteMode.APPEND_IF_ABSENT,
                marker=AUTH_ENV_MARKER,
            ),
            _renderer.render_unit(
                "data_package/env.j2",
                f"{app_dir}/{ENV_FILE}",
                ctx,
                mode=WriteMode.APPEND_IF_ABSENT,
                marker="DATABASE_URL=",
            ),
        ],
        entry_point_path=f"{app_dir}/{ENTRY_POINT}",
        entry_point=_renderer.render("auth_wiring/index.ts.j2", ctx),
        schema_path=f"{db_dir}/{SCHEMA_FILE}",
        schema_definitions=definitions,
        schema_marker=f"export const {AUTH_TABLES[0]} = pgTable(",
        dependencies={
            **workspace_dependency(scope, DATA_PACKAGE_NAME),
            **versions("better-auth"),
        },
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def render_artifact(
    spec: ArtifactSpec,
    scope: str,
    *,
    port: int = 3000,
    package_manager: str = "npm",
) -> list[FileUnit]:
    """Render any file-producing artifact kind.

    ``AUTH_WIRING`` is not accepted here because it also mutates existing
    files; use :func:`render_auth_wiring`.
    """
    if spec.kind is ArtifactKind.ROOT_WORKSPACE:
        return render_root_workspace(spec, package_manager=package_manager)
    if spec.kind is ArtifactKind.SHARED_CONFIG_PACKAGE:
        return render_shared_config(scope)
    if spec.kind is ArtifactKind.UI_APP:
        return render_ui_app(spec, scope)
    if spec.kind is ArtifactKind.SERVER_APP:
        return render_server_app(spec, scope, port=port)
    if spec.kind is ArtifactKind.LIBRARY_PACKAGE:
        return render_library_package(spec, scope)
    if spec.kind is ArtifactKind.DATA_PACKAGE:
        return render_data_package(spec, scope)
    raise ValueError(f"{spec.kind.value} artifacts are rendered with render_auth_wiring")
