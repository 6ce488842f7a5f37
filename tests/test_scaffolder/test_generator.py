"""Tests for seren.scaffolder.generator.ProjectGenerator.

Each command pipeline is run against a real temporary directory; only the
external tools (git and the package manager) are mocked.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from seren.config import Config
from seren.errors import AlreadyExists, NotAWorkspace, PreconditionError, UsageError
from seren.scaffolder.generator import ProjectGenerator, parse_framework
from seren.scaffolder.models import Framework, InvocationContext

pytestmark = pytest.mark.unit


def read_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def snapshot_tree(root: Path) -> dict[str, str]:
    """Map every file under *root* (outside ``.git``) to its content."""
    return {
        p.relative_to(root).as_posix(): p.read_text(encoding="utf-8")
        for p in sorted(root.rglob("*"))
        if p.is_file() and ".git" not in p.relative_to(root).parts
    }


def _generator(cwd: Path, config: Config, *, interactive: bool = False, chooser=None) -> ProjectGenerator:
    return ProjectGenerator(InvocationContext(cwd=cwd, interactive=interactive), config, chooser=chooser)


# ---------------------------------------------------------------------------
# parse_framework
# ---------------------------------------------------------------------------

class TestParseFramework:
    @pytest.mark.parametrize("value, expected", [
        ("react", Framework.REACT),
        ("hono", Framework.HONO),
        ("server", Framework.HONO),
        (" React ", Framework.REACT),
    ])
    def test_known(self, value, expected):
        assert parse_framework(value) is expected

    def test_unknown(self):
        with pytest.raises(UsageError, match="Unknown framework: vue"):
            parse_framework("vue")


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

class TestInit:
    async def test_creates_workspace(self, tmp_path: Path, offline_config):
        result = await _generator(tmp_path, offline_config).init("proj")
        root = (tmp_path / "proj").resolve()

        assert result.root == root
        assert result.summary == "Created monorepo: proj"
        assert read_json(root / "package.json") == {
            "name": "proj",
            "private": True,
            "workspaces": ["apps/*", "packages/*"],
        }
        assert (root / "apps" / ".gitkeep").is_file()
        assert read_json(root / "packages" / "tsconfig" / "package.json")["name"] == "@proj/tsconfig"
        for variant in ("base", "react", "node"):
            assert (root / "packages" / "tsconfig" / f"{variant}.json").is_file()

    async def test_current_directory(self, tmp_path: Path, offline_config):
        target = tmp_path / "here"
        target.mkdir()
        result = await _generator(target, offline_config).init()
        assert read_json(target / "package.json")["name"] == "here"
        assert result.next_steps == ["npm install"]

    async def test_next_steps_include_cd(self, tmp_path: Path, offline_config):
        result = await _generator(tmp_path, offline_config).init("proj")
        assert result.next_steps == ["cd proj", "npm install"]

    async def test_refuses_non_empty_directory(self, tmp_path: Path, offline_config):
        target = tmp_path / "proj"
        target.mkdir()
        (target / "notes.txt").write_text("keep me")
        with pytest.raises(PreconditionError, match="not empty"):
            await _generator(tmp_path, offline_config).init("proj")
        assert snapshot_tree(target) == {"notes.txt": "keep me"}

    async def test_invalid_directory_name(self, tmp_path: Path, offline_config):
        with pytest.raises(UsageError, match="Invalid workspace name"):
            await _generator(tmp_path, offline_config).init("My Project")
        assert not (tmp_path / "My Project").exists()

    async def test_deterministic(self, tmp_path: Path, offline_config):
        await _generator(tmp_path / "a", offline_config).init("proj")
        await _generator(tmp_path / "b", offline_config).init("proj")
        assert snapshot_tree(tmp_path / "a" / "proj") == snapshot_tree(tmp_path / "b" / "proj")

    async def test_runs_git(self, tmp_path: Path, mock_run_command):
        config = Config(install_dependencies=False)
        result = await _generator(tmp_path, config).init("proj")
        mock_run_command.assert_awaited_once_with(
            ["git", "init", str((tmp_path / "proj").resolve())], cwd=None, capture=True
        )
        assert result.warnings == []

    async def test_git_failure_is_warning(self, tmp_path: Path, mock_run_command):
        mock_run_command.side_effect = FileNotFoundError("git")
        result = await _generator(tmp_path, Config()).init("proj")
        assert len(result.warnings) == 1
        assert "git init" in result.warnings[0]
        assert (tmp_path / "proj" / "package.json").is_file()

    async def test_init_never_installs(self, tmp_path: Path, mock_run_command):
        await _generator(tmp_path, Config(init_git=False)).init("proj")
        mock_run_command.assert_not_awaited()

    async def test_package_manager_in_next_steps(self, tmp_path: Path):
        config = Config(package_manager="pnpm", install_dependencies=False, init_git=False)
        result = await _generator(tmp_path, config).init("proj")
        assert result.next_steps[-1] == "pnpm install"
        assert "pnpm install" in (tmp_path / "proj" / "README.md").read_text()


# ---------------------------------------------------------------------------
# add app
# ---------------------------------------------------------------------------

class TestAddApp:
    async def test_react(self, workspace: Path, workspace_generator):
        result = await workspace_generator.add_app("web", "react")
        app = workspace / "apps" / "web"

        assert result.summary == "Created React app: web"
        manifest = read_json(app / "package.json")
        assert manifest["name"] == "@proj/web"
        assert manifest["devDependencies"]["@proj/tsconfig"] == "*"
        assert read_json(app / "tsconfig.json")["extends"] == "@proj/tsconfig/react"
        assert (app / "src" / "main.tsx").is_file()
        assert not (app / "src" / "index.css").exists()

    async def test_react_with_tailwind(self, workspace: Path, workspace_generator):
        await workspace_generator.add_app("web", Framework.REACT, tailwind=True)
        app = workspace / "apps" / "web"
        assert (app / "src" / "index.css").read_text() == '@import "tailwindcss";\n'
        assert "tailwindcss" in read_json(app / "package.json")["devDependencies"]

    @pytest.mark.parametrize("framework", ["hono", "server"])
    async def test_hono(self, workspace: Path, workspace_generator, framework):
        result = await workspace_generator.add_app("api", framework)
        app = workspace / "apps" / "api"
        assert result.summary == "Created Hono app: api"
        assert read_json(app / "tsconfig.json")["extends"] == "@proj/tsconfig/node"
        assert "port: 3000" in (app / "src" / "index.ts").read_text()

    async def test_server_port_from_config(self, workspace: Path):
        config = Config(install_dependencies=False, init_git=False, server_port=8787)
        await _generator(workspace, config).add_app("api", "hono")
        assert "port: 8787" in (workspace / "apps" / "api" / "src" / "index.ts").read_text()

    async def test_scope_comes_from_root_manifest(self, workspace: Path, workspace_generator):
        manifest = read_json(workspace / "package.json")
        manifest["name"] = "acme"
        (workspace / "package.json").write_text(json.dumps(manifest))

        await workspace_generator.add_app("web", "react")
        app = workspace / "apps" / "web"
        assert read_json(app / "package.json")["name"] == "@acme/web"
        assert "@acme/tsconfig" in read_json(app / "package.json")["devDependencies"]

    async def test_tailwind_rejected_for_hono(self, workspace: Path, workspace_generator):
        with pytest.raises(UsageError, match="only supported for React"):
            await workspace_generator.add_app("api", "hono", tailwind=True)
        assert not (workspace / "apps" / "api").exists()

    async def test_unknown_framework(self, workspace: Path, workspace_generator):
        with pytest.raises(UsageError):
            await workspace_generator.add_app("web", "vue")
        assert not (workspace / "apps" / "web").exists()

    async def test_missing_framework_non_interactive(self, workspace: Path, offline_config):
        chooser = MagicMock(return_value="react")
        generator = _generator(workspace, offline_config, chooser=chooser)
        with pytest.raises(UsageError, match="--framework"):
            await generator.add_app("web")
        chooser.assert_not_called()

    async def test_missing_framework_interactive(self, workspace: Path, offline_config):
        chooser = MagicMock(return_value="hono")
        generator = _generator(workspace, offline_config, interactive=True, chooser=chooser)
        result = await generator.add_app("api")
        chooser.assert_called_once_with("Select a framework:", ["react", "hono"])
        assert result.summary == "Created Hono app: api"

    async def test_invalid_name(self, workspace: Path, workspace_generator):
        before = snapshot_tree(workspace)
        with pytest.raises(UsageError, match="Invalid app name"):
            await workspace_generator.add_app("Web App", "react")
        assert snapshot_tree(workspace) == before

    async def test_outside_workspace(self, tmp_path: Path, offline_config):
        with pytest.raises(NotAWorkspace):
            await _generator(tmp_path, offline_config).add_app("web", "react")
        assert list(tmp_path.iterdir()) == []

    async def test_repeat_is_unchanged(self, workspace: Path, workspace_generator):
        await workspace_generator.add_app("web", "react")
        before = snapshot_tree(workspace)
        result = await workspace_generator.add_app("web", "react")
        assert not result.written[0].changed
        assert snapshot_tree(workspace) == before

    async def test_refuses_edited_files(self, workspace: Path, workspace_generator):
        await workspace_generator.add_app("web", "react")
        (workspace / "apps" / "web" / "src" / "App.tsx").write_text("custom\n")
        with pytest.raises(AlreadyExists):
            await workspace_generator.add_app("web", "react")
        assert (workspace / "apps" / "web" / "src" / "App.tsx").read_text() == "custom\n"

    async def test_name_taken_by_package(self, workspace: Path, workspace_generator):
        await workspace_generator.add_package("shared")
        with pytest.raises(PreconditionError, match="@proj/shared already exists"):
            await workspace_generator.add_app("shared", "react")
        assert not (workspace / "apps" / "shared").exists()

    async def test_refuses_foreign_directory(self, workspace: Path, workspace_generator):
        foreign = workspace / "apps" / "web"
        foreign.mkdir()
        (foreign / "notes.txt").write_text("mine")
        with pytest.raises(PreconditionError, match="apps/web already exists and is not the member @proj/web"):
            await workspace_generator.add_app("web", "react")
        assert snapshot_tree(foreign) == {"notes.txt": "mine"}

    async def test_file_in_place_of_app_dir(self, workspace: Path, workspace_generator):
        (workspace / "apps" / "api").write_text("x")
        with pytest.raises(AlreadyExists) as excinfo:
            await workspace_generator.add_app("api", "hono")
        assert excinfo.value.path == workspace / "apps" / "api"

    async def test_install_disabled_adds_next_step(self, workspace_generator):
        result = await workspace_generator.add_app("web", "react")
        assert result.installed is False
        assert result.next_steps == ["npm install"]


# ---------------------------------------------------------------------------
# Dependency installation
# ---------------------------------------------------------------------------

class TestInstall:
    async def test_runs_package_manager_at_root(self, workspace: Path, mock_run_command):
        generator = _generator(workspace, Config(init_git=False))
        result = await generator.add_app("web", "react")
        mock_run_command.assert_awaited_once_with(["npm", "install"], cwd=workspace, capture=False)
        assert result.installed is True
        assert result.next_steps == []

    async def test_failure_keeps_files(self, workspace: Path, mock_run_command):
        mock_run_command.return_value = (1, "", "ERR! network")
        generator = _generator(workspace, Config(init_git=False))
        result = await generator.add_package("utils")
        assert result.installed is False
        assert "exit 1" in result.warnings[0]
        assert "ERR! network" in result.warnings[0]
        assert (workspace / "packages" / "utils" / "package.json").is_file()


# ---------------------------------------------------------------------------
# add package
# ---------------------------------------------------------------------------

class TestAddPackage:
    async def test_library(self, workspace: Path, workspace_generator):
        result = await workspace_generator.add_package("utils")
        pkg = workspace / "packages" / "utils"
        assert result.summary == "Created package: utils"
        assert read_json(pkg / "package.json")["name"] == "@proj/utils"
        assert (pkg / "src" / "index.ts").read_text() == "export {};\n"
        assert read_json(pkg / "tsconfig.json")["extends"] == "@proj/tsconfig/base"

    async def test_db(self, workspace: Path, workspace_generator):
        result = await workspace_generator.add_package("db")
        pkg = workspace / "packages" / "db"
        assert result.summary == "Created db package with Drizzle + Neon"
        assert "Set DATABASE_URL in packages/db/.env" in result.next_steps
        assert (pkg / ".env").read_text() == "DATABASE_URL=\n"
        assert (pkg / "src" / "schema.ts").read_text() == ""
        assert "drizzle-orm" in read_json(pkg / "package.json")["dependencies"]

    async def test_db_keeps_existing_env(self, workspace: Path, workspace_generator):
        env = workspace / "packages" / "db" / ".env"
        env.parent.mkdir(parents=True)
        env.write_text("DATABASE_URL=postgres://real\n")
        await workspace_generator.add_package("db")
        assert env.read_text() == "DATABASE_URL=postgres://real\n"

    async def test_name_taken_by_app(self, workspace: Path, workspace_generator):
        await workspace_generator.add_app("web", "react")
        with pytest.raises(PreconditionError):
            await workspace_generator.add_package("web")

    async def test_refuses_directory_with_other_identity(self, workspace: Path, workspace_generator):
        other = workspace / "packages" / "utils"
        other.mkdir()
        (other / "package.json").write_text(json.dumps({"name": "@elsewhere/utils"}))
        with pytest.raises(PreconditionError, match="not the member"):
            await workspace_generator.add_package("utils")
        assert snapshot_tree(other) == {"package.json": '{"name": "@elsewhere/utils"}'}

    async def test_cannot_replace_shared_config(self, workspace_generator):
        with pytest.raises(AlreadyExists):
            await workspace_generator.add_package("tsconfig")


# ---------------------------------------------------------------------------
# add auth
# ---------------------------------------------------------------------------

@pytest.fixture
async def auth_ready(workspace: Path, workspace_generator) -> Path:
    """Workspace with a db package and one Hono app named ``api``."""
    await workspace_generator.add_package("db")
    await workspace_generator.add_app("api", "hono")
    return workspace


class TestAddAuth:
    async def test_requires_db_package(self, workspace: Path, workspace_generator):
        await workspace_generator.add_app("api", "hono")
        before = snapshot_tree(workspace)
        with pytest.raises(PreconditionError, match="seren add package db"):
            await workspace_generator.add_auth()
        assert snapshot_tree(workspace) == before

    async def test_requires_server_app(self, workspace: Path, workspace_generator):
        await workspace_generator.add_package("db")
        await workspace_generator.add_app("web", "react")
        with pytest.raises(PreconditionError, match="No eligible server app"):
            await workspace_generator.add_auth()

    async def test_wires_single_server_app(self, auth_ready: Path, workspace_generator):
        result = await workspace_generator.add_auth()
        app = auth_ready / "apps" / "api"
        schema = (auth_ready / "packages" / "db" / "src" / "schema.ts").read_text()

        assert result.summary == "Added auth to app: api"
        assert sorted(result.modified) == [
            "apps/api/package.json",
            "apps/api/src/index.ts",
            "packages/db/src/schema.ts",
        ]
        deps = read_json(app / "package.json")["dependencies"]
        assert deps["@proj/db"] == "*"
        assert "better-auth" in deps
        assert "hono" in deps

        assert 'import * as schema from "@proj/db/schema";' in (app / "src" / "auth.ts").read_text()
        assert "auth.handler(c.req.raw)" in (app / "src" / "index.ts").read_text()
        assert schema.startswith(
            'import { boolean, pgTable, text, timestamp } from "drizzle-orm/pg-core";\n\n'
        )
        for table in ("user", "session", "account", "verification"):
            assert f'export const {table} = pgTable("{table}"' in schema

        env = (app / ".env").read_text()
        assert env.startswith("# better-auth\nBETTER_AUTH_SECRET=")
        assert "BETTER_AUTH_URL=http://localhost:3000\n" in env
        assert env.endswith("DATABASE_URL=\n")
        secret = env.split("BETTER_AUTH_SECRET=", 1)[1].split("\n", 1)[0]
        assert len(secret) == 64

    async def test_rerun_is_idempotent(self, auth_ready: Path, workspace_generator):
        await workspace_generator.add_auth()
        before = snapshot_tree(auth_ready)
        result = await workspace_generator.add_auth()
        assert snapshot_tree(auth_ready) == before
        assert result.modified == []

    async def test_keeps_existing_tables(self, auth_ready: Path, workspace_generator):
        schema_path = auth_ready / "packages" / "db" / "src" / "schema.ts"
        schema_path.write_text(
            'import { pgTable, serial } from "drizzle-orm/pg-core";\n\n'
            'export const posts = pgTable("posts", { id: serial("id") });\n'
        )
        await workspace_generator.add_auth()
        schema = schema_path.read_text()
        assert 'export const posts = pgTable("posts", { id: serial("id") });' in schema
        assert schema.count("drizzle-orm/pg-core") == 1
        assert "serial" in schema.splitlines()[0]

    async def test_refuses_edited_entry_point(self, auth_ready: Path, workspace_generator):
        entry = auth_ready / "apps" / "api" / "src" / "index.ts"
        entry.write_text("// my server\n")
        before = snapshot_tree(auth_ready)
        with pytest.raises(PreconditionError, match="--force"):
            await workspace_generator.add_auth()
        assert snapshot_tree(auth_ready) == before

    async def test_force_replaces_edited_entry_point(self, auth_ready: Path, workspace_generator):
        entry = auth_ready / "apps" / "api" / "src" / "index.ts"
        entry.write_text("// my server\n")
        await workspace_generator.add_auth(force=True)
        assert "auth.handler" in entry.read_text()

    async def test_missing_schema_fails_before_writing(self, auth_ready: Path, workspace_generator):
        (auth_ready / "packages" / "db" / "src" / "schema.ts").unlink()
        before = snapshot_tree(auth_ready)
        with pytest.raises(PreconditionError, match="schema.ts"):
            await workspace_generator.add_auth()
        assert snapshot_tree(auth_ready) == before

    async def test_several_apps_need_a_choice(self, auth_ready: Path, workspace_generator):
        await workspace_generator.add_app("worker", "hono")
        with pytest.raises(UsageError, match="api, worker"):
            await workspace_generator.add_auth()

    async def test_explicit_app(self, auth_ready: Path, workspace_generator):
        await workspace_generator.add_app("worker", "hono")
        result = await workspace_generator.add_auth("worker")
        assert result.summary == "Added auth to app: worker"
        assert not (auth_ready / "apps" / "api" / "src" / "auth.ts").exists()

    async def test_explicit_app_must_be_server(self, auth_ready: Path, workspace_generator):
        await workspace_generator.add_app("web", "react")
        with pytest.raises(PreconditionError, match="'web' is not an eligible server app"):
            await workspace_generator.add_auth("web")

    async def test_interactive_choice(self, auth_ready: Path, offline_config):
        chooser = MagicMock(return_value="worker")
        generator = _generator(auth_ready, offline_config, interactive=True, chooser=chooser)
        await generator.add_app("worker", "hono")
        result = await generator.add_auth()
        chooser.assert_called_once_with("Select a server app:", ["api", "worker"])
        assert result.summary == "Added auth to app: worker"

    async def test_next_steps(self, auth_ready: Path, workspace_generator):
        result = await workspace_generator.add_auth()
        assert result.next_steps == [
            "Set DATABASE_URL in apps/api/.env",
            "cd packages/db && npx drizzle-kit push",
            "npm install",
        ]
