"""Shared pytest fixtures for the seren test suite.

Provides reusable fixtures for:
- Invocation contexts rooted in temporary directories
- Configs that never call git or a package manager
- Already-initialized workspaces built with the real generator
- A patched ``run_command`` recording external tool calls
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from seren.config import Config
from seren.scaffolder.generator import ProjectGenerator
from seren.scaffolder.models import InvocationContext


# ---------------------------------------------------------------------------
# Configuration & context
# ---------------------------------------------------------------------------

@pytest.fixture
def offline_config() -> Config:
    """Config that skips both git and dependency installation."""
    return Config(install_dependencies=False, init_git=False)


@pytest.fixture
def make_context():
    """Factory for non-interactive invocation contexts."""
    def _make(cwd: Path, interactive: bool = False) -> InvocationContext:
        return InvocationContext(cwd=cwd, interactive=interactive)
    return _make


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------

@pytest.fixture
async def workspace(tmp_path: Path, offline_config: Config) -> Path:
    """A freshly initialized workspace named ``proj``."""
    generator = ProjectGenerator(InvocationContext(cwd=tmp_path), offline_config)
    result = await generator.init("proj")
    return result.root


@pytest.fixture
def workspace_generator(workspace: Path, offline_config: Config) -> ProjectGenerator:
    """Generator running inside the ``proj`` workspace."""
    return ProjectGenerator(InvocationContext(cwd=workspace), offline_config)


# ---------------------------------------------------------------------------
# External tools
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_run_command():
    """Patch ``run_command`` as seen by ``seren.tools``; succeeds by default."""
    with patch("seren.tools.run_command", new_callable=AsyncMock) as mocked:
        mocked.return_value = (0, "", "")
        yield mocked
