"""seren configuration.

Typed settings for the external collaborators the generator drives (version
control and the package manager) plus the few knobs that flow into generated
files.  Settings use a Pydantic v2 model so they are validated at construction
time; ``Config.from_env`` layers environment variables on top of the defaults
and the CLI layers its flags on top of that.
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field


_TRUTHY = {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Global seren configuration.

    Instances are created once by the CLI entry point and passed to the
    ``ProjectGenerator``.
    """

    package_manager: str = Field(default="npm", min_length=1)
    install_dependencies: bool = Field(
        default=True, description="Run '<package_manager> install' after dependency sets change"
    )
    init_git: bool = Field(default=True, description="Run 'git init' at the end of 'seren init'")
    git_executable: str = Field(default="git", min_length=1)
    server_port: int = Field(
        default=3000, ge=1, le=65535, description="Port generated server apps listen on"
    )

    @property
    def auth_base_url(self) -> str:
        """Base URL written as ``BETTER_AUTH_URL`` when auth is wired."""
        return f"http://localhost:{self.server_port}"

    @property
    def install_command(self) -> list[str]:
        """Argument vector used to install workspace dependencies."""
        return [self.package_manager, "install"]

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            SEREN_PACKAGE_MANAGER, SEREN_NO_INSTALL, SEREN_NO_GIT,
            SEREN_GIT, SEREN_SERVER_PORT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("SEREN_PACKAGE_MANAGER"):
            kwargs["package_manager"] = os.environ["SEREN_PACKAGE_MANAGER"]
        if os.environ.get("SEREN_NO_INSTALL", "").strip().lower() in _TRUTHY:
            kwargs["install_dependencies"] = False
        if os.environ.get("SEREN_NO_GIT", "").strip().lower() in _TRUTHY:
            kwargs["init_git"] = False
        if os.environ.get("SEREN_GIT"):
            kwargs["git_executable"] = os.environ["SEREN_GIT"]
        if os.environ.get("SEREN_SERVER_PORT"):
            kwargs["server_port"] = int(os.environ["SEREN_SERVER_PORT"])
        return cls(**kwargs)
