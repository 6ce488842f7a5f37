"""seren scaffolder -- generates and extends monorepo workspaces.

Renderers turn an ``ArtifactSpec`` and the workspace scope into ``FileUnit``
objects without touching the disk; the materializer writes them and the
project mutator patches files that already exist.  ``ProjectGenerator`` runs
one pipeline per command.

Quick usage::

    from pathlib import Path
    from seren.scaffolder import InvocationContext, ProjectGenerator

    generator = ProjectGenerator(InvocationContext(cwd=Path("/tmp")))
    result = await generator.init("my-project")
"""

from seren.scaffolder.generator import GenerationResult, ProjectGenerator
from seren.scaffolder.models import (
    ArtifactKind,
    ArtifactSpec,
    Capability,
    Feature,
    FileUnit,
    Framework,
    InvocationContext,
    WorkspaceDescriptor,
    WriteMode,
)
from seren.scaffolder.templates import TemplateRenderer
from seren.scaffolder.workspace import read_workspace

__all__ = [
    "ArtifactKind",
    "ArtifactSpec",
    "Capability",
    "Feature",
    "FileUnit",
    "Framework",
    "GenerationResult",
    "InvocationContext",
    "ProjectGenerator",
    "TemplateRenderer",
    "WorkspaceDescriptor",
    "WriteMode",
    "read_workspace",
]
