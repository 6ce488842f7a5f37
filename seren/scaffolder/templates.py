"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``seren/scaffolder/templates/`` directory and renders them with
artifact-specific context data.  Rendering never touches the output tree:
results come back as strings or ``FileUnit`` objects for the materializer to
apply.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from .models import FileUnit, WriteMode


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    The renderer discovers ``.j2`` template files under a configurable
    template directory.  Undefined variables are errors, so a template can
    never silently render a blank where a name or scope should be.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"server_app/src/index.ts.j2"``).
            context: Dictionary of variables available inside the template.

        Returns:
            The rendered template content as a string.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    def render_unit(
        self,
        template_path: str,
        relative_path: str,
        context: dict[str, Any],
        *,
        mode: WriteMode = WriteMode.CREATE,
        marker: str | None = None,
    ) -> FileUnit:
        """Render *template_path* into a ``FileUnit`` destined for *relative_path*."""
        return FileUnit(
            relative_path=relative_path,
            content=self.render(template_path, context),
            mode=mode,
            marker=marker,
        )

    # -- Subtree rendering -------------------------------------------------

    def render_tree(
        self,
        template_prefix: str,
        output_prefix: str,
        context: dict[str, Any],
        *,
        skip_patterns: list[str] | None = None,
    ) -> list[FileUnit]:
        """Render every ``*.j2`` file under *template_prefix* into create-mode units.

        The directory structure is preserved: a template at
        ``ui_app/src/main.tsx.j2`` rendered with ``template_prefix="ui_app"``
        and ``output_prefix="apps/web"`` becomes ``apps/web/src/main.tsx``.

        Args:
            template_prefix: Subdirectory inside the template root to scan.
            output_prefix: Relative directory the units are placed under.
            context: Template context variables.
            skip_patterns: Optional list of relative-path substrings to skip
                (e.g. ``["index.css"]`` when a feature is disabled).

        Returns:
            Units in sorted template-path order.
        """
        skip_patterns = skip_patterns or []
        prefix_path = self.template_dir / template_prefix
        if not prefix_path.is_dir():
            return []

        units: list[FileUnit] = []
        for template_file in sorted(prefix_path.rglob("*.j2")):
            rel_str = template_file.relative_to(prefix_path).as_posix()

            if any(pat in rel_str for pat in skip_patterns):
                continue

            output_name = rel_str[: -len(".j2")]
            units.append(
                self.render_unit(
                    f"{template_prefix}/{rel_str}",
                    f"{output_prefix}/{output_name}" if output_prefix else output_name,
                    context,
                )
            )
        return units

