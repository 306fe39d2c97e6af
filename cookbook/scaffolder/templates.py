"""Template rendering for recipe scaffolding.

Templates live under ``cookbook/scaffolder/templates/<category>/`` plus a
shared ``common/`` tree. Two mechanisms are supported:

* Plain files are copied with ``{{slug}}``-style placeholder tokens replaced
  verbatim, both in their contents and in their path segments. Files that are
  not valid UTF-8 are copied byte for byte.
* Files ending in ``.j2`` are rendered with Jinja2 and written without the
  suffix.

A template named ``gitignore`` is written as ``.gitignore`` so the bundled
tree carries no dotfiles.
"""

from __future__ import annotations

import asyncio
import re
import shutil
from pathlib import Path, PurePosixPath
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from cookbook.config import ProjectConfig
from cookbook.errors import FileSystemError
from cookbook.version.resolver import ResolvedVersions

# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

COMMON_CATEGORY = "common"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")

_RENAMED_FILES = {"gitignore": ".gitignore"}


def build_context(
    config: ProjectConfig, versions: ResolvedVersions | None = None
) -> dict[str, Any]:
    """Assemble the template context for *config*.

    Every resolved dependency ``name`` is exposed as ``<name>_version`` in
    addition to the full ``versions`` mapping.
    """
    resolved = versions.as_dict() if versions is not None else {}
    context: dict[str, Any] = {
        "slug": config.slug,
        "slug_underscore": config.slug.replace("-", "_"),
        "title": config.title,
        "description": config.description,
        "pathway": config.pathway.value,
        "recipe_type": config.recipe_type.value,
        "content_type": config.content_type.value if config.content_type else None,
        "difficulty": config.difficulty.value if config.difficulty else None,
        "needs_node": config.needs_node,
        "versions": resolved,
    }
    for name, value in resolved.items():
        context[f"{name}_version"] = value
    return context


def placeholder_values(context: dict[str, Any]) -> dict[str, str]:
    """String-valued entries of *context*, usable as ``{{token}}`` replacements."""
    return {key: value for key, value in context.items() if isinstance(value, str)}


def substitute_placeholders(text: str, values: dict[str, str]) -> str:
    """Replace ``{{name}}`` / ``{{ name }}`` tokens whose name is in *values*.

    Unknown tokens are left as they are.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        return values[name] if name in values else match.group(0)

    return _PLACEHOLDER_RE.sub(_replace, text)


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders a template category (and the common tree) into a directory."""

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
        )
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render the Jinja2 template at *template_path* (relative to the root)."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    # -- Tree planning -----------------------------------------------------

    def has_category(self, category: str) -> bool:
        return (self.template_dir / category).is_dir()

    def output_path(self, relative: Path, values: dict[str, str]) -> Path:
        """Map a template path (relative to its category) to its output path.

        Placeholders are substituted per segment, ``.j2`` is stripped and
        renamed files (``gitignore``) get their real name.
        """
        parts = [substitute_placeholders(part, values) for part in relative.parts]
        name = parts[-1]
        if name.endswith(".j2"):
            name = name[: -len(".j2")]
        parts[-1] = _RENAMED_FILES.get(name, name)
        return Path(*parts)

    def plan_tree(
        self, categories: list[str], context: dict[str, Any]
    ) -> list[tuple[Path, Path]]:
        """Return ``(source, relative_output)`` pairs for *categories*.

        Later categories win when two templates map to the same output path.

        Raises:
            FileSystemError: If a category directory does not exist.
        """
        values = placeholder_values(context)
        planned: dict[Path, Path] = {}
        for category in categories:
            category_dir = self.template_dir / category
            if not category_dir.is_dir():
                raise FileSystemError(
                    f"Template directory for '{category}' not found", path=category_dir
                )
            for source in sorted(category_dir.rglob("*")):
                if not source.is_file():
                    continue
                relative = self.output_path(source.relative_to(category_dir), values)
                planned[relative] = source
        return [(source, relative) for relative, source in planned.items()]

    # -- File-based rendering (async) --------------------------------------

    async def render_file(
        self, source: Path, output_file: Path, context: dict[str, Any]
    ) -> Path:
        """Render or copy a single template file to *output_file*.

        Raises:
            FileSystemError: If reading, rendering or writing fails.
        """
        try:
            if source.suffix == ".j2":
                template_key = PurePosixPath(*source.relative_to(self.template_dir).parts)
                content = self.render(str(template_key), context)
                await asyncio.to_thread(_write_file, output_file, content)
                await asyncio.to_thread(shutil.copymode, source, output_file)
            else:
                await asyncio.to_thread(
                    _copy_with_placeholders, source, output_file, placeholder_values(context)
                )
        except TemplateError as exc:
            raise FileSystemError(f"Failed to render template ({exc})", path=source) from exc
        except OSError as exc:
            raise FileSystemError(
                f"Failed to write {output_file.name} ({exc.strerror or exc})", path=output_file
            ) from exc
        return output_file

    async def render_tree(
        self,
        categories: list[str],
        output_dir: str | Path,
        context: dict[str, Any],
    ) -> list[Path]:
        """Render every template under *categories* into *output_dir*.

        Directory structure is preserved: ``pallets/{{slug}}/src/lib.rs``
        rendered for slug ``my-recipe`` lands at
        ``<output_dir>/pallets/my-recipe/src/lib.rs``.

        Returns:
            The written file paths.
        """
        out_base = Path(output_dir)
        written: list[Path] = []
        for source, relative in self.plan_tree(categories, context):
            path = await self.render_file(source, out_base / relative, context)
            written.append(path)
        return written


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word.capitalize() for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _copy_with_placeholders(source: Path, dest: Path, values: dict[str, str]) -> None:
    """Copy *source* to *dest*, substituting placeholders in UTF-8 text files."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    raw = source.read_bytes()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        shutil.copyfile(source, dest)
    else:
        dest.write_text(substitute_placeholders(text, values), encoding="utf-8")
    shutil.copymode(source, dest)
