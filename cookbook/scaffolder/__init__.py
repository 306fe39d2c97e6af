"""Recipe scaffolder -- creates new recipe directories from templates.

Quick usage::

    from cookbook.config import ProjectConfig, RecipePathway
    from cookbook.scaffolder import RecipeScaffolder

    config = ProjectConfig(
        slug="my-pallet",
        title="My Pallet",
        pathway=RecipePathway.RUNTIME,
    )
    info = await RecipeScaffolder().create_project(config)
"""

from cookbook.scaffolder.bootstrap import Bootstrap
from cookbook.scaffolder.generator import RecipeScaffolder
from cookbook.scaffolder.templates import (
    TemplateRenderer,
    build_context,
    substitute_placeholders,
)

__all__ = [
    "Bootstrap",
    "RecipeScaffolder",
    "TemplateRenderer",
    "build_context",
    "substitute_placeholders",
]
