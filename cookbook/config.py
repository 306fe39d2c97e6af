"""Cookbook configuration and recipe metadata models.

Centralised, typed configuration for the toolkit. Settings, scaffold requests
and recipe metadata are Pydantic v2 models so they are validated at
construction time and serialise to and from YAML or environment variables
without boiler-plate.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from cookbook.errors import ValidationError

RECIPES_DIR = "recipes"
VERSIONS_FILE = "versions.yml"
RECIPE_CONFIG_FILE = "recipe.config.yml"
DEFAULT_DESCRIPTION = "Replace with a short description."

_SLUG_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


# ---------------------------------------------------------------------------
# Recipe classification
# ---------------------------------------------------------------------------


class RecipePathway(str, Enum):
    """High-level category of a recipe. Selects the template directory."""

    RUNTIME = "runtime"
    CONTRACTS = "contracts"
    BASIC_INTERACTION = "basic-interaction"
    XCM = "xcm"
    TESTING = "testing"


class RecipeType(str, Enum):
    """Technology stack of a recipe, written to ``recipe.config.yml``."""

    POLKADOT_SDK = "polkadot-sdk"
    SOLIDITY = "solidity"
    XCM = "xcm"
    BASIC_INTERACTION = "basic-interaction"
    TESTING = "testing"


class ContentType(str, Enum):
    TUTORIAL = "tutorial"
    GUIDE = "guide"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


PATHWAY_RECIPE_TYPES: dict[RecipePathway, RecipeType] = {
    RecipePathway.RUNTIME: RecipeType.POLKADOT_SDK,
    RecipePathway.CONTRACTS: RecipeType.SOLIDITY,
    RecipePathway.BASIC_INTERACTION: RecipeType.BASIC_INTERACTION,
    RecipePathway.XCM: RecipeType.XCM,
    RecipePathway.TESTING: RecipeType.TESTING,
}

_E = TypeVar("_E", bound=Enum)


def parse_choice(enum_cls: type[_E], value: str) -> _E:
    """Parse *value* into a member of *enum_cls*.

    Raises:
        ValidationError: If *value* is not one of the enum's values.
    """
    normalised = value.strip().lower()
    for member in enum_cls:
        if member.value == normalised:
            return member
    choices = ", ".join(m.value for m in enum_cls)
    raise ValidationError(
        f"Invalid {enum_cls.__name__} '{value}'. Expected one of: {choices}",
        value=value,
    )


# ---------------------------------------------------------------------------
# Slug / title helpers
# ---------------------------------------------------------------------------


def validate_slug(slug: str) -> None:
    """Check that *slug* is lowercase alphanumerics separated by single dashes.

    Examples::

        validate_slug("my-recipe")     # ok
        validate_slug("My-Recipe")     # ValidationError
        validate_slug("my--recipe")    # ValidationError
    """
    if not _SLUG_RE.match(slug):
        raise ValidationError(
            f"Invalid slug format: '{slug}'. Slug must be lowercase, "
            "with words separated by dashes.",
            value=slug,
        )


def is_valid_slug(slug: str) -> bool:
    return bool(_SLUG_RE.match(slug))


def validate_title(title: str) -> None:
    """Reject empty titles and titles shorter than three characters."""
    if len(title.strip()) < 3:
        raise ValidationError(
            "Recipe title is too short. Use a descriptive name (minimum 3 characters).",
            value=title,
        )


def slug_to_title(slug: str) -> str:
    """Convert ``"zero-to-hero"`` to ``"Zero To Hero"``."""
    return " ".join(word[:1].upper() + word[1:] for word in slug.split("-"))


def title_to_slug(title: str) -> str:
    """Convert a free-form title to a slug.

    Spaces and underscores become dashes, anything outside ``[a-z0-9-]`` is
    dropped and runs of dashes collapse::

        title_to_slug("NFT Pallet with Minting") -> "nft-pallet-with-minting"
        title_to_slug("  XCM: Teleport_Assets ") -> "xcm-teleport-assets"
    """
    lowered = re.sub(r"[ _]", "-", title.lower())
    kept = re.sub(r"[^a-z0-9-]", "", lowered)
    return "-".join(part for part in kept.split("-") if part)


# ---------------------------------------------------------------------------
# Global settings
# ---------------------------------------------------------------------------


class Config(BaseModel):
    """Toolkit settings.

    Holds the repository layout and tuneables. Instances are created once by
    the CLI entry point (usually through :meth:`from_env`) and passed to the
    resolver, scaffolder and git helper.
    """

    repo_root: Path = Field(default=Path("."))
    recipes_dir: str = Field(default=RECIPES_DIR)
    versions_file: str = Field(default=VERSIONS_FILE)
    recipe_config_file: str = Field(default=RECIPE_CONFIG_FILE)
    template_dir: Path | None = Field(
        default=None, description="Override for the bundled template directory"
    )
    branch_prefix: str = Field(default="feat/")
    git_timeout: int = Field(default=60, ge=1, description="Per git command timeout in seconds")
    install_timeout: int = Field(
        default=600, ge=10, description="Dependency install timeout in seconds"
    )
    npm_command: str = Field(default="npm")

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def recipes_path(self) -> Path:
        """Directory holding every recipe."""
        return self.repo_root / self.recipes_dir

    @property
    def global_versions_path(self) -> Path:
        return self.repo_root / self.versions_file

    def recipe_path(self, slug: str) -> Path:
        return self.recipes_path / slug

    def recipe_versions_path(self, slug: str) -> Path:
        """Path of the optional per-recipe ``versions.yml`` override."""
        return self.recipe_path(slug) / self.versions_file

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            COOKBOOK_ROOT, COOKBOOK_RECIPES_DIR, COOKBOOK_TEMPLATE_DIR,
            COOKBOOK_BRANCH_PREFIX, COOKBOOK_GIT_TIMEOUT,
            COOKBOOK_INSTALL_TIMEOUT.

        Keyword *overrides* win over the environment (the CLI passes its
        ``--root`` flag this way).
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("COOKBOOK_ROOT"):
            kwargs["repo_root"] = Path(os.environ["COOKBOOK_ROOT"])
        if os.environ.get("COOKBOOK_RECIPES_DIR"):
            kwargs["recipes_dir"] = os.environ["COOKBOOK_RECIPES_DIR"]
        if os.environ.get("COOKBOOK_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["COOKBOOK_TEMPLATE_DIR"])
        if os.environ.get("COOKBOOK_BRANCH_PREFIX"):
            kwargs["branch_prefix"] = os.environ["COOKBOOK_BRANCH_PREFIX"]
        if os.environ.get("COOKBOOK_GIT_TIMEOUT"):
            kwargs["git_timeout"] = int(os.environ["COOKBOOK_GIT_TIMEOUT"])
        if os.environ.get("COOKBOOK_INSTALL_TIMEOUT"):
            kwargs["install_timeout"] = int(os.environ["COOKBOOK_INSTALL_TIMEOUT"])
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)


def validate_working_directory(config: Config) -> None:
    """Ensure *config.repo_root* looks like the cookbook repository root.

    Raises:
        ValidationError: If the recipes directory or global versions file is
            missing.
    """
    if not config.recipes_path.is_dir():
        raise ValidationError(
            f"This must be run from the repository root! Expected a "
            f"'{config.recipes_dir}/' directory in {config.repo_root.resolve()}."
        )
    if not config.global_versions_path.is_file():
        raise ValidationError(
            f"{config.versions_file} not found in {config.repo_root.resolve()}. "
            "Are you in the correct repository?"
        )


# ---------------------------------------------------------------------------
# Scaffold request / result
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """Immutable description of a recipe to scaffold.

    ``title`` defaults to the title-cased slug when omitted.
    """

    model_config = ConfigDict(frozen=True)

    slug: str = Field(..., description="Path-safe recipe identifier")
    title: str = Field(default="")
    description: str = Field(default=DEFAULT_DESCRIPTION)
    destination: Path = Field(default=Path(RECIPES_DIR))
    repo_root: Path = Field(default=Path("."), description="Git working tree for branch ops")
    git_init: bool = Field(default=True, description="Create a feat/<slug> branch")
    git_commit: bool = Field(default=False, description="Commit the scaffolded recipe")
    skip_install: bool = Field(default=False)
    pathway: RecipePathway = Field(default=RecipePathway.RUNTIME)
    content_type: ContentType | None = None
    difficulty: Difficulty | None = None
    needs_node: bool = Field(default=True)

    @model_validator(mode="before")
    @classmethod
    def _default_title(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("title") and data.get("slug"):
            data = {**data, "title": slug_to_title(str(data["slug"]))}
        return data

    @property
    def project_path(self) -> Path:
        return self.destination / self.slug

    @property
    def recipe_type(self) -> RecipeType:
        return PATHWAY_RECIPE_TYPES[self.pathway]

    @property
    def template_category(self) -> str:
        """Name of the template directory used for this recipe."""
        return self.pathway.value


def validate_project_config(config: ProjectConfig) -> list[str]:
    """Validate a scaffold request and return non-fatal warnings.

    Raises:
        ValidationError: On a malformed slug or title.
    """
    validate_slug(config.slug)
    validate_title(config.title)

    warnings: list[str] = []
    if not config.destination.exists():
        warnings.append(
            f"Destination directory '{config.destination}' does not exist and will be created"
        )
    return warnings


@dataclass
class ProjectInfo:
    """Result of a successful scaffold."""

    slug: str
    title: str
    project_path: Path
    git_branch: str | None = None
    files: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# recipe.config.yml
# ---------------------------------------------------------------------------


class RecipeConfig(BaseModel):
    """Recipe metadata stored in ``recipe.config.yml``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    slug: str
    pathway: RecipePathway | None = None
    content_type: ContentType | None = None
    difficulty: Difficulty | None = None
    needs_node: bool = False
    description: str = DEFAULT_DESCRIPTION
    recipe_type: RecipeType = Field(alias="type")

    @classmethod
    def from_project(cls, config: ProjectConfig) -> "RecipeConfig":
        return cls(
            name=config.title,
            slug=config.slug,
            pathway=config.pathway,
            content_type=config.content_type,
            difficulty=config.difficulty,
            needs_node=config.needs_node,
            description=config.description,
            recipe_type=config.recipe_type,
        )

    def to_yaml(self) -> str:
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)

    @classmethod
    def from_yaml(cls, text: str) -> "RecipeConfig":
        return cls.model_validate(yaml.safe_load(text) or {})

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_yaml(), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "RecipeConfig":
        return cls.from_yaml(Path(path).read_text(encoding="utf-8"))
