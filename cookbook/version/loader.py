"""Loading of ``versions.yml`` files.

``load_yaml_tree`` turns a restricted YAML document (nested ``key: value``
mappings, quoted or unquoted scalars, comments) into a tree of strings.
``yaml.BaseLoader`` is used so scalars are never coerced: ``rust: 1.10`` stays
``"1.10"`` rather than becoming the float ``1.1``.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import BaseModel, Field

from cookbook.config import Config
from cookbook.errors import ConfigError, ParseError

YamlTree = dict[str, Union[str, "YamlTree"]]


class VersionSet(BaseModel):
    """Dependency name -> version string, as read from one ``versions.yml``."""

    versions: dict[str, str] = Field(default_factory=dict)
    schema_version: str | None = None
    path: Path | None = Field(default=None, description="File the set was read from")

    def __len__(self) -> int:
        return len(self.versions)

    def __contains__(self, key: object) -> bool:
        return key in self.versions

    def get(self, key: str) -> str | None:
        return self.versions.get(key)


# ---------------------------------------------------------------------------
# YAML tree
# ---------------------------------------------------------------------------


def parse_yaml_tree(text: str, path: str | Path | None = None) -> YamlTree:
    """Parse YAML *text* into a nested ``{str: str | dict}`` mapping.

    Raises:
        ParseError: On malformed YAML, sequences, or a non-mapping document.
    """
    try:
        data = yaml.load(text, Loader=yaml.BaseLoader)
    except yaml.MarkedYAMLError as exc:
        mark = exc.problem_mark or exc.context_mark
        line = mark.line + 1 if mark is not None else None
        raise ParseError(
            f"Malformed YAML: {exc.problem or exc.context}", path=path, line=line
        ) from exc
    except yaml.YAMLError as exc:
        raise ParseError(f"Malformed YAML: {exc}", path=path) from exc

    if data is None or data == "":
        return {}
    if not isinstance(data, dict):
        raise ParseError("Top level of the document must be a mapping", path=path)
    return _check_tree(data, path, trail=())


def _check_tree(node: dict[str, Any], path: str | Path | None, trail: tuple[str, ...]) -> YamlTree:
    tree: YamlTree = {}
    for key, value in node.items():
        where = ".".join(trail + (key,))
        if isinstance(value, dict):
            tree[key] = _check_tree(value, path, trail + (key,))
        elif isinstance(value, list):
            raise ParseError(f"Sequences are not supported (at '{where}')", path=path)
        else:
            tree[key] = value
    return tree


def load_yaml_tree(path: str | Path) -> YamlTree:
    """Read and parse the YAML tree at *path*.

    Raises:
        ParseError: If the file is absent, unreadable or malformed.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise ParseError("File not found", path=file_path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"Could not read file: {exc}", path=file_path) from exc
    return parse_yaml_tree(text, path=file_path)


async def load_yaml_tree_async(path: str | Path) -> YamlTree:
    """Off-loop variant of :func:`load_yaml_tree`."""
    return await asyncio.to_thread(load_yaml_tree, path)


# ---------------------------------------------------------------------------
# Version sets
# ---------------------------------------------------------------------------


def version_set_from_tree(
    tree: YamlTree,
    path: str | Path | None = None,
    *,
    require_versions: bool = True,
) -> VersionSet:
    """Build a :class:`VersionSet` from a parsed tree.

    Raises:
        ConfigError: If ``versions`` is missing (when required) or ill-typed.
    """
    if "versions" not in tree:
        if require_versions:
            raise ConfigError(
                "Missing required key 'versions'",
                key="versions",
                path=path,
            )
        raw_versions: Any = {}
    else:
        raw_versions = tree["versions"]

    # ``versions:`` with every entry commented out parses as an empty scalar.
    if raw_versions == "":
        raw_versions = {}
    if not isinstance(raw_versions, dict):
        raise ConfigError(
            "'versions' must be a mapping of dependency name to version",
            key="versions",
            path=path,
        )

    versions: dict[str, str] = {}
    for name, value in raw_versions.items():
        if isinstance(value, dict):
            raise ConfigError(
                f"Version for '{name}' must be a string, not a mapping",
                key=f"versions.{name}",
                path=path,
            )
        versions[name] = value

    schema_version: str | None = None
    metadata = tree.get("metadata")
    if isinstance(metadata, dict) and "schema_version" in metadata:
        value = metadata["schema_version"]
        if isinstance(value, dict):
            raise ConfigError(
                "'metadata.schema_version' must be a string",
                key="metadata.schema_version",
                path=path,
            )
        schema_version = value or None

    return VersionSet(
        versions=versions,
        schema_version=schema_version,
        path=Path(path) if path is not None else None,
    )


async def load_global(root: str | Path, config: Config | None = None) -> VersionSet:
    """Load the repository-wide ``versions.yml`` under *root*.

    Raises:
        ParseError: If the file is absent or malformed.
        ConfigError: If ``versions`` is missing or ill-typed.
    """
    cfg = config or Config(repo_root=Path(root))
    path = Path(root) / cfg.versions_file
    tree = await load_yaml_tree_async(path)
    return version_set_from_tree(tree, path)


async def load_recipe(
    root: str | Path, recipe_slug: str, config: Config | None = None
) -> VersionSet:
    """Load a recipe's ``versions.yml`` override.

    A recipe without an override file yields an empty set.
    """
    cfg = config or Config(repo_root=Path(root))
    path = Path(root) / cfg.recipes_dir / recipe_slug / cfg.versions_file
    if not path.exists():
        return VersionSet()
    tree = await load_yaml_tree_async(path)
    return version_set_from_tree(tree, path, require_versions=False)
