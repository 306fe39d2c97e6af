"""Dependency version management.

Global pins live in ``versions.yml`` at the repository root; a recipe may
override any of them (or add new ones) in ``recipes/<slug>/versions.yml``.

Quick usage::

    from cookbook.version import resolve

    resolved = await resolve(".", "my-recipe")
    resolved.lookup("rust")  # ResolvedVersion(value="1.86", source=VersionSource.GLOBAL)
"""

from cookbook.version.loader import (
    VersionSet,
    load_global,
    load_recipe,
    load_yaml_tree,
    load_yaml_tree_async,
    parse_yaml_tree,
)
from cookbook.version.resolver import (
    KNOWN_VERSION_KEYS,
    ResolvedVersion,
    ResolvedVersions,
    VersionSource,
    merge,
    resolve,
)

__all__ = [
    "KNOWN_VERSION_KEYS",
    "ResolvedVersion",
    "ResolvedVersions",
    "VersionSet",
    "VersionSource",
    "load_global",
    "load_recipe",
    "load_yaml_tree",
    "load_yaml_tree_async",
    "merge",
    "parse_yaml_tree",
    "resolve",
]
