"""Merging of global and recipe version sets.

The recipe set overrides the global set on a per-key basis. Every resolved
key remembers where its value came from so the CLI can show provenance and
CI can tell which pins are recipe specific.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from cookbook.config import Config
from cookbook.version.loader import VersionSet, load_global, load_recipe

KNOWN_VERSION_KEYS: tuple[str, ...] = (
    "rust",
    "polkadot_omni_node",
    "chain_spec_builder",
    "frame_omni_bencher",
)


class VersionSource(str, Enum):
    """Where a resolved version came from."""

    GLOBAL = "global"
    RECIPE = "recipe"


class ResolvedVersion(NamedTuple):
    value: str
    source: VersionSource


@dataclass
class ResolvedVersions:
    """Merged view of the global and recipe version sets.

    ``versions`` and ``sources`` always share the same keys. Ordering follows
    the global file, then keys only the recipe defines.
    """

    versions: dict[str, str] = field(default_factory=dict)
    sources: dict[str, VersionSource] = field(default_factory=dict)
    global_schema_version: str | None = None
    recipe_schema_version: str | None = None

    # -- Lookup ------------------------------------------------------------

    def get(self, key: str) -> str | None:
        return self.versions.get(key)

    def get_source(self, key: str) -> VersionSource | None:
        return self.sources.get(key)

    def lookup(self, key: str) -> ResolvedVersion | None:
        """Return ``(value, source)`` for *key*, or ``None`` if neither set has it."""
        if key not in self.versions:
            return None
        return ResolvedVersion(self.versions[key], self.sources[key])

    def contains(self, key: str) -> bool:
        return key in self.versions

    def dependencies(self) -> list[str]:
        return list(self.versions)

    def __len__(self) -> int:
        return len(self.versions)

    def __iter__(self) -> Iterator[tuple[str, ResolvedVersion]]:
        for key, value in self.versions.items():
            yield key, ResolvedVersion(value, self.sources[key])

    # -- Views -------------------------------------------------------------

    def as_dict(self) -> dict[str, str]:
        return dict(self.versions)

    def to_env(self) -> list[str]:
        """Render ``NAME=value`` lines with upper-cased names, for CI."""
        return [f"{name.upper()}={value}" for name, value in self.versions.items()]

    def unknown_keys(self, known: Iterable[str] = KNOWN_VERSION_KEYS) -> list[str]:
        known_set = set(known)
        return [key for key in self.versions if key not in known_set]

    @property
    def schema_mismatch(self) -> bool:
        """True when both files declare a schema version and they differ.

        A mismatch is informational only and never fails resolution.
        """
        return (
            self.global_schema_version is not None
            and self.recipe_schema_version is not None
            and self.global_schema_version != self.recipe_schema_version
        )


def merge(global_set: VersionSet, recipe_set: VersionSet | None = None) -> ResolvedVersions:
    """Merge *recipe_set* over *global_set*.

    Pure: both inputs are values, nothing is read from disk.

    Example::

        merge(VersionSet(versions={"rust": "1.86", "polkadot_omni_node": "0.5.0"}),
              VersionSet(versions={"polkadot_omni_node": "0.6.0"}))
        # rust -> 1.86 (global), polkadot_omni_node -> 0.6.0 (recipe)
    """
    resolved = ResolvedVersions(global_schema_version=global_set.schema_version)

    for key, value in global_set.versions.items():
        resolved.versions[key] = value
        resolved.sources[key] = VersionSource.GLOBAL

    if recipe_set is not None:
        resolved.recipe_schema_version = recipe_set.schema_version
        for key, value in recipe_set.versions.items():
            resolved.versions[key] = value
            resolved.sources[key] = VersionSource.RECIPE

    return resolved


async def resolve(
    root: str | Path,
    recipe_slug: str | None = None,
    config: Config | None = None,
) -> ResolvedVersions:
    """Load the global set under *root*, the recipe override if any, and merge.

    Raises:
        ParseError: If a version file is malformed or the global file is absent.
        ConfigError: If the global file lacks ``versions``.
    """
    global_set = await load_global(root, config)
    recipe_set = await load_recipe(root, recipe_slug, config) if recipe_slug else None
    return merge(global_set, recipe_set)
