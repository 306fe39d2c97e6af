"""Shared pytest fixtures for the cookbook test suite.

Provides reusable fixtures for:
- Temporary cookbook repository roots (recipes/ + versions.yml)
- A real temporary git repository
- Mock subprocess helpers
- Minimal template trees for scaffolder tests
"""

from __future__ import annotations

import subprocess
import textwrap
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from cookbook.config import Config, ProjectConfig

GLOBAL_VERSIONS_YML = textwrap.dedent(
    """\
    # Global dependency versions
    versions:
      rust: "1.86"
      polkadot_omni_node: "0.5.0"
      chain_spec_builder: "10.0.0"
      frame_omni_bencher: "0.13.0"

    metadata:
      schema_version: "1.0"
    """
)


def _git(repo: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True)


# ---------------------------------------------------------------------------
# Repository roots
# ---------------------------------------------------------------------------


@pytest.fixture
def cookbook_root(tmp_path: Path) -> Path:
    """Temporary repository root with ``recipes/`` and a global versions.yml."""
    root = tmp_path / "cookbook"
    (root / "recipes").mkdir(parents=True)
    (root / "versions.yml").write_text(GLOBAL_VERSIONS_YML, encoding="utf-8")
    yield root


@pytest.fixture
def write_recipe_versions(cookbook_root: Path):
    """Factory writing ``recipes/<slug>/versions.yml`` under ``cookbook_root``.

    Usage:
        def test_override(write_recipe_versions):
            write_recipe_versions("my-recipe", 'versions:\\n  rust: "1.88"\\n')
    """

    def factory(slug: str, content: str) -> Path:
        recipe_dir = cookbook_root / "recipes" / slug
        recipe_dir.mkdir(parents=True, exist_ok=True)
        path = recipe_dir / "versions.yml"
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return factory


@pytest.fixture
def settings(cookbook_root: Path) -> Config:
    return Config(repo_root=cookbook_root)


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Temporary git repository with an initial commit.

    Creates a real git repo laid out like the cookbook (``recipes/`` and
    ``versions.yml``) so branch and commit operations have something to work on.
    """
    repo_dir = tmp_path / "test-repo"
    repo_dir.mkdir()
    _git(repo_dir, "init")
    _git(repo_dir, "config", "user.email", "test@cookbook.local")
    _git(repo_dir, "config", "user.name", "Cookbook Test")
    _git(repo_dir, "config", "commit.gpgsign", "false")
    (repo_dir / "recipes").mkdir()
    (repo_dir / "recipes" / "README.md").write_text("# Recipes\n", encoding="utf-8")
    (repo_dir / "versions.yml").write_text(GLOBAL_VERSIONS_YML, encoding="utf-8")
    _git(repo_dir, "add", ".")
    _git(repo_dir, "commit", "-m", "Initial commit")
    yield repo_dir


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Minimal template tree with a ``common`` and a ``runtime`` category."""
    root = tmp_path / "templates"
    common = root / "common"
    common.mkdir(parents=True)
    (common / "README.md.j2").write_text(
        "# {{ title }}\n\n{{ description }}\n", encoding="utf-8"
    )
    (common / "gitignore").write_text("node_modules/\n", encoding="utf-8")

    runtime = root / "runtime"
    (runtime / "pallets" / "{{slug}}" / "src").mkdir(parents=True)
    (runtime / "pallets" / "{{slug}}" / "src" / "lib.rs").write_text(
        "//! {{title}}\npub const NAME: &str = \"{{slug}}\";\n", encoding="utf-8"
    )
    (runtime / "rust-toolchain.toml").write_text(
        '[toolchain]\nchannel = "{{rust_version}}"\n', encoding="utf-8"
    )
    (runtime / "logo.bin").write_bytes(b"\x89PNG\xff\xfe{{slug}}\x00")
    yield root


@pytest.fixture
def project_config(tmp_path: Path) -> ProjectConfig:
    """Scaffold request for ``my-recipe`` with git and npm disabled."""
    return ProjectConfig(
        slug="my-recipe",
        title="My Recipe",
        destination=tmp_path / "recipes",
        git_init=False,
        skip_install=True,
    )


# ---------------------------------------------------------------------------
# Mock subprocess helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """

    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
