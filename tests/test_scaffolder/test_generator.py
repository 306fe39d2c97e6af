"""Unit tests for the recipe scaffolder (cookbook.scaffolder.generator).

Tests cover:
- create_project: files written, placeholder substitution, recipe.config.yml
- Occupied destinations (non-empty dir, file) are rejected untouched
- Empty target directories are replaced
- Atomic staging: failures and interrupts leave no partial tree and no staging dir
- Relative destinations resolve to absolute paths
- Recipe root permissions follow the umask
- Validation before any write
- Dry-run planning
- Git branch creation (warning on failure) and optional commit (mocked)
- npm bootstrap trigger (mocked)
"""

from __future__ import annotations

import asyncio
import os
import stat
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from cookbook.config import Config, ProjectConfig, RecipeConfig, RecipePathway
from cookbook.errors import BootstrapError, FileSystemError, GitError, ValidationError
from cookbook.scaffolder.generator import RecipeScaffolder
from cookbook.version import VersionSet, merge

pytestmark = pytest.mark.unit


@pytest.fixture
def scaffolder(template_dir: Path) -> RecipeScaffolder:
    return RecipeScaffolder(Config(template_dir=template_dir))


@pytest.fixture
def versions():
    return merge(VersionSet(versions={"rust": "1.86"}))


def _leftovers(destination: Path) -> list[str]:
    return sorted(p.name for p in destination.iterdir())


# ---------------------------------------------------------------------------
# create_project
# ---------------------------------------------------------------------------


class TestCreateProject:
    @pytest.mark.asyncio
    async def test_creates_tree(self, scaffolder, project_config, versions):
        info = await scaffolder.create_project(project_config, versions)

        root = (project_config.destination / "my-recipe").resolve()
        assert info.project_path == root
        assert info.slug == "my-recipe"
        assert info.title == "My Recipe"
        assert info.git_branch is None
        assert (root / "README.md").read_text() == "# My Recipe\n\nReplace with a short description.\n"
        assert (root / ".gitignore").exists()
        assert (root / "pallets" / "my-recipe" / "src" / "lib.rs").exists()
        assert (root / "rust-toolchain.toml").read_text() == '[toolchain]\nchannel = "1.86"\n'

    @pytest.mark.asyncio
    async def test_files_list_matches_disk(self, scaffolder, project_config, versions):
        info = await scaffolder.create_project(project_config, versions)
        on_disk = sorted(p for p in info.project_path.rglob("*") if p.is_file())
        assert info.files == on_disk

    @pytest.mark.asyncio
    async def test_slug_substituted_everywhere(self, scaffolder, project_config, versions):
        info = await scaffolder.create_project(project_config, versions)
        for path in info.files:
            assert "{{slug}}" not in str(path)
            if path.suffix in {".rs", ".md", ".toml"}:
                assert "{{slug}}" not in path.read_text()

    @pytest.mark.asyncio
    async def test_recipe_config_written(self, scaffolder, project_config):
        info = await scaffolder.create_project(project_config)
        rc = RecipeConfig.load(info.project_path / "recipe.config.yml")
        assert rc.slug == "my-recipe"
        assert rc.name == "My Recipe"
        assert rc.pathway is RecipePathway.RUNTIME
        assert rc.recipe_type.value == "polkadot-sdk"

    @pytest.mark.asyncio
    async def test_missing_destination_created_with_warning(self, scaffolder, tmp_path):
        config = ProjectConfig(
            slug="my-recipe",
            destination=tmp_path / "a" / "b",
            git_init=False,
            skip_install=True,
        )
        info = await scaffolder.create_project(config)
        assert info.project_path.is_dir()
        assert any("does not exist" in w for w in info.warnings)

    @pytest.mark.asyncio
    async def test_no_staging_dir_left_behind(self, scaffolder, project_config):
        await scaffolder.create_project(project_config)
        assert _leftovers(project_config.destination) == ["my-recipe"]


# ---------------------------------------------------------------------------
# Destination handling
# ---------------------------------------------------------------------------


class TestDestination:
    @pytest.mark.asyncio
    async def test_non_empty_target_rejected_untouched(self, scaffolder, project_config):
        target = project_config.destination / "my-recipe"
        target.mkdir(parents=True)
        (target / "notes.txt").write_text("keep me", encoding="utf-8")

        with pytest.raises(FileSystemError, match="already exists") as exc_info:
            await scaffolder.create_project(project_config)

        assert exc_info.value.path == target.resolve()
        assert _leftovers(target) == ["notes.txt"]
        assert (target / "notes.txt").read_text() == "keep me"
        assert _leftovers(project_config.destination) == ["my-recipe"]

    @pytest.mark.asyncio
    async def test_target_is_a_file(self, scaffolder, project_config):
        project_config.destination.mkdir(parents=True)
        (project_config.destination / "my-recipe").write_text("file", encoding="utf-8")
        with pytest.raises(FileSystemError, match="not a directory"):
            await scaffolder.create_project(project_config)

    @pytest.mark.asyncio
    async def test_empty_target_replaced(self, scaffolder, project_config):
        target = project_config.destination / "my-recipe"
        target.mkdir(parents=True)
        info = await scaffolder.create_project(project_config)
        assert (info.project_path / "README.md").exists()

    @pytest.mark.asyncio
    async def test_relative_destination_gives_absolute_paths(self, scaffolder, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = ProjectConfig(slug="my-recipe", git_init=False, skip_install=True)

        info = await scaffolder.create_project(config)

        assert info.project_path.is_absolute()
        assert info.project_path == (tmp_path / "recipes" / "my-recipe").resolve()
        assert info.files
        assert all(path.is_absolute() and path.is_file() for path in info.files)

    @pytest.mark.asyncio
    async def test_relative_destination_dry_run(self, scaffolder, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = ProjectConfig(slug="my-recipe", git_init=False, skip_install=True)

        info = await scaffolder.create_project(config, dry_run=True)

        assert info.project_path.is_absolute()
        assert all(path.is_absolute() for path in info.files)
        assert not (tmp_path / "recipes").exists()


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


class TestPermissions:
    @pytest.mark.asyncio
    async def test_recipe_dir_mode_follows_umask(self, scaffolder, project_config):
        previous = os.umask(0o022)
        try:
            info = await scaffolder.create_project(project_config)
        finally:
            os.umask(previous)

        root_mode = stat.S_IMODE(info.project_path.stat().st_mode)
        subdir_mode = stat.S_IMODE((info.project_path / "pallets").stat().st_mode)
        assert root_mode == 0o755
        assert root_mode == subdir_mode

    @pytest.mark.asyncio
    async def test_executable_template_stays_executable(self, template_dir, project_config):
        script = template_dir / "runtime" / "scripts" / "run.sh"
        script.parent.mkdir()
        script.write_text("#!/bin/sh\necho {{slug}}\n", encoding="utf-8")
        script.chmod(0o755)
        scaffolder = RecipeScaffolder(Config(template_dir=template_dir))

        info = await scaffolder.create_project(project_config)

        out = info.project_path / "scripts" / "run.sh"
        assert out.read_text() == "#!/bin/sh\necho my-recipe\n"
        assert out.stat().st_mode & stat.S_IXUSR
        assert not (info.project_path / "README.md").stat().st_mode & stat.S_IXUSR


# ---------------------------------------------------------------------------
# Atomicity
# ---------------------------------------------------------------------------


class TestAtomicity:
    @pytest.mark.asyncio
    async def test_render_failure_leaves_nothing(self, template_dir, project_config):
        (template_dir / "runtime" / "zz-broken.txt.j2").write_text("{% endfor %}\n", encoding="utf-8")
        scaffolder = RecipeScaffolder(Config(template_dir=template_dir))

        with pytest.raises(FileSystemError):
            await scaffolder.create_project(project_config)

        assert not (project_config.destination / "my-recipe").exists()
        assert _leftovers(project_config.destination) == []

    @pytest.mark.asyncio
    async def test_missing_category_leaves_nothing(self, template_dir, tmp_path):
        scaffolder = RecipeScaffolder(Config(template_dir=template_dir))
        config = ProjectConfig(
            slug="my-recipe",
            destination=tmp_path / "recipes",
            pathway=RecipePathway.XCM,
            git_init=False,
            skip_install=True,
        )
        (tmp_path / "recipes").mkdir()
        with pytest.raises(FileSystemError, match="Template directory"):
            await scaffolder.create_project(config)
        assert _leftovers(tmp_path / "recipes") == []

    @pytest.mark.asyncio
    async def test_move_failure_cleans_staging(self, scaffolder, project_config):
        with patch("pathlib.Path.rename", side_effect=OSError(18, "Invalid cross-device link")):
            with pytest.raises(FileSystemError, match="Failed to move recipe into place"):
                await scaffolder.create_project(project_config)
        assert _leftovers(project_config.destination) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("interrupt", [asyncio.CancelledError, KeyboardInterrupt])
    async def test_interrupted_render_cleans_staging(self, scaffolder, project_config, interrupt):
        with patch.object(scaffolder.renderer, "render_tree", AsyncMock(side_effect=interrupt)):
            with pytest.raises(interrupt):
                await scaffolder.create_project(project_config)

        assert not (project_config.destination / "my-recipe").exists()
        assert _leftovers(project_config.destination) == []


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.asyncio
    async def test_invalid_slug_writes_nothing(self, scaffolder, tmp_path):
        config = ProjectConfig(slug="Bad Slug", title="Bad Slug", destination=tmp_path / "recipes")
        with pytest.raises(ValidationError):
            await scaffolder.create_project(config)
        assert not (tmp_path / "recipes").exists()

    @pytest.mark.asyncio
    async def test_short_title(self, scaffolder, tmp_path):
        config = ProjectConfig(slug="ok", title="ok", destination=tmp_path)
        with pytest.raises(ValidationError, match="too short"):
            await scaffolder.create_project(config)


# ---------------------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------------------


class TestDryRun:
    @pytest.mark.asyncio
    async def test_lists_files_without_writing(self, scaffolder, project_config, versions):
        info = await scaffolder.create_project(project_config, versions, dry_run=True)
        root = (project_config.destination / "my-recipe").resolve()
        assert root / "recipe.config.yml" in info.files
        assert root / "pallets" / "my-recipe" / "src" / "lib.rs" in info.files
        assert not project_config.destination.exists()

    @pytest.mark.asyncio
    async def test_dry_run_matches_real_run(self, scaffolder, project_config, versions):
        planned = await scaffolder.create_project(project_config, versions, dry_run=True)
        created = await scaffolder.create_project(project_config, versions)
        assert sorted(planned.files) == created.files

    @pytest.mark.asyncio
    async def test_dry_run_still_rejects_occupied_target(self, scaffolder, project_config):
        target = project_config.destination / "my-recipe"
        target.mkdir(parents=True)
        (target / "x").write_text("x", encoding="utf-8")
        with pytest.raises(FileSystemError):
            await scaffolder.create_project(project_config, dry_run=True)

    def test_plan(self, scaffolder, project_config):
        assert Path("README.md") in scaffolder.plan(project_config)


# ---------------------------------------------------------------------------
# Git integration (mocked)
# ---------------------------------------------------------------------------


class TestGitIntegration:
    @pytest.mark.asyncio
    async def test_branch_created(self, scaffolder, tmp_path):
        config = ProjectConfig(
            slug="my-recipe", destination=tmp_path / "recipes", repo_root=tmp_path, skip_install=True
        )
        with patch(
            "cookbook.git.GitOperations.create_branch", AsyncMock(return_value="feat/my-recipe")
        ) as create_branch:
            info = await scaffolder.create_project(config)

        create_branch.assert_awaited_once_with("feat/my-recipe")
        assert info.git_branch == "feat/my-recipe"

    @pytest.mark.asyncio
    async def test_branch_failure_is_warning(self, scaffolder, tmp_path):
        config = ProjectConfig(
            slug="my-recipe", destination=tmp_path / "recipes", repo_root=tmp_path, skip_install=True
        )
        with patch(
            "cookbook.git.GitOperations.create_branch",
            AsyncMock(side_effect=GitError("Not a git repository")),
        ):
            info = await scaffolder.create_project(config)

        assert info.git_branch is None
        assert any("Failed to create git branch" in w for w in info.warnings)
        assert (info.project_path / "README.md").exists()

    @pytest.mark.asyncio
    async def test_commit_when_requested(self, scaffolder, tmp_path):
        config = ProjectConfig(
            slug="my-recipe",
            destination=tmp_path / "recipes",
            repo_root=tmp_path,
            skip_install=True,
            git_commit=True,
        )
        with patch(
            "cookbook.git.GitOperations.create_branch", AsyncMock(return_value="feat/my-recipe")
        ), patch("cookbook.git.GitOperations.commit", AsyncMock(return_value="abc123")) as commit:
            await scaffolder.create_project(config)

        commit.assert_awaited_once()
        assert commit.await_args.args[0] == "feat(my-recipe): scaffold recipe"

    @pytest.mark.asyncio
    async def test_no_commit_without_branch(self, scaffolder, tmp_path):
        config = ProjectConfig(
            slug="my-recipe",
            destination=tmp_path / "recipes",
            repo_root=tmp_path,
            skip_install=True,
            git_commit=True,
        )
        with patch(
            "cookbook.git.GitOperations.create_branch", AsyncMock(side_effect=GitError("nope"))
        ), patch("cookbook.git.GitOperations.commit", AsyncMock()) as commit:
            await scaffolder.create_project(config)
        commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_branch_prefix_from_settings(self, template_dir, tmp_path):
        scaffolder = RecipeScaffolder(Config(template_dir=template_dir, branch_prefix="recipe/"))
        config = ProjectConfig(
            slug="my-recipe", destination=tmp_path / "recipes", repo_root=tmp_path, skip_install=True
        )
        with patch(
            "cookbook.git.GitOperations.create_branch", AsyncMock(return_value="recipe/my-recipe")
        ) as create_branch:
            await scaffolder.create_project(config)
        create_branch.assert_awaited_once_with("recipe/my-recipe")


# ---------------------------------------------------------------------------
# Bootstrap (mocked)
# ---------------------------------------------------------------------------


class TestBootstrapTrigger:
    @pytest.fixture
    def node_templates(self, template_dir: Path) -> Path:
        (template_dir / "runtime" / "package.json").write_text(
            '{"name": "{{slug}}"}\n', encoding="utf-8"
        )
        return template_dir

    @pytest.mark.asyncio
    async def test_install_runs_when_package_json_present(self, node_templates, tmp_path):
        scaffolder = RecipeScaffolder(Config(template_dir=node_templates))
        config = ProjectConfig(slug="my-recipe", destination=tmp_path / "recipes", git_init=False)
        with patch("cookbook.scaffolder.bootstrap.Bootstrap.install", AsyncMock()) as install:
            info = await scaffolder.create_project(config)
        install.assert_awaited_once()
        assert (info.project_path / "package.json").read_text() == '{"name": "my-recipe"}\n'

    @pytest.mark.asyncio
    async def test_skip_install(self, node_templates, tmp_path):
        scaffolder = RecipeScaffolder(Config(template_dir=node_templates))
        config = ProjectConfig(
            slug="my-recipe", destination=tmp_path / "recipes", git_init=False, skip_install=True
        )
        with patch("cookbook.scaffolder.bootstrap.Bootstrap.install", AsyncMock()) as install:
            await scaffolder.create_project(config)
        install.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_install_without_package_json(self, scaffolder, tmp_path):
        config = ProjectConfig(slug="my-recipe", destination=tmp_path / "recipes", git_init=False)
        with patch("cookbook.scaffolder.bootstrap.Bootstrap.install", AsyncMock()) as install:
            await scaffolder.create_project(config)
        install.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_install_failure_propagates(self, node_templates, tmp_path):
        scaffolder = RecipeScaffolder(Config(template_dir=node_templates))
        config = ProjectConfig(slug="my-recipe", destination=tmp_path / "recipes", git_init=False)
        with patch(
            "cookbook.scaffolder.bootstrap.Bootstrap.install",
            AsyncMock(side_effect=BootstrapError("npm install failed", command="npm install")),
        ):
            with pytest.raises(BootstrapError):
                await scaffolder.create_project(config)
