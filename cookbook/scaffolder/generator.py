"""Recipe scaffolding orchestrator.

Takes a ``ProjectConfig`` and produces ``<destination>/<slug>``: the shared
``common`` templates, the pathway's templates and a generated
``recipe.config.yml``. The tree is built in a staging directory next to the
target and renamed into place once every file is written, so a failure never
leaves a half-written recipe behind.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from pathlib import Path

from cookbook.config import (
    Config,
    ProjectConfig,
    ProjectInfo,
    RecipeConfig,
    validate_project_config,
)
from cookbook.errors import FileSystemError, GitError
from cookbook.git import GitOperations
from cookbook.scaffolder.bootstrap import Bootstrap
from cookbook.scaffolder.templates import COMMON_CATEGORY, TemplateRenderer, build_context
from cookbook.utils import console, print_warning
from cookbook.version.resolver import ResolvedVersions


class RecipeScaffolder:
    """Creates new recipes from the bundled (or overridden) templates."""

    def __init__(
        self,
        settings: Config | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.settings = settings or Config()
        self.renderer = renderer or TemplateRenderer(self.settings.template_dir)

    # -- Public API --------------------------------------------------------

    def plan(self, config: ProjectConfig, versions: ResolvedVersions | None = None) -> list[Path]:
        """Relative paths of every file :meth:`create_project` would write."""
        context = build_context(config, versions)
        pairs = self.renderer.plan_tree(self._categories(config), context)
        planned = [relative for _, relative in pairs]
        planned.append(Path(self.settings.recipe_config_file))
        return sorted(set(planned))

    async def create_project(
        self,
        config: ProjectConfig,
        versions: ResolvedVersions | None = None,
        *,
        dry_run: bool = False,
    ) -> ProjectInfo:
        """Scaffold the recipe described by *config*.

        Args:
            config: What to create and where.
            versions: Resolved dependency versions exposed to templates as
                ``{{<name>_version}}``.
            dry_run: Only report the files that would be written.

        Returns:
            A :class:`ProjectInfo` describing the new recipe.

        Raises:
            ValidationError: Bad slug or title.
            FileSystemError: Target occupied, template missing, or I/O failure.
            BootstrapError: ``npm install`` failed.
            GitError: Committing the scaffold failed.
        """
        warnings = validate_project_config(config)
        target = config.project_path.resolve()
        _check_target(target)

        if dry_run:
            files = [target / relative for relative in self.plan(config, versions)]
            return ProjectInfo(
                slug=config.slug,
                title=config.title,
                project_path=target,
                files=files,
                warnings=warnings,
            )

        for warning in warnings:
            print_warning(warning)

        git: GitOperations | None = None
        branch: str | None = None
        if config.git_init:
            git = GitOperations(
                config.repo_root,
                timeout=self.settings.git_timeout,
                branch_prefix=self.settings.branch_prefix,
            )
            try:
                branch = await git.create_branch(git.branch_name_for(config.slug))
            except GitError as exc:
                message = f"Failed to create git branch: {exc}"
                warnings.append(message)
                print_warning(message)

        console.print(f"[cyan]Creating recipe[/cyan] [bold]{config.slug}[/bold] in {target}")
        files = await self._build_tree(config, versions, target)

        bootstrap = Bootstrap(target, self.settings)
        if not config.skip_install and bootstrap.needs_install():
            await bootstrap.install()

        if config.git_commit and git is not None and branch is not None:
            await git.commit(f"feat({config.slug}): scaffold recipe", paths=[target])

        return ProjectInfo(
            slug=config.slug,
            title=config.title,
            project_path=target,
            git_branch=branch,
            files=files,
            warnings=warnings,
        )

    # -- Internal helpers --------------------------------------------------

    def _categories(self, config: ProjectConfig) -> list[str]:
        return [COMMON_CATEGORY, config.template_category]

    async def _build_tree(
        self,
        config: ProjectConfig,
        versions: ResolvedVersions | None,
        target: Path,
    ) -> list[Path]:
        """Render into a staging directory, then move it to *target*."""
        destination = config.destination
        try:
            await asyncio.to_thread(destination.mkdir, parents=True, exist_ok=True)
            staging = Path(
                await asyncio.to_thread(
                    tempfile.mkdtemp, prefix=f".{config.slug}-", dir=str(destination)
                )
            )
        except OSError as exc:
            raise FileSystemError(
                f"Failed to create directory ({exc.strerror or exc})", path=destination
            ) from exc

        try:
            context = build_context(config, versions)
            written = await self.renderer.render_tree(self._categories(config), staging, context)

            recipe_config = RecipeConfig.from_project(config)
            config_path = staging / self.settings.recipe_config_file
            try:
                await asyncio.to_thread(recipe_config.save, config_path)
            except OSError as exc:
                raise FileSystemError(
                    f"Failed to write {config_path.name} ({exc.strerror or exc})",
                    path=config_path,
                ) from exc
            written.append(config_path)

            await asyncio.to_thread(_move_into_place, staging, target)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        return sorted(target / path.relative_to(staging) for path in written)


def _check_target(target: Path) -> None:
    """Raise unless *target* is absent or an empty directory."""
    if not target.exists():
        return
    if not target.is_dir():
        raise FileSystemError("Destination exists and is not a directory", path=target)
    if any(target.iterdir()):
        raise FileSystemError(
            "Project directory already exists and is not empty", path=target
        )


def _move_into_place(staging: Path, target: Path) -> None:
    _check_target(target)
    try:
        staging.chmod(_default_dir_mode())
        if target.exists():
            target.rmdir()
        staging.rename(target)
    except OSError as exc:
        raise FileSystemError(
            f"Failed to move recipe into place ({exc.strerror or exc})", path=target
        ) from exc


def _default_dir_mode() -> int:
    """Mode a plain ``mkdir`` would give under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o777 & ~umask
