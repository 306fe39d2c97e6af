"""Command-line interface: ``cookbook create`` and ``cookbook versions``."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.table import Table

from cookbook import __version__
from cookbook.config import (
    DEFAULT_DESCRIPTION,
    Config,
    ContentType,
    Difficulty,
    ProjectConfig,
    RecipePathway,
    parse_choice,
    slug_to_title,
    title_to_slug,
    validate_slug,
    validate_working_directory,
)
from cookbook.errors import CookbookError
from cookbook.scaffolder import RecipeScaffolder
from cookbook.utils import (
    console,
    print_error,
    print_panel,
    print_success,
    print_summary_table,
    print_warning,
)
from cookbook.version import KNOWN_VERSION_KEYS, ResolvedVersions, resolve


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cookbook",
        description="Polkadot Cookbook toolkit -- scaffold recipes and resolve dependency versions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  cookbook create my-pallet --pathway runtime\n"
            "  cookbook create --title 'Teleport Assets' --pathway xcm --skip-install\n"
            "  cookbook versions my-pallet --show-source\n"
            "  cookbook versions --ci >> $GITHUB_ENV\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Scaffold a new recipe")
    create.add_argument("slug", nargs="?", help="Recipe slug (derived from --title if omitted)")
    create.add_argument("--title", help="Recipe title (derived from the slug if omitted)")
    create.add_argument(
        "--pathway",
        default=RecipePathway.RUNTIME.value,
        choices=[p.value for p in RecipePathway],
        help="Recipe pathway / template category (default: runtime)",
    )
    create.add_argument("--difficulty", choices=[d.value for d in Difficulty])
    create.add_argument("--content-type", choices=[c.value for c in ContentType])
    create.add_argument("--description", default=None, help="One-line recipe description")
    create.add_argument(
        "--destination",
        default=None,
        help="Directory the recipe is created in (default: <root>/recipes)",
    )
    create.add_argument("--root", default=None, help="Repository root (default: current directory)")
    create.add_argument("--skip-install", action="store_true", help="Do not run npm install")
    create.add_argument("--no-git", action="store_true", help="Do not create a feat/<slug> branch")
    create.add_argument("--commit", action="store_true", help="Commit the scaffolded recipe")
    create.add_argument("--dry-run", action="store_true", help="List files without writing them")

    versions = subparsers.add_parser("versions", help="Show resolved dependency versions")
    versions.add_argument("slug", nargs="?", help="Recipe whose overrides to apply")
    versions.add_argument("--ci", action="store_true", help="Print NAME=value lines for CI")
    versions.add_argument("--show-source", action="store_true", help="Show where each version comes from")
    versions.add_argument("--validate", action="store_true", help="Warn about unknown dependency keys")
    versions.add_argument("--root", default=None, help="Repository root (default: current directory)")

    return parser


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


async def _cmd_create(args: argparse.Namespace) -> int:
    settings = Config.from_env(repo_root=Path(args.root) if args.root else None)

    slug = args.slug or title_to_slug(args.title)
    title = args.title or slug_to_title(slug)
    validate_slug(slug)

    if args.destination:
        destination = Path(args.destination)
    else:
        validate_working_directory(settings)
        destination = settings.recipes_path

    versions: ResolvedVersions | None = None
    if settings.global_versions_path.is_file():
        versions = await resolve(settings.repo_root, config=settings)

    pathway = parse_choice(RecipePathway, args.pathway)
    config = ProjectConfig(
        slug=slug,
        title=title,
        description=args.description or DEFAULT_DESCRIPTION,
        destination=destination,
        repo_root=settings.repo_root,
        git_init=not args.no_git and not args.dry_run,
        git_commit=args.commit,
        skip_install=args.skip_install,
        pathway=pathway,
        content_type=parse_choice(ContentType, args.content_type) if args.content_type else None,
        difficulty=parse_choice(Difficulty, args.difficulty) if args.difficulty else None,
        needs_node=pathway is not RecipePathway.RUNTIME,
    )

    scaffolder = RecipeScaffolder(settings)
    info = await scaffolder.create_project(config, versions, dry_run=args.dry_run)

    if args.dry_run:
        for warning in info.warnings:
            print_warning(warning)
        console.print(f"[bold]Would create[/bold] {info.project_path}:")
        for path in info.files:
            console.print(f"  {path.relative_to(info.project_path)}")
        console.print("[dim]Dry run: no files written.[/dim]")
        return 0

    print_success(f"Recipe '{info.slug}' created")
    print_summary_table(
        {
            "Title": info.title,
            "Slug": info.slug,
            "Pathway": config.pathway.value,
            "Location": str(info.project_path),
            "Branch": info.git_branch or "(none)",
            "Files": str(len(info.files)),
        },
        title="New recipe",
    )
    print_panel(
        "\n".join(
            [
                f"1. Write the recipe content in {info.project_path / 'README.md'}",
                "2. Implement and test the code",
                f"3. Pin dependency versions in {info.project_path / settings.versions_file} if needed",
                "4. Open a pull request",
            ]
        ),
        title="Next steps",
    )
    return 0


# ---------------------------------------------------------------------------
# versions
# ---------------------------------------------------------------------------


async def _cmd_versions(args: argparse.Namespace) -> int:
    settings = Config.from_env(repo_root=Path(args.root) if args.root else None)

    slug: str | None = args.slug
    if slug is not None:
        validate_slug(slug)
        if not settings.recipe_path(slug).is_dir() and not args.ci:
            print_warning(f"Recipe '{slug}' not found in {settings.recipes_path}; showing global versions")

    resolved = await resolve(settings.repo_root, slug, settings)

    if args.ci:
        for line in resolved.to_env():
            print(line)
    else:
        table = Table(
            title=f"Versions for {slug}" if slug else "Global versions",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Dependency", style="cyan", no_wrap=True)
        table.add_column("Version")
        if args.show_source:
            table.add_column("Source", style="dim")
        for name, entry in resolved:
            row = [name, entry.value]
            if args.show_source:
                row.append(entry.source.value)
            table.add_row(*row)
        console.print(table)

    if resolved.schema_mismatch:
        print_warning(
            f"Schema version mismatch: global {resolved.global_schema_version}, "
            f"recipe {resolved.recipe_schema_version}"
        )

    if args.validate:
        unknown = resolved.unknown_keys(KNOWN_VERSION_KEYS)
        for key in unknown:
            print_warning(f"Unknown dependency key '{key}'")
        if not unknown and not args.ci:
            print_success("All dependency keys are recognised")

    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``cookbook`` and ``python -m cookbook``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "create" and not args.slug and not args.title:
        parser.error("create: either SLUG or --title is required")

    handler = _cmd_create if args.command == "create" else _cmd_versions
    try:
        code = asyncio.run(handler(args))
    except CookbookError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
