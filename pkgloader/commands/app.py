"""Application commands: inspect sources and edit the package list."""

from __future__ import annotations

from pathlib import Path

import click
from rich.table import Table

from .. import project
from ..console import console
from ..errors import PackageError
from ..paths import create_package_registry
from ..paths import load_configured_release
from ..registry import PackageSearchOptions
from ..roles import ENVIRONMENTS
from ..roles import ROLES
from ..scanner import DEFAULT_IGNORE_FILES
from ..settings import LoaderSettings

_APP_DIR = click.Path(exists=True, file_okay=False, path_type=Path)


@click.command("sources")
@click.argument("app_dir", type=_APP_DIR, default=".")
@click.option("--release", default=None, help="Resolve warehouse packages pinned by this release")
def sources_cmd(app_dir: Path, release: str | None):
    """Show how an app's source files are split by role and environment."""
    settings = LoaderSettings()
    try:
        registry = create_package_registry(settings)
        options = PackageSearchOptions(app_dir=app_dir, release_manifest=load_configured_release(release, settings))
        package = registry.get_for_app(app_dir, [*DEFAULT_IGNORE_FILES, *settings.get_ignore_files()], options)
    except PackageError as e:
        click.echo(f"✗ {e}", err=True)
        raise click.Abort()

    table = Table(title=f"Sources of {app_dir.resolve()}", show_header=True, header_style="bold cyan")
    table.add_column("Role", style="yellow")
    table.add_column("Environment", style="yellow")
    table.add_column("Files", style="green")
    for role in ROLES:
        for where in ENVIRONMENTS:
            table.add_row(role, where, "\n".join(package.sources[role][where]) or "[dim]none[/dim]")
    console.print(table)
    console.print(f"Packages: {', '.join(str(ref) for ref in package.uses['use']['client'])}")


@click.command("add")
@click.argument("names", nargs=-1, required=True)
@click.option("--app", "app_dir", type=_APP_DIR, default=".", help="Application directory")
def add_cmd(names: tuple[str, ...], app_dir: Path):
    """Add packages to an app."""
    registry = create_package_registry()
    for name in names:
        if registry.locate(name, PackageSearchOptions(app_dir=app_dir)) is None:
            click.echo(f"✗ {name}: no such package", err=True)
            continue
        if project.add_package(app_dir, name):
            click.echo(f"✓ {name}: added")
        else:
            click.echo(f"{name}: already using")


@click.command("remove")
@click.argument("names", nargs=-1, required=True)
@click.option("--app", "app_dir", type=_APP_DIR, default=".", help="Application directory")
def remove_cmd(names: tuple[str, ...], app_dir: Path):
    """Remove packages from an app."""
    for name in names:
        if project.remove_package(app_dir, name):
            click.echo(f"✓ {name}: removed")
        else:
            click.echo(f"{name}: not in project")
