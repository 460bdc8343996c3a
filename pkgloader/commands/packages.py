"""Package inspection commands: list and show."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.table import Table

from ..console import console
from ..errors import PackageError
from ..paths import create_package_registry
from ..paths import load_configured_release
from ..registry import PackageSearchOptions
from ..roles import ENVIRONMENTS
from ..roles import ROLES

logger = logging.getLogger(__name__)


@click.command("list")
@click.option("--release", default=None, help="Also list packages pinned by this release")
def list_cmd(release: str | None):
    """List available packages and their summaries."""
    try:
        registry = create_package_registry()
        manifest = load_configured_release(release)
        packages = registry.list_packages(manifest)
    except PackageError as e:
        click.echo(f"✗ {e}", err=True)
        raise click.Abort()

    if not packages:
        click.echo("No packages found.")
        return

    click.echo(registry.format_list(packages[name] for name in sorted(packages)), nl=False)


@click.command("show")
@click.argument("name")
@click.option("--app", "app_dir", type=click.Path(file_okay=False, path_type=Path), help="App whose packages/ to search")
@click.option("--release", default=None, help="Resolve warehouse packages pinned by this release")
def show_cmd(name: str, app_dir: Path | None, release: str | None):
    """Show what a package uses, contains and exports."""
    try:
        registry = create_package_registry()
        options = PackageSearchOptions(app_dir=app_dir, release_manifest=load_configured_release(release))
        package = registry.get(name, options)
    except PackageError as e:
        click.echo(f"✗ {e}", err=True)
        raise click.Abort()

    console.print(f"[bold]{package.name}[/bold]  {package.metadata.get('summary') or 'No description'}")
    console.print(f"[dim]Location:[/dim] {package.source_root}")

    for role in ROLES:
        table = Table(title=f"{role} role", show_header=True, header_style="bold cyan")
        table.add_column("Environment", style="yellow")
        table.add_column("Uses", style="green")
        table.add_column("Sources", style="magenta")
        table.add_column("Exports")

        for where in ENVIRONMENTS:
            uses = [
                f"{ref}*" if isinstance(ref, str) and ref in package.unordered else str(ref)
                for ref in package.uses[role][where]
            ]
            table.add_row(
                where,
                "\n".join(uses),
                "\n".join(package.sources[role][where]),
                "\n".join(package.exports[role][where]),
            )
        console.print(table)

    if package.unordered:
        console.print("[dim]* unordered dependency[/dim]")
    if package.extensions:
        console.print(f"Handles: {', '.join('.' + ext for ext in sorted(package.extensions))}")
    if package.npm_dependencies:
        deps = ", ".join(f"{dep}@{version}" for dep, version in sorted(package.npm_dependencies.items()))
        console.print(f"npm dependencies: {deps}")
