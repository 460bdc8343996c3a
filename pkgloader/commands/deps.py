"""External dependency installation command."""

from __future__ import annotations

from pathlib import Path

import click

from ..errors import PackageError
from ..paths import create_package_registry
from ..registry import PackageSearchOptions


@click.command("install-deps")
@click.argument("name")
@click.option("--app", "app_dir", type=click.Path(file_okay=False, path_type=Path), help="App whose packages/ to search")
@click.option("--quiet", is_flag=True, help="Only report errors")
def install_deps_cmd(name: str, app_dir: Path | None, quiet: bool):
    """Install the pinned npm dependencies of a package."""
    try:
        registry = create_package_registry()
        package = registry.get(name, PackageSearchOptions(app_dir=app_dir))
        if package.npm_dependencies is None:
            click.echo(f"{name} has no npm dependencies.")
            return
        package.install_npm_dependencies(quiet=quiet)
    except (PackageError, TimeoutError) as e:
        click.echo(f"✗ Installing dependencies of {name} failed: {e}", err=True)
        raise click.Abort()

    if not quiet:
        click.echo(f"✓ Dependencies of {name} are installed in {package.npm_dir()}")
