"""Settings commands."""

from __future__ import annotations

import click
import yaml

from ..settings import LoaderSettings

LIST_KEYS = ("package_dirs", "ignore_files")
SCALAR_KEYS = ("warehouse_dir", "release")


@click.group("config")
def config_group():
    """Read and write pkgloader settings."""


@config_group.command("show")
def config_show():
    """Show the merged global and project settings."""
    merged = LoaderSettings().get_merged_settings()
    if not merged:
        click.echo("No settings configured.")
        return
    click.echo(yaml.safe_dump(merged, default_flow_style=False, sort_keys=True), nl=False)


@config_group.command("set")
@click.argument("key", type=click.Choice([*SCALAR_KEYS, *LIST_KEYS]))
@click.argument("values", nargs=-1, required=True)
@click.option("--project", "scope_flag", flag_value="project", help="Store in project settings (.pkgloader/settings.yaml)")
@click.option("--global", "scope_flag", flag_value="global", help="Store in user settings (~/.pkgloader/settings.yaml)")
def config_set(key: str, values: tuple[str, ...], scope_flag: str | None):
    """Set KEY to VALUES (list keys take several values)."""
    if key in SCALAR_KEYS and len(values) != 1:
        click.echo(f"✗ {key} takes exactly one value", err=True)
        raise click.Abort()

    scope = scope_flag or "project"
    settings = LoaderSettings()
    settings.set_value(key, list(values) if key in LIST_KEYS else values[0], scope=scope)

    path = settings.paths.project_settings if scope == "project" else settings.paths.global_settings
    click.echo(f"✓ {key} set in {path}")
