"""pkgloader CLI - load packages and inspect their dependency graph."""

import logging

import click

from .commands.app import add_cmd
from .commands.app import remove_cmd
from .commands.app import sources_cmd
from .commands.config import config_group
from .commands.deps import install_deps_cmd
from .commands.packages import list_cmd
from .commands.packages import show_cmd
from .logging_setup import init_json_logging

logger = logging.getLogger(__name__)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level for the JSONL log (default: $PKGLOADER_LOG_LEVEL or INFO)",
)
@click.option("--log-file", default=None, help="JSONL log path (default: $PKGLOADER_LOG_PATH)")
def cli(log_level: str | None, log_file: str | None):
    """Load packages and inspect their dependency graph."""
    init_json_logging(path=log_file, level=log_level)


cli.add_command(list_cmd)
cli.add_command(show_cmd)
cli.add_command(sources_cmd)
cli.add_command(add_cmd)
cli.add_command(remove_cmd)
cli.add_command(install_deps_cmd)
cli.add_command(config_group)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
