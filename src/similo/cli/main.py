"""Similo CLI - similo command."""

import click

from similo.cli.clear import clear_command
from similo.cli.directories import add_command, list_command, remove_command
from similo.cli.search import search_command
from similo.cli.serve import serve_command
from similo.cli.status import status_command
from similo.cli.stop import stop_command
from similo.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="similo")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Similo - local semantic search over your documents."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(serve_command, name="serve")
cli.add_command(stop_command, name="stop")
cli.add_command(status_command, name="status")
cli.add_command(add_command, name="add")
cli.add_command(remove_command, name="remove")
cli.add_command(list_command, name="list")
cli.add_command(search_command, name="search")
cli.add_command(clear_command, name="clear")


if __name__ == "__main__":
    cli()
