"""similo add / remove / list commands - manage registered directories."""

from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from similo.cli.utils import call_daemon


def _format_time(timestamp: float | None) -> str:
    if timestamp is None:
        return "never"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")


@click.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
def add_command(path: Path) -> None:
    """Register PATH for indexing."""
    result = call_daemon("POST", "/directories", json={"path": str(path.resolve())})
    directory = result["directory"]
    verb = "Added" if result.get("created", True) else "Re-queued"
    click.echo(f"{verb} {directory['path']} ({result['queued_count']} files queued)")


@click.command()
@click.argument("path", type=click.Path(path_type=Path))
def remove_command(path: Path) -> None:
    """Unregister PATH and delete its documents from the index."""
    target = str(path.expanduser().absolute())
    result = call_daemon("DELETE", "/directories", params={"path": target})
    click.echo(f"Removed {target} ({result.get('removed_documents', 0)} documents deleted)")


@click.command()
def list_command() -> None:
    """List registered directories."""
    directories = call_daemon("GET", "/directories")["directories"]
    console = Console()
    if not directories:
        console.print("[dim]No directories registered. Add one with 'similo add PATH'.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Path")
    table.add_column("Files", justify="right")
    table.add_column("Last indexed")
    for d in directories:
        table.add_row(d["path"], str(d["file_count"]), _format_time(d["last_indexed_at"]))
    console.print(table)
