"""similo clear command - delete the index database."""

import contextlib
import time
from pathlib import Path

import click
import questionary
from rich.console import Console

from similo.config.loader import SimiloPaths, get_paths
from similo.daemon.lifecycle import is_server_running, stop_daemon


def _database_files(paths: SimiloPaths) -> list[Path]:
    db = paths.db_path
    candidates = [db, db.with_name(db.name + "-wal"), db.with_name(db.name + "-shm")]
    return [p for p in candidates if p.exists()]


def clear_index(paths: SimiloPaths, *, force: bool = False) -> bool:
    """Delete the index database, stopping the daemon first if it is running.

    Returns True if cleared, False if cancelled or nothing to clear.
    """
    console = Console(stderr=True)

    files = _database_files(paths)
    if not files:
        console.print("[yellow]Nothing to clear[/yellow] - no index database found")
        return False

    console.print("\n[bold]The following will be permanently deleted:[/bold]\n")
    for path in files:
        console.print(f"  [cyan]•[/cyan] {path}")
    console.print()

    if not force:
        answer = questionary.confirm(
            "This removes every indexed document and registered directory. Continue?",
            default=False,
        ).ask()
        if not answer:
            console.print("[dim]Cancelled[/dim]")
            return False

    if is_server_running(paths):
        console.print("Stopping daemon...")
        stop_daemon(paths)
        for _ in range(100):
            if not is_server_running(paths):
                break
            time.sleep(0.1)
        else:
            raise click.ClickException("Daemon did not stop; index not cleared")

    for path in files:
        with contextlib.suppress(FileNotFoundError):
            path.unlink()
        console.print(f"  [green]✓[/green] Removed {path}")

    console.print("\n[green]Index cleared[/green]")
    return True


@click.command()
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def clear_command(force: bool) -> None:
    """Delete the index database.

    Stops the daemon if it is running. Registered directories are removed
    along with every indexed document.
    """
    clear_index(get_paths(), force=force)
