"""similo status command - show daemon status."""

import json

import click

from similo.cli.utils import call_daemon
from similo.config.loader import get_paths
from similo.daemon.lifecycle import is_server_running, read_server_info


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def status_command(as_json: bool) -> None:
    """Show Similo daemon status."""
    paths = get_paths()

    info = read_server_info(paths) if is_server_running(paths) else None
    if info is None:
        if as_json:
            click.echo(json.dumps({"running": False}))
        else:
            click.echo("Daemon: not running")
            click.echo(f"Home: {paths.home}")
        return

    pid, port = info
    status_data = call_daemon("GET", "/status", paths=paths)

    if as_json:
        click.echo(json.dumps({"running": True, "pid": pid, **status_data}))
        return

    click.echo(f"Daemon: running (PID {pid}, port {port})")
    click.echo(f"Model: {status_data.get('model')}")
    click.echo(f"Directories: {status_data.get('directories', 0)}")
    click.echo(f"Indexed files: {status_data.get('indexed_files', 0)}")
    click.echo(f"Queued files: {status_data.get('queued_files', 0)}")

    worker = status_data.get("worker", {})
    click.echo(f"Worker: {worker.get('state', 'unknown')}")
    if worker.get("last_error"):
        click.echo(f"  Last error: {worker['last_error']}")

    watcher = status_data.get("watcher", {})
    click.echo(f"Watcher: {'active' if watcher.get('running') else 'stopped'}")
