"""similo stop command - stop the Similo daemon."""

from __future__ import annotations

import time

import click

from similo.config.loader import get_paths
from similo.daemon.lifecycle import is_server_running, read_server_info, stop_daemon


@click.command()
def stop_command() -> None:
    """Stop the Similo daemon."""
    paths = get_paths()

    info = read_server_info(paths)
    if info is None or not is_server_running(paths):
        click.echo("Daemon is not running.")
        return

    pid, port = info
    click.echo(f"Stopping daemon (PID {pid}, port {port})...")

    if not stop_daemon(paths):
        click.echo("Failed to send stop signal.", err=True)
        raise SystemExit(1)

    # Wait for process to exit (up to 10 seconds)
    for _ in range(100):
        if not is_server_running(paths):
            click.echo("Daemon stopped.")
            return
        time.sleep(0.1)

    click.echo("Daemon did not stop within 10 seconds.", err=True)
    raise SystemExit(1)
