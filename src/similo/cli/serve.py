"""similo serve command - run the daemon in the foreground."""

import asyncio

import click
from rich.console import Console

from similo.config.loader import get_paths, load_config
from similo.core.errors import ConfigError, EmbeddingError


def _print_banner(console: Console, host: str, port: int, model: str) -> None:
    base_url = f"http://{host}:{port}"
    rule_line = "─" * 48
    console.print(rule_line, style="dim cyan", highlight=False)
    console.print("Similo · starting".center(48), style="bold cyan", highlight=False)
    console.print(rule_line, style="dim cyan", highlight=False)
    console.print(f"  MCP Endpoint:    {base_url}/mcp", style="green", highlight=False)
    console.print(f"  Health Check:    {base_url}/health", highlight=False)
    console.print(f"  Model:           {model}", style="dim", highlight=False)
    console.print()


@click.command()
@click.option("--port", "-p", type=int, help="Override server port")
def serve_command(port: int | None) -> None:
    """Start the Similo daemon. Runs in foreground until stopped."""
    from similo.config.models import LoggingConfig, LogOutputConfig
    from similo.core.logging import configure_logging
    from similo.daemon.lifecycle import is_server_running, read_server_info, run_server

    paths = get_paths()

    # Check if already running
    if is_server_running(paths):
        info = read_server_info(paths)
        if info:
            pid, server_port = info
            click.echo(f"Already running (PID {pid}, port {server_port})")
            return

    try:
        config = load_config(paths.home)
    except ConfigError as e:
        raise click.ClickException(e.message) from e
    if port is not None:
        config.server.port = port

    # Console at the configured level, file always DEBUG
    configure_logging(
        config=LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(
                    destination="stderr", format="console", level=config.logging.level
                ),
                LogOutputConfig(destination=str(paths.log_file), format="json", level="DEBUG"),
            ],
        ),
    )

    _print_banner(Console(stderr=True), config.server.host, config.server.port, config.ollama.model)

    try:
        asyncio.run(run_server(config, paths))
    except EmbeddingError as e:
        raise click.ClickException(
            f"{e.message}\nIs Ollama running and has the model been pulled? "
            f"Try: ollama pull {config.ollama.model}"
        ) from e
    except KeyboardInterrupt:
        click.echo("\nStopped")
