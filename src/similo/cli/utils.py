"""CLI utilities: daemon discovery and HTTP calls."""

from __future__ import annotations

from typing import Any

import click
import httpx

from similo.config.loader import SimiloPaths, get_paths
from similo.daemon.lifecycle import is_server_running, read_server_info

REQUEST_TIMEOUT_SEC = 30.0


def daemon_base_url(paths: SimiloPaths | None = None) -> str:
    """Base URL of the running daemon.

    Raises:
        click.ClickException: If no daemon is running
    """
    paths = paths or get_paths()
    info = read_server_info(paths) if is_server_running(paths) else None
    if info is None:
        raise click.ClickException("Similo daemon is not running. Start it with 'similo serve'.")
    _, port = info
    return f"http://127.0.0.1:{port}"


def call_daemon(
    method: str,
    path: str,
    *,
    paths: SimiloPaths | None = None,
    **kwargs: Any,
) -> dict[str, Any]:
    """Send one request to the daemon and return the decoded JSON body.

    Error responses surface as ``click.ClickException`` carrying the
    daemon's message.
    """
    url = daemon_base_url(paths) + path
    try:
        response = httpx.request(method, url, timeout=REQUEST_TIMEOUT_SEC, **kwargs)
    except httpx.RequestError as e:
        raise click.ClickException(f"Cannot reach daemon: {e}") from e

    try:
        body: Any = response.json()
    except ValueError as e:
        raise click.ClickException(
            f"Invalid response from daemon (HTTP {response.status_code})"
        ) from e

    if response.status_code >= 400:
        message = body.get("error") if isinstance(body, dict) else None
        raise click.ClickException(str(message or f"HTTP {response.status_code}"))
    if not isinstance(body, dict):
        raise click.ClickException("Invalid response from daemon")
    return body
