"""similo search command - query the index."""

import json

import click
from rich.console import Console

from similo.cli.utils import call_daemon
from similo.config.constants import SEARCH_MAX_LIMIT

SNIPPET_CHARS = 200


def _snippet(content: str) -> str:
    flat = " ".join(content.split())
    if len(flat) <= SNIPPET_CHARS:
        return flat
    return flat[:SNIPPET_CHARS].rstrip() + "..."


@click.command()
@click.argument("query")
@click.option(
    "--limit",
    "-n",
    type=click.IntRange(1, SEARCH_MAX_LIMIT),
    default=None,
    help="Maximum number of results",
)
@click.option("--path", "path_prefix", default=None, help="Only search under this directory")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def search_command(query: str, limit: int | None, path_prefix: str | None, as_json: bool) -> None:
    """Search indexed documents by meaning."""
    params: dict[str, str | int] = {"q": query}
    if limit is not None:
        params["limit"] = limit
    if path_prefix:
        params["path"] = path_prefix

    data = call_daemon("GET", "/search", params=params)

    if as_json:
        click.echo(json.dumps(data))
        return

    console = Console()
    results = data.get("results", [])
    if not results:
        console.print("[dim]No results[/dim]")
        return

    for i, result in enumerate(results, start=1):
        console.print(
            f"[bold]{i}.[/bold] [cyan]{result['path']}[/cyan] [dim]({result['score']:.3f})[/dim]",
            highlight=False,
        )
        console.print(f"   {_snippet(result['content'])}", highlight=False, markup=False)
    console.print(f"[dim]{len(results)} results in {data.get('took_ms', 0)} ms[/dim]")
