from __future__ import annotations

import typer
from rich.panel import Panel
from rich.text import Text
from somnus_sleep.tools import search_logs_tool

from somnus_cli.commands._common import console, load_config


def search_logs_command(
    query: str = typer.Argument(..., help="Text to search for (case-insensitive)"),
    date_from: str | None = typer.Option(
        None, "--from", help="Earliest date to search (YYYY-MM-DD)"
    ),
    date_to: str | None = typer.Option(
        None, "--to", help="Latest date to search (YYYY-MM-DD)"
    ),
    limit: int = typer.Option(5, "--limit", "-n", min=1, help="Maximum matches"),
) -> None:
    """Search raw conversation logs for exact details."""
    config = load_config()
    output = search_logs_tool(config, query, date_from, date_to, limit)

    if "error" in output.details:
        console.print(Text(output.text, style="red"))
        raise typer.Exit(1)
    if not output.details.get("count"):
        console.print(Text(output.text, style="yellow"))
        return

    console.print(f"[bold]Found {output.details['count']} match(es)[/bold]\n")
    for i, hit in enumerate(output.details["results"], 1):
        console.print(Panel(
            Text(hit["match_context"]),
            title=f"{i}. {hit['date']} | {hit['user_id']}",
            subtitle=f"[dim]session {hit['session_id']}[/dim]",
            title_align="left",
            subtitle_align="right",
        ))
