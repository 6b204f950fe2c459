from __future__ import annotations

import typer
from somnus_core._version import __version__
from somnus_core.logging import setup_logging

from somnus_cli.commands._common import console
from somnus_cli.commands.identity import identity_app
from somnus_cli.commands.logs import search_logs_command
from somnus_cli.commands.sleep import sleep_command
from somnus_cli.commands.stats import stats_command

app = typer.Typer(
    name="somnus",
    help="Somnus: sleep-time maintenance for chat agent memory",
    no_args_is_help=True,
)

app.command("sleep")(sleep_command)
app.command("search-logs")(search_logs_command)
app.command("stats")(stats_command)
app.add_typer(
    identity_app,
    name="identity",
    help="Manage cross-channel user identities",
)


@app.callback()
def _configure(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log progress to stderr"
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Emit logs as JSON lines"
    ),
) -> None:
    """Configure logging before any command runs."""
    setup_logging(
        "DEBUG" if verbose else None,
        json_output=json_logs,
        default="WARNING",
    )


@app.command()
def version() -> None:
    """Show the Somnus version."""
    console.print(f"somnus {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
