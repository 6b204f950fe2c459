"""``somnus sleep``: run memory maintenance over unprocessed daily logs.

Meant to be invoked by hand or from cron, typically once a night.
"""
from __future__ import annotations

import asyncio

import typer
from rich.markup import escape
from rich.table import Table
from somnus_core.errors import ConfigError, MaintenanceError
from somnus_runtime.builder import RuntimeBuilder
from somnus_sleep.scheduler import (
    DayOutcome,
    DayReport,
    MaintenanceReport,
    MaintenanceScheduler,
)

from somnus_cli.commands._common import console, load_config

_OUTCOME_STYLE = {
    DayOutcome.PROCESSED: "green",
    DayOutcome.EMPTY: "dim",
    DayOutcome.FAILED: "red",
}


def _print_day(day: DayReport) -> None:
    style = _OUTCOME_STYLE[day.outcome]
    if day.outcome is DayOutcome.FAILED:
        console.print(
            f"  [{style}]{day.date}: analysis failed[/{style}] ({escape(day.error or '')})"
            " - will retry on next run"
        )
    elif day.outcome is DayOutcome.EMPTY:
        console.print(f"  [{style}]{day.date}: no entries, marked as processed[/{style}]")
    else:
        console.print(
            f"  [{style}]{day.date}[/{style}]: {day.entries} entries,"
            f" {day.chunks} chunk(s), promoted {day.added} new,"
            f" updated {day.updated} existing"
        )
        if day.digest_path is not None:
            console.print(f"    [dim]Digest saved to {day.digest_path}[/dim]")


def _print_summary(report: MaintenanceReport) -> None:
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Processed", justify="right")
    table.add_column("Empty", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Added", justify="right")
    table.add_column("Updated", justify="right")
    table.add_row(
        str(report.count(DayOutcome.PROCESSED)),
        str(report.count(DayOutcome.EMPTY)),
        str(report.count(DayOutcome.FAILED)),
        str(report.added),
        str(report.updated),
    )
    console.print()
    console.print(table)


def sleep_command(
    date: str | None = typer.Option(
        None, "--date", help="Process a specific date (e.g. 2026-02-07)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would be processed without making changes"
    ),
) -> None:
    """Process unanalyzed conversation logs into long-term memory."""
    config = load_config()
    if not config.sleep.enabled:
        console.print(
            "[yellow]Sleep mode is disabled.[/yellow] "
            "Set [bold]enabled = true[/bold] under \\[sleep] in somnus.toml."
        )
        raise typer.Exit(1)

    console.print("[bold]Somnus sleep mode: memory maintenance[/bold]\n")

    try:
        ctx = RuntimeBuilder(config).build()
    except (ConfigError, ValueError) as exc:
        console.print(f"[red]Cannot start maintenance:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    scheduler = MaintenanceScheduler(
        ctx.memory_store, config, ctx.oracle, on_day=_print_day
    )
    try:
        report = asyncio.run(scheduler.run(date, dry_run=dry_run))
    except MaintenanceError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    if not report.candidates:
        console.print("No unprocessed logs found. All caught up!")
        return

    if dry_run:
        console.print(f"Found {len(report.candidates)} unprocessed log(s):\n")
        for log in report.candidates:
            console.print(f"  - {log.date}")
        console.print("\n[yellow][DRY RUN][/yellow] Would process the above logs. Exiting.")
        return

    _print_summary(report)
    if report.count(DayOutcome.FAILED):
        raise typer.Exit(1)
