from __future__ import annotations

from rich.table import Table
from somnus_sleep.log_store import get_processed_dates, list_daily_logs

from somnus_cli.commands._common import console, load_config


def stats_command() -> None:
    """Show cold-storage and digest statistics."""
    config = load_config()
    logs = list_daily_logs(config.log_dir)
    processed = get_processed_dates(config.log_dir)
    pending = [log for log in logs if log.date not in processed]
    digests = (
        sorted(config.digest_dir.glob("*.md"))
        if config.digest_dir.is_dir() else []
    )

    table = Table(title="Somnus", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Memory mode", config.memory.mode)
    table.add_row("Analysis", config.sleep.analysis)
    table.add_row("Log directory", str(config.log_dir))
    table.add_row("Daily logs", str(len(logs)))
    table.add_row(
        "Date range",
        f"{logs[0].date} .. {logs[-1].date}" if logs else "-",
    )
    table.add_row("Processed", str(len(processed)))
    table.add_row("Awaiting maintenance", str(len(pending)))
    table.add_row("Digests", str(len(digests)))
    console.print(table)
