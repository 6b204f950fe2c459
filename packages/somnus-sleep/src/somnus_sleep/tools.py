"""Agent-facing entry points.

These wrap the sleep pipeline for callers that expect text back rather
than exceptions, e.g. a chat host exposing ``search_logs`` as a tool.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from somnus_core.logging import get_logger

from somnus_sleep.log_store import search_logs
from somnus_sleep.scheduler import MaintenanceReport, MaintenanceScheduler

if TYPE_CHECKING:
    from somnus_core.config import SomnusConfig
    from somnus_runtime.context import RuntimeContext

logger = get_logger("sleep.tools")


@dataclass(frozen=True, slots=True)
class ToolOutput:
    text: str
    details: dict[str, Any] = field(default_factory=dict)


async def run_maintenance(
    ctx: RuntimeContext,
    date: str | None = None,
    *,
    dry_run: bool = False,
) -> MaintenanceReport:
    """Run sleep maintenance with the collaborators in *ctx*."""
    scheduler = MaintenanceScheduler(ctx.memory_store, ctx.config, ctx.oracle)
    return await scheduler.run(date, dry_run=dry_run)


def search_logs_tool(
    config: SomnusConfig,
    query: str,
    date_from: str | None = None,
    date_to: str | None = None,
    limit: int = 5,
) -> ToolOutput:
    """Search raw conversation logs and format the hits for an agent."""
    try:
        hits = search_logs(config.log_dir, query, date_from, date_to, limit)
    except Exception as exc:
        logger.warning("Log search failed", exc_info=True)
        return ToolOutput(
            text=f"Log search failed: {exc}",
            details={"error": str(exc)},
        )

    if not hits:
        return ToolOutput(
            text="No matching conversation logs found.",
            details={"count": 0},
        )

    lines = [
        f"{i}. [{hit.entry.date}] {hit.entry.user_id}: ...{hit.match_context}..."
        for i, hit in enumerate(hits, 1)
    ]
    return ToolOutput(
        text=f"Found {len(hits)} conversation log matches:\n\n" + "\n\n".join(lines),
        details={
            "count": len(hits),
            "results": [
                {
                    "date": hit.entry.date,
                    "session_id": hit.entry.session_id,
                    "user_id": hit.entry.user_id,
                    "match_context": hit.match_context,
                }
                for hit in hits
            ],
        },
    )
