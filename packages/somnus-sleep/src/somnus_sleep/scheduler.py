"""Sleep mode: offline maintenance of long-term memory.

A run discovers closed-out daily logs that were never processed and
walks each day, oldest first, through::

    load → chunk → analyze/extract → promote → digest → mark processed

Days are handled one at a time. A day is marked processed only after
its promotion and digest both succeeded; any failure leaves it
unprocessed so the next run retries it in full, and the run moves on.

Two analysis strategies exist:

- ``store``: hand the day's most recent messages to the memory store's
  own fact extraction (the store decides what to add or update).
- ``oracle``: analyze every chunk with the text oracle, parse the
  structured findings, and promote each hot fact individually.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from somnus_core.errors import InvalidDateError, MaintenanceError
from somnus_core.logging import get_logger
from somnus_core.types import DailyLog, DigestStats, MemoryEvent, SleepAnalysis
from somnus_runtime.options import build_add_options, build_list_options

from somnus_sleep.analysis import (
    build_sleep_analysis_prompt,
    merge_analyses,
    parse_sleep_analysis,
)
from somnus_sleep.chunker import chunk_for_analysis
from somnus_sleep.digest import save_digest
from somnus_sleep.log_store import (
    DATE_RE,
    find_unprocessed_logs,
    log_path,
    mark_processed,
    read_daily_log,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from somnus_core.config import SomnusConfig
    from somnus_core.types import AddOptions, LogEntry
    from somnus_runtime.protocols import MemoryStore, TextOracle

logger = get_logger("sleep.scheduler")


class DayOutcome(enum.Enum):
    PROCESSED = "processed"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(slots=True)
class DayReport:
    """What happened to one date during a run."""
    date: str
    outcome: DayOutcome = DayOutcome.FAILED
    entries: int = 0
    chunks: int = 0
    added: int = 0
    updated: int = 0
    digest_path: Path | None = None
    error: str | None = None


@dataclass(slots=True)
class MaintenanceReport:
    candidates: list[DailyLog] = field(default_factory=list)
    dry_run: bool = False
    days: list[DayReport] = field(default_factory=list)

    def count(self, outcome: DayOutcome) -> int:
        return sum(1 for d in self.days if d.outcome is outcome)

    @property
    def added(self) -> int:
        return sum(d.added for d in self.days)

    @property
    def updated(self) -> int:
        return sum(d.updated for d in self.days)


def validate_date(date: str) -> str:
    if not DATE_RE.match(date):
        raise InvalidDateError(
            f'Invalid date format: "{date}". Expected YYYY-MM-DD.'
        )
    return date


class MaintenanceScheduler:
    """Drives sleep-mode maintenance over unprocessed daily logs.

    Usage::

        scheduler = MaintenanceScheduler(store, config, oracle=oracle)
        report = await scheduler.run()
    """

    def __init__(
        self,
        store: MemoryStore,
        config: SomnusConfig,
        oracle: TextOracle | None = None,
        *,
        user_id: str | None = None,
        on_day: Callable[[DayReport], None] | None = None,
    ) -> None:
        self._store = store
        self._config = config
        self._oracle = oracle
        self._user_id = user_id or config.memory.user_id
        self._on_day = on_day

    # ── Run ────────────────────────────────────────────

    async def run(
        self,
        date: str | None = None,
        *,
        dry_run: bool = False,
        today: str | None = None,
    ) -> MaintenanceReport:
        """Process one explicit date, or every unprocessed date.

        Args:
            date: Process only this day (YYYY-MM-DD), even if it was
                processed before.
            dry_run: Only report the candidate dates.
            today: Override the current UTC date (excluded from discovery).

        Raises:
            InvalidDateError: *date* is not YYYY-MM-DD.
            MaintenanceError: The digest directory cannot be created.
        """
        log_dir = self._config.log_dir
        if date is not None:
            candidates = [DailyLog(date=validate_date(date), path=log_path(log_dir, date))]
        else:
            candidates = find_unprocessed_logs(log_dir, today=today)

        report = MaintenanceReport(candidates=candidates, dry_run=dry_run)
        logger.info(
            "Found %d unprocessed log(s)%s",
            len(candidates),
            " (dry run)" if dry_run else "",
        )
        if dry_run or not candidates:
            return report

        if self._config.sleep.digest_enabled:
            try:
                self._config.digest_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise MaintenanceError(
                    f"Cannot create digest directory {self._config.digest_dir}: {exc}"
                ) from exc

        existing = await self._existing_memories()

        for log in candidates:
            day = await self._process_day(log, existing)
            report.days.append(day)
            if self._on_day is not None:
                self._on_day(day)

        logger.info(
            "Sleep maintenance complete: %d processed, %d empty, %d failed",
            report.count(DayOutcome.PROCESSED),
            report.count(DayOutcome.EMPTY),
            report.count(DayOutcome.FAILED),
        )
        return report

    async def _existing_memories(self) -> list[str]:
        """Snapshot of stored memories used as dedup context for the run."""
        try:
            items = await self._store.get_all(
                build_list_options(self._config.memory, self._user_id)
            )
        except Exception:
            logger.warning(
                "Could not fetch existing memories for dedup",
                exc_info=True,
            )
            return []
        return [item.memory for item in items if item.memory]

    # ── Per day ────────────────────────────────────────

    async def _process_day(self, log: DailyLog, existing: list[str]) -> DayReport:
        day = DayReport(date=log.date)
        logger.info("Processing %s", log.date)

        try:
            entries = read_daily_log(log.path)
            day.entries = len(entries)
            if not entries:
                logger.info("No entries in %s; marking as processed", log.date)
                mark_processed(self._config.log_dir, log.date)
                day.outcome = DayOutcome.EMPTY
                return day

            chunks = chunk_for_analysis(entries, self._config.sleep.max_chunk_chars)
            day.chunks = len(chunks)
            logger.info(
                "%s: %d entries in %d chunk(s)", log.date, len(entries), len(chunks)
            )

            if self._oracle is not None:
                await self._analyze_with_oracle(self._oracle, day, chunks, existing)
            else:
                await self._extract_with_store(day, entries)

            mark_processed(self._config.log_dir, log.date)
        except Exception as exc:
            logger.error(
                "Maintenance failed for %s; will retry on next run",
                log.date,
                exc_info=True,
            )
            day.outcome = DayOutcome.FAILED
            day.error = str(exc) or type(exc).__name__
            return day

        day.outcome = DayOutcome.PROCESSED
        logger.info(
            "%s: promoted %d new, updated %d existing",
            log.date,
            day.added,
            day.updated,
        )
        return day

    async def _extract_with_store(self, day: DayReport, entries: list[LogEntry]) -> None:
        messages = [
            {"role": m.role, "content": m.content}
            for e in entries
            for m in e.messages
            if m.role in ("user", "assistant")
        ]
        if not messages:
            return

        recent = messages[-self._config.sleep.recent_message_limit:]
        result = await self._store.add(recent, self._add_options())
        day.added, day.updated = result.added, result.updated

        analysis = SleepAnalysis(
            hot_facts=tuple(r.memory for r in result.with_event(MemoryEvent.ADD)),
            digest=(
                f"Processed {len(entries)} conversations from {day.date}. "
                f"Extracted {day.added} new facts and updated "
                f"{day.updated} existing memories."
            ),
        )
        self._write_digest(day, analysis)

    async def _analyze_with_oracle(
        self,
        oracle: TextOracle,
        day: DayReport,
        chunks: list[str],
        existing: list[str],
    ) -> None:
        analyses = []
        for i, chunk in enumerate(chunks, 1):
            prompt = build_sleep_analysis_prompt(day.date, chunk, existing)
            logger.debug(
                "%s: analyzing chunk %d/%d (%d chars)",
                day.date, i, len(chunks), len(chunk),
            )
            response = await oracle.complete(prompt)
            analyses.append(parse_sleep_analysis(response))
        analysis = merge_analyses(analyses)

        promoted: list[str] = []
        for fact in analysis.hot_facts:
            result = await self._store.add(
                [{"role": "user", "content": fact}], self._add_options()
            )
            day.added += result.added
            day.updated += result.updated
            promoted.extend(r.memory for r in result.with_event(MemoryEvent.ADD))

        self._write_digest(day, analysis, DigestStats(
            total_hot_memories=len(existing) + day.added,
            total_cold_chunks=len(chunks),
        ))
        # Later days in this run should not re-extract what was just promoted
        existing.extend(promoted)

    def _write_digest(
        self,
        day: DayReport,
        analysis: SleepAnalysis,
        stats: DigestStats | None = None,
    ) -> None:
        if not self._config.sleep.digest_enabled:
            return
        day.digest_path = save_digest(self._config.digest_dir, day.date, analysis, stats)
        logger.info("Digest saved to %s", day.digest_path)

    def _add_options(self) -> AddOptions:
        return build_add_options(self._config.memory, self._user_id)
