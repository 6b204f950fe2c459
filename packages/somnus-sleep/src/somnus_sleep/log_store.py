"""Cold storage: append-only daily JSONL logs plus a processed-date watermark.

Layout inside the log directory::

    2026-02-07.jsonl   one LogEntry JSON object per line
    .processed         one processed date per line (append-only)
"""
from __future__ import annotations

import json
import os
import re
from datetime import UTC, datetime
from pathlib import Path

from somnus_core.logging import get_logger
from somnus_core.types import DailyLog, LogEntry, SearchHit

logger = get_logger("sleep.log_store")

PROCESSED_FILE = ".processed"
LOG_SUFFIX = ".jsonl"
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_CONTEXT_CHARS = 100


def today_utc() -> str:
    return datetime.now(UTC).date().isoformat()


def log_path(log_dir: Path, date: str) -> Path:
    return Path(log_dir) / f"{date}{LOG_SUFFIX}"


def _append_line(path: Path, line: str) -> None:
    # One O_APPEND write per line keeps concurrent appenders from interleaving.
    fd = os.open(path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
    try:
        os.write(fd, line.encode("utf-8"))
    finally:
        os.close(fd)


# ── Writing ──────────────────────────────────────────────────


def append_to_log(log_dir: Path, entry: LogEntry) -> Path:
    """Append *entry* to its day's log, creating the directory if needed.

    Returns:
        Path of the daily log file written to.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_path(log_dir, entry.date)
    _append_line(path, json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")
    return path


def mark_processed(log_dir: Path, date: str) -> None:
    _append_line(Path(log_dir) / PROCESSED_FILE, date + "\n")


# ── Reading ──────────────────────────────────────────────────


def read_daily_log(path: Path) -> list[LogEntry]:
    """Parse a daily log, skipping lines that are not valid entries."""
    path = Path(path)
    if not path.exists():
        return []

    entries: list[LogEntry] = []
    for raw in path.read_bytes().split(b"\n"):
        if not raw.strip():
            continue
        try:
            entries.append(LogEntry.from_dict(json.loads(raw.decode("utf-8"))))
        except (ValueError, KeyError, TypeError, AttributeError):
            logger.debug("Skipping malformed line in %s", path.name)
    return entries


def get_processed_dates(log_dir: Path) -> set[str]:
    path = Path(log_dir) / PROCESSED_FILE
    if not path.exists():
        return set()
    try:
        content = path.read_bytes()
    except OSError:
        logger.debug("Failed to read %s", path, exc_info=True)
        return set()

    dates: set[str] = set()
    for raw in content.split(b"\n"):
        try:
            line = raw.decode("utf-8").strip()
        except UnicodeDecodeError:
            logger.debug("Skipping undecodable line in %s", path.name)
            continue
        if line:
            dates.add(line)
    return dates


def list_daily_logs(log_dir: Path) -> list[DailyLog]:
    """All daily log files, oldest first."""
    log_dir = Path(log_dir)
    if not log_dir.is_dir():
        return []
    logs = [
        DailyLog(date=p.name[: -len(LOG_SUFFIX)], path=p)
        for p in log_dir.iterdir()
        if p.name.endswith(LOG_SUFFIX) and DATE_RE.match(p.name[: -len(LOG_SUFFIX)])
    ]
    return sorted(logs, key=lambda log: log.date)


def find_unprocessed_logs(
    log_dir: Path, today: str | None = None
) -> list[DailyLog]:
    """Daily logs still awaiting maintenance, oldest first.

    Today's log (UTC) is still being written and is never returned.
    """
    today = today or today_utc()
    processed = get_processed_dates(log_dir)
    return [
        log
        for log in list_daily_logs(log_dir)
        if log.date != today and log.date not in processed
    ]


# ── Search ───────────────────────────────────────────────────


def _match_context(text: str, match: re.Match[str]) -> str:
    start = max(0, match.start() - _CONTEXT_CHARS)
    end = min(len(text), match.end() + _CONTEXT_CHARS)
    return (
        ("..." if start > 0 else "")
        + text[start:end]
        + ("..." if end < len(text) else "")
    )


def search_logs(
    log_dir: Path,
    query: str,
    date_from: str | None = None,
    date_to: str | None = None,
    limit: int = 5,
) -> list[SearchHit]:
    """Case-insensitive substring search, newest day first.

    At most one hit per entry (its first matching message). Date bounds
    are inclusive and compared against the file's date.
    """
    pattern = re.compile(re.escape(query), re.IGNORECASE)
    hits: list[SearchHit] = []

    logs = [
        log
        for log in reversed(list_daily_logs(log_dir))
        if not (date_from and log.date < date_from)
        and not (date_to and log.date > date_to)
    ]

    for log in logs:
        if len(hits) >= limit:
            break
        for entry in read_daily_log(log.path):
            if len(hits) >= limit:
                break
            for msg in entry.messages:
                match = pattern.search(msg.content)
                if match:
                    hits.append(SearchHit(
                        entry=entry,
                        match_context=_match_context(msg.content, match),
                    ))
                    break

    return hits
