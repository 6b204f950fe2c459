"""Reader for the chat host's native session transcripts.

The host keeps one JSONL file per session; message lines look like
``{"type": "message", "timestamp": "...", "message": {"role": ..., "content": ...}}``.
Deleted sessions are renamed with a ``.deleted.`` infix and skipped.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from somnus_core.logging import get_logger

from somnus_sleep.sanitizer import MEMORY_CONTEXT_MARKER, extract_text, strip_base64

logger = get_logger("sleep.sessions")

_MIN_TEXT_CHARS = 5


@dataclass(frozen=True, slots=True)
class SessionMessage:
    session_id: str
    timestamp: str
    role: str
    content: str


def read_host_sessions(
    sessions_dir: Path,
    since: str | None = None,
) -> list[SessionMessage]:
    """User/assistant text from every session file, in file-name order.

    Args:
        sessions_dir: Directory holding ``<session-id>.jsonl`` files.
        since: Only keep messages whose ISO timestamp is not earlier.
    """
    sessions_dir = Path(sessions_dir)
    if not sessions_dir.is_dir():
        return []

    files = sorted(
        p for p in sessions_dir.iterdir()
        if p.name.endswith(".jsonl") and ".deleted." not in p.name
    )

    results: list[SessionMessage] = []
    for path in files:
        session_id = path.name[: -len(".jsonl")]
        for line in path.read_text(encoding="utf-8").split("\n"):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except ValueError:
                continue
            message = _message_from(record, session_id, since)
            if message is not None:
                results.append(message)

    logger.debug("Read %d messages from %d sessions", len(results), len(files))
    return results


def _message_from(
    record: object, session_id: str, since: str | None
) -> SessionMessage | None:
    if not isinstance(record, dict) or record.get("type") != "message":
        return None
    msg = record.get("message")
    if not isinstance(msg, dict):
        return None

    timestamp = record.get("timestamp")
    if since and isinstance(timestamp, str) and timestamp < since:
        return None

    role = msg.get("role")
    if role not in ("user", "assistant"):
        return None

    text = extract_text(msg.get("content"), images=False)
    if len(text) < _MIN_TEXT_CHARS or MEMORY_CONTEXT_MARKER in text:
        return None

    return SessionMessage(
        session_id=session_id,
        timestamp=timestamp if isinstance(timestamp, str) and timestamp
        else datetime.now(UTC).isoformat(),
        role=role,
        content=strip_base64(text),
    )
