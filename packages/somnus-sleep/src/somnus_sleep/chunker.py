from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from somnus_core.types import LogEntry, LogMessage


def _speaker(msg: LogMessage) -> str:
    if msg.role == "user":
        return "USER"
    if msg.role == "tool":
        return f"TOOL({msg.tool_name or 'unknown'})"
    return "ASSISTANT"


def render_entry(entry: LogEntry) -> str:
    """Render one entry as a header, one line per message and a blank line."""
    lines = [
        f"--- Session: {entry.session_id} | User: {entry.user_id} | {entry.ts} ---"
    ]
    lines.extend(f"{_speaker(m)}: {m.content}" for m in entry.messages)
    return "\n".join(lines) + "\n\n"


def chunk_for_analysis(
    entries: list[LogEntry],
    max_chunk_chars: int = 4000,
) -> list[str]:
    """Group rendered entries into chunks of at most *max_chunk_chars*.

    Entries are never split: an entry larger than the limit becomes a
    chunk of its own.
    """
    chunks: list[str] = []
    current = ""

    for entry in entries:
        text = render_entry(entry)
        if current and len(current) + len(text) > max_chunk_chars:
            chunks.append(current)
            current = text
        else:
            current += text

    if current.strip():
        chunks.append(current)

    return chunks
