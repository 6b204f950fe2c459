"""Cleaning of raw host conversation turns before they are logged.

Drops system prompts and previously injected memory context, collapses
content blocks to text, scrubs inline base64 payloads and truncates
oversized tool output.
"""
from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from somnus_core.types import LogEntry, LogMessage

MEMORY_CONTEXT_MARKER = "<relevant-memories>"

_BASE64_DATA_URI = re.compile(
    r"data:[a-zA-Z]+/[a-zA-Z]+;base64,[A-Za-z0-9+/=]{100,}"
)


def strip_base64(text: str) -> str:
    return _BASE64_DATA_URI.sub("[base64-data]", text)


def extract_text(content: Any, *, images: bool = True) -> str:
    """Flatten a string or a list of content blocks into plain text."""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    parts: list[str] = []
    for block in content:
        if not isinstance(block, dict):
            continue
        kind = block.get("type")
        if kind == "text" and isinstance(block.get("text"), str):
            parts.append(block["text"])
        elif images and kind in ("image", "image_url"):
            parts.append("[image]")
    return "\n".join(parts)


def clean_messages(
    messages: list[Any],
    max_tool_result_chars: int = 500,
) -> list[LogMessage]:
    """Reduce raw host messages to loggable user/assistant/tool text."""
    cleaned: list[LogMessage] = []

    for msg in messages:
        if not isinstance(msg, dict):
            continue
        role = msg.get("role")
        if not role or not isinstance(role, str) or role == "system":
            continue

        text = extract_text(msg.get("content"))
        if not text:
            continue
        if MEMORY_CONTEXT_MARKER in text:
            continue

        text = strip_base64(text)

        if role == "tool" and len(text) > max_tool_result_chars:
            text = text[:max_tool_result_chars] + " [truncated]"

        if role in ("user", "tool"):
            clean_role = role
        else:
            clean_role = "assistant"

        tool_name = msg.get("name")
        cleaned.append(LogMessage(
            role=clean_role,
            content=text,
            tool_name=tool_name if role == "tool" and isinstance(tool_name, str) else None,
        ))

    return cleaned


def build_log_entry(
    messages: list[Any],
    user_id: str,
    channel: str,
    session_id: str,
    max_tool_result_chars: int = 500,
) -> LogEntry | None:
    """Clean *messages* and stamp them as a log entry; None if nothing survives."""
    cleaned = clean_messages(messages, max_tool_result_chars)
    if not cleaned:
        return None
    return LogEntry(
        ts=datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        user_id=user_id,
        channel=channel,
        session_id=session_id,
        messages=tuple(cleaned),
    )
