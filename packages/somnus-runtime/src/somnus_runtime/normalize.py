"""Normalization of raw memory-backend payloads.

The hosted platform and the self-hosted library disagree on response
shapes: snake_case vs camelCase keys, flat arrays vs ``{"results": [...]}``
wrappers, and where the change event lives. Every backend funnels its raw
responses through this module so the rest of somnus only ever sees
:class:`MemoryItem` and :class:`AddResult`.
"""
from __future__ import annotations

from typing import Any

from somnus_core.types import AddResult, AddResultItem, MemoryEvent, MemoryItem


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _unwrap(raw: Any) -> list[Any]:
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict) and isinstance(raw.get("results"), list):
        return raw["results"]
    return []


def _event(raw: dict[str, Any]) -> MemoryEvent:
    value = raw.get("event")
    if value is None and isinstance(raw.get("metadata"), dict):
        value = raw["metadata"].get("event")
    try:
        return MemoryEvent(str(value).upper()) if value else MemoryEvent.ADD
    except ValueError:
        return MemoryEvent.ADD


def normalize_memory_item(raw: Any) -> MemoryItem:
    if not isinstance(raw, dict):
        return MemoryItem(id="", memory="")
    categories = raw.get("categories")
    metadata = raw.get("metadata")
    score = raw.get("score")
    return MemoryItem(
        id=str(_first(raw, "id", "memory_id") or ""),
        memory=str(_first(raw, "memory", "text", "content") or ""),
        user_id=_first(raw, "user_id", "userId"),
        score=float(score) if isinstance(score, (int, float)) else None,
        categories=tuple(categories) if isinstance(categories, list) else None,
        metadata=metadata if isinstance(metadata, dict) else None,
        created_at=_first(raw, "created_at", "createdAt"),
        updated_at=_first(raw, "updated_at", "updatedAt"),
    )


def normalize_search_results(raw: Any) -> list[MemoryItem]:
    """Platform search returns a flat array, self-hosted wraps it."""
    return [normalize_memory_item(r) for r in _unwrap(raw)]


def normalize_add_result(raw: Any) -> AddResult:
    items = []
    for r in _unwrap(raw):
        if not isinstance(r, dict):
            continue
        items.append(AddResultItem(
            id=str(_first(r, "id", "memory_id") or ""),
            memory=str(_first(r, "memory", "text") or ""),
            event=_event(r),
        ))
    return AddResult(results=tuple(items))
