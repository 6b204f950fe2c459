from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from somnus_core.errors import BackendError

from somnus_runtime.backends.memory._search import rank
from somnus_runtime.normalize import (
    normalize_add_result,
    normalize_memory_item,
    normalize_search_results,
)

if TYPE_CHECKING:
    from somnus_core.types import (
        AddOptions,
        AddResult,
        ListOptions,
        MemoryItem,
        SearchOptions,
    )


class InProcessMemoryStore:
    """T0 memory store: Python dict, no extraction model.

    Every user message becomes a memory verbatim. A message whose text
    already exists for the same user is reported as ``NOOP``.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def _owned(self, user_id: str, run_id: str | None = None) -> list[dict[str, Any]]:
        return [
            raw
            for raw in self._data.values()
            if raw["user_id"] == user_id
            and (run_id is None or raw.get("run_id") == run_id)
        ]

    async def add(
        self, messages: list[dict[str, str]], options: AddOptions
    ) -> AddResult:
        known = {
            raw["memory"].strip().lower(): raw
            for raw in self._owned(options.user_id)
        }
        results: list[dict[str, Any]] = []
        for msg in messages:
            if msg.get("role") != "user":
                continue
            text = (msg.get("content") or "").strip()
            if not text:
                continue
            existing = known.get(text.lower())
            if existing is not None:
                results.append({**existing, "event": "NOOP"})
                continue
            now = datetime.now(UTC).isoformat()
            raw = {
                "id": uuid.uuid4().hex,
                "memory": text,
                "user_id": options.user_id,
                "run_id": options.run_id,
                "created_at": now,
                "updated_at": now,
            }
            self._data[raw["id"]] = raw
            known[text.lower()] = raw
            results.append({**raw, "event": "ADD"})
        return normalize_add_result({"results": results})

    async def search(self, query: str, options: SearchOptions) -> list[MemoryItem]:
        owned = {raw["id"]: raw for raw in self._owned(options.user_id, options.run_id)}
        ranked = rank(query, {i: raw["memory"] for i, raw in owned.items()})
        limit = options.limit or options.top_k or 100
        return normalize_search_results([
            {**owned[doc_id], "score": score}
            for doc_id, score in ranked[:limit]
        ])

    async def get(self, memory_id: str) -> MemoryItem:
        raw = self._data.get(memory_id)
        if raw is None:
            raise BackendError(f"Memory not found: {memory_id}")
        return normalize_memory_item(raw)

    async def get_all(self, options: ListOptions) -> list[MemoryItem]:
        owned = self._owned(options.user_id, options.run_id)
        if options.page_size is not None:
            owned = owned[:options.page_size]
        return normalize_search_results({"results": owned})

    async def delete(self, memory_id: str) -> None:
        self._data.pop(memory_id, None)
