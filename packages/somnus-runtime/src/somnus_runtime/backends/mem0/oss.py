from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from somnus_runtime.backends.mem0._client import LazyClient, drop_none
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

# Accept the host's camelCase spellings alongside mem0's own keys
_KEY_ALIASES = {
    "vectorStore": "vector_store",
    "graphStore": "graph_store",
    "historyDbPath": "history_db_path",
}


def build_oss_config(
    oss: dict[str, Any],
    custom_prompt: str | None = None,
    base_dir: Path | None = None,
) -> dict[str, Any]:
    """Translate the ``[memory.oss]`` table into a mem0 ``MemoryConfig`` dict."""
    raw = {_KEY_ALIASES.get(k, k): v for k, v in oss.items()}
    config: dict[str, Any] = {"version": "v1.1"}
    for key in ("embedder", "vector_store", "llm", "graph_store"):
        if raw.get(key):
            config[key] = raw[key]
    history = raw.get("history_db_path")
    if history:
        path = Path(history).expanduser()
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        config["history_db_path"] = str(path)
    if custom_prompt:
        config["custom_fact_extraction_prompt"] = custom_prompt
    return config


class Mem0OSSStore(LazyClient):
    """Self-hosted mem0 via ``mem0.AsyncMemory``."""

    def __init__(self, config: dict[str, Any]) -> None:
        super().__init__()
        self._config = config

    async def _create(self) -> Any:
        from mem0 import AsyncMemory
        from mem0.configs.base import MemoryConfig

        return AsyncMemory(config=MemoryConfig(**self._config))

    async def add(
        self, messages: list[dict[str, str]], options: AddOptions
    ) -> AddResult:
        memory = await self.client()
        raw = await memory.add(messages, **drop_none(
            user_id=options.user_id,
            run_id=options.run_id,
        ))
        return normalize_add_result(raw)

    async def search(self, query: str, options: SearchOptions) -> list[MemoryItem]:
        memory = await self.client()
        limit = options.limit if options.limit is not None else options.top_k
        raw = await memory.search(query, **drop_none(
            user_id=options.user_id,
            run_id=options.run_id,
            limit=limit,
            threshold=options.threshold,
        ))
        return normalize_search_results(raw)

    async def get(self, memory_id: str) -> MemoryItem:
        memory = await self.client()
        return normalize_memory_item(await memory.get(memory_id))

    async def get_all(self, options: ListOptions) -> list[MemoryItem]:
        memory = await self.client()
        raw = await memory.get_all(**drop_none(
            user_id=options.user_id,
            run_id=options.run_id,
            limit=options.page_size,
        ))
        return normalize_search_results(raw)

    async def delete(self, memory_id: str) -> None:
        memory = await self.client()
        await memory.delete(memory_id)
