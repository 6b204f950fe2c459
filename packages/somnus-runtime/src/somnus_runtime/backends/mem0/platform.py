from __future__ import annotations

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


class Mem0PlatformStore(LazyClient):
    """Hosted mem0 platform via ``mem0.AsyncMemoryClient``."""

    def __init__(
        self,
        api_key: str,
        org_id: str | None = None,
        project_id: str | None = None,
    ) -> None:
        super().__init__()
        self._api_key = api_key
        self._org_id = org_id
        self._project_id = project_id

    async def _create(self) -> Any:
        from mem0 import AsyncMemoryClient

        return AsyncMemoryClient(**drop_none(
            api_key=self._api_key,
            org_id=self._org_id,
            project_id=self._project_id,
        ))

    async def add(
        self, messages: list[dict[str, str]], options: AddOptions
    ) -> AddResult:
        client = await self.client()
        raw = await client.add(messages, **drop_none(
            user_id=options.user_id,
            run_id=options.run_id,
            custom_instructions=options.custom_instructions,
            custom_categories=options.custom_categories,
            enable_graph=options.enable_graph or None,
            output_format=options.output_format,
        ))
        return normalize_add_result(raw)

    async def search(self, query: str, options: SearchOptions) -> list[MemoryItem]:
        client = await self.client()
        raw = await client.search(query, **drop_none(
            user_id=options.user_id,
            run_id=options.run_id,
            top_k=options.top_k,
            threshold=options.threshold,
            keyword_search=options.keyword_search,
            rerank=options.reranking,
        ))
        return normalize_search_results(raw)

    async def get(self, memory_id: str) -> MemoryItem:
        client = await self.client()
        return normalize_memory_item(await client.get(memory_id))

    async def get_all(self, options: ListOptions) -> list[MemoryItem]:
        client = await self.client()
        raw = await client.get_all(**drop_none(
            user_id=options.user_id,
            run_id=options.run_id,
            page_size=options.page_size,
        ))
        return normalize_search_results(raw)

    async def delete(self, memory_id: str) -> None:
        client = await self.client()
        await client.delete(memory_id)
