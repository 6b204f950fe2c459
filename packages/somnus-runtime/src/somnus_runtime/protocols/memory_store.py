from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from somnus_core.types import (
        AddOptions,
        AddResult,
        ListOptions,
        MemoryItem,
        SearchOptions,
    )


@runtime_checkable
class MemoryStore(Protocol):
    """Long-term fact store with its own extraction on ``add``."""

    async def add(
        self, messages: list[dict[str, str]], options: AddOptions
    ) -> AddResult: ...
    async def search(self, query: str, options: SearchOptions) -> list[MemoryItem]: ...
    async def get(self, memory_id: str) -> MemoryItem: ...
    async def get_all(self, options: ListOptions) -> list[MemoryItem]: ...
    async def delete(self, memory_id: str) -> None: ...
