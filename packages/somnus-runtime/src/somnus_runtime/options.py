from __future__ import annotations

from typing import TYPE_CHECKING

from somnus_core.types import AddOptions, ListOptions, SearchOptions

if TYPE_CHECKING:
    from somnus_core.config import MemoryStoreConfig


def categories_to_list(categories: dict[str, str]) -> list[dict[str, str]]:
    return [{name: desc} for name, desc in categories.items()]


def build_add_options(
    config: MemoryStoreConfig,
    user_id: str | None = None,
    run_id: str | None = None,
) -> AddOptions:
    """Options for ``MemoryStore.add``.

    Platform mode sends extraction instructions, categories and the
    v1.1 output format along; open-source mode only forwards the graph
    flag when it is switched on.
    """
    user = user_id or config.user_id
    if config.mode == "platform":
        return AddOptions(
            user_id=user,
            run_id=run_id,
            custom_instructions=config.custom_instructions,
            custom_categories=categories_to_list(config.custom_categories),
            enable_graph=config.enable_graph,
            output_format="v1.1",
        )
    return AddOptions(
        user_id=user,
        run_id=run_id,
        enable_graph=True if config.enable_graph else None,
    )


def build_search_options(
    config: MemoryStoreConfig,
    user_id: str | None = None,
    limit: int | None = None,
    run_id: str | None = None,
) -> SearchOptions:
    top_k = limit if limit is not None else config.top_k
    return SearchOptions(
        user_id=user_id or config.user_id,
        run_id=run_id,
        top_k=top_k,
        limit=top_k,
        threshold=config.search_threshold,
        keyword_search=True,
        reranking=True,
    )


def build_list_options(
    config: MemoryStoreConfig,
    user_id: str | None = None,
) -> ListOptions:
    return ListOptions(user_id=user_id or config.user_id)
