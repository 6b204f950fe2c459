from __future__ import annotations

import pytest
from somnus_core.errors import BackendError
from somnus_core.types import AddOptions, ListOptions, MemoryEvent, SearchOptions
from somnus_runtime.backends.memory import InProcessMemoryStore
from somnus_runtime.backends.memory._search import rank, tokenize
from somnus_runtime.protocols import MemoryStore

ALICE = AddOptions(user_id="alice")


class TestInProcessMemoryStore:
    async def test_satisfies_protocol(self, memory_store):
        assert isinstance(memory_store, MemoryStore)

    async def test_add_keeps_user_messages_only(self, memory_store):
        result = await memory_store.add(
            [
                {"role": "user", "content": "I live in Berlin"},
                {"role": "assistant", "content": "Nice city"},
                {"role": "user", "content": "   "},
            ],
            ALICE,
        )
        assert [r.memory for r in result.results] == ["I live in Berlin"]
        assert result.added == 1

    async def test_duplicate_is_noop(self, memory_store):
        await memory_store.add([{"role": "user", "content": "I like tea"}], ALICE)
        result = await memory_store.add([{"role": "user", "content": "i like TEA"}], ALICE)
        assert [r.event for r in result.results] == [MemoryEvent.NOOP]
        assert result.added == 0
        assert len(await memory_store.get_all(ListOptions(user_id="alice"))) == 1

    async def test_users_are_isolated(self, memory_store):
        await memory_store.add([{"role": "user", "content": "I like tea"}], ALICE)
        await memory_store.add(
            [{"role": "user", "content": "I like tea"}], AddOptions(user_id="bob")
        )
        assert len(await memory_store.get_all(ListOptions(user_id="alice"))) == 1
        assert len(await memory_store.get_all(ListOptions(user_id="bob"))) == 1

    async def test_search_ranks_by_overlap(self, memory_store):
        await memory_store.add(
            [
                {"role": "user", "content": "The nginx server listens on port 8080"},
                {"role": "user", "content": "User prefers green tea"},
                {"role": "user", "content": "The database server is postgres"},
            ],
            ALICE,
        )
        hits = await memory_store.search("nginx port", SearchOptions(user_id="alice"))
        assert hits[0].memory == "The nginx server listens on port 8080"
        assert hits[0].score is not None
        assert all("tea" not in h.memory for h in hits)

    async def test_search_limit(self, memory_store):
        await memory_store.add(
            [{"role": "user", "content": f"server number {i}"} for i in range(5)],
            ALICE,
        )
        hits = await memory_store.search("server", SearchOptions(user_id="alice", limit=2))
        assert len(hits) == 2

    async def test_get_and_delete(self, memory_store):
        result = await memory_store.add([{"role": "user", "content": "Remember me"}], ALICE)
        memory_id = result.results[0].id

        item = await memory_store.get(memory_id)
        assert item.memory == "Remember me"
        assert item.user_id == "alice"

        await memory_store.delete(memory_id)
        with pytest.raises(BackendError):
            await memory_store.get(memory_id)

    async def test_page_size(self, memory_store):
        await memory_store.add(
            [{"role": "user", "content": f"fact {i}"} for i in range(4)], ALICE
        )
        items = await memory_store.get_all(ListOptions(user_id="alice", page_size=3))
        assert len(items) == 3


class TestRank:
    def test_tokenize_drops_stopwords(self):
        assert tokenize("The server is on a VPS") == ["server", "vps"]

    def test_no_overlap(self):
        assert rank("kubernetes", {"a": "green tea"}) == []

    def test_rare_terms_weigh_more(self):
        docs = {"a": "server nginx", "b": "server postgres", "c": "server redis"}
        ranked = rank("server nginx", docs)
        assert ranked[0][0] == "a"
        assert len(ranked) == 3
