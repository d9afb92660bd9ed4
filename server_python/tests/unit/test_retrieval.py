"""
Retrieval Unit Tests

Long-term memory 기반 Retriever 테스트입니다.
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from agents.orchestration.retrieval import LongTermMemoryRetriever, tokenize
from context import ContextCache, MemoryStore


@pytest.fixture
def store():
    store = MemoryStore()
    store.add_long_term("Python uses indentation for blocks", importance=0.2)
    store.add_long_term("Redis is an in-memory data store", importance=0.9)
    store.add_long_term("Python packages are published to PyPI", importance=0.8)
    return store


class TestTokenize:

    def test_lowercases_and_drops_short_tokens(self):
        assert tokenize("The Cat is ON a mat!") == {"the", "cat", "mat"}

    def test_empty(self):
        assert tokenize("") == set()


class TestRank:

    def test_importance_weights_overlap(self, store):
        ranked = LongTermMemoryRetriever.rank("python packages", store.all_long_term())

        assert [entry.content for _, entry in ranked] == [
            "Python packages are published to PyPI",
            "Python uses indentation for blocks",
        ]
        assert ranked[0][0] == pytest.approx(2 * 1.8)

    def test_no_overlap_excluded(self, store):
        assert LongTermMemoryRetriever.rank("kubernetes", store.all_long_term()) == []


class TestRetrieve:

    @pytest.mark.asyncio
    async def test_formats_numbered_context(self, store):
        retriever = LongTermMemoryRetriever(store)

        context = await retriever.retrieve("Tell me about python packages")

        assert context == (
            "[1] Python packages are published to PyPI\n\n"
            "[2] Python uses indentation for blocks"
        )

    @pytest.mark.asyncio
    async def test_respects_k(self, store):
        retriever = LongTermMemoryRetriever(store)

        context = await retriever.retrieve("python", k=1)

        assert context == "[1] Python packages are published to PyPI"

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self, store):
        retriever = LongTermMemoryRetriever(store)
        assert await retriever.retrieve("zzz unknown") is None

    @pytest.mark.asyncio
    async def test_failure_returns_none(self):
        class BrokenStore:
            def all_long_term(self):
                raise RuntimeError("storage offline")

        retriever = LongTermMemoryRetriever(BrokenStore())
        assert await retriever.retrieve("python") is None


class TestCaching:

    @pytest.mark.asyncio
    async def test_results_are_cached_until_invalidated(self, store):
        cache = ContextCache(ttl_seconds=60, max_size=10)
        retriever = LongTermMemoryRetriever(store, cache=cache)

        first = await retriever.retrieve("redis store")
        store.add_long_term("Redis supports pub/sub messaging", importance=1.0)
        cached = await retriever.retrieve("store redis")

        assert cached == first
        assert cache.get_stats()["hits"] == 1

        assert retriever.invalidate() == 1
        refreshed = await retriever.retrieve("redis store")
        assert refreshed.startswith("[1] Redis is an in-memory data store")
        assert "pub/sub" in refreshed

    @pytest.mark.asyncio
    async def test_no_match_is_cached(self, store):
        cache = ContextCache(ttl_seconds=60, max_size=10)
        retriever = LongTermMemoryRetriever(store, cache=cache)

        assert await retriever.retrieve("zzz unknown") is None
        assert await retriever.retrieve("zzz unknown") is None

        stats = cache.get_stats()
        assert stats["misses"] == 1
        assert stats["hits"] == 1
        assert stats["size"] == 1

    @pytest.mark.asyncio
    async def test_invalidate_keeps_other_keys(self, store):
        cache = ContextCache(ttl_seconds=60, max_size=10)
        cache.put("project:other", "value")
        retriever = LongTermMemoryRetriever(store, cache=cache)

        await retriever.retrieve("python")
        retriever.invalidate()

        assert "project:other" in cache
        assert len(cache) == 1

    def test_invalidate_without_cache(self, store):
        assert LongTermMemoryRetriever(store).invalidate() == 0
