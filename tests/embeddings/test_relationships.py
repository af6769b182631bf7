"""Tests for the vector store and relationship index."""

import math

import numpy as np
import pytest

from monodoc.backends import DeclarationNode
from monodoc.cache import CacheStore
from monodoc.embeddings import InMemoryVectorStore, RelationshipIndex, cosine_similarity
from monodoc.errors import EmbeddingError
from monodoc.models import EmbeddedNode


def declaration(name: str, file_path: str = "src/a.ts") -> DeclarationNode:
    return DeclarationNode(
        id=f"{file_path}:{name}:1",
        name=name,
        kind="function",
        file_path=file_path,
        start_line=1,
        end_line=1,
        start_byte=0,
        end_byte=10,
        insert_byte=0,
        indent="",
        signature=f"function {name}()",
        text=f"function {name}() {{}}",
    )


VECTORS = {
    "query": [1.0, 0.0],
    "close": [0.9, math.sqrt(1 - 0.81)],
    "far": [0.6, 0.8],
}


async def embed_by_name(texts: list[str]) -> list[list[float]]:
    # Embedding text starts with "<kind> <name>"
    return [VECTORS[text.split("\n", 1)[0].split(" ", 1)[1]] for text in texts]


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity(np.array([1.0, 2.0]), np.array([1.0, 2.0])) == pytest.approx(1.0)

    @pytest.mark.parametrize(
        "a,b",
        [
            ([], []),
            ([1.0, 0.0], [1.0, 0.0, 0.0]),
            ([0.0, 0.0], [1.0, 0.0]),
        ],
    )
    def test_degenerate_inputs_score_zero(self, a, b):
        assert cosine_similarity(np.array(a), np.array(b)) == 0.0


class TestInMemoryVectorStore:
    def node(self, node_id: str, vector: list[float], file_path: str = "a.ts") -> EmbeddedNode:
        return EmbeddedNode(id=node_id, embedding=vector, text="", name=node_id, kind="function", file_path=file_path)

    def test_ties_broken_by_path_then_id(self):
        store = InMemoryVectorStore()
        store.add(
            [
                self.node("b", [1.0, 0.0], "z.ts"),
                self.node("c", [1.0, 0.0], "a.ts"),
                self.node("a", [1.0, 0.0], "a.ts"),
            ]
        )

        results = store.search([1.0, 0.0], min_score=0.5, max_results=10)

        assert [r.id for r in results] == ["a", "c", "b"]

    def test_max_results_and_exclusion(self):
        store = InMemoryVectorStore()
        store.add([self.node(str(i), [1.0, float(i)]) for i in range(5)])

        results = store.search([1.0, 0.0], min_score=0.0, max_results=2, exclude_id="0")

        assert len(results) == 2
        assert all(r.id != "0" for r in results)

    def test_len_and_contains(self):
        store = InMemoryVectorStore()
        store.add([self.node("x", [1.0])])
        assert len(store) == 1 and "x" in store
        assert "y" not in store


class TestRelationshipIndex:
    @pytest.mark.asyncio
    async def test_threshold_filters_related_symbols(self):
        index = RelationshipIndex(embed_by_name, batch_size=2)
        nodes = [declaration("query"), declaration("close", "src/b.ts"), declaration("far", "src/c.ts")]

        result = await index.index(nodes)
        related = index.query(nodes[0].id, min_score=0.7, max_results=5)

        assert result.successes == 3 and result.failures == 0
        assert [r.name for r in related] == ["close"]
        assert related[0].relationship_score == pytest.approx(0.9, abs=1e-4)

    @pytest.mark.asyncio
    async def test_query_never_returns_self(self):
        index = RelationshipIndex(embed_by_name)
        nodes = [declaration("query"), declaration("close", "src/b.ts")]
        await index.index(nodes)

        related = index.query(nodes[0].id, min_score=0.0, max_results=5)

        assert nodes[0].id not in {r.id for r in related}

    @pytest.mark.asyncio
    async def test_failed_batch_counts_failures(self):
        async def flaky(texts: list[str]) -> list[list[float]]:
            if any(text.startswith("function far") for text in texts):
                raise EmbeddingError("provider down")
            return await embed_by_name(texts)

        index = RelationshipIndex(flaky, batch_size=1)
        nodes = [declaration("query"), declaration("close", "src/b.ts"), declaration("far", "src/c.ts")]

        result = await index.index(nodes)

        assert result.successes == 2
        assert result.failures == 1
        assert index.query(nodes[2].id, min_score=0.0, max_results=5) == []
        assert index.embedding_for(nodes[2].id) is None

    @pytest.mark.asyncio
    async def test_duplicate_ids_embedded_once(self):
        calls = []

        async def counting(texts: list[str]) -> list[list[float]]:
            calls.append(len(texts))
            return await embed_by_name(texts)

        index = RelationshipIndex(counting, batch_size=10)
        await index.index([declaration("query"), declaration("query")])

        assert calls == [1]
        assert index.embedding_for(declaration("query").id) == VECTORS["query"]

    @pytest.mark.asyncio
    async def test_cached_vectors_skip_the_provider(self, tmp_path):
        calls = []

        async def counting(texts: list[str]) -> list[list[float]]:
            calls.append(len(texts))
            return await embed_by_name(texts)

        cache = CacheStore(tmp_path / "cache", version="1")
        await cache.initialize()
        nodes = [declaration("query"), declaration("close", "src/b.ts")]

        first = await RelationshipIndex(counting, cache=cache, model_id="embedder").index(nodes)
        index = RelationshipIndex(counting, cache=cache, model_id="embedder")
        second = await index.index(nodes + [declaration("far", "src/c.ts")])

        assert calls == [2, 1]
        assert first.cached == 0
        assert second.cached == 2 and second.successes == 3
        assert index.embedding_for(nodes[1].id) == VECTORS["close"]

    @pytest.mark.asyncio
    async def test_cached_vectors_are_per_model(self, tmp_path):
        calls = []

        async def counting(texts: list[str]) -> list[list[float]]:
            calls.append(len(texts))
            return await embed_by_name(texts)

        cache = CacheStore(tmp_path / "cache", version="1")
        await cache.initialize()
        nodes = [declaration("query")]

        await RelationshipIndex(counting, cache=cache, model_id="small").index(nodes)
        await RelationshipIndex(counting, cache=cache, model_id="large").index(nodes)

        assert calls == [1, 1]
