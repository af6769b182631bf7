"""Relationship index: embeds declarations and answers similarity queries."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..backends.models import DeclarationNode
from ..cache import CacheStore, canonical_code, embedding_cache_key
from ..errors import EmbeddingError
from ..llm.prompts import build_embedding_text
from ..models import EmbeddedNode, RelatedSymbol
from .vector_store import InMemoryVectorStore

logger = logging.getLogger(__name__)


EmbedFn = Callable[[list[str]], Awaitable[list[list[float]]]]


@dataclass
class IndexResult:
    successes: int = 0
    failures: int = 0
    cached: int = 0


class RelationshipIndex:
    """Computes one embedding per node and stores it by id.

    A failed embedding batch marks its nodes as failures; those nodes simply
    have no relationships. Nothing here ever blocks generation.

    With a cache, vectors are stored per text and embedding model, and only
    nodes without a cached vector are sent to the provider.
    """

    def __init__(
        self,
        embed: EmbedFn,
        batch_size: int = 10,
        snippet_limit: int = 1000,
        cache: Optional[CacheStore] = None,
        model_id: str = "",
    ):
        self._embed = embed
        self.batch_size = max(1, batch_size)
        self.snippet_limit = snippet_limit
        self.cache = cache
        self.model_id = model_id
        self.store = InMemoryVectorStore()

    def _text_for(self, node: DeclarationNode) -> str:
        # Doc comments are left out so documenting a class keeps its vector stable
        return build_embedding_text(
            node.kind, node.qualified_name, node.signature, canonical_code(node.text), self.snippet_limit
        )

    def _store(self, node: DeclarationNode, text: str, vector: list[float]) -> None:
        self.store.add(
            [
                EmbeddedNode(
                    id=node.id,
                    embedding=vector,
                    text=text,
                    name=node.qualified_name,
                    kind=node.kind,
                    file_path=node.file_path,
                )
            ]
        )

    async def _from_cache(self, nodes: list[DeclarationNode]) -> list[DeclarationNode]:
        """Load cached vectors into the store and return the nodes still missing one."""
        if self.cache is None:
            return nodes
        missing = []
        for node in nodes:
            text = self._text_for(node)
            vector = await self.cache.get(embedding_cache_key(text, self.model_id))
            if isinstance(vector, list) and vector:
                self._store(node, text, vector)
            else:
                missing.append(node)
        return missing

    async def _embed_batch(self, batch: list[DeclarationNode]) -> int:
        texts = [self._text_for(n) for n in batch]
        try:
            vectors = await self._embed(texts)
        except EmbeddingError as e:
            logger.warning("Embedding batch of %d nodes failed: %s", len(batch), e)
            return 0

        stored = 0
        for node, text, vector in zip(batch, texts, vectors):
            if not vector:
                continue
            self._store(node, text, vector)
            if self.cache is not None:
                await self.cache.set(embedding_cache_key(text, self.model_id), vector)
            stored += 1
        return stored

    async def index(self, nodes: list[DeclarationNode]) -> IndexResult:
        """Embed nodes in fixed-size batches, reusing cached vectors."""
        unique = list({n.id: n for n in nodes}.values())
        missing = await self._from_cache(unique)
        cached = len(unique) - len(missing)

        batches = [missing[i:i + self.batch_size] for i in range(0, len(missing), self.batch_size)]
        logger.info(
            "Embedding %d nodes in %d batches (%d cached)", len(missing), len(batches), cached
        )

        counts = await asyncio.gather(*(self._embed_batch(b) for b in batches))
        successes = cached + sum(counts)
        result = IndexResult(successes=successes, failures=len(unique) - successes, cached=cached)
        logger.info(
            "Embedded %d nodes (%d failures)", result.successes, result.failures
        )
        return result

    def embedding_for(self, node_id: str) -> Optional[list[float]]:
        node = self.store.get(node_id)
        return node.embedding if node else None

    def query(self, node_id: str, min_score: float, max_results: int) -> list[RelatedSymbol]:
        """Most similar other nodes. Empty when node_id was never embedded."""
        node = self.store.get(node_id)
        if node is None:
            return []
        return self.store.search(node.embedding, min_score, max_results, exclude_id=node_id)
