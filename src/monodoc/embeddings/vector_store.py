"""In-memory vector store with cosine nearest-neighbour search."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..models import EmbeddedNode, RelatedSymbol

logger = logging.getLogger(__name__)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity, or 0.0 for empty, mismatched or zero vectors."""
    if a.size == 0 or b.size == 0 or a.shape != b.shape:
        return 0.0
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


class InMemoryVectorStore:
    """Flat index of id -> vector. Nodes hold no references to each other."""

    def __init__(self) -> None:
        self._nodes: dict[str, EmbeddedNode] = {}
        self._vectors: dict[str, np.ndarray] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def add(self, nodes: list[EmbeddedNode]) -> None:
        for node in nodes:
            self._nodes[node.id] = node
            self._vectors[node.id] = np.asarray(node.embedding, dtype=np.float32)
        logger.debug("Vector store holds %d nodes", len(self._nodes))

    def get(self, node_id: str) -> Optional[EmbeddedNode]:
        return self._nodes.get(node_id)

    def search(
        self,
        query: list[float] | np.ndarray,
        min_score: float,
        max_results: int,
        exclude_id: Optional[str] = None,
    ) -> list[RelatedSymbol]:
        """Nodes scoring at least min_score, best first.

        Ties are broken by file path, then id, so results are deterministic.
        """
        if max_results <= 0:
            return []
        query_vector = np.asarray(query, dtype=np.float32)

        scored: list[RelatedSymbol] = []
        for node_id, vector in self._vectors.items():
            if node_id == exclude_id:
                continue
            score = cosine_similarity(query_vector, vector)
            if score < min_score:
                continue
            node = self._nodes[node_id]
            scored.append(
                RelatedSymbol(
                    id=node.id,
                    name=node.name,
                    kind=node.kind,
                    file_path=node.file_path,
                    relationship_score=score,
                )
            )

        scored.sort(key=lambda s: (-s.relationship_score, s.file_path, s.id))
        return scored[:max_results]
