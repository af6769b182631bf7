"""Embedding-based relationship discovery."""

from .relationships import IndexResult, RelationshipIndex
from .vector_store import InMemoryVectorStore, cosine_similarity

__all__ = ["IndexResult", "RelationshipIndex", "InMemoryVectorStore", "cosine_similarity"]
