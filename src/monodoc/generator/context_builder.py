"""Builds the per-node NodeContext handed to plugins and the generator."""

import logging
from pathlib import Path
from typing import Optional

from ..backends.models import DeclarationNode, FileOutline
from ..config import Config
from ..embeddings.relationships import RelationshipIndex
from ..models import DetailedSymbolInfo, NodeContext, WorkspacePackage

logger = logging.getLogger(__name__)


TRUNCATION_MARKER = "// ... (snippet truncated)"
MAX_SURROUNDING_CHARS = 1500


def truncate_snippet(text: str, max_length: int, body_offset: Optional[int] = None) -> str:
    """Trim a declaration to max_length, keeping its signature whole.

    The signature ends where the body starts when ``body_offset`` is known,
    otherwise at the first brace. The cut lands on a line boundary inside
    the body. A signature longer than max_length is kept anyway.
    """
    if len(text) <= max_length:
        return text

    if body_offset is not None:
        head_end = body_offset + (1 if text.startswith("{", body_offset) else 0)
    else:
        brace = text.find("{")
        newline = text.find("\n")
        head_end = brace + 1 if brace != -1 else (newline if newline != -1 else len(text))
    budget = max(max_length - len(TRUNCATION_MARKER) - 1, head_end)

    cut = text.rfind("\n", head_end, budget)
    if cut == -1:
        cut = budget
    return f"{text[:cut].rstrip()}\n{TRUNCATION_MARKER}"


class ContextBuilder:
    """Pure apart from read-only lookups into the index and symbol map."""

    def __init__(
        self,
        config: Config,
        symbol_map: Optional[dict[str, DetailedSymbolInfo]] = None,
        relationship_index: Optional[RelationshipIndex] = None,
    ):
        self.config = config
        self.symbol_map = symbol_map or {}
        self.relationship_index = relationship_index

    def build(
        self,
        declaration: DeclarationNode,
        outline: FileOutline,
        package: Optional[WorkspacePackage] = None,
    ) -> NodeContext:
        docs = self.config.docs

        surrounding = None
        if declaration.parent_name:
            parent = outline.find(declaration.parent_name)
            if parent is not None:
                surrounding = parent.text[:MAX_SURROUNDING_CHARS]

        usages = []
        if docs.include_symbol_references and not declaration.parent_name:
            info = self.symbol_map.get(f"{declaration.file_path}:{declaration.name}")
            if info is not None:
                usages = list(info.usages)

        related = []
        embedding = None
        if docs.include_related_symbols and self.relationship_index is not None:
            related = self.relationship_index.query(
                declaration.id,
                self.config.embedding.min_relationship_score,
                self.config.embedding.max_related_symbols,
            )
            embedding = self.relationship_index.embedding_for(declaration.id)

        return NodeContext(
            id=declaration.id,
            code_snippet=truncate_snippet(declaration.text, docs.max_snippet_length, declaration.body_offset),
            node_kind=declaration.kind,
            node_name=declaration.qualified_name,
            signature=declaration.signature,
            file_context=declaration.file_path,
            package_context=self._package_label(package),
            imports=list(outline.imports),
            surrounding_context=surrounding,
            symbol_usages=usages,
            related_symbols=related,
            embedding=embedding,
            is_exported=declaration.is_exported,
        )

    def _package_label(self, package: Optional[WorkspacePackage]) -> str:
        if package is None:
            return ""
        relative = package.path
        try:
            relative = package.path.resolve().relative_to(Path(self.config.base_dir).resolve())
        except ValueError:
            pass
        location = relative.as_posix() if str(relative) != "." else "."
        return f"{package.name} ({package.kind.value}, {location})"
