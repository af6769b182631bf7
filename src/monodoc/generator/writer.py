"""Merge decisions and whole-file write-back."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..backends.models import DeclarationNode
from ..errors import TransformationError
from ..fileio import atomic_write_text, read_source
from .doc_comment import JSDocBlock, MergeAction, is_equivalent, merge_docs

logger = logging.getLogger(__name__)


@dataclass
class DocEdit:
    """A rendered doc block destined for one declaration."""

    declaration: DeclarationNode
    action: MergeAction
    doc: str


@dataclass
class FileChange:
    path: Path
    edits_applied: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    written: bool = False

    @property
    def modified(self) -> bool:
        return self.edits_applied > 0


def render_doc(
    action: MergeAction, declaration: DeclarationNode, generated: str
) -> Optional[str]:
    """Final doc text for a node, or None when nothing would change."""
    if action == MergeAction.SKIP:
        return None

    if action == MergeAction.MERGE and declaration.existing_doc:
        rendered = merge_docs(declaration.existing_doc, generated)
    else:
        rendered = JSDocBlock.parse(generated).render()

    if declaration.existing_doc and is_equivalent(declaration.existing_doc, rendered):
        return None
    return rendered


def _indent_block(doc: str, indent: str, newline: str = "\n") -> str:
    lines = [line.strip() for line in doc.splitlines()]
    # Continuation lines start with "*" and sit one column right of "/**"
    return newline.join(indent + (line if i == 0 else " " + line) for i, line in enumerate(lines))


def apply_edits(source: str, edits: list[DocEdit]) -> tuple[str, int, int]:
    """Apply edits to source bottom-up by byte offset.

    Returns:
        (new source, lines added, lines removed)
    """
    data = source.encode("utf-8")
    newline = "\r\n" if "\r\n" in source else "\n"
    added = 0
    removed = 0

    ordered = sorted(edits, key=lambda e: e.declaration.insert_byte, reverse=True)
    for edit in ordered:
        node = edit.declaration
        block = _indent_block(edit.doc, node.indent, newline) + newline
        if edit.action == MergeAction.INSERT or node.doc_start_byte is None:
            start = end = node.insert_byte
        else:
            start, end = node.doc_start_byte, node.insert_byte
            removed += data[start:end].decode("utf-8", errors="replace").count("\n")
        data = data[:start] + block.encode("utf-8") + data[end:]
        added += block.count("\n")

    return data.decode("utf-8"), added, removed


class DocWriter:
    """Commits edits with one whole-file atomic replace per file.

    Writes to the same path are serialised. In dry-run mode the change is
    computed and reported but nothing touches the disk.
    """

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run
        self._locks: dict[Path, asyncio.Lock] = {}

    def _lock_for(self, path: Path) -> asyncio.Lock:
        key = path.resolve()
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def commit(self, path: Path, source: str, edits: list[DocEdit]) -> FileChange:
        """Apply edits to the file at path.

        Raises:
            TransformationError: If the file changed since it was parsed or
                can't be written
        """
        change = FileChange(path=path)
        if not edits:
            return change

        new_source, added, removed = apply_edits(source, edits)
        change.lines_added = added
        change.lines_removed = removed
        change.edits_applied = len(edits)

        if self.dry_run:
            logger.info(
                "[dry run] Would update %s (+%d/-%d lines, %d docs)", path, added, removed, len(edits)
            )
            return change

        async with self._lock_for(path):
            try:
                current = await asyncio.to_thread(read_source, path)
            except (OSError, UnicodeDecodeError) as e:
                raise TransformationError(f"Could not re-read {path}: {e}", {"file": str(path)}) from e
            if current != source:
                raise TransformationError(
                    f"{path} changed on disk during processing, not writing",
                    {"file": str(path)},
                )
            try:
                await asyncio.to_thread(atomic_write_text, path, new_source)
            except OSError as e:
                raise TransformationError(f"Failed to write {path}: {e}", {"file": str(path)}) from e

        change.written = True
        logger.info("Updated %s (+%d/-%d lines, %d docs)", path, added, removed, len(edits))
        return change
