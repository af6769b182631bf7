"""Data models produced by the syntax facility."""

from __future__ import annotations
from dataclasses import dataclass, field


@dataclass
class DeclarationNode:
    """A documentable declaration located in a source file.

    Byte offsets index into the UTF-8 encoded source. ``insert_byte`` is the
    start of the line holding the declaration (or its export wrapper), which
    is where a new doc block goes. When ``existing_doc`` is set,
    ``doc_start_byte`` marks the start of the line holding the comment, so
    ``[doc_start_byte, insert_byte)`` is the span a replacement rewrites.
    ``body_offset`` is the character index in ``text`` where the body
    starts, or None for declarations without one. ``parameters`` holds the
    bound parameter names of function-like declarations, with destructured
    patterns kept as their source text.
    """

    id: str
    name: str
    kind: str  # "function", "class", "method", "interface", "type", "enum", "variable"
    file_path: str
    start_line: int
    end_line: int
    start_byte: int
    end_byte: int
    insert_byte: int
    indent: str
    signature: str
    text: str
    existing_doc: str | None = None
    doc_start_byte: int | None = None
    is_exported: bool = False
    is_private: bool = False
    parent_name: str | None = None
    body_offset: int | None = None
    parameters: list[str] = field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        if self.parent_name:
            return f"{self.parent_name}.{self.name}"
        return self.name

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "file_path": self.file_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "signature": self.signature,
            "is_exported": self.is_exported,
        }
        if self.parent_name:
            result["parent_name"] = self.parent_name
        if self.existing_doc:
            result["existing_doc"] = self.existing_doc
        return result


@dataclass
class FileOutline:
    """Imports and documentable declarations of one file."""

    path: str
    language: str
    imports: list[str] = field(default_factory=list)
    declarations: list[DeclarationNode] = field(default_factory=list)
    line_count: int = 0

    def find(self, name: str) -> DeclarationNode | None:
        for declaration in self.declarations:
            if declaration.qualified_name == name or declaration.name == name:
                return declaration
        return None

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "language": self.language,
            "imports": self.imports,
            "declarations": [d.to_dict() for d in self.declarations],
            "line_count": self.line_count,
        }
