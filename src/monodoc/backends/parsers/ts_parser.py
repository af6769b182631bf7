"""JavaScript/TypeScript declaration parser using tree-sitter."""

from __future__ import annotations

from pathlib import PurePosixPath

import tree_sitter_javascript as tsjs
import tree_sitter_typescript as tsts
from tree_sitter import Language, Node, Parser

from ..models import DeclarationNode, FileOutline

JS_LANGUAGE = Language(tsjs.language())
TS_LANGUAGE = Language(tsts.language_typescript())
TSX_LANGUAGE = Language(tsts.language_tsx())

# Map file extensions to tree-sitter languages
_LANG_MAP: dict[str, tuple[Language, str]] = {
    ".js": (JS_LANGUAGE, "javascript"),
    ".jsx": (JS_LANGUAGE, "javascript"),
    ".mjs": (JS_LANGUAGE, "javascript"),
    ".cjs": (JS_LANGUAGE, "javascript"),
    ".ts": (TS_LANGUAGE, "typescript"),
    ".mts": (TS_LANGUAGE, "typescript"),
    ".cts": (TS_LANGUAGE, "typescript"),
    ".tsx": (TSX_LANGUAGE, "typescript"),
}

_KIND_MAP = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    # Anonymous default exports
    "function_expression": "function",
    "function": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "class": "class",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
    "method_definition": "method",
}

_VARIABLE_NODES = ("lexical_declaration", "variable_declaration")
_FUNCTION_VALUES = ("arrow_function", "function_expression", "function", "generator_function")
_CLASS_NODES = ("class_declaration", "abstract_class_declaration", "class")


class TSParser:
    """Extract documentable declarations from JS/TS source."""

    def supports(self, file_path: str) -> bool:
        return PurePosixPath(file_path).suffix.lower() in _LANG_MAP

    def _get_language(self, file_path: str) -> tuple[Language, str]:
        """Pick the right tree-sitter language from file extension."""
        ext = PurePosixPath(file_path).suffix.lower()
        return _LANG_MAP.get(ext, (JS_LANGUAGE, "javascript"))

    def parse(self, file_path: str, source: str) -> FileOutline:
        lang, language_name = self._get_language(file_path)
        data = source.encode("utf-8")
        tree = Parser(lang).parse(data)

        declarations: list[DeclarationNode] = []
        imports: list[str] = []

        for node in tree.root_node.children:
            if node.type == "import_statement":
                source_node = node.child_by_field_name("source")
                if source_node:
                    imports.append(_text(source_node).strip("'\""))
                continue
            self._collect(node, data, file_path, declarations)

        return FileOutline(
            path=file_path,
            language=language_name,
            imports=imports,
            declarations=declarations,
            line_count=len(source.splitlines()),
        )

    def _collect(
        self, node: Node, data: bytes, file_path: str, out: list[DeclarationNode]
    ) -> None:
        """Collect a top-level statement and, for classes, its methods."""
        anchor = node
        actual = node
        exported = False
        if node.type == "export_statement":
            actual = node.child_by_field_name("declaration") or node.child_by_field_name("value")
            if actual is None:
                return
            exported = True

        kind = self._get_kind(actual)
        if not kind:
            return

        name = self._get_node_name(actual)
        if not name:
            if exported and kind in ("function", "class"):
                name = "default"
            else:
                return

        out.append(self._make(actual, anchor, data, file_path, name, kind, exported))

        if actual.type in _CLASS_NODES:
            body = actual.child_by_field_name("body")
            if body is None:
                return
            for member in body.children:
                if member.type != "method_definition":
                    continue
                method_name = self._get_node_name(member)
                if not method_name:
                    continue
                out.append(
                    self._make(
                        member, member, data, file_path, method_name, "method",
                        exported, parent=name, lead=_first_decorator(member),
                    )
                )

    def _make(
        self,
        actual: Node,
        anchor: Node,
        data: bytes,
        file_path: str,
        name: str,
        kind: str,
        exported: bool,
        parent: str | None = None,
        lead: Node | None = None,
    ) -> DeclarationNode:
        # Decorators written as siblings sit between the doc and the member
        lead = lead or anchor
        start_line = lead.start_point[0] + 1  # 1-indexed
        end_line = anchor.end_point[0] + 1
        line_start = lead.start_byte - lead.start_point[1]
        indent = data[line_start:lead.start_byte].decode("utf-8", errors="replace")
        if indent.strip():
            indent = ""

        existing_doc = None
        doc_start = None
        comment = self._leading_doc_comment(lead)
        if comment is not None:
            existing_doc = _text(comment)
            doc_start = comment.start_byte - comment.start_point[1]

        qualified = f"{parent}.{name}" if parent else name
        return DeclarationNode(
            id=f"{file_path}:{qualified}:{start_line}",
            name=name,
            kind=kind,
            file_path=file_path,
            start_line=start_line,
            end_line=end_line,
            start_byte=anchor.start_byte,
            end_byte=anchor.end_byte,
            insert_byte=line_start,
            indent=indent,
            signature=self._signature(actual, anchor, data),
            text=_text(anchor),
            existing_doc=existing_doc,
            doc_start_byte=doc_start,
            is_exported=exported,
            is_private=self._is_private(actual, name),
            parent_name=parent,
            body_offset=self._body_offset(actual, anchor, data),
            parameters=self._parameters(actual),
        )

    def _leading_doc_comment(self, anchor: Node) -> Node | None:
        """Return the /** */ comment ending on the line right above anchor."""
        previous = anchor.prev_sibling
        if previous is None or previous.type != "comment":
            return None
        if not _text(previous).startswith("/**"):
            return None
        if previous.end_point[0] != anchor.start_point[0] - 1:
            return None
        return previous

    def _body(self, actual: Node) -> Node | None:
        if actual.type in ("interface_declaration", "enum_declaration"):
            return None
        body = actual.child_by_field_name("body")
        if body is None and actual.type in _VARIABLE_NODES:
            value = self._declarator_value(actual)
            if value is not None:
                body = value.child_by_field_name("body")
        return body

    def _body_offset(self, actual: Node, anchor: Node, data: bytes) -> int | None:
        body = self._body(actual)
        if body is None or body.start_byte < anchor.start_byte:
            return None
        return len(data[anchor.start_byte:body.start_byte].decode("utf-8", errors="replace"))

    def _parameters(self, actual: Node) -> list[str]:
        function = actual
        if actual.type in _VARIABLE_NODES:
            function = self._declarator_value(actual)
        if function is None:
            return []
        params = function.child_by_field_name("parameters")
        if params is None:
            # Arrow functions may take one bare parameter: x => x
            single = function.child_by_field_name("parameter")
            return [_text(single)] if single is not None else []
        names = []
        for child in params.named_children:
            if child.type == "comment":
                continue
            name = _parameter_name(child)
            if name != "this":
                names.append(name)
        return names

    def _signature(self, actual: Node, anchor: Node, data: bytes) -> str:
        """Declaration text up to its body, collapsed to one line."""
        body = self._body(actual)
        if body is not None:
            head = data[anchor.start_byte:body.start_byte].decode("utf-8", errors="replace")
        else:
            head = _text(anchor).split("\n", 1)[0]
        signature = " ".join(head.split()).rstrip(" {")
        if signature.endswith("=>"):
            signature = signature[:-2].rstrip()
        return signature

    def _is_private(self, node: Node, name: str) -> bool:
        if name.startswith("_") or name.startswith("#"):
            return True
        for child in node.children:
            if child.type == "accessibility_modifier" and _text(child) == "private":
                return True
            if child.type == "private_property_identifier":
                return True
        return False

    def _declarator_value(self, node: Node) -> Node | None:
        for child in node.children:
            if child.type == "variable_declarator":
                return child.child_by_field_name("value")
        return None

    def _get_node_name(self, node: Node) -> str | None:
        """Extract name from various node types."""
        name_node = node.child_by_field_name("name")
        if name_node:
            return _text(name_node)

        # Lexical declaration: const foo = () => ...
        if node.type in _VARIABLE_NODES:
            for child in node.children:
                if child.type == "variable_declarator":
                    name_n = child.child_by_field_name("name")
                    if name_n and name_n.type == "identifier":
                        return _text(name_n)

        return None

    def _get_kind(self, node: Node) -> str | None:
        """Determine the declaration kind from node type.

        Variables only count when bound to a function value.
        """
        if node.type in _VARIABLE_NODES:
            value = self._declarator_value(node)
            if value is not None and value.type in _FUNCTION_VALUES:
                return "variable"
            return None
        return _KIND_MAP.get(node.type)


def _text(node: Node) -> str:
    return node.text.decode("utf-8", errors="replace")


def _first_decorator(member: Node) -> Node:
    """Topmost decorator sibling directly above member, or member itself."""
    lead = member
    while lead.prev_sibling is not None and lead.prev_sibling.type == "decorator":
        lead = lead.prev_sibling
    return lead


def _parameter_name(param: Node) -> str:
    """Bound name of a parameter, or its pattern text when destructured."""
    node = param
    while True:
        # TS wraps bindings in required/optional_parameter, JS defaults use `left`
        inner = node.child_by_field_name("pattern") or node.child_by_field_name("left")
        if inner is None and node.type == "rest_pattern" and node.named_children:
            inner = node.named_children[0]
        if inner is None:
            break
        node = inner
    return " ".join(_text(node).split())
