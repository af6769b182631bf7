"""Workspace-wide symbol table with text-based usage search."""

import logging
import re
from pathlib import Path

from ..backends.protocol import DeclarationSource
from ..fileio import read_source
from ..models import DetailedSymbolInfo, SymbolUsage

logger = logging.getLogger(__name__)


_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")
MAX_SNIPPET_CHARS = 200


class SymbolReferenceAnalyzer:
    """Collects top-level declarations and where they are referenced.

    Usage search is lexical: any identifier token matching a declared
    name counts, except on the declaration's own line.
    """

    def __init__(self, parser: DeclarationSource, base_dir: Path, max_usages: int = 10):
        self.parser = parser
        self.base_dir = base_dir
        self.max_usages = max_usages

    def analyze(self, files: list[Path]) -> dict[str, DetailedSymbolInfo]:
        sources = self._read_all(files)
        symbol_map: dict[str, DetailedSymbolInfo] = {}
        by_name: dict[str, list[str]] = {}

        # First pass: definitions
        for rel_path, source in sources.items():
            if not self.parser.supports(rel_path):
                continue
            try:
                outline = self.parser.parse(rel_path, source)
            except Exception as e:
                logger.warning("Could not parse %s for symbols: %s", rel_path, e)
                continue
            for declaration in outline.declarations:
                if declaration.parent_name:
                    continue
                symbol_id = f"{rel_path}:{declaration.name}"
                symbol_map[symbol_id] = DetailedSymbolInfo(
                    id=symbol_id,
                    name=declaration.name,
                    kind=declaration.kind,
                    file_path=rel_path,
                    line=declaration.start_line,
                    is_exported=declaration.is_exported,
                )
                by_name.setdefault(declaration.name, []).append(symbol_id)

        logger.info("Collected %d symbol definitions", len(symbol_map))

        # Second pass: usages
        for rel_path, source in sources.items():
            for line_number, line in enumerate(source.splitlines(), start=1):
                seen_on_line: set[str] = set()
                for match in _IDENTIFIER.finditer(line):
                    name = match.group(0)
                    if name in seen_on_line or name not in by_name:
                        continue
                    seen_on_line.add(name)
                    for symbol_id in by_name[name]:
                        info = symbol_map[symbol_id]
                        if info.file_path == rel_path and info.line == line_number:
                            continue
                        if len(info.usages) >= self.max_usages:
                            continue
                        info.usages.append(
                            SymbolUsage(
                                file_path=rel_path,
                                line=line_number,
                                column=match.start() + 1,
                                snippet=line.strip()[:MAX_SNIPPET_CHARS],
                            )
                        )

        return symbol_map

    def _read_all(self, files: list[Path]) -> dict[str, str]:
        sources: dict[str, str] = {}
        for file_path in files:
            try:
                sources[self._relative(file_path)] = read_source(file_path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable file %s: %s", file_path, e)
        return sources

    def _relative(self, file_path: Path) -> str:
        try:
            return file_path.resolve().relative_to(self.base_dir.resolve()).as_posix()
        except ValueError:
            return file_path.as_posix()
