"""Protocol for the syntax facility that hands declarations to the pipeline.

The pipeline never parses syntax itself. Anything implementing
DeclarationSource can feed it; TSParser is the tree-sitter implementation.
"""

from __future__ import annotations
from typing import Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import FileOutline


@runtime_checkable
class DeclarationSource(Protocol):
    """Protocol for extracting documentable declarations.

    Methods receive source code as a string parameter rather than
    reading files directly, which keeps implementations testable and
    free of I/O.
    """

    def supports(self, file_path: str) -> bool:
        """Whether this source understands the file's language."""
        ...

    def parse(self, file_path: str, source: str) -> FileOutline:
        """Extract imports and documentable declarations.

        Args:
            file_path: Path relative to the workspace root. Used for the
                language and for node ids.
            source: File content as string.

        Returns:
            FileOutline with every declaration found, unfiltered.
        """
        ...
