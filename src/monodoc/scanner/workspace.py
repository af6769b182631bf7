"""Workspace analysis: packages, batches and the symbol map."""

import logging
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field

from ..backends.protocol import DeclarationSource
from ..backends.parsers.ts_parser import TSParser
from ..config import Config
from ..models import DetailedSymbolInfo, FileBatch, WorkspacePackage
from .batching import FileBatcher
from .packages import PackageDetector
from .symbols import SymbolReferenceAnalyzer

logger = logging.getLogger(__name__)


class WorkspaceAnalysis(BaseModel):
    """Everything the orchestrator needs before processing starts."""

    packages: list[WorkspacePackage] = Field(default_factory=list)
    batches: list[FileBatch] = Field(default_factory=list)
    symbol_map: dict[str, DetailedSymbolInfo] = Field(default_factory=dict)

    @property
    def total_files(self) -> int:
        return sum(len(b.files) for b in self.batches)

    def package_for(self, file_path: Path) -> Optional[WorkspacePackage]:
        """Innermost package containing the file."""
        resolved = file_path.resolve()
        best: Optional[WorkspacePackage] = None
        for package in self.packages:
            root = package.path.resolve()
            if resolved == root or root in resolved.parents:
                if best is None or len(root.parts) > len(best.path.resolve().parts):
                    best = package
        return best


class WorkspaceAnalyzer:
    """Discovers packages and source files and builds the symbol map."""

    def __init__(
        self,
        config: Config,
        parser: Optional[DeclarationSource] = None,
        detector: Optional[PackageDetector] = None,
    ):
        self.config = config
        self.parser = parser or TSParser()
        self.detector = detector or PackageDetector()

    def analyze(self, base_dir: Optional[Path] = None) -> WorkspaceAnalysis:
        """Analyze the workspace rooted at base_dir.

        A repository without any manifest is treated as a single package
        rooted at base_dir.
        """
        base = (base_dir or self.config.base_dir).resolve()
        logger.info("Analyzing workspace %s", base)

        packages = self.detector.discover(base, self.config.workspace_dirs)
        if not packages:
            logger.warning("No package manifests found, treating %s as one package", base)
            packages = [self.detector.fallback_package(base)]

        batcher = FileBatcher(
            base_dir=base,
            include_patterns=self.config.include_patterns,
            ignore_patterns=self.config.ignore_patterns,
            max_tokens_per_batch=self.config.ai.max_tokens_per_batch,
            target_paths=self.config.target_paths,
        )
        batches = batcher.create_batches(packages)

        symbol_map: dict[str, DetailedSymbolInfo] = {}
        if self.config.docs.include_symbol_references:
            files = [f for batch in batches for f in batch.files]
            analyzer = SymbolReferenceAnalyzer(
                self.parser, base, max_usages=self.config.docs.max_symbol_usages
            )
            symbol_map = analyzer.analyze(files)

        return WorkspaceAnalysis(packages=packages, batches=batches, symbol_map=symbol_map)
