"""Workspace discovery: packages, file batches and symbols."""

from .batching import FileBatcher
from .packages import PackageDetector
from .symbols import SymbolReferenceAnalyzer
from .workspace import WorkspaceAnalysis, WorkspaceAnalyzer

__all__ = [
    "FileBatcher",
    "PackageDetector",
    "SymbolReferenceAnalyzer",
    "WorkspaceAnalysis",
    "WorkspaceAnalyzer",
]
