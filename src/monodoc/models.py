"""Core data models for monodoc."""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PackageKind(str, Enum):
    """Where a package sits inside the workspace."""

    ROOT = "root"
    PACKAGE = "package"
    LIB = "lib"
    SERVICE = "service"
    APP = "app"
    TOOL = "tool"
    OTHER = "other"


class WorkspacePackage(BaseModel):
    """A directory holding a package manifest."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    kind: PackageKind
    manifest_path: Path
    priority: float = 0.0
    has_typescript: bool = False


class FileBatch(BaseModel):
    """Files processed together under a token ceiling."""

    id: str = ""
    files: list[Path] = Field(default_factory=list)
    estimated_tokens: int = 0
    priority: float = 0.0


class SymbolUsage(BaseModel):
    """A place where a workspace symbol is referenced."""

    file_path: str
    line: int
    column: int
    snippet: Optional[str] = None


class DetailedSymbolInfo(BaseModel):
    """A top-level declaration plus its known usages."""

    id: str
    name: str
    kind: str
    file_path: str
    line: int
    is_exported: bool = False
    usages: list[SymbolUsage] = Field(default_factory=list)


class RelatedSymbol(BaseModel):
    """A semantically similar node found through the relationship index."""

    id: str
    name: str
    kind: str
    file_path: str
    relationship_score: float


class EmbeddedNode(BaseModel):
    """A node with its embedding vector, held in memory for one pass."""

    id: str
    embedding: list[float]
    text: str
    name: str
    kind: str
    file_path: str


class NodeContext(BaseModel):
    """Everything the generator knows about one documentable node."""

    id: str
    code_snippet: str
    node_kind: str
    node_name: str
    signature: str = ""
    file_context: str = ""
    package_context: str = ""
    imports: list[str] = Field(default_factory=list)
    surrounding_context: Optional[str] = None
    symbol_usages: list[SymbolUsage] = Field(default_factory=list)
    related_symbols: list[RelatedSymbol] = Field(default_factory=list)
    embedding: Optional[list[float]] = None
    is_exported: bool = False
    custom_data: dict[str, Any] = Field(default_factory=dict)


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    SKIP = "skip"
    ERROR = "error"


class GenerationOutcome(BaseModel):
    """Tri-state result of one generation request."""

    status: OutcomeStatus
    content: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, content: str) -> "GenerationOutcome":
        return cls(status=OutcomeStatus.SUCCESS, content=content)

    @classmethod
    def skip(cls, reason: str) -> "GenerationOutcome":
        return cls(status=OutcomeStatus.SKIP, reason=reason)

    @classmethod
    def error(cls, reason: str) -> "GenerationOutcome":
        return cls(status=OutcomeStatus.ERROR, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS


class CacheEntry(BaseModel):
    """On-disk cache record. One file per key."""

    data: Any
    timestamp: float
    version: str
    hash: str


class ProcessingError(BaseModel):
    """A contained failure surfaced in the run report."""

    file: str
    node_name: Optional[str] = None
    error: str
    timestamp: datetime = Field(default_factory=_utcnow)


class ProcessingStats(BaseModel):
    """Run-wide counters. Mutated only through StatsRecorder."""

    total_packages: int = 0
    total_batches: int = 0
    processed_batches: int = 0
    total_files: int = 0
    processed_files: int = 0
    modified_files: int = 0
    total_nodes_considered: int = 0
    successful_docs: int = 0
    failed_docs: int = 0
    skipped_docs: int = 0
    cache_hits: int = 0
    provider_calls: int = 0
    embedding_successes: int = 0
    embedding_failures: int = 0
    total_relationships_discovered: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    start_time: datetime = Field(default_factory=_utcnow)
    duration_seconds: Optional[float] = None
    dry_run: bool = False
    interrupted: bool = False
    configuration_used: dict[str, Any] = Field(default_factory=dict)
    errors: list[ProcessingError] = Field(default_factory=list)


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class QualityIssue(BaseModel):
    """One shortcoming of an existing doc comment."""

    type: str  # "no_jsdoc", "missing_description", "short_description", "missing_param", "missing_return"
    severity: IssueSeverity
    message: str


class NodeQuality(BaseModel):
    name: str
    kind: str
    line: int
    has_doc: bool
    score: float
    issues: list[QualityIssue] = Field(default_factory=list)


class FileQuality(BaseModel):
    path: str
    nodes: list[NodeQuality] = Field(default_factory=list)

    @property
    def score(self) -> float:
        """Mean node score, 100 for a file with nothing to document."""
        if not self.nodes:
            return 100.0
        return sum(n.score for n in self.nodes) / len(self.nodes)

    @property
    def documented(self) -> int:
        return sum(1 for n in self.nodes if n.has_doc)


class QualityReport(BaseModel):
    """Documentation quality of a workspace, computed without any model call."""

    files: list[FileQuality] = Field(default_factory=list)

    @property
    def total_nodes(self) -> int:
        return sum(len(f.nodes) for f in self.files)

    @property
    def documented_nodes(self) -> int:
        return sum(f.documented for f in self.files)

    @property
    def coverage(self) -> float:
        """Percentage of documentable nodes that carry a doc comment."""
        total = self.total_nodes
        return 100.0 * self.documented_nodes / total if total else 100.0

    @property
    def score(self) -> float:
        scores = [n.score for f in self.files for n in f.nodes]
        return sum(scores) / len(scores) if scores else 100.0

    def issue_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for file in self.files:
            for node in file.nodes:
                for issue in node.issues:
                    counts[issue.type] = counts.get(issue.type, 0) + 1
        return counts
