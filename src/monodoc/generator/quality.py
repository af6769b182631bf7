"""Scores the doc comments a workspace already has, without calling a model."""

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from ..backends.models import DeclarationNode
from ..backends.parsers.ts_parser import TSParser
from ..backends.protocol import DeclarationSource
from ..config import Config
from ..fileio import read_source
from ..models import FileQuality, IssueSeverity, NodeQuality, QualityIssue, QualityReport
from .doc_comment import JSDocBlock
from .file_processor import select_declarations

logger = logging.getLogger(__name__)

SHORT_DESCRIPTION_CHARS = 20

_FUNCTION_KINDS = ("function", "method", "variable")
_RETURN_TAGS = ("returns", "return")
_NO_RETURN_VALUE = re.compile(r":\s*(?:void|never|Promise<\s*void\s*>)\s*$")
_SETTER = re.compile(r"^(?:(?:static|public|protected|private|override)\s+)*set\s")


def _issue(kind: str, severity: IssueSeverity, message: str) -> QualityIssue:
    return QualityIssue(type=kind, severity=severity, message=message)


def _needs_returns(declaration: DeclarationNode) -> bool:
    if declaration.name == "constructor" or _SETTER.match(declaration.signature):
        return False
    return not _NO_RETURN_VALUE.search(declaration.signature)


def _completeness(
    has_description: bool,
    has_example: bool,
    params: Optional[float] = None,
    returns: Optional[float] = None,
) -> float:
    """Weighted share of the expected parts present, on a 0-100 scale."""
    score = 40.0 if has_description else 0.0
    maximum = 40.0
    if params is not None:
        score += params * 0.3
        maximum += 30
    if returns is not None:
        score += returns * 0.2
        maximum += 20
    if has_example:
        score += 10
    maximum += 10
    return score / maximum * 100


class QualityAnalyzer:
    """Checks existing JSDoc against the declarations it sits on.

    A node scores 0 without a doc comment. Otherwise the score mixes
    completeness (description, @param and @returns coverage), the presence
    of an @example and the description length.
    """

    def __init__(self, config: Config, parser: Optional[DeclarationSource] = None):
        self.config = config
        self.parser = parser or TSParser()

    def analyze_node(self, declaration: DeclarationNode) -> NodeQuality:
        if not declaration.existing_doc:
            return NodeQuality(
                name=declaration.qualified_name,
                kind=declaration.kind,
                line=declaration.start_line,
                has_doc=False,
                score=0.0,
                issues=[_issue("no_jsdoc", IssueSeverity.ERROR, "Missing JSDoc comment")],
            )

        block = JSDocBlock.parse(declaration.existing_doc)
        description_length = len(block.description.strip())
        has_example = any(t.tag == "example" for t in block.tags)
        issues = []
        if description_length == 0:
            issues.append(_issue("missing_description", IssueSeverity.ERROR, "Missing description"))
        elif description_length < SHORT_DESCRIPTION_CHARS:
            issues.append(_issue("short_description", IssueSeverity.WARNING, "Description is too short"))

        if declaration.kind in _FUNCTION_KINDS:
            param_coverage = self._param_coverage(declaration, block, issues)
            return_coverage = 100.0
            if _needs_returns(declaration) and not any(t.tag in _RETURN_TAGS for t in block.tags):
                return_coverage = 0.0
                issues.append(_issue("missing_return", IssueSeverity.WARNING, "Missing @returns tag"))
            completeness = _completeness(description_length > 0, has_example, param_coverage, return_coverage)
        elif declaration.kind == "class":
            completeness = _completeness(description_length > 0, has_example)
        else:
            completeness = 100.0 if description_length else 0.0

        score = completeness * 0.6 + (20 if has_example else 0) + min(20.0, description_length / 10)
        return NodeQuality(
            name=declaration.qualified_name,
            kind=declaration.kind,
            line=declaration.start_line,
            has_doc=True,
            score=round(score, 1),
            issues=issues,
        )

    def _param_coverage(self, declaration: DeclarationNode, block: JSDocBlock, issues: list[QualityIssue]) -> float:
        if not declaration.parameters:
            return 100.0
        param_tags = [t for t in block.tags if t.tag in ("param", "arg", "argument")]
        documented = {t.name for t in param_tags}
        named = [p for p in declaration.parameters if not p.startswith(("{", "["))]
        missing = [p for p in named if p not in documented]
        covered = min(len(param_tags), len(declaration.parameters) - len(missing))
        if missing:
            issues.append(
                _issue("missing_param", IssueSeverity.WARNING, f"Missing @param for {', '.join(missing)}")
            )
        elif len(param_tags) < len(declaration.parameters):
            issues.append(_issue("missing_param", IssueSeverity.WARNING, "Missing @param tags"))
        return 100.0 * covered / len(declaration.parameters)

    def analyze_source(self, rel_path: str, source: str) -> FileQuality:
        outline = self.parser.parse(rel_path, source)
        nodes = [
            self.analyze_node(d)
            for d in sorted(select_declarations(outline.declarations, self.config.docs), key=lambda d: d.start_line)
        ]
        return FileQuality(path=rel_path, nodes=nodes)

    def analyze(self, files: Iterable[Path]) -> QualityReport:
        """Unreadable files are logged and left out of the report."""
        base = self.config.base_dir.resolve()
        report = QualityReport()
        for path in files:
            rel_path = path.resolve().relative_to(base).as_posix()
            try:
                source = read_source(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping %s: %s", rel_path, e)
                continue
            report.files.append(self.analyze_source(rel_path, source))
        logger.info(
            "Quality check: %d/%d nodes documented across %d files",
            report.documented_nodes,
            report.total_nodes,
            len(report.files),
        )
        return report
