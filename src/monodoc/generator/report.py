"""JSON run report."""

import logging
from pathlib import Path

from ..fileio import atomic_write_text
from ..models import ProcessingStats

logger = logging.getLogger(__name__)


def write_report(stats: ProcessingStats, report_dir: Path, file_name: str = "monodoc-report.json") -> Path:
    """Serialise stats to ``report_dir/file_name`` and return the path."""
    path = report_dir / file_name
    atomic_write_text(path, stats.model_dump_json(indent=2))
    logger.info("Report written to %s", path)
    return path
