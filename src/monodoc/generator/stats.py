"""Single owner of run statistics."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from ..models import ProcessingError, ProcessingStats

logger = logging.getLogger(__name__)


class StatsRecorder:
    """All ProcessingStats mutations go through here.

    Tasks run on one event loop and each method completes without
    awaiting, so increments never interleave.
    """

    def __init__(self, dry_run: bool = False, configuration_used: Optional[dict[str, Any]] = None):
        self.stats = ProcessingStats(dry_run=dry_run, configuration_used=configuration_used or {})

    def workspace(self, packages: int, batches: int, files: int) -> None:
        self.stats.total_packages = packages
        self.stats.total_batches = batches
        self.stats.total_files = files

    def batch_done(self) -> None:
        self.stats.processed_batches += 1

    def file_done(self) -> None:
        self.stats.processed_files += 1

    def file_changed(self, lines_added: int, lines_removed: int) -> None:
        self.stats.modified_files += 1
        self.stats.lines_added += lines_added
        self.stats.lines_removed += lines_removed

    def node_considered(self) -> None:
        self.stats.total_nodes_considered += 1

    def doc_succeeded(self, count: int = 1) -> None:
        self.stats.successful_docs += count

    def doc_skipped(self) -> None:
        self.stats.skipped_docs += 1

    def doc_failed(self, file: str, node_name: Optional[str], error: str) -> None:
        self.stats.failed_docs += 1
        self.error(file, error, node_name)

    def error(self, file: str, error: str, node_name: Optional[str] = None) -> None:
        self.stats.errors.append(ProcessingError(file=file, node_name=node_name, error=error))

    def cache_hit(self) -> None:
        self.stats.cache_hits += 1

    def embeddings(self, successes: int, failures: int) -> None:
        self.stats.embedding_successes += successes
        self.stats.embedding_failures += failures

    def relationships(self, count: int) -> None:
        self.stats.total_relationships_discovered += count

    def interrupted(self) -> None:
        self.stats.interrupted = True

    def finalize(self, provider_calls: int) -> ProcessingStats:
        self.stats.provider_calls = provider_calls
        elapsed = datetime.now(timezone.utc) - self.stats.start_time
        self.stats.duration_seconds = round(elapsed.total_seconds(), 3)
        logger.info(
            "Run finished in %.1fs: %d succeeded, %d skipped, %d failed, %d files modified",
            self.stats.duration_seconds,
            self.stats.successful_docs,
            self.stats.skipped_docs,
            self.stats.failed_docs,
            self.stats.modified_files,
        )
        return self.stats
