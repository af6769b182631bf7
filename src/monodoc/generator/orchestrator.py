"""Drives a documentation run from workspace analysis to final statistics."""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from .. import __version__
from ..backends.models import DeclarationNode
from ..backends.parsers.ts_parser import TSParser
from ..backends.protocol import DeclarationSource
from ..cache import CacheStore
from ..config import Config
from ..embeddings.relationships import RelationshipIndex
from ..fileio import read_source
from ..llm.client import GenerationClient
from ..llm.litellm_provider import LiteLLMProvider
from ..llm.provider import LLMProvider
from ..llm.rate_limiting import ConcurrencyGate, RateGovernor
from ..models import FileBatch, ProcessingStats
from ..plugins import BUILTIN_PLUGINS
from ..plugins.manager import PluginManager
from ..scanner.workspace import WorkspaceAnalysis, WorkspaceAnalyzer
from .context_builder import ContextBuilder
from .file_processor import FileProcessor, select_declarations
from .stats import StatsRecorder
from .writer import DocWriter

logger = logging.getLogger(__name__)


class RunPhase(str, Enum):
    INIT = "init"
    ANALYZING = "analyzing"
    BATCHING = "batching"
    PROCESSING = "processing"
    FINALIZING = "finalizing"
    DONE = "done"


class DocumentationOrchestrator:
    """Runs the whole pipeline once.

    ``run`` always returns populated statistics. ConfigurationError is the
    only exception that escapes, and only from the INIT phase.
    """

    def __init__(
        self,
        config: Config,
        provider: Optional[LLMProvider] = None,
        plugins: Optional[PluginManager] = None,
        parser: Optional[DeclarationSource] = None,
        cache: Optional[CacheStore] = None,
    ):
        self.config = config
        self.provider = provider or LiteLLMProvider(timeout=config.ai.timeout)
        self.plugins = plugins or PluginManager(config)
        self.parser = parser or TSParser()
        self.cache = cache
        self.phase = RunPhase.INIT
        self._stop_requested = False

        self.file_gate: Optional[ConcurrencyGate] = None
        self.request_gate: Optional[ConcurrencyGate] = None
        self.client: Optional[GenerationClient] = None

    def request_stop(self) -> None:
        """Stop admitting new files and nodes. In-flight work finishes."""
        if not self._stop_requested:
            logger.warning("Stop requested, finishing in-flight work")
        self._stop_requested = True

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    async def _init(self) -> None:
        self.config.validate_for_run()

        self.file_gate = ConcurrencyGate(self.config.performance.max_concurrent_files, "file processing")
        self.request_gate = ConcurrencyGate(self.config.ai.max_concurrent_requests, "ai requests")
        governor = RateGovernor(self.request_gate, self.config.ai.request_delay_ms / 1000)
        self.client = GenerationClient(
            self.config, self.provider, governor, should_stop=lambda: self._stop_requested
        )

        for spec in self.config.plugins:
            builtin = BUILTIN_PLUGINS.get(spec)
            if builtin is not None:
                await self.plugins.register(builtin(self.config))
            else:
                await self.plugins.load(spec)

        if self.cache is None and self.config.performance.enable_caching:
            cache_dir = self.config.performance.cache_dir
            if not cache_dir.is_absolute():
                cache_dir = self.config.base_dir / cache_dir
            self.cache = CacheStore(
                cache_dir,
                version=self.config.cache_version(__version__),
                max_age_hours=self.config.performance.cache_max_age_hours,
            )
        if self.cache is not None:
            await self.cache.initialize()

    async def run(self) -> ProcessingStats:
        self.phase = RunPhase.INIT
        await self._init()
        recorder = StatsRecorder(dry_run=self.config.dry_run, configuration_used=self.config.sanitized())

        try:
            self.phase = RunPhase.ANALYZING
            analysis = await asyncio.to_thread(WorkspaceAnalyzer(self.config, self.parser).analyze)

            self.phase = RunPhase.BATCHING
            recorder.workspace(len(analysis.packages), len(analysis.batches), analysis.total_files)
            index = await self._build_relationship_index(analysis, recorder)

            builder = ContextBuilder(self.config, analysis.symbol_map, index)
            processor = FileProcessor(
                config=self.config,
                parser=self.parser,
                builder=builder,
                client=self.client,
                plugins=self.plugins,
                writer=DocWriter(dry_run=self.config.dry_run),
                recorder=recorder,
                cache=self.cache,
                should_stop=lambda: self._stop_requested,
            )

            self.phase = RunPhase.PROCESSING
            for batch in analysis.batches:
                if self._stop_requested:
                    break
                await self._process_batch(batch, analysis, processor, recorder)
                recorder.batch_done()
        except Exception as e:
            logger.exception("Run aborted during %s", self.phase.value)
            recorder.error(str(self.config.base_dir), f"run aborted during {self.phase.value}: {e}")

        self.phase = RunPhase.FINALIZING
        if self._stop_requested:
            recorder.interrupted()
        stats = recorder.finalize(self.client.request_count if self.client else 0)
        await self.plugins.finalize(stats)

        self.phase = RunPhase.DONE
        return stats

    async def _process_batch(
        self,
        batch: FileBatch,
        analysis: WorkspaceAnalysis,
        processor: FileProcessor,
        recorder: StatsRecorder,
    ) -> None:
        logger.info("Processing %s (%d files, ~%d tokens)", batch.id, len(batch.files), batch.estimated_tokens)

        async def _one(path: Path) -> None:
            if self._stop_requested:
                return
            try:
                await processor.process_file(path, analysis.package_for(path))
            except Exception as e:
                logger.error("Failed to process %s: %s", path, e)
                recorder.error(processor.relative(path), str(e))
                await self.plugins.notify_error(e)

        await self.file_gate.execute_all([lambda p=path: _one(p) for path in batch.files])

    async def _build_relationship_index(
        self, analysis: WorkspaceAnalysis, recorder: StatsRecorder
    ) -> Optional[RelationshipIndex]:
        if not self.config.embeddings_active or not self.config.docs.include_related_symbols:
            logger.info("Relationship index disabled")
            return None

        nodes = await asyncio.to_thread(self._collect_declarations, analysis)
        if not nodes:
            return None

        index = RelationshipIndex(
            self.client.embed,
            batch_size=self.config.embedding.embedding_batch_size,
            cache=self.cache,
            model_id=self.client.resolve_model(None, "embedding").id,
        )
        result = await index.index(nodes)
        recorder.embeddings(result.successes, result.failures)
        return index

    def _collect_declarations(self, analysis: WorkspaceAnalysis) -> list[DeclarationNode]:
        nodes: list[DeclarationNode] = []
        base = self.config.base_dir.resolve()
        for batch in analysis.batches:
            for path in batch.files:
                try:
                    rel_path = path.resolve().relative_to(base).as_posix()
                except ValueError:
                    rel_path = path.as_posix()
                try:
                    outline = self.parser.parse(rel_path, read_source(path))
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning("Skipping %s for embeddings: %s", rel_path, e)
                    continue
                nodes.extend(select_declarations(outline.declarations, self.config.docs))
        return nodes
