"""Per-file processing: parse, generate per node, write back once."""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from ..backends.models import DeclarationNode, FileOutline
from ..backends.protocol import DeclarationSource
from ..cache import CacheStore, generation_cache_key
from ..config import Config, DocConfig
from ..errors import AnalysisError, GenerationError
from ..fileio import read_source
from ..llm.client import INTERRUPTED, GenerationClient
from ..llm.prompts import PROMPT_TEMPLATE_VERSION
from ..models import GenerationOutcome, NodeContext, OutcomeStatus, WorkspacePackage
from ..plugins.manager import PluginManager
from .context_builder import ContextBuilder
from .doc_comment import MergeAction, decide_action
from .stats import StatsRecorder
from .writer import DocEdit, DocWriter, render_doc

logger = logging.getLogger(__name__)


def select_declarations(declarations: list[DeclarationNode], docs: DocConfig) -> list[DeclarationNode]:
    """Apply kind and visibility filters, exported nodes first when asked."""
    selected = []
    for declaration in declarations:
        if declaration.kind not in docs.include_node_kinds:
            continue
        if declaration.kind in docs.exclude_node_kinds:
            continue
        if declaration.is_private and not docs.include_private:
            continue
        selected.append(declaration)

    if docs.prioritize_exports:
        selected.sort(key=lambda d: (not d.is_exported, d.start_line))
    return selected


class FileProcessor:
    """Runs every documentable node of one file through the pipeline.

    Node failures are recorded and never stop sibling nodes. File-level
    failures propagate to the orchestrator.
    """

    def __init__(
        self,
        config: Config,
        parser: DeclarationSource,
        builder: ContextBuilder,
        client: GenerationClient,
        plugins: PluginManager,
        writer: DocWriter,
        recorder: StatsRecorder,
        cache: Optional[CacheStore] = None,
        should_stop: Callable[[], bool] = lambda: False,
    ):
        self.config = config
        self.parser = parser
        self.builder = builder
        self.client = client
        self.plugins = plugins
        self.writer = writer
        self.recorder = recorder
        self.cache = cache
        self.should_stop = should_stop

    def relative(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.config.base_dir.resolve()).as_posix()
        except ValueError:
            return path.as_posix()

    async def load(self, path: Path) -> tuple[str, FileOutline]:
        """Read and parse a file.

        Raises:
            AnalysisError: If the file can't be read or parsed
        """
        rel_path = self.relative(path)
        try:
            source = await asyncio.to_thread(read_source, path)
        except (OSError, UnicodeDecodeError) as e:
            raise AnalysisError(f"Could not read {rel_path}: {e}", {"file": rel_path}) from e
        try:
            outline = await asyncio.to_thread(self.parser.parse, rel_path, source)
        except Exception as e:
            raise AnalysisError(f"Could not parse {rel_path}: {e}", {"file": rel_path}) from e
        return source, outline

    async def process_file(self, path: Path, package: Optional[WorkspacePackage] = None) -> None:
        source, outline = await self.load(path)
        declarations = select_declarations(outline.declarations, self.config.docs)
        logger.debug("%s: %d documentable nodes", outline.path, len(declarations))

        results = await asyncio.gather(
            *(self.process_node(d, outline, package) for d in declarations)
        )
        edits = [edit for edit in results if edit is not None]

        if edits:
            # Raises TransformationError before anything is counted as documented
            change = await self.writer.commit(path, source, edits)
            self.recorder.doc_succeeded(change.edits_applied)
            if change.modified:
                self.recorder.file_changed(change.lines_added, change.lines_removed)
        self.recorder.file_done()

    async def process_node(
        self,
        declaration: DeclarationNode,
        outline: FileOutline,
        package: Optional[WorkspacePackage] = None,
    ) -> Optional[DocEdit]:
        if self.should_stop():
            return None

        self.recorder.node_considered()
        context: Optional[NodeContext] = None
        try:
            action = decide_action(declaration.existing_doc, self.config.overwrite, self.config.merge)
            if action == MergeAction.SKIP:
                self.recorder.doc_skipped()
                return None

            context = self.builder.build(declaration, outline, package)
            self.recorder.relationships(len(context.related_symbols))
            context = await self.plugins.run_before(context)

            outcome = await self.generate(context, declaration)
            if outcome.status == OutcomeStatus.SKIP and outcome.reason == INTERRUPTED:
                return None
            if outcome.status == OutcomeStatus.SKIP:
                logger.debug("Skipped %s: %s", declaration.qualified_name, outcome.reason)
                self.recorder.doc_skipped()
                return None
            if outcome.status == OutcomeStatus.ERROR:
                self.recorder.doc_failed(outline.path, declaration.qualified_name, outcome.reason or "unknown error")
                await self.plugins.notify_error(GenerationError(outcome.reason or "generation failed"), context)
                return None

            doc = render_doc(action, declaration, outcome.content or "")
            if doc is None:
                self.recorder.doc_skipped()
                return None

            return DocEdit(declaration=declaration, action=action, doc=doc)
        except Exception as e:
            logger.error("Failed to document %s in %s: %s", declaration.qualified_name, outline.path, e)
            self.recorder.doc_failed(outline.path, declaration.qualified_name, str(e))
            await self.plugins.notify_error(e, context)
            return None

    async def generate(self, context: NodeContext, declaration: DeclarationNode) -> GenerationOutcome:
        """Cache lookup, then generation and after-hooks on a miss."""
        model_id = self.config.ai.default_generation_model_id
        prompt_version = f"{PROMPT_TEMPLATE_VERSION}:{self.config.ai.prompt_version}"
        key = generation_cache_key(declaration.text, model_id, prompt_version)

        if self.cache is not None:
            cached = await self.cache.get(key)
            if isinstance(cached, str) and cached:
                self.recorder.cache_hit()
                logger.debug("Cache hit for %s", context.node_name)
                return GenerationOutcome.success(cached)

        outcome = await self.client.generate(context, model_id)
        if not outcome.ok:
            return outcome

        text = await self.plugins.run_after(context, outcome.content or "")
        if self.cache is not None:
            await self.cache.set(key, text)
        return GenerationOutcome.success(text)
