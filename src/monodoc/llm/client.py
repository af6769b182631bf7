"""Generation client: model resolution, pacing, retries and output validation."""

import logging
from typing import Callable, Optional

from ..config import Config, ModelConfig
from ..errors import ConfigurationError, EmbeddingError, RunInterrupted
from ..generator.doc_comment import extract_block, has_doc_marker, strip_fences
from ..models import GenerationOutcome, NodeContext
from .prompts import build_doc_messages
from .provider import LLMProvider, LLMResponse
from .rate_limiting import RateGovernor, RetryHandler
from .token_estimator import LiteLLMTokenEstimator, TokenEstimator

logger = logging.getLogger(__name__)

INTERRUPTED = "interrupted"


class GenerationClient:
    """Turns a NodeContext into a tri-state GenerationOutcome.

    Every provider attempt passes through the RateGovernor. Retries wrap
    the governor, so a request waiting out its backoff does not hold a
    concurrency slot. Expected failures become ``error`` outcomes and are
    never raised.

    ``should_stop`` is checked once a request clears the gate, so requests
    still queued when a stop arrives never reach the provider.
    """

    def __init__(
        self,
        config: Config,
        provider: LLMProvider,
        governor: RateGovernor,
        retry_handler: Optional[RetryHandler] = None,
        estimator: Optional[TokenEstimator] = None,
        should_stop: Callable[[], bool] = lambda: False,
    ):
        self.config = config
        self.provider = provider
        self.governor = governor
        self.retry_handler = retry_handler or RetryHandler(
            max_retries=config.ai.max_retries,
            base_delay=config.ai.retry_delay_ms / 1000,
        )
        self.estimator = estimator or LiteLLMTokenEstimator()
        self.should_stop = should_stop
        self.request_count = 0

    def resolve_model(self, model_id: Optional[str], kind: str) -> ModelConfig:
        if model_id is None:
            if kind == "embedding":
                model_id = self.config.embedding.model_id or self.config.ai.default_embedding_model_id
            else:
                model_id = self.config.ai.default_generation_model_id
        model = self.config.get_model(model_id)
        if model.kind != kind:
            raise ConfigurationError(f"Model {model_id} is a {model.kind} model, not {kind}")
        return model

    def available_models(self, kind: Optional[str] = None) -> list[ModelConfig]:
        return [m for m in self.config.models if kind is None or m.kind == kind]

    async def _call_generate(self, messages: list[dict], model: ModelConfig) -> LLMResponse:
        async def _attempt() -> LLMResponse:
            if self.should_stop():
                raise RunInterrupted("stop requested")
            self.request_count += 1
            return await self.provider.generate(messages, model)

        return await self.governor.execute(_attempt)

    async def _call_embed(self, texts: list[str], model: ModelConfig) -> list[list[float]]:
        async def _attempt() -> list[list[float]]:
            if self.should_stop():
                raise RunInterrupted("stop requested")
            self.request_count += 1
            return await self.provider.embed(texts, model)

        return await self.governor.execute(_attempt)

    async def generate(self, context: NodeContext, model_id: Optional[str] = None) -> GenerationOutcome:
        """Generate a doc comment for one node."""
        try:
            model = self.resolve_model(model_id, "generation")
        except ConfigurationError as e:
            return GenerationOutcome.error(str(e))

        messages = build_doc_messages(context, self.config.docs.generate_examples)
        logger.debug("Generating doc for %s using %s", context.node_name, model.litellm_model)

        try:
            response = await self.retry_handler.execute_with_retry(
                self._call_generate, messages, model, label=context.node_name
            )
        except RunInterrupted:
            return GenerationOutcome.skip(INTERRUPTED)
        except Exception as e:
            logger.error("Generation failed for %s: %s", context.node_name, e)
            return GenerationOutcome.error(str(e))

        return self.validate_output(response.content)

    def validate_output(self, text: Optional[str]) -> GenerationOutcome:
        cleaned = strip_fences(text or "")
        if not cleaned:
            return GenerationOutcome.skip("model returned empty output")
        if len(cleaned) < self.config.docs.min_doc_length:
            return GenerationOutcome.skip(
                f"output shorter than {self.config.docs.min_doc_length} characters"
            )
        if not has_doc_marker(cleaned):
            return GenerationOutcome.error("output contains no doc comment marker")
        return GenerationOutcome.success(extract_block(cleaned))

    async def embed(self, texts: list[str], model_id: Optional[str] = None) -> list[list[float]]:
        """Embed texts in one request.

        Raises:
            EmbeddingError: When retries are exhausted or the model is wrong
        """
        if not texts:
            return []
        try:
            model = self.resolve_model(model_id, "embedding")
            return await self.retry_handler.execute_with_retry(
                self._call_embed, texts, model, label=f"embedding batch of {len(texts)}"
            )
        except Exception as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

    def estimate_cost(self, context: NodeContext, model_id: Optional[str] = None) -> dict:
        """Rough prompt cost of generating a doc for context."""
        model = self.resolve_model(model_id, "generation")
        messages = build_doc_messages(context, self.config.docs.generate_examples)
        tokens = self.estimator.estimate(messages, model.litellm_model)
        return {
            "model": model.id,
            "estimated_tokens": tokens,
            "estimated_cost": self.estimator.estimate_cost(tokens, model.litellm_model),
        }
