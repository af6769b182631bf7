"""Tests for the generation client."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from monodoc.errors import EmbeddingError, GenerationError, TransientProviderError
from monodoc.llm.client import GenerationClient
from monodoc.llm.provider import LLMResponse
from monodoc.llm.rate_limiting import ConcurrencyGate, RateGovernor, RetryHandler
from monodoc.models import NodeContext, OutcomeStatus


@pytest.fixture
def context() -> NodeContext:
    return NodeContext(
        id="src/a.ts:add:1",
        code_snippet="export function add(a: number, b: number) { return a + b; }",
        node_kind="function",
        node_name="add",
        signature="export function add(a: number, b: number)",
        file_context="src/a.ts",
    )


def make_client(config, provider, max_retries: int = 0) -> GenerationClient:
    return GenerationClient(
        config,
        provider,
        RateGovernor(ConcurrencyGate(2)),
        retry_handler=RetryHandler(max_retries=max_retries, sleep=AsyncMock()),
    )


class TestGenerate:
    @pytest.mark.asyncio
    async def test_success(self, config, fake_provider, context):
        client = make_client(config, fake_provider)

        outcome = await client.generate(context)

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.content.startswith("/**")
        assert "Documentation for add." in outcome.content
        assert client.request_count == 1

    @pytest.mark.asyncio
    async def test_fenced_output_is_unwrapped(self, config, make_provider, context):
        provider = make_provider(content="```typescript\n/**\n * Adds two numbers together.\n */\n```")

        outcome = await make_client(config, provider).generate(context)

        assert outcome.ok
        assert "```" not in outcome.content

    @pytest.mark.asyncio
    async def test_empty_output_is_skip(self, config, make_provider, context):
        outcome = await make_client(config, make_provider(content="   ")).generate(context)
        assert outcome.status == OutcomeStatus.SKIP

    @pytest.mark.asyncio
    async def test_short_output_is_skip(self, config, make_provider, context):
        config.docs.min_doc_length = 500
        outcome = await make_client(config, make_provider()).generate(context)
        assert outcome.status == OutcomeStatus.SKIP

    @pytest.mark.asyncio
    async def test_output_without_marker_is_error(self, config, make_provider, context):
        provider = make_provider(content="Sure! This function adds two numbers and returns the sum.")
        outcome = await make_client(config, provider).generate(context)
        assert outcome.status == OutcomeStatus.ERROR

    @pytest.mark.asyncio
    async def test_provider_failure_is_error_not_exception(self, config, make_provider, context):
        provider = make_provider(fail_on={"add"})
        outcome = await make_client(config, provider).generate(context)
        assert outcome.status == OutcomeStatus.ERROR
        assert "provider rejected add" in outcome.reason

    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self, config, context):
        provider = MagicMock()
        provider.generate = AsyncMock(
            side_effect=[
                TransientProviderError("429 too many requests"),
                LLMResponse(content="/**\n * Adds two numbers.\n */", model="m"),
            ]
        )

        client = make_client(config, provider, max_retries=2)
        outcome = await client.generate(context)

        assert outcome.ok
        assert client.request_count == 2

    @pytest.mark.asyncio
    async def test_unknown_model_is_error(self, config, fake_provider, context):
        outcome = await make_client(config, fake_provider).generate(context, "no-such-model")
        assert outcome.status == OutcomeStatus.ERROR
        assert fake_provider.generate_calls == 0

    @pytest.mark.asyncio
    async def test_examples_rule_follows_config(self, config, fake_provider, context):
        config.docs.generate_examples = False
        await make_client(config, fake_provider).generate(context)
        assert "Do not include @example tags" in fake_provider.messages[0][0]["content"]


class TestEmbed:
    @pytest.mark.asyncio
    async def test_embed(self, config, fake_provider):
        vectors = await make_client(config, fake_provider).embed(["function a", "function b"])
        assert len(vectors) == 2
        assert fake_provider.embed_calls == 1

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_call(self, config, fake_provider):
        assert await make_client(config, fake_provider).embed([]) == []
        assert fake_provider.embed_calls == 0

    @pytest.mark.asyncio
    async def test_failure_raises_embedding_error(self, config):
        provider = MagicMock()
        provider.embed = AsyncMock(side_effect=GenerationError("quota"))

        with pytest.raises(EmbeddingError):
            await make_client(config, provider).embed(["x"])

    @pytest.mark.asyncio
    async def test_generation_model_rejected_for_embeddings(self, config, fake_provider):
        with pytest.raises(EmbeddingError):
            await make_client(config, fake_provider).embed(["x"], "anthropic-sonnet")


class TestModels:
    def test_available_models_by_kind(self, config, fake_provider):
        client = make_client(config, fake_provider)
        assert [m.id for m in client.available_models("embedding")] == ["openai-embedding"]
        assert len(client.available_models()) == 2

    def test_estimate_cost(self, config, fake_provider, context):
        estimator = MagicMock()
        estimator.estimate.return_value = 1000
        estimator.estimate_cost.return_value = 0.003
        client = GenerationClient(
            config, fake_provider, RateGovernor(ConcurrencyGate(1)), estimator=estimator
        )

        result = client.estimate_cost(context)

        assert result == {"model": "anthropic-sonnet", "estimated_tokens": 1000, "estimated_cost": 0.003}
        estimator.estimate.assert_called_once()
