"""LiteLLM provider for multi-provider generation and embeddings."""

import logging
from typing import Any
import litellm

from ..config import ModelConfig
from ..errors import GenerationError, TransientProviderError
from .provider import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


_TRANSIENT_ERRORS = (
    litellm.RateLimitError,
    litellm.Timeout,
    litellm.APIConnectionError,
    litellm.ServiceUnavailableError,
    litellm.InternalServerError,
)


class LiteLLMProvider(LLMProvider):
    """LLM provider using LiteLLM. One instance serves every model descriptor."""

    def __init__(self, timeout: int = 60):
        self.timeout = timeout

    def _base_kwargs(self, model: ModelConfig) -> dict[str, Any]:
        # Retries are handled by RetryHandler so attempts stay visible
        kwargs: dict[str, Any] = {
            "model": model.litellm_model,
            "timeout": self.timeout,
            "max_retries": 0,
        }
        if model.api_key:
            kwargs["api_key"] = model.api_key
        if model.base_url:
            kwargs["api_base"] = model.base_url
        return kwargs

    async def generate(self, messages: list[dict], model: ModelConfig) -> LLMResponse:
        kwargs = self._base_kwargs(model)
        kwargs["messages"] = messages
        if model.temperature is not None:
            kwargs["temperature"] = model.temperature
        if model.max_output_tokens:
            kwargs["max_tokens"] = model.max_output_tokens
        if model.top_p is not None:
            kwargs["top_p"] = model.top_p
        if model.seed is not None:
            kwargs["seed"] = model.seed
        if model.stop_sequences:
            kwargs["stop"] = model.stop_sequences

        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            raise self._translate(e, model) from e

        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=model.model,
            tokens_used=getattr(usage, "total_tokens", None) if usage else None,
        )

    async def embed(self, texts: list[str], model: ModelConfig) -> list[list[float]]:
        kwargs = self._base_kwargs(model)
        kwargs["input"] = texts
        if model.dimensions:
            kwargs["dimensions"] = model.dimensions

        try:
            response = await litellm.aembedding(**kwargs)
        except Exception as e:
            raise self._translate(e, model) from e

        vectors = []
        for item in response.data:
            vector = item["embedding"] if isinstance(item, dict) else item.embedding
            vectors.append(list(vector))
        if len(vectors) != len(texts):
            raise GenerationError(
                f"Embedding count mismatch: sent {len(texts)}, received {len(vectors)}"
            )
        return vectors

    def _translate(self, error: Exception, model: ModelConfig) -> GenerationError:
        status = getattr(error, "status_code", None)
        if isinstance(error, litellm.AuthenticationError):
            hint = model.api_key_env_var or f"{model.provider.upper()}_API_KEY"
            return GenerationError(
                f"{model.provider} authentication failed. Set {hint} in your .env file",
                status_code=status,
                error_code="AUTH_FAILURE",
            )
        if isinstance(error, _TRANSIENT_ERRORS) or (isinstance(status, int) and status >= 500):
            return TransientProviderError(
                f"Transient failure from {model.litellm_model}: {error}",
                status_code=status,
                error_code="TRANSIENT",
            )
        return GenerationError(
            f"LLM request to {model.litellm_model} failed: {error}",
            status_code=status,
            error_code="PROVIDER_FAILURE",
        )
