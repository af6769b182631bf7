"""Token and cost estimation for generation requests."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import litellm

logger = logging.getLogger(__name__)


CHARS_PER_TOKEN_FALLBACK = 4

# USD per token when litellm has no price for the model
DEFAULT_COST_PER_TOKEN = 0.000015


@runtime_checkable
class TokenEstimator(Protocol):
    """Protocol for estimating token counts before sending to an LLM."""

    def estimate(self, messages: list[dict], model: str) -> int:
        ...

    def estimate_cost(self, prompt_tokens: int, model: str) -> float:
        ...


class LiteLLMTokenEstimator:
    """Estimator backed by litellm's tokenizer and price table.

    Falls back to ~4 chars/token and a flat price for unknown models.
    """

    def estimate(self, messages: list[dict], model: str) -> int:
        try:
            return litellm.token_counter(model=model, messages=messages)
        except Exception:
            logger.debug(
                "litellm.token_counter failed for model %s, using char-based fallback",
                model,
            )
            total_chars = sum(len(m.get("content", "")) for m in messages)
            return max(1, total_chars // CHARS_PER_TOKEN_FALLBACK)

    def estimate_text(self, text: str, model: str) -> int:
        return self.estimate([{"role": "user", "content": text}], model)

    def estimate_cost(self, prompt_tokens: int, model: str) -> float:
        try:
            prompt_cost, _ = litellm.cost_per_token(model=model, prompt_tokens=prompt_tokens)
            return float(prompt_cost)
        except Exception:
            logger.debug("No litellm price for %s, using default rate", model)
            return prompt_tokens * DEFAULT_COST_PER_TOKEN
