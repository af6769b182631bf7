"""LLM access: providers, pacing, retries and the generation client."""

from .client import GenerationClient
from .provider import LLMProvider, LLMResponse
from .rate_limiting import ConcurrencyGate, RateGovernor, RetryHandler

__all__ = [
    "GenerationClient",
    "LLMProvider",
    "LLMResponse",
    "ConcurrencyGate",
    "RateGovernor",
    "RetryHandler",
]
