"""Abstract LLM provider interface."""

from abc import ABC, abstractmethod
from typing import Optional
from pydantic import BaseModel

from ..config import ModelConfig


class LLMResponse(BaseModel):
    """Response from an LLM provider."""

    content: str
    model: str
    tokens_used: Optional[int] = None


class LLMProvider(ABC):
    """Abstract base class for generation and embedding providers."""

    @abstractmethod
    async def generate(self, messages: list[dict], model: ModelConfig) -> LLMResponse:
        """Generate a chat completion.

        Args:
            messages: Chat messages with 'role' and 'content' keys
            model: Descriptor of the generation model to call

        Returns:
            LLMResponse containing the generated text

        Raises:
            TransientProviderError: For failures worth retrying
            GenerationError: For everything else
        """
        pass

    @abstractmethod
    async def embed(self, texts: list[str], model: ModelConfig) -> list[list[float]]:
        """Embed each text. Output order matches input order."""
        pass
