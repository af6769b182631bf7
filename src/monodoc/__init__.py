"""monodoc - AI-generated JSDoc for JavaScript/TypeScript monorepos."""

__version__ = "0.1.0"

from .config import Config
from .errors import (
    AnalysisError,
    CacheError,
    ConfigurationError,
    EmbeddingError,
    GenerationError,
    MonodocError,
    TransformationError,
)
from .models import GenerationOutcome, NodeContext, ProcessingStats

__all__ = [
    "Config",
    "AnalysisError",
    "CacheError",
    "ConfigurationError",
    "EmbeddingError",
    "GenerationError",
    "MonodocError",
    "TransformationError",
    "GenerationOutcome",
    "NodeContext",
    "ProcessingStats",
]
