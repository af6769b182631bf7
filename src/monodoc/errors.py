"""Error taxonomy for the documentation pipeline.

Only ConfigurationError aborts a run. Every other error class is contained
at the smallest scope (node, then file, then batch) and surfaced through
ProcessingStats.
"""

from typing import Any, Optional


class MonodocError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class AnalysisError(MonodocError):
    """Workspace or file discovery failed."""

    pass


class GenerationError(MonodocError):
    """Provider, network or output validation failure."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.status_code = status_code
        self.error_code = error_code


class TransientProviderError(GenerationError):
    """Timeout, rate limit or 5xx-equivalent. Safe to retry."""

    pass


class EmbeddingError(MonodocError):
    """Embedding request failed after retries."""

    pass


class CacheError(MonodocError):
    """Cache corruption or I/O failure. Always treated as a miss."""

    pass


class TransformationError(MonodocError):
    """Writing generated documentation back into a file failed."""

    pass


class ConfigurationError(MonodocError):
    """Invalid setup. Raised before any processing starts."""

    pass


class RunInterrupted(MonodocError):
    """A stop was requested before a queued request reached the provider."""

    pass
