"""Plugin capability interface and a no-op base class."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import Config
    from ..models import NodeContext, ProcessingStats


@runtime_checkable
class Plugin(Protocol):
    """Hooks a plugin may provide. Every hook is awaited."""

    name: str
    version: str
    description: str

    async def initialize(self, config: Config) -> None:
        ...

    async def before_processing(self, context: NodeContext) -> NodeContext:
        """Enrich the context before the cache lookup and generation."""
        ...

    async def after_processing(self, context: NodeContext, text: str) -> str:
        """Post-process generated doc text before it is cached and written."""
        ...

    async def on_complete(self, stats: ProcessingStats) -> None:
        ...

    async def on_error(self, error: Exception, context: Optional[NodeContext] = None) -> None:
        ...

    def enable(self) -> None:
        ...

    def disable(self) -> None:
        ...

    def is_enabled(self) -> bool:
        ...


class BasePlugin:
    """Convenience base: every hook is a pass-through."""

    name = "BasePlugin"
    version = "0.0.0"
    description = ""

    def __init__(self, config: Optional[Config] = None):
        self.config = config
        self._enabled = True

    async def initialize(self, config: Config) -> None:
        self.config = config

    async def before_processing(self, context: NodeContext) -> NodeContext:
        return context

    async def after_processing(self, context: NodeContext, text: str) -> str:
        return text

    async def on_complete(self, stats: ProcessingStats) -> None:
        return None

    async def on_error(self, error: Exception, context: Optional[NodeContext] = None) -> None:
        return None

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled
