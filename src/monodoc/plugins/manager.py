"""Ordered, chained plugin hooks."""

import importlib
import logging
from typing import Optional

from ..config import Config
from ..errors import ConfigurationError
from ..models import NodeContext, ProcessingStats
from .base import Plugin

logger = logging.getLogger(__name__)


class PluginManager:
    """Runs plugin hooks in registration order.

    Each hook receives the previous hook's output. A hook that raises is
    logged, its plugin's ``on_error`` is notified, and the pipeline carries
    on with the value from before that hook.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config
        self._plugins: list[Plugin] = []

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    def get(self, name: str) -> Optional[Plugin]:
        for plugin in self._plugins:
            if plugin.name == name:
                return plugin
        return None

    async def register(self, plugin: Plugin) -> None:
        if self.get(plugin.name):
            logger.warning("Plugin %s already registered, skipping duplicate", plugin.name)
            return
        if self.config is not None:
            await plugin.initialize(self.config)
        self._plugins.append(plugin)
        logger.info("Loaded plugin %s v%s", plugin.name, plugin.version)

    async def load(self, spec: str) -> Plugin:
        """Import and register a plugin from ``package.module:ClassName``.

        Raises:
            ConfigurationError: If the plugin can't be imported or built
        """
        module_name, _, class_name = spec.partition(":")
        if not module_name or not class_name:
            raise ConfigurationError(f"Plugin spec must look like 'module:Class', got {spec!r}")
        try:
            module = importlib.import_module(module_name)
            plugin_class = getattr(module, class_name)
            plugin = plugin_class(self.config)
        except (ImportError, AttributeError, TypeError) as e:
            raise ConfigurationError(f"Failed to load plugin {spec}: {e}") from e

        if not isinstance(plugin, Plugin):
            raise ConfigurationError(f"{spec} does not implement the plugin interface")
        await self.register(plugin)
        return plugin

    def enable(self, name: str) -> None:
        plugin = self.get(name)
        if plugin is None:
            logger.warning("Plugin %s not found, cannot enable", name)
            return
        plugin.enable()

    def disable(self, name: str) -> None:
        plugin = self.get(name)
        if plugin is None:
            logger.warning("Plugin %s not found, cannot disable", name)
            return
        plugin.disable()

    def _active(self) -> list[Plugin]:
        return [p for p in self._plugins if p.is_enabled()]

    async def run_before(self, context: NodeContext) -> NodeContext:
        current = context
        for plugin in self._active():
            # Hooks get a copy so a failing hook can't leave partial mutations
            candidate = current.model_copy(deep=True)
            try:
                result = await plugin.before_processing(candidate)
                current = result if result is not None else candidate
            except Exception as e:
                logger.warning("Plugin %s failed in before_processing: %s", plugin.name, e)
                await self.notify_error(e, current, only=plugin)
        return current

    async def run_after(self, context: NodeContext, text: str) -> str:
        current = text
        for plugin in self._active():
            try:
                result = await plugin.after_processing(context, current)
                if result is not None:
                    current = result
            except Exception as e:
                logger.warning("Plugin %s failed in after_processing: %s", plugin.name, e)
                await self.notify_error(e, context, only=plugin)
        return current

    async def finalize(self, stats: ProcessingStats) -> None:
        for plugin in self._active():
            try:
                await plugin.on_complete(stats)
            except Exception as e:
                logger.warning("Plugin %s failed in on_complete: %s", plugin.name, e)

    async def notify_error(
        self,
        error: Exception,
        context: Optional[NodeContext] = None,
        only: Optional[Plugin] = None,
    ) -> None:
        """Tell plugins about a failure. Errors raised by on_error are logged."""
        targets = [only] if only is not None else self._active()
        for plugin in targets:
            try:
                await plugin.on_error(error, context)
            except Exception as e:
                logger.warning("Plugin %s failed in on_error: %s", plugin.name, e)
