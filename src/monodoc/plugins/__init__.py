"""Plugin pipeline and built-in plugins."""

from .api_docs import ApiDocumentationPlugin
from .base import BasePlugin, Plugin
from .manager import PluginManager
from .react import ReactComponentPlugin

BUILTIN_PLUGINS = {
    "api": ApiDocumentationPlugin,
    "react": ReactComponentPlugin,
}

__all__ = [
    "ApiDocumentationPlugin",
    "BasePlugin",
    "Plugin",
    "PluginManager",
    "ReactComponentPlugin",
    "BUILTIN_PLUGINS",
]
