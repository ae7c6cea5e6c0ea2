"""Plugin pipeline and built-in plugins."""

from ledger_demo.plugins.base import HookPoint, Plugin, PluginContext
from ledger_demo.plugins.cache import CachePlugin
from ledger_demo.plugins.manager import PluginManager
from ledger_demo.plugins.metrics import MetricsPlugin
from ledger_demo.plugins.validation import FieldRule, ValidationPlugin

__all__ = [
    "CachePlugin",
    "FieldRule",
    "HookPoint",
    "MetricsPlugin",
    "Plugin",
    "PluginContext",
    "PluginManager",
    "ValidationPlugin",
]
