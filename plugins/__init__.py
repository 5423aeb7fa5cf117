"""
Plugins - lifecycle extensions for the checkout flow

Plugins are registered once at startup on the manager owned by the
application lifespan.
"""
from typing import Iterable, Optional

from core.config import get_settings
from core.logging import get_logger

from .base import Hook, Plugin, PluginContext, ValidationResult
from .examples import EXAMPLE_PLUGINS
from .manager import PluginErrorPolicy, PluginManager

logger = get_logger("plugins", domain="plugins")


def initialize_plugins(manager: PluginManager, plugins: Optional[Iterable[Plugin]] = None) -> PluginManager:
    """Register the bundled plugins (or ``plugins``) on ``manager``"""
    logger.info("Initializing plugins...")

    for plugin in EXAMPLE_PLUGINS if plugins is None else plugins:
        manager.register(plugin)

    if get_settings().is_development:
        logger.info("Development mode - bundled example plugins active")

    logger.info(f"{len(manager.get_plugins())} plugins initialized")
    return manager


__all__ = [
    "Hook",
    "Plugin",
    "PluginContext",
    "ValidationResult",
    "PluginManager",
    "PluginErrorPolicy",
    "EXAMPLE_PLUGINS",
    "initialize_plugins",
]
