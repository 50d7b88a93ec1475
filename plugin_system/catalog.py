"""
Built-in plugin table and bootstrap.

The loadable plugin set is closed: a new plugin is added by listing its
manifest and factory here. Registration order below is the render order
of components inside a slot.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from plugin_system.loader import DEFAULT_LOAD_TIMEOUT, PluginModuleLoader
from plugin_system.registry import PluginRegistry
from plugin_system.service import PluginService
from plugin_system.types import PluginFactory, PluginManifest
from plugins import company_metrics, investor_insights, timeline

logger = logging.getLogger(__name__)

BUILTIN_PLUGINS: list[tuple[PluginManifest, PluginFactory]] = [
    (company_metrics.manifest, company_metrics.create_module),
    (investor_insights.manifest, investor_insights.create_module),
    (timeline.manifest, timeline.create_module),
]


def build_plugin_service(
    plugins: Optional[Iterable[tuple[PluginManifest, PluginFactory]]] = None,
    disabled: Iterable[str] = (),
    load_timeout: float = DEFAULT_LOAD_TIMEOUT,
) -> PluginService:
    """Register manifests and wire the loader's factory table."""
    disabled = set(disabled)
    registry = PluginRegistry()
    factories: dict[str, PluginFactory] = {}

    for manifest, factory in (BUILTIN_PLUGINS if plugins is None else plugins):
        if manifest.id in disabled:
            logger.info("Plugin '%s' disabled by configuration", manifest.id)
            continue
        if registry.register(manifest):
            factories[manifest.id] = factory

    logger.info("Plugin registration complete (%d plugins)", len(registry))
    loader = PluginModuleLoader(registry, factories, load_timeout=load_timeout)
    return PluginService(registry, loader)
