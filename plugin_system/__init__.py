"""Plugin system: registry, module loader, installation/override stores, slot resolver.

Plugins contribute components to named slots on entity profile pages.
Which components render depends on the viewer's installed + enabled
plugins and an optional per-entity override set.
"""

from .catalog import build_plugin_service
from .service import PluginService

__all__ = ["build_plugin_service", "PluginService"]
