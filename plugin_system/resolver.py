"""
Slot Resolver -- which plugin components render into a slot.

For (slot, viewer, entity) the active components are:

    viewer's installations
      -> enabled only
      -> plugins whose manifest declares the slot
      -> narrowed by the viewer's override for this entity, if one exists
      -> loaded through the module loader

Output is ordered by registry (manifest registration) order, never by
installation order, so the same inputs always give the same list.

Resolution is best-effort: store failures yield an empty list and a
plugin that fails to load or render is skipped, never raised.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Optional, Protocol

from plugin_system.loader import PluginModuleLoader
from plugin_system.registry import PluginRegistry
from plugin_system.types import (
    EntityType,
    InstallationRecord,
    RenderedComponent,
    ResolvedComponent,
)

logger = logging.getLogger(__name__)


class InstallationSource(Protocol):
    async def list_for_user(self, user_id: str) -> list[InstallationRecord]: ...


class OverrideSource(Protocol):
    async def get(self, user_id: str, entity_type: str, entity_id: str) -> Optional[list[str]]: ...


class SlotResolver:
    def __init__(self, registry: PluginRegistry, loader: PluginModuleLoader):
        self._registry = registry
        self._loader = loader

    async def resolve(
        self,
        slot_name: str,
        user_id: Optional[str],
        installations: InstallationSource,
        overrides: OverrideSource,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> list[ResolvedComponent]:
        # Plugins require an account
        if not user_id:
            return []

        try:
            records = await installations.list_for_user(user_id)
        except Exception as e:
            logger.warning("Could not fetch installations for %s: %s", user_id, e)
            return []

        enabled = {r.plugin_id: r for r in records if r.enabled}
        candidates = [m.id for m in self._registry.get_by_slot(slot_name) if m.id in enabled]
        if not candidates:
            return []

        if entity_type and entity_id:
            try:
                entity_key = EntityType(entity_type).value
            except ValueError:
                logger.warning("Unknown entity type %r for slot %s", entity_type, slot_name)
                return []
            try:
                override = await overrides.get(user_id, entity_key, entity_id)
            except Exception as e:
                logger.warning(
                    "Could not fetch plugin override for %s %s:%s: %s",
                    user_id, entity_type, entity_id, e,
                )
                return []
            if override is not None:
                allowed = set(override)
                candidates = [pid for pid in candidates if pid in allowed]

        resolved: list[ResolvedComponent] = []
        for plugin_id in candidates:
            try:
                module = await self._loader.load(plugin_id)
            except Exception:
                logger.exception("Plugin '%s' failed while loading for slot %s", plugin_id, slot_name)
                continue
            if module is None:
                logger.warning("Plugin '%s' unavailable, skipping slot %s", plugin_id, slot_name)
                continue

            component = self._loader.get_component(plugin_id, slot_name)
            if component is None:
                continue
            resolved.append(
                ResolvedComponent(
                    plugin_id=plugin_id,
                    slot_name=slot_name,
                    component=component,
                    settings=dict(enabled[plugin_id].settings),
                )
            )
        return resolved

    async def render(
        self,
        resolved: list[ResolvedComponent],
        data: Any,
        context: Optional[dict] = None,
    ) -> list[RenderedComponent]:
        """Call each component inside its own failure boundary."""
        context = dict(context or {})
        rendered: list[RenderedComponent] = []
        for item in resolved:
            try:
                content = item.component(data, context, dict(item.settings))
                if inspect.isawaitable(content):
                    content = await content
            except Exception:
                logger.warning(
                    "Plugin '%s' failed to render slot %s",
                    item.plugin_id, item.slot_name, exc_info=True,
                )
                continue
            if content is None:
                continue
            rendered.append(
                RenderedComponent(plugin_id=item.plugin_id, slot_name=item.slot_name, content=content)
            )
        return rendered
