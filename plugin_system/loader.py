"""
Plugin Module Loader -- turns a plugin id into live slot components.

The set of loadable plugins is a closed table of ``plugin id -> factory``
built at startup (see ``plugin_system.catalog``). Loading a module:

    1. checks the id against the registry and the factory table
    2. builds the module and runs its ``initialize`` hook (once per load)
    3. caches the module and a slot name -> component map

Loads are serialised per plugin id, so concurrent first requests for the
same plugin run ``initialize`` exactly once. Cached reads take no lock.
A failing or slow load leaves the plugin unloaded and is reported as
"not found" to the caller.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Optional

from plugin_system.registry import PluginRegistry
from plugin_system.types import PluginFactory, PluginModule, SlotComponent

logger = logging.getLogger(__name__)

DEFAULT_LOAD_TIMEOUT = 5.0


async def _run_hook(hook) -> None:
    result = hook()
    if inspect.isawaitable(result):
        await result


class PluginLoadError(Exception):
    """Raised internally when a module cannot be materialised."""


class PluginModuleLoader:
    """Process-wide module cache keyed by plugin id."""

    def __init__(
        self,
        registry: PluginRegistry,
        factories: dict[str, PluginFactory],
        load_timeout: float = DEFAULT_LOAD_TIMEOUT,
    ):
        self._registry = registry
        self._factories = dict(factories)
        self._load_timeout = load_timeout
        self._modules: dict[str, PluginModule] = {}
        self._components: dict[str, dict[str, SlotComponent]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._failures: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, plugin_id: str) -> Optional[PluginModule]:
        """Return the loaded module for ``plugin_id``, loading it on first use.

        Returns None for unknown ids and for modules that fail to build,
        fail to initialise or exceed the load timeout.
        """
        cached = self._modules.get(plugin_id)
        if cached is not None:
            return cached

        if plugin_id not in self._registry or plugin_id not in self._factories:
            logger.warning("Unknown plugin: %s", plugin_id)
            return None

        lock = self._locks.setdefault(plugin_id, asyncio.Lock())
        async with lock:
            # Another caller may have finished the load while we waited
            cached = self._modules.get(plugin_id)
            if cached is not None:
                return cached

            try:
                module = await asyncio.wait_for(
                    self._materialize(plugin_id), timeout=self._load_timeout
                )
            except asyncio.TimeoutError:
                self._failures[plugin_id] = f"load timed out after {self._load_timeout}s"
                logger.error(
                    "Plugin '%s' load timed out after %.1fs", plugin_id, self._load_timeout
                )
                return None
            except Exception as e:
                self._failures[plugin_id] = str(e) or e.__class__.__name__
                logger.exception("Failed to load plugin '%s'", plugin_id)
                return None

            self._modules[plugin_id] = module
            self._components[plugin_id] = dict(module.components)
            self._failures.pop(plugin_id, None)
            logger.info(
                "Plugin '%s' loaded (%d slot components)", plugin_id, len(module.components)
            )
            return module

    async def _materialize(self, plugin_id: str) -> PluginModule:
        module = self._factories[plugin_id]()
        if inspect.isawaitable(module):
            module = await module

        if module.plugin_id != plugin_id:
            raise PluginLoadError(
                f"factory for '{plugin_id}' produced module '{module.plugin_id}'"
            )

        if module.initialize is not None:
            await _run_hook(module.initialize)
        return module

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_component(self, plugin_id: str, slot_name: str) -> Optional[SlotComponent]:
        components = self._components.get(plugin_id)
        if components is None:
            return None
        return components.get(slot_name)

    def is_loaded(self, plugin_id: str) -> bool:
        return plugin_id in self._modules

    @property
    def loaded_ids(self) -> list[str]:
        return list(self._modules)

    @property
    def failures(self) -> dict[str, str]:
        """Last load failure per plugin id (cleared by a successful load)."""
        return dict(self._failures)

    # ------------------------------------------------------------------
    # Unloading
    # ------------------------------------------------------------------

    async def unload(self, plugin_id: str) -> bool:
        """Run ``cleanup`` and evict the module. Returns False if it wasn't loaded."""
        if plugin_id not in self._modules and plugin_id not in self._locks:
            return False
        lock = self._locks.setdefault(plugin_id, asyncio.Lock())
        async with lock:
            module = self._modules.pop(plugin_id, None)
            self._components.pop(plugin_id, None)
            if module is None:
                return False

            if module.cleanup is not None:
                try:
                    await _run_hook(module.cleanup)
                except Exception:
                    logger.exception("Cleanup failed for plugin '%s'", plugin_id)

        logger.info("Plugin '%s' unloaded", plugin_id)
        return True

    async def unload_all(self) -> None:
        for plugin_id in list(self._modules):
            await self.unload(plugin_id)
