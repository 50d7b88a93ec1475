"""
Plugin Registry -- the catalog of every plugin manifest known to the process.

Written once at startup, read many times afterwards. Registration is still
guarded by a lock so late or duplicate registrations stay consistent:
the first manifest registered for an id wins, later ones are reported as
conflicts and dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Optional

from plugin_system.types import EntityType, PluginManifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationConflict:
    plugin_id: str
    rejected_version: str
    registered_version: str


class PluginRegistry:
    """Insertion-ordered map of plugin id -> manifest."""

    def __init__(self):
        self._manifests: dict[str, PluginManifest] = {}
        self._conflicts: list[RegistrationConflict] = []
        self._lock = Lock()

    def register(self, manifest: PluginManifest) -> bool:
        """Add ``manifest`` unless its id is taken. Returns True if it was added."""
        with self._lock:
            existing = self._manifests.get(manifest.id)
            if existing is not None:
                self._conflicts.append(
                    RegistrationConflict(
                        plugin_id=manifest.id,
                        rejected_version=manifest.version,
                        registered_version=existing.version,
                    )
                )
                logger.warning(
                    "Plugin '%s' is already registered (v%s), ignoring v%s",
                    manifest.id, existing.version, manifest.version,
                )
                return False
            self._manifests[manifest.id] = manifest

        logger.info("Plugin '%s' registered as available", manifest.name)
        return True

    def get_all(self) -> list[PluginManifest]:
        return list(self._manifests.values())

    def get_by_id(self, plugin_id: str) -> Optional[PluginManifest]:
        """Manifest for ``plugin_id``, or None if it was never registered."""
        return self._manifests.get(plugin_id)

    def get_by_entity_type(self, entity_type: EntityType | str) -> list[PluginManifest]:
        try:
            entity_type = EntityType(entity_type)
        except ValueError:
            return []
        return [m for m in self._manifests.values() if entity_type in m.entity_types]

    def get_by_slot(self, slot_name: str) -> list[PluginManifest]:
        return [m for m in self._manifests.values() if m.declares_slot(slot_name)]

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._manifests

    def __len__(self) -> int:
        return len(self._manifests)

    @property
    def conflicts(self) -> list[RegistrationConflict]:
        return list(self._conflicts)
