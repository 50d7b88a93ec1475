"""
Plugin service -- lifecycle operations and slot resolution for callers
(HTTP handlers, page renderers).

Owns the process-wide registry, module loader and resolver. Request-scoped
state (the DB session and the viewer) is passed into each call.

Read paths (``list_plugins``, ``resolve_slot``, ``render_slot``) never raise;
write paths raise ``UnauthorizedError`` / ``NotFoundError`` / ``ValidationError``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.models import PluginInstallation
from plugin_system.errors import NotFoundError, UnauthorizedError, ValidationError
from plugin_system.loader import PluginModuleLoader
from plugin_system.registry import PluginRegistry
from plugin_system.resolver import SlotResolver
from plugin_system.stores import EntityOverrideStore, InstallationStore
from plugin_system.types import (
    OVERRIDABLE_ENTITY_TYPES,
    EntityType,
    InstallationRecord,
    RenderedComponent,
    ResolvedComponent,
)

logger = logging.getLogger(__name__)


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise UnauthorizedError()
    return user_id


def _check_entity_type(entity_type: str) -> str:
    try:
        value = EntityType(entity_type)
    except ValueError:
        value = None
    if value not in OVERRIDABLE_ENTITY_TYPES:
        raise ValidationError(
            code="override.entity_type_invalid",
            message=f"Invalid entity type: {entity_type}",
            meta={"valid_types": [t.value for t in OVERRIDABLE_ENTITY_TYPES]},
        )
    return value.value


class PluginService:
    def __init__(self, registry: PluginRegistry, loader: PluginModuleLoader):
        self.registry = registry
        self.loader = loader
        self.resolver = SlotResolver(registry, loader)

    def _require_plugin(self, plugin_id: str):
        manifest = self.registry.get_by_id(plugin_id)
        if manifest is None:
            raise NotFoundError(
                code="plugin.not_found",
                message="Plugin not found",
                meta={"plugin_id": plugin_id},
            )
        return manifest

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def list_plugins(self, session: AsyncSession, user_id: Optional[str]) -> list[dict[str, Any]]:
        """Every registered manifest plus the viewer's installation state."""
        installations: dict[str, InstallationRecord] = {}
        if user_id:
            try:
                records = await InstallationStore(session).list_for_user(user_id)
                installations = {r.plugin_id: r for r in records}
            except Exception as e:
                logger.warning("Could not fetch installations for %s: %s", user_id, e)

        plugins = []
        for manifest in self.registry.get_all():
            record = installations.get(manifest.id)
            item = manifest.model_dump(mode="json")
            item.update(
                installed=record is not None,
                enabled=record.enabled if record else False,
                settings=dict(record.settings) if record else {},
            )
            plugins.append(item)
        return plugins

    # ------------------------------------------------------------------
    # Installation lifecycle
    # ------------------------------------------------------------------

    async def install(self, session: AsyncSession, user_id: Optional[str], plugin_id: str) -> PluginInstallation:
        user_id = _require_user(user_id)
        self._require_plugin(plugin_id)

        row = await InstallationStore(session).upsert_enabled(user_id, plugin_id)
        await session.commit()
        logger.info("User %s installed plugin '%s'", user_id, plugin_id)
        return row

    async def set_enabled(
        self,
        session: AsyncSession,
        user_id: Optional[str],
        plugin_id: str,
        enabled: bool,
    ) -> PluginInstallation:
        user_id = _require_user(user_id)
        row = await InstallationStore(session).set_enabled(user_id, plugin_id, enabled)
        if row is None:
            raise NotFoundError(
                code="plugin.not_installed",
                message="Plugin not installed",
                meta={"plugin_id": plugin_id},
            )
        await session.commit()
        return row

    async def set_settings(
        self,
        session: AsyncSession,
        user_id: Optional[str],
        plugin_id: str,
        settings: dict,
        merge: bool = False,
    ) -> PluginInstallation:
        user_id = _require_user(user_id)
        row = await InstallationStore(session).set_settings(user_id, plugin_id, settings, merge=merge)
        if row is None:
            raise NotFoundError(
                code="plugin.not_installed",
                message="Plugin not installed",
                meta={"plugin_id": plugin_id},
            )
        await session.commit()
        return row

    async def uninstall(self, session: AsyncSession, user_id: Optional[str], plugin_id: str) -> None:
        user_id = _require_user(user_id)
        try:
            deleted = await InstallationStore(session).delete(user_id, plugin_id)
            if not deleted:
                raise NotFoundError(
                    code="plugin.not_installed",
                    message="Plugin not installed",
                    meta={"plugin_id": plugin_id},
                )
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        logger.info("User %s uninstalled plugin '%s'", user_id, plugin_id)

    # ------------------------------------------------------------------
    # Entity overrides
    # ------------------------------------------------------------------

    async def get_entity_override(
        self,
        session: AsyncSession,
        user_id: Optional[str],
        entity_type: str,
        entity_id: str,
    ) -> Optional[list[str]]:
        user_id = _require_user(user_id)
        entity_type = _check_entity_type(entity_type)
        return await EntityOverrideStore(session).get(user_id, entity_type, entity_id)

    async def set_entity_override(
        self,
        session: AsyncSession,
        user_id: Optional[str],
        entity_type: str,
        entity_id: str,
        plugin_ids: list[str],
    ) -> list[str]:
        user_id = _require_user(user_id)
        entity_type = _check_entity_type(entity_type)

        unknown = [pid for pid in plugin_ids if pid not in self.registry]
        if unknown:
            raise NotFoundError(
                code="plugin.not_found",
                message="Plugin not found",
                meta={"plugin_ids": unknown},
            )

        stored = await EntityOverrideStore(session).replace(user_id, entity_type, entity_id, plugin_ids)
        await session.commit()
        logger.info(
            "User %s set plugin override for %s:%s -> %s", user_id, entity_type, entity_id, stored
        )
        return stored

    async def clear_entity_override(
        self,
        session: AsyncSession,
        user_id: Optional[str],
        entity_type: str,
        entity_id: str,
    ) -> bool:
        user_id = _require_user(user_id)
        entity_type = _check_entity_type(entity_type)
        cleared = await EntityOverrideStore(session).clear(user_id, entity_type, entity_id)
        await session.commit()
        if cleared:
            logger.info("User %s cleared plugin override for %s:%s", user_id, entity_type, entity_id)
        return cleared

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    async def resolve_slot(
        self,
        session: AsyncSession,
        slot_name: str,
        user_id: Optional[str],
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> list[ResolvedComponent]:
        return await self.resolver.resolve(
            slot_name,
            user_id,
            installations=InstallationStore(session),
            overrides=EntityOverrideStore(session),
            entity_type=entity_type,
            entity_id=entity_id,
        )

    async def render_slot(
        self,
        session: AsyncSession,
        slot_name: str,
        user_id: Optional[str],
        data: Any,
        context: Optional[dict] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> list[RenderedComponent]:
        resolved = await self.resolve_slot(session, slot_name, user_id, entity_type, entity_id)
        return await self.resolver.render(resolved, data, context)

    async def shutdown(self) -> None:
        await self.loader.unload_all()
