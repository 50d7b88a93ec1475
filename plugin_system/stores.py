"""
Persistence for plugin installations and per-entity overrides.

Both stores work on a caller-owned ``AsyncSession`` and only flush; the
caller commits, so multi-step changes (uninstall + override cleanup) land
in a single transaction.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.models import EntityPluginConfig, EntityPluginOverride, PluginInstallation
from plugin_system.types import InstallationRecord


def _to_record(row: PluginInstallation) -> InstallationRecord:
    return InstallationRecord(
        user_id=row.user_id,
        plugin_id=row.plugin_id,
        enabled=bool(row.enabled),
        settings=dict(row.settings or {}),
    )


class InstallationStore:
    """CRUD over ``plugin_installations`` keyed by (user_id, plugin_id)."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_for_user(self, user_id: str) -> list[InstallationRecord]:
        rows = (
            await self._session.execute(
                select(PluginInstallation)
                .where(PluginInstallation.user_id == user_id)
                .order_by(PluginInstallation.id)
            )
        ).scalars().all()
        return [_to_record(r) for r in rows]

    async def get(self, user_id: str, plugin_id: str) -> Optional[PluginInstallation]:
        return (
            await self._session.execute(
                select(PluginInstallation).where(
                    PluginInstallation.user_id == user_id,
                    PluginInstallation.plugin_id == plugin_id,
                )
            )
        ).scalar_one_or_none()

    async def upsert_enabled(self, user_id: str, plugin_id: str) -> PluginInstallation:
        """Create the installation enabled, or re-enable it keeping its settings."""
        row = await self.get(user_id, plugin_id)
        if row is None:
            row = PluginInstallation(user_id=user_id, plugin_id=plugin_id, enabled=True, settings={})
            self._session.add(row)
        else:
            row.enabled = True
        await self._session.flush()
        return row

    async def set_enabled(self, user_id: str, plugin_id: str, enabled: bool) -> Optional[PluginInstallation]:
        row = await self.get(user_id, plugin_id)
        if row is None:
            return None
        row.enabled = bool(enabled)
        await self._session.flush()
        return row

    async def set_settings(
        self,
        user_id: str,
        plugin_id: str,
        settings: dict,
        merge: bool = False,
    ) -> Optional[PluginInstallation]:
        row = await self.get(user_id, plugin_id)
        if row is None:
            return None
        if merge:
            # Assign a new dict so the JSON column is marked dirty
            row.settings = {**(row.settings or {}), **settings}
        else:
            row.settings = dict(settings)
        await self._session.flush()
        return row

    async def delete(self, user_id: str, plugin_id: str) -> bool:
        """Delete the installation and every override entry for (user, plugin)."""
        result = await self._session.execute(
            delete(PluginInstallation).where(
                PluginInstallation.user_id == user_id,
                PluginInstallation.plugin_id == plugin_id,
            )
        )
        await self._session.execute(
            delete(EntityPluginConfig).where(
                EntityPluginConfig.user_id == user_id,
                EntityPluginConfig.plugin_id == plugin_id,
            )
        )
        await self._session.flush()
        return (result.rowcount or 0) > 0


class EntityOverrideStore:
    """Per-viewer, per-entity override sets.

    ``get`` returns None when no override record exists and the stored list
    (possibly empty) when one does. The two states are kept apart.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_row(self, user_id: str, entity_type: str, entity_id: str) -> Optional[EntityPluginOverride]:
        return (
            await self._session.execute(
                select(EntityPluginOverride)
                .options(selectinload(EntityPluginOverride.plugins))
                .execution_options(populate_existing=True)
                .where(
                    EntityPluginOverride.user_id == user_id,
                    EntityPluginOverride.entity_type == entity_type,
                    EntityPluginOverride.entity_id == entity_id,
                )
            )
        ).scalar_one_or_none()

    async def get(self, user_id: str, entity_type: str, entity_id: str) -> Optional[list[str]]:
        row = await self._get_row(user_id, entity_type, entity_id)
        if row is None:
            return None
        return [p.plugin_id for p in sorted(row.plugins, key=lambda p: p.id or 0)]

    async def replace(
        self,
        user_id: str,
        entity_type: str,
        entity_id: str,
        plugin_ids: list[str],
    ) -> list[str]:
        """Replace the override set wholesale. Duplicates are dropped."""
        unique_ids = list(dict.fromkeys(plugin_ids))

        row = await self._get_row(user_id, entity_type, entity_id)
        if row is None:
            row = EntityPluginOverride(user_id=user_id, entity_type=entity_type, entity_id=entity_id)
            self._session.add(row)
            row.plugins = []
        else:
            row.plugins.clear()
            # Deleted children must hit the DB before re-inserting the same ids
            await self._session.flush()

        for plugin_id in unique_ids:
            row.plugins.append(EntityPluginConfig(user_id=user_id, plugin_id=plugin_id))
        await self._session.flush()
        return unique_ids

    async def clear(self, user_id: str, entity_type: str, entity_id: str) -> bool:
        row = await self._get_row(user_id, entity_type, entity_id)
        if row is None:
            return False
        await self._session.delete(row)
        await self._session.flush()
        return True
