"""Slot rendering for entity profile pages."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import Viewer
from backend.entities import ENTITY_LOADERS
from backend.schemas import RenderedSlotComponent, SlotResponse
from plugin_system.service import PluginService

logger = logging.getLogger(__name__)


async def render_profile_slot(
    *,
    entity_type: str,
    permalink: str,
    slot_name: str,
    viewer: Viewer,
    session: AsyncSession,
    plugins: PluginService,
    now: Optional[str] = None,
) -> SlotResponse:
    data = await ENTITY_LOADERS[entity_type](session, permalink)
    if data is None:
        raise HTTPException(status_code=404, detail=f"{entity_type.capitalize()} not found")

    context = {"entity_type": entity_type, "permalink": permalink}
    if now:
        context["now"] = now

    rendered = await plugins.render_slot(
        session,
        slot_name,
        viewer.user_id,
        data=data,
        context=context,
        entity_type=entity_type,
        entity_id=permalink,
    )
    return SlotResponse(
        slot_name=slot_name,
        entity_type=entity_type,
        entity_id=permalink,
        components=[
            RenderedSlotComponent(plugin_id=r.plugin_id, slot_name=r.slot_name, content=r.content)
            for r in rendered
        ],
    )
