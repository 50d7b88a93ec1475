"""Investors endpoint -- listing, profile, plugin slots."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import Viewer, get_viewer
from backend.database import get_session
from backend.dependencies import get_plugin_service
from backend.entities import investor_brief, load_investor
from backend.models import Investor
from backend.routes.companies import MAX_PAGE_SIZE
from backend.routes.slots import render_profile_slot
from backend.schemas import PageResponse, Pagination, SlotResponse
from plugin_system.service import PluginService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/investors", tags=["investors"])


@router.get("/", response_model=PageResponse)
async def list_investors(
    cursor: Optional[str] = None,
    limit: int = Query(default=20, ge=1),
    session: AsyncSession = Depends(get_session),
):
    limit = min(limit, MAX_PAGE_SIZE)

    stmt = select(Investor)
    if cursor:
        stmt = stmt.where(Investor.id > cursor)
    rows = (await session.execute(stmt.order_by(Investor.id).limit(limit + 1))).scalars().all()
    has_more = len(rows) > limit
    rows = rows[:limit]

    return PageResponse(
        data=[investor_brief(i) for i in rows],
        pagination=Pagination(
            next_cursor=rows[-1].id if has_more and rows else None,
            has_more=has_more,
            limit=limit,
        ),
    )


@router.get("/{permalink}")
async def get_investor(permalink: str, session: AsyncSession = Depends(get_session)):
    investor = await load_investor(session, permalink)
    if investor is None:
        raise HTTPException(status_code=404, detail="Investor not found")
    return investor


@router.get("/{permalink}/slots/{slot_name}", response_model=SlotResponse)
async def investor_slot(
    permalink: str,
    slot_name: str,
    now: Optional[str] = None,
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
    plugins: PluginService = Depends(get_plugin_service),
):
    return await render_profile_slot(
        entity_type="investor",
        permalink=permalink,
        slot_name=slot_name,
        viewer=viewer,
        session=session,
        plugins=plugins,
        now=now,
    )
