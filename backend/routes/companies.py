"""Companies endpoint -- listing, profile, plugin slots."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import Viewer, get_viewer
from backend.database import get_session
from backend.dependencies import get_plugin_service
from backend.entities import company_brief, load_company
from backend.models import Company
from backend.routes.slots import render_profile_slot
from backend.schemas import PageResponse, Pagination, SlotResponse
from plugin_system.service import PluginService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/companies", tags=["companies"])

MAX_PAGE_SIZE = 100


@router.get("/", response_model=PageResponse)
async def list_companies(
    cursor: Optional[str] = None,
    limit: int = Query(default=20, ge=1),
    category_code: Optional[str] = None,
    status: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """Cursor-paginated company list (cursor = id of the last item seen)."""
    limit = min(limit, MAX_PAGE_SIZE)

    stmt = select(Company)
    if category_code:
        stmt = stmt.where(Company.category_code == category_code)
    if status:
        stmt = stmt.where(Company.status == status)
    if cursor:
        stmt = stmt.where(Company.id > cursor)

    # Fetch one extra row to know whether there is another page
    rows = (await session.execute(stmt.order_by(Company.id).limit(limit + 1))).scalars().all()
    has_more = len(rows) > limit
    rows = rows[:limit]

    return PageResponse(
        data=[company_brief(c) for c in rows],
        pagination=Pagination(
            next_cursor=rows[-1].id if has_more and rows else None,
            has_more=has_more,
            limit=limit,
        ),
    )


@router.get("/{permalink}")
async def get_company(permalink: str, session: AsyncSession = Depends(get_session)):
    company = await load_company(session, permalink)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.get("/{permalink}/slots/{slot_name}", response_model=SlotResponse)
async def company_slot(
    permalink: str,
    slot_name: str,
    now: Optional[str] = None,
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
    plugins: PluginService = Depends(get_plugin_service),
):
    """Rendered plugin components for one slot of a company profile."""
    return await render_profile_slot(
        entity_type="company",
        permalink=permalink,
        slot_name=slot_name,
        viewer=viewer,
        session=session,
        plugins=plugins,
        now=now,
    )
