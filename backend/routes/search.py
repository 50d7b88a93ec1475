"""Search endpoint -- keyword search over companies and investors."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database import get_session
from backend.models import Company, Investor
from backend.schemas import SearchHit, SearchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.get("/", response_model=SearchResponse)
async def search_entities(
    q: str = Query(..., min_length=1),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    session: AsyncSession = Depends(get_session),
):
    """
    Case-insensitive keyword match (ILIKE) on name and description.
    Companies are listed before investors, both by name; pages run across
    the combined list.
    """
    like_pattern = f"%{q.strip()}%"
    company_match = Company.name.ilike(like_pattern) | Company.description.ilike(like_pattern)
    investor_match = Investor.name.ilike(like_pattern) | Investor.description.ilike(like_pattern)

    company_total = (
        await session.execute(select(func.count()).select_from(Company).where(company_match))
    ).scalar_one()
    investor_total = (
        await session.execute(select(func.count()).select_from(Investor).where(investor_match))
    ).scalar_one()
    total = company_total + investor_total
    offset = (page - 1) * limit

    companies = []
    if offset < company_total:
        companies = (
            await session.execute(
                select(Company)
                .where(company_match)
                .order_by(Company.name, Company.id)
                .offset(offset)
                .limit(limit)
            )
        ).scalars().all()

    # Investors fill whatever the company side left of this page
    investors = []
    remaining = limit - len(companies)
    if remaining > 0 and investor_total:
        investors = (
            await session.execute(
                select(Investor)
                .where(investor_match)
                .order_by(Investor.name, Investor.id)
                .offset(max(0, offset - company_total))
                .limit(remaining)
            )
        ).scalars().all()

    results = [
        SearchHit(
            entity_type="company",
            id=c.id,
            permalink=c.permalink,
            name=c.name,
            description=c.description or "",
        )
        for c in companies
    ] + [
        SearchHit(
            entity_type="investor",
            id=i.id,
            permalink=i.permalink,
            name=i.name,
            description=i.description or "",
        )
        for i in investors
    ]
    logger.debug("search q=%r page=%d -> %d of %d hits", q, page, len(results), total)
    return SearchResponse(
        query=q,
        results=results,
        page=page,
        limit=limit,
        total=total,
        total_pages=(total + limit - 1) // limit,
    )
