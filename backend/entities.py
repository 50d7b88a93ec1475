"""Entity data provider -- company / investor records with nested relations.

The dicts built here are the ``data`` payload handed to plugin components
and are also returned as-is by the profile endpoints.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.models import Company, FundingRound, Investment, Investor


def _iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _newest_first(items: list, attr: str) -> list:
    dated = [i for i in items if getattr(i, attr) is not None]
    undated = [i for i in items if getattr(i, attr) is None]
    return sorted(dated, key=lambda i: getattr(i, attr), reverse=True) + undated


def company_brief(company: Company) -> dict:
    return {
        "id": company.id,
        "permalink": company.permalink,
        "name": company.name,
        "category_code": company.category_code or "",
        "status": company.status or "",
        "founded_at": _iso(company.founded_at),
        "closed_at": _iso(company.closed_at),
        "description": company.description or "",
        "homepage_url": company.homepage_url or "",
    }


def funding_round_dict(funding_round: FundingRound) -> dict:
    return {
        "id": funding_round.id,
        "round_code": funding_round.round_code or "",
        "raised_amount": funding_round.raised_amount or 0,
        "raised_currency_code": funding_round.raised_currency_code or "USD",
        "funded_at": _iso(funding_round.funded_at),
    }


def company_detail(company: Company) -> dict:
    data = company_brief(company)
    data["entity_type"] = "company"
    data["funding_rounds"] = [
        funding_round_dict(r) for r in _newest_first(list(company.funding_rounds), "funded_at")
    ]
    data["milestones"] = [
        {
            "id": m.id,
            "milestone_code": m.milestone_code or "",
            "description": m.description or "",
            "milestone_at": _iso(m.milestone_at),
            "source_url": m.source_url or "",
        }
        for m in _newest_first(list(company.milestones), "milestone_at")
    ]
    data["offices"] = [
        {"description": o.description or "", "city": o.city or "", "country_code": o.country_code or ""}
        for o in company.offices
    ]
    return data


def investor_brief(investor: Investor) -> dict:
    return {
        "id": investor.id,
        "permalink": investor.permalink,
        "name": investor.name,
        "description": investor.description or "",
        "homepage_url": investor.homepage_url or "",
        "founded_at": _iso(investor.founded_at),
    }


def investor_detail(investor: Investor) -> dict:
    data = investor_brief(investor)
    data["entity_type"] = "investor"
    investments = []
    for inv in sorted(investor.investments, key=lambda i: i.id or 0):
        funding_round = funding_round_dict(inv.funding_round)
        funding_round["company"] = company_brief(inv.funding_round.company)
        investments.append({"id": inv.id, "funding_round": funding_round})
    data["investments"] = investments
    return data


async def load_company(session: AsyncSession, permalink: str) -> Optional[dict]:
    company = (
        await session.execute(
            select(Company)
            .options(
                selectinload(Company.funding_rounds),
                selectinload(Company.milestones),
                selectinload(Company.offices),
            )
            .where(Company.permalink == permalink)
        )
    ).scalar_one_or_none()
    return company_detail(company) if company else None


async def load_investor(session: AsyncSession, permalink: str) -> Optional[dict]:
    investor = (
        await session.execute(
            select(Investor)
            .options(
                selectinload(Investor.investments)
                .selectinload(Investment.funding_round)
                .selectinload(FundingRound.company)
            )
            .where(Investor.permalink == permalink)
        )
    ).scalar_one_or_none()
    return investor_detail(investor) if investor else None


ENTITY_LOADERS = {
    "company": load_company,
    "investor": load_investor,
}
