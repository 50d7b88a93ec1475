"""
Investor Insights plugin -- portfolio analytics for investors.

Slots:
    InvestorProfile.Header     -- portfolio stats cards
    InvestorProfile.Portfolio  -- sector distribution, yearly timeline, top companies

Expects ``data["investments"]`` as a list of
``{"funding_round": {..., "company": {...}}}`` entries.

Settings:
    top_companies (int, default 5) -- how many companies the top list shows
"""

from __future__ import annotations

import math
from typing import Optional

from plugin_system.types import EntityType, PluginManifest, PluginModule, SlotSpec
from plugins.formatting import format_currency, isoformat, parse_date, to_amount

manifest = PluginManifest(
    id="investor-insights",
    name="Investor Insights",
    description="Portfolio analytics, sector distribution, and investment timeline for investors",
    version="1.0.0",
    author="Metior Team",
    icon="PieChart",
    entity_types=[EntityType.INVESTOR],
    slots=[
        SlotSpec(name="InvestorProfile.Header", description="Portfolio stats cards"),
        SlotSpec(name="InvestorProfile.Portfolio", description="Sector charts and investment timeline"),
    ],
)


def _rounds_with_company(investor: dict) -> list[dict]:
    rounds = []
    for investment in (investor or {}).get("investments") or []:
        funding_round = investment.get("funding_round") or {}
        if funding_round.get("company"):
            rounds.append(funding_round)
    return rounds


def portfolio_stats(investor: dict, context: dict, settings: dict) -> dict:
    rounds = _rounds_with_company(investor)

    companies = {r["company"].get("id") for r in rounds}
    dates = [d for d in (parse_date(r.get("funded_at")) for r in rounds) if d]
    earliest = min(dates) if dates else None
    latest = max(dates) if dates else None

    total_amount = sum(to_amount(r.get("raised_amount")) for r in rounds)
    avg_deal = total_amount / len(rounds) if rounds else 0.0
    years_active = math.ceil((latest - earliest).days / 365) if earliest and latest else 0

    return {
        "type": "stats",
        "title": "Portfolio",
        "cards": [
            {"label": "Portfolio Companies", "value": len(companies)},
            {"label": "Rounds Participated", "value": len(rounds)},
            {"label": "Avg. Round Size", "value": format_currency(avg_deal, True) if avg_deal else None},
            {"label": "Years Active", "value": years_active},
        ],
        "first_investment": isoformat(earliest),
        "latest_investment": isoformat(latest),
    }


def sector_distribution(investor: dict, context: dict, settings: dict) -> Optional[dict]:
    stats: dict[str, dict] = {}
    for r in _rounds_with_company(investor):
        company = r["company"]
        sector = company.get("category_code") or "other"
        entry = stats.setdefault(sector, {"companies": set(), "rounds": 0, "total_raised": 0.0})
        entry["companies"].add(company.get("id"))
        entry["rounds"] += 1
        entry["total_raised"] += to_amount(r.get("raised_amount"))

    if not stats:
        return None

    sectors = sorted(
        (
            {
                "name": name,
                "company_count": len(entry["companies"]),
                "rounds": entry["rounds"],
                "total_raised": entry["total_raised"],
            }
            for name, entry in stats.items()
        ),
        key=lambda s: (-s["company_count"], s["name"]),
    )
    max_companies = sectors[0]["company_count"] or 1
    for s in sectors:
        s["percentage"] = round(s["company_count"] / max_companies * 100, 1)

    return {"type": "bars", "title": "Sector Distribution", "sectors": sectors}


def investment_timeline(investor: dict, context: dict, settings: dict) -> Optional[dict]:
    yearly: dict[int, dict] = {}
    for r in _rounds_with_company(investor):
        funded_at = parse_date(r.get("funded_at"))
        if not funded_at:
            continue
        entry = yearly.setdefault(funded_at.year, {"count": 0, "total_raised": 0.0, "companies": []})
        entry["count"] += 1
        entry["total_raised"] += to_amount(r.get("raised_amount"))
        name = r["company"].get("name")
        if name and name not in entry["companies"]:
            entry["companies"].append(name)

    if not yearly:
        return None

    years = [{"year": y, **yearly[y]} for y in sorted(yearly)]
    return {"type": "histogram", "title": "Investment Timeline", "years": years}


def top_portfolio_companies(investor: dict, context: dict, settings: dict) -> Optional[dict]:
    limit = int(settings.get("top_companies", 5))
    by_company: dict[str, dict] = {}
    for r in _rounds_with_company(investor):
        company = r["company"]
        entry = by_company.setdefault(
            company.get("id"),
            {"company": company, "rounds": 0, "total_raised": 0.0, "latest": None},
        )
        entry["rounds"] += 1
        entry["total_raised"] += to_amount(r.get("raised_amount"))
        funded_at = parse_date(r.get("funded_at"))
        if funded_at and (entry["latest"] is None or funded_at > entry["latest"]):
            entry["latest"] = funded_at

    if not by_company:
        return None

    ranked = sorted(
        by_company.values(),
        key=lambda e: (-e["total_raised"], e["company"].get("name") or ""),
    )[:limit]
    return {
        "type": "list",
        "title": "Top Portfolio Companies",
        "companies": [
            {
                "id": e["company"].get("id"),
                "name": e["company"].get("name"),
                "permalink": e["company"].get("permalink"),
                "category_code": e["company"].get("category_code"),
                "rounds": e["rounds"],
                "total_raised": e["total_raised"],
                "latest_round": isoformat(e["latest"]),
            }
            for e in ranked
        ],
    }


def portfolio_section(investor: dict, context: dict, settings: dict) -> dict:
    sections = [
        sector_distribution(investor, context, settings),
        investment_timeline(investor, context, settings),
        top_portfolio_companies(investor, context, settings),
    ]
    return {"type": "group", "sections": [s for s in sections if s is not None]}


def create_module() -> PluginModule:
    return PluginModule(
        manifest=manifest,
        components={
            "InvestorProfile.Header": portfolio_stats,
            "InvestorProfile.Portfolio": portfolio_section,
        },
    )
