"""
Company Metrics plugin -- funding stats, funding journey and health score.

Slots:
    CompanyProfile.Header   -- quick stats cards
    CompanyProfile.Details  -- funding journey + health score

Settings:
    compact_currency (bool, default True) -- "$12.5M" instead of "$12,500,000"
"""

from __future__ import annotations

from typing import Optional

from plugin_system.types import EntityType, PluginManifest, PluginModule, SlotSpec
from plugins.formatting import (
    days_since,
    format_currency,
    format_relative_time,
    parse_date,
    plural,
    reference_time,
    to_amount,
)

manifest = PluginManifest(
    id="company-metrics",
    name="Company Metrics",
    description="Displays funding stats, health score, and growth charts for companies",
    version="1.0.0",
    author="Metior Team",
    icon="BarChart3",
    entity_types=[EntityType.COMPANY],
    slots=[
        SlotSpec(name="CompanyProfile.Header", description="Quick stats cards showing funding totals"),
        SlotSpec(name="CompanyProfile.Details", description="Funding journey chart and health score"),
    ],
)

# Health score factors: (name, weight)
HEALTH_WEIGHTS = {
    "Operating Status": 25,
    "Recent Funding": 20,
    "Funding Track Record": 15,
    "Capital Raised": 20,
    "Web Presence": 10,
    "Profile Complete": 10,
}

RECENT_FUNDING_DAYS = 730
SOLID_FUNDING_AMOUNT = 10_000_000


def _rounds(company: dict) -> list[dict]:
    return list((company or {}).get("funding_rounds") or [])


def _total_raised(rounds: list[dict]) -> float:
    return sum(to_amount(r.get("raised_amount")) for r in rounds)


def quick_stats(company: dict, context: dict, settings: dict) -> dict:
    """Header cards: totals, latest round, age, status."""
    now = reference_time(context)
    compact = settings.get("compact_currency", True)
    rounds = _rounds(company)  # newest first

    total = _total_raised(rounds)
    latest = rounds[0] if rounds else None
    first = rounds[-1] if rounds else None

    founded = parse_date(company.get("founded_at"))
    age_years = days_since(founded, now) // 365 if founded else None

    avg_round = total / len(rounds) if rounds else 0.0

    velocity = 0.0
    first_at = parse_date(first.get("funded_at")) if first else None
    if first_at and latest and parse_date(latest.get("funded_at")):
        years_between = days_since(first_at, now) / 365
        velocity = total / years_between if years_between > 0 else total

    offices = company.get("offices") or []

    cards = [
        {
            "label": "Total Funding",
            "value": format_currency(total, compact) if total > 0 else None,
            "hint": plural(len(rounds), "round") if rounds else None,
        },
        {
            "label": "Latest Round",
            "value": format_currency(to_amount(latest.get("raised_amount")), compact) if latest else None,
            "hint": _latest_round_hint(latest, now) if latest else "No funding yet",
        },
        {
            "label": "Company Age",
            "value": f"{age_years} years" if age_years is not None else None,
            "hint": f"Founded {founded.year}" if founded else None,
        },
        {
            "label": "Status",
            "value": company.get("status") or "Unknown",
            "hint": (company.get("category_code") or "").replace("-", " ") or None,
        },
    ]

    insights = []
    if avg_round > 0:
        insights.append({"label": "Avg. Round Size", "value": format_currency(avg_round, compact)})
    if velocity > 0:
        insights.append({"label": "Funding / Year", "value": format_currency(velocity, compact)})
    if offices:
        insights.append({"label": "Offices", "value": plural(len(offices), "location")})

    return {
        "type": "stats",
        "title": "Company Metrics",
        "cards": cards,
        "insights": insights,
        "total_funding": total,
        "round_count": len(rounds),
    }


def _latest_round_hint(latest: dict, now) -> str:
    code = (latest.get("round_code") or "").upper()
    funded_at = parse_date(latest.get("funded_at"))
    parts = [code, format_relative_time(funded_at, now) if funded_at else ""]
    return " • ".join(p for p in parts if p)


def funding_journey(company: dict, context: dict, settings: dict) -> Optional[dict]:
    """Cumulative funding per round; needs at least two rounds."""
    rounds = _rounds(company)
    if len(rounds) < 2:
        return None

    compact = settings.get("compact_currency", True)
    dated = sorted(
        rounds,
        key=lambda r: parse_date(r.get("funded_at")) or parse_date("1970-01-01"),
    )

    cumulative = 0.0
    points = []
    for r in dated:
        amount = to_amount(r.get("raised_amount"))
        cumulative += amount
        funded_at = parse_date(r.get("funded_at"))
        points.append({
            "round": (r.get("round_code") or "Round").upper(),
            "year": funded_at.year if funded_at else None,
            "amount": amount,
            "cumulative": cumulative,
            "label": format_currency(cumulative, compact),
        })

    max_cumulative = max(p["cumulative"] for p in points) or 1.0
    for p in points:
        p["percentage"] = round(p["cumulative"] / max_cumulative * 100, 1)

    last_amount = to_amount(dated[-1].get("raised_amount"))
    prev_amount = to_amount(dated[-2].get("raised_amount")) or 1.0
    growth_rate = (last_amount - prev_amount) / prev_amount * 100

    return {
        "type": "chart",
        "title": "Funding Journey",
        "subtitle": "Cumulative funding over time",
        "points": points,
        "growth_rate": round(growth_rate, 1),
    }


def health_score(company: dict, context: dict, settings: dict) -> dict:
    now = reference_time(context)
    rounds = _rounds(company)
    total = _total_raised(rounds)

    def _recent(r: dict) -> bool:
        funded_at = parse_date(r.get("funded_at"))
        return bool(funded_at) and days_since(funded_at, now) < RECENT_FUNDING_DAYS

    passed = {
        "Operating Status": company.get("status") in ("operating", "ipo"),
        "Recent Funding": any(_recent(r) for r in rounds),
        "Funding Track Record": len(rounds) >= 2,
        "Capital Raised": total >= SOLID_FUNDING_AMOUNT,
        "Web Presence": bool(company.get("homepage_url")),
        "Profile Complete": len(company.get("description") or "") > 50,
    }

    score = sum(weight for name, weight in HEALTH_WEIGHTS.items() if passed[name])
    return {
        "type": "score",
        "title": "Company Health Score",
        "score": score,
        "label": health_label(score),
        "factors": [
            {"name": name, "weight": weight, "passed": passed[name]}
            for name, weight in HEALTH_WEIGHTS.items()
        ],
    }


def health_label(score: int) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Needs Data"


def details_section(company: dict, context: dict, settings: dict) -> dict:
    sections = [
        funding_journey(company, context, settings),
        health_score(company, context, settings),
    ]
    return {"type": "group", "sections": [s for s in sections if s is not None]}


def create_module() -> PluginModule:
    return PluginModule(
        manifest=manifest,
        components={
            "CompanyProfile.Header": quick_stats,
            "CompanyProfile.Details": details_section,
        },
    )
