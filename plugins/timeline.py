"""
Timeline plugin -- milestones, key events and company history.

Slots:
    CompanyProfile.Header   -- recent activity summary
    CompanyProfile.Details  -- milestones timeline

The module also ships a ``CompanyProfile.Summary`` component (journey
grouped by year) that the manifest does not declare, so it is never
selected for that slot.
"""

from __future__ import annotations

import re
from typing import Optional

from plugin_system.types import EntityType, PluginManifest, PluginModule, SlotSpec
from plugins.formatting import (
    format_currency,
    format_relative_time,
    isoformat,
    parse_date,
    plural,
    reference_time,
    to_amount,
)

manifest = PluginManifest(
    id="timeline",
    name="Timeline",
    description="Displays milestones, key events, and company history in a beautiful timeline",
    version="1.0.0",
    author="Metior Team",
    icon="Calendar",
    entity_types=[EntityType.COMPANY],
    slots=[
        SlotSpec(name="CompanyProfile.Header", description="Recent activity summary in company header"),
        SlotSpec(name="CompanyProfile.Details", description="Detailed timeline and journey summary"),
    ],
)

# Milestone kind -> keywords in the milestone code
MILESTONE_KINDS = {
    "launch": ("launch", "release"),
    "ipo": ("ipo", "public"),
    "acquisition": ("acquisition", "acquired"),
    "growth": ("users", "million"),
    "award": ("award", "recognition"),
}

_kind_patterns: dict[str, re.Pattern] = {}


def _compile_patterns() -> None:
    for kind, words in MILESTONE_KINDS.items():
        _kind_patterns[kind] = re.compile("|".join(re.escape(w) for w in words), re.IGNORECASE)


def _clear_patterns() -> None:
    _kind_patterns.clear()


def milestone_kind(code: Optional[str]) -> str:
    if not _kind_patterns:
        _compile_patterns()
    for kind, pattern in _kind_patterns.items():
        if pattern.search(code or ""):
            return kind
    return "milestone"


def _dated(items: list[dict], key: str) -> list[tuple]:
    return [(parse_date(item.get(key)), item) for item in items if parse_date(item.get(key))]


def recent_activity(company: dict, context: dict, settings: dict) -> Optional[dict]:
    """Two latest rounds and two latest milestones, newest first."""
    now = reference_time(context)
    rounds = list(company.get("funding_rounds") or [])
    milestones = list(company.get("milestones") or [])

    activities = []
    for funded_at, r in _dated(rounds[:2], "funded_at"):
        code = (r.get("round_code") or "Funding").upper()
        activities.append({
            "type": "funding",
            "date": isoformat(funded_at),
            "title": f"{code} - {format_currency(to_amount(r.get('raised_amount')))}",
            "when": format_relative_time(funded_at, now),
            "_sort": funded_at,
        })
    for milestone_at, m in _dated(milestones[:2], "milestone_at"):
        activities.append({
            "type": "milestone",
            "date": isoformat(milestone_at),
            "title": m.get("milestone_code") or "Milestone",
            "when": format_relative_time(milestone_at, now),
            "_sort": milestone_at,
        })

    if not activities:
        return None

    activities.sort(key=lambda a: a["_sort"], reverse=True)
    for a in activities:
        del a["_sort"]
    return {"type": "activity", "title": "Recent Activity", "items": activities}


def milestones_timeline(company: dict, context: dict, settings: dict) -> Optional[dict]:
    now = reference_time(context)
    milestones = list(company.get("milestones") or [])
    if not milestones:
        return None

    ordered = sorted(
        milestones,
        key=lambda m: parse_date(m.get("milestone_at")) or parse_date("0001-01-01"),
        reverse=True,
    )

    entries = []
    for idx, m in enumerate(ordered):
        milestone_at = parse_date(m.get("milestone_at"))
        entries.append({
            "title": m.get("milestone_code") or "Milestone",
            "kind": milestone_kind(m.get("milestone_code")),
            "description": m.get("description") or None,
            "date": isoformat(milestone_at),
            "when": format_relative_time(milestone_at, now) if milestone_at else None,
            "source_url": m.get("source_url") or None,
            "latest": idx == 0,
        })

    return {
        "type": "timeline",
        "title": "Company Timeline",
        "subtitle": "Key milestones and achievements",
        "count_label": plural(len(milestones), "milestone"),
        "entries": entries,
    }


def journey_summary(company: dict, context: dict, settings: dict) -> Optional[dict]:
    """Founding, rounds and milestones grouped by year (six most recent years)."""
    events = []
    founded = parse_date(company.get("founded_at"))
    if founded:
        events.append({
            "type": "founded",
            "date": founded,
            "title": "Company Founded",
            "subtitle": f"{company.get('name')} was established",
        })
    for funded_at, r in _dated(company.get("funding_rounds") or [], "funded_at"):
        amount = to_amount(r.get("raised_amount"))
        events.append({
            "type": "funding",
            "date": funded_at,
            "title": (r.get("round_code") or "Funding Round").upper(),
            "subtitle": f"Raised {format_currency(amount)}" if amount else None,
        })
    for milestone_at, m in _dated(company.get("milestones") or [], "milestone_at"):
        events.append({
            "type": "milestone",
            "date": milestone_at,
            "title": m.get("milestone_code") or "Milestone",
            "subtitle": m.get("description") or None,
        })

    if len(events) < 3:
        return None

    events.sort(key=lambda e: e["date"])
    by_year: dict[int, list] = {}
    for e in events:
        by_year.setdefault(e["date"].year, []).append({**e, "date": isoformat(e["date"])})

    years = sorted(by_year, reverse=True)[:6]
    return {
        "type": "journey",
        "title": "Company Journey",
        "years": [{"year": y, "events": by_year[y]} for y in years],
    }


def create_module() -> PluginModule:
    return PluginModule(
        manifest=manifest,
        components={
            "CompanyProfile.Header": recent_activity,
            "CompanyProfile.Details": milestones_timeline,
            "CompanyProfile.Summary": journey_summary,
        },
        initialize=_compile_patterns,
        cleanup=_clear_patterns,
    )
