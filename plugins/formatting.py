"""
Formatting helpers shared by the built-in plugins.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Optional


def parse_date(value: Any) -> Optional[dt.datetime]:
    """Accepts datetime / date / ISO string, returns a naive UTC datetime or None."""
    if value is None or value == "":
        return None
    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, dt.date):
        parsed = dt.datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = dt.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return parsed


def reference_time(context: Optional[dict]) -> dt.datetime:
    """The "now" components measure against (``context["now"]`` when given)."""
    now = parse_date((context or {}).get("now"))
    if now is None:
        now = dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)
    return now


def to_amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def format_currency(amount: float, compact: bool = False) -> str:
    if compact:
        if amount >= 1_000_000_000:
            return f"${amount / 1_000_000_000:.1f}B"
        if amount >= 1_000_000:
            return f"${amount / 1_000_000:.1f}M"
        if amount >= 1_000:
            return f"${amount / 1_000:.0f}K"
    return f"${amount:,.0f}"


def days_since(date: dt.datetime, now: dt.datetime) -> int:
    return abs((now - date).days)


def format_relative_time(date: dt.datetime, now: dt.datetime) -> str:
    days = (now - date).days
    if days < 1:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    if days < 365:
        return f"{days // 30} months ago"
    years = days // 365
    return f"{years} year{'s' if years > 1 else ''} ago"


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def isoformat(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value else None
