"""Calculations of the built-in plugin components."""

import pytest

from plugins import company_metrics, investor_insights, timeline
from plugins.formatting import format_currency, format_relative_time, parse_date

from tests.conftest import NOW

CONTEXT = {"now": NOW}


def _company(**overrides):
    company = {
        "id": "c1",
        "name": "Acme",
        "status": "operating",
        "category_code": "software",
        "founded_at": "2015-03-01T00:00:00",
        "homepage_url": "https://acme.example",
        "description": "x" * 60,
        "funding_rounds": [
            {"round_code": "b", "raised_amount": 20_000_000, "funded_at": "2023-09-01T00:00:00"},
            {"round_code": "seed", "raised_amount": 2_000_000, "funded_at": "2016-05-01T00:00:00"},
        ],
        "milestones": [
            {"milestone_code": "Won industry award", "milestone_at": "2022-11-05T00:00:00"},
            {"milestone_code": "Product launch", "milestone_at": "2017-01-10T00:00:00"},
        ],
        "offices": [{"city": "Berlin"}],
    }
    company.update(overrides)
    return company


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def test_format_currency():
    assert format_currency(12_500_000, compact=True) == "$12.5M"
    assert format_currency(2_100_000_000, compact=True) == "$2.1B"
    assert format_currency(45_000, compact=True) == "$45K"
    assert format_currency(12_500_000) == "$12,500,000"


def test_format_relative_time():
    now = parse_date(NOW)
    assert format_relative_time(parse_date("2024-06-01"), now) == "Today"
    assert format_relative_time(parse_date("2024-05-31"), now) == "Yesterday"
    assert format_relative_time(parse_date("2024-05-18"), now) == "2 weeks ago"
    assert format_relative_time(parse_date("2022-05-01"), now) == "2 years ago"


def test_parse_date_handles_garbage_and_timezones():
    assert parse_date("") is None
    assert parse_date("not a date") is None
    assert parse_date("2024-01-01T02:00:00+02:00").hour == 0


# ---------------------------------------------------------------------------
# Company metrics
# ---------------------------------------------------------------------------


def test_quick_stats_totals():
    stats = company_metrics.quick_stats(_company(), CONTEXT, {})
    cards = {c["label"]: c for c in stats["cards"]}

    assert stats["total_funding"] == 22_000_000
    assert stats["round_count"] == 2
    assert cards["Total Funding"]["value"] == "$22.0M"
    assert cards["Latest Round"]["value"] == "$20.0M"
    assert cards["Company Age"]["value"] == "9 years"
    assert {i["label"] for i in stats["insights"]} == {"Avg. Round Size", "Funding / Year", "Offices"}


def test_quick_stats_respects_compact_setting():
    stats = company_metrics.quick_stats(_company(), CONTEXT, {"compact_currency": False})
    assert stats["cards"][0]["value"] == "$22,000,000"


def test_quick_stats_without_funding():
    stats = company_metrics.quick_stats(_company(funding_rounds=[]), CONTEXT, {})
    cards = {c["label"]: c for c in stats["cards"]}
    assert cards["Total Funding"]["value"] is None
    assert cards["Latest Round"]["hint"] == "No funding yet"


def test_funding_journey_needs_two_rounds():
    one_round = _company(funding_rounds=_company()["funding_rounds"][:1])
    assert company_metrics.funding_journey(one_round, CONTEXT, {}) is None

    journey = company_metrics.funding_journey(_company(), CONTEXT, {})
    assert [p["round"] for p in journey["points"]] == ["SEED", "B"]
    assert [p["cumulative"] for p in journey["points"]] == [2_000_000, 22_000_000]
    assert journey["points"][-1]["percentage"] == 100.0
    assert journey["growth_rate"] == 900.0


@pytest.mark.parametrize(
    "overrides, expected_score, expected_label",
    [
        ({}, 100, "Excellent"),
        ({"status": "closed"}, 75, "Good"),
        ({"status": "closed", "homepage_url": "", "description": ""}, 55, "Fair"),
        ({"status": "closed", "funding_rounds": [], "homepage_url": "", "description": ""}, 0, "Needs Data"),
    ],
)
def test_health_score(overrides, expected_score, expected_label):
    result = company_metrics.health_score(_company(**overrides), CONTEXT, {})
    assert result["score"] == expected_score
    assert result["label"] == expected_label


def test_health_score_recent_funding_window():
    old = _company(funding_rounds=[{"raised_amount": 1, "funded_at": "2020-01-01"}])
    factors = {f["name"]: f["passed"] for f in company_metrics.health_score(old, CONTEXT, {})["factors"]}
    assert factors["Recent Funding"] is False


def test_details_section_groups_panels():
    section = company_metrics.details_section(_company(funding_rounds=[]), CONTEXT, {})
    assert section["type"] == "group"
    assert [s["type"] for s in section["sections"]] == ["score"]


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


def test_recent_activity_newest_first():
    activity = timeline.recent_activity(_company(), CONTEXT, {})
    assert [a["type"] for a in activity["items"]] == ["funding", "milestone", "milestone", "funding"]
    assert activity["items"][0]["title"] == "B - $20,000,000"


def test_recent_activity_empty_company():
    assert timeline.recent_activity(_company(funding_rounds=[], milestones=[]), CONTEXT, {}) is None


def test_milestones_timeline_kinds():
    result = timeline.milestones_timeline(_company(), CONTEXT, {})
    assert [e["kind"] for e in result["entries"]] == ["award", "launch"]
    assert result["entries"][0]["latest"] is True
    assert result["count_label"] == "2 milestones"


def test_journey_summary_groups_by_year():
    result = timeline.journey_summary(_company(), CONTEXT, {})
    assert [y["year"] for y in result["years"]] == [2023, 2022, 2017, 2016, 2015]
    assert timeline.journey_summary(_company(funding_rounds=[], milestones=[]), CONTEXT, {}) is None


def test_timeline_hooks_manage_patterns():
    module = timeline.create_module()
    module.initialize()
    assert timeline._kind_patterns
    module.cleanup()
    assert not timeline._kind_patterns


# ---------------------------------------------------------------------------
# Investor insights
# ---------------------------------------------------------------------------


def _investor():
    acme = {"id": "c1", "name": "Acme", "permalink": "acme", "category_code": "software"}
    beta = {"id": "c2", "name": "Beta", "permalink": "beta", "category_code": "biotech"}
    gamma = {"id": "c3", "name": "Gamma", "permalink": "gamma", "category_code": "software"}
    rounds = [
        {"raised_amount": 2_000_000, "funded_at": "2016-05-01", "company": acme},
        {"raised_amount": 10_000_000, "funded_at": "2019-09-01", "company": acme},
        {"raised_amount": 500_000, "funded_at": "2019-02-01", "company": beta},
        {"raised_amount": 4_000_000, "funded_at": "2021-02-01", "company": gamma},
        {"raised_amount": 9_000_000, "funded_at": "2021-03-01"},  # no company, ignored
    ]
    return {"investments": [{"funding_round": r} for r in rounds]}


def test_portfolio_stats():
    stats = investor_insights.portfolio_stats(_investor(), CONTEXT, {})
    cards = {c["label"]: c["value"] for c in stats["cards"]}
    assert cards["Portfolio Companies"] == 3
    assert cards["Rounds Participated"] == 4
    assert cards["Avg. Round Size"] == "$4.1M"
    assert cards["Years Active"] == 5
    assert stats["first_investment"] == "2016-05-01T00:00:00"


def test_sector_distribution():
    result = investor_insights.sector_distribution(_investor(), CONTEXT, {})
    assert [(s["name"], s["company_count"]) for s in result["sectors"]] == [("software", 2), ("biotech", 1)]
    assert result["sectors"][1]["percentage"] == 50.0


def test_investment_timeline_by_year():
    result = investor_insights.investment_timeline(_investor(), CONTEXT, {})
    assert [(y["year"], y["count"]) for y in result["years"]] == [(2016, 1), (2019, 2), (2021, 1)]


def test_top_portfolio_companies_uses_setting():
    result = investor_insights.top_portfolio_companies(_investor(), CONTEXT, {"top_companies": 2})
    assert [c["name"] for c in result["companies"]] == ["Acme", "Gamma"]
    assert result["companies"][0]["rounds"] == 2


def test_empty_portfolio():
    assert investor_insights.sector_distribution({"investments": []}, CONTEXT, {}) is None
    section = investor_insights.portfolio_section({"investments": []}, CONTEXT, {})
    assert section["sections"] == []
