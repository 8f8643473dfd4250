"""Unit tests for failure load analysis."""

from __future__ import annotations

from datetime import date

import pytest

from analytics.failure_load import analyze_failure_load
from core.types import DateRange

FOUR_DAYS = DateRange(date(2024, 1, 1), date(2024, 1, 4))


def _work_items() -> list[dict[str, object]]:
    return [
        {"WorkItemType": "User Story", "CreatedDateSK": 20240101},
        {
            "WorkItemType": "Bug",
            "State": "Resolved",
            "CreatedDateSK": 20240101,
            "ResolvedDateSK": 20240103,
            "TeamName": "checkout",
            "Priority": 1,
            "Environment": "Production",
        },
        {"WorkItemType": "User Story", "CreatedDateSK": 20240102},
        {"WorkItemType": "User Story", "CreatedDateSK": 20240103},
        {
            "WorkItemType": "Bug",
            "State": "Active",
            "CreatedDateSK": 20240104,
            "TeamName": "search",
            "Priority": 2,
        },
        {"WorkItemType": "Task", "CreatedDateSK": 20240104},
    ]


def test_timeline_tracks_daily_bug_share() -> None:
    """Each day should report its bug share, new bugs, and resolutions."""
    analysis = analyze_failure_load(_work_items(), FOUR_DAYS)

    assert [day.failure_load for day in analysis.timeline] == [50.0, 0.0, 0.0, 50.0]
    assert [day.resolved_bugs for day in analysis.timeline] == [0, 0, 1, 0]
    assert analysis.timeline[0].period == "2024-01-01" and analysis.trend == "stable"


def test_figures_and_breakdown() -> None:
    """Aggregate figures and per-field bug counts should cover every bug."""
    analysis = analyze_failure_load(_work_items(), FOUR_DAYS)

    assert analysis.current == pytest.approx(100 / 3)
    assert analysis.figures.bug_ratio == pytest.approx(100 / 3)
    assert analysis.figures.defect_density == 0.02
    assert (analysis.figures.escape_rate, analysis.figures.mttr_days) == (50.0, 2.0)
    assert analysis.breakdown["by_team"] == {"checkout": 1, "search": 1}
    assert analysis.breakdown["by_priority"] == {"1": 1, "2": 1}
    assert analysis.breakdown["by_severity"] == {"Unknown": 2}
    assert analysis.approximations


def test_current_level_uses_trailing_week() -> None:
    """Only the last seven days of a longer range set the current level."""
    items = [
        {"WorkItemType": "Bug", "CreatedDateSK": 20240101},
        {"WorkItemType": "User Story", "CreatedDateSK": 20240110},
    ]

    analysis = analyze_failure_load(items, DateRange(date(2024, 1, 1), date(2024, 1, 10)))

    assert analysis.current == 0.0 and analysis.figures.bug_ratio == 50.0
    assert analysis.trend == "decreasing"


def test_no_work_items() -> None:
    """An empty range should report zeros without dividing by zero."""
    analysis = analyze_failure_load([], FOUR_DAYS)

    assert analysis.current == 0.0 and analysis.figures.bug_ratio == 0.0
    assert analysis.breakdown["by_team"] == {} and len(analysis.timeline) == 4
