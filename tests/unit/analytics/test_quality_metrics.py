"""Unit tests for weekly bug quality metrics."""

from __future__ import annotations

from analytics.quality_metrics import DEFECT_DENSITY_NOTE, calculate_quality_metrics
from tests.fixture_paths import fixture_records


def _bugs() -> list[dict[str, object]]:
    return fixture_records("bugs")


def test_bugs_are_grouped_by_iso_week() -> None:
    """Weekly rows should follow ISO week order."""
    metrics = calculate_quality_metrics(_bugs())

    assert [(week.week, week.bugs_created) for week in metrics.weeks] == [
        ("2024-W02", 2),
        ("2024-W03", 1),
    ]


def test_weekly_figures_cover_resolution_severity_and_escapes() -> None:
    """Resolved, critical, escape rate, and resolution days per week."""
    first, second = calculate_quality_metrics(_bugs()).weeks

    assert (first.bugs_resolved, first.critical_bugs, first.escape_rate) == (1, 1, 50.0)
    assert first.resolution_days == 2.0
    assert (second.bugs_resolved, second.critical_bugs, second.escape_rate) == (1, 1, 0.0)
    assert second.resolution_days == 3.0


def test_defect_density_is_reported_as_approximation() -> None:
    """Defect density should be bugs per hundred items and flagged."""
    metrics = calculate_quality_metrics(_bugs())

    assert metrics.defect_density == 0.03 and metrics.approximations == (DEFECT_DENSITY_NOTE,)


def test_undated_bugs_count_toward_density_only() -> None:
    """Bugs without a creation date have no week but still count."""
    metrics = calculate_quality_metrics([{"State": "Active"}])

    assert metrics.weeks == () and metrics.defect_density == 0.01
