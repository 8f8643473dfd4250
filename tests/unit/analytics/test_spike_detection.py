"""Unit tests for baseline-relative spike detection."""

from __future__ import annotations

from analytics.spike_detection import SpikeDetector, SpikeThresholds, calendar_hint
from core.metric_types import MetricPoint


def _series(*values: float) -> list[MetricPoint]:
    return [
        MetricPoint(period=f"2024-01-{index + 10:02d}", value=value)
        for index, value in enumerate(values)
    ]


def test_default_thresholds_grade_severity() -> None:
    """Values above 2x/3x/4x baseline should be low/medium/high."""
    spikes = SpikeDetector().detect(_series(15, 25, 35, 45), baseline=10)

    assert [(spike.value, spike.severity) for spike in spikes] == [
        (25, "low"),
        (35, "medium"),
        (45, "high"),
    ]


def test_flag_threshold_is_exclusive() -> None:
    """A value exactly at the flag multiple should not be flagged."""
    assert SpikeDetector().detect(_series(20), baseline=10) == []


def test_custom_thresholds_are_honoured() -> None:
    """Injected thresholds should replace the defaults."""
    detector = SpikeDetector(SpikeThresholds(flag=1.0, medium=1.4, high=5.0))

    spikes = detector.detect(_series(9, 12, 15), baseline=10)

    assert [spike.severity for spike in spikes] == ["low", "medium"]


def test_annotate_adds_calendar_hints() -> None:
    """Annotated spikes should carry a calendar hint when one applies."""
    series = [MetricPoint("2024-01-01", 50), MetricPoint("Sprint 4", 50)]

    spikes = SpikeDetector().detect(series, baseline=10, annotate=True)

    assert [spike.hint for spike in spikes] == ["start of week", None]


def test_calendar_hint_labels() -> None:
    """Weekday checks should take precedence over month position."""
    assert [
        calendar_hint("2024-01-01"),
        calendar_hint("2024-01-05"),
        calendar_hint("2024-01-02"),
        calendar_hint("2024-01-30"),
        calendar_hint("2024-01-10"),
    ] == ["start of week", "end of week", "start of month", "end of month", None]
