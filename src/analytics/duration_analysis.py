"""Lead and cycle time analysis over trailing windows.

An item counts as completed on its ``ClosedDateSK`` (``ChangedDateSK`` when
unset) once it reaches a done state or carries a close date. Each trailing
window ends on the ``as_of`` day and spans 14, 30, 60, or 365 days.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Callable, Iterable

from analytics.statistics import average, percentile, polarity_label, trend
from core.constants import (
    DONE_STATES,
    DURATION_PERCENTILES,
    DURATION_PERIODS,
    UNKNOWN_GROUP,
)
from core.errors import TempoMetricsError
from core.metric_types import DurationAnalysis, DurationPercentiles, DurationPeriods
from core.record_fields import (
    Record,
    WorkItemFilter,
    days_between,
    record_date,
    record_day,
    record_number,
    record_text,
)

LEAD_TIME = "lead_time"
CYCLE_TIME = "cycle_time"

_BREAKDOWN_DIMENSIONS = (
    ("by_team", "TeamName", "team_name"),
    ("by_area", "AreaPath", "area_path"),
    ("by_user", "AssignedTo", "assigned_to"),
    ("by_work_item_type", "WorkItemType", "work_item_type"),
)


def cycle_time_days(item: Record) -> float:
    """Return ``CycleTimeDays`` or days from activation (creation) to close."""
    explicit = record_number(item, "CycleTimeDays")
    if explicit > 0:
        return explicit
    started = record_date(item, "ActivatedDateSK") or record_date(item, "CreatedDateSK")
    closed = record_date(item, "ClosedDateSK")
    if started and closed:
        return days_between(started, closed)
    return 0.0


def lead_time_days(item: Record) -> float:
    """Return ``LeadTimeDays`` or days from creation to close (last change)."""
    explicit = record_number(item, "LeadTimeDays")
    if explicit > 0:
        return explicit
    created = record_date(item, "CreatedDateSK")
    finished = record_date(item, "ClosedDateSK") or record_date(item, "ChangedDateSK")
    if created and finished:
        return days_between(created, finished)
    return 0.0


def analyze_durations(
    work_items: Iterable[Record],
    measure: str,
    as_of: date,
    item_filter: WorkItemFilter | None = None,
) -> DurationAnalysis:
    """Analyze lead or cycle time of completed items as of a day.

    Args:
        work_items: Work-item records of any state.
        measure: ``lead_time`` or ``cycle_time``.
        as_of: Last day of every trailing window; later completions are ignored.
        item_filter: Optional field filter applied before any figure.

    Returns:
        Window averages, trend, breakdowns, and percentiles.

    Raises:
        TempoMetricsError: If the measure is unknown.
    """
    duration_of = _duration_function(measure)
    item_filter = item_filter or WorkItemFilter()
    completed: list[tuple[date, float, Record]] = []
    for item in work_items:
        if not item_filter.matches(item):
            continue
        finished = _completion_day(item)
        if finished is None or finished > as_of:
            continue
        duration = duration_of(item)
        if duration > 0:
            completed.append((finished, duration, item))
    averages: dict[str, float] = {}
    for label, length in DURATION_PERIODS:
        window_start = as_of - timedelta(days=length - 1)
        averages[label] = average(
            [duration for finished, duration, _ in completed if finished >= window_start]
        )
    periods = DurationPeriods(**averages)
    year_items = [
        (duration, item)
        for finished, duration, item in completed
        if finished >= as_of - timedelta(days=DURATION_PERIODS[-1][1] - 1)
    ]
    durations = [duration for _, duration, _ in completed]
    return DurationAnalysis(
        measure=measure,
        as_of=as_of,
        periods=periods,
        trend=polarity_label(
            trend([periods.sixty_days, periods.thirty_days, periods.two_weeks]),
            lower_is_better=True,
        ),
        breakdown=_breakdown(year_items, item_filter),
        percentiles=DurationPercentiles(
            *(percentile(durations, rank) for rank in DURATION_PERCENTILES)
        ),
        item_count=len(completed),
    )


def _duration_function(measure: str) -> Callable[[Record], float]:
    if measure == LEAD_TIME:
        return lead_time_days
    if measure == CYCLE_TIME:
        return cycle_time_days
    raise TempoMetricsError(
        f"Unsupported duration measure '{measure}'. Use {LEAD_TIME} or {CYCLE_TIME}."
    )


def _completion_day(item: Record) -> date | None:
    closed = record_day(item, "ClosedDateSK")
    if closed is not None:
        return closed
    if record_text(item, "State") in DONE_STATES:
        return record_day(item, "ChangedDateSK")
    return None


def _breakdown(
    items: list[tuple[float, Record]],
    item_filter: WorkItemFilter,
) -> dict[str, dict[str, float]]:
    """Average durations per open dimension; needs more than one item."""
    if len(items) < 2:
        return {}
    breakdown: dict[str, dict[str, float]] = {}
    for name, field_name, filter_attribute in _BREAKDOWN_DIMENSIONS:
        if getattr(item_filter, filter_attribute) is not None:
            continue
        grouped: dict[str, list[float]] = defaultdict(list)
        for duration, item in items:
            grouped[record_text(item, field_name) or UNKNOWN_GROUP].append(duration)
        breakdown[name] = {key: average(values) for key, values in sorted(grouped.items())}
    return breakdown
