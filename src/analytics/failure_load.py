"""Failure load: how much newly created work is bug fixing.

Failure load on a day is the share of work items created that day whose
type is ``Bug``. The current level covers the trailing week of the range.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import Iterable

from analytics.quality_metrics import (
    DEFECT_DENSITY_NOTE,
    average_resolution_days,
    is_production_bug,
)
from analytics.statistics import trend
from core.constants import DEFECT_DENSITY_ITEMS, FAILURE_LOAD_CURRENT_DAYS, UNKNOWN_GROUP
from core.metric_types import FailureLoadAnalysis, FailureLoadDay, FailureLoadFigures
from core.record_fields import Record, record_day, record_text
from core.types import DateRange

BUG_TYPE = "Bug"
BREAKDOWN_FIELDS = (
    ("by_team", "TeamName"),
    ("by_area", "AreaPath"),
    ("by_priority", "Priority"),
    ("by_severity", "Severity"),
)


def is_bug(item: Record) -> bool:
    return record_text(item, "WorkItemType") == BUG_TYPE


def analyze_failure_load(
    work_items: Iterable[Record],
    date_range: DateRange,
) -> FailureLoadAnalysis:
    """Measure bug share of created work across a range.

    Args:
        work_items: Work items of every type, already partitioned to the
            range by ``CreatedDateSK``.
        date_range: Range the timeline covers, one entry per day.

    Returns:
        Current level, trend, aggregate figures, breakdowns, and timeline.
    """
    items = list(work_items)
    bugs = [item for item in items if is_bug(item)]
    created_per_day: Counter[date] = Counter()
    bugs_per_day: Counter[date] = Counter()
    resolved_per_day: Counter[date] = Counter()
    for item in items:
        created = record_day(item, "CreatedDateSK")
        if created is None:
            continue
        created_per_day[created] += 1
        if is_bug(item):
            bugs_per_day[created] += 1
    for bug in bugs:
        resolved = record_day(bug, "ResolvedDateSK")
        if resolved is not None:
            resolved_per_day[resolved] += 1
    timeline = tuple(
        FailureLoadDay(
            period=day.isoformat(),
            failure_load=_share(bugs_per_day[day], created_per_day[day]),
            new_bugs=bugs_per_day[day],
            resolved_bugs=resolved_per_day[day],
        )
        for day in date_range.iter_days()
    )
    current_start = max(
        date_range.start, date_range.end - timedelta(days=FAILURE_LOAD_CURRENT_DAYS - 1)
    )
    recent = DateRange(current_start, date_range.end).iter_days()
    return FailureLoadAnalysis(
        current=_share(
            sum(bugs_per_day[day] for day in recent),
            sum(created_per_day[day] for day in recent),
        ),
        trend=trend([day.failure_load for day in timeline]),
        figures=FailureLoadFigures(
            bug_ratio=_share(len(bugs), len(items)),
            defect_density=len(bugs) / DEFECT_DENSITY_ITEMS,
            escape_rate=_share(sum(1 for bug in bugs if is_production_bug(bug)), len(bugs)),
            mttr_days=average_resolution_days(bugs),
        ),
        breakdown=_breakdown(bugs),
        timeline=timeline,
        approximations=(DEFECT_DENSITY_NOTE,),
    )


def _breakdown(bugs: list[Record]) -> dict[str, dict[str, int]]:
    """Count bugs per team, area, priority, and severity."""
    breakdown: dict[str, dict[str, int]] = {}
    for name, field_name in BREAKDOWN_FIELDS:
        counts: Counter[str] = Counter(
            record_text(bug, field_name) or UNKNOWN_GROUP for bug in bugs
        )
        breakdown[name] = dict(sorted(counts.items()))
    return breakdown


def _share(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0
