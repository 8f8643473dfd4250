"""Weekly bug quality metrics.

Defect density here is bugs divided by a fixed item count, an
approximation rather than a validated measure. The result lists it under
``approximations`` so consumers do not treat it as ground truth.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from analytics.statistics import average
from core.constants import DEFECT_DENSITY_ITEMS, RESOLVED_BUG_STATES
from core.metric_types import QualityMetrics, QualityWeek
from core.record_fields import (
    Record,
    days_between,
    iso_week_label,
    record_date,
    record_day,
    record_number,
    record_text,
)

CRITICAL_SEVERITY = "1 - Critical"
PRODUCTION_ENVIRONMENT = "Production"
DEFECT_DENSITY_NOTE = (
    f"defect_density is bugs / {DEFECT_DENSITY_ITEMS} items, a placeholder "
    "approximation without size data"
)


def calculate_quality_metrics(bugs: Iterable[Record]) -> QualityMetrics:
    """Group bugs by the ISO week they were created in.

    Args:
        bugs: Bug records with ``CreatedDateSK``, ``State``, ``Severity``,
            ``Priority``, ``Environment``/``FoundIn``, and ``ResolvedDateSK``.

    Returns:
        Weekly figures in week order plus approximate defect density.
    """
    weekly: dict[str, list[Record]] = defaultdict(list)
    total = 0
    for bug in bugs:
        total += 1
        created = record_day(bug, "CreatedDateSK")
        if created is not None:
            weekly[iso_week_label(created)].append(bug)
    weeks = tuple(_summarize_week(week, weekly[week]) for week in sorted(weekly))
    return QualityMetrics(
        weeks=weeks,
        defect_density=total / DEFECT_DENSITY_ITEMS,
        approximations=(DEFECT_DENSITY_NOTE,),
    )


def _summarize_week(week: str, bugs: list[Record]) -> QualityWeek:
    resolved = [bug for bug in bugs if record_text(bug, "State") in RESOLVED_BUG_STATES]
    critical = [
        bug
        for bug in bugs
        if record_text(bug, "Severity") == CRITICAL_SEVERITY
        or record_number(bug, "Priority", 0.0) == 1
    ]
    production = [bug for bug in bugs if is_production_bug(bug)]
    return QualityWeek(
        week=week,
        bugs_created=len(bugs),
        bugs_resolved=len(resolved),
        critical_bugs=len(critical),
        escape_rate=len(production) / len(bugs) * 100 if bugs else 0.0,
        resolution_days=average_resolution_days(resolved),
    )


def is_production_bug(bug: Record) -> bool:
    return PRODUCTION_ENVIRONMENT in (record_text(bug, "Environment"), record_text(bug, "FoundIn"))


def average_resolution_days(bugs: Iterable[Record]) -> float:
    """Return mean days from creation to resolution over bugs with both dates."""
    durations: list[float] = []
    for bug in bugs:
        created = record_date(bug, "CreatedDateSK")
        resolved_at = record_date(bug, "ResolvedDateSK")
        if created and resolved_at:
            duration = days_between(created, resolved_at)
            if duration > 0:
                durations.append(duration)
    return average(durations)
