"""Card age analysis for open work items."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable

from analytics.statistics import average
from core.constants import CARD_AGE_CRITICAL_DAYS, CARD_AGE_WARNING_DAYS
from core.metric_types import AgeBucket, AgingCard, CardAgeAnalysis
from core.record_fields import Record, record_day, record_text

_AGE_BUCKETS: tuple[tuple[str, int, int | None], ...] = (
    ("0-7 days", 0, 7),
    ("8-14 days", 8, 14),
    ("15-30 days", 15, 30),
    ("31-60 days", 31, 60),
    ("61-90 days", 61, 90),
    ("90+ days", 91, None),
)


def analyze_card_age(work_items: Iterable[Record], as_of: date) -> CardAgeAnalysis:
    """Summarize how long cards have existed as of a given day.

    Age is counted from ``CreatedDateSK``; cards without a creation date
    are treated as created on ``as_of``.

    Args:
        work_items: Work-item records.
        as_of: Reference day.

    Returns:
        Averages, aging lists, and bucket distribution.
    """
    ages: list[int] = []
    by_type: dict[str, list[int]] = defaultdict(list)
    by_state: dict[str, list[int]] = defaultdict(list)
    critical: list[AgingCard] = []
    warning: list[AgingCard] = []
    for item in work_items:
        created = record_day(item, "CreatedDateSK") or as_of
        age = max((as_of - created).days, 0)
        ages.append(age)
        by_type[record_text(item, "WorkItemType", "Unknown")].append(age)
        by_state[record_text(item, "State", "Unknown")].append(age)
        card = AgingCard(
            work_item_id=record_text(item, "WorkItemId"),
            age_days=age,
            title=record_text(item, "Title"),
        )
        if age > CARD_AGE_CRITICAL_DAYS:
            critical.append(card)
        elif age > CARD_AGE_WARNING_DAYS:
            warning.append(card)
    return CardAgeAnalysis(
        average_age=average(ages),
        average_by_type={key: average(values) for key, values in by_type.items()},
        average_by_state={key: average(values) for key, values in by_state.items()},
        critical=tuple(critical),
        warning=tuple(warning),
        distribution=tuple(
            AgeBucket(label=label, count=sum(1 for age in ages if _in_bucket(age, low, high)))
            for label, low, high in _AGE_BUCKETS
        ),
    )


def _in_bucket(age: int, low: int, high: int | None) -> bool:
    return age >= low and (high is None or age <= high)
