"""Cumulative flow series and bottleneck detection.

A bottleneck is a non-terminal workflow state whose item count grows by
more than the growth ratio between the first and last point while every
downstream state changes by no more than the flat ratio. Detection needs
an explicit workflow order; without one no bottlenecks are reported.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import timedelta
from typing import Iterable, Mapping, Sequence

from core.constants import BOTTLENECK_FLAT_RATIO, BOTTLENECK_GROWTH_RATIO
from core.errors import TempoMetricsError
from core.metric_types import Bottleneck, CumulativeFlow, CumulativeFlowPoint
from core.record_fields import Record, record_day, record_number, record_text
from core.types import DateRange

_INTERVAL_DAYS = {"daily": 1, "weekly": 7}


def build_cumulative_flow(
    snapshots: Iterable[Record],
    date_range: DateRange,
    interval: str = "daily",
    state_order: Sequence[str] | None = None,
) -> CumulativeFlow:
    """Count items per state on each sampled date.

    Args:
        snapshots: Records with ``AsOfDateSK``, ``State``, and optional ``Count``.
        date_range: Inclusive range to sample.
        interval: ``daily`` or ``weekly`` sampling step.
        state_order: Workflow states from first to terminal.

    Returns:
        Flow points in date order plus detected bottlenecks.

    Raises:
        TempoMetricsError: If interval is unsupported.
    """
    if interval not in _INTERVAL_DAYS:
        raise TempoMetricsError(
            f"Unsupported cumulative flow interval '{interval}'. Choose daily or weekly."
        )
    counts_by_day: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for snapshot in snapshots:
        day = record_day(snapshot, "AsOfDateSK")
        if day is None or not date_range.contains(day):
            continue
        state = record_text(snapshot, "State", "Unknown")
        counts_by_day[day.isoformat()][state] += int(record_number(snapshot, "Count", 1.0))
    points: list[CumulativeFlowPoint] = []
    step = timedelta(days=_INTERVAL_DAYS[interval])
    current = date_range.start
    while current <= date_range.end:
        day_counts = counts_by_day.get(current.isoformat(), {})
        states = _ordered_states(day_counts, state_order)
        points.append(
            CumulativeFlowPoint(
                period=current.isoformat(),
                states=states,
                total=sum(states.values()),
            )
        )
        current += step
    return CumulativeFlow(
        points=tuple(points),
        bottlenecks=tuple(detect_bottlenecks(points, state_order)),
    )


def detect_bottlenecks(
    points: Sequence[CumulativeFlowPoint],
    state_order: Sequence[str] | None,
) -> list[Bottleneck]:
    """Return states accumulating work while downstream states stay flat."""
    if not state_order or len(points) < 2:
        return []
    first, last = points[0].states, points[-1].states
    bottlenecks: list[Bottleneck] = []
    for index, state in enumerate(state_order[:-1]):
        start_count = first.get(state, 0)
        end_count = last.get(state, 0)
        growth = _relative_change(start_count, end_count)
        if growth <= BOTTLENECK_GROWTH_RATIO:
            continue
        downstream = state_order[index + 1 :]
        if all(
            abs(_relative_change(first.get(other, 0), last.get(other, 0))) <= BOTTLENECK_FLAT_RATIO
            for other in downstream
        ):
            bottlenecks.append(
                Bottleneck(
                    state=state,
                    start_count=start_count,
                    end_count=end_count,
                    growth_ratio=growth,
                )
            )
    return bottlenecks


def _relative_change(start: int, end: int) -> float:
    return (end - start) / max(start, 1)


def _ordered_states(
    counts: Mapping[str, int],
    state_order: Sequence[str] | None,
) -> dict[str, int]:
    ordered: dict[str, int] = {}
    for state in state_order or ():
        ordered[state] = counts.get(state, 0)
    for state in sorted(counts):
        if state not in ordered:
            ordered[state] = counts[state]
    return ordered
