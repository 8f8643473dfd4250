"""Baseline-relative spike detection for metric series."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from core.constants import SPIKE_FLAG_MULTIPLIER, SPIKE_HIGH_MULTIPLIER, SPIKE_MEDIUM_MULTIPLIER
from core.metric_types import MetricPoint, Spike, SpikeSeverity


@dataclass(frozen=True)
class SpikeThresholds:
    """Baseline multipliers for flagging and grading spikes."""

    flag: float = SPIKE_FLAG_MULTIPLIER
    medium: float = SPIKE_MEDIUM_MULTIPLIER
    high: float = SPIKE_HIGH_MULTIPLIER


class SpikeDetector:
    """Flag points that exceed a multiple of a baseline."""

    def __init__(self, thresholds: SpikeThresholds | None = None) -> None:
        self.thresholds = thresholds or SpikeThresholds()

    def detect(
        self,
        series: Sequence[MetricPoint],
        baseline: float,
        annotate: bool = False,
    ) -> list[Spike]:
        """Return spikes in series order.

        Args:
            series: Ascending metric points.
            baseline: Reference level, typically median or average.
            annotate: Attach a calendar hint for ISO-date periods.

        Returns:
            Flagged points with severity and optional hint.
        """
        spikes: list[Spike] = []
        for point in series:
            if point.value <= baseline * self.thresholds.flag:
                continue
            spikes.append(
                Spike(
                    period=point.period,
                    value=point.value,
                    severity=self._severity(point.value, baseline),
                    hint=calendar_hint(point.period) if annotate else None,
                )
            )
        return spikes

    def _severity(self, value: float, baseline: float) -> SpikeSeverity:
        if value > baseline * self.thresholds.high:
            return "high"
        if value > baseline * self.thresholds.medium:
            return "medium"
        return "low"


def calendar_hint(period: str) -> str | None:
    """Return a non-causal calendar label for an ISO date period.

    Labels describe where the date falls; they do not explain the spike.
    """
    try:
        day = date.fromisoformat(period[:10])
    except ValueError:
        return None
    if day.weekday() == 0:
        return "start of week"
    if day.weekday() == 4:
        return "end of week"
    if day.day <= 3:
        return "start of month"
    if day.day >= 28:
        return "end of month"
    return None
