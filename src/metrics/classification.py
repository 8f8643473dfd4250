"""DORA performance tier classification.

Thresholds follow the published DORA bands: deployment frequency in
deployments per day, lead time in hours, MTTR in minutes, and change
failure rate in percent.
"""

from __future__ import annotations

from core.metric_types import DoraMetrics, PerformanceTier

HOURS_PER_DAY = 24
HOURS_PER_WEEK = 7 * HOURS_PER_DAY
HOURS_PER_MONTH = 30 * HOURS_PER_DAY
MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY

TIER_SCORES: dict[PerformanceTier, int] = {"elite": 25, "high": 15, "medium": 10, "low": 0}
ELITE_SCORE = 80
HIGH_SCORE = 50
MEDIUM_SCORE = 30


def classify_deployment_frequency(deployments_per_day: float) -> PerformanceTier:
    if deployments_per_day >= 1:
        return "elite"
    if deployments_per_day >= 1 / 7:
        return "high"
    if deployments_per_day >= 1 / 30:
        return "medium"
    return "low"


def classify_lead_time(hours: float) -> PerformanceTier:
    if hours < 1:
        return "elite"
    if hours < HOURS_PER_WEEK:
        return "high"
    if hours < HOURS_PER_MONTH:
        return "medium"
    return "low"


def classify_mttr(minutes: float) -> PerformanceTier:
    if minutes < MINUTES_PER_HOUR:
        return "elite"
    if minutes < MINUTES_PER_DAY:
        return "high"
    if minutes < MINUTES_PER_WEEK:
        return "medium"
    return "low"


def classify_change_failure_rate(percentage: float) -> PerformanceTier:
    if percentage <= 15:
        return "elite"
    if percentage <= 30:
        return "high"
    if percentage <= 45:
        return "medium"
    return "low"


def performance_level(metrics: DoraMetrics | tuple[PerformanceTier, ...]) -> PerformanceTier:
    """Combine four tier classifications into an overall tier.

    Each tier scores 25 (elite), 15 (high), 10 (medium), or 0 (low);
    totals of 80, 50, and 30 mark elite, high, and medium.

    Args:
        metrics: DORA bundle, or the four tiers directly.

    Returns:
        Overall performance tier.
    """
    if isinstance(metrics, DoraMetrics):
        tiers = (
            metrics.deployment_frequency.classification,
            metrics.lead_time_for_changes.classification,
            metrics.mttr.classification,
            metrics.change_failure_rate.classification,
        )
    else:
        tiers = metrics
    score = sum(TIER_SCORES[tier] for tier in tiers)
    if score >= ELITE_SCORE:
        return "elite"
    if score >= HIGH_SCORE:
        return "high"
    if score >= MEDIUM_SCORE:
        return "medium"
    return "low"
