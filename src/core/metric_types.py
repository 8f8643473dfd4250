"""Typed metric, trend, and forecast result models.

This module defines immutable results produced by the analytics toolkit
and the metrics orchestrator. All models serialize with ``asdict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Mapping

TrendDirection = Literal["increasing", "stable", "decreasing", "improving", "degrading"]
SpikeSeverity = Literal["low", "medium", "high"]
PerformanceTier = Literal["elite", "high", "medium", "low"]
CapacityStatus = Literal["sufficient", "warning", "critical"]
IncidentSeverity = Literal["critical", "high", "medium", "low"]
DeploymentStatus = Literal["succeeded", "failed", "partial"]


@dataclass(frozen=True)
class MetricPoint:
    """One period/value pair in an ascending metric series."""

    period: str
    value: float


@dataclass(frozen=True)
class TrendResult:
    """Trend classification with summary statistics.

    Attributes:
        direction: Trend label, polarity-aware when requested.
        average: Mean of the series.
        standard_deviation: Population standard deviation of the series.
        forecast_next_period: Regression forecast for the next period.
        confidence: Forecast confidence percentage in [0, 100].
        insufficient_data: True when fewer than two points were supplied.
    """

    direction: TrendDirection
    average: float
    standard_deviation: float
    forecast_next_period: float | None = None
    confidence: float | None = None
    insufficient_data: bool = False


@dataclass(frozen=True)
class Spike:
    """One flagged outlier in a metric series."""

    period: str
    value: float
    severity: SpikeSeverity
    hint: str | None = None


@dataclass(frozen=True)
class DeliveryForecast:
    """Monte Carlo delivery forecast.

    Attributes:
        optimistic_sprints: Sprint count at the (100 - confidence) percentile.
        likely_sprints: Median sprint count.
        pessimistic_sprints: Sprint count at the confidence percentile.
        optimistic_date: Calendar date for the optimistic outcome.
        likely_date: Calendar date for the likely outcome.
        pessimistic_date: Calendar date for the pessimistic outcome.
        confidence_level: Requested confidence percentage.
        trials: Number of simulated trials.
        capped_trials: Trials stopped by the sprint cap.
        assumptions: Fixed modelling assumptions.
        risks: Warnings that degrade forecast confidence.
        recommendations: Planning suggestions derived from the forecast.
    """

    optimistic_sprints: int
    likely_sprints: int
    pessimistic_sprints: int
    optimistic_date: date
    likely_date: date
    pessimistic_date: date
    confidence_level: float
    trials: int
    capped_trials: int
    assumptions: tuple[str, ...]
    risks: tuple[str, ...]
    recommendations: tuple[str, ...]


@dataclass(frozen=True)
class DurationSummary:
    """Distribution summary for cycle or lead time in days."""

    average: float
    median: float
    p85: float
    p95: float


@dataclass(frozen=True)
class ThroughputRates:
    """Completed items per day, week, and month."""

    daily: float
    weekly: float
    monthly: float


@dataclass(frozen=True)
class WipSummary:
    """Work-in-progress counts."""

    current: int
    average: float
    limit: int | None = None


@dataclass(frozen=True)
class FlowMetrics:
    """Flow metric bundle for one project and date range."""

    cycle_time: DurationSummary
    lead_time: DurationSummary
    throughput: ThroughputRates
    wip: WipSummary
    flow_efficiency: float


@dataclass(frozen=True)
class SprintMetrics:
    """Commitment and completion figures for one sprint."""

    sprint_id: str
    sprint_name: str
    start_date: date | None
    end_date: date | None
    velocity: float
    planned_capacity: float
    completed_story_points: float
    committed_story_points: float
    carry_over_points: float
    completion_rate: float


@dataclass(frozen=True)
class DoraMeasure:
    """One DORA metric value and its performance tier."""

    value: float
    classification: PerformanceTier


@dataclass(frozen=True)
class DoraMetrics:
    """DORA metric bundle.

    Attributes:
        deployment_frequency: Deployments per day.
        lead_time_for_changes: Hours from change creation to deployment.
        mttr: Mean minutes to restore after an incident.
        change_failure_rate: Percentage of failed deployments.
        performance_level: Overall tier from the four classifications.
    """

    deployment_frequency: DoraMeasure
    lead_time_for_changes: DoraMeasure
    mttr: DoraMeasure
    change_failure_rate: DoraMeasure
    performance_level: PerformanceTier


@dataclass(frozen=True)
class TrendPoint:
    """Series point annotated with change from the previous point."""

    period: str
    value: float
    change: float | None = None
    percent_change: float | None = None


@dataclass(frozen=True)
class MetricsTrend:
    """Trend bundle for one metric series."""

    metric: str
    project: str
    interval: str
    data: tuple[TrendPoint, ...]
    trend: TrendResult


@dataclass(frozen=True)
class ThroughputDeviation:
    """Daily throughput compared against the baseline."""

    period: str
    actual: float
    baseline: float
    deviation: float


@dataclass(frozen=True)
class ThroughputAnalysis:
    """Throughput baseline, projection, and spikes."""

    baseline: float
    projected_baseline: float
    historical_average: float
    trend: tuple[ThroughputDeviation, ...]
    spikes: tuple[Spike, ...]


@dataclass(frozen=True)
class BacklogForecast:
    """Backlog inflow forecast and capacity status."""

    next_week: float
    next_month: float
    capacity: CapacityStatus


@dataclass(frozen=True)
class BacklogAnalysis:
    """Backlog growth rate, inflow averages, and annotated spikes."""

    growth_rate: float
    average_new_cards: ThroughputRates
    spikes: tuple[Spike, ...]
    forecast: BacklogForecast


@dataclass(frozen=True)
class CumulativeFlowPoint:
    """Item counts per workflow state on one date."""

    period: str
    states: Mapping[str, int]
    total: int


@dataclass(frozen=True)
class Bottleneck:
    """Workflow state accumulating work while downstream states stay flat."""

    state: str
    start_count: int
    end_count: int
    growth_ratio: float


@dataclass(frozen=True)
class CumulativeFlow:
    """Cumulative flow series with detected bottlenecks."""

    points: tuple[CumulativeFlowPoint, ...]
    bottlenecks: tuple[Bottleneck, ...]


@dataclass(frozen=True)
class AgingCard:
    """Work item flagged by the card age analysis."""

    work_item_id: str
    age_days: int
    title: str


@dataclass(frozen=True)
class AgeBucket:
    """Count of cards whose age falls inside one range."""

    label: str
    count: int


@dataclass(frozen=True)
class CardAgeAnalysis:
    """Card age averages, aging lists, and distribution."""

    average_age: float
    average_by_type: Mapping[str, float]
    average_by_state: Mapping[str, float]
    critical: tuple[AgingCard, ...]
    warning: tuple[AgingCard, ...]
    distribution: tuple[AgeBucket, ...]


@dataclass(frozen=True)
class QualityWeek:
    """Bug figures for one ISO week."""

    week: str
    bugs_created: int
    bugs_resolved: int
    critical_bugs: int
    escape_rate: float
    resolution_days: float


@dataclass(frozen=True)
class QualityMetrics:
    """Weekly quality history plus placeholder aggregate ratios."""

    weeks: tuple[QualityWeek, ...]
    defect_density: float
    approximations: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DeploymentRecord:
    """One deployment derived from a deployment work item."""

    deployment_id: str
    deployed_at: datetime | None
    status: DeploymentStatus
    environment: str
    work_item_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class DeploymentMetrics:
    """Deployment list with frequency, success, and rollback rates.

    Attributes:
        deployments: Deployments inside the range, in input order.
        frequency: Deployments per day, week, and month.
        success_rate: Percentage of succeeded deployments; 100 when none.
        rollback_rate: Percentage of failed deployments; 0 when none.
    """

    deployments: tuple[DeploymentRecord, ...]
    frequency: ThroughputRates
    success_rate: float
    rollback_rate: float


@dataclass(frozen=True)
class Incident:
    """One incident with its restore time when resolved."""

    incident_id: str
    detected_at: datetime | None
    severity: IncidentSeverity
    resolved_at: datetime | None = None
    mttr_minutes: float | None = None
    affected_services: tuple[str, ...] = ()
    root_cause: str | None = None


@dataclass(frozen=True)
class MttrSummary:
    """Mean time to restore overall and per severity, in minutes."""

    overall: float
    by_severity: Mapping[str, float]
    trend: TrendDirection


@dataclass(frozen=True)
class IncidentMetrics:
    """Incident list, MTTR summary, and incidents per day."""

    incidents: tuple[Incident, ...]
    mttr: MttrSummary
    failure_rate: float


@dataclass(frozen=True)
class FailureLoadDay:
    """Bug share of newly created work on one day."""

    period: str
    failure_load: float
    new_bugs: int
    resolved_bugs: int


@dataclass(frozen=True)
class FailureLoadFigures:
    """Aggregate bug figures for a failure load analysis.

    Attributes:
        bug_ratio: Bugs as a percentage of all created items.
        defect_density: Bugs per fixed item count (approximation).
        escape_rate: Percentage of bugs found in production.
        mttr_days: Mean days from bug creation to resolution.
    """

    bug_ratio: float
    defect_density: float
    escape_rate: float
    mttr_days: float


@dataclass(frozen=True)
class FailureLoadAnalysis:
    """Failure load level, trend, figures, breakdowns, and daily timeline."""

    current: float
    trend: TrendDirection
    figures: FailureLoadFigures
    breakdown: Mapping[str, Mapping[str, int]]
    timeline: tuple[FailureLoadDay, ...]
    approximations: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DurationPeriods:
    """Average duration in days for items completed in trailing windows."""

    two_weeks: float
    thirty_days: float
    sixty_days: float
    year: float


@dataclass(frozen=True)
class DurationPercentiles:
    """Nearest-rank duration percentiles in days."""

    p50: float
    p75: float
    p90: float
    p95: float


@dataclass(frozen=True)
class DurationAnalysis:
    """Lead or cycle time analysis as of one day.

    Attributes:
        measure: ``lead_time`` or ``cycle_time``.
        as_of: Reference day closing every trailing window.
        periods: Averages over the trailing windows.
        trend: Recent windows against the sixty-day window; lower is better.
        breakdown: Averages by team, area, user, and work item type, for
            dimensions the filter leaves open.
        percentiles: Distribution over every completed item up to ``as_of``.
        item_count: Completed items considered.
    """

    measure: str
    as_of: date
    periods: DurationPeriods
    trend: TrendDirection
    breakdown: Mapping[str, Mapping[str, float]]
    percentiles: DurationPercentiles
    item_count: int
