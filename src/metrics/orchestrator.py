"""Metric bundle computation over materialized work-item records.

The orchestrator never fetches data. Callers pass record collections and a
date range that only partitions them. Every bundle is cached in the
analysis namespace under a deterministic key with the on-demand TTL.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Sequence

from analytics.card_age import analyze_card_age
from analytics.cumulative_flow import build_cumulative_flow
from analytics.deployment_metrics import (
    build_deployment_metrics,
    build_incident_metrics,
    deployment_status,
)
from analytics.duration_analysis import (
    CYCLE_TIME,
    LEAD_TIME,
    analyze_durations,
    cycle_time_days,
    lead_time_days,
)
from analytics.failure_load import analyze_failure_load
from analytics.monte_carlo import ForecastEngine
from analytics.quality_metrics import calculate_quality_metrics
from analytics.spike_detection import SpikeDetector, SpikeThresholds
from analytics.statistics import (
    average,
    linear_regression_forecast,
    median,
    percentile,
    standard_deviation,
    summarize_trend,
)
from core.constants import (
    BACKLOG_CRITICAL_GROWTH,
    BACKLOG_SPIKE_HIGH_MULTIPLIER,
    BACKLOG_WARNING_GROWTH,
    DEFAULT_CONFIDENCE_LEVEL,
    DEFAULT_VELOCITY,
    DEPLOYMENT_ENVIRONMENTS,
    DONE_STATES,
    IN_PROGRESS_STATES,
    INCIDENT_SEVERITIES,
    ON_DEMAND_METRICS_TTL,
)
from core.errors import TempoMetricsError
from core.logging_config import get_logger
from core.metric_types import (
    BacklogAnalysis,
    BacklogForecast,
    CapacityStatus,
    CardAgeAnalysis,
    CumulativeFlow,
    DeliveryForecast,
    DeploymentMetrics,
    DoraMeasure,
    DoraMetrics,
    DurationAnalysis,
    DurationSummary,
    FailureLoadAnalysis,
    FlowMetrics,
    IncidentMetrics,
    MetricPoint,
    MetricsTrend,
    QualityMetrics,
    SprintMetrics,
    ThroughputAnalysis,
    ThroughputDeviation,
    ThroughputRates,
    TrendPoint,
    WipSummary,
)
from core.record_fields import (
    Record,
    WorkItemFilter,
    days_between,
    record_date,
    record_day,
    record_number,
    record_text,
)
from core.types import DateRange
from metrics.cache_keys import metric_cache_key
from metrics.classification import (
    classify_change_failure_rate,
    classify_deployment_frequency,
    classify_lead_time,
    classify_mttr,
    performance_level,
)
from store.record_store import RecordStore

_LOGGER = get_logger(__name__)

LOWER_IS_BETTER_METRICS = ("cycleTime", "leadTime", "mttr", "changeFailureRate")


class MetricsOrchestrator:
    """Compute and cache named metric bundles for a project."""

    def __init__(
        self,
        store: RecordStore,
        forecast_engine: ForecastEngine | None = None,
        spike_detector: SpikeDetector | None = None,
    ) -> None:
        self._store = store
        self._forecast_engine = forecast_engine or ForecastEngine(store.config, clock=store.clock)
        self._spike_detector = spike_detector or SpikeDetector()

    def cached_bundle(
        self,
        project: str,
        metric_type: str,
        date_range: DateRange | None = None,
    ) -> Any | None:
        """Return a cached bundle payload, or None when missing or expired."""
        record = self._store.get("analysis", metric_cache_key(project, metric_type, date_range))
        return record.payload if record is not None else None

    def calculate_flow_metrics(
        self,
        project: str,
        work_items: Iterable[Record],
        date_range: DateRange,
        team_name: str | None = None,
    ) -> FlowMetrics:
        """Compute cycle time, lead time, throughput, WIP, and flow efficiency.

        Items whose ``ChangedDateSK`` falls outside the range are excluded.

        Args:
            project: Project scope.
            work_items: Work-item records.
            date_range: Partitioning range; its length drives throughput.
            team_name: Optional team label stored with the cached bundle.

        Returns:
            Flow metric bundle.
        """
        cycle_times: list[float] = []
        lead_times: list[float] = []
        completed = 0
        in_progress = 0
        for item in _in_range(work_items, "ChangedDateSK", date_range):
            state = record_text(item, "State")
            if state in DONE_STATES:
                completed += 1
                cycle_time = cycle_time_days(item)
                if cycle_time > 0:
                    cycle_times.append(cycle_time)
                lead_time = lead_time_days(item)
                if lead_time > 0:
                    lead_times.append(lead_time)
            if state in IN_PROGRESS_STATES:
                in_progress += 1
        daily_throughput = completed / date_range.days
        metrics = FlowMetrics(
            cycle_time=_summarize_durations(cycle_times),
            lead_time=_summarize_durations(lead_times),
            throughput=ThroughputRates(
                daily=daily_throughput,
                weekly=daily_throughput * 7,
                monthly=daily_throughput * 30,
            ),
            wip=WipSummary(current=in_progress, average=float(in_progress)),
            flow_efficiency=_flow_efficiency(cycle_times, lead_times),
        )
        self._cache(project, "flow", metrics, date_range, team_name=team_name)
        return metrics

    def calculate_sprint_metrics(
        self,
        project: str,
        iterations: Sequence[Record],
        work_items: Iterable[Record],
        number_of_sprints: int = 1,
    ) -> list[SprintMetrics]:
        """Compute commitment and completion figures per iteration.

        Args:
            project: Project scope.
            iterations: Iteration records, most relevant first.
            work_items: Work-item records joined on ``IterationSK``.
            number_of_sprints: Number of leading iterations to evaluate.

        Returns:
            Sprint metrics in iteration order; empty when no iterations.
        """
        if not iterations:
            return []
        items_by_iteration: dict[str, list[Record]] = {}
        for item in work_items:
            items_by_iteration.setdefault(record_text(item, "IterationSK"), []).append(item)
        metrics = [
            _sprint_metrics(
                iteration,
                items_by_iteration.get(record_text(iteration, "IterationSK"), []),
            )
            for iteration in iterations[: max(number_of_sprints, 0)]
        ]
        self._cache(project, "sprint", metrics)
        return metrics

    def calculate_dora_metrics(
        self,
        project: str,
        date_range: DateRange,
        deployments: Iterable[Record],
        incidents: Iterable[Record],
    ) -> DoraMetrics:
        """Compute and classify the four DORA metrics.

        Deployments are partitioned by ``ChangedDateSK`` and incidents by
        ``CreatedDateSK``.

        Args:
            project: Project scope.
            date_range: Partitioning range.
            deployments: Deployment work-item records.
            incidents: Incident records with ``ResolvedDateSK`` when restored.

        Returns:
            DORA bundle with an overall performance level.
        """
        in_range_deployments = list(_in_range(deployments, "ChangedDateSK", date_range))
        in_range_incidents = list(_in_range(incidents, "CreatedDateSK", date_range))
        frequency = len(in_range_deployments) / date_range.days
        lead_time_hours = average(
            [hours for hours in map(_change_lead_time_hours, in_range_deployments) if hours > 0]
        )
        mttr_minutes = average(
            [
                minutes
                for minutes in map(_restore_minutes, in_range_incidents)
                if minutes is not None
            ]
        )
        failed = sum(1 for item in in_range_deployments if deployment_status(item) == "failed")
        failure_rate = failed / len(in_range_deployments) * 100 if in_range_deployments else 0.0
        measures = (
            DoraMeasure(frequency, classify_deployment_frequency(frequency)),
            DoraMeasure(lead_time_hours, classify_lead_time(lead_time_hours)),
            DoraMeasure(mttr_minutes, classify_mttr(mttr_minutes)),
            DoraMeasure(failure_rate, classify_change_failure_rate(failure_rate)),
        )
        metrics = DoraMetrics(
            deployment_frequency=measures[0],
            lead_time_for_changes=measures[1],
            mttr=measures[2],
            change_failure_rate=measures[3],
            performance_level=performance_level(tuple(m.classification for m in measures)),
        )
        self._cache(project, "dora", metrics, date_range)
        return metrics

    def get_metrics_trend(
        self,
        project: str,
        metric_type: str,
        series: Sequence[MetricPoint],
        interval: str = "sprint",
    ) -> MetricsTrend:
        """Annotate a series with per-point changes and a trend summary.

        Args:
            project: Project scope.
            metric_type: Metric name; lower-is-better metrics get
                improving/degrading labels.
            series: Ascending metric points.
            interval: Period label, e.g. ``sprint`` or ``weekly``.

        Returns:
            Trend bundle.
        """
        data: list[TrendPoint] = []
        for index, point in enumerate(series):
            if index == 0:
                data.append(TrendPoint(point.period, point.value))
                continue
            previous = series[index - 1].value
            change = point.value - previous
            data.append(
                TrendPoint(
                    period=point.period,
                    value=point.value,
                    change=change,
                    percent_change=change / previous * 100 if previous else 0.0,
                )
            )
        lower_is_better = True if metric_type in LOWER_IS_BETTER_METRICS else None
        result = MetricsTrend(
            metric=metric_type,
            project=project,
            interval=interval,
            data=tuple(data),
            trend=summarize_trend([point.value for point in series], lower_is_better),
        )
        self._cache(project, f"trend-{metric_type}-{interval}", result)
        return result

    def predict_delivery(
        self,
        project: str,
        remaining_work: float,
        velocity_history: Sequence[float],
        work_unit: str = "points",
        team_name: str | None = None,
        confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
    ) -> DeliveryForecast:
        """Forecast delivery from historical sprint velocities.

        Non-positive velocities are ignored; an empty history falls back to
        a default velocity and is reported as a risk.

        Args:
            project: Project scope.
            remaining_work: Work left in ``work_unit``.
            velocity_history: Completed work per past sprint.
            work_unit: ``points`` or ``items``.
            team_name: Optional team label stored with the cached bundle.
            confidence_level: Percentile for the pessimistic outcome.

        Returns:
            Delivery forecast.
        """
        velocities = [float(value) for value in velocity_history if value > 0]
        history_size = len(velocities)
        if not velocities:
            velocities = [DEFAULT_VELOCITY]
        forecast = self._forecast_engine.simulate_delivery(
            remaining_work=remaining_work,
            mean_velocity=average(velocities),
            std_dev_velocity=standard_deviation(velocities),
            confidence_level=confidence_level,
            history_size=history_size,
            start_date=self._store.clock.now().date(),
            work_unit=work_unit,
        )
        self._cache(
            project,
            "prediction",
            forecast,
            team_name=team_name,
            remaining_work=remaining_work,
        )
        return forecast

    def analyze_throughput(
        self,
        project: str,
        daily_counts: Sequence[MetricPoint],
    ) -> ThroughputAnalysis:
        """Compare daily completions against a median baseline.

        Args:
            project: Project scope.
            daily_counts: Completed items per day, ascending.

        Returns:
            Baseline, regression projection, deviations, and spikes.
        """
        values = [point.value for point in daily_counts]
        baseline = median(values)
        result = ThroughputAnalysis(
            baseline=baseline,
            projected_baseline=linear_regression_forecast(values),
            historical_average=average(values),
            trend=tuple(
                ThroughputDeviation(
                    period=point.period,
                    actual=point.value,
                    baseline=baseline,
                    deviation=point.value - baseline,
                )
                for point in daily_counts
            ),
            spikes=tuple(self._spike_detector.detect(daily_counts, baseline)),
        )
        self._cache(project, "throughput", result)
        return result

    def analyze_backlog_growth(
        self,
        project: str,
        daily_new_cards: Sequence[MetricPoint],
    ) -> BacklogAnalysis:
        """Measure backlog inflow growth and forecast capacity pressure.

        Args:
            project: Project scope.
            daily_new_cards: New cards per day, ascending.

        Returns:
            Growth rate, inflow averages, annotated spikes, and forecast.
        """
        values = [point.value for point in daily_new_cards]
        growth_rate = _growth_rate(values)
        daily_average = average(values)
        thresholds = self._spike_detector.thresholds
        backlog_detector = SpikeDetector(
            SpikeThresholds(
                flag=thresholds.flag,
                medium=thresholds.medium,
                high=BACKLOG_SPIKE_HIGH_MULTIPLIER,
            )
        )
        growth_factor = 1 + growth_rate / 100
        result = BacklogAnalysis(
            growth_rate=growth_rate,
            average_new_cards=ThroughputRates(
                daily=daily_average,
                weekly=daily_average * 7,
                monthly=daily_average * 30,
            ),
            spikes=tuple(backlog_detector.detect(daily_new_cards, daily_average, annotate=True)),
            forecast=BacklogForecast(
                next_week=daily_average * 7 * growth_factor,
                next_month=daily_average * 30 * growth_factor,
                capacity=_capacity_status(growth_rate),
            ),
        )
        self._cache(project, "backlog", result)
        return result

    def build_cumulative_flow(
        self,
        project: str,
        snapshots: Iterable[Record],
        date_range: DateRange,
        interval: str = "daily",
        state_order: Sequence[str] | None = None,
    ) -> CumulativeFlow:
        """Build cumulative flow points and detect bottlenecks."""
        result = build_cumulative_flow(snapshots, date_range, interval, state_order)
        self._cache(project, "cumulative-flow", result, date_range, interval=interval)
        return result

    def analyze_card_age(
        self,
        project: str,
        work_items: Iterable[Record],
        as_of: date | None = None,
    ) -> CardAgeAnalysis:
        """Summarize card ages as of a day; today when omitted."""
        result = analyze_card_age(work_items, as_of or self._store.clock.now().date())
        self._cache(project, "card-age", result)
        return result

    def calculate_quality_metrics(self, project: str, bugs: Iterable[Record]) -> QualityMetrics:
        result = calculate_quality_metrics(bugs)
        self._cache(project, "quality", result)
        return result

    def calculate_deployment_metrics(
        self,
        project: str,
        date_range: DateRange,
        deployments: Iterable[Record],
        environment: str | None = None,
    ) -> DeploymentMetrics:
        """List deployments in range with frequency, success, and rollback rates.

        Deployments are partitioned by ``ChangedDateSK``; the environment of
        each one is inferred from its tags.

        Args:
            project: Project scope.
            date_range: Partitioning range; its length drives frequency.
            deployments: Deployment work-item records.
            environment: Optional ``development``, ``staging``, or ``production``.

        Returns:
            Deployment metric bundle.

        Raises:
            TempoMetricsError: If the environment is unknown.
        """
        if environment is not None and environment not in DEPLOYMENT_ENVIRONMENTS:
            raise TempoMetricsError(
                f"Unsupported environment '{environment}'. "
                f"Use one of: {', '.join(DEPLOYMENT_ENVIRONMENTS)}."
            )
        result = build_deployment_metrics(
            _in_range(deployments, "ChangedDateSK", date_range),
            date_range.days,
            environment,
        )
        self._cache(project, "deployment", result, date_range, environment=environment)
        return result

    def calculate_incident_metrics(
        self,
        project: str,
        date_range: DateRange,
        incidents: Iterable[Record],
        severity: str | None = None,
        include_root_cause: bool = False,
    ) -> IncidentMetrics:
        """Summarize incidents in range with MTTR per severity and its trend.

        Incidents are partitioned by ``CreatedDateSK``; severity comes from
        ``Priority`` (or ``Severity``) where 1 is critical and 4+ is low.

        Args:
            project: Project scope.
            date_range: Partitioning range; its length drives failure rate.
            incidents: Incident records with ``ResolvedDateSK`` when restored.
            severity: Optional severity to keep.
            include_root_cause: Read ``root-cause:`` tags into each incident.

        Returns:
            Incident metric bundle.

        Raises:
            TempoMetricsError: If the severity is unknown.
        """
        if severity is not None and severity not in INCIDENT_SEVERITIES:
            raise TempoMetricsError(
                f"Unsupported severity '{severity}'. "
                f"Use one of: {', '.join(INCIDENT_SEVERITIES)}."
            )
        result = build_incident_metrics(
            _in_range(incidents, "CreatedDateSK", date_range),
            date_range.days,
            severity,
            include_root_cause,
        )
        self._cache(project, "incident", result, date_range, severity=severity)
        return result

    def analyze_failure_load(
        self,
        project: str,
        work_items: Iterable[Record],
        date_range: DateRange,
        item_filter: WorkItemFilter | None = None,
    ) -> FailureLoadAnalysis:
        """Measure the bug share of work created in range.

        Args:
            project: Project scope.
            work_items: Work items of every type, partitioned by ``CreatedDateSK``.
            date_range: Range the daily timeline covers.
            item_filter: Optional field filter applied before partitioning.

        Returns:
            Failure load bundle.
        """
        selected = [item for item in work_items if item_filter is None or item_filter.matches(item)]
        result = analyze_failure_load(
            _in_range(selected, "CreatedDateSK", date_range),
            date_range,
        )
        self._cache(project, "failure-load", result, date_range)
        return result

    def analyze_lead_time(
        self,
        project: str,
        work_items: Iterable[Record],
        as_of: date | None = None,
        item_filter: WorkItemFilter | None = None,
    ) -> DurationAnalysis:
        """Analyze lead time over trailing windows ending today or ``as_of``."""
        return self._analyze_durations(project, work_items, LEAD_TIME, as_of, item_filter)

    def analyze_cycle_time(
        self,
        project: str,
        work_items: Iterable[Record],
        as_of: date | None = None,
        item_filter: WorkItemFilter | None = None,
    ) -> DurationAnalysis:
        """Analyze cycle time over trailing windows ending today or ``as_of``."""
        return self._analyze_durations(project, work_items, CYCLE_TIME, as_of, item_filter)

    def _analyze_durations(
        self,
        project: str,
        work_items: Iterable[Record],
        measure: str,
        as_of: date | None,
        item_filter: WorkItemFilter | None,
    ) -> DurationAnalysis:
        result = analyze_durations(
            work_items,
            measure,
            as_of or self._store.clock.now().date(),
            item_filter,
        )
        self._cache(
            project,
            measure.replace("_", "-"),
            result,
            as_of=result.as_of.isoformat(),
        )
        return result

    def _cache(
        self,
        project: str,
        metric_type: str,
        bundle: Any,
        date_range: DateRange | None = None,
        **extra_metadata: Any,
    ) -> str:
        metadata: dict[str, Any] = {"project": project, "metric_type": metric_type}
        if date_range is not None:
            metadata["date_range"] = date_range.label()
        metadata.update({key: value for key, value in extra_metadata.items() if value is not None})
        record_id = self._store.put(
            "analysis",
            metric_cache_key(project, metric_type, date_range),
            bundle,
            metadata,
            ON_DEMAND_METRICS_TTL,
        )
        _LOGGER.debug(
            "metrics_cached",
            project=project,
            metric_type=metric_type,
            record_id=record_id,
        )
        return record_id


def _in_range(
    records: Iterable[Record],
    field_name: str,
    date_range: DateRange,
) -> Iterable[Record]:
    """Yield records dated inside the range; undated records pass through."""
    for record in records:
        day = record_day(record, field_name)
        if day is None or date_range.contains(day):
            yield record


def _change_lead_time_hours(item: Record) -> float:
    created = record_date(item, "CreatedDateSK")
    deployed = record_date(item, "ChangedDateSK")
    if created and deployed:
        return days_between(created, deployed) * 24
    return 0.0


def _restore_minutes(item: Record) -> float | None:
    detected = record_date(item, "CreatedDateSK")
    resolved = record_date(item, "ResolvedDateSK")
    if detected and resolved and resolved >= detected:
        return (resolved - detected).total_seconds() / 60
    return None


def _summarize_durations(values: list[float]) -> DurationSummary:
    return DurationSummary(
        average=average(values),
        median=percentile(values, 50),
        p85=percentile(values, 85),
        p95=percentile(values, 95),
    )


def _flow_efficiency(cycle_times: list[float], lead_times: list[float]) -> float:
    if not cycle_times or not lead_times:
        return 0.0
    lead_average = average(lead_times)
    return average(cycle_times) / lead_average * 100 if lead_average > 0 else 0.0


def _sprint_metrics(iteration: Record, items: list[Record]) -> SprintMetrics:
    committed = 0.0
    completed = 0.0
    for item in items:
        points = record_number(item, "StoryPoints")
        committed += points
        if record_text(item, "State") in DONE_STATES:
            completed += points
    return SprintMetrics(
        sprint_id=record_text(iteration, "IterationSK"),
        sprint_name=record_text(iteration, "IterationPath"),
        start_date=record_day(iteration, "StartDateSK"),
        end_date=record_day(iteration, "EndDateSK"),
        velocity=completed,
        planned_capacity=committed,
        completed_story_points=completed,
        committed_story_points=committed,
        carry_over_points=committed - completed,
        completion_rate=completed / committed * 100 if committed > 0 else 0.0,
    )


def _growth_rate(values: list[float]) -> float:
    if len(values) < 2 or values[0] == 0:
        return 0.0
    return (values[-1] - values[0]) / values[0] * 100


def _capacity_status(growth_rate: float) -> CapacityStatus:
    if growth_rate < BACKLOG_WARNING_GROWTH:
        return "sufficient"
    if growth_rate < BACKLOG_CRITICAL_GROWTH:
        return "warning"
    return "critical"
