"""Historical metric collection and time-bucketed rollups.

A collection run is tracked as a ``historical-collection`` session. On
success the per-day, per-ISO-week, and per-month buckets are persisted in
the cache namespace with a TTL matching their granularity, then the session
is completed with the gathered results. Any failure marks the session
failed with the error detail and re-raises.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Mapping, Sequence

from analytics.statistics import average
from core.constants import DAILY_BUCKET_TTL, MONTHLY_BUCKET_TTL, WEEKLY_BUCKET_TTL
from core.errors import TempoMetricsError, TempoStoreError
from core.logging_config import get_logger
from core.record_fields import Record, iso_week_label, record_day
from core.types import DateRange
from metrics.cache_keys import daily_bucket_key, monthly_bucket_key, weekly_bucket_key
from metrics.orchestrator import MetricsOrchestrator
from store.record_payload import to_json_safe
from store.record_store import RecordStore
from store.session_tracker import SessionTracker

_LOGGER = get_logger(__name__)

SESSION_TYPE = "historical-collection"
SUPPORTED_METRIC_TYPES = ("velocity", "flow", "dora", "quality")
DEFAULT_METRIC_TYPES = ("velocity", "flow", "dora")


@dataclass(frozen=True)
class HistoricalInputs:
    """Materialized record collections feeding one collection run."""

    iterations: Sequence[Record] = field(default_factory=tuple)
    work_items: Sequence[Record] = field(default_factory=tuple)
    deployments: Sequence[Record] = field(default_factory=tuple)
    incidents: Sequence[Record] = field(default_factory=tuple)
    bugs: Sequence[Record] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "HistoricalInputs":
        """Build inputs from a mapping of collection name to record list."""
        return cls(
            iterations=tuple(payload.get("iterations") or ()),
            work_items=tuple(payload.get("work_items") or ()),
            deployments=tuple(payload.get("deployments") or ()),
            incidents=tuple(payload.get("incidents") or ()),
            bugs=tuple(payload.get("bugs") or ()),
        )


class HistoricalCollector:
    """Gather metric histories and persist rollup buckets."""

    def __init__(
        self,
        store: RecordStore,
        orchestrator: MetricsOrchestrator | None = None,
        sessions: SessionTracker | None = None,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator or MetricsOrchestrator(store)
        self._sessions = sessions or SessionTracker(store)

    def collect(
        self,
        project: str,
        date_range: DateRange,
        inputs: HistoricalInputs,
        metric_types: Sequence[str] = DEFAULT_METRIC_TYPES,
    ) -> dict[str, Any]:
        """Run one historical collection.

        Args:
            project: Project scope.
            date_range: Inclusive range to collect over.
            inputs: Record collections to derive metrics from.
            metric_types: Subset of velocity, flow, dora, and quality.

        Returns:
            Mapping with session id, project, range, collected metric names,
            and a summary.

        Raises:
            TempoMetricsError: If a metric type is unsupported.
        """
        session_id = self._sessions.create_session(
            SESSION_TYPE,
            {
                "project": project,
                "date_range": date_range.label(),
                "metric_types": list(metric_types),
                "start_time": self._store.clock.now().isoformat(),
            },
        )
        try:
            results = self._gather(project, date_range, inputs, metric_types)
            bucket_count = self._persist_rollups(project, date_range, results)
            self._sessions.update_session(
                session_id,
                {
                    "status": "completed",
                    "results": to_json_safe(results),
                    "end_time": self._store.clock.now().isoformat(),
                },
            )
        except Exception as error:
            self._fail_session(session_id, error)
            raise
        _LOGGER.info(
            "historical_collection_completed",
            session_id=session_id,
            project=project,
            metrics=list(results),
            buckets=bucket_count,
        )
        return {
            "session_id": session_id,
            "project": project,
            "date_range": date_range.label(),
            "metrics_collected": list(results),
            "summary": _summarize(results),
        }

    def _fail_session(self, session_id: str, error: Exception) -> None:
        """Record a run failure without replacing the error being raised."""
        _LOGGER.error("historical_collection_failed", session_id=session_id, error=str(error))
        try:
            self._sessions.fail_session(session_id, str(error))
        except TempoStoreError as session_error:
            _LOGGER.warning(
                "historical_session_not_failed",
                session_id=session_id,
                error=str(session_error),
            )

    def _gather(
        self,
        project: str,
        date_range: DateRange,
        inputs: HistoricalInputs,
        metric_types: Sequence[str],
    ) -> dict[str, list[dict[str, Any]]]:
        unsupported = [name for name in metric_types if name not in SUPPORTED_METRIC_TYPES]
        if unsupported:
            raise TempoMetricsError(
                f"Unsupported metric types: {', '.join(unsupported)}. "
                f"Choose from: {', '.join(SUPPORTED_METRIC_TYPES)}."
            )
        results: dict[str, list[dict[str, Any]]] = {}
        if "velocity" in metric_types:
            results["velocity"] = self._velocity_history(project, date_range, inputs)
        if "flow" in metric_types:
            results["flow"] = self._flow_history(project, date_range, inputs)
        if "dora" in metric_types:
            results["dora"] = self._dora_history(project, date_range, inputs)
        if "quality" in metric_types:
            results["quality"] = self._quality_history(project, date_range, inputs)
        return results

    def _velocity_history(
        self,
        project: str,
        date_range: DateRange,
        inputs: HistoricalInputs,
    ) -> list[dict[str, Any]]:
        history: list[dict[str, Any]] = []
        for iteration in inputs.iterations:
            start = record_day(iteration, "StartDateSK")
            end = record_day(iteration, "EndDateSK")
            if start is None or end is None:
                continue
            if not (date_range.contains(start) and date_range.contains(end)):
                continue
            sprint = self._orchestrator.calculate_sprint_metrics(
                project, [iteration], inputs.work_items
            )[0]
            history.append(
                {
                    "iteration": sprint.sprint_name,
                    "start_date": start,
                    "end_date": end,
                    "velocity": sprint.velocity,
                    "completion_rate": sprint.completion_rate,
                    "carry_over": sprint.carry_over_points,
                }
            )
        return history

    def _flow_history(
        self,
        project: str,
        date_range: DateRange,
        inputs: HistoricalInputs,
    ) -> list[dict[str, Any]]:
        history: list[dict[str, Any]] = []
        current = date_range.start
        while current <= date_range.end:
            window = DateRange(current, min(current + timedelta(days=6), date_range.end))
            flow = self._orchestrator.calculate_flow_metrics(project, inputs.work_items, window)
            history.append(
                {
                    "week": iso_week_label(current),
                    "start_date": window.start,
                    "end_date": window.end,
                    "cycle_time": flow.cycle_time.average,
                    "lead_time": flow.lead_time.average,
                    "throughput": flow.throughput.weekly,
                    "wip": flow.wip.average,
                    "flow_efficiency": flow.flow_efficiency,
                }
            )
            current += timedelta(days=7)
        return history

    def _dora_history(
        self,
        project: str,
        date_range: DateRange,
        inputs: HistoricalInputs,
    ) -> list[dict[str, Any]]:
        history: list[dict[str, Any]] = []
        month_start = date_range.start.replace(day=1)
        while month_start <= date_range.end:
            last_day = calendar.monthrange(month_start.year, month_start.month)[1]
            window = DateRange(
                max(month_start, date_range.start),
                min(month_start.replace(day=last_day), date_range.end),
            )
            dora = self._orchestrator.calculate_dora_metrics(
                project, window, inputs.deployments, inputs.incidents
            )
            history.append(
                {
                    "month": f"{month_start.year:04d}-{month_start.month:02d}",
                    "start_date": window.start,
                    "end_date": window.end,
                    "deployment_frequency": dora.deployment_frequency.value,
                    "lead_time_hours": dora.lead_time_for_changes.value,
                    "mttr_minutes": dora.mttr.value,
                    "change_failure_rate": dora.change_failure_rate.value,
                    "performance_level": dora.performance_level,
                }
            )
            month_start = month_start.replace(day=last_day) + timedelta(days=1)
        return history

    def _quality_history(
        self,
        project: str,
        date_range: DateRange,
        inputs: HistoricalInputs,
    ) -> list[dict[str, Any]]:
        bugs: list[Record] = []
        for bug in inputs.bugs:
            created = record_day(bug, "CreatedDateSK")
            if created is not None and date_range.contains(created):
                bugs.append(bug)
        quality = self._orchestrator.calculate_quality_metrics(project, bugs)
        return [to_json_safe(week) for week in quality.weeks]

    def _persist_rollups(
        self,
        project: str,
        date_range: DateRange,
        results: Mapping[str, list[dict[str, Any]]],
    ) -> int:
        """Write daily, weekly, and monthly buckets; return the bucket count."""
        daily_buckets: list[tuple[date, dict[str, float]]] = []
        for day in date_range.iter_days():
            day_metrics = _metrics_for_day(day, results)
            self._store.put(
                "cache",
                daily_bucket_key(project, day),
                {"date": day, "project": project, "metrics": day_metrics},
                {"project": project, "granularity": "daily"},
                DAILY_BUCKET_TTL,
            )
            daily_buckets.append((day, day_metrics))
        weekly: dict[str, list[tuple[date, dict[str, float]]]] = defaultdict(list)
        for day, day_metrics in daily_buckets:
            weekly[iso_week_label(day)].append((day, day_metrics))
        for week, entries in weekly.items():
            self._store.put(
                "cache",
                weekly_bucket_key(project, entries[0][0]),
                {
                    "week": week,
                    "project": project,
                    "metrics": _average_metrics([metrics for _, metrics in entries]),
                },
                {"project": project, "granularity": "weekly"},
                WEEKLY_BUCKET_TTL,
            )
        monthly = results.get("dora", [])
        for entry in monthly:
            self._store.put(
                "cache",
                monthly_bucket_key(project, entry["start_date"]),
                {"month": entry["month"], "project": project, "dora": entry},
                {"project": project, "granularity": "monthly"},
                MONTHLY_BUCKET_TTL,
            )
        return len(daily_buckets) + len(weekly) + len(monthly)


def _metrics_for_day(
    day: date,
    results: Mapping[str, list[dict[str, Any]]],
) -> dict[str, float]:
    metrics: dict[str, float] = {}
    for entry in results.get("velocity", []):
        if entry["start_date"] <= day <= entry["end_date"]:
            metrics["velocity"] = entry["velocity"]
            break
    for entry in results.get("flow", []):
        if entry["start_date"] <= day <= entry["end_date"]:
            metrics["cycle_time"] = entry["cycle_time"]
            metrics["throughput"] = entry["throughput"] / 7
            break
    return metrics


def _average_metrics(entries: list[dict[str, float]]) -> dict[str, float]:
    """Average each metric across the entries that report it."""
    collected: dict[str, list[float]] = defaultdict(list)
    for metrics in entries:
        for key, value in metrics.items():
            collected[key].append(value)
    return {key: average(values) for key, values in collected.items()}


def _summarize(results: Mapping[str, list[dict[str, Any]]]) -> dict[str, Any]:
    summary_metrics: dict[str, Any] = {}
    velocity = results.get("velocity") or []
    if velocity:
        summary_metrics["avg_velocity"] = average([entry["velocity"] for entry in velocity])
    flow = results.get("flow") or []
    if flow:
        summary_metrics["avg_cycle_time"] = average([entry["cycle_time"] for entry in flow])
    dora = results.get("dora") or []
    if dora:
        summary_metrics["current_performance_level"] = dora[-1]["performance_level"]
    return {
        "data_points": sum(len(entries) for entries in results.values()),
        "metrics": summary_metrics,
    }
