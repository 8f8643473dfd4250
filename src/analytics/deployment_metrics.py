"""Deployment and incident metrics over materialized work items.

Deployments are work items tagged as deployments; their state decides the
outcome. Incidents are bug or incident records whose priority maps onto a
severity. Both functions take records already partitioned to a date range
and the range length in days.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Sequence

from analytics.statistics import average
from core.constants import (
    DONE_STATES,
    INCIDENT_SEVERITIES,
    MTTR_TREND_MIN_INCIDENTS,
    TREND_LOWER_RATIO,
    TREND_UPPER_RATIO,
)
from core.metric_types import (
    DeploymentMetrics,
    DeploymentRecord,
    DeploymentStatus,
    Incident,
    IncidentMetrics,
    IncidentSeverity,
    MttrSummary,
    ThroughputRates,
    TrendDirection,
)
from core.record_fields import Record, record_date, record_tags, record_text

SERVICE_TAG_PREFIX = "service:"
ROOT_CAUSE_TAG_PREFIX = "root-cause:"
UNINVESTIGATED_ROOT_CAUSE = "Under investigation"

_LEADING_NUMBER = re.compile(r"\s*(\d+)")


def deployment_status(item: Record) -> DeploymentStatus:
    """Classify a deployment record as succeeded, failed, or partial."""
    state = record_text(item, "State")
    if state == "Removed" or "failed" in record_text(item, "Tags"):
        return "failed"
    if state in DONE_STATES:
        return "succeeded"
    return "partial"


def environment_from_tags(tags: str) -> str:
    """Infer the target environment from a deployment's tags."""
    if "dev" in tags:
        return "development"
    if "staging" in tags:
        return "staging"
    return "production"


def severity_from_priority(value: Any) -> IncidentSeverity:
    """Map a priority (``1`` or ``"1 - Critical"``) onto an incident severity.

    Unparseable or missing priorities map to ``low``.
    """
    number = _leading_number(value)
    if number is None:
        return "low"
    if number <= 1:
        return "critical"
    if number == 2:
        return "high"
    if number == 3:
        return "medium"
    return "low"


def build_deployment_metrics(
    deployments: Iterable[Record],
    days: int,
    environment: str | None = None,
) -> DeploymentMetrics:
    """Summarize deployments inside one range.

    Args:
        deployments: Deployment work items already partitioned to the range.
        days: Range length in days.
        environment: Keep only deployments inferred for this environment.

    Returns:
        Deployment list with frequency, success, and rollback rates.
    """
    records: list[DeploymentRecord] = []
    for item in deployments:
        record = _deployment_record(item)
        if environment is None or record.environment == environment:
            records.append(record)
    succeeded = sum(1 for record in records if record.status == "succeeded")
    failed = sum(1 for record in records if record.status == "failed")
    per_day = len(records) / days
    return DeploymentMetrics(
        deployments=tuple(records),
        frequency=ThroughputRates(daily=per_day, weekly=per_day * 7, monthly=per_day * 30),
        success_rate=succeeded / len(records) * 100 if records else 100.0,
        rollback_rate=failed / len(records) * 100 if records else 0.0,
    )


def build_incident_metrics(
    incidents: Iterable[Record],
    days: int,
    severity: str | None = None,
    include_root_cause: bool = False,
) -> IncidentMetrics:
    """Summarize incidents and their restore times inside one range.

    Args:
        incidents: Incident records already partitioned to the range.
        days: Range length in days.
        severity: Keep only incidents of this severity.
        include_root_cause: Read ``root-cause:`` tags into each incident.

    Returns:
        Incident list, MTTR overall and per severity, and incidents per day.
    """
    selected: list[Incident] = []
    for item in incidents:
        incident = _incident(item, include_root_cause)
        if severity is None or incident.severity == severity:
            selected.append(incident)
    restore_times = [
        incident.mttr_minutes for incident in selected if incident.mttr_minutes is not None
    ]
    by_severity: dict[str, float] = {}
    for name in INCIDENT_SEVERITIES:
        minutes = [
            incident.mttr_minutes
            for incident in selected
            if incident.severity == name and incident.mttr_minutes is not None
        ]
        if minutes:
            by_severity[name] = average(minutes)
    return IncidentMetrics(
        incidents=tuple(selected),
        mttr=MttrSummary(
            overall=average(restore_times),
            by_severity=by_severity,
            trend=_mttr_trend(selected),
        ),
        failure_rate=len(selected) / days,
    )


def _deployment_record(item: Record) -> DeploymentRecord:
    work_item_id = record_text(item, "WorkItemId")
    return DeploymentRecord(
        deployment_id=f"deploy-{work_item_id}",
        deployed_at=record_date(item, "ChangedDateSK"),
        status=deployment_status(item),
        environment=environment_from_tags(record_text(item, "Tags")),
        work_item_ids=(work_item_id,) if work_item_id else (),
    )


def _incident(item: Record, include_root_cause: bool) -> Incident:
    detected_at = record_date(item, "CreatedDateSK")
    resolved_at = record_date(item, "ResolvedDateSK")
    mttr_minutes = None
    if detected_at and resolved_at and resolved_at >= detected_at:
        mttr_minutes = (resolved_at - detected_at).total_seconds() / 60
    priority = item.get("Priority")
    if priority is None or priority == "":
        priority = item.get("Severity")
    tags = record_tags(item)
    root_cause = None
    if include_root_cause and tags:
        root_cause = _root_cause(tags)
    return Incident(
        incident_id=f"incident-{record_text(item, 'WorkItemId')}",
        detected_at=detected_at,
        severity=severity_from_priority(priority),
        resolved_at=resolved_at,
        mttr_minutes=mttr_minutes,
        affected_services=tuple(
            tag[len(SERVICE_TAG_PREFIX) :].strip()
            for tag in tags
            if tag.startswith(SERVICE_TAG_PREFIX)
        ),
        root_cause=root_cause,
    )


def _root_cause(tags: Sequence[str]) -> str:
    for tag in tags:
        if tag.startswith(ROOT_CAUSE_TAG_PREFIX):
            return tag[len(ROOT_CAUSE_TAG_PREFIX) :].strip()
    return UNINVESTIGATED_ROOT_CAUSE


def _mttr_trend(incidents: Sequence[Incident]) -> TrendDirection:
    """Compare restore times of the earlier and later half of the incidents.

    Fewer than ten incidents, or a half without restore times, is stable.
    """
    if len(incidents) < MTTR_TREND_MIN_INCIDENTS:
        return "stable"
    middle = len(incidents) // 2
    first = [item.mttr_minutes for item in incidents[:middle] if item.mttr_minutes]
    second = [item.mttr_minutes for item in incidents[middle:] if item.mttr_minutes]
    if not first or not second:
        return "stable"
    first_average = average(first)
    second_average = average(second)
    if second_average < first_average * TREND_LOWER_RATIO:
        return "improving"
    if second_average > first_average * TREND_UPPER_RATIO:
        return "degrading"
    return "stable"


def _leading_number(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_NUMBER.match(str(value))
    return int(match.group(1)) if match else None
