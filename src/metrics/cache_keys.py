"""Deterministic storage keys for cached metric bundles and rollups."""

from __future__ import annotations

from datetime import date

from core.record_fields import iso_week_label
from core.types import DateRange


def metric_cache_key(project: str, metric_type: str, date_range: DateRange | None = None) -> str:
    """Build the analysis cache key for one metric bundle.

    Args:
        project: Project scope.
        metric_type: Bundle name, e.g. ``flow`` or ``dora``.
        date_range: Optional partitioning range.

    Returns:
        Key such as ``flow-metrics-demo-2024-01-01..2024-01-31``.
    """
    key = f"{metric_type}-metrics-{project}"
    if date_range is not None:
        key = f"{key}-{date_range.label()}"
    return key


def daily_bucket_key(project: str, day: date) -> str:
    return f"metrics/daily/{project}/{day.isoformat()}"


def weekly_bucket_key(project: str, day: date) -> str:
    return f"metrics/weekly/{project}/{iso_week_label(day)}"


def monthly_bucket_key(project: str, day: date) -> str:
    return f"metrics/monthly/{project}/{day.year:04d}-{day.month:02d}"
