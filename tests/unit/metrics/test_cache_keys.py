"""Unit tests for metric cache and rollup keys."""

from __future__ import annotations

from datetime import date

from core.types import DateRange
from metrics.cache_keys import (
    daily_bucket_key,
    metric_cache_key,
    monthly_bucket_key,
    weekly_bucket_key,
)


def test_metric_cache_key_with_and_without_range() -> None:
    """Ranged bundles append the range label."""
    date_range = DateRange(date(2024, 1, 1), date(2024, 1, 31))

    assert metric_cache_key("shop", "prediction") == "prediction-metrics-shop"
    assert metric_cache_key("shop", "flow", date_range) == (
        "flow-metrics-shop-2024-01-01..2024-01-31"
    )


def test_bucket_keys_use_day_week_and_month() -> None:
    """Rollup keys should partition by calendar granularity."""
    day = date(2024, 12, 30)

    assert daily_bucket_key("shop", day) == "metrics/daily/shop/2024-12-30"
    assert weekly_bucket_key("shop", day) == "metrics/weekly/shop/2025-W01"
    assert monthly_bucket_key("shop", day) == "metrics/monthly/shop/2024-12"
