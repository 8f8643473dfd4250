"""Public SDK surface for Tempo.

This module provides a stable import path for library users.
It re-exports the primary client, configuration, and typed models.
"""

from __future__ import annotations

from analytics.spike_detection import SpikeThresholds
from core.clock import ManualClock, SystemClock
from core.config import TempoConfig
from core.metric_types import DeliveryForecast, DoraMetrics, FlowMetrics, MetricPoint, TrendResult
from core.record_fields import WorkItemFilter
from core.types import DateRange, Session, StoredRecord, StoreStats
from metrics.client import TempoClient
from metrics.historical import HistoricalInputs

__all__ = [
    "DateRange",
    "DeliveryForecast",
    "DoraMetrics",
    "FlowMetrics",
    "HistoricalInputs",
    "ManualClock",
    "MetricPoint",
    "Session",
    "SpikeThresholds",
    "StoreStats",
    "StoredRecord",
    "SystemClock",
    "TempoClient",
    "TempoConfig",
    "TrendResult",
    "WorkItemFilter",
]
