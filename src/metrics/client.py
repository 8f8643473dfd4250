"""Python SDK for Tempo storage and metrics.

This module wires one record store into every component so callers work
with a single client object instead of constructing each piece.
"""

from __future__ import annotations

import random

from analytics.monte_carlo import ForecastEngine
from analytics.spike_detection import SpikeDetector, SpikeThresholds
from core.clock import Clock
from core.config import TempoConfig
from core.types import StoreStats
from metrics.historical import HistoricalCollector
from metrics.orchestrator import MetricsOrchestrator
from store.dataset_chunker import DatasetChunker
from store.record_store import RecordStore
from store.report_renderer import ReportRenderer
from store.session_tracker import SessionTracker


class TempoClient:
    """Primary SDK entry point for storage and metric workflows."""

    def __init__(
        self,
        config: TempoConfig | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        spike_thresholds: SpikeThresholds | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration; environment when omitted.
            clock: Optional time source shared by all components.
            rng: Optional random source for delivery forecasts.
            spike_thresholds: Optional spike multipliers.
        """
        self._config = config or TempoConfig.from_env()
        self.store = RecordStore(self._config, clock)
        self.datasets = DatasetChunker(self.store)
        self.sessions = SessionTracker(self.store)
        self.reports = ReportRenderer(self.store)
        self.forecasts = ForecastEngine(self._config, rng, self.store.clock)
        self.metrics = MetricsOrchestrator(
            self.store,
            forecast_engine=self.forecasts,
            spike_detector=SpikeDetector(spike_thresholds),
        )
        self.history = HistoricalCollector(self.store, self.metrics, self.sessions)

    @property
    def config(self) -> TempoConfig:
        return self._config

    def stats(self) -> StoreStats:
        """Return aggregate store statistics."""
        return self.store.stats()

    def sweep(self) -> int:
        """Delete expired records across all namespaces.

        Returns:
            Number of records removed.
        """
        return self.store.delete_expired()
