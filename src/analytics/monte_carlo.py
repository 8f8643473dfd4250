"""Monte Carlo delivery forecasting.

This module simulates sprint-by-sprint burn-down of remaining work with
normally distributed velocity samples and converts the resulting sprint
count distribution into optimistic, likely, and pessimistic dates.
"""

from __future__ import annotations

from datetime import date, timedelta
import math
import random

from analytics.statistics import percentile
from core.clock import Clock, SystemClock
from core.config import TempoConfig
from core.constants import (
    DEFAULT_CONFIDENCE_LEVEL,
    HIGH_VARIABILITY_RATIO,
    LARGE_BACKLOG_MULTIPLIER,
    LONG_FORECAST_SPRINTS,
    MAX_SIMULATED_SPRINTS,
    MIN_VELOCITY_HISTORY,
)
from core.errors import TempoMetricsError
from core.logging_config import get_logger
from core.metric_types import DeliveryForecast

_LOGGER = get_logger(__name__)


class ForecastEngine:
    """Delivery forecaster driven by an injected random source."""

    def __init__(
        self,
        config: TempoConfig,
        rng: random.Random | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config
        self._rng = rng or random.Random(config.random_seed)
        self._clock = clock or SystemClock()

    def simulate_delivery(
        self,
        remaining_work: float,
        mean_velocity: float,
        std_dev_velocity: float,
        confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
        trials: int | None = None,
        history_size: int | None = None,
        start_date: date | None = None,
        work_unit: str = "points",
    ) -> DeliveryForecast:
        """Simulate delivery and summarize the sprint count distribution.

        Args:
            remaining_work: Work left, in the same unit as velocity.
            mean_velocity: Average work completed per sprint.
            std_dev_velocity: Velocity standard deviation.
            confidence_level: Percentile for the pessimistic outcome.
            trials: Number of simulated runs; config default when omitted.
            history_size: Number of velocity observations behind the mean.
            start_date: Date sprints are counted from; today when omitted.
            work_unit: Label used in assumption text.

        Returns:
            Delivery forecast with risks and recommendations.

        Raises:
            TempoMetricsError: If confidence level or trial count is invalid.
        """
        if not 50 <= confidence_level < 100:
            raise TempoMetricsError(
                f"Invalid confidence level {confidence_level}: expected a value in [50, 100)."
            )
        trial_count = self._config.monte_carlo_trials if trials is None else trials
        if trial_count < 1:
            raise TempoMetricsError(
                f"Invalid trial count {trial_count}: expected a value >= 1."
            )
        counts: list[int] = []
        capped_trials = 0
        for _ in range(trial_count):
            sprints, capped = self._run_trial(remaining_work, mean_velocity, std_dev_velocity)
            counts.append(sprints)
            capped_trials += int(capped)
        optimistic = int(percentile(counts, 100 - confidence_level))
        likely = int(percentile(counts, 50))
        pessimistic = int(percentile(counts, confidence_level))
        origin = start_date or self._clock.now().date()
        sprint_days = self._config.sprint_length_days
        risks = _collect_risks(
            remaining_work,
            mean_velocity,
            std_dev_velocity,
            history_size,
            capped_trials,
            trial_count,
        )
        if capped_trials:
            _LOGGER.warning(
                "forecast_trials_capped",
                capped_trials=capped_trials,
                trials=trial_count,
                max_sprints=MAX_SIMULATED_SPRINTS,
            )
        return DeliveryForecast(
            optimistic_sprints=optimistic,
            likely_sprints=likely,
            pessimistic_sprints=pessimistic,
            optimistic_date=origin + timedelta(days=optimistic * sprint_days),
            likely_date=origin + timedelta(days=likely * sprint_days),
            pessimistic_date=origin + timedelta(days=pessimistic * sprint_days),
            confidence_level=float(confidence_level),
            trials=trial_count,
            capped_trials=capped_trials,
            assumptions=(
                f"Team maintains average velocity of {mean_velocity:.1f} {work_unit} per sprint",
                "No major scope changes",
                "Team capacity remains stable",
                f"{sprint_days}-day sprint length",
            ),
            risks=risks,
            recommendations=_build_recommendations(
                mean_velocity, std_dev_velocity, likely, pessimistic
            ),
        )

    def _run_trial(
        self,
        remaining_work: float,
        mean_velocity: float,
        std_dev_velocity: float,
    ) -> tuple[int, bool]:
        """Return sprints used and whether the sprint cap stopped the trial."""
        work = remaining_work
        sprints = 0
        while work > 0:
            if sprints >= MAX_SIMULATED_SPRINTS:
                return sprints, True
            work -= max(0.0, self._normal_sample(mean_velocity, std_dev_velocity))
            sprints += 1
        return sprints, False

    def _normal_sample(self, mean: float, std_dev: float) -> float:
        """Draw one normal sample with the Box-Muller transform."""
        u1 = 1.0 - self._rng.random()
        u2 = self._rng.random()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + z0 * std_dev


def _collect_risks(
    remaining_work: float,
    mean_velocity: float,
    std_dev_velocity: float,
    history_size: int | None,
    capped_trials: int,
    trial_count: int,
) -> tuple[str, ...]:
    risks: list[str] = []
    if mean_velocity <= 0:
        risks.append("Non-positive average velocity; delivery cannot be forecast reliably")
    elif std_dev_velocity / mean_velocity > HIGH_VARIABILITY_RATIO:
        risks.append("High velocity variability (>30%) reduces prediction accuracy")
    if mean_velocity > 0 and remaining_work > mean_velocity * LARGE_BACKLOG_MULTIPLIER:
        risks.append("Large amount of remaining work increases uncertainty")
    if history_size is not None and history_size < MIN_VELOCITY_HISTORY:
        risks.append("Limited historical data reduces prediction reliability")
    if capped_trials:
        risks.append(
            f"{capped_trials} of {trial_count} trials hit the {MAX_SIMULATED_SPRINTS}-sprint cap; "
            "forecast is degenerate"
        )
    return tuple(risks)


def _build_recommendations(
    mean_velocity: float,
    std_dev_velocity: float,
    likely: int,
    pessimistic: int,
) -> tuple[str, ...]:
    recommendations: list[str] = []
    if pessimistic > LONG_FORECAST_SPRINTS:
        recommendations.append("Consider breaking work into smaller, incremental deliveries")
    if mean_velocity > 0 and std_dev_velocity / mean_velocity > HIGH_VARIABILITY_RATIO:
        recommendations.append("Focus on stabilizing team velocity through better estimation")
    recommendations.append(
        f"Plan for {likely} sprints with buffer for {pessimistic - likely} additional sprints"
    )
    return tuple(recommendations)
