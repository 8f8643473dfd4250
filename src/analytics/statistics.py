"""Descriptive statistics, trend classification, and regression forecasts.

Every function here is pure: inputs are copied before sorting and empty or
too-short inputs degrade to neutral defaults instead of raising.
"""

from __future__ import annotations

import math
from typing import Sequence

from core.constants import TREND_LOWER_RATIO, TREND_UPPER_RATIO
from core.metric_types import TrendDirection, TrendResult


def average(values: Sequence[float]) -> float:
    """Return the arithmetic mean, or 0 for empty input."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def median(values: Sequence[float]) -> float:
    """Return the median; the mean of the middle two for even lengths."""
    if not values:
        return 0.0
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) / 2
    return float(ordered[middle])


def percentile(values: Sequence[float], p: float) -> float:
    """Return the nearest-rank percentile of a sorted copy.

    Args:
        values: Input values, left untouched.
        p: Percentile in [0, 100].

    Returns:
        Value at index ``ceil(p / 100 * n) - 1`` clamped into range, or 0.
    """
    if not values:
        return 0.0
    ordered = sorted(values)
    index = math.ceil(p / 100 * len(ordered)) - 1
    index = min(max(index, 0), len(ordered) - 1)
    return float(ordered[index])


def standard_deviation(values: Sequence[float]) -> float:
    """Return the population standard deviation, or 0 for empty input."""
    if not values:
        return 0.0
    mean = average(values)
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return math.sqrt(variance)


def trend(values: Sequence[float]) -> TrendDirection:
    """Classify a series by comparing the averages of its two halves.

    The second half takes the extra element on odd lengths.
    """
    if len(values) < 2:
        return "stable"
    split = len(values) // 2
    first_average = average(values[:split])
    second_average = average(values[split:])
    if second_average > first_average * TREND_UPPER_RATIO:
        return "increasing"
    if second_average < first_average * TREND_LOWER_RATIO:
        return "decreasing"
    return "stable"


def polarity_label(direction: TrendDirection, lower_is_better: bool) -> TrendDirection:
    """Map increasing/decreasing onto improving/degrading for a metric."""
    if direction == "increasing":
        return "degrading" if lower_is_better else "improving"
    if direction == "decreasing":
        return "improving" if lower_is_better else "degrading"
    return direction


def linear_regression_forecast(values: Sequence[float]) -> float:
    """Forecast the next point with ordinary least squares on indices.

    Args:
        values: Ascending series.

    Returns:
        ``slope * n + intercept``; the lone value or 0 when n < 2.
    """
    count = len(values)
    if count < 2:
        return float(values[0]) if values else 0.0
    slope, intercept = _fit_line(values)
    return slope * count + intercept


def regression_forecast(values: Sequence[float]) -> tuple[float, float] | None:
    """Forecast the next point with a confidence score.

    Args:
        values: Ascending series with at least three points.

    Returns:
        ``(next_period, confidence)`` with the forecast clamped at 0 and
        confidence in [0, 100], or None for fewer than three points.
    """
    count = len(values)
    if count < 3:
        return None
    slope, intercept = _fit_line(values)
    next_period = max(0.0, slope * count + intercept)
    mean_error = average(
        [abs(value - (slope * index + intercept)) for index, value in enumerate(values)]
    )
    if next_period == 0:
        confidence = 100.0 if mean_error == 0 else 0.0
    else:
        confidence = 100 - mean_error / abs(next_period) * 100
    return next_period, min(max(confidence, 0.0), 100.0)


def summarize_trend(
    values: Sequence[float],
    lower_is_better: bool | None = None,
) -> TrendResult:
    """Build a trend summary with direction, spread, and forecast.

    Args:
        values: Ascending series.
        lower_is_better: When set, relabel direction as improving/degrading.

    Returns:
        Trend result; ``insufficient_data`` is set below two points.
    """
    direction = trend(values)
    if lower_is_better is not None:
        direction = polarity_label(direction, lower_is_better)
    forecast = regression_forecast(values)
    return TrendResult(
        direction=direction,
        average=average(values),
        standard_deviation=standard_deviation(values),
        forecast_next_period=forecast[0] if forecast else None,
        confidence=forecast[1] if forecast else None,
        insufficient_data=len(values) < 2,
    )


def _fit_line(values: Sequence[float]) -> tuple[float, float]:
    count = len(values)
    mean_x = (count - 1) / 2
    mean_y = average(values)
    numerator = sum((index - mean_x) * (value - mean_y) for index, value in enumerate(values))
    denominator = sum((index - mean_x) ** 2 for index in range(count))
    slope = numerator / denominator if denominator else 0.0
    return slope, mean_y - slope * mean_x
