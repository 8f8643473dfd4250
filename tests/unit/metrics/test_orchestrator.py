"""Unit tests for metric bundle computation and caching."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
import random

import pytest

from analytics.monte_carlo import ForecastEngine
from core.clock import ManualClock
from core.config import TempoConfig
from core.errors import TempoMetricsError
from core.metric_types import MetricPoint
from core.record_fields import WorkItemFilter
from core.types import DateRange
from metrics.orchestrator import MetricsOrchestrator
from store.record_store import RecordStore
from tests.fixture_paths import fixture_records

JANUARY = DateRange(date(2024, 1, 1), date(2024, 1, 31))


def _orchestrator(tmp_path) -> tuple[MetricsOrchestrator, RecordStore, ManualClock]:
    clock = ManualClock(datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc))
    config = TempoConfig(data_root=tmp_path)
    store = RecordStore(config, clock)
    engine = ForecastEngine(config, rng=random.Random(1), clock=clock)
    return MetricsOrchestrator(store, forecast_engine=engine), store, clock


def _points(values: list[float], start: date = date(2024, 1, 1)) -> list[MetricPoint]:
    return [
        MetricPoint((start + timedelta(days=index)).isoformat(), value)
        for index, value in enumerate(values)
    ]


def test_flow_metrics_from_work_items(tmp_path) -> None:
    """Completed items drive durations and throughput; active items drive WIP."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    flow = orchestrator.calculate_flow_metrics("shop", fixture_records("work_items"), JANUARY)

    assert (flow.cycle_time.average, flow.lead_time.average) == (6.0, 8.0)
    assert (flow.cycle_time.median, flow.cycle_time.p95) == (4.0, 8.0)
    assert flow.throughput.daily == pytest.approx(2 / 31)
    assert flow.throughput.weekly == pytest.approx(14 / 31)
    assert flow.wip.current == 2 and flow.flow_efficiency == 75.0


def test_flow_metrics_are_cached_with_range_metadata(tmp_path) -> None:
    """Bundles should be cached in analysis under a range-scoped key."""
    orchestrator, store, clock = _orchestrator(tmp_path)
    orchestrator.calculate_flow_metrics(
        "shop", fixture_records("work_items"), JANUARY, team_name="checkout"
    )

    cached = orchestrator.cached_bundle("shop", "flow", JANUARY)
    records = store.list("analysis", {"project": "shop", "metric_type": "flow"})
    clock.advance(timedelta(hours=1))

    assert cached is not None and cached["flow_efficiency"] == 75.0
    assert records[0].metadata["date_range"] == "2024-01-01..2024-01-31"
    assert records[0].metadata["team_name"] == "checkout"
    assert orchestrator.cached_bundle("shop", "flow", JANUARY) is None


def test_flow_metrics_without_work_items(tmp_path) -> None:
    """No items should yield zero figures rather than errors."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    flow = orchestrator.calculate_flow_metrics("shop", [], JANUARY)

    assert flow.throughput.daily == 0.0 and flow.flow_efficiency == 0.0
    assert flow.cycle_time.p85 == 0.0


def test_sprint_metrics_per_iteration(tmp_path) -> None:
    """Story points should split into committed, completed, and carry-over."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    first, second = orchestrator.calculate_sprint_metrics(
        "shop",
        fixture_records("iterations"),
        fixture_records("work_items"),
        number_of_sprints=2,
    )

    assert (first.sprint_name, first.committed_story_points, first.velocity) == (
        "Shop\\Sprint 1",
        10.0,
        8.0,
    )
    assert first.carry_over_points == 2.0 and first.completion_rate == 80.0
    assert first.start_date == date(2024, 1, 1) and first.end_date == date(2024, 1, 14)
    assert (second.committed_story_points, second.completion_rate) == (13.0, 0.0)


def test_sprint_metrics_without_iterations_is_empty(tmp_path) -> None:
    """No iterations should produce no sprints."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    assert orchestrator.calculate_sprint_metrics("shop", [], fixture_records("work_items")) == []


def test_dora_metrics_classify_each_measure(tmp_path) -> None:
    """Deployments and incidents should map onto the four DORA tiers."""
    orchestrator, _, _ = _orchestrator(tmp_path)
    date_range = DateRange(date(2024, 1, 1), date(2024, 1, 6))

    dora = orchestrator.calculate_dora_metrics(
        "shop",
        date_range,
        fixture_records("deployments"),
        fixture_records("incidents"),
    )

    assert dora.deployment_frequency.value == pytest.approx(5 / 6)
    assert dora.deployment_frequency.classification == "high"
    assert (dora.lead_time_for_changes.value, dora.lead_time_for_changes.classification) == (
        24.0,
        "high",
    )
    assert (dora.mttr.value, dora.mttr.classification) == (40.0, "elite")
    assert (dora.change_failure_rate.value, dora.change_failure_rate.classification) == (
        40.0,
        "medium",
    )
    assert dora.performance_level == "high"


def test_dora_metrics_without_records(tmp_path) -> None:
    """Empty inputs should classify as low frequency with zero failure rate."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    dora = orchestrator.calculate_dora_metrics("shop", JANUARY, [], [])

    assert dora.deployment_frequency.classification == "low"
    assert dora.change_failure_rate.value == 0.0


def test_metrics_trend_annotates_changes(tmp_path) -> None:
    """Each point after the first should carry absolute and percent change."""
    orchestrator, _, _ = _orchestrator(tmp_path)
    series = [MetricPoint("S1", 10), MetricPoint("S2", 20), MetricPoint("S3", 30)]

    result = orchestrator.get_metrics_trend("shop", "velocity", series)

    assert [(point.change, point.percent_change) for point in result.data] == [
        (None, None),
        (10, 100.0),
        (10, 50.0),
    ]
    assert result.trend.direction == "increasing" and result.trend.forecast_next_period == 40.0
    assert orchestrator.cached_bundle("shop", "trend-velocity-sprint") is not None


def test_metrics_trend_uses_polarity_for_lower_is_better(tmp_path) -> None:
    """Rising cycle time should be reported as degrading."""
    orchestrator, _, _ = _orchestrator(tmp_path)
    series = [
        MetricPoint("W1", 2),
        MetricPoint("W2", 3),
        MetricPoint("W3", 5),
        MetricPoint("W4", 6),
    ]

    result = orchestrator.get_metrics_trend("shop", "cycleTime", series, interval="weekly")

    assert result.trend.direction == "degrading" and result.interval == "weekly"


def test_metrics_trend_after_zero_value(tmp_path) -> None:
    """Percent change from zero should be reported as zero."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    result = orchestrator.get_metrics_trend("shop", "throughput", _points([0, 5]))

    assert result.data[1].percent_change == 0.0 and result.trend.insufficient_data is False


def test_predict_delivery_ignores_non_positive_velocities(tmp_path) -> None:
    """Zero and negative velocities should be dropped before simulating."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    forecast = orchestrator.predict_delivery("shop", 35, [10, 10, 10, 0, -5])

    assert forecast.likely_sprints == 4 and forecast.likely_date == date(2024, 2, 26)
    assert "Limited historical data reduces prediction reliability" not in forecast.risks
    cached = orchestrator.cached_bundle("shop", "prediction")
    assert cached is not None and cached["likely_sprints"] == 4


def test_predict_delivery_defaults_empty_history(tmp_path) -> None:
    """An empty history should use the default velocity and flag thin data."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    forecast = orchestrator.predict_delivery("shop", 40, [], work_unit="items")

    assert forecast.likely_sprints == 2
    assert "Limited historical data reduces prediction reliability" in forecast.risks
    assert forecast.assumptions[0] == "Team maintains average velocity of 20.0 items per sprint"


def test_analyze_throughput_against_median(tmp_path) -> None:
    """Deviation and spikes should be measured from the median."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    analysis = orchestrator.analyze_throughput("shop", _points([2, 2, 2, 10]))

    assert (analysis.baseline, analysis.historical_average) == (2.0, 4.0)
    assert [item.deviation for item in analysis.trend] == [0, 0, 0, 8]
    assert [(spike.period, spike.severity) for spike in analysis.spikes] == [
        ("2024-01-04", "high")
    ]


def test_analyze_backlog_growth(tmp_path) -> None:
    """Growth of 20% should warn; inflow spikes carry calendar hints."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    analysis = orchestrator.analyze_backlog_growth(
        "shop", _points([10, 12, 11, 50, 12], start=date(2024, 1, 5))
    )

    assert analysis.growth_rate == pytest.approx(20.0)
    assert analysis.average_new_cards.daily == 19.0
    assert [(spike.period, spike.severity, spike.hint) for spike in analysis.spikes] == [
        ("2024-01-08", "low", "start of week")
    ]
    assert analysis.forecast.capacity == "warning"
    assert analysis.forecast.next_week == pytest.approx(19 * 7 * 1.2)


def test_backlog_growth_from_zero_start_is_zero(tmp_path) -> None:
    """A zero first value should not divide by zero."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    analysis = orchestrator.analyze_backlog_growth("shop", _points([0, 5]))

    assert analysis.growth_rate == 0.0 and analysis.forecast.capacity == "sufficient"


def test_card_age_defaults_to_clock_day(tmp_path) -> None:
    """Card age without an explicit day should use the store clock."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    analysis = orchestrator.analyze_card_age("shop", [{"WorkItemId": 1, "CreatedDateSK": 20231201}])

    assert analysis.average_age == 31.0
    assert orchestrator.cached_bundle("shop", "card-age") is not None


def test_quality_and_cumulative_flow_are_cached(tmp_path) -> None:
    """Quality and cumulative flow bundles should be cached like the others."""
    orchestrator, _, _ = _orchestrator(tmp_path)
    snapshots = [{"AsOfDateSK": 20240101, "State": "New", "Count": 3}]

    orchestrator.calculate_quality_metrics("shop", fixture_records("bugs"))
    orchestrator.build_cumulative_flow("shop", snapshots, JANUARY, interval="weekly")

    assert orchestrator.cached_bundle("shop", "quality")["defect_density"] == 0.03
    assert len(orchestrator.cached_bundle("shop", "cumulative-flow", JANUARY)["points"]) == 5


def test_weekly_throughput_divides_by_every_day_in_window(tmp_path) -> None:
    """Seven completions across a seven-day window should be seven per week."""
    orchestrator, _, _ = _orchestrator(tmp_path)
    week = DateRange(date(2024, 1, 1), date(2024, 1, 7))
    items = [{"State": "Done", "ChangedDateSK": 20240101 + offset} for offset in range(7)]

    flow = orchestrator.calculate_flow_metrics("shop", items, week)

    assert flow.throughput.daily == pytest.approx(1.0)
    assert flow.throughput.weekly == pytest.approx(7.0)


def test_deployment_metrics_partition_and_cache(tmp_path) -> None:
    """Deployments outside the range are dropped and the bundle is cached."""
    orchestrator, store, _ = _orchestrator(tmp_path)
    date_range = DateRange(date(2024, 1, 1), date(2024, 1, 4))

    metrics = orchestrator.calculate_deployment_metrics(
        "shop", date_range, fixture_records("deployments"), environment="production"
    )
    (cached,) = store.list("analysis", {"metric_type": "deployment"})

    assert [deployment.deployment_id for deployment in metrics.deployments] == [
        "deploy-201",
        "deploy-202",
        "deploy-203",
    ]
    assert metrics.success_rate == 100.0 and metrics.frequency.daily == 0.75
    assert cached.metadata["environment"] == "production"


def test_deployment_metrics_reject_unknown_environment(tmp_path) -> None:
    """Only the three known environments are accepted."""
    orchestrator, _, _ = _orchestrator(tmp_path)

    with pytest.raises(TempoMetricsError, match="Unsupported environment 'qa'"):
        orchestrator.calculate_deployment_metrics("shop", JANUARY, [], environment="qa")


def test_incident_metrics_cached_with_severity(tmp_path) -> None:
    """Incident bundles should be cached per range."""
    orchestrator, _, _ = _orchestrator(tmp_path)
    date_range = DateRange(date(2024, 1, 1), date(2024, 1, 6))

    metrics = orchestrator.calculate_incident_metrics(
        "shop", date_range, fixture_records("incidents"), severity="high"
    )

    assert metrics.mttr.overall == 50.0 and len(metrics.incidents) == 1
    cached = orchestrator.cached_bundle("shop", "incident", date_range)
    assert cached is not None and cached["mttr"]["by_severity"] == {"high": 50.0}
    with pytest.raises(TempoMetricsError, match="Unsupported severity"):
        orchestrator.calculate_incident_metrics("shop", date_range, [], severity="sev0")


def test_failure_load_applies_filter_and_range(tmp_path) -> None:
    """Only matching items created inside the range count."""
    orchestrator, _, _ = _orchestrator(tmp_path)
    items = [
        {"WorkItemType": "Bug", "TeamName": "checkout", "CreatedDateSK": 20240102},
        {"WorkItemType": "User Story", "TeamName": "checkout", "CreatedDateSK": 20240102},
        {"WorkItemType": "Bug", "TeamName": "search", "CreatedDateSK": 20240102},
        {"WorkItemType": "Bug", "TeamName": "checkout", "CreatedDateSK": 20240301},
    ]

    analysis = orchestrator.analyze_failure_load(
        "shop", items, JANUARY, WorkItemFilter(team_name="checkout")
    )

    assert analysis.figures.bug_ratio == 50.0 and len(analysis.timeline) == 31
    assert orchestrator.cached_bundle("shop", "failure-load", JANUARY) is not None


def test_lead_and_cycle_time_default_to_today(tmp_path) -> None:
    """Without a reference day the store clock's date closes the windows."""
    orchestrator, store, clock = _orchestrator(tmp_path)
    clock.advance(timedelta(days=13))

    lead = orchestrator.analyze_lead_time("shop", fixture_records("work_items"))
    cycle = orchestrator.analyze_cycle_time("shop", fixture_records("work_items"))

    assert lead.as_of == date(2024, 1, 14) and lead.periods.two_weeks == 8.0
    assert cycle.periods.two_weeks == 6.0
    assert orchestrator.cached_bundle("shop", "lead-time") is not None
    (cycle_record,) = store.list("analysis", {"metric_type": "cycle-time"})
    assert cycle_record.metadata["as_of"] == "2024-01-14"
