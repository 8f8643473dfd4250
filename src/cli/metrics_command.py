"""Metric command wiring for Tempo CLI."""

from __future__ import annotations

import argparse
from typing import Any

from cli.input_files import (
    load_json_input,
    load_records,
    load_series,
    parse_date_range,
    print_json,
)
from core.constants import DEFAULT_CONFIDENCE_LEVEL
from core.errors import TempoInputError
from metrics.client import TempoClient
from metrics.historical import DEFAULT_METRIC_TYPES, SUPPORTED_METRIC_TYPES, HistoricalInputs


def add_metrics_commands(subparsers: Any) -> None:
    """Register flow, sprint, dora, forecast, trend, and collect subcommands."""
    flow = subparsers.add_parser("flow", help="Compute flow metrics from work items")
    _add_project_and_range(flow)
    flow.add_argument("--work-items", required=True, help="JSON file of work-item records")
    flow.add_argument("--team", help="Optional team label")

    sprint = subparsers.add_parser("sprint", help="Compute sprint metrics per iteration")
    sprint.add_argument("--project", required=True, help="Project name")
    sprint.add_argument("--iterations", required=True, help="JSON file of iteration records")
    sprint.add_argument("--work-items", required=True, help="JSON file of work-item records")
    sprint.add_argument("--sprints", type=int, default=1, help="Number of iterations to evaluate")

    dora = subparsers.add_parser("dora", help="Compute and classify DORA metrics")
    _add_project_and_range(dora)
    dora.add_argument("--deployments", required=True, help="JSON file of deployment records")
    dora.add_argument("--incidents", help="JSON file of incident records")

    forecast = subparsers.add_parser("forecast", help="Monte Carlo delivery forecast")
    forecast.add_argument("--project", required=True, help="Project name")
    forecast.add_argument("--remaining-work", type=float, required=True, help="Work left")
    forecast.add_argument(
        "--velocities",
        default="",
        help="Comma-separated historical velocities, e.g. 18,22,20",
    )
    forecast.add_argument(
        "--work-unit",
        choices=("points", "items"),
        default="points",
        help="Unit of remaining work and velocity",
    )
    forecast.add_argument(
        "--confidence",
        type=float,
        default=DEFAULT_CONFIDENCE_LEVEL,
        help="Confidence percentile in [50, 100)",
    )

    trend = subparsers.add_parser("trend", help="Trend summary for a metric series")
    trend.add_argument("--project", required=True, help="Project name")
    trend.add_argument("--metric", required=True, help="Metric name, e.g. velocity or cycleTime")
    trend.add_argument("--series", required=True, help="JSON file of period/value points")
    trend.add_argument("--interval", default="sprint", help="Period label")

    collect = subparsers.add_parser("collect", help="Collect history and persist rollups")
    _add_project_and_range(collect)
    collect.add_argument(
        "--inputs",
        required=True,
        help="JSON object with iterations, work_items, deployments, incidents, bugs lists",
    )
    collect.add_argument(
        "--metrics",
        default=",".join(DEFAULT_METRIC_TYPES),
        help=f"Comma-separated subset of: {', '.join(SUPPORTED_METRIC_TYPES)}",
    )


def run_metrics_command(client: TempoClient, args: argparse.Namespace) -> int:
    """Dispatch one metric subcommand and print its JSON result."""
    if args.command == "flow":
        result: Any = client.metrics.calculate_flow_metrics(
            args.project,
            load_records(args.work_items),
            parse_date_range(args.start, args.end),
            team_name=args.team,
        )
    elif args.command == "sprint":
        result = client.metrics.calculate_sprint_metrics(
            args.project,
            load_records(args.iterations),
            load_records(args.work_items),
            number_of_sprints=args.sprints,
        )
    elif args.command == "dora":
        result = client.metrics.calculate_dora_metrics(
            args.project,
            parse_date_range(args.start, args.end),
            load_records(args.deployments),
            load_records(args.incidents),
        )
    elif args.command == "forecast":
        result = client.metrics.predict_delivery(
            args.project,
            args.remaining_work,
            _parse_velocities(args.velocities),
            work_unit=args.work_unit,
            confidence_level=args.confidence,
        )
    elif args.command == "trend":
        result = client.metrics.get_metrics_trend(
            args.project,
            args.metric,
            load_series(args.series),
            interval=args.interval,
        )
    else:
        payload = load_json_input(args.inputs)
        if not isinstance(payload, dict):
            raise TempoInputError(
                f"Invalid collection inputs in {args.inputs}: expected a JSON object."
            )
        result = client.history.collect(
            args.project,
            parse_date_range(args.start, args.end),
            HistoricalInputs.from_mapping(payload),
            [name.strip() for name in args.metrics.split(",") if name.strip()],
        )
    print_json(result)
    return 0


def _add_project_and_range(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--project", required=True, help="Project name")
    parser.add_argument("--start", required=True, help="Range start, YYYY-MM-DD")
    parser.add_argument("--end", required=True, help="Range end, YYYY-MM-DD")


def _parse_velocities(raw_value: str) -> list[float]:
    try:
        return [float(part) for part in raw_value.split(",") if part.strip()]
    except ValueError as error:
        raise TempoInputError(
            f"Invalid --velocities value '{raw_value}': expected comma-separated numbers."
        ) from error
