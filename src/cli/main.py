"""Tempo CLI entry points.

This module exposes storage maintenance, metric, and report commands.
It maps argparse commands onto SDK calls and prints JSON results.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
from typing import Any, Sequence

from cli.input_files import load_json_input, print_json
from cli.metrics_command import add_metrics_commands, run_metrics_command
from core.config import TempoConfig
from core.constants import NAMESPACES, SUPPORTED_REPORT_FORMATS
from core.errors import TempoError
from core.logging_config import configure_log_level
from core.settings_file import apply_settings_file
from metrics.client import TempoClient

METRIC_COMMANDS = ("flow", "sprint", "dora", "forecast", "trend", "collect")


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="tempo", description="Tempo delivery metrics CLI")
    parser.add_argument("--data-root", help="Override TEMPO_DATA_ROOT for this command")
    parser.add_argument("--settings-file", help="Optional YAML settings file")
    parser.add_argument("--log-level", help="Emit structured logs at this level to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_stats_command(subparsers)
    _add_sweep_command(subparsers)
    _add_get_command(subparsers)
    _add_report_command(subparsers)
    add_metrics_commands(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Tempo CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level:
        configure_log_level(args.log_level)
    try:
        client = _build_client(args.data_root, args.settings_file)
        if args.command == "stats":
            return _run_stats_command(client)
        if args.command == "sweep":
            return _run_sweep_command(client)
        if args.command == "get":
            return _run_get_command(client, args)
        if args.command == "report":
            return _run_report_command(client, args)
        if args.command in METRIC_COMMANDS:
            return run_metrics_command(client, args)
    except TempoError as error:
        print(f"error={error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(data_root: str | None, settings_file: str | None) -> TempoClient:
    """Build SDK client with optional settings file and data-root override.

    Args:
        data_root: Optional override path; wins over the settings file.
        settings_file: Optional YAML settings path.

    Returns:
        Configured SDK client.
    """
    config = TempoConfig.from_env()
    if settings_file:
        config = apply_settings_file(config, settings_file)
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return TempoClient(config)


def _run_stats_command(client: TempoClient) -> int:
    print_json(client.stats())
    return 0


def _run_sweep_command(client: TempoClient) -> int:
    removed = client.sweep()
    print(f"removed={removed}")
    return 0


def _run_get_command(client: TempoClient, args: argparse.Namespace) -> int:
    """Handle get command; exit code 1 when the record is absent.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    record = client.store.get(args.namespace, args.id_or_key)
    if record is None:
        print(f"not_found={args.namespace}/{args.id_or_key}", file=sys.stderr)
        return 1
    print_json(record.payload if args.payload_only else record)
    return 0


def _run_report_command(client: TempoClient, args: argparse.Namespace) -> int:
    content = load_json_input(args.input)
    report_id = client.reports.store_report(args.type, content, args.format)
    print(report_id)
    return 0


def _add_stats_command(subparsers: Any) -> None:
    """Register stats subcommand."""
    subparsers.add_parser("stats", help="Show record counts and sizes per namespace")


def _add_sweep_command(subparsers: Any) -> None:
    """Register sweep subcommand."""
    subparsers.add_parser("sweep", help="Delete expired records in all namespaces")


def _add_get_command(subparsers: Any) -> None:
    """Register get subcommand."""
    parser = subparsers.add_parser("get", help="Read one record by id or key")
    parser.add_argument("namespace", choices=NAMESPACES, help="Record namespace")
    parser.add_argument("id_or_key", help="Record id or logical key")
    parser.add_argument(
        "--payload-only",
        action="store_true",
        help="Print only the stored payload",
    )


def _add_report_command(subparsers: Any) -> None:
    """Register report subcommand."""
    parser = subparsers.add_parser("report", help="Render and store a report")
    parser.add_argument("--type", required=True, help="Report type label")
    parser.add_argument("--input", required=True, help="JSON file with report content")
    parser.add_argument(
        "--format",
        choices=SUPPORTED_REPORT_FORMATS,
        default="json",
        help="Report output format",
    )
