"""JSON input file helpers for CLI commands."""

from __future__ import annotations

from datetime import date
import json
from pathlib import Path
from typing import Any, Mapping

from core.errors import TempoInputError
from core.metric_types import MetricPoint
from core.record_fields import Record
from core.types import DateRange
from store.record_payload import to_json_safe


def load_json_input(input_path: str) -> Any:
    """Load one JSON input file.

    Args:
        input_path: Path to a JSON document.

    Returns:
        Parsed JSON value.

    Raises:
        TempoInputError: If the file is missing or not valid JSON.
    """
    path = Path(input_path).expanduser()
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as error:
        raise TempoInputError(
            f"Failed to read input file {path}: {error}. Check the path and permissions."
        ) from error
    except json.JSONDecodeError as error:
        raise TempoInputError(
            f"Invalid JSON in input file {path}: {error.msg} at line {error.lineno}. "
            "Fix the file contents."
        ) from error


def load_records(input_path: str | None) -> list[Record]:
    """Load a JSON list of flat records; a missing path yields no records.

    A top-level object with a ``value`` list is accepted as well.
    """
    if input_path is None:
        return []
    payload = load_json_input(input_path)
    if isinstance(payload, Mapping) and isinstance(payload.get("value"), list):
        payload = payload["value"]
    if not isinstance(payload, list) or not all(isinstance(item, Mapping) for item in payload):
        raise TempoInputError(
            f"Invalid records in {input_path}: expected a JSON list of objects."
        )
    return list(payload)


def load_series(input_path: str) -> list[MetricPoint]:
    """Load a JSON list of ``{"period": ..., "value": ...}`` points."""
    payload = load_json_input(input_path)
    if not isinstance(payload, list):
        raise TempoInputError(
            f"Invalid series in {input_path}: expected a JSON list of period/value objects."
        )
    points: list[MetricPoint] = []
    for item in payload:
        if not isinstance(item, Mapping) or "period" not in item or "value" not in item:
            raise TempoInputError(
                f"Invalid series point in {input_path}: {item!r}. "
                "Each point needs period and value fields."
            )
        try:
            value = float(item["value"])
        except (TypeError, ValueError) as error:
            raise TempoInputError(
                f"Invalid series value in {input_path}: {item['value']!r}. "
                "Each point value must be a number."
            ) from error
        points.append(MetricPoint(period=str(item["period"]), value=value))
    return points


def parse_date_range(start: str, end: str) -> DateRange:
    """Parse ISO start/end arguments into a date range."""
    try:
        return DateRange(date.fromisoformat(start), date.fromisoformat(end))
    except ValueError as error:
        raise TempoInputError(
            f"Invalid date range {start}..{end}: {error}. Use YYYY-MM-DD dates."
        ) from error


def print_json(value: Any) -> None:
    """Print a result as indented JSON."""
    print(json.dumps(to_json_safe(value), indent=2))
