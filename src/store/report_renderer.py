"""Report rendering and persistence.

This module renders report content as JSON, CSV, or markdown and stores
the rendered value in the report namespace.
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Mapping, Sequence

from core.constants import REPORT_KEY_PREFIX, SUPPORTED_REPORT_FORMATS
from core.errors import TempoReportError
from core.logging_config import get_logger
from store.record_payload import to_json_safe
from store.record_store import RecordStore

_LOGGER = get_logger(__name__)


def render(content: Any, report_format: str) -> Any:
    """Render report content in the requested format.

    Args:
        content: Report content; records, scalars, mappings, or text.
        report_format: One of ``json``, ``csv``, or ``markdown``.

    Returns:
        Content unchanged for json, otherwise rendered text.

    Raises:
        TempoReportError: If format is unsupported or content cannot be rendered.
    """
    if report_format == "json":
        return content
    if report_format == "csv":
        return render_csv(content)
    if report_format == "markdown":
        return render_markdown(content)
    supported = ", ".join(SUPPORTED_REPORT_FORMATS)
    raise TempoReportError(
        f"Unsupported report format '{report_format}'. Choose one of: {supported}."
    )


def render_csv(content: Any) -> str:
    """Render a sequence of flat records as CSV text.

    Header is the first record's keys in order. Text cells are quoted,
    numbers are bare, and missing values render as an empty quoted cell.
    """
    if not _is_sequence(content):
        raise TempoReportError(
            "CSV reports require a list of records. "
            "Pass a list of mappings or choose json/markdown format."
        )
    rows = list(to_json_safe(list(content)))
    if not rows:
        return ""
    if not isinstance(rows[0], dict):
        raise TempoReportError(
            "CSV reports require a list of records, got a list of scalars. "
            "Wrap each value in a mapping or choose markdown format."
        )
    headers = list(rows[0].keys())
    buffer = io.StringIO()
    io_writer = csv.writer(buffer, lineterminator="\n")
    io_writer.writerow(headers)
    row_writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for row in rows:
        source = row if isinstance(row, dict) else {}
        row_writer.writerow([_csv_cell(source.get(header)) for header in headers])
    return buffer.getvalue()[:-1]


def render_markdown(content: Any) -> str:
    """Render content as markdown text.

    Strings pass through. Lists of records become tables, lists of scalars
    become bullets, and a single mapping becomes bold key/value lines.
    """
    if isinstance(content, str):
        return content
    safe_content = to_json_safe(content)
    lines: list[str] = []
    if isinstance(safe_content, list):
        if safe_content and isinstance(safe_content[0], dict):
            headers = list(safe_content[0].keys())
            lines.append("| " + " | ".join(headers) + " |")
            lines.append("| " + " | ".join("---" for _ in headers) + " |")
            for row in safe_content:
                source = row if isinstance(row, dict) else {}
                cells = [_markdown_cell(source.get(header)) for header in headers]
                lines.append("| " + " | ".join(cells) + " |")
        else:
            lines.extend(f"- {_markdown_cell(item)}" for item in safe_content)
    elif isinstance(safe_content, dict):
        for key, value in safe_content.items():
            rendered = value if isinstance(value, str) else json.dumps(value)
            lines.append(f"**{key}**: {rendered}")
    else:
        lines.append(_markdown_cell(safe_content))
    return "".join(f"{line}\n" for line in lines)


class ReportRenderer:
    """Render reports and persist them in the report namespace."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def store_report(
        self,
        report_type: str,
        content: Any,
        report_format: str = "json",
        metadata: Mapping[str, Any] | None = None,
    ) -> str:
        """Render and store one report.

        Args:
            report_type: Report label, used in the storage key.
            content: Report content.
            report_format: Output format.
            metadata: Extra metadata stored with the report.

        Returns:
            Report record id.

        Raises:
            TempoReportError: If rendering fails.
        """
        rendered = render(content, report_format)
        report_metadata = {
            **dict(metadata or {}),
            "report_type": report_type,
            "format": report_format,
        }
        report_id = self._store.put(
            "report",
            f"{REPORT_KEY_PREFIX}{report_type}",
            rendered,
            report_metadata,
        )
        _LOGGER.info(
            "report_stored",
            report_type=report_type,
            report_format=report_format,
            report_id=report_id,
        )
        return report_id


def _is_sequence(content: Any) -> bool:
    return isinstance(content, Sequence) and not isinstance(content, (str, bytes))


def _csv_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _markdown_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)
