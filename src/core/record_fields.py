"""Field access helpers for flat work-item records.

Records arrive as plain mappings with analytics-style field names such as
``CreatedDateSK`` and ``StoryPoints``. Date fields may hold a DateSK
integer (``20240115``), an ISO date, or an ISO datetime.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Mapping

Record = Mapping[str, Any]


def parse_record_date(value: Any) -> datetime | None:
    """Parse a record date value into an aware UTC datetime.

    Args:
        value: DateSK integer or string, ISO date, ISO datetime, or None.

    Returns:
        Parsed datetime, or None when the value is empty or unparseable.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if isinstance(value, (int, float)) or (len(text) == 8 and text.isdigit()):
        try:
            text = str(int(value)) if isinstance(value, (int, float)) else text
            return datetime.strptime(text, "%Y%m%d").replace(tzinfo=timezone.utc)
        except (OverflowError, ValueError):
            return None
    try:
        return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def record_date(record: Record, field_name: str) -> datetime | None:
    """Return a parsed date field from a record."""
    return parse_record_date(record.get(field_name))


def record_day(record: Record, field_name: str) -> date | None:
    """Return the calendar day of a date field."""
    parsed = record_date(record, field_name)
    return parsed.date() if parsed else None


def record_number(record: Record, field_name: str, default: float = 0.0) -> float:
    """Return a numeric field, falling back to ``default`` for missing values."""
    value = record.get(field_name)
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def record_text(record: Record, field_name: str, default: str = "") -> str:
    value = record.get(field_name)
    return default if value is None else str(value)


def days_between(start: datetime, end: datetime) -> float:
    """Return fractional days from start to end."""
    return (end - start).total_seconds() / 86400


def iso_week_label(day: date) -> str:
    """Return the ISO week label, e.g. ``2024-W03``."""
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def record_tags(record: Record) -> list[str]:
    """Return the semicolon-separated ``Tags`` field as trimmed tags."""
    return [tag.strip() for tag in record_text(record, "Tags").split(";") if tag.strip()]


@dataclass(frozen=True)
class WorkItemFilter:
    """Equality filter over work-item fields; unset fields match anything.

    Attributes:
        team_name: Required ``TeamName``.
        area_path: Required ``AreaPath``.
        assigned_to: Required ``AssignedTo``.
        work_item_type: Required ``WorkItemType``.
        state: Required ``State``.
        tags: Tags that must all be present.
    """

    team_name: str | None = None
    area_path: str | None = None
    assigned_to: str | None = None
    work_item_type: str | None = None
    state: str | None = None
    tags: tuple[str, ...] = ()

    def matches(self, record: Record) -> bool:
        expected = (
            ("TeamName", self.team_name),
            ("AreaPath", self.area_path),
            ("AssignedTo", self.assigned_to),
            ("WorkItemType", self.work_item_type),
            ("State", self.state),
        )
        for field_name, value in expected:
            if value is not None and record_text(record, field_name) != value:
                return False
        present = set(record_tags(record))
        return all(tag in present for tag in self.tags)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
