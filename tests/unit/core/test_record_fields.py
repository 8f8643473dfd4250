"""Unit tests for flat record field helpers."""

from __future__ import annotations

from datetime import date, datetime, timezone

from core.record_fields import (
    days_between,
    iso_week_label,
    parse_record_date,
    record_day,
    record_number,
    record_text,
)


def test_parse_record_date_accepts_date_sk_forms() -> None:
    """DateSK integers and strings should parse to the same UTC day."""
    expected = datetime(2024, 1, 15, tzinfo=timezone.utc)

    assert parse_record_date(20240115) == expected and parse_record_date("20240115") == expected


def test_parse_record_date_accepts_iso_values() -> None:
    """ISO dates and Z-suffixed datetimes should parse as UTC."""
    parsed = parse_record_date("2024-01-02T10:30:00Z")

    assert parsed == datetime(2024, 1, 2, 10, 30, tzinfo=timezone.utc) and parse_record_date(
        "2024-01-02"
    ) == datetime(2024, 1, 2, tzinfo=timezone.utc)


def test_parse_record_date_returns_none_for_garbage() -> None:
    """Empty, boolean, and malformed values should be treated as absent."""
    values = [None, "", True, "not-a-date", 20241399]

    assert [parse_record_date(value) for value in values] == [None] * len(values)


def test_record_day_from_date_object() -> None:
    """Date objects should pass through as calendar days."""
    assert record_day({"ClosedDateSK": date(2024, 5, 1)}, "ClosedDateSK") == date(2024, 5, 1)


def test_record_number_defaults_for_missing_or_invalid() -> None:
    """Numeric helper should fall back on missing and non-numeric values."""
    record = {"StoryPoints": "5", "Effort": "lots"}

    assert (
        record_number(record, "StoryPoints") == 5.0
        and record_number(record, "Effort") == 0.0
        and record_number(record, "Missing", default=1.0) == 1.0
    )


def test_record_text_and_week_helpers() -> None:
    """Text, day span, and ISO week helpers should agree with the calendar."""
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end = datetime(2024, 1, 2, 12, tzinfo=timezone.utc)

    assert (
        record_text({"State": None}, "State", "New") == "New"
        and days_between(start, end) == 1.5
        and iso_week_label(date(2024, 1, 15)) == "2024-W03"
        and iso_week_label(date(2021, 1, 3)) == "2020-W53"
    )


def test_parse_record_date_treats_non_finite_numbers_as_absent() -> None:
    """NaN and infinite DateSK numbers should parse as absent, not raise."""
    assert parse_record_date(float("nan")) is None
    assert parse_record_date(float("inf")) is None
