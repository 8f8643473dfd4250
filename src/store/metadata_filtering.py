"""Record metadata filtering helpers.

This module applies equality constraints used by record store listing.
It keeps filtering logic reusable across store and orchestration flows.
"""

from __future__ import annotations

from typing import Any, Mapping

from core.types import StoredRecord


def matches_filter(record: StoredRecord, equality_filter: Mapping[str, Any] | None) -> bool:
    """Return whether every filter item equals the record's metadata value.

    Args:
        record: Candidate record.
        equality_filter: Metadata key to expected value mapping.

    Returns:
        True when the filter is empty or all items match.
    """
    if not equality_filter:
        return True
    metadata = record.metadata
    for key, expected in equality_filter.items():
        if key not in metadata or metadata[key] != expected:
            return False
    return True


def filter_records(
    records: list[StoredRecord],
    equality_filter: Mapping[str, Any] | None,
) -> list[StoredRecord]:
    """Filter records using metadata equality constraints.

    Args:
        records: Input records to filter.
        equality_filter: Filter constraints.

    Returns:
        Filtered records list.
    """
    return [record for record in records if matches_filter(record, equality_filter)]
