"""Shared typed storage models.

This module defines the immutable models used by the record store,
dataset chunker, session tracker, and report renderer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Literal, Mapping

from core.errors import TempoMetricsError

Namespace = Literal["cache", "analysis", "report", "mapping", "session"]
SessionState = Literal["active", "completed", "failed"]
ReportFormat = Literal["json", "csv", "markdown"]


@dataclass(frozen=True)
class StoredRecord:
    """One persisted record.

    Attributes:
        record_id: Unique id within the namespace.
        namespace: Namespace the record lives in.
        created_at: UTC creation timestamp.
        expires_at: UTC expiry timestamp, never earlier than created_at.
        metadata: Free-form metadata including originating key and size.
        payload: JSON-compatible stored value.
        sequence: Per-namespace insertion counter.
    """

    record_id: str
    namespace: Namespace
    created_at: datetime
    expires_at: datetime | None
    metadata: Mapping[str, Any]
    payload: Any
    sequence: int = 0

    def is_expired(self, now: datetime) -> bool:
        """Return whether the record's expiry has passed at ``now``."""
        return self.expires_at is not None and now >= self.expires_at

    @property
    def key(self) -> str | None:
        value = self.metadata.get("key")
        return str(value) if value is not None else None


@dataclass(frozen=True)
class DatasetManifest:
    """Ordered chunk listing for one chunked dataset.

    Attributes:
        dataset_id: Stable dataset identifier.
        source_key: Logical key the dataset was stored under.
        total_item_count: Number of items across all chunks.
        chunk_size: Maximum items per chunk.
        chunk_ids: Record ids of the chunks in item order.
        metadata: Caller metadata attached at store time.
    """

    dataset_id: str
    source_key: str
    total_item_count: int
    chunk_size: int
    chunk_ids: tuple[str, ...]
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Session:
    """Multi-step operation state."""

    session_id: str
    session_type: str
    state: SessionState
    data: Mapping[str, Any]
    created_at: str
    last_updated_at: str


@dataclass(frozen=True)
class NamespaceStats:
    """Record count and payload bytes for one namespace."""

    count: int
    size: int


@dataclass(frozen=True)
class RecordPointer:
    """Reference to one record used by store statistics."""

    namespace: Namespace
    record_id: str
    created_at: datetime


@dataclass(frozen=True)
class StoreStats:
    """Aggregate store statistics across namespaces."""

    total_size: int
    per_namespace: Mapping[str, NamespaceStats]
    oldest: RecordPointer | None
    newest: RecordPointer | None


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range used for partitioning records.

    Attributes:
        start: First day in range.
        end: Last day in range.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise TempoMetricsError(
                f"Invalid date range {self.start.isoformat()}..{self.end.isoformat()}: "
                "end must not precede start."
            )

    @property
    def days(self) -> int:
        """Return the number of calendar days in the range, both ends included."""
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def iter_days(self) -> list[date]:
        """Return every calendar day in the range."""
        span = (self.end - self.start).days
        return [self.start + timedelta(days=offset) for offset in range(span + 1)]

    def label(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"
