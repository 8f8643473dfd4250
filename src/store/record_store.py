"""Namespaced TTL record store.

This module persists one JSON file per record under a namespace directory
and keeps a per-namespace key index pointing at the latest id. Expired
records are removed lazily on read and by an explicit sweep.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
import hashlib
from pathlib import Path
import re
from typing import Any, Iterator, Mapping
from uuid import uuid4

from core.clock import Clock, SystemClock
from core.config import TempoConfig
from core.constants import INDEX_FILE_NAME, NAMESPACES, RECORD_FILE_SUFFIX
from core.errors import TempoStoreError
from core.logging_config import get_logger
from core.types import Namespace, NamespaceStats, RecordPointer, StoredRecord, StoreStats
from store.metadata_filtering import matches_filter
from store.record_io import read_index_file, read_json_file, write_index_file, write_json_atomic
from store.record_payload import (
    payload_size,
    stored_record_from_payload,
    stored_record_to_payload,
    to_json_safe,
)

_LOGGER = get_logger(__name__)
_RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class RecordStore:
    """File-backed namespaced object store with TTL expiry.

    One instance is constructed per data root and injected into every
    component that persists records.
    """

    def __init__(self, config: TempoConfig, clock: Clock | None = None) -> None:
        """Initialize the store and create namespace directories.

        Args:
            config: Runtime configuration.
            clock: Time source; wall clock when omitted.
        """
        self._config = config
        self._clock = clock or SystemClock()
        self._root = config.data_root
        self._default_ttl = timedelta(seconds=config.default_ttl_seconds)
        for namespace in NAMESPACES:
            (self._root / namespace).mkdir(parents=True, exist_ok=True)

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def config(self) -> TempoConfig:
        return self._config

    def put(
        self,
        namespace: Namespace,
        key: str,
        payload: Any,
        metadata: Mapping[str, Any] | None = None,
        ttl: timedelta | None = None,
    ) -> str:
        """Write a record and point the key index at it.

        Args:
            namespace: Target namespace.
            key: Logical key; later writes under the same key win lookups.
            payload: JSON-compatible value (dataclasses and dates are converted).
            metadata: Optional free-form metadata.
            ttl: Time to live; config default when omitted.

        Returns:
            New record id.

        Raises:
            TempoStoreError: If namespace or TTL is invalid, or the write fails.
        """
        namespace_dir = self._namespace_dir(namespace)
        effective_ttl = self._default_ttl if ttl is None else ttl
        if effective_ttl < timedelta(0):
            raise TempoStoreError(
                f"Invalid TTL {effective_ttl} for key '{key}': expected a non-negative duration."
            )
        created_at = self._clock.now()
        safe_payload = to_json_safe(payload)
        safe_metadata = to_json_safe(dict(metadata or {}))
        safe_metadata["key"] = key
        safe_metadata["size"] = payload_size(safe_payload)
        index_path = namespace_dir / INDEX_FILE_NAME
        index = read_index_file(index_path)
        record = StoredRecord(
            record_id=_build_record_id(key, created_at),
            namespace=namespace,
            created_at=created_at,
            expires_at=created_at + effective_ttl,
            metadata=safe_metadata,
            payload=safe_payload,
            sequence=int(index["next_sequence"]),
        )
        write_json_atomic(self._record_path(record), stored_record_to_payload(record))
        index["keys"][key] = record.record_id
        index["next_sequence"] = record.sequence + 1
        write_index_file(index_path, index)
        _LOGGER.debug(
            "record_stored",
            namespace=namespace,
            key=key,
            record_id=record.record_id,
            size=safe_metadata["size"],
        )
        return record.record_id

    def get(self, namespace: Namespace, id_or_key: str) -> StoredRecord | None:
        """Read a record by id, falling back to the key index.

        Args:
            namespace: Namespace to search.
            id_or_key: Record id or logical key.

        Returns:
            Live record, or None when missing, expired, or unreadable.
        """
        namespace_dir = self._namespace_dir(namespace)
        record_path = _id_path(namespace_dir, id_or_key)
        if record_path is None or not record_path.exists():
            record_id = read_index_file(namespace_dir / INDEX_FILE_NAME)["keys"].get(id_or_key)
            if record_id is None:
                return None
            record_path = _id_path(namespace_dir, record_id)
            if record_path is None or not record_path.exists():
                return None
        record = self._load_record(record_path)
        if record is None:
            return None
        if record.is_expired(self._clock.now()):
            record_path.unlink(missing_ok=True)
            _LOGGER.debug("record_expired", namespace=namespace, record_id=record.record_id)
            return None
        return record

    def list(
        self,
        namespace: Namespace,
        equality_filter: Mapping[str, Any] | None = None,
    ) -> list[StoredRecord]:
        """List live records in a namespace, newest first.

        Args:
            namespace: Namespace to scan.
            equality_filter: Optional metadata equality constraints.

        Returns:
            Matching records sorted by creation time descending.
        """
        now = self._clock.now()
        records: list[StoredRecord] = []
        for record_path, record in self._scan(namespace):
            if record.is_expired(now):
                record_path.unlink(missing_ok=True)
                continue
            if matches_filter(record, equality_filter):
                records.append(record)
        return sorted(records, key=lambda item: (-item.created_at.timestamp(), item.sequence))

    def rewrite(self, record: StoredRecord, payload: Any) -> StoredRecord:
        """Replace a live record's payload in place.

        Args:
            record: Existing record, as returned by ``get``.
            payload: New payload value.

        Returns:
            Updated record with the same id and expiry.

        Raises:
            TempoStoreError: If the record file no longer exists.
        """
        record_path = self._record_path(record)
        if not record_path.exists():
            raise TempoStoreError(
                f"Cannot rewrite record {record.namespace}/{record.record_id}: file is missing. "
                "The record may have expired or been swept."
            )
        safe_payload = to_json_safe(payload)
        metadata = dict(record.metadata)
        metadata["size"] = payload_size(safe_payload)
        updated = replace(record, payload=safe_payload, metadata=metadata)
        write_json_atomic(record_path, stored_record_to_payload(updated))
        return updated

    def delete_expired(self) -> int:
        """Sweep all namespaces and remove expired records.

        Returns:
            Number of records removed.
        """
        now = self._clock.now()
        removed = 0
        for namespace in NAMESPACES:
            for record_path, record in self._scan(namespace):
                if record.is_expired(now):
                    record_path.unlink(missing_ok=True)
                    removed += 1
        _LOGGER.info("expired_records_swept", removed=removed)
        return removed

    def stats(self) -> StoreStats:
        """Aggregate sizes and counts across namespaces.

        Expired records that no read or sweep has touched still count.

        Returns:
            Store statistics.
        """
        total_size = 0
        per_namespace: dict[str, NamespaceStats] = {}
        oldest: RecordPointer | None = None
        newest: RecordPointer | None = None
        for namespace in NAMESPACES:
            count = 0
            size = 0
            for _, record in self._scan(namespace):
                count += 1
                size += int(record.metadata.get("size", 0) or 0)
                pointer = RecordPointer(namespace, record.record_id, record.created_at)
                if oldest is None or record.created_at < oldest.created_at:
                    oldest = pointer
                if newest is None or record.created_at > newest.created_at:
                    newest = pointer
            per_namespace[namespace] = NamespaceStats(count=count, size=size)
            total_size += size
        return StoreStats(
            total_size=total_size,
            per_namespace=per_namespace,
            oldest=oldest,
            newest=newest,
        )

    def _scan(self, namespace: Namespace) -> Iterator[tuple[Path, StoredRecord]]:
        """Yield parseable records in a namespace, skipping malformed files."""
        namespace_dir = self._namespace_dir(namespace)
        for record_path in sorted(namespace_dir.glob(f"*{RECORD_FILE_SUFFIX}")):
            if record_path.name == INDEX_FILE_NAME:
                continue
            record = self._load_record(record_path)
            if record is not None:
                yield record_path, record

    def _load_record(self, record_path: Path) -> StoredRecord | None:
        try:
            return stored_record_from_payload(read_json_file(record_path))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as error:
            _LOGGER.warning("malformed_record_skipped", path=str(record_path), error=str(error))
            return None

    def _namespace_dir(self, namespace: str) -> Path:
        if namespace not in NAMESPACES:
            supported = ", ".join(NAMESPACES)
            raise TempoStoreError(
                f"Unknown namespace '{namespace}'. Choose one of: {supported}."
            )
        return self._root / namespace

    def _record_path(self, record: StoredRecord) -> Path:
        return self._namespace_dir(record.namespace) / f"{record.record_id}{RECORD_FILE_SUFFIX}"


def _build_record_id(key: str, created_at: datetime) -> str:
    """Build a unique record id from key digest, timestamp, and random suffix."""
    digest = hashlib.md5(key.encode("utf-8")).hexdigest()[:8]
    timestamp = created_at.strftime("%Y%m%dT%H%M%S%fZ")
    return f"{digest}-{timestamp}-{uuid4().hex[:8]}"


def _id_path(namespace_dir: Path, candidate: str) -> Path | None:
    """Return the record path for a well-formed id, else None."""
    if not _RECORD_ID_PATTERN.match(candidate) or candidate == Path(INDEX_FILE_NAME).stem:
        return None
    return namespace_dir / f"{candidate}{RECORD_FILE_SUFFIX}"
