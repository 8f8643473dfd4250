"""Chunked storage for large record collections.

This module splits a collection into fixed-size chunk records plus one
manifest record so large datasets never live in a single file.
"""

from __future__ import annotations

from datetime import timedelta
import hashlib
from typing import Any, Mapping, Sequence

from core.constants import DATASET_KEY_PREFIX
from core.errors import TempoStoreError
from core.logging_config import get_logger
from core.types import DatasetManifest
from store.record_payload import to_json_safe
from store.record_store import RecordStore

_LOGGER = get_logger(__name__)


class DatasetChunker:
    """Store and reassemble chunked datasets in the cache namespace."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def store_dataset(
        self,
        key: str,
        items: Sequence[Any],
        chunk_size: int | None = None,
        metadata: Mapping[str, Any] | None = None,
        ttl: timedelta | None = None,
    ) -> str:
        """Split items into chunks and persist them with a manifest.

        Args:
            key: Logical dataset key.
            items: Ordered collection to store.
            chunk_size: Maximum items per chunk; config default when omitted.
            metadata: Caller metadata copied onto chunks and manifest.
            ttl: Time to live for chunks and manifest.

        Returns:
            Dataset id.

        Raises:
            TempoStoreError: If chunk size is below one.
        """
        effective_chunk_size = self._store.config.chunk_size if chunk_size is None else chunk_size
        if effective_chunk_size < 1:
            raise TempoStoreError(
                f"Invalid chunk size {effective_chunk_size} for dataset '{key}': "
                "expected a value >= 1."
            )
        dataset_id = _build_dataset_id(key, self._store.clock.now().isoformat())
        base_metadata = dict(metadata or {})
        total_chunks = (len(items) + effective_chunk_size - 1) // effective_chunk_size
        chunk_ids: list[str] = []
        for chunk_index in range(total_chunks):
            start = chunk_index * effective_chunk_size
            chunk = list(items[start : start + effective_chunk_size])
            chunk_metadata = {
                **base_metadata,
                "dataset_id": dataset_id,
                "chunk_index": chunk_index,
                "total_chunks": total_chunks,
            }
            chunk_ids.append(
                self._store.put("cache", f"{key}-chunk-{chunk_index}", chunk, chunk_metadata, ttl)
            )
        manifest = DatasetManifest(
            dataset_id=dataset_id,
            source_key=key,
            total_item_count=len(items),
            chunk_size=effective_chunk_size,
            chunk_ids=tuple(chunk_ids),
            metadata=to_json_safe(base_metadata),
        )
        self._store.put(
            "cache",
            f"{DATASET_KEY_PREFIX}{key}",
            manifest,
            {**base_metadata, "dataset_id": dataset_id, "total_chunks": total_chunks},
            ttl,
        )
        _LOGGER.info(
            "dataset_stored",
            key=key,
            dataset_id=dataset_id,
            item_count=len(items),
            total_chunks=total_chunks,
        )
        return dataset_id

    def retrieve_dataset(self, key: str) -> list[Any] | None:
        """Load a chunked dataset in original order.

        Args:
            key: Logical dataset key used at store time.

        Returns:
            Items list, or None when the manifest or any chunk is unavailable.
        """
        manifest = self.load_manifest(key)
        if manifest is None:
            return None
        items: list[Any] = []
        for chunk_index, chunk_id in enumerate(manifest.chunk_ids):
            chunk_record = self._store.get("cache", chunk_id)
            if chunk_record is None or not isinstance(chunk_record.payload, list):
                _LOGGER.warning(
                    "dataset_chunk_missing",
                    key=key,
                    dataset_id=manifest.dataset_id,
                    chunk_index=chunk_index,
                )
                return None
            items.extend(chunk_record.payload)
        if len(items) != manifest.total_item_count:
            _LOGGER.warning(
                "dataset_count_mismatch",
                key=key,
                dataset_id=manifest.dataset_id,
                expected=manifest.total_item_count,
                actual=len(items),
            )
            return None
        return items

    def load_manifest(self, key: str) -> DatasetManifest | None:
        """Read the manifest for a dataset key, if present."""
        record = self._store.get("cache", f"{DATASET_KEY_PREFIX}{key}")
        if record is None or not isinstance(record.payload, dict):
            return None
        payload = record.payload
        try:
            return DatasetManifest(
                dataset_id=str(payload["dataset_id"]),
                source_key=str(payload["source_key"]),
                total_item_count=int(payload["total_item_count"]),
                chunk_size=int(payload["chunk_size"]),
                chunk_ids=tuple(str(chunk_id) for chunk_id in payload["chunk_ids"]),
                metadata=dict(payload.get("metadata") or {}),
            )
        except (KeyError, TypeError, ValueError) as error:
            _LOGGER.warning("dataset_manifest_malformed", key=key, error=str(error))
            return None


def _build_dataset_id(key: str, created_at: str) -> str:
    digest = hashlib.md5(f"{key}:{created_at}".encode("utf-8")).hexdigest()
    return f"ds-{digest[:16]}"
