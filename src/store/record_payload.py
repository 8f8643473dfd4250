"""Shared JSON serialization for StoredRecord payloads.

This module centralizes StoredRecord JSON serialization logic.
It is reused by the record store scan, get, and rewrite flows.
"""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
import json
from typing import Any

from core.constants import NAMESPACES
from core.types import Namespace, StoredRecord


def to_json_safe(value: Any) -> Any:
    """Convert dataclasses, dates, and tuples into JSON-compatible values.

    Args:
        value: Arbitrary payload value.

    Returns:
        Structure made of dicts, lists, strings, numbers, bools, and None.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_json_safe(dataclasses.asdict(value))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): to_json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(item) for item in value]
    return value


def payload_size(payload: Any) -> int:
    """Return UTF-8 byte length of the compact JSON encoding."""
    encoded = json.dumps(payload, separators=(",", ":"), sort_keys=True)
    return len(encoded.encode("utf-8"))


def stored_record_to_payload(record: StoredRecord) -> dict[str, object]:
    """Serialize StoredRecord into JSON-safe payload.

    Args:
        record: Stored record instance.

    Returns:
        Dictionary payload for JSON encoding.
    """
    return {
        "id": record.record_id,
        "namespace": record.namespace,
        "created_at": record.created_at.isoformat(),
        "expires_at": record.expires_at.isoformat() if record.expires_at else None,
        "sequence": record.sequence,
        "metadata": dict(record.metadata),
        "payload": record.payload,
    }


def stored_record_from_payload(payload: object) -> StoredRecord:
    """Deserialize JSON payload into StoredRecord.

    Args:
        payload: Parsed record file content.

    Returns:
        Parsed StoredRecord.

    Raises:
        ValueError: If required fields are missing or malformed.
    """
    if not isinstance(payload, dict):
        raise ValueError("expected JSON object at top level")
    try:
        namespace = _parse_namespace(payload["namespace"])
        created_at = _parse_timestamp(payload["created_at"], "created_at")
        raw_expiry = payload.get("expires_at")
        expires_at = _parse_timestamp(raw_expiry, "expires_at") if raw_expiry else None
        metadata = payload.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError("metadata must be an object")
        return StoredRecord(
            record_id=str(payload["id"]),
            namespace=namespace,
            created_at=created_at,
            expires_at=expires_at,
            metadata=metadata,
            payload=payload.get("payload"),
            sequence=int(payload.get("sequence", 0)),
        )
    except KeyError as error:
        raise ValueError(f"missing required field {error.args[0]!r}") from error
    except TypeError as error:
        raise ValueError(str(error)) from error


def _parse_namespace(raw_namespace: object) -> Namespace:
    if isinstance(raw_namespace, str) and raw_namespace in NAMESPACES:
        return raw_namespace  # type: ignore[return-value]
    raise ValueError(f"unknown namespace {raw_namespace!r}")


def _parse_timestamp(raw_value: object, field_name: str) -> datetime:
    """Parse an ISO timestamp that carries a UTC offset."""
    parsed = datetime.fromisoformat(str(raw_value))
    if parsed.tzinfo is None:
        raise ValueError(f"{field_name} must include a UTC offset")
    return parsed
