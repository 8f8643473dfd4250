"""Record file and key index persistence helpers.

This module isolates JSON file IO for record files and namespace indexes.
It keeps record store orchestration focused on lookup and expiry rules.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from core.constants import TEMP_FILE_SUFFIX
from core.errors import TempoStoreError


def write_json_atomic(payload_path: Path, payload: object) -> None:
    """Write one JSON payload through a temp file and rename.

    Args:
        payload_path: Destination file path.
        payload: JSON-compatible payload.

    Raises:
        TempoStoreError: If the file cannot be written.
    """
    temp_path = payload_path.with_name(payload_path.name + TEMP_FILE_SUFFIX)
    try:
        temp_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        os.replace(temp_path, payload_path)
    except (OSError, TypeError, ValueError) as error:
        temp_path.unlink(missing_ok=True)
        raise TempoStoreError(
            f"Failed to write record file {payload_path}: {error}. "
            "Check that the payload is JSON-serializable and the data root is writable."
        ) from error


def read_json_file(payload_path: Path) -> object:
    """Read one JSON file.

    Args:
        payload_path: Source file path.

    Returns:
        Parsed JSON payload.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON.
    """
    text = payload_path.read_text(encoding="utf-8")
    try:
        return json.loads(text)
    except json.JSONDecodeError as error:
        raise ValueError(f"invalid JSON: {error.msg}") from error


def read_index_file(index_path: Path) -> dict[str, Any]:
    """Read a namespace key index, treating missing or corrupt files as empty.

    Args:
        index_path: Index JSON path.

    Returns:
        Index payload with ``keys`` and ``next_sequence`` fields.
    """
    empty_index: dict[str, Any] = {"keys": {}, "next_sequence": 0}
    if not index_path.exists():
        return empty_index
    try:
        payload = read_json_file(index_path)
    except (OSError, ValueError):
        return empty_index
    if not isinstance(payload, dict) or not isinstance(payload.get("keys"), dict):
        return empty_index
    next_sequence = payload.get("next_sequence", 0)
    return {
        "keys": {str(key): str(value) for key, value in payload["keys"].items()},
        "next_sequence": next_sequence if isinstance(next_sequence, int) else 0,
    }


def write_index_file(index_path: Path, index: dict[str, Any]) -> None:
    """Persist a namespace key index."""
    write_json_atomic(index_path, index)
