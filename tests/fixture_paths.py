"""Shared fixture path helpers for tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def fixture_path(relative_path: str) -> Path:
    """Resolve a fixture path relative to tests/fixtures.

    Args:
        relative_path: Path under fixtures root.

    Returns:
        Absolute fixture path.
    """
    tests_root = Path(__file__).resolve().parent
    return tests_root / "fixtures" / relative_path


def fixture_records(name: str) -> list[dict[str, Any]]:
    """Load a JSON record list from tests/fixtures/records."""
    return json.loads(fixture_path(f"records/{name}.json").read_text(encoding="utf-8"))
