"""YAML settings file loading.

This module parses an optional YAML settings file that overrides the
environment-derived config. Only a fixed set of keys is accepted.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, cast

import yaml

from core.config import TempoConfig
from core.errors import TempoConfigError

SUPPORTED_SETTINGS_KEYS = (
    "data_root",
    "default_ttl_seconds",
    "chunk_size",
    "monte_carlo_trials",
    "sprint_length_days",
    "random_seed",
)


def load_settings_file(settings_path: str) -> dict[str, object]:
    """Load and validate a YAML settings file from disk.

    Args:
        settings_path: File path to YAML settings.

    Returns:
        Mapping of config field names to override values.

    Raises:
        TempoConfigError: If the file is missing, invalid, or has unknown keys.
    """
    settings_file = Path(settings_path).expanduser().resolve()
    if not settings_file.exists():
        raise TempoConfigError(
            f"Settings file does not exist at {settings_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(settings_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise TempoConfigError(
            f"Failed to read settings at {settings_file}: {error}. Check file permissions."
        ) from error
    except yaml.YAMLError as error:
        raise TempoConfigError(
            f"Failed to parse YAML settings at {settings_file}: {error}. Fix YAML syntax."
        ) from error
    if payload is None:
        return {}
    settings = _expect_mapping(payload)
    _validate_keys(settings)
    return dict(settings)


def apply_settings_file(config: TempoConfig, settings_path: str) -> TempoConfig:
    """Overlay settings file values onto a config."""
    return config.with_overrides(load_settings_file(settings_path))


def _expect_mapping(value: object) -> Mapping[str, object]:
    if not isinstance(value, Mapping):
        raise TempoConfigError(
            f"Invalid settings root: expected object mapping, got {type(value).__name__}."
        )
    normalized: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise TempoConfigError(
                f"Invalid settings root: expected string keys, got {type(key).__name__}."
            )
        normalized[key] = item
    return normalized


def _validate_keys(settings: Mapping[str, object]) -> None:
    unknown = sorted(set(settings) - set(SUPPORTED_SETTINGS_KEYS))
    if unknown:
        supported = ", ".join(SUPPORTED_SETTINGS_KEYS)
        raise TempoConfigError(
            f"Unsupported settings keys: {', '.join(unknown)}. Supported keys: {supported}."
        )
