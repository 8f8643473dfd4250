"""Unit tests for environment-driven configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import TempoConfig
from core.constants import DEFAULT_CHUNK_SIZE, DEFAULT_TTL_SECONDS
from core.errors import TempoConfigError


def test_from_env_uses_defaults_when_unset(monkeypatch) -> None:
    """Config should fall back to documented defaults."""
    for variable in ("TEMPO_DATA_ROOT", "TEMPO_CHUNK_SIZE", "TEMPO_DEFAULT_TTL_SECONDS"):
        monkeypatch.delenv(variable, raising=False)

    config = TempoConfig.from_env()

    assert (
        config.chunk_size == DEFAULT_CHUNK_SIZE
        and config.default_ttl_seconds == DEFAULT_TTL_SECONDS
        and config.data_root.is_absolute()
    )


def test_from_env_reads_overrides(monkeypatch, tmp_path) -> None:
    """Config should parse environment overrides."""
    monkeypatch.setenv("TEMPO_DATA_ROOT", str(tmp_path / "cache"))
    monkeypatch.setenv("TEMPO_CHUNK_SIZE", "50")
    monkeypatch.setenv("TEMPO_RANDOM_SEED", "-3")

    config = TempoConfig.from_env()

    assert (
        config.data_root == (tmp_path / "cache").resolve()
        and config.chunk_size == 50
        and config.random_seed == -3
    )


def test_from_env_rejects_non_integer(monkeypatch) -> None:
    """Config should fail fast on malformed numeric values."""
    monkeypatch.setenv("TEMPO_MONTE_CARLO_TRIALS", "many")

    with pytest.raises(TempoConfigError, match="TEMPO_MONTE_CARLO_TRIALS"):
        TempoConfig.from_env()


def test_from_env_rejects_non_positive_chunk_size(monkeypatch) -> None:
    """Chunk size must be at least one."""
    monkeypatch.setenv("TEMPO_CHUNK_SIZE", "0")

    with pytest.raises(TempoConfigError, match="expected value >= 1"):
        TempoConfig.from_env()


def test_with_overrides_validates_types(tmp_path) -> None:
    """Overrides should reject booleans and non-integers."""
    config = TempoConfig(data_root=tmp_path)

    with pytest.raises(TempoConfigError, match="chunk_size"):
        config.with_overrides({"chunk_size": True})


def test_with_overrides_resolves_data_root(tmp_path) -> None:
    """A data_root override should become an absolute path."""
    config = TempoConfig(data_root=Path("unused"))

    updated = config.with_overrides({"data_root": str(tmp_path), "sprint_length_days": 7})

    assert updated.data_root == tmp_path.resolve() and updated.sprint_length_days == 7
