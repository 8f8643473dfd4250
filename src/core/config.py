"""Runtime configuration model for Tempo.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
from pathlib import Path

from core.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DATA_ROOT,
    DEFAULT_MONTE_CARLO_TRIALS,
    DEFAULT_RANDOM_SEED,
    DEFAULT_SPRINT_LENGTH_DAYS,
    DEFAULT_TTL_SECONDS,
)
from core.errors import TempoConfigError


@dataclass(frozen=True)
class TempoConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Root directory holding one subdirectory per namespace.
        default_ttl_seconds: TTL applied to records written without one.
        chunk_size: Default number of items per dataset chunk.
        monte_carlo_trials: Number of delivery simulation trials.
        sprint_length_days: Calendar days per simulated sprint.
        random_seed: Seed for the Monte Carlo random source.
    """

    data_root: Path
    default_ttl_seconds: int = DEFAULT_TTL_SECONDS
    chunk_size: int = DEFAULT_CHUNK_SIZE
    monte_carlo_trials: int = DEFAULT_MONTE_CARLO_TRIALS
    sprint_length_days: int = DEFAULT_SPRINT_LENGTH_DAYS
    random_seed: int = DEFAULT_RANDOM_SEED

    @classmethod
    def from_env(cls) -> "TempoConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            TempoConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("TEMPO_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            default_ttl_seconds=_parse_positive_int(
                "TEMPO_DEFAULT_TTL_SECONDS", DEFAULT_TTL_SECONDS
            ),
            chunk_size=_parse_positive_int("TEMPO_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            monte_carlo_trials=_parse_positive_int(
                "TEMPO_MONTE_CARLO_TRIALS", DEFAULT_MONTE_CARLO_TRIALS
            ),
            sprint_length_days=_parse_positive_int(
                "TEMPO_SPRINT_LENGTH_DAYS", DEFAULT_SPRINT_LENGTH_DAYS
            ),
            random_seed=_parse_int("TEMPO_RANDOM_SEED", DEFAULT_RANDOM_SEED),
        )

    def with_overrides(self, overrides: dict[str, object]) -> "TempoConfig":
        """Return a copy with validated field overrides applied.

        Args:
            overrides: Field name to value mapping, e.g. from a settings file.

        Returns:
            Updated config object.

        Raises:
            TempoConfigError: If an override value has the wrong type.
        """
        updates: dict[str, object] = {}
        for field_name, value in overrides.items():
            if field_name == "data_root":
                updates[field_name] = Path(str(value)).expanduser().resolve()
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise TempoConfigError(
                    f"Invalid setting '{field_name}': expected integer, got {value!r}. "
                    "Fix the settings file value."
                )
            if field_name != "random_seed" and value < 1:
                raise TempoConfigError(
                    f"Invalid setting '{field_name}': expected value >= 1, got {value}."
                )
            updates[field_name] = value
        return replace(self, **updates)  # type: ignore[arg-type]


def _parse_int(variable: str, default: int) -> int:
    """Parse an integer environment value.

    Args:
        variable: Environment variable name.
        default: Value used when the variable is unset.

    Returns:
        Parsed integer.

    Raises:
        TempoConfigError: If value cannot be parsed into int.
    """
    raw_value = os.getenv(variable)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError as error:
        raise TempoConfigError(
            f"Invalid {variable} value: expected integer, got '{raw_value}'. "
            f"Set {variable} to a numeric value."
        ) from error


def _parse_positive_int(variable: str, default: int) -> int:
    value = _parse_int(variable, default)
    if value < 1:
        raise TempoConfigError(
            f"Invalid {variable} value: expected value >= 1, got {value}. "
            f"Set {variable} to a positive integer."
        )
    return value
