"""Tempo exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class TempoError(Exception):
    """Base exception for all Tempo failures."""


class TempoConfigError(TempoError):
    """Raised for invalid runtime configuration."""


class TempoStoreError(TempoError):
    """Raised for record store and dataset chunking failures."""


class SessionNotFoundError(TempoStoreError):
    """Raised when updating a session that does not exist."""


class TempoSessionError(TempoStoreError):
    """Raised for invalid session lifecycle transitions."""


class TempoReportError(TempoError):
    """Raised when report content cannot be rendered."""


class TempoMetricsError(TempoError):
    """Raised for invalid metric or forecast arguments."""


class TempoInputError(TempoError):
    """Raised when a command input file cannot be read."""
