"""Core constants used across Tempo modules.

This module centralizes storage layout names, TTLs, and metric thresholds.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

DEFAULT_DATA_ROOT = Path(".tempo-cache")
NAMESPACES = ("cache", "analysis", "report", "mapping", "session")
INDEX_FILE_NAME = "index.json"
RECORD_FILE_SUFFIX = ".json"
TEMP_FILE_SUFFIX = ".tmp"

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_MONTE_CARLO_TRIALS = 1000
DEFAULT_SPRINT_LENGTH_DAYS = 14
DEFAULT_RANDOM_SEED = 42

ON_DEMAND_METRICS_TTL = timedelta(hours=1)
DAILY_BUCKET_TTL = timedelta(days=1)
WEEKLY_BUCKET_TTL = timedelta(days=7)
MONTHLY_BUCKET_TTL = timedelta(days=30)

DATASET_KEY_PREFIX = "dataset-"
REPORT_KEY_PREFIX = "report-"
SUPPORTED_REPORT_FORMATS = ("json", "csv", "markdown")

TREND_UPPER_RATIO = 1.1
TREND_LOWER_RATIO = 0.9

SPIKE_FLAG_MULTIPLIER = 2.0
SPIKE_MEDIUM_MULTIPLIER = 3.0
SPIKE_HIGH_MULTIPLIER = 4.0
BACKLOG_SPIKE_HIGH_MULTIPLIER = 5.0

MAX_SIMULATED_SPRINTS = 100
DEFAULT_CONFIDENCE_LEVEL = 85
HIGH_VARIABILITY_RATIO = 0.3
LARGE_BACKLOG_MULTIPLIER = 10
MIN_VELOCITY_HISTORY = 3
DEFAULT_VELOCITY = 20.0
LONG_FORECAST_SPRINTS = 6

DONE_STATES = ("Done", "Closed")
IN_PROGRESS_STATES = ("Active", "In Progress", "Committed")
RESOLVED_BUG_STATES = ("Resolved", "Closed")

BOTTLENECK_GROWTH_RATIO = 0.2
BOTTLENECK_FLAT_RATIO = 0.1
CARD_AGE_WARNING_DAYS = 60
CARD_AGE_CRITICAL_DAYS = 90
BACKLOG_WARNING_GROWTH = 10.0
BACKLOG_CRITICAL_GROWTH = 25.0
DEFECT_DENSITY_ITEMS = 100

DEPLOYMENT_ENVIRONMENTS = ("development", "staging", "production")
INCIDENT_SEVERITIES = ("critical", "high", "medium", "low")
MTTR_TREND_MIN_INCIDENTS = 10
FAILURE_LOAD_CURRENT_DAYS = 7
DURATION_PERIODS = (("two_weeks", 14), ("thirty_days", 30), ("sixty_days", 60), ("year", 365))
DURATION_PERCENTILES = (50, 75, 90, 95)
UNKNOWN_GROUP = "Unknown"
