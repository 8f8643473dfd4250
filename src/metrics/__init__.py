"""Metrics orchestration layer.

This package turns materialized work-item records into cached metric
bundles and persisted historical rollups.
"""
