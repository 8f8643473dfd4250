"""Pure analytics toolkit.

This package holds side-effect-free statistics, spike detection, and
forecasting used by the metrics orchestrator.
"""
