"""
Monitoring Package
==================

Everything derived from a reactor's metrics stream.

Available components:
- MetricsHistory: bounded rolling window of snapshots (288 points)
- AlertFeed / AlertTracker: threshold alerts, edge-triggered per condition
- PredictionEngine: deactivation forecast, yield optimization, anomaly score

Date: October 2026
License: MIT
"""

from .history import DEFAULT_CAPACITY, HistoryPoint, MetricsHistory

from .alerts import (
    Alert,
    AlertFeed,
    AlertTracker,
    AlertType,
    evaluate_rules,
)

from .predictions import (
    AnomalyAssessment,
    DeactivationForecast,
    OptimalSetpoints,
    ParameterAdjustment,
    Prediction,
    PredictionEngine,
    Priority,
    YieldOptimization,
    hours_until_threshold,
)

__all__ = [
    # History
    "DEFAULT_CAPACITY",
    "HistoryPoint",
    "MetricsHistory",
    # Alerts
    "Alert",
    "AlertFeed",
    "AlertTracker",
    "AlertType",
    "evaluate_rules",
    # Predictions
    "AnomalyAssessment",
    "DeactivationForecast",
    "OptimalSetpoints",
    "ParameterAdjustment",
    "Prediction",
    "PredictionEngine",
    "Priority",
    "YieldOptimization",
    "hours_until_threshold",
]
