"""
Prediction Engine
=================

Closed-form heuristics presented to operators as "AI" predictions.

1. Enzyme deactivation forecast
   Hours until activity reaches the 70 % replacement threshold under the
   base first-order rate:

       t = ln(A / 70) / 0.002        clamped to t ≥ 0

   A ≤ 0 is treated as already deactivated (t = 0).

2. Yield optimization
   Distance of the current state from fixed optimal setpoints
   (35.8 °C, pH 7.35, 165 mL/min):

       gain      = 2·ΔT + 15·ΔpH + 0.05·ΔF
       predicted = min(95, current_yield + gain)
       interval  = predicted ± 2.5

3. Anomaly score

       score = clip(ΔT/5 + ΔpH/2 + (100 - A)/100, 0, 1)

Every prediction is recomputed from scratch for each snapshot; nothing is
smoothed across ticks.

Date: October 2026
License: MIT
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from ..core.random_source import SeededRandom
from ..core.reactor import MetricsSnapshot

DEACTIVATION_RATE = 0.002  # [1/h]
ACTIVITY_THRESHOLD = 70.0  # [%]
REPLENISH_BELOW_ACTIVITY = 80.0  # [%]

BASE_CONFIDENCE = 0.87
CONFIDENCE_SPREAD = 0.1

YIELD_CAP = 95.0
YIELD_INTERVAL_HALF_WIDTH = 2.5

ANOMALY_FLAG_SCORE = 0.3

REPLENISH_ACTION = "Consider enzyme replenishment or batch termination"


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class OptimalSetpoints:
    """Setpoints the yield heuristic measures distance from."""

    temperature: float = 35.8  # [°C]
    pH: float = 7.35
    flow_rate: float = 165.0  # [mL/min]

    # Yield points per unit deviation
    temperature_weight: float = 2.0
    pH_weight: float = 15.0
    flow_weight: float = 0.05

    def validate(self) -> None:
        if min(self.temperature_weight, self.pH_weight, self.flow_weight) < 0:
            raise ValueError("Yield weights must be non-negative")
        if not 0.0 <= self.pH <= 14.0:
            raise ValueError(f"Optimal pH {self.pH} out of range")


@dataclass(frozen=True)
class ParameterAdjustment:
    """One recommended setpoint change."""

    parameter: str
    current_value: float
    suggested_value: float
    impact: str
    priority: Priority


@dataclass(frozen=True)
class DeactivationForecast:
    hours_remaining: float
    confidence: float
    suggested_action: Optional[str] = None


@dataclass(frozen=True)
class YieldOptimization:
    current_yield: float
    predicted_yield: float
    confidence_interval: Tuple[float, float]
    recommended_changes: Tuple[ParameterAdjustment, ...] = ()


@dataclass(frozen=True)
class AnomalyAssessment:
    score: float
    parameters: Tuple[str, ...] = ()

    @property
    def flagged(self) -> bool:
        return bool(self.parameters)


@dataclass(frozen=True)
class Prediction:
    """All predictions for one snapshot."""

    enzyme_deactivation: DeactivationForecast
    yield_optimization: YieldOptimization
    anomaly_detection: AnomalyAssessment


@dataclass(frozen=True)
class SetpointDeltas:
    """Absolute distances from the optimal setpoints."""

    temperature: float
    pH: float
    flow_rate: float


def hours_until_threshold(
    activity: float,
    threshold: float = ACTIVITY_THRESHOLD,
    rate: float = DEACTIVATION_RATE,
) -> float:
    """
    Hours until first-order decay takes ``activity`` down to ``threshold``.

    Returns 0 for activity at or below the threshold, non-positive activity
    or non-finite input.
    """
    if not math.isfinite(activity) or activity <= 0 or activity <= threshold:
        return 0.0
    return max(0.0, math.log(activity / threshold) / rate)


class PredictionEngine:
    """
    Computes deactivation, yield and anomaly predictions.

    Args:
        random: Random source for the confidence jitter
        setpoints: Optimal setpoints for the yield heuristic
    """

    def __init__(
        self,
        random: SeededRandom,
        setpoints: Optional[OptimalSetpoints] = None,
    ):
        self.random = random
        self.setpoints = setpoints or OptimalSetpoints()
        self.setpoints.validate()

    def deltas(self, metrics: MetricsSnapshot) -> SetpointDeltas:
        sp = self.setpoints
        return SetpointDeltas(
            temperature=abs(metrics.temperature - sp.temperature),
            pH=abs(metrics.pH - sp.pH),
            flow_rate=abs(metrics.flow_rate - sp.flow_rate),
        )

    def forecast_deactivation(self, activity: float) -> DeactivationForecast:
        confidence = BASE_CONFIDENCE + self.random.range(0.0, CONFIDENCE_SPREAD)
        return DeactivationForecast(
            hours_remaining=hours_until_threshold(activity),
            confidence=float(np.clip(confidence, 0.0, 1.0)),
            suggested_action=(
                REPLENISH_ACTION if activity < REPLENISH_BELOW_ACTIVITY else None
            ),
        )

    def optimize_yield(self, metrics: MetricsSnapshot) -> YieldOptimization:
        sp = self.setpoints
        d = self.deltas(metrics)

        temperature_gain = d.temperature * sp.temperature_weight
        pH_gain = d.pH * sp.pH_weight
        flow_gain = d.flow_rate * sp.flow_weight
        potential_gain = temperature_gain + pH_gain + flow_gain

        predicted = min(YIELD_CAP, metrics.product_yield + potential_gain)

        changes = []
        if d.temperature > 0.5:
            changes.append(
                ParameterAdjustment(
                    parameter="temperature",
                    current_value=metrics.temperature,
                    suggested_value=sp.temperature,
                    impact=f"+{temperature_gain:.1f}% yield",
                    priority=Priority.HIGH if d.temperature > 1.0 else Priority.MEDIUM,
                )
            )
        if d.pH > 0.1:
            changes.append(
                ParameterAdjustment(
                    parameter="pH",
                    current_value=metrics.pH,
                    suggested_value=sp.pH,
                    impact=f"+{pH_gain:.1f}% yield",
                    priority=Priority.HIGH if d.pH > 0.3 else Priority.MEDIUM,
                )
            )
        if d.flow_rate > 10.0:
            changes.append(
                ParameterAdjustment(
                    parameter="flow_rate",
                    current_value=metrics.flow_rate,
                    suggested_value=sp.flow_rate,
                    impact=f"+{flow_gain:.1f}% yield",
                    priority=Priority.LOW,
                )
            )

        return YieldOptimization(
            current_yield=metrics.product_yield,
            predicted_yield=predicted,
            confidence_interval=(
                predicted - YIELD_INTERVAL_HALF_WIDTH,
                predicted + YIELD_INTERVAL_HALF_WIDTH,
            ),
            recommended_changes=tuple(changes),
        )

    def detect_anomalies(self, metrics: MetricsSnapshot) -> AnomalyAssessment:
        d = self.deltas(metrics)
        raw = d.temperature / 5.0 + d.pH / 2.0 + (100.0 - metrics.enzyme_activity) / 100.0
        score = float(np.clip(raw, 0.0, 1.0))
        return AnomalyAssessment(
            score=score,
            parameters=("temperature", "pH") if score > ANOMALY_FLAG_SCORE else (),
        )

    def predict(self, metrics: MetricsSnapshot) -> Prediction:
        """Compute all three predictions for a snapshot."""
        return Prediction(
            enzyme_deactivation=self.forecast_deactivation(metrics.enzyme_activity),
            yield_optimization=self.optimize_yield(metrics),
            anomaly_detection=self.detect_anomalies(metrics),
        )
