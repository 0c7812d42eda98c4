"""
Alert Derivation
================

Threshold rules that turn a metrics snapshot (plus recent history) into
operator alerts, and the capped per-reactor alert feed.

RULES
=====

| Rule        | Condition                           | Severity                      |
|-------------|-------------------------------------|-------------------------------|
| pH          | abs(pH - 7.4) > 0.3                 | critical if > 0.5 else warning|
| enzyme      | activity < 75 %                     | critical if < 70 else warning |
| temperature | MSD of last 10 temps vs current > 0.5 | info (auto-resolved)        |
| yield       | yield > 82 %                        | success (auto-resolved)       |

Rules fire on the rising edge of a (rule, severity) condition: a persistent
excursion produces one alert, not one per tick. ``AlertTracker`` maps each
condition active on the previous evaluation to the alert it raised. An
unresolved alert whose condition persists but which has been pushed out of
the capped feed is raised again, so an ongoing excursion is always listed.

Date: October 2026
License: MIT
"""

import logging
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Deque, Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..core.reactor import MetricsSnapshot
from .history import MetricsHistory

logger = logging.getLogger(__name__)

PH_OPTIMUM = 7.4
PH_WARNING_DEVIATION = 0.3
PH_CRITICAL_DEVIATION = 0.5

ENZYME_WARNING_ACTIVITY = 75.0
ENZYME_CRITICAL_ACTIVITY = 70.0

STABILITY_WINDOW = 10
STABILITY_VARIANCE_LIMIT = 0.5

HIGH_YIELD_THRESHOLD = 82.0

DEFAULT_FEED_CAPACITY = 5


class AlertType(Enum):
    """Alert severity / category."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"
    SUCCESS = "success"


@dataclass(frozen=True)
class Alert:
    """
    Single operator alert.

    ``resolved`` only ever moves from False to True (see ``resolve``).
    """

    id: str
    reactor_id: str
    type: AlertType
    message: str
    timestamp: float
    resolved: bool = False
    parameter: Optional[str] = None
    value: Optional[float] = None

    def resolve(self) -> "Alert":
        """Resolved copy of this alert (returns self if already resolved)."""
        if self.resolved:
            return self
        return replace(self, resolved=True)

    @property
    def is_active_critical(self) -> bool:
        return self.type is AlertType.CRITICAL and not self.resolved


@dataclass(frozen=True)
class AlertCandidate:
    """Rule output before an id is assigned."""

    rule: str
    type: AlertType
    message: str
    resolved: bool
    parameter: str
    value: float

    @property
    def condition(self) -> Tuple[str, AlertType]:
        return (self.rule, self.type)


def temperature_variance(current: float, temperatures: np.ndarray) -> float:
    """Mean squared deviation of recent temperatures around the current one."""
    if temperatures.size == 0:
        return 0.0
    return float(np.mean((temperatures - current) ** 2))


def evaluate_rules(
    metrics: MetricsSnapshot, history: Optional[MetricsHistory] = None
) -> List[AlertCandidate]:
    """
    Evaluate every threshold rule against the current snapshot.

    Each rule is independent; the result lists at most one candidate per
    rule, in rule order (pH, enzyme, temperature, yield).
    """
    candidates: List[AlertCandidate] = []

    pH_deviation = abs(metrics.pH - PH_OPTIMUM)
    if pH_deviation > PH_WARNING_DEVIATION:
        candidates.append(
            AlertCandidate(
                rule="ph",
                type=(
                    AlertType.CRITICAL
                    if pH_deviation > PH_CRITICAL_DEVIATION
                    else AlertType.WARNING
                ),
                message=f"pH deviation detected: {metrics.pH:.2f} (target: {PH_OPTIMUM})",
                resolved=False,
                parameter="pH",
                value=metrics.pH,
            )
        )

    if metrics.enzyme_activity < ENZYME_WARNING_ACTIVITY:
        candidates.append(
            AlertCandidate(
                rule="enzyme",
                type=(
                    AlertType.CRITICAL
                    if metrics.enzyme_activity < ENZYME_CRITICAL_ACTIVITY
                    else AlertType.WARNING
                ),
                message=f"Low enzyme activity: {metrics.enzyme_activity:.1f}%",
                resolved=False,
                parameter="enzyme_activity",
                value=metrics.enzyme_activity,
            )
        )

    if history is not None and len(history) >= STABILITY_WINDOW:
        recent = history.values("temperature", last=STABILITY_WINDOW)
        if temperature_variance(metrics.temperature, recent) > STABILITY_VARIANCE_LIMIT:
            candidates.append(
                AlertCandidate(
                    rule="temperature",
                    type=AlertType.INFO,
                    message="Temperature fluctuation detected - control system compensating",
                    resolved=True,
                    parameter="temperature",
                    value=metrics.temperature,
                )
            )

    if metrics.product_yield > HIGH_YIELD_THRESHOLD:
        candidates.append(
            AlertCandidate(
                rule="yield",
                type=AlertType.SUCCESS,
                message=f"High yield achieved: {metrics.product_yield:.1f}%",
                resolved=True,
                parameter="product_yield",
                value=metrics.product_yield,
            )
        )

    return candidates


class AlertFeed:
    """
    The visible alert list of one reactor: newest first, capped.
    """

    def __init__(self, capacity: int = DEFAULT_FEED_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Alert capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._alerts: Deque[Alert] = deque(maxlen=capacity)

    def push(self, alert: Alert) -> None:
        # appendleft on a bounded deque drops the oldest entry from the right
        self._alerts.appendleft(alert)

    def dismiss(self, alert_id: str) -> bool:
        """
        Mark an alert resolved.

        Returns:
            True if an alert with this id is in the feed (whether or not it
            was already resolved), False otherwise.
        """
        for index, alert in enumerate(self._alerts):
            if alert.id == alert_id:
                self._alerts[index] = alert.resolve()
                return True
        return False

    def get(self, alert_id: str) -> Optional[Alert]:
        return next((a for a in self._alerts if a.id == alert_id), None)

    def unresolved(self) -> List[Alert]:
        return [a for a in self._alerts if not a.resolved]

    def has_active_critical(self) -> bool:
        return any(a.is_active_critical for a in self._alerts)

    def count_active_critical(self) -> int:
        return sum(1 for a in self._alerts if a.is_active_critical)

    def clear(self) -> None:
        self._alerts.clear()

    def __contains__(self, alert_id: str) -> bool:
        return any(a.id == alert_id for a in self._alerts)

    def __len__(self) -> int:
        return len(self._alerts)

    def __iter__(self) -> Iterator[Alert]:
        return iter(list(self._alerts))


class AlertTracker:
    """
    Edge-triggered alert synthesis for one reactor.

    Args:
        reactor_id: Owning reactor
        feed: Feed receiving new alerts
        make_id: Factory producing a unique alert id for a rule/kind tag
    """

    def __init__(
        self,
        reactor_id: str,
        feed: AlertFeed,
        make_id: Callable[[str], str],
    ):
        self.reactor_id = reactor_id
        self.feed = feed
        self.make_id = make_id
        self._active: Dict[Tuple[str, AlertType], str] = {}

    def evaluate(
        self,
        metrics: MetricsSnapshot,
        history: Optional[MetricsHistory] = None,
    ) -> List[Alert]:
        """
        Scan the snapshot and push alerts for newly active conditions.

        A persisting unresolved condition is raised again once its alert is
        no longer in the feed. Dismissed alerts stay dismissed.

        Returns:
            The alerts pushed on this evaluation
        """
        candidates = evaluate_rules(metrics, history)
        raised: List[Alert] = []
        active: Dict[Tuple[str, AlertType], str] = {}

        for candidate in candidates:
            previous_id = self._active.get(candidate.condition)
            if previous_id is not None and (
                candidate.resolved or previous_id in self.feed
            ):
                active[candidate.condition] = previous_id
                continue
            alert = Alert(
                id=self.make_id(candidate.rule),
                reactor_id=self.reactor_id,
                type=candidate.type,
                message=candidate.message,
                timestamp=metrics.timestamp,
                resolved=candidate.resolved,
                parameter=candidate.parameter,
                value=candidate.value,
            )
            self.feed.push(alert)
            raised.append(alert)
            active[candidate.condition] = alert.id

            if alert.type in (AlertType.WARNING, AlertType.CRITICAL):
                logger.warning(f"[{self.reactor_id}] {alert.message}")

        self._active = active
        return raised

    def reset(self) -> None:
        self._active = {}
