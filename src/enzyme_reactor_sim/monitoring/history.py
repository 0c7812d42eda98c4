"""
Metrics History
===============

Bounded rolling window of past metric snapshots.

The default capacity of 288 points holds 24 h of data at 5-minute sampling.
Storage is a ``collections.deque`` with ``maxlen``, so appends are O(1) and
the oldest point is evicted automatically (FIFO).

Date: October 2026
License: MIT
"""

from collections import deque
from dataclasses import dataclass, fields
from typing import Deque, Dict, Iterator, List, Optional

import numpy as np

from ..core.reactor import MetricsSnapshot

DEFAULT_CAPACITY = 288

METRIC_FIELDS = tuple(f.name for f in fields(MetricsSnapshot))


@dataclass(frozen=True)
class HistoryPoint:
    """A metrics snapshot with a unique identifier."""

    point_id: str
    metrics: MetricsSnapshot

    @property
    def timestamp(self) -> float:
        return self.metrics.timestamp

    def __getattr__(self, name):
        # Expose snapshot fields directly (point.temperature, point.pH, ...)
        if name in METRIC_FIELDS:
            return getattr(self.metrics, name)
        raise AttributeError(name)


class MetricsHistory:
    """
    Chronological, capacity-bounded sequence of HistoryPoints.

    Iteration runs oldest → newest.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._points: Deque[HistoryPoint] = deque(maxlen=capacity)

    def append(self, point: HistoryPoint) -> None:
        if self._points and point.timestamp < self._points[-1].timestamp:
            raise ValueError(
                f"Non-chronological history point: {point.timestamp} < "
                f"{self._points[-1].timestamp}"
            )
        self._points.append(point)

    def record(self, metrics: MetricsSnapshot, point_id: str) -> HistoryPoint:
        """Wrap a snapshot in a HistoryPoint and append it."""
        point = HistoryPoint(point_id=point_id, metrics=metrics)
        self.append(point)
        return point

    def clear(self) -> None:
        self._points.clear()

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[HistoryPoint]:
        return iter(self._points)

    def __getitem__(self, index: int) -> HistoryPoint:
        return self._points[index]

    @property
    def oldest(self) -> Optional[HistoryPoint]:
        return self._points[0] if self._points else None

    @property
    def newest(self) -> Optional[HistoryPoint]:
        return self._points[-1] if self._points else None

    def latest(self, n: int) -> List[HistoryPoint]:
        """The last ``n`` points, oldest first."""
        if n <= 0:
            return []
        start = max(0, len(self._points) - n)
        return [self._points[i] for i in range(start, len(self._points))]

    def values(self, metric: str, last: Optional[int] = None) -> np.ndarray:
        """
        Series of one metric as a numpy array.

        Args:
            metric: MetricsSnapshot field name (e.g. "temperature")
            last: Restrict to the most recent ``last`` points

        Returns:
            1-D float array, oldest first
        """
        if metric not in METRIC_FIELDS:
            raise ValueError(f"Unknown metric: {metric}")
        points = self._points if last is None else self.latest(last)
        return np.array([getattr(p.metrics, metric) for p in points], dtype=float)

    def statistics(self, metric: str, last: Optional[int] = None) -> Dict[str, float]:
        """
        Summary statistics for one metric.

        Returns:
            Dictionary with mean, std, min, max, count (zeros when empty)
        """
        series = self.values(metric, last)

        if series.size == 0:
            return {"mean": 0.0, "std": 0.0, "min": 0.0, "max": 0.0, "count": 0}

        return {
            "mean": float(np.mean(series)),
            "std": float(np.std(series)),
            "min": float(np.min(series)),
            "max": float(np.max(series)),
            "count": int(series.size),
        }
