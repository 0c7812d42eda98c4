"""
Optimization Workflow
=====================

Simulated "AI optimization" run for a single reactor.

A run is started with the yield recommendations current at that moment,
completes after a fixed processing delay on the simulation scheduler and
produces an OptimizationResult with randomized improvement figures:

    yield_increase  = 8.5  + U·5     ∈ [8.5, 13.5]  [%]
    efficiency_gain = 12.3 + U·3     ∈ [12.3, 15.3] [%]
    cost_reduction  = 7.8  + U·2     ∈ [7.8, 9.8]   [%]

In-flight state is keyed by reactor id: a second start for the same reactor
is refused while the first is running, other reactors are unaffected.

Date: October 2026
License: MIT
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..core.random_source import SeededRandom
from ..monitoring.predictions import ParameterAdjustment
from .scheduler import ScheduledCall, SimulationScheduler

logger = logging.getLogger(__name__)

PROCESSING_DELAY = 3.5  # [s]
DISPLAY_WINDOW = 5.0  # [s]
PARAMETERS_ANALYZED = 14


class OptimizationStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class OptimizationImprovements:
    yield_increase: float = 0.0  # [%]
    efficiency_gain: float = 0.0  # [%]
    cost_reduction: float = 0.0  # [%]

    @classmethod
    def draw(cls, random: SeededRandom) -> "OptimizationImprovements":
        return cls(
            yield_increase=8.5 + random.next() * 5.0,
            efficiency_gain=12.3 + random.next() * 3.0,
            cost_reduction=7.8 + random.next() * 2.0,
        )


@dataclass(frozen=True)
class OptimizationResult:
    """Outcome (or in-flight state) of one optimization run."""

    reactor_id: str
    timestamp: float
    status: OptimizationStatus
    progress: float = 0.0  # [%]
    parameters_analyzed: int = 0
    improvements: OptimizationImprovements = OptimizationImprovements()
    applied_changes: Tuple[ParameterAdjustment, ...] = ()


CompletionHandler = Callable[[OptimizationResult], None]


class OptimizationWorkflow:
    """
    Per-reactor optimization runs on a SimulationScheduler.

    Args:
        scheduler: Scheduler providing time and deferred callbacks
        processing_delay: Simulated processing time before completion [s]
        display_window: How long a result stays visible after apply [s]
    """

    def __init__(
        self,
        scheduler: SimulationScheduler,
        processing_delay: float = PROCESSING_DELAY,
        display_window: float = DISPLAY_WINDOW,
    ):
        if processing_delay < 0 or display_window < 0:
            raise ValueError("Optimization delays must be non-negative")

        self.scheduler = scheduler
        self.processing_delay = processing_delay
        self.display_window = display_window

        self._results: Dict[str, OptimizationResult] = {}
        self._handles: Dict[str, List[ScheduledCall]] = {}

    def is_optimizing(self, reactor_id: str) -> bool:
        result = self._results.get(reactor_id)
        return result is not None and result.status is OptimizationStatus.RUNNING

    def result_for(self, reactor_id: str) -> Optional[OptimizationResult]:
        return self._results.get(reactor_id)

    def start(
        self,
        reactor_id: str,
        recommendations: Sequence[ParameterAdjustment],
        random: SeededRandom,
        on_complete: Optional[CompletionHandler] = None,
    ) -> bool:
        """
        Begin an optimization run.

        Args:
            reactor_id: Reactor to optimize
            recommendations: Changes captured now and reported on completion
            random: Source for the improvement figures
            on_complete: Called with the completed result

        Returns:
            False if a run is already in flight for this reactor
        """
        if self.is_optimizing(reactor_id):
            logger.warning(f"[{reactor_id}] Optimization already in progress")
            return False

        self._results[reactor_id] = OptimizationResult(
            reactor_id=reactor_id,
            timestamp=self.scheduler.now,
            status=OptimizationStatus.RUNNING,
            applied_changes=tuple(recommendations),
        )

        def complete() -> None:
            self._complete(reactor_id, random, on_complete)

        self._schedule(reactor_id, self.processing_delay, complete)
        logger.info(f"[{reactor_id}] Optimization started")
        return True

    def _complete(
        self,
        reactor_id: str,
        random: SeededRandom,
        on_complete: Optional[CompletionHandler],
    ) -> None:
        running = self._results.get(reactor_id)
        if running is None:
            return

        result = replace(
            running,
            timestamp=self.scheduler.now,
            status=OptimizationStatus.COMPLETED,
            progress=100.0,
            parameters_analyzed=PARAMETERS_ANALYZED,
            improvements=OptimizationImprovements.draw(random),
        )
        self._results[reactor_id] = result

        if on_complete is not None:
            try:
                on_complete(result)
            except Exception:
                logger.exception(f"[{reactor_id}] Optimization completion failed")
                self._results[reactor_id] = replace(
                    result, status=OptimizationStatus.FAILED
                )
                return

        logger.info(
            f"[{reactor_id}] Optimization complete: "
            f"+{result.improvements.yield_increase:.1f}% yield predicted"
        )

    def schedule_clear(self, reactor_id: str) -> ScheduledCall:
        """
        Drop the reactor's current result once the display window has passed.

        A result produced by a later run is left alone.
        """
        shown = self._results.get(reactor_id)

        def clear() -> None:
            result = self._results.get(reactor_id)
            if result is shown and result is not None:
                if result.status is not OptimizationStatus.RUNNING:
                    del self._results[reactor_id]

        return self._schedule(reactor_id, self.display_window, clear)

    def cancel(self, reactor_id: str) -> None:
        """Cancel pending callbacks for a reactor and forget its result."""
        for handle in self._handles.pop(reactor_id, []):
            handle.cancel()
        self._results.pop(reactor_id, None)

    def cancel_all(self) -> None:
        for reactor_id in list(self._handles):
            self.cancel(reactor_id)
        self._results.clear()

    def pending_calls(self, reactor_id: str) -> int:
        """Callbacks scheduled for a reactor that have neither fired nor been cancelled."""
        return sum(1 for h in self._handles.get(reactor_id, []) if not h.cancelled)

    def _schedule(
        self, reactor_id: str, delay: float, callback: Callable[[], None]
    ) -> ScheduledCall:
        handle: Optional[ScheduledCall] = None

        def run() -> None:
            self._untrack(reactor_id, handle)
            callback()

        handle = self.scheduler.call_later(delay, run, owner=reactor_id)
        handles = [h for h in self._handles.get(reactor_id, []) if not h.cancelled]
        handles.append(handle)
        self._handles[reactor_id] = handles
        return handle

    def _untrack(self, reactor_id: str, handle: Optional[ScheduledCall]) -> None:
        handles = self._handles.get(reactor_id)
        if handles is None:
            return
        remaining = [h for h in handles if h is not handle and not h.cancelled]
        if remaining:
            self._handles[reactor_id] = remaining
        else:
            del self._handles[reactor_id]
