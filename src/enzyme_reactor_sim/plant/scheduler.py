"""
Simulation Clock and Scheduler
==============================

Single-threaded cooperative scheduling for the reactor fleet.

The scheduler owns the simulation clock and drives two kinds of work:

- a periodic tick (every ``period`` seconds of simulated time)
- deferred one-shot callbacks, ordered by due time in a heap

Deferred callbacks carry an ``owner`` key so everything belonging to a
torn-down reactor can be cancelled at once. A cancelled callback never fires.

TIME ADVANCE
============

``advance(seconds)`` processes every tick and callback due within the window
in time order without sleeping. Callbacks due at the same instant as a tick
run before it. ``run()`` paces the same loop against ``time.monotonic()``.

Date: October 2026
License: MIT
"""

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, List, Optional

logger = logging.getLogger(__name__)


class SimulationClock:
    """
    Simulated wall time in seconds.

    Args:
        start: Initial time; defaults to the current Unix time
    """

    def __init__(self, start: Optional[float] = None):
        self._now = time.time() if start is None else float(start)

    @property
    def now(self) -> float:
        return self._now

    def advance_to(self, t: float) -> None:
        if t < self._now:
            raise ValueError(f"Clock cannot move backwards: {t} < {self._now}")
        self._now = t


@dataclass(order=True)
class ScheduledCall:
    """Handle for a deferred callback."""

    due: float
    sequence: int
    callback: Callable[[], Any] = field(compare=False)
    owner: Optional[Hashable] = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class SimulationScheduler:
    """
    Periodic tick plus a heap of cancellable deferred callbacks.

    Args:
        clock: Simulation clock (created at Unix now if omitted)
        period: Tick period [s]
        on_tick: Called with the clock time at every tick
    """

    def __init__(
        self,
        clock: Optional[SimulationClock] = None,
        period: float = 2.0,
        on_tick: Optional[Callable[[float], Any]] = None,
    ):
        if period <= 0:
            raise ValueError(f"Tick period must be positive, got {period}")

        self.clock = clock or SimulationClock()
        self.period = float(period)
        self.on_tick = on_tick
        self.tick_count = 0

        self._next_tick = self.clock.now + self.period
        self._queue: List[ScheduledCall] = []
        self._sequence = itertools.count()
        self._stop_event = threading.Event()

    @property
    def now(self) -> float:
        return self.clock.now

    @property
    def next_tick(self) -> float:
        return self._next_tick

    # ------------------------------------------------------------------
    # Deferred callbacks
    # ------------------------------------------------------------------

    def call_later(
        self,
        delay: float,
        callback: Callable[[], Any],
        owner: Optional[Hashable] = None,
    ) -> ScheduledCall:
        """Schedule ``callback`` to run ``delay`` seconds from now."""
        if delay < 0:
            raise ValueError(f"Delay must be non-negative, got {delay}")
        call = ScheduledCall(
            due=self.clock.now + delay,
            sequence=next(self._sequence),
            callback=callback,
            owner=owner,
        )
        heapq.heappush(self._queue, call)
        return call

    def cancel_owner(self, owner: Hashable) -> int:
        """
        Cancel every pending callback registered under ``owner``.

        Returns:
            Number of callbacks cancelled
        """
        count = 0
        for call in self._queue:
            if call.owner == owner and not call.cancelled:
                call.cancel()
                count += 1
        return count

    def pending(self, owner: Optional[Hashable] = None) -> int:
        return sum(
            1
            for call in self._queue
            if not call.cancelled and (owner is None or call.owner == owner)
        )

    def cancel_all(self) -> None:
        for call in self._queue:
            call.cancel()
        self._queue.clear()

    def run_due(self, now: Optional[float] = None) -> int:
        """
        Run every live callback due at or before ``now``.

        Returns:
            Number of callbacks executed
        """
        if now is None:
            now = self.clock.now

        executed = 0
        while self._queue and self._queue[0].due <= now:
            call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            try:
                call.callback()
            except Exception:
                logger.exception(f"Deferred callback failed (owner={call.owner!r})")
            executed += 1
        return executed

    # ------------------------------------------------------------------
    # Time advance
    # ------------------------------------------------------------------

    def _next_due(self) -> Optional[float]:
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)
        return self._queue[0].due if self._queue else None

    def _tick(self) -> None:
        self.tick_count += 1
        if self.on_tick is None:
            return
        try:
            self.on_tick(self.clock.now)
        except Exception:
            logger.exception(f"Tick handler failed at t={self.clock.now:.1f}")

    def advance_to(self, target: float) -> int:
        """
        Process all events up to ``target`` and leave the clock there.

        Returns:
            Number of ticks processed
        """
        ticks = 0
        while True:
            due = self._next_due()
            if due is not None and due <= self._next_tick and due <= target:
                self.clock.advance_to(max(due, self.clock.now))
                self.run_due(due)
                continue
            if self._next_tick <= target:
                self.clock.advance_to(self._next_tick)
                self._next_tick += self.period
                self._tick()
                ticks += 1
                continue
            break

        self.clock.advance_to(max(target, self.clock.now))
        return ticks

    def advance(self, seconds: float) -> int:
        """Advance simulated time by ``seconds`` without sleeping."""
        if seconds < 0:
            raise ValueError(f"Cannot advance by a negative interval: {seconds}")
        return self.advance_to(self.clock.now + seconds)

    def run(self, duration: Optional[float] = None, realtime: bool = True) -> None:
        """
        Drive the scheduler until ``stop()`` is called or ``duration`` elapses.

        Args:
            duration: Simulated seconds to run (None = until stopped)
            realtime: Pace against the monotonic clock; when False the
                whole duration is processed at once
        """
        self._stop_event.clear()

        if not realtime:
            if duration is None:
                raise ValueError("A finite duration is required when not pacing")
            self.advance(duration)
            return

        wall_start = time.monotonic()
        sim_start = self.clock.now
        end = None if duration is None else sim_start + duration

        while not self._stop_event.is_set():
            target = sim_start + (time.monotonic() - wall_start)
            if end is not None and target >= end:
                self.advance_to(end)
                break
            self.advance_to(target)

            next_event = self._next_tick
            due = self._next_due()
            if due is not None:
                next_event = min(next_event, due)
            if end is not None:
                next_event = min(next_event, end)

            self._stop_event.wait(max(0.0, next_event - self.clock.now))

    def stop(self) -> None:
        """Ask a running ``run()`` loop to return."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()
