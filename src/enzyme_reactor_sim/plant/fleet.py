"""
Reactor Fleet
=============

Aggregate root for every reactor in the plant and the control surface
external collaborators (dashboards, the Modbus gateway, the CLI) talk to.

Per tick, for each reactor:
    1. advance the simulator ``steps_per_tick`` internal steps
    2. derive alerts from the new snapshot and recent history
    3. append the snapshot to history
    4. recompute predictions and status

then recompute DashboardStats once and notify listeners.

A failure inside one reactor's tick is logged and marks that reactor as
ERROR; the remaining reactors still advance.

Date: October 2026
License: MIT
"""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ..core.random_source import LCG_MODULUS, SeededRandom
from ..core.reactor import (
    STANDALONE_PROFILE,
    DynamicsProfile,
    MetricsSnapshot,
    ReactorConfig,
    ReactorSimulator,
)
from ..exceptions import ReactorNotFoundError
from ..monitoring.alerts import Alert, AlertFeed, AlertTracker, AlertType
from ..monitoring.history import MetricsHistory
from ..monitoring.predictions import ParameterAdjustment, Prediction, PredictionEngine
from .optimization import OptimizationResult, OptimizationWorkflow
from .scheduler import SimulationScheduler

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0

# Derived random streams per reactor seed
PREDICTION_STREAM = 0
OPTIMIZER_STREAM = 1

# Share of yield counted toward daily production for running reactors
PRODUCTION_FACTOR = 0.5


class ReactorStatus(Enum):
    RUNNING = "running"
    IDLE = "idle"
    MAINTENANCE = "maintenance"
    ERROR = "error"
    OPTIMIZING = "optimizing"


def derive_status(
    metrics: MetricsSnapshot,
    config: ReactorConfig,
    alerts: AlertFeed,
    optimizing: bool = False,
) -> ReactorStatus:
    """First matching rule wins: maintenance, error, optimizing, running."""
    if metrics.enzyme_activity < config.min_enzyme_activity:
        return ReactorStatus.MAINTENANCE
    if alerts.has_active_critical():
        return ReactorStatus.ERROR
    if optimizing:
        return ReactorStatus.OPTIMIZING
    return ReactorStatus.RUNNING


@dataclass
class FleetSettings:
    """Fleet-wide simulation settings."""

    period: float = 2.0  # [s] tick period
    steps_per_tick: int = 2
    history_capacity: int = 288
    alert_capacity: int = 5
    optimization_delay: float = 3.5  # [s]
    result_display_window: float = 5.0  # [s]
    backfill_points: int = 288
    backfill_interval: float = 300.0  # [s]
    master_seed: int = 20240601
    profile: DynamicsProfile = STANDALONE_PROFILE

    def validate(self) -> None:
        if self.period <= 0:
            raise ValueError(f"period must be positive, got {self.period}")
        if self.steps_per_tick < 1:
            raise ValueError("steps_per_tick must be at least 1")
        if self.history_capacity < 1 or self.alert_capacity < 1:
            raise ValueError("History and alert capacities must be positive")
        if self.optimization_delay < 0 or self.result_display_window < 0:
            raise ValueError("Optimization delays must be non-negative")
        if self.backfill_points < 0:
            raise ValueError("backfill_points must be non-negative")
        if self.backfill_interval <= 0:
            raise ValueError("backfill_interval must be positive")
        self.profile.validate()


class Reactor:
    """
    One reactor: simulator plus everything derived from its metrics.

    Args:
        reactor_id: Unique identifier (e.g. "RXN-001")
        name: Display name
        location: Installation site
        seed: Seed for the simulator and all derived streams
        config: Initial configuration
        settings: Fleet settings (capacities, profile, backfill)
        created_at: Simulation time of creation [s]
    """

    def __init__(
        self,
        reactor_id: str,
        name: str,
        location: str,
        seed: int,
        config: Optional[ReactorConfig] = None,
        settings: Optional[FleetSettings] = None,
        created_at: float = 0.0,
    ):
        settings = settings or FleetSettings()

        self.id = reactor_id
        self.name = name
        self.location = location
        self.seed = seed
        self.created_at = created_at

        self.simulator = ReactorSimulator(
            seed, config=config, profile=settings.profile, start_time=created_at
        )
        self.history = MetricsHistory(settings.history_capacity)
        self.alerts = AlertFeed(settings.alert_capacity)
        self._alert_sequence = itertools.count(1)
        self.tracker = AlertTracker(reactor_id, self.alerts, self.make_alert_id)

        self.predictor = PredictionEngine(SeededRandom(seed).derive(PREDICTION_STREAM))
        self.optimizer_random = SeededRandom(seed).derive(OPTIMIZER_STREAM)

        identity = SeededRandom(seed)
        self.total_batches = int(identity.range(50.0, 200.0))
        self.last_maintenance = created_at - identity.range(5.0, 30.0) * SECONDS_PER_DAY

        self._point_sequence = 0
        if settings.backfill_points:
            self.backfill(settings.backfill_points, settings.backfill_interval)

        self.tracker.evaluate(self.metrics, self.history)
        self.prediction: Prediction = self.predictor.predict(self.metrics)
        self.status = derive_status(self.metrics, self.config, self.alerts)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def metrics(self) -> MetricsSnapshot:
        return self.simulator.metrics

    @property
    def config(self) -> ReactorConfig:
        return self.simulator.config

    @property
    def uptime(self) -> float:
        """Operating time [h]."""
        return self.simulator.running_hours

    def make_alert_id(self, tag: str) -> str:
        return f"alert-{self.id}-{tag}-{next(self._alert_sequence)}"

    def _next_point_id(self) -> str:
        point_id = f"{self.id}-{self._point_sequence}"
        self._point_sequence += 1
        return point_id

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def backfill(self, points: int, interval: float) -> None:
        """
        Populate history with ``points`` samples ``interval`` seconds apart.

        Uses an independent simulator on the same seed; the last sample is
        stamped one interval before creation.
        """
        profile = self.simulator.profile
        steps_per_point = max(1, int(round(interval / profile.tick_seconds)))
        origin = self.created_at - (points + 1) * interval

        backfill_sim = ReactorSimulator(
            self.seed,
            config=self.simulator.config,
            profile=profile,
            start_time=origin,
        )
        for i in range(points):
            for _ in range(steps_per_point - 1):
                backfill_sim.step()
            snapshot = backfill_sim.step(
                timestamp=self.created_at - (points - i) * interval
            )
            self.history.record(snapshot, self._next_point_id())

        logger.debug(f"[{self.id}] Backfilled {points} history points")

    def tick(self, timestamp: float, steps: int = 1, optimizing: bool = False) -> List[Alert]:
        """
        Advance one fleet tick.

        Returns:
            Alerts raised on this tick
        """
        t0 = self.metrics.timestamp
        for k in range(1, steps + 1):
            self.simulator.step(t0 + (timestamp - t0) * k / steps)

        raised = self.tracker.evaluate(self.metrics, self.history)
        self.history.record(self.metrics, self._next_point_id())
        self.prediction = self.predictor.predict(self.metrics)
        self.update_status(optimizing)
        return raised

    def update_status(self, optimizing: bool = False) -> ReactorStatus:
        self.status = derive_status(self.metrics, self.config, self.alerts, optimizing)
        return self.status

    def mark_error(self) -> None:
        self.status = ReactorStatus.ERROR

    # ------------------------------------------------------------------
    # Control actions
    # ------------------------------------------------------------------

    def push_alert(
        self,
        alert_type: AlertType,
        message: str,
        timestamp: float,
        tag: str,
        resolved: bool = False,
        parameter: Optional[str] = None,
        value: Optional[float] = None,
    ) -> Alert:
        alert = Alert(
            id=self.make_alert_id(tag),
            reactor_id=self.id,
            type=alert_type,
            message=message,
            timestamp=timestamp,
            resolved=resolved,
            parameter=parameter,
            value=value,
        )
        self.alerts.push(alert)
        return alert

    def adjust_parameter(self, parameter: str, value: float, timestamp: float) -> Alert:
        self.simulator.adjust_parameter(parameter, value)
        return self.push_alert(
            AlertType.INFO,
            f"Manual adjustment: {parameter} set to {value:.2f}",
            timestamp,
            tag="manual",
            parameter=parameter,
            value=float(value),
        )

    def __repr__(self) -> str:
        return f"Reactor(id={self.id!r}, name={self.name!r}, status={self.status.value})"


@dataclass(frozen=True)
class DashboardStats:
    """Plant-wide summary."""

    total_reactors: int = 0
    active_reactors: int = 0
    average_yield: float = 0.0  # [%]
    total_alerts: int = 0
    critical_alerts: int = 0
    system_health: float = 0.0  # [%] mean enzyme activity
    daily_production: float = 0.0
    uptime: float = 0.0  # [%] share of active reactors

    @classmethod
    def compute(cls, reactors: Sequence[Reactor]) -> "DashboardStats":
        total = len(reactors)
        if total == 0:
            return cls()

        active = sum(
            1
            for r in reactors
            if r.status in (ReactorStatus.RUNNING, ReactorStatus.OPTIMIZING)
        )
        return cls(
            total_reactors=total,
            active_reactors=active,
            average_yield=sum(r.metrics.product_yield for r in reactors) / total,
            total_alerts=sum(len(r.alerts) for r in reactors),
            critical_alerts=sum(r.alerts.count_active_critical() for r in reactors),
            system_health=sum(r.metrics.enzyme_activity for r in reactors) / total,
            daily_production=sum(
                r.metrics.product_yield * PRODUCTION_FACTOR
                for r in reactors
                if r.status is ReactorStatus.RUNNING
            ),
            uptime=active / total * 100.0,
        )


FleetListener = Callable[["ReactorFleet"], None]


class ReactorFleet:
    """
    Id-indexed set of reactors advanced by one scheduler.

    Args:
        settings: Fleet settings
        scheduler: Scheduler to drive the fleet; one is created with
            ``settings.period`` when omitted. Its tick handler is replaced.
    """

    def __init__(
        self,
        settings: Optional[FleetSettings] = None,
        scheduler: Optional[SimulationScheduler] = None,
    ):
        self.settings = settings or FleetSettings()
        self.settings.validate()

        self.scheduler = scheduler or SimulationScheduler(period=self.settings.period)
        self.scheduler.on_tick = self.advance_all_reactors

        self.optimizer = OptimizationWorkflow(
            self.scheduler,
            processing_delay=self.settings.optimization_delay,
            display_window=self.settings.result_display_window,
        )
        self._seed_source = SeededRandom(self.settings.master_seed)
        self._reactors: Dict[str, Reactor] = {}
        self._listeners: List[FleetListener] = []
        self.stats = DashboardStats()

    @property
    def reactors(self) -> List[Reactor]:
        return list(self._reactors.values())

    @property
    def now(self) -> float:
        return self.scheduler.now

    def __len__(self) -> int:
        return len(self._reactors)

    def __contains__(self, reactor_id: str) -> bool:
        return reactor_id in self._reactors

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def add_reactor(
        self,
        reactor_id: str,
        name: str,
        location: str,
        seed: int,
        config: Optional[ReactorConfig] = None,
    ) -> Reactor:
        if reactor_id in self._reactors:
            raise ValueError(f"Duplicate reactor id: {reactor_id}")

        reactor = self._build(reactor_id, name, location, seed, config)
        self._reactors[reactor_id] = reactor
        self._refresh_stats()
        return reactor

    def _build(self, reactor_id, name, location, seed, config) -> Reactor:
        reactor = Reactor(
            reactor_id,
            name,
            location,
            seed,
            config=config,
            settings=self.settings,
            created_at=self.scheduler.now,
        )
        logger.info(
            f"[{reactor_id}] {name} online at {location} "
            f"(seed={seed}, activity={reactor.metrics.enzyme_activity:.1f}%, "
            f"status={reactor.status.value})"
        )
        return reactor

    def select_reactor(self, reactor_id: str) -> Optional[Reactor]:
        return self._reactors.get(reactor_id)

    def get_reactor(self, reactor_id: str) -> Reactor:
        try:
            return self._reactors[reactor_id]
        except KeyError:
            raise ReactorNotFoundError(reactor_id) from None

    # ------------------------------------------------------------------
    # Periodic advance
    # ------------------------------------------------------------------

    def advance_all_reactors(self, timestamp: Optional[float] = None) -> DashboardStats:
        """Advance every reactor one tick and recompute dashboard stats."""
        if timestamp is None:
            timestamp = self.scheduler.now

        for reactor in self._reactors.values():
            try:
                reactor.tick(
                    timestamp,
                    steps=self.settings.steps_per_tick,
                    optimizing=self.optimizer.is_optimizing(reactor.id),
                )
            except Exception:
                logger.exception(f"[{reactor.id}] Tick failed")
                reactor.mark_error()

        self._refresh_stats()
        return self.stats

    def _refresh_stats(self) -> None:
        self.stats = DashboardStats.compute(self.reactors)
        self._notify()

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def adjust_parameter(self, reactor_id: str, parameter: str, value: float) -> Alert:
        """
        Apply a manual setpoint change and record it as an info alert.

        Raises:
            ReactorNotFoundError: unknown reactor id
            UnknownParameterError: parameter is not adjustable
            ValueError: non-finite value
        """
        reactor = self.get_reactor(reactor_id)
        alert = reactor.adjust_parameter(parameter, value, self.scheduler.now)
        logger.info(f"[{reactor_id}] {alert.message}")
        self._refresh_stats()
        return alert

    def start_optimization(self, reactor_id: str) -> bool:
        """
        Start an optimization run for one reactor.

        Returns:
            False if a run is already in flight for this reactor
        """
        reactor = self.get_reactor(reactor_id)
        started = self.optimizer.start(
            reactor_id,
            reactor.prediction.yield_optimization.recommended_changes,
            reactor.optimizer_random,
            on_complete=self._on_optimization_complete,
        )
        if started:
            reactor.update_status(optimizing=True)
            self._refresh_stats()
        return started

    def _on_optimization_complete(self, result: OptimizationResult) -> None:
        reactor = self._reactors.get(result.reactor_id)
        if reactor is None:
            return
        reactor.push_alert(
            AlertType.SUCCESS,
            f"Optimization complete: +{result.improvements.yield_increase:.1f}% "
            f"yield predicted",
            result.timestamp,
            tag="opt",
        )
        reactor.update_status(optimizing=False)
        self._refresh_stats()

    def apply_optimization(
        self,
        reactor_id: str,
        changes: Optional[Iterable[ParameterAdjustment]] = None,
    ) -> int:
        """
        Apply recommended changes and schedule the result to be cleared.

        Args:
            reactor_id: Target reactor
            changes: Adjustments to apply; defaults to the changes captured
                by the reactor's last optimization run

        Returns:
            Number of adjustments applied
        """
        self.get_reactor(reactor_id)
        if changes is None:
            result = self.optimizer.result_for(reactor_id)
            changes = result.applied_changes if result is not None else ()

        applied = 0
        for change in changes:
            self.adjust_parameter(reactor_id, change.parameter, change.suggested_value)
            applied += 1

        self.optimizer.schedule_clear(reactor_id)
        return applied

    def optimization_result(self, reactor_id: str) -> Optional[OptimizationResult]:
        self.get_reactor(reactor_id)
        return self.optimizer.result_for(reactor_id)

    def dismiss_alert(self, reactor_id: str, alert_id: str) -> bool:
        """
        Mark an alert resolved. Repeated calls are harmless.

        Returns:
            True if the alert exists on this reactor
        """
        reactor = self.get_reactor(reactor_id)
        found = reactor.alerts.dismiss(alert_id)
        if found:
            reactor.update_status(self.optimizer.is_optimizing(reactor_id))
            self._refresh_stats()
        return found

    def refresh_reactor(self, reactor_id: str) -> Reactor:
        """
        Rebuild a reactor from a fresh seed, keeping its identity and config.

        Pending optimization callbacks for the old reactor are cancelled.
        """
        old = self.get_reactor(reactor_id)

        pending = self.optimizer.pending_calls(reactor_id)
        if pending:
            logger.info(f"[{reactor_id}] Cancelling {pending} pending optimization callbacks")
        self.optimizer.cancel(reactor_id)
        self.scheduler.cancel_owner(reactor_id)

        seed = int(self._seed_source.range(1.0, float(LCG_MODULUS)))
        reactor = self._build(old.id, old.name, old.location, seed, old.config)
        self._reactors[reactor_id] = reactor
        self._refresh_stats()
        return reactor

    # ------------------------------------------------------------------
    # Listeners and lifecycle
    # ------------------------------------------------------------------

    def add_listener(self, listener: FleetListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: FleetListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Fleet listener failed")

    def run(self, duration: Optional[float] = None, realtime: bool = True) -> None:
        self.scheduler.run(duration=duration, realtime=realtime)

    def stop(self) -> None:
        self.scheduler.stop()

    def shutdown(self) -> None:
        """Stop the scheduler and drop every pending callback."""
        self.scheduler.stop()
        self.optimizer.cancel_all()
        self.scheduler.cancel_all()
        self._listeners.clear()
        logger.info(f"Fleet shut down ({len(self._reactors)} reactors)")


DEFAULT_REACTORS = (
    ("RXN-001", "Reactor Alpha", "California Facility - Bay 1", 12345),
    ("RXN-002", "Reactor Beta", "California Facility - Bay 2", 67890),
    ("RXN-003", "Reactor Gamma", "California Facility - Bay 3", 11121),
)


def create_default_fleet(
    settings: Optional[FleetSettings] = None,
    scheduler: Optional[SimulationScheduler] = None,
) -> ReactorFleet:
    """The three-reactor California plant."""
    fleet = ReactorFleet(settings, scheduler)
    for reactor_id, name, location, seed in DEFAULT_REACTORS:
        fleet.add_reactor(reactor_id, name, location, seed)
    return fleet
