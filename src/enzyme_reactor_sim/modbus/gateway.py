"""
Telemetry Gateway
=================

Bridges the reactor fleet and the Modbus register image.

Per fleet tick:
    1. poll_commands(): read setpoint writes and coils from SCADA/HMI,
       validate them and forward them to the fleet control surface
    2. advance the fleet
    3. publish(): write telemetry, predictions, status and the current
       setpoints back into the image

Commands are zero-trust: NaN is dropped, everything else is clamped to a
safe operating window before it reaches ``ReactorFleet.adjust_parameter``.

Date: October 2026
License: MIT
"""

import logging
import math
from typing import Dict, Optional, Tuple

from ..exceptions import SimulatorError
from ..plant.fleet import ReactorFleet, ReactorStatus
from .protocols import float32_round
from .register_map import TelemetryRegisterMap
from .slave import ModbusServerConfig, ModbusSlave

logger = logging.getLogger(__name__)

STATUS_CODES = {
    ReactorStatus.RUNNING: 0,
    ReactorStatus.IDLE: 1,
    ReactorStatus.MAINTENANCE: 2,
    ReactorStatus.ERROR: 3,
    ReactorStatus.OPTIMIZING: 4,
}

# holding register -> (adjustable parameter, safe low, safe high)
SETPOINT_COMMANDS: Dict[str, Tuple[str, float, float]] = {
    "target_temperature": ("temperature", 20.0, 45.0),
    "target_pH": ("pH", 6.0, 9.0),
    "flow_rate_setpoint": ("flow_rate", 0.0, 300.0),
}

# Register changes smaller than this are float32 noise, not commands
COMMAND_TOLERANCE = 1e-3


def validate_setpoint(value: float, low: float, high: float) -> Optional[float]:
    """Clamp a commanded value into [low, high]; None for NaN or non-numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return max(low, min(float(value), high))


class TelemetryGateway:
    """
    Publishes fleet state into a ModbusSlave and applies external commands.

    Args:
        fleet: Fleet to expose
        slave: Register image; created from ``config`` when omitted
        config: Server configuration for a newly created slave
    """

    def __init__(
        self,
        fleet: ReactorFleet,
        slave: Optional[ModbusSlave] = None,
        config: Optional[ModbusServerConfig] = None,
    ):
        self.fleet = fleet
        if slave is None:
            register_map = TelemetryRegisterMap([r.id for r in fleet.reactors])
            slave = ModbusSlave(register_map, config)
        self.slave = slave
        self.register_map = slave.register_map
        self.start_time = fleet.now

        # Setpoint values last written by publish(), as stored in float32
        self._published: Dict[str, float] = {}

    def attach(self) -> None:
        """Drive the fleet tick through the gateway and seed the image."""
        self.fleet.scheduler.on_tick = self.tick
        self.publish()

    def tick(self, timestamp: float) -> None:
        self.poll_commands()
        self.fleet.advance_all_reactors(timestamp)
        self.publish()

    def publish(self) -> None:
        """Write the current fleet state into the register image."""
        for reactor_id in self.register_map.reactor_ids:
            reactor = self.fleet.select_reactor(reactor_id)
            if reactor is None:
                continue
            try:
                self._publish_reactor(reactor)
            except ValueError as e:
                logger.error(f"[{reactor_id}] Telemetry publish failed: {e}")

        stats = self.fleet.stats
        try:
            self.slave.write("fleet.active_reactors", stats.active_reactors)
            self.slave.write("fleet.average_yield", stats.average_yield)
            self.slave.write("fleet.system_health", stats.system_health)
            self.slave.write("fleet.daily_production", stats.daily_production)
            self.slave.write("fleet.uptime", stats.uptime)
            self.slave.write("fleet.simulation_time", self.fleet.now - self.start_time)
        except ValueError as e:
            logger.error(f"Fleet telemetry publish failed: {e}")

    def _publish_reactor(self, reactor) -> None:
        rid = reactor.id
        write = self.slave.write
        metrics = reactor.metrics
        prediction = reactor.prediction

        for field_name, value in metrics.as_dict().items():
            if field_name != "timestamp":
                write(f"{rid}.{field_name}", value)

        write(f"{rid}.hours_remaining", prediction.enzyme_deactivation.hours_remaining)
        write(f"{rid}.anomaly_score", prediction.anomaly_detection.score)
        write(f"{rid}.predicted_yield", prediction.yield_optimization.predicted_yield)
        write(f"{rid}.status_code", STATUS_CODES[reactor.status])
        write(f"{rid}.unresolved_alerts", len(reactor.alerts.unresolved()))

        write(f"{rid}.critical_alert", reactor.alerts.has_active_critical())
        write(f"{rid}.anomaly_flagged", prediction.anomaly_detection.flagged)

        setpoints = {
            "target_temperature": reactor.config.target_temperature,
            "target_pH": reactor.config.target_pH,
            "flow_rate_setpoint": metrics.flow_rate,
        }
        for field_name, value in setpoints.items():
            name = f"{rid}.{field_name}"
            write(name, value)
            self._published[name] = float32_round(value)

    def poll_commands(self) -> int:
        """
        Forward changed setpoints and raised coils to the fleet.

        Returns:
            Number of commands accepted
        """
        accepted = 0
        for reactor_id in self.register_map.reactor_ids:
            if self.fleet.select_reactor(reactor_id) is None:
                continue
            accepted += self._poll_setpoints(reactor_id)
            accepted += self._poll_optimization(reactor_id)
        return accepted

    def _poll_setpoints(self, reactor_id: str) -> int:
        accepted = 0
        for field_name, (parameter, low, high) in SETPOINT_COMMANDS.items():
            name = f"{reactor_id}.{field_name}"
            raw = self.slave.read_holding_register(name)
            previous = self._published.get(name)
            if previous is None:
                # Nothing published yet: adopt whatever the image holds
                self._published[name] = raw
                continue
            if abs(raw - previous) <= COMMAND_TOLERANCE:
                continue

            value = validate_setpoint(raw, low, high)
            if value is None:
                logger.warning(f"[{reactor_id}] Rejected non-numeric {field_name} write")
                self.slave.write(name, previous)
                continue
            if value != raw:
                logger.warning(
                    f"[{reactor_id}] {field_name} {raw:.2f} clamped to {value:.2f}"
                )

            try:
                self.fleet.adjust_parameter(reactor_id, parameter, value)
                accepted += 1
            except (SimulatorError, ValueError) as e:
                logger.warning(f"[{reactor_id}] Setpoint command rejected: {e}")
            self._published[name] = raw
        return accepted

    def _poll_optimization(self, reactor_id: str) -> int:
        name = f"{reactor_id}.start_optimization"
        if not self.slave.read_coil(name):
            return 0
        self.slave.write(name, False)
        try:
            return 1 if self.fleet.start_optimization(reactor_id) else 0
        except SimulatorError as e:
            logger.warning(f"[{reactor_id}] Optimization command rejected: {e}")
            return 0

    def start(self) -> None:
        self.attach()
        self.slave.start(blocking=False)

    def stop(self) -> None:
        self.slave.stop()
