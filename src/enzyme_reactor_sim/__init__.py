"""
Enzyme Reactor Telemetry Simulator
==================================

Deterministic simulation of a fleet of continuous enzyme bioreactors with
threshold alerts, heuristic predictions, a simulated optimization workflow
and an optional Modbus/TCP telemetry gateway.

Subpackages:
- core: random source, enzyme kinetics, per-reactor process model
- monitoring: history, alerts, predictions
- plant: scheduler, optimization workflow, fleet and dashboard stats
- modbus: register map, TCP server, telemetry gateway

Date: October 2026
License: MIT
"""

__version__ = "1.0.0"

from .exceptions import ReactorNotFoundError, SimulatorError, UnknownParameterError

__all__ = [
    "ReactorNotFoundError",
    "SimulatorError",
    "UnknownParameterError",
]
