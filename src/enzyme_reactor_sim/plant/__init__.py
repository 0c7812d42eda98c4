"""
Plant Package
=============

Fleet-level orchestration: the simulation clock and scheduler, the
optimization workflow and the reactor fleet with its dashboard statistics.

Usage Example:
>>> from enzyme_reactor_sim.plant import FleetSettings, SimulationClock
>>> from enzyme_reactor_sim.plant import SimulationScheduler, create_default_fleet
>>>
>>> scheduler = SimulationScheduler(SimulationClock(start=0.0), period=2.0)
>>> fleet = create_default_fleet(FleetSettings(backfill_points=0), scheduler)
>>> scheduler.advance(60.0)   # 30 ticks, no sleeping
30
>>> fleet.stats.total_reactors
3

Date: October 2026
License: MIT
"""

from .scheduler import ScheduledCall, SimulationClock, SimulationScheduler

from .optimization import (
    OptimizationImprovements,
    OptimizationResult,
    OptimizationStatus,
    OptimizationWorkflow,
)

from .fleet import (
    DEFAULT_REACTORS,
    DashboardStats,
    FleetSettings,
    Reactor,
    ReactorFleet,
    ReactorStatus,
    create_default_fleet,
    derive_status,
)

__all__ = [
    # Scheduling
    "ScheduledCall",
    "SimulationClock",
    "SimulationScheduler",
    # Optimization
    "OptimizationImprovements",
    "OptimizationResult",
    "OptimizationStatus",
    "OptimizationWorkflow",
    # Fleet
    "DEFAULT_REACTORS",
    "DashboardStats",
    "FleetSettings",
    "Reactor",
    "ReactorFleet",
    "ReactorStatus",
    "create_default_fleet",
    "derive_status",
]
