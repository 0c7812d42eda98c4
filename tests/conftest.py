"""
Pytest configuration for enzyme_reactor_sim tests.
"""
import pytest

from enzyme_reactor_sim.core import MetricsSnapshot
from enzyme_reactor_sim.plant import (
    FleetSettings,
    SimulationClock,
    SimulationScheduler,
    create_default_fleet,
)


# ==============================================================================
# Snapshot Fixtures
# ==============================================================================

NOMINAL = dict(
    temperature=35.8,
    pH=7.4,
    pressure=1.2,
    flow_rate=150.0,
    enzyme_activity=90.0,
    substrate_concentration=12.0,
    product_yield=80.0,
    dissolved_oxygen=90.0,
    timestamp=0.0,
)


@pytest.fixture
def make_snapshot():
    """
    Factory for MetricsSnapshot with nominal values.

    Usage in tests:
        def test_something(make_snapshot):
            snap = make_snapshot(pH=8.0)
    """

    def _make(**overrides):
        values = dict(NOMINAL)
        values.update(overrides)
        return MetricsSnapshot(**values)

    return _make


# ==============================================================================
# Scheduling / Fleet Fixtures
# ==============================================================================

@pytest.fixture
def scheduler():
    """Scheduler on a clock starting at t=0 with a 2 s tick."""
    return SimulationScheduler(SimulationClock(start=0.0), period=2.0)


@pytest.fixture
def fast_settings():
    """Fleet settings without the (slow) 24 h history backfill."""
    return FleetSettings(backfill_points=0)


@pytest.fixture
def fleet(fast_settings, scheduler):
    """The default three-reactor plant, driven by the test scheduler."""
    plant = create_default_fleet(fast_settings, scheduler)
    yield plant
    plant.shutdown()
