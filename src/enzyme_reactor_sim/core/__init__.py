"""
Reactor Process Core Package
============================

Enzyme reactor process simulation.

This package provides:
- Random source: seeded LCG with uniform and Gaussian deviates
- Kinetics: first-order enzyme deactivation with temperature/pH acceleration
- Reactor: per-tick drift laws for the full broth state

USAGE EXAMPLE
============

```python
from enzyme_reactor_sim.core import ReactorSimulator, ReactorConfig

sim = ReactorSimulator(seed=12345, config=ReactorConfig(target_temperature=35.0))

for _ in range(3600):  # one simulated hour at 1 s per tick
    snapshot = sim.step()

sim.adjust_parameter("pH", 7.3)
print(snapshot.enzyme_activity, snapshot.product_yield)
```

WHAT THIS PACKAGE DOES NOT DO
=============================

- NO alert thresholds or predictions (see ``enzyme_reactor_sim.monitoring``)
- NO scheduling, optimization workflow or fleet bookkeeping
  (see ``enzyme_reactor_sim.plant``)
- NO wall-clock access: time stamps are supplied by the caller

Run validation: `python -m enzyme_reactor_sim.core` or call
`run_all_validations()`.

Date: October 2026
License: MIT
"""

__version__ = "1.0.0"

from .random_source import SeededRandom, validate_random_source

from .kinetics import (
    EnzymeKineticsModel,
    DeactivationParameters,
    validate_kinetics,
)

from .reactor import (
    ReactorSimulator,
    ReactorConfig,
    MetricsSnapshot,
    OperatingMode,
    DynamicsProfile,
    STANDALONE_PROFILE,
    DASHBOARD_PROFILE,
    PROFILES,
    ADJUSTABLE_PARAMETERS,
    advance_metrics,
    validate_reactor_simulator,
)

__all__ = [
    # Simulator
    "ReactorSimulator",
    "ReactorConfig",
    "MetricsSnapshot",
    "OperatingMode",
    "DynamicsProfile",
    "STANDALONE_PROFILE",
    "DASHBOARD_PROFILE",
    "PROFILES",
    "ADJUSTABLE_PARAMETERS",
    "advance_metrics",
    # Kinetics
    "EnzymeKineticsModel",
    "DeactivationParameters",
    # Random source
    "SeededRandom",
    # Validation functions
    "validate_random_source",
    "validate_kinetics",
    "validate_reactor_simulator",
]


def run_all_validations():
    """
    Run all process-model validation checks.

    This should be run after any change to the drift laws or kinetics.
    """
    print("Running Reactor Core Validation Suite")
    print("=" * 70)

    print("\n1. Random source...")
    validate_random_source()

    print("\n2. Enzyme kinetics...")
    validate_kinetics()

    print("\n3. Reactor simulator...")
    validate_reactor_simulator()

    print("\n" + "=" * 70)
    print("ALL VALIDATIONS PASSED ✓")
    print("=" * 70)


if __name__ == "__main__":
    run_all_validations()
