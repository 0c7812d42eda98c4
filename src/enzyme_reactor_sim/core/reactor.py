"""
Enzyme Reactor Process Simulator
================================

Per-reactor numerical model advancing the broth state by fixed ticks.

MATHEMATICAL FOUNDATION
======================

Controlled variables follow a first-order drift law per tick:

    x ← x + (x_target - x) * gain + N(0, σ)

Dependent variables are derived, not controlled:

    pressure target = 1.0 + (flow / 200) * 0.4                [bar]
    consumption     = 0.5 * (A / 100) * (flow / 150)
    substrate       = max(5, S - consumption * 0.001 + N(0, σ_S))
    theoretical Y   = (A / 100) * (S / 15) * 90                [%]

Enzyme activity A is never drifted; it is recomputed every tick from the
kinetics model at the current running time, temperature and pH.

Per-tick update order:
    1. temperature   2. pH             3. pressure
    4. flow rate     5. enzyme activity 6. substrate
    7. product yield 8. dissolved O₂    9. timestamp

DYNAMICS PROFILES
=================

Two calibrations of the same update law exist in the field:

- STANDALONE_PROFILE: flow σ=2 floored at 0, yield uses the substrate term
  and is clamped to [0, 100], dissolved O₂ σ=1 in [70, 100]
- DASHBOARD_PROFILE: flow σ=3 held in [100, 200], yield ignores substrate
  and is clamped to [60, 95], dissolved O₂ σ=2 in [75, 100]

Both run through the single step function ``advance_metrics``.

Date: October 2026
License: MIT
"""

import logging
import math
from dataclasses import dataclass, replace, asdict
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from ..exceptions import UnknownParameterError
from .kinetics import DeactivationParameters, EnzymeKineticsModel
from .random_source import SeededRandom

logger = logging.getLogger(__name__)

Limits = Tuple[Optional[float], Optional[float]]

# Parameters accepted by adjust_parameter
ADJUSTABLE_PARAMETERS = ("temperature", "pH", "flow_rate")

# Hard floor for substrate concentration [g/L]
SUBSTRATE_FLOOR = 5.0


class OperatingMode(Enum):
    """Reactor feeding strategy."""

    BATCH = "batch"
    CONTINUOUS = "continuous"
    FED_BATCH = "fed-batch"


@dataclass(frozen=True)
class ReactorConfig:
    """
    Operator-facing configuration of one reactor.

    Replaced (never mutated) when a setpoint is adjusted.
    """

    target_temperature: float = 35.0  # [°C]
    target_pH: float = 7.4
    target_pressure: float = 1.2  # [bar]
    target_flow_rate: float = 150.0  # [mL/min]
    min_enzyme_activity: float = 70.0  # [%] maintenance threshold
    max_substrate_concentration: float = 20.0  # [g/L]
    operating_mode: OperatingMode = OperatingMode.CONTINUOUS
    auto_optimize: bool = True

    def validate(self) -> None:
        """Validate configuration consistency."""
        numeric = {
            "target_temperature": self.target_temperature,
            "target_pH": self.target_pH,
            "target_pressure": self.target_pressure,
            "target_flow_rate": self.target_flow_rate,
            "min_enzyme_activity": self.min_enzyme_activity,
            "max_substrate_concentration": self.max_substrate_concentration,
        }
        for name, value in numeric.items():
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value}")

        if not 0.0 <= self.target_pH <= 14.0:
            raise ValueError(f"target_pH {self.target_pH} out of range [0, 14]")
        if not 0.0 <= self.target_temperature <= 100.0:
            raise ValueError(
                f"target_temperature {self.target_temperature} out of range [0, 100]"
            )
        if self.target_flow_rate < 0:
            raise ValueError("target_flow_rate must be non-negative")
        if self.target_pressure <= 0:
            raise ValueError("target_pressure must be positive")
        if not 0.0 <= self.min_enzyme_activity <= 100.0:
            raise ValueError("min_enzyme_activity must lie within [0, 100]")
        if self.max_substrate_concentration < SUBSTRATE_FLOOR:
            raise ValueError(
                f"max_substrate_concentration must be at least {SUBSTRATE_FLOOR} g/L"
            )
        if not isinstance(self.operating_mode, OperatingMode):
            raise ValueError(f"Unknown operating mode: {self.operating_mode!r}")


@dataclass(frozen=True)
class MetricsSnapshot:
    """
    Complete process state of one reactor at a point in time.

    Immutable; every tick produces a new snapshot.
    """

    temperature: float  # [°C]
    pH: float
    pressure: float  # [bar]
    flow_rate: float  # [mL/min]
    enzyme_activity: float  # [%]
    substrate_concentration: float  # [g/L]
    product_yield: float  # [%]
    dissolved_oxygen: float  # [%]
    timestamp: float = 0.0  # [s]

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in asdict(self).values())


@dataclass(frozen=True)
class DynamicsProfile:
    """
    Gains, noise magnitudes and clamp ranges for the per-tick update.

    Limits are (low, high) tuples; None leaves that side open.
    """

    tick_seconds: float = 1.0

    temperature_gain: float = 0.02
    temperature_noise: float = 0.05

    pH_gain: float = 0.01
    pH_noise: float = 0.02

    pressure_base: float = 1.0  # [bar]
    pressure_flow_reference: float = 200.0  # [mL/min]
    pressure_flow_span: float = 0.4  # [bar]
    pressure_gain: float = 0.05
    pressure_noise: float = 0.01

    flow_noise: float = 2.0
    flow_limits: Limits = (0.0, None)

    consumption_coefficient: float = 0.5
    consumption_reference_flow: float = 150.0  # [mL/min]
    consumption_scale: float = 0.001
    substrate_noise: float = 0.1

    yield_gain: float = 0.05
    yield_noise: float = 0.5
    yield_ceiling: float = 90.0  # [%] theoretical maximum
    substrate_reference: float = 15.0  # [g/L]
    yield_uses_substrate: bool = True
    yield_limits: Limits = (0.0, 100.0)

    oxygen_noise: float = 1.0
    oxygen_limits: Limits = (70.0, 100.0)

    def validate(self) -> None:
        if self.tick_seconds <= 0:
            raise ValueError(f"tick_seconds must be positive, got {self.tick_seconds}")

        for name in ("temperature_gain", "pH_gain", "pressure_gain", "yield_gain"):
            gain = getattr(self, name)
            if not 0.0 <= gain <= 1.0:
                raise ValueError(f"{name} must lie within [0, 1], got {gain}")

        for name in (
            "temperature_noise",
            "pH_noise",
            "pressure_noise",
            "flow_noise",
            "substrate_noise",
            "yield_noise",
            "oxygen_noise",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

        for name in ("flow_limits", "yield_limits", "oxygen_limits"):
            low, high = getattr(self, name)
            if low is not None and high is not None and low > high:
                raise ValueError(f"{name} lower bound exceeds upper bound")

        # Bounds the snapshot invariants rely on
        flow_low = self.flow_limits[0]
        if flow_low is None or flow_low < 0:
            raise ValueError("flow_limits must have a non-negative lower bound")
        y_low, y_high = self.yield_limits
        if y_low is None or y_high is None or y_low < 0 or y_high > 100:
            raise ValueError("yield_limits must lie within [0, 100]")
        o_low, o_high = self.oxygen_limits
        if o_low is None or o_high is None or o_low < 0 or o_high > 100:
            raise ValueError("oxygen_limits must lie within [0, 100]")


STANDALONE_PROFILE = DynamicsProfile()

DASHBOARD_PROFILE = DynamicsProfile(
    flow_noise=3.0,
    flow_limits=(100.0, 200.0),
    substrate_noise=0.2,
    yield_uses_substrate=False,
    yield_limits=(60.0, 95.0),
    oxygen_noise=2.0,
    oxygen_limits=(75.0, 100.0),
)

PROFILES = {
    "standalone": STANDALONE_PROFILE,
    "dashboard": DASHBOARD_PROFILE,
}


def _clamp(x: float, limits: Limits) -> float:
    lo, hi = limits
    if lo is not None and x < lo:
        return lo
    if hi is not None and x > hi:
        return hi
    return x


def _drift(value: float, target: float, gain: float, noise: float, random) -> float:
    return value + (target - value) * gain + random.gaussian(0.0, noise)


def advance_metrics(
    metrics: MetricsSnapshot,
    config: ReactorConfig,
    kinetics: EnzymeKineticsModel,
    random: SeededRandom,
    running_hours: float,
    timestamp: float,
    profile: DynamicsProfile = STANDALONE_PROFILE,
) -> MetricsSnapshot:
    """
    Compute the next snapshot from the current one.

    Pure with respect to the reactor: the only state touched is the random
    source, which the caller owns and passes in.

    Args:
        metrics: Current snapshot
        config: Active configuration (setpoints)
        kinetics: Enzyme deactivation model
        random: Random source for process noise
        running_hours: Operating time at the new tick [h]
        timestamp: Time stamp of the new snapshot [s]
        profile: Gains, noise and clamp ranges

    Returns:
        New MetricsSnapshot
    """
    p = profile

    temperature = _drift(
        metrics.temperature,
        config.target_temperature,
        p.temperature_gain,
        p.temperature_noise,
        random,
    )

    pH = _drift(metrics.pH, config.target_pH, p.pH_gain, p.pH_noise, random)

    pressure_target = (
        p.pressure_base
        + (metrics.flow_rate / p.pressure_flow_reference) * p.pressure_flow_span
    )
    pressure = _drift(
        metrics.pressure, pressure_target, p.pressure_gain, p.pressure_noise, random
    )

    flow_rate = _clamp(
        metrics.flow_rate + random.gaussian(0.0, p.flow_noise), p.flow_limits
    )

    enzyme_activity = kinetics.calculate_activity(running_hours, temperature, pH)

    consumption = (
        p.consumption_coefficient
        * (enzyme_activity / 100.0)
        * (flow_rate / p.consumption_reference_flow)
    )
    substrate = max(
        SUBSTRATE_FLOOR,
        metrics.substrate_concentration
        - consumption * p.consumption_scale
        + random.gaussian(0.0, p.substrate_noise),
    )

    theoretical_yield = (enzyme_activity / 100.0) * p.yield_ceiling
    if p.yield_uses_substrate:
        theoretical_yield *= substrate / p.substrate_reference
    product_yield = _clamp(
        _drift(
            metrics.product_yield,
            theoretical_yield,
            p.yield_gain,
            p.yield_noise,
            random,
        ),
        p.yield_limits,
    )

    dissolved_oxygen = _clamp(
        metrics.dissolved_oxygen + random.gaussian(0.0, p.oxygen_noise),
        p.oxygen_limits,
    )

    return MetricsSnapshot(
        temperature=temperature,
        pH=pH,
        pressure=pressure,
        flow_rate=flow_rate,
        enzyme_activity=enzyme_activity,
        substrate_concentration=substrate,
        product_yield=product_yield,
        dissolved_oxygen=dissolved_oxygen,
        timestamp=timestamp,
    )


class ReactorSimulator:
    """
    Owns one reactor's process state and configuration.

    Usage:
    >>> sim = ReactorSimulator(seed=12345, running_hours=0.0)
    >>> snapshot = sim.step()
    >>> 0.0 <= snapshot.enzyme_activity <= 100.0
    True
    """

    def __init__(
        self,
        seed: int,
        config: Optional[ReactorConfig] = None,
        profile: Optional[DynamicsProfile] = None,
        running_hours: Optional[float] = None,
        kinetics_params: Optional[DeactivationParameters] = None,
        start_time: float = 0.0,
    ):
        """
        Initialize the simulator around the configured setpoints.

        Args:
            seed: Seed for the reactor's random source
            config: Reactor configuration (defaults to ReactorConfig())
            profile: Dynamics calibration (defaults to STANDALONE_PROFILE)
            running_hours: Operating time already accumulated; drawn in
                [2, 48] h when None
            kinetics_params: Deactivation model parameters
            start_time: Time stamp of the initial snapshot [s]
        """
        self.config = config or ReactorConfig()
        self.config.validate()
        self.profile = profile or STANDALONE_PROFILE
        self.profile.validate()

        self.seed = seed
        self.random = SeededRandom(seed)
        self.kinetics = EnzymeKineticsModel(self.random, kinetics_params)

        if running_hours is None:
            running_hours = self.random.range(2.0, 48.0)
        if running_hours < 0:
            raise ValueError(f"running_hours must be non-negative, got {running_hours}")
        self.running_hours = float(running_hours)
        self.step_count = 0

        cfg = self.config
        rng = self.random
        self._metrics = MetricsSnapshot(
            temperature=cfg.target_temperature + rng.gaussian(0.0, 0.3),
            pH=cfg.target_pH + rng.gaussian(0.0, 0.1),
            pressure=cfg.target_pressure + rng.gaussian(0.0, 0.05),
            flow_rate=_clamp(
                cfg.target_flow_rate + rng.gaussian(0.0, 5.0), self.profile.flow_limits
            ),
            enzyme_activity=self.kinetics.calculate_activity(
                self.running_hours, cfg.target_temperature, cfg.target_pH
            ),
            substrate_concentration=rng.range(10.0, 15.0),
            product_yield=_clamp(rng.range(75.0, 85.0), self.profile.yield_limits),
            dissolved_oxygen=_clamp(
                rng.range(85.0, 95.0), self.profile.oxygen_limits
            ),
            timestamp=start_time,
        )

    @property
    def metrics(self) -> MetricsSnapshot:
        return self._metrics

    def step(self, timestamp: Optional[float] = None) -> MetricsSnapshot:
        """
        Advance the reactor by one tick.

        Args:
            timestamp: Time stamp for the new snapshot; defaults to the
                previous one plus ``profile.tick_seconds``

        Returns:
            The new current snapshot
        """
        if timestamp is None:
            timestamp = self._metrics.timestamp + self.profile.tick_seconds

        running_hours = self.running_hours + self.profile.tick_seconds / 3600.0
        snapshot = advance_metrics(
            self._metrics,
            self.config,
            self.kinetics,
            self.random,
            running_hours,
            timestamp,
            self.profile,
        )
        if not snapshot.is_finite():
            raise FloatingPointError(f"Non-finite metrics after step: {snapshot}")

        self.running_hours = running_hours
        self._metrics = snapshot
        self.step_count += 1
        return snapshot

    def adjust_parameter(self, parameter: str, value: float) -> None:
        """
        Apply an operator control action.

        Temperature and pH change the setpoint the state drifts toward; flow
        rate is written directly into the current snapshot.

        Raises:
            UnknownParameterError: parameter is not adjustable
            ValueError: value is not a finite number
        """
        if parameter not in ADJUSTABLE_PARAMETERS:
            raise UnknownParameterError(parameter, ADJUSTABLE_PARAMETERS)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{parameter} value must be numeric, got {value!r}")
        if not math.isfinite(value):
            raise ValueError(f"{parameter} value must be finite, got {value}")

        value = float(value)
        if parameter == "temperature":
            new_config = replace(self.config, target_temperature=value)
            new_config.validate()
            self.config = new_config
        elif parameter == "pH":
            new_config = replace(self.config, target_pH=value)
            new_config.validate()
            self.config = new_config
        else:
            self._metrics = replace(
                self._metrics, flow_rate=_clamp(value, self.profile.flow_limits)
            )

        logger.debug(f"Parameter {parameter} set to {value:.3f}")


def validate_reactor_simulator():
    """Validate bounds and determinism over a short run."""
    a = ReactorSimulator(seed=12345, running_hours=0.0)
    b = ReactorSimulator(seed=12345, running_hours=0.0)

    for _ in range(500):
        ma = a.step()
        mb = b.step()
        if ma != mb:
            raise AssertionError("Simulators with the same seed diverged")

        if not 0.0 <= ma.enzyme_activity <= 100.0:
            raise AssertionError(f"Enzyme activity out of bounds: {ma.enzyme_activity}")
        if not 0.0 <= ma.product_yield <= 100.0:
            raise AssertionError(f"Yield out of bounds: {ma.product_yield}")
        if not 70.0 <= ma.dissolved_oxygen <= 100.0:
            raise AssertionError(f"DO out of bounds: {ma.dissolved_oxygen}")
        if ma.flow_rate < 0 or ma.substrate_concentration < SUBSTRATE_FLOOR:
            raise AssertionError("Flow or substrate below floor")

    # Temperature settles near setpoint
    temps = np.array([a.step().temperature for _ in range(200)])
    if abs(float(np.mean(temps)) - a.config.target_temperature) > 0.5:
        raise AssertionError("Temperature did not settle near its setpoint")

    print("✓ Reactor simulator validation passed")


if __name__ == "__main__":
    validate_reactor_simulator()
