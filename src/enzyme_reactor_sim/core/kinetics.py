"""
Enzyme Kinetics Module
======================

First-order irreversible enzyme deactivation with environmental
acceleration.

THEORETICAL FOUNDATION
=====================

Activity decays exponentially with an effective rate constant that grows
when the environment moves away from the enzyme's comfort zone:

    k_eff = k_base * f_T * f_pH

    f_T  = 1 + max(0, T - T_opt) * c_T      (only supra-optimal T accelerates)
    f_pH = 1 + |pH - pH_opt| * c_pH

    A(t) = A₀ * exp(-k_eff * t) + ε,    ε ~ N(0, σ)

Where:
- k_base = 0.002 h⁻¹ (half-life ≈ 347 h at optimal conditions)
- T_opt  = 37 °C,  c_T  = 0.05 per °C
- pH_opt = 7.4,    c_pH = 0.1 per pH unit
- A₀ drawn in [92, 98] % per enzyme charge
- σ = 0.5 % measurement-like scatter

The noise term never feeds back into the trajectory: each call evaluates the
closed form at the requested elapsed time, so the expectation is
non-increasing in t for fixed T and pH.

Date: October 2026
License: MIT
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from .random_source import SeededRandom


@dataclass
class DeactivationParameters:
    """
    Parameters of the deactivation model.

    Attributes:
        base_rate: Deactivation rate at optimal conditions [1/h]
        optimal_temperature: Temperature above which decay accelerates [°C]
        temperature_coefficient: Fractional rate increase per °C above optimum
        optimal_pH: pH of minimum decay
        pH_coefficient: Fractional rate increase per pH unit of deviation
        noise_std: Scatter added to each evaluation [%]
        initial_activity_range: Range for the fresh-charge activity draw [%]
    """

    base_rate: float = 0.002
    optimal_temperature: float = 37.0
    temperature_coefficient: float = 0.05
    optimal_pH: float = 7.4
    pH_coefficient: float = 0.1
    noise_std: float = 0.5
    initial_activity_range: Tuple[float, float] = (92.0, 98.0)

    def validate(self) -> None:
        """Validate physical consistency of parameters."""
        if self.base_rate <= 0:
            raise ValueError(f"Base rate must be positive: {self.base_rate}")
        if self.temperature_coefficient < 0 or self.pH_coefficient < 0:
            raise ValueError("Environmental coefficients must be non-negative")
        if self.noise_std < 0:
            raise ValueError(f"Noise must be non-negative: {self.noise_std}")
        low, high = self.initial_activity_range
        if not 0.0 <= low <= high <= 100.0:
            raise ValueError(
                f"Initial activity range {self.initial_activity_range} "
                f"must lie within [0, 100]"
            )


class EnzymeKineticsModel:
    """
    Maps (elapsed hours, temperature, pH) to enzyme activity [%].

    The model owns a reference to a random source for the noise term and for
    re-drawing the initial activity when the enzyme charge is replaced.
    """

    ACTIVITY_MIN = 0.0
    ACTIVITY_MAX = 100.0

    def __init__(
        self,
        random: SeededRandom,
        params: Optional[DeactivationParameters] = None,
        initial_activity: Optional[float] = None,
    ):
        self.params = params or DeactivationParameters()
        self.params.validate()
        self.random = random

        if initial_activity is None:
            self.reset()
        else:
            if not 0.0 <= initial_activity <= 100.0:
                raise ValueError(f"Initial activity {initial_activity} out of range")
            self.initial_activity = float(initial_activity)

    def reset(self) -> float:
        """Draw a fresh initial activity (new enzyme charge)."""
        low, high = self.params.initial_activity_range
        self.initial_activity = self.random.range(low, high)
        return self.initial_activity

    def temperature_factor(self, temperature: float) -> float:
        excess = max(0.0, temperature - self.params.optimal_temperature)
        return 1.0 + excess * self.params.temperature_coefficient

    def pH_factor(self, pH: float) -> float:
        return 1.0 + abs(pH - self.params.optimal_pH) * self.params.pH_coefficient

    def effective_rate(self, temperature: float, pH: float) -> float:
        """Effective first-order deactivation rate [1/h]."""
        return (
            self.params.base_rate
            * self.temperature_factor(temperature)
            * self.pH_factor(pH)
        )

    def expected_activity(self, hours: float, temperature: float, pH: float) -> float:
        """Noise-free activity after ``hours`` of operation [%]."""
        if hours < 0:
            raise ValueError(f"Elapsed time must be non-negative, got {hours}")
        rate = self.effective_rate(temperature, pH)
        return float(self.initial_activity * np.exp(-rate * hours))

    def calculate_activity(self, hours: float, temperature: float, pH: float) -> float:
        """
        Activity with scatter, clamped to [0, 100] %.

        Args:
            hours: Elapsed operating time [h]
            temperature: Broth temperature [°C]
            pH: Broth pH

        Returns:
            Enzyme activity [%]
        """
        activity = self.expected_activity(hours, temperature, pH)
        activity += self.random.gaussian(0.0, self.params.noise_std)
        return float(np.clip(activity, self.ACTIVITY_MIN, self.ACTIVITY_MAX))

    def half_life(self, temperature: float, pH: float) -> float:
        """Time for activity to halve under constant conditions [h]."""
        return float(np.log(2.0) / self.effective_rate(temperature, pH))


def validate_kinetics():
    """Validate decay direction and environmental acceleration."""
    model = EnzymeKineticsModel(SeededRandom(1), initial_activity=95.0)

    # Expected trajectory must be non-increasing
    trajectory = [model.expected_activity(h, 37.0, 7.4) for h in range(0, 500, 25)]
    if any(later > earlier for earlier, later in zip(trajectory, trajectory[1:])):
        raise AssertionError("Expected activity increased over time")

    # Sub-optimal temperatures do not slow or speed decay
    if model.effective_rate(30.0, 7.4) != model.effective_rate(37.0, 7.4):
        raise AssertionError("Sub-optimal temperature changed the decay rate")

    # Heat and pH deviation both accelerate decay
    if not model.effective_rate(42.0, 7.4) > model.effective_rate(37.0, 7.4):
        raise AssertionError("Supra-optimal temperature should accelerate decay")
    if not model.effective_rate(37.0, 8.4) > model.effective_rate(37.0, 7.4):
        raise AssertionError("pH deviation should accelerate decay")

    # Half-life at optimum ≈ 346.6 h
    if abs(model.half_life(37.0, 7.4) - 346.57) > 0.1:
        raise AssertionError("Half-life at optimum is wrong")

    print("✓ Enzyme kinetics validation passed")


if __name__ == "__main__":
    validate_kinetics()
