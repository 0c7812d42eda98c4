"""
Deterministic Random Source
===========================

Seeded pseudo-random generator used for every stochastic term in the
simulator (process noise, initial conditions, prediction confidence).

ALGORITHM
=========

Linear congruential recurrence:

    seed' = (seed * 9301 + 49297) mod 233280
    value = seed' / 233280            value ∈ [0, 1)

Gaussian deviates use the Box-Muller transform on two consecutive draws:

    z = sqrt(-2 ln u1) * cos(2π u2)

The generator lives on a lattice of 233280 points, so u1 can be exactly 0.
That draw is replaced by the smallest positive lattice value (1/233280) to
keep ln(u1) finite.

REPRODUCIBILITY
===============

Two instances built from the same seed produce identical sequences. The
global numpy/stdlib generators are never touched; every consumer receives its
own instance (or a derived stream, see ``SeededRandom.derive``).

Date: October 2026
License: MIT
"""

import math
from typing import Iterator


LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280

# Smallest strictly positive value next() can return
MIN_UNIFORM = 1.0 / LCG_MODULUS

# Stride between derived streams (prime, coprime with the modulus)
STREAM_STRIDE = 7919


class SeededRandom:
    """
    Reproducible uniform and Gaussian deviates.

    >>> a, b = SeededRandom(42), SeededRandom(42)
    >>> [a.next() for _ in range(3)] == [b.next() for _ in range(3)]
    True
    """

    def __init__(self, seed: int):
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise TypeError(f"Seed must be an integer, got {type(seed).__name__}")

        self.initial_seed = seed
        self._state = seed % LCG_MODULUS

    @property
    def state(self) -> int:
        """Current generator state (the last seed' value)."""
        return self._state

    def next(self) -> float:
        """Advance the recurrence and return a value in [0, 1)."""
        self._state = (self._state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self._state / LCG_MODULUS

    def range(self, low: float, high: float) -> float:
        """Uniform deviate in [low, high)."""
        return low + self.next() * (high - low)

    def gaussian(self, mean: float = 0.0, std_dev: float = 1.0) -> float:
        """Normal deviate via Box-Muller (consumes two draws)."""
        u1 = max(self.next(), MIN_UNIFORM)
        u2 = self.next()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + z0 * std_dev

    def derive(self, stream: int) -> "SeededRandom":
        """
        Create an independent generator for a named consumer.

        The derived seed depends only on the initial seed and the stream
        number, never on how far this generator has advanced.
        """
        return SeededRandom(self.initial_seed + STREAM_STRIDE * (stream + 1))

    def __iter__(self) -> Iterator[float]:
        while True:
            yield self.next()

    def __repr__(self) -> str:
        return f"SeededRandom(seed={self.initial_seed}, state={self._state})"


def validate_random_source():
    """Validate determinism, range and Gaussian moments."""
    a = SeededRandom(12345)
    b = SeededRandom(12345)

    draws_a = [a.next() for _ in range(1000)]
    draws_b = [b.next() for _ in range(1000)]
    if draws_a != draws_b:
        raise AssertionError("Same seed produced different sequences")

    if not all(0.0 <= u < 1.0 for u in draws_a):
        raise AssertionError("Uniform draw outside [0, 1)")

    # First value of the recurrence for seed 12345
    expected = ((12345 * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS) / LCG_MODULUS
    if draws_a[0] != expected:
        raise AssertionError(f"Recurrence mismatch: {draws_a[0]} != {expected}")

    rng = SeededRandom(7)
    samples = [rng.gaussian(10.0, 2.0) for _ in range(20000)]
    mean = sum(samples) / len(samples)
    if abs(mean - 10.0) > 0.1:
        raise AssertionError(f"Gaussian mean off: {mean:.3f}")

    print("✓ Random source validation passed")


if __name__ == "__main__":
    validate_random_source()
