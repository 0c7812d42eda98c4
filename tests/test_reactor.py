"""
Tests for the per-reactor process simulator.
"""
import math
from dataclasses import replace

import numpy as np
import pytest

from enzyme_reactor_sim import UnknownParameterError
from enzyme_reactor_sim.core import (
    DASHBOARD_PROFILE,
    STANDALONE_PROFILE,
    DynamicsProfile,
    ReactorConfig,
    ReactorSimulator,
    SeededRandom,
    EnzymeKineticsModel,
    advance_metrics,
    validate_reactor_simulator,
)
from enzyme_reactor_sim.monitoring import hours_until_threshold


def test_identical_seeds_produce_identical_trajectories():
    a = ReactorSimulator(seed=12345)
    b = ReactorSimulator(seed=12345)
    assert a.metrics == b.metrics
    for _ in range(300):
        assert a.step() == b.step()


def test_different_seeds_produce_different_trajectories():
    a = ReactorSimulator(seed=1)
    b = ReactorSimulator(seed=2)
    assert a.metrics != b.metrics


def test_initial_draws_around_setpoints():
    sim = ReactorSimulator(seed=67890)
    m = sim.metrics
    assert 2.0 <= sim.running_hours < 48.0
    assert 10.0 <= m.substrate_concentration < 15.0
    assert 75.0 <= m.product_yield < 85.0
    assert 85.0 <= m.dissolved_oxygen < 95.0
    assert abs(m.temperature - 35.0) < 1.5
    assert abs(m.pH - 7.4) < 0.5


@pytest.mark.parametrize("seed", [12345, 67890, 11121])
def test_standalone_bounds_hold_for_every_tick(seed):
    sim = ReactorSimulator(seed=seed)
    for _ in range(3000):
        m = sim.step()
        assert 0.0 <= m.enzyme_activity <= 100.0
        assert 0.0 <= m.product_yield <= 100.0
        assert 70.0 <= m.dissolved_oxygen <= 100.0
        assert m.flow_rate >= 0.0
        assert m.substrate_concentration >= 5.0
        assert m.is_finite()


def test_dashboard_profile_clamp_ranges():
    sim = ReactorSimulator(seed=11121, profile=DASHBOARD_PROFILE)
    for _ in range(3000):
        m = sim.step()
        assert 100.0 <= m.flow_rate <= 200.0
        assert 60.0 <= m.product_yield <= 95.0
        assert 75.0 <= m.dissolved_oxygen <= 100.0


def test_seed_12345_scenario_initial_activity():
    config = ReactorConfig(target_temperature=35.0, target_pH=7.4)
    sim = ReactorSimulator(seed=12345, config=config, running_hours=0.0)

    assert 92.0 <= sim.kinetics.initial_activity <= 98.0
    # evaluation scatter is σ = 0.5 around the fresh charge
    assert sim.metrics.enzyme_activity == pytest.approx(
        sim.kinetics.initial_activity, abs=2.5
    )


def test_seed_12345_scenario_hundred_hours():
    """100 h at fixed setpoints: activity falls, time-to-70 % shrinks."""
    hourly = DynamicsProfile(tick_seconds=3600.0)
    config = ReactorConfig(target_temperature=35.0, target_pH=7.4)
    sim = ReactorSimulator(seed=12345, config=config, profile=hourly, running_hours=0.0)
    initial = sim.kinetics.initial_activity

    activities = [sim.step().enzyme_activity for _ in range(100)]

    assert sim.running_hours == pytest.approx(100.0)
    assert activities[-1] < initial

    # Noise-free trajectory: remaining hours strictly decrease while above 70 %
    expected = [sim.kinetics.expected_activity(h, 35.0, 7.4) for h in range(0, 101, 10)]
    remaining = [hours_until_threshold(a) for a in expected]
    assert all(b < a for a, b in zip(remaining, remaining[1:]))
    assert hours_until_threshold(activities[-1]) < hours_until_threshold(initial)


def test_running_time_advances_by_tick():
    sim = ReactorSimulator(seed=5, running_hours=10.0)
    for _ in range(3600):
        sim.step()
    assert sim.running_hours == pytest.approx(11.0)
    assert sim.step_count == 3600


def test_timestamps_advance_by_tick_or_explicit_value():
    sim = ReactorSimulator(seed=5, start_time=1000.0)
    assert sim.step().timestamp == pytest.approx(1001.0)
    assert sim.step(timestamp=1010.0).timestamp == 1010.0


def test_temperature_tracks_new_setpoint():
    sim = ReactorSimulator(seed=21)
    sim.adjust_parameter("temperature", 40.0)
    assert sim.config.target_temperature == 40.0

    for _ in range(1000):
        sim.step()
    tail = [sim.step().temperature for _ in range(200)]
    assert np.mean(tail) == pytest.approx(40.0, abs=0.5)


def test_pH_adjustment_replaces_config():
    sim = ReactorSimulator(seed=21)
    old_config = sim.config
    sim.adjust_parameter("pH", 7.3)
    assert sim.config.target_pH == 7.3
    assert old_config.target_pH == 7.4
    assert sim.config.target_temperature == old_config.target_temperature


def test_flow_adjustment_writes_snapshot():
    sim = ReactorSimulator(seed=21)
    target_before = sim.config.target_flow_rate
    sim.adjust_parameter("flow_rate", 180.0)
    assert sim.metrics.flow_rate == 180.0
    assert sim.config.target_flow_rate == target_before


def test_flow_adjustment_respects_profile_limits():
    sim = ReactorSimulator(seed=21, profile=DASHBOARD_PROFILE)
    sim.adjust_parameter("flow_rate", 500.0)
    assert sim.metrics.flow_rate == 200.0


def test_unknown_parameter_raises():
    sim = ReactorSimulator(seed=21)
    with pytest.raises(UnknownParameterError) as excinfo:
        sim.adjust_parameter("pressure", 2.0)
    assert excinfo.value.parameter == "pressure"
    assert isinstance(excinfo.value, ValueError)


@pytest.mark.parametrize("value", [float("nan"), float("inf"), "7.2", None])
def test_non_finite_or_non_numeric_value_raises(value):
    sim = ReactorSimulator(seed=21)
    with pytest.raises(ValueError):
        sim.adjust_parameter("pH", value)


def test_out_of_range_setpoint_rejected_without_mutation():
    sim = ReactorSimulator(seed=21)
    before = sim.config
    with pytest.raises(ValueError):
        sim.adjust_parameter("pH", 15.0)
    assert sim.config == before


def test_advance_metrics_is_a_pure_step():
    sim = ReactorSimulator(seed=33)
    start = sim.metrics
    kinetics_a = EnzymeKineticsModel(SeededRandom(1), initial_activity=95.0)
    kinetics_b = EnzymeKineticsModel(SeededRandom(1), initial_activity=95.0)

    a = advance_metrics(
        start, sim.config, kinetics_a, kinetics_a.random, 10.0, 1.0, STANDALONE_PROFILE
    )
    b = advance_metrics(
        start, sim.config, kinetics_b, kinetics_b.random, 10.0, 1.0, STANDALONE_PROFILE
    )

    assert a == b
    assert sim.metrics is start
    assert a.timestamp == 1.0


def test_snapshot_is_immutable():
    sim = ReactorSimulator(seed=33)
    with pytest.raises(Exception):
        sim.metrics.pH = 8.0
    updated = replace(sim.metrics, pH=8.0)
    assert updated.pH == 8.0 and sim.metrics.pH != 8.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"target_pH": 15.0},
        {"target_temperature": float("nan")},
        {"target_flow_rate": -1.0},
        {"max_substrate_concentration": 1.0},
    ],
)
def test_invalid_config_rejected(overrides):
    with pytest.raises(ValueError):
        ReactorSimulator(seed=1, config=ReactorConfig(**overrides))


def test_invalid_profile_rejected():
    with pytest.raises(ValueError):
        ReactorSimulator(seed=1, profile=DynamicsProfile(oxygen_limits=(80.0, 120.0)))


def test_snapshot_finite_check_detects_nan(make_snapshot):
    assert make_snapshot().is_finite()
    assert not make_snapshot(pH=math.nan).is_finite()


def test_non_finite_step_leaves_state_untouched(monkeypatch):
    import enzyme_reactor_sim.core.reactor as reactor_module

    sim = ReactorSimulator(seed=7, running_hours=10.0)
    before = (sim.metrics, sim.step_count, sim.running_hours)

    def broken_step(*args, **kwargs):
        return replace(advance_metrics(*args, **kwargs), pH=math.nan)

    monkeypatch.setattr(reactor_module, "advance_metrics", broken_step)
    with pytest.raises(FloatingPointError):
        sim.step()
    assert (sim.metrics, sim.step_count, sim.running_hours) == before

    monkeypatch.undo()
    assert sim.step().is_finite()
    assert sim.step_count == 1


def test_validation_helper_passes(capsys):
    validate_reactor_simulator()
    assert "passed" in capsys.readouterr().out
