"""
Tests for the heuristic prediction engine.
"""
import math

import pytest

from enzyme_reactor_sim.core import SeededRandom
from enzyme_reactor_sim.monitoring import (
    OptimalSetpoints,
    PredictionEngine,
    Priority,
    hours_until_threshold,
)


@pytest.fixture
def engine():
    return PredictionEngine(SeededRandom(12345).derive(0))


def _at_optimum(make_snapshot, **overrides):
    values = dict(temperature=35.8, pH=7.35, flow_rate=165.0)
    values.update(overrides)
    return make_snapshot(**values)


def test_hours_until_threshold_matches_first_order_decay():
    assert hours_until_threshold(95.0) == pytest.approx(math.log(95.0 / 70.0) / 0.002)
    assert hours_until_threshold(70.0) == 0.0
    assert hours_until_threshold(60.0) == 0.0


@pytest.mark.parametrize("activity", [0.0, -5.0, float("nan"), float("-inf")])
def test_hours_until_threshold_guards_degenerate_activity(activity):
    assert hours_until_threshold(activity) == 0.0


def test_deactivation_forecast(engine):
    forecast = engine.forecast_deactivation(90.0)
    assert forecast.hours_remaining == pytest.approx(math.log(90.0 / 70.0) / 0.002)
    assert 0.87 <= forecast.confidence <= 0.97
    assert forecast.suggested_action is None


def test_replenishment_suggested_below_eighty(engine):
    forecast = engine.forecast_deactivation(78.0)
    assert forecast.suggested_action == (
        "Consider enzyme replenishment or batch termination"
    )


def test_confidence_is_reproducible():
    a = PredictionEngine(SeededRandom(7))
    b = PredictionEngine(SeededRandom(7))
    assert [a.forecast_deactivation(90.0).confidence for _ in range(5)] == [
        b.forecast_deactivation(90.0).confidence for _ in range(5)
    ]


def test_no_recommendations_at_optimum(engine, make_snapshot):
    result = engine.optimize_yield(_at_optimum(make_snapshot, product_yield=80.0))
    assert result.recommended_changes == ()
    assert result.predicted_yield == pytest.approx(80.0)
    assert result.confidence_interval == pytest.approx((77.5, 82.5))


def test_recommendations_ordered_with_priorities(engine, make_snapshot):
    snapshot = _at_optimum(
        make_snapshot, temperature=33.8, pH=7.55, flow_rate=145.0, product_yield=80.0
    )
    result = engine.optimize_yield(snapshot)

    params = [c.parameter for c in result.recommended_changes]
    assert params == ["temperature", "pH", "flow_rate"]

    temperature, pH, flow = result.recommended_changes
    assert temperature.priority is Priority.HIGH
    assert temperature.suggested_value == 35.8
    assert temperature.current_value == 33.8
    assert temperature.impact == "+4.0% yield"

    assert pH.priority is Priority.MEDIUM
    assert pH.impact == "+3.0% yield"

    assert flow.priority is Priority.LOW
    assert flow.impact == "+1.0% yield"

    assert result.predicted_yield == pytest.approx(88.0)
    lo, hi = result.confidence_interval
    assert hi - lo == pytest.approx(5.0)


def test_moderate_temperature_deviation_is_medium(engine, make_snapshot):
    result = engine.optimize_yield(_at_optimum(make_snapshot, temperature=36.6))
    (change,) = result.recommended_changes
    assert change.parameter == "temperature"
    assert change.priority is Priority.MEDIUM


def test_predicted_yield_capped(engine, make_snapshot):
    snapshot = _at_optimum(make_snapshot, temperature=30.0, product_yield=90.0)
    assert engine.optimize_yield(snapshot).predicted_yield == 95.0


def test_anomaly_score_bounds_and_flags(engine, make_snapshot):
    clean = engine.detect_anomalies(_at_optimum(make_snapshot, enzyme_activity=100.0))
    assert clean.score == 0.0
    assert clean.parameters == ()

    worn = engine.detect_anomalies(_at_optimum(make_snapshot, enzyme_activity=75.0))
    assert worn.score == pytest.approx(0.25)
    assert not worn.flagged

    drifting = engine.detect_anomalies(_at_optimum(make_snapshot, enzyme_activity=65.0))
    assert drifting.score == pytest.approx(0.35)
    assert drifting.parameters == ("temperature", "pH")

    hot = engine.detect_anomalies(
        _at_optimum(make_snapshot, temperature=45.0, enzyme_activity=50.0)
    )
    assert hot.score == 1.0


def test_predict_combines_all_heuristics(engine, make_snapshot):
    snapshot = make_snapshot(enzyme_activity=72.0)
    prediction = engine.predict(snapshot)
    assert prediction.enzyme_deactivation.hours_remaining > 0
    assert prediction.yield_optimization.current_yield == snapshot.product_yield
    assert 0.0 <= prediction.anomaly_detection.score <= 1.0


def test_predict_takes_only_the_snapshot(engine, make_snapshot):
    with pytest.raises(TypeError):
        engine.predict(make_snapshot(), None)


def test_invalid_setpoints_rejected():
    with pytest.raises(ValueError):
        PredictionEngine(SeededRandom(1), OptimalSetpoints(pH_weight=-1.0))
