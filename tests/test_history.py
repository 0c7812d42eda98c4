"""
Tests for the bounded metrics history.
"""
import numpy as np
import pytest

from enzyme_reactor_sim.monitoring import DEFAULT_CAPACITY, HistoryPoint, MetricsHistory


def _fill(history, make_snapshot, n, start=1):
    for i in range(start, start + n):
        history.record(make_snapshot(timestamp=float(i), temperature=30.0 + i), f"p-{i}")


def test_default_capacity_is_a_day_of_five_minute_points():
    assert DEFAULT_CAPACITY == 288
    assert MetricsHistory().capacity == 288


@pytest.mark.parametrize("n_ticks", [289, 300, 1000])
def test_history_bounded_with_fifo_eviction(make_snapshot, n_ticks):
    history = MetricsHistory()
    _fill(history, make_snapshot, n_ticks)

    assert len(history) == 288
    assert history.oldest.point_id == f"p-{n_ticks - 287}"
    assert history.newest.point_id == f"p-{n_ticks}"


def test_history_is_chronological(make_snapshot):
    history = MetricsHistory(capacity=10)
    _fill(history, make_snapshot, 25)
    stamps = [p.timestamp for p in history]
    assert stamps == sorted(stamps)


def test_out_of_order_point_rejected(make_snapshot):
    history = MetricsHistory()
    history.record(make_snapshot(timestamp=10.0), "a")
    with pytest.raises(ValueError):
        history.record(make_snapshot(timestamp=5.0), "b")
    assert len(history) == 1


def test_point_exposes_snapshot_fields(make_snapshot):
    point = HistoryPoint("RXN-001-0", make_snapshot(pH=7.1, timestamp=3.0))
    assert point.pH == 7.1
    assert point.timestamp == 3.0
    with pytest.raises(AttributeError):
        point.not_a_metric


def test_latest_returns_oldest_first(make_snapshot):
    history = MetricsHistory()
    _fill(history, make_snapshot, 20)
    ids = [p.point_id for p in history.latest(3)]
    assert ids == ["p-18", "p-19", "p-20"]
    assert history.latest(0) == []
    assert len(history.latest(100)) == 20


def test_values_and_statistics(make_snapshot):
    history = MetricsHistory()
    _fill(history, make_snapshot, 10)

    temps = history.values("temperature")
    assert isinstance(temps, np.ndarray)
    np.testing.assert_allclose(temps, np.arange(31.0, 41.0))

    stats = history.statistics("temperature", last=4)
    assert stats["count"] == 4
    assert stats["mean"] == pytest.approx(38.5)
    assert stats["min"] == 37.0
    assert stats["max"] == 40.0


def test_statistics_on_empty_history_are_zero():
    stats = MetricsHistory().statistics("product_yield")
    assert stats == {"mean": 0.0, "std": 0.0, "min": 0.0, "max": 0.0, "count": 0}


def test_unknown_metric_rejected(make_snapshot):
    history = MetricsHistory()
    _fill(history, make_snapshot, 2)
    with pytest.raises(ValueError):
        history.values("viscosity")


def test_invalid_capacity_rejected():
    with pytest.raises(ValueError):
        MetricsHistory(capacity=0)
