"""
Tests for threshold alert rules, the alert feed and edge-triggered tracking.
"""
import itertools

import pytest

from enzyme_reactor_sim.monitoring import (
    Alert,
    AlertFeed,
    AlertTracker,
    AlertType,
    MetricsHistory,
    evaluate_rules,
)


@pytest.fixture
def tracker():
    counter = itertools.count(1)
    feed = AlertFeed()
    return AlertTracker("RXN-001", feed, lambda tag: f"alert-RXN-001-{tag}-{next(counter)}")


def _alert(alert_id, alert_type=AlertType.WARNING, resolved=False):
    return Alert(
        id=alert_id,
        reactor_id="RXN-001",
        type=alert_type,
        message=alert_id,
        timestamp=0.0,
        resolved=resolved,
    )


def test_nominal_snapshot_raises_nothing(make_snapshot):
    assert evaluate_rules(make_snapshot()) == []


def test_pH_8_is_critical(make_snapshot):
    (candidate,) = evaluate_rules(make_snapshot(pH=8.0))
    assert candidate.type is AlertType.CRITICAL
    assert candidate.parameter == "pH"
    assert candidate.value == 8.0
    assert candidate.message == "pH deviation detected: 8.00 (target: 7.4)"
    assert candidate.resolved is False


def test_moderate_pH_deviation_is_warning(make_snapshot):
    (candidate,) = evaluate_rules(make_snapshot(pH=7.0))
    assert candidate.type is AlertType.WARNING


def test_low_enzyme_activity(make_snapshot):
    (warning,) = evaluate_rules(make_snapshot(enzyme_activity=72.3))
    assert warning.type is AlertType.WARNING
    assert warning.message == "Low enzyme activity: 72.3%"

    (critical,) = evaluate_rules(make_snapshot(enzyme_activity=65.0))
    assert critical.type is AlertType.CRITICAL
    assert critical.parameter == "enzyme_activity"


def test_high_yield_is_resolved_success(make_snapshot):
    (candidate,) = evaluate_rules(make_snapshot(product_yield=83.1))
    assert candidate.type is AlertType.SUCCESS
    assert candidate.resolved is True
    assert candidate.message == "High yield achieved: 83.1%"


def test_temperature_instability_needs_ten_points(make_snapshot):
    history = MetricsHistory()
    for i in range(9):
        history.record(make_snapshot(temperature=35.0, timestamp=float(i)), f"p-{i}")

    current = make_snapshot(temperature=36.0, timestamp=20.0)
    assert evaluate_rules(current, history) == []

    history.record(make_snapshot(temperature=35.0, timestamp=9.0), "p-9")
    (candidate,) = evaluate_rules(current, history)
    assert candidate.type is AlertType.INFO
    assert candidate.resolved is True
    assert candidate.parameter == "temperature"


def test_stable_temperature_raises_nothing(make_snapshot):
    history = MetricsHistory()
    for i in range(10):
        history.record(make_snapshot(temperature=35.1, timestamp=float(i)), f"p-{i}")
    assert evaluate_rules(make_snapshot(temperature=35.0, timestamp=20.0), history) == []


def test_persistent_condition_alerts_once(tracker, make_snapshot):
    for t in range(5):
        tracker.evaluate(make_snapshot(pH=8.0, timestamp=float(t)))
    assert len(tracker.feed) == 1
    (alert,) = list(tracker.feed)
    assert alert.type is AlertType.CRITICAL
    assert alert.reactor_id == "RXN-001"


def test_condition_realerts_after_clearing(tracker, make_snapshot):
    tracker.evaluate(make_snapshot(pH=8.0, timestamp=0.0))
    tracker.evaluate(make_snapshot(pH=7.4, timestamp=1.0))
    tracker.evaluate(make_snapshot(pH=8.0, timestamp=2.0))
    assert len(tracker.feed) == 2


def test_severity_escalation_raises_new_alert(tracker, make_snapshot):
    tracker.evaluate(make_snapshot(enzyme_activity=73.0, timestamp=0.0))
    raised = tracker.evaluate(make_snapshot(enzyme_activity=68.0, timestamp=1.0))
    assert [a.type for a in raised] == [AlertType.CRITICAL]
    assert [a.type for a in tracker.feed] == [AlertType.CRITICAL, AlertType.WARNING]


def test_persisting_critical_listed_again_after_displacement(tracker, make_snapshot):
    tracker.evaluate(make_snapshot(pH=8.0, timestamp=0.0))
    for i in range(5):
        tracker.feed.push(_alert(f"manual-{i}", AlertType.INFO, resolved=True))
    assert not tracker.feed.has_active_critical()

    raised = tracker.evaluate(make_snapshot(pH=8.0, timestamp=1.0))

    assert [a.type for a in raised] == [AlertType.CRITICAL]
    assert tracker.feed.has_active_critical()
    assert list(tracker.feed)[0].parameter == "pH"

    # still listed, so no duplicate on the next tick
    assert tracker.evaluate(make_snapshot(pH=8.0, timestamp=2.0)) == []


def test_dismissed_alert_not_raised_again(tracker, make_snapshot):
    (alert,) = tracker.evaluate(make_snapshot(pH=8.0, timestamp=0.0))
    assert tracker.feed.dismiss(alert.id)

    assert tracker.evaluate(make_snapshot(pH=8.0, timestamp=1.0)) == []
    assert len(tracker.feed) == 1


def test_displaced_resolved_alert_not_raised_again(tracker, make_snapshot):
    tracker.evaluate(make_snapshot(product_yield=83.0, timestamp=0.0))
    for i in range(5):
        tracker.feed.push(_alert(f"manual-{i}"))

    assert tracker.evaluate(make_snapshot(product_yield=83.0, timestamp=1.0)) == []


def test_warning_alerts_are_logged(tracker, make_snapshot, caplog):
    with caplog.at_level("WARNING"):
        tracker.evaluate(make_snapshot(pH=8.0))
    assert "pH deviation detected" in caplog.text


def test_feed_keeps_five_newest_first():
    feed = AlertFeed()
    for i in range(8):
        feed.push(_alert(f"a{i}"))
    assert [a.id for a in feed] == ["a7", "a6", "a5", "a4", "a3"]


def test_dismiss_is_one_way_and_idempotent():
    feed = AlertFeed()
    feed.push(_alert("a1", AlertType.CRITICAL))
    assert feed.has_active_critical()

    assert feed.dismiss("a1") is True
    assert feed.get("a1").resolved is True
    assert not feed.has_active_critical()

    assert feed.dismiss("a1") is True
    assert feed.get("a1").resolved is True


def test_dismiss_unknown_alert_returns_false():
    feed = AlertFeed()
    feed.push(_alert("a1"))
    assert feed.dismiss("missing") is False


def test_resolve_never_reverts():
    alert = _alert("a1", resolved=True)
    assert alert.resolve() is alert
    assert _alert("a2").resolve().resolved is True


def test_active_critical_count_and_unresolved():
    feed = AlertFeed()
    feed.push(_alert("c1", AlertType.CRITICAL))
    feed.push(_alert("c2", AlertType.CRITICAL, resolved=True))
    feed.push(_alert("w1", AlertType.WARNING))
    feed.push(_alert("s1", AlertType.SUCCESS, resolved=True))

    assert feed.count_active_critical() == 1
    assert {a.id for a in feed.unresolved()} == {"c1", "w1"}


def test_reset_forgets_active_conditions(tracker, make_snapshot):
    tracker.evaluate(make_snapshot(pH=8.0, timestamp=0.0))
    tracker.reset()
    tracker.evaluate(make_snapshot(pH=8.0, timestamp=1.0))
    assert len(tracker.feed) == 2
