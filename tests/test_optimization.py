"""
Tests for the per-reactor optimization workflow.
"""
import pytest

from enzyme_reactor_sim.core import SeededRandom
from enzyme_reactor_sim.monitoring import ParameterAdjustment, Priority
from enzyme_reactor_sim.plant import (
    OptimizationImprovements,
    OptimizationStatus,
    OptimizationWorkflow,
)

RECOMMENDATIONS = (
    ParameterAdjustment("temperature", 33.8, 35.8, "+4.0% yield", Priority.HIGH),
    ParameterAdjustment("pH", 7.55, 7.35, "+3.0% yield", Priority.MEDIUM),
)


@pytest.fixture
def workflow(scheduler):
    return OptimizationWorkflow(scheduler)


def test_start_refuses_second_run_for_same_reactor(workflow, caplog):
    assert workflow.start("RXN-001", RECOMMENDATIONS, SeededRandom(1)) is True
    with caplog.at_level("WARNING"):
        assert workflow.start("RXN-001", RECOMMENDATIONS, SeededRandom(1)) is False
    assert "already in progress" in caplog.text

    assert workflow.start("RXN-002", (), SeededRandom(2)) is True
    assert workflow.is_optimizing("RXN-001")
    assert workflow.is_optimizing("RXN-002")


def test_running_result_before_completion(workflow, scheduler):
    workflow.start("RXN-001", RECOMMENDATIONS, SeededRandom(1))
    scheduler.advance(3.0)

    result = workflow.result_for("RXN-001")
    assert result.status is OptimizationStatus.RUNNING
    assert result.progress == 0.0


def test_completes_after_processing_delay(workflow, scheduler):
    completed = []
    workflow.start("RXN-001", RECOMMENDATIONS, SeededRandom(1), completed.append)

    scheduler.advance(3.5)

    (result,) = completed
    assert result.status is OptimizationStatus.COMPLETED
    assert result.progress == 100.0
    assert result.parameters_analyzed == 14
    assert result.timestamp == 3.5
    assert result.applied_changes == RECOMMENDATIONS
    assert 8.5 <= result.improvements.yield_increase <= 13.5
    assert 12.3 <= result.improvements.efficiency_gain <= 15.3
    assert 7.8 <= result.improvements.cost_reduction <= 9.8
    assert not workflow.is_optimizing("RXN-001")


def test_improvements_are_reproducible():
    assert OptimizationImprovements.draw(SeededRandom(9)) == OptimizationImprovements.draw(
        SeededRandom(9)
    )


def test_cancel_prevents_completion(workflow, scheduler):
    completed = []
    workflow.start("RXN-001", RECOMMENDATIONS, SeededRandom(1), completed.append)
    workflow.cancel("RXN-001")

    scheduler.advance(10.0)

    assert completed == []
    assert workflow.result_for("RXN-001") is None
    assert scheduler.pending("RXN-001") == 0


def test_cancel_leaves_other_reactors_running(workflow, scheduler):
    completed = []
    workflow.start("RXN-001", (), SeededRandom(1), completed.append)
    workflow.start("RXN-002", (), SeededRandom(2), completed.append)
    workflow.cancel("RXN-001")

    scheduler.advance(4.0)

    assert [r.reactor_id for r in completed] == ["RXN-002"]


def test_result_cleared_after_display_window(workflow, scheduler):
    workflow.start("RXN-001", RECOMMENDATIONS, SeededRandom(1))
    scheduler.advance(3.5)
    workflow.schedule_clear("RXN-001")

    scheduler.advance(4.0)
    assert workflow.result_for("RXN-001") is not None

    scheduler.advance(1.5)
    assert workflow.result_for("RXN-001") is None


def test_stale_clear_keeps_newer_result(workflow, scheduler):
    workflow.start("RXN-001", RECOMMENDATIONS, SeededRandom(1))
    scheduler.advance(3.5)
    workflow.schedule_clear("RXN-001")
    scheduler.advance(1.0)

    workflow.start("RXN-001", RECOMMENDATIONS, SeededRandom(2))
    scheduler.advance(3.5)
    scheduler.advance(0.6)

    result = workflow.result_for("RXN-001")
    assert result is not None
    assert result.status is OptimizationStatus.COMPLETED
    assert result.timestamp == 8.0


def test_fired_callbacks_are_untracked(workflow, scheduler):
    for seed in range(50):
        assert workflow.start("RXN-001", (), SeededRandom(seed)) is True
        scheduler.advance(3.5)
        workflow.schedule_clear("RXN-001")
        scheduler.advance(5.0)

    assert workflow.pending_calls("RXN-001") == 0
    assert "RXN-001" not in workflow._handles


def test_pending_calls_counts_scheduled_work(workflow, scheduler):
    workflow.start("RXN-001", (), SeededRandom(1))
    assert workflow.pending_calls("RXN-001") == 1

    workflow.cancel("RXN-001")
    assert workflow.pending_calls("RXN-001") == 0


def test_failing_completion_handler_marks_failed(workflow, scheduler, caplog):
    def explode(result):
        raise RuntimeError("handler broke")

    workflow.start("RXN-001", (), SeededRandom(1), explode)
    with caplog.at_level("ERROR"):
        scheduler.advance(3.5)

    assert workflow.result_for("RXN-001").status is OptimizationStatus.FAILED
    assert "Optimization completion failed" in caplog.text
    assert workflow.start("RXN-001", (), SeededRandom(1)) is True


def test_negative_delays_rejected(scheduler):
    with pytest.raises(ValueError):
        OptimizationWorkflow(scheduler, processing_delay=-1.0)
