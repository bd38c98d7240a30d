"""
Stage History Test Module

Tests for fulqrun/services/stage_history.py.
"""

from datetime import timedelta

from fulqrun.core.clock import fixed_clock
from fulqrun.services.stage_history import initialize_progression, record_stage_change
from fulqrun.tests.conftest import AS_OF


class TestInitializeProgression:
    """Tests for initialize_progression."""

    def test_single_open_entry(self, clock):
        progression = initialize_progression("opp-001", "prospect", clock)

        assert progression.dealId == "opp-001"
        assert progression.currentStage == "prospect"
        assert len(progression.stageHistory) == 1
        entry = progression.stageHistory[0]
        assert entry.stage == "prospect"
        assert entry.enteredDate == AS_OF
        assert entry.exitedDate is None
        assert entry.advancementReason == "Initial stage"

    def test_review_due_in_a_week(self, clock):
        progression = initialize_progression("opp-001", "prospect", clock)
        assert progression.lastEvaluation == AS_OF
        assert progression.nextEvaluationDue == AS_OF + timedelta(days=7)


class TestRecordStageChange:
    """Tests for record_stage_change."""

    def test_closes_previous_entry(self):
        started = initialize_progression("opp-001", "prospect", fixed_clock(AS_OF - timedelta(days=12)))

        updated = record_stage_change(
            started,
            "opp-001",
            "engage",
            reason="Budget confirmed",
            gate_results={"qualified_need": True},
            clock=fixed_clock(AS_OF),
        )

        assert updated.currentStage == "engage"
        assert [entry.stage for entry in updated.stageHistory] == ["prospect", "engage"]
        closed, opened = updated.stageHistory
        assert closed.exitedDate == AS_OF
        assert closed.daysInStage == 12
        assert opened.enteredDate == AS_OF
        assert opened.advancementReason == "Budget confirmed"
        assert updated.gateResults == {"qualified_need": True}
        assert updated.nextEvaluationDue == AS_OF + timedelta(days=7)

    def test_input_not_mutated(self, clock):
        started = initialize_progression("opp-001", "prospect", clock)

        record_stage_change(started, "opp-001", "engage", clock=clock)

        assert started.currentStage == "prospect"
        assert len(started.stageHistory) == 1
        assert started.stageHistory[0].exitedDate is None

    def test_starts_fresh_without_progression(self, clock):
        progression = record_stage_change(None, "opp-002", "acquire", reason="Imported", clock=clock)

        assert progression.dealId == "opp-002"
        assert [entry.stage for entry in progression.stageHistory] == ["acquire"]
        assert progression.stageHistory[0].advancementReason == "Imported"

    def test_keeps_gate_results_when_none_given(self, clock):
        started = initialize_progression("opp-001", "prospect", clock)
        started = started.model_copy(update={"gateResults": {"timeline_defined": True}})

        updated = record_stage_change(started, "opp-001", "engage", clock=clock, review_interval_days=14)

        assert updated.gateResults == {"timeline_defined": True}
        assert updated.nextEvaluationDue == AS_OF + timedelta(days=14)
