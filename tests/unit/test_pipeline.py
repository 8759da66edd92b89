"""
Unit tests for LearnerSession (per-attempt pipeline).
"""

import pytest

from config import Settings
from mathezoo.adaptive.diagnostic_engine import default_snapshot
from mathezoo.core.exceptions import ArithmeticMismatchError
from mathezoo.core.models import TaskAttempt
from mathezoo.pipeline import LearnerSession, LearnerState


@pytest.fixture
def session():
    return LearnerSession(Settings(diagnosis_every_n=10, diagnosis_window=20))


def run(session, attempts, now, state=None):
    results = []
    for attempt in attempts:
        result = session.process_attempt(state, attempt, now=now)
        state = result.state
        results.append(result)
    return state, results


class TestProcessAttempt:
    """One attempt through every component."""

    def test_new_learner(self, session, make_attempt, now):
        result = session.process_attempt(None, make_attempt("+", 7, 5, number_range=20), now=now)
        state = result.state
        assert result.attempt.strategy_used == "counting_on"
        assert result.competency_ids == ["placeholder_end", "addition_with_transition"]
        assert state.progression.total_tasks == 1
        assert state.competencies.task_mastery["7+5"].score == 1
        assert state.recent_attempts == [result.attempt]
        assert result.error is None
        assert result.events == []

    def test_strategy_label_attached(self, session, make_attempt, now):
        result = session.process_attempt(None, make_attempt(time_taken_ms=1200), now=now)
        assert result.attempt.strategy_used == "automatized"
        assert result.detection.confidence == 0.9

    def test_wrong_answer_is_classified(self, session, make_attempt, now):
        result = session.process_attempt(None, make_attempt("-", 14, 6, 12), now=now)
        assert result.error.error_type == "decade_boundary_confusion"
        assert result.state.progression.error_patterns["decade_boundary_confusion"].count == 1

    def test_bad_correct_answer_is_rejected(self, session):
        attempt = TaskAttempt("+", 7, 8, 16, 16, True)
        with pytest.raises(ArithmeticMismatchError):
            session.process_attempt(None, attempt)

    def test_contradicting_correct_flag_is_recomputed(self, session, now):
        attempt = TaskAttempt("+", 7, 8, 15, student_answer=14, is_correct=True, created_at=now)
        result = session.process_attempt(None, attempt, now=now)
        progression = result.state.progression
        assert result.attempt.is_correct is False
        assert progression.total_correct == 0
        assert progression.levels[1].consecutive_correct == 0
        assert result.error.error_type == "counting_error_minus_1"
        assert result.state.competencies.task_mastery["7+8"].score == 0

    def test_fast_wrong_answer_is_automatized_and_off_by_one(self, session, make_attempt, make_steps, now):
        steps = make_steps(("symbolic", "type_digit", 1), ("symbolic", "type_digit", 4))
        attempt = make_attempt("+", 7, 8, 14, time_taken_ms=2000.0, solution_steps=steps)
        result = session.process_attempt(None, attempt, now=now)
        assert result.attempt.strategy_used == "automatized"
        assert result.detection.confidence == 0.9
        assert result.error.error_type == "counting_error_minus_1"
        assert result.error.difference == 1
        pattern = result.state.progression.error_patterns["counting_error_minus_1"]
        assert pattern.count == 1
        assert pattern.examples == ["7 + 8 = 15"]

    def test_input_state_is_not_mutated(self, session, make_attempt, now):
        state, _ = run(session, [make_attempt() for _ in range(3)], now)
        before = state.to_dict()
        session.process_attempt(state, make_attempt("+", 3, 4, 1), now=now)
        assert state.to_dict() == before


class TestDiagnosisCadence:
    """Diagnosis runs every N attempts over a bounded window."""

    def test_every_ten_attempts(self, session, make_attempt, now):
        state, results = run(session, [make_attempt() for _ in range(25)], now)
        diagnosed = [i for i, r in enumerate(results) if r.diagnosis is not None]
        assert diagnosed == [9, 19]
        assert state.attempts_since_diagnosis == 5
        assert state.snapshot.to_dict() == results[19].diagnosis.to_dict()
        assert len(state.recent_attempts) == 20
        assert {"type": "diagnosis", "zpd_level": state.snapshot.zpd_level} in results[19].events

    def test_disabled(self, make_attempt, now):
        session = LearnerSession(Settings(diagnosis_every_n=0))
        _, results = run(session, [make_attempt() for _ in range(12)], now)
        assert all(r.diagnosis is None for r in results)

    def test_on_demand_diagnosis(self, session, make_attempt, now):
        state, _ = run(session, [make_attempt() for _ in range(3)], now)
        snapshot = session.diagnose(state)
        assert snapshot.attempts_analyzed == 3
        assert state.snapshot is None


class TestEvents:
    """Milestones surface as events."""

    def test_milestone_event(self, session, make_attempt, now):
        _, results = run(session, [make_attempt() for _ in range(10)], now)
        events = results[-1].events
        milestone = next(e for e in events if e["type"] == "milestone")
        assert milestone["milestone_id"] == "level_1_mastery"
        assert milestone["next_level"] == 2


class TestNextPackage:
    """Package selection from the learner state."""

    def test_cold_start(self, session):
        package = session.next_package(LearnerState())
        assert package.pattern == "neighbor_tasks"
        assert package.number_range == 10
        assert package.difficulty == 2

    def test_after_diagnosis(self, session, make_attempt, now):
        state, _ = run(session, [make_attempt() for _ in range(10)], now)
        package = session.next_package(state)
        assert package.difficulty == min(5, state.snapshot.recommended_difficulty + 1)

    @pytest.mark.parametrize("strategy", ["counting_on", "decomposition", "make_ten", "doubles"])
    def test_first_grade_packages_are_never_empty(self, session, make_attempt, strategy):
        snapshot = default_snapshot()
        snapshot.strategy.dominant_strategy = strategy
        snapshot.recommended_difficulty = 4
        state = LearnerState(snapshot=snapshot, recent_attempts=[make_attempt() for _ in range(5)])
        package = session.next_package(state)
        assert package.difficulty == 5
        assert package.number_range == 10
        assert package.tasks
        assert all(t.correct_answer <= 10 for t in package.tasks)


class TestLearnerState:
    """Persistence round trip."""

    def test_round_trip(self, session, make_attempt, now):
        attempts = [make_attempt() for _ in range(10)] + [make_attempt("+", 7, 5, 11)]
        state, _ = run(session, attempts, now)
        restored = LearnerState.from_dict(state.to_dict())
        assert restored.to_dict() == state.to_dict()

    def test_empty(self):
        assert LearnerState.from_dict(None).progression.current_level == 1
