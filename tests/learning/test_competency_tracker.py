"""
Unit tests for CompetencyTracker.

Tests:
- Error-compensated task mastery (+1 correct, -2 incorrect, floored at 0)
- Competency level table (totality and monotonicity)
- Competency identification from task structure
- Tracker updates, summaries and task difficulty
"""

import pytest

from mathezoo.learning.competency_tracker import (
    CompetencyProgress,
    CompetencyTracker,
    LearnerCompetencies,
    MasteryConfig,
    TaskMastery,
    competency_summary,
    compute_competency_level,
    count_value_digits,
    identify_competencies,
    overall_level,
    task_difficulty,
    task_signature,
    update_task_mastery,
)


@pytest.fixture
def tracker():
    return CompetencyTracker()


class TestTaskMastery:
    """Tests for the compensation rule."""

    def test_documented_sequence(self, now):
        record = None
        scores = []
        for is_correct in [True, False, True, True, True]:
            record = update_task_mastery(record, is_correct, now=now)
            scores.append((record.score, record.mastered))
        assert scores == [(1, False), (0, False), (1, False), (2, False), (3, True)]
        assert record.attempts == 5
        assert record.last_attempt == now

    def test_error_after_mastery_unmasters(self):
        record = TaskMastery(attempts=3, score=3, mastered=True)
        record = update_task_mastery(record, False)
        assert record.score == 1
        assert not record.mastered

    def test_score_never_negative(self):
        record = update_task_mastery(TaskMastery(score=1), False)
        assert record.score == 0

    def test_input_not_mutated(self):
        record = TaskMastery(score=2)
        update_task_mastery(record, True)
        assert record.score == 2

    def test_custom_threshold(self):
        config = MasteryConfig(mastery_threshold=1)
        assert update_task_mastery(None, True, config).mastered


class TestCompetencyLevel:
    """Tests for the level table."""

    @pytest.mark.parametrize(
        "mastered,rate,level",
        [
            (5, 0.0, 7.0),
            (3, 0.8, 7.0),
            (4, 0.0, 6.0),
            (2, 0.75, 6.0),
            (3, 0.0, 5.0),
            (2, 0.7, 5.0),
            (2, 0.0, 4.0),
            (1, 0.65, 4.0),
            (1, 0.0, 3.0),
            (0, 0.6, 3.0),
            (0, 0.5, 2.0),
            (0, 0.3, 1.0),
            (0, 0.29, 0.0),
        ],
    )
    def test_table(self, mastered, rate, level):
        assert compute_competency_level(mastered, rate) == level

    def test_total_and_monotonic(self):
        rates = [i / 20 for i in range(21)]
        for mastered in range(0, 8):
            levels = [compute_competency_level(mastered, r) for r in rates]
            assert all(0.0 <= lvl <= 7.0 for lvl in levels)
            assert levels == sorted(levels)
        for rate in rates:
            levels = [compute_competency_level(m, rate) for m in range(0, 8)]
            assert levels == sorted(levels)

    def test_level_is_derived(self):
        progress = CompetencyProgress("doubles", attempted=10, correct=9, tasks_mastered=["3+3", "4+4"])
        assert progress.level == 6.0
        progress.tasks_mastered.append("5+5")
        assert progress.level == 7.0


class TestTaskSignature:
    """Signatures distinguish placeholder positions."""

    def test_end(self, make_attempt):
        assert task_signature(make_attempt("+", 7, 8)) == "7+8"

    def test_start(self, make_attempt):
        assert task_signature(make_attempt("+", 7, 8, 7, placeholder="start")) == "_+8=15"

    def test_middle(self, make_attempt):
        assert task_signature(make_attempt("-", 15, 8, 8, placeholder="middle")) == "15-_=7"


class TestIdentifyCompetencies:
    """Competency ids from task structure."""

    @pytest.mark.parametrize(
        "op,n1,n2,number_range,expected",
        [
            ("+", 3, 7, 10, ["placeholder_end", "addition_to_10", "number_bonds_10"]),
            ("+", 3, 5, 10, ["placeholder_end", "addition_ZR10_no_transition"]),
            ("-", 10, 4, 10, ["placeholder_end", "subtraction_from_10", "number_bonds_10"]),
            ("-", 9, 4, 10, ["placeholder_end", "subtraction_ZR10_no_transition"]),
            ("+", 12, 8, 20, ["placeholder_end", "complement_to_20"]),
            ("+", 7, 5, 20, ["placeholder_end", "addition_with_transition"]),
            ("+", 12, 5, 20, ["placeholder_end", "addition_ZR20_no_transition"]),
            ("-", 14, 6, 20, ["placeholder_end", "subtraction_with_transition"]),
            ("-", 18, 6, 20, ["placeholder_end", "subtraction_ZR20_no_transition"]),
            ("+", 47, 8, 100, ["placeholder_end", "addition_ZR100_with_transition"]),
            ("+", 60, 40, 100, ["placeholder_end", "complement_to_100"]),
            ("-", 52, 7, 100, ["placeholder_end", "subtraction_ZR100_with_transition"]),
            ("+", 12, 5, 30, ["placeholder_end", "addition_ZR30_no_transition"]),
            ("-", 45, 12, 50, ["placeholder_end", "subtraction_ZR50_no_transition"]),
            ("+", 200, 300, 5000, ["placeholder_end", "addition_ZR1000_no_transition"]),
        ],
    )
    def test_structure(self, make_attempt, op, n1, n2, number_range, expected):
        assert identify_competencies(make_attempt(op, n1, n2, number_range=number_range)) == expected

    def test_doubles(self, make_attempt):
        ids = identify_competencies(make_attempt("+", 6, 6, number_range=20))
        assert ids == ["placeholder_end", "addition_with_transition", "doubles"]

    def test_near_doubles(self, make_attempt):
        assert "near_doubles" in identify_competencies(make_attempt("+", 4, 5, number_range=10))

    def test_complement_and_doubles_in_band(self, make_attempt):
        ids = identify_competencies(make_attempt("+", 25, 25, number_range=50))
        assert ids == ["placeholder_end", "complement_to_50", "doubles"]

    def test_inverse_and_placeholder(self, make_attempt):
        attempt = make_attempt("+", 8, 5, 8, placeholder="start", task_type="inverse_relationship")
        ids = identify_competencies(attempt)
        assert ids[0] == "placeholder_start"
        assert ids[-1] == "inverse_operations"


class TestTracker:
    """Tests for update_after_task()."""

    def test_task_mastery_flows_into_competency(self, tracker, make_attempt, now):
        progress = None
        for _ in range(3):
            progress = tracker.update_after_task(progress, make_attempt("+", 7, 5, number_range=20), now=now)

        assert progress.task_mastery["7+5"].mastered
        record = progress.competencies["addition_with_transition"]
        assert record.tasks_mastered == ["7+5"]
        assert record.attempted == 3
        assert record.success_rate == 1.0
        assert record.last_practiced == now

    def test_error_unmasters_and_is_remembered(self, tracker, make_attempt):
        progress = None
        for _ in range(3):
            progress = tracker.update_after_task(progress, make_attempt("+", 7, 5))
        progress = tracker.update_after_task(progress, make_attempt("+", 7, 5, 11))

        record = progress.competencies["addition_with_transition"]
        assert record.tasks_mastered == []
        assert record.recent_errors == ["7+5"]

        progress = tracker.update_after_task(progress, make_attempt("+", 7, 5))
        assert progress.competencies["addition_with_transition"].recent_errors == []

    def test_recent_errors_are_bounded(self, make_attempt):
        tracker = CompetencyTracker(MasteryConfig(recent_error_limit=2))
        progress = None
        for n1 in (6, 7, 8):
            progress = tracker.update_after_task(progress, make_attempt("+", n1, 5, 1))
        assert progress.competencies["addition_with_transition"].recent_errors == ["8+5", "7+5"]

    def test_explicit_ids_are_deduplicated(self, tracker, make_attempt):
        progress = tracker.update_after_task(None, make_attempt(), ["doubles", "doubles"])
        assert list(progress.competencies) == ["doubles"]
        assert progress.competencies["doubles"].attempted == 1

    def test_input_not_mutated(self, tracker, make_attempt):
        progress = tracker.update_after_task(None, make_attempt())
        before = progress.to_dict()
        tracker.update_after_task(progress, make_attempt("+", 3, 4, 1))
        assert progress.to_dict() == before

    def test_round_trip(self, tracker, make_attempt, now):
        progress = tracker.update_after_task(None, make_attempt("+", 7, 5, 11), now=now)
        restored = LearnerCompetencies.from_dict(progress.to_dict())
        assert restored.to_dict() == progress.to_dict()


class TestSummaries:
    """Instructor overviews."""

    def test_empty(self):
        assert competency_summary(LearnerCompetencies()) == {
            "total": 0,
            "mastered": 0,
            "average_level": 0.0,
            "weak": [],
        }
        assert overall_level(LearnerCompetencies()) == 0.0

    def test_summary(self):
        progress = LearnerCompetencies(
            competencies={
                "doubles": CompetencyProgress("doubles", attempted=10, correct=9, tasks_mastered=["3+3", "4+4"]),
                "complement_to_20": CompetencyProgress("complement_to_20", attempted=4, correct=1),
            }
        )
        summary = competency_summary(progress)
        assert summary["total"] == 2
        assert summary["mastered"] == 1
        assert summary["average_level"] == 3.0
        assert summary["weak"] == [{"id": "complement_to_20", "level": 0.0, "success_rate": 0.25}]

    def test_overall_level_uses_top_five(self):
        competencies = {
            f"c{i}": CompetencyProgress(f"c{i}", attempted=10, correct=10, tasks_mastered=["x"] * i)
            for i in range(7)
        }
        # levels: 3, 4, 6, 7, 7, 7, 7 (rate 1.0) -> top five 7, 7, 7, 7, 6
        assert overall_level(LearnerCompetencies(competencies=competencies)) == pytest.approx(6.8)


class TestTaskDifficulty:
    """Difficulty score factors."""

    def test_value_digits(self):
        assert count_value_digits(70, 30) == 2
        assert count_value_digits(77, 35) == 4

    def test_small_task_with_transition(self):
        assert task_difficulty(7, 8, "+") == pytest.approx(0.5)

    def test_subtraction_with_placeholder(self):
        # 3 value digits .3, size .15, subtraction .15, placeholder .1
        assert task_difficulty(18, 6, "-", "middle") == pytest.approx(0.7)

    def test_capped(self):
        assert task_difficulty(477, 385, "+", "start") == 1.0
