"""
Unit tests for the representation (scaffolding) controller.
"""

import pytest

from mathezoo.progression.representation import (
    PerformanceWindow,
    RepresentationConfig,
    RepresentationController,
    clamp_representation_level,
    describe_representation_level,
    recommended_representation_level,
)


@pytest.fixture
def controller():
    return RepresentationController()


def feed(controller, results, time_ms=6000.0):
    window = PerformanceWindow()
    for is_correct in results:
        window = controller.record_result(window, is_correct, time_ms)
    return window


class TestRecordResult:
    """Rolling window bookkeeping."""

    def test_streaks(self, controller):
        window = feed(controller, [True, True, False, False])
        assert window.consecutive_correct == 0
        assert window.consecutive_errors == 2
        assert window.success_rate == 0.5

    def test_window_is_bounded(self, controller):
        window = feed(controller, [False] * 5 + [True] * 10)
        assert len(window.recent_results) == 10
        assert window.success_rate == 1.0

    def test_first_time_is_taken_directly(self, controller):
        window = controller.record_result(PerformanceWindow(), True, 5000)
        assert window.average_time_ms == 5000

    def test_moving_average(self, controller):
        window = controller.record_result(PerformanceWindow(average_time_ms=5000), True, 10000)
        assert window.average_time_ms == pytest.approx(6500)

    def test_missing_time_keeps_average(self, controller):
        window = controller.record_result(PerformanceWindow(average_time_ms=5000), True, None)
        assert window.average_time_ms == 5000

    def test_input_window_is_not_mutated(self, controller):
        window = PerformanceWindow(recent_results=[True])
        controller.record_result(window, False, 1000)
        assert window.recent_results == [True]

    def test_empty_window_success_rate(self):
        assert PerformanceWindow().success_rate == 0.0


class TestUpdateLevel:
    """Advancement and regression rules."""

    def test_streak_reduces_support(self, controller):
        change = controller.update_level(5, feed(controller, [True] * 5))
        assert change.new_level == 4
        assert change.change_type == "advancement"
        assert "5 correct in a row" in change.reason

    def test_no_advancement_below_minimum(self, controller):
        change = controller.update_level(1, feed(controller, [True] * 5))
        assert change.new_level == 1
        assert change.change_type == "stable"

    def test_fast_accurate_window_reduces_support(self, controller):
        # 9 of 10 correct, fast, but the streak is broken
        results = [True] * 5 + [False] + [True] * 4
        change = controller.update_level(3, feed(controller, results, time_ms=4000))
        assert change.new_level == 2
        assert change.reason == "fast and accurate over the last window"

    def test_slow_accurate_window_is_stable(self, controller):
        results = [True] * 5 + [False] + [True] * 4
        change = controller.update_level(3, feed(controller, results, time_ms=9000))
        assert change.change_type == "stable"

    def test_error_streak_adds_support(self, controller):
        change = controller.update_level(2, feed(controller, [True, False, False, False]))
        assert change.new_level == 3
        assert change.change_type == "regression"

    def test_low_success_rate_adds_support(self, controller):
        change = controller.update_level(2, feed(controller, [False, False, True, False, False, True]))
        assert change.new_level == 3
        assert "success rate 33%" in change.reason

    def test_no_regression_above_maximum(self, controller):
        change = controller.update_level(5, feed(controller, [False] * 4))
        assert change.new_level == 5
        assert not change.changed

    def test_out_of_range_level_is_clamped(self, controller):
        change = controller.update_level(9, PerformanceWindow())
        assert change.previous_level == 5

    def test_custom_streak(self):
        controller = RepresentationController(RepresentationConfig(advance_streak=2))
        assert controller.update_level(4, feed(controller, [True, True])).new_level == 3


class TestRepresentationSets:
    """Offered representations and milestones."""

    def test_full_support(self, controller):
        assert "strategy_hint" in controller.select_representations(5)

    def test_symbolic_only(self, controller):
        assert controller.select_representations(1) == ["symbolic"]
        assert controller.select_representations(0) == ["symbolic"]

    def test_milestone(self, controller):
        assert controller.check_milestone(4, 15) == "Visual Independence I"
        assert controller.check_milestone(4, 14) is None
        assert controller.check_milestone(1, 95) == "Math Master"

    def test_milestone_not_repeated(self, controller):
        assert controller.check_milestone(4, 20, ["Visual Independence I"]) is None


class TestHelpers:
    """Module-level helpers."""

    @pytest.mark.parametrize("level,expected", [(1, 5), (10, 5), (11, 4), (45, 3), (80, 2), (86, 1), (100, 1)])
    def test_recommended_level(self, level, expected):
        assert recommended_representation_level(level) == expected

    def test_clamp(self):
        assert clamp_representation_level(-2) == 1
        assert clamp_representation_level(7) == 5

    def test_describe(self):
        assert describe_representation_level(1) == "Minimal support: symbolic only"
