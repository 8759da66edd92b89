"""
Unit tests for ErrorAnalyzer and the quick error classifiers.
"""

import pytest

from mathezoo.adaptive.error_analyzer import (
    ErrorAnalyzer,
    ErrorSeverity,
    detect_error_type,
    gap_error_type,
)
from mathezoo.core.arithmetic import build_attempt


@pytest.fixture
def analyzer():
    return ErrorAnalyzer()


class TestErrorCategories:
    """Each category, including the cases where several could match."""

    def test_correct_answer_is_not_an_error(self, analyzer):
        assert analyzer.analyze("+", 7, 8, 15) is None

    def test_doubling_beats_counting(self, analyzer):
        # 6+6=11 is also off by one, doubling is checked first
        result = analyzer.analyze("+", 6, 6, 11)
        assert result.error_type == "doubling_error"
        assert result.severity == ErrorSeverity.MODERATE
        assert result.difference == 1

    def test_halving_subtraction_is_doubling_error(self, analyzer):
        assert analyzer.analyze("-", 14, 7, 6).error_type == "doubling_error"

    @pytest.mark.parametrize("op,n1,n2,answer", [("+", 7, 3, 4), ("-", 9, 4, 13)])
    def test_operation_confusion(self, analyzer, op, n1, n2, answer):
        result = analyzer.analyze(op, n1, n2, answer)
        assert result.error_type == "operation_confusion"
        assert result.severity == ErrorSeverity.SEVERE

    def test_decade_boundary_confusion(self, analyzer):
        # 14-6: 14-4=10, then 10+2=12
        result = analyzer.analyze("-", 14, 6, 12)
        assert result.error_type == "decade_boundary_confusion"
        assert result.severity == ErrorSeverity.SEVERE

    def test_subtraction_reversal_at_ten(self, analyzer):
        result = analyzer.analyze("-", 14, 6, 2)
        assert result.error_type == "subtraction_reversal_at_ten"
        assert result.severity == ErrorSeverity.SEVERE

    def test_digit_reversal(self, analyzer):
        result = analyzer.analyze("+", 15, 8, 32)
        assert result.error_type == "digit_reversal"
        assert result.label == "Digits swapped"

    def test_input_error(self, analyzer):
        result = analyzer.analyze("+", 7, 6, 133)
        assert result.error_type == "input_error"
        assert result.severity == ErrorSeverity.MINOR

    @pytest.mark.parametrize(
        "answer,error_type,severity",
        [
            (11, "counting_error_minus_1", ErrorSeverity.MINOR),
            (13, "counting_error_plus_1", ErrorSeverity.MINOR),
            (10, "counting_error_minus_2", ErrorSeverity.MODERATE),
            (14, "counting_error_plus_2", ErrorSeverity.MODERATE),
        ],
    )
    def test_counting_errors(self, analyzer, answer, error_type, severity):
        result = analyzer.analyze("+", 7, 5, answer)
        assert result.error_type == error_type
        assert result.severity == severity

    def test_off_by_ten(self, analyzer):
        assert analyzer.analyze("+", 25, 8, 23).error_type == "off_by_ten_minus"
        assert analyzer.analyze("+", 25, 8, 43).error_type == "off_by_ten_plus"

    def test_place_value_by_hundred(self, analyzer):
        result = analyzer.analyze("+", 7, 5, 102)
        assert result.error_type == "place_value"
        assert result.severity == ErrorSeverity.SEVERE

    @pytest.mark.parametrize(
        "n1,n2,answer,severity",
        [
            (3, 4, 4, ErrorSeverity.MINOR),
            (7, 5, 5, ErrorSeverity.MODERATE),
            (3, 4, 40, ErrorSeverity.SEVERE),
        ],
    )
    def test_other_severity_by_distance(self, analyzer, n1, n2, answer, severity):
        result = analyzer.analyze("+", n1, n2, answer)
        assert result.error_type == "other"
        assert result.severity == severity

    def test_claimed_correct_answer_is_recomputed(self, analyzer):
        # A wrong claim must not turn a right answer into an error
        assert analyzer.analyze("+", 7, 8, 15, correct_answer=16) is None

    def test_to_dict(self, analyzer):
        data = analyzer.analyze("+", 7, 5, 11).to_dict()
        assert data["severity"] == "minor"
        assert data["placeholder_context"] == "7 + 5 = [12]"


class TestAnalyzeAttempt:
    """Recorded attempts, including placeholder tasks."""

    def test_correct_attempt(self, analyzer, make_attempt):
        assert analyzer.analyze_attempt(make_attempt("+", 7, 8, 15)) is None

    def test_abandoned_attempt(self, analyzer):
        assert analyzer.analyze_attempt(build_attempt("+", 7, 8, None)) is None

    def test_end_placeholder(self, analyzer, make_attempt):
        result = analyzer.analyze_attempt(make_attempt("-", 14, 6, 12))
        assert result.error_type == "decade_boundary_confusion"

    def test_start_placeholder_compares_operands(self, analyzer, make_attempt):
        # _ + 5 = 13 answered with 7
        attempt = make_attempt("+", 8, 5, 7, placeholder="start")
        result = analyzer.analyze_attempt(attempt)
        assert result.error_type == "counting_error_minus_1"
        assert result.difference == 1
        assert result.placeholder_context == "[8] + 5 = 13"

    def test_middle_placeholder_far_off(self, analyzer, make_attempt):
        attempt = make_attempt("-", 13, 5, 12, placeholder="middle")
        result = analyzer.analyze_attempt(attempt)
        assert result.error_type == "other"
        assert result.placeholder_context == "13 - [5] = 8"


class TestDetectErrorType:
    """Coarse error classes."""

    @pytest.mark.parametrize(
        "correct,student,op,strategy,expected",
        [
            (15, 14, "+", None, ("off_by_one", "minor")),
            (15, 13, "+", None, ("off_by_two", "minor")),
            (13, 8, "+", None, ("ten_crossing_error", "severe")),
            (10, 20, "-", None, ("operation_confusion", "severe")),
            (10, 6, "+", "counting_all", ("counting_error", "moderate")),
            (10, 6, "+", None, ("unknown_error", "moderate")),
        ],
    )
    def test_classes(self, correct, student, op, strategy, expected):
        assert detect_error_type(correct, student, op, strategy) == expected


class TestGapErrorType:
    """Error tags stored with knowledge gaps."""

    @pytest.mark.parametrize(
        "op,n1,n2,answer,placeholder,expected",
        [
            ("+", 7, 5, 11, None, "decade_transition_error"),
            ("-", 18, 6, 11, None, "subtraction_ZR20_error"),
            ("+", 21, 3, 25, None, "addition_ZR20_error"),
            ("+", 2, 3, 4, "start", "inverse_thinking_start"),
            ("+", 2, 3, 4, "middle", "inverse_thinking_middle"),
            ("+", 11, 1, 21, None, "digit_reversal"),
            ("-", 35, 12, 32, None, "digit_reversal"),
            ("+", 11, 1, 13, None, "off_by_one"),
            ("+", 11, 1, 18, None, "other"),
        ],
    )
    def test_tags(self, op, n1, n2, answer, placeholder, expected):
        attempt = build_attempt(op, n1, n2, answer, placeholder=placeholder)
        assert gap_error_type(attempt) == expected
