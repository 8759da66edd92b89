"""
Error Analyzer for addition and subtraction.

Classifies a wrong answer into a systematic error category. Categories are
checked in a fixed priority order, because several can match the same
answer (e.g. 6+6=11 is both a doubling error and off by one):

    doubling -> operation confusion -> decade boundary -> reversal at ten
    -> digit reversal -> input error -> counting +-1/+-2 -> off by ten
    -> place value -> other

The decade-boundary and reversal-at-ten categories follow Radatz (1979):
14-6 solved as 14-4=10, then 10+2=12 (boundary) or "2" (reversal).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from loguru import logger

from mathezoo.core.arithmetic import ensure_correct_arithmetic, has_decade_transition
from mathezoo.core.models import Operator, PlaceholderPosition, TaskAttempt
from mathezoo.core.tables import ERROR_LABELS, ERROR_SEVERITIES


class ErrorSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


@dataclass
class ErrorAnalysis:
    """Classification of one wrong answer."""

    error_type: str
    severity: ErrorSeverity
    difference: int  # absolute distance to the correct answer
    label: str
    placeholder_context: str = ""

    def to_dict(self) -> dict:
        return {
            "error_type": self.error_type,
            "severity": self.severity.value,
            "difference": self.difference,
            "label": self.label,
            "placeholder_context": self.placeholder_context,
        }


class ErrorAnalyzer:
    """Systematic error diagnosis for single answers."""

    def __init__(
        self,
        severities: Mapping[str, str] = ERROR_SEVERITIES,
        labels: Mapping[str, str] = ERROR_LABELS,
    ):
        self.severities = severities
        self.labels = labels

    def analyze(
        self,
        operation: str | Operator,
        number1: int,
        number2: int,
        student_answer: int,
        placeholder: PlaceholderPosition | str | None = None,
        correct_answer: int | None = None,
    ) -> ErrorAnalysis | None:
        """
        Classify a wrong answer.

        Args:
            operation: + or -
            number1: First operand
            number2: Second operand
            student_answer: The learner's (wrong) answer
            placeholder: Position of the unknown
            correct_answer: Claimed correct answer (recomputed regardless)

        Returns:
            ErrorAnalysis, or None if the answer is correct
        """
        op = Operator.parse(operation)
        correct = ensure_correct_arithmetic(op, number1, number2, correct_answer)
        if student_answer == correct:
            return None

        difference = student_answer - correct
        context = self._placeholder_context(op, number1, number2, correct, placeholder)

        checks = (
            lambda: self._doubling(op, number1, number2),
            lambda: self._operation_confusion(op, number1, number2, student_answer),
            lambda: self._decade_boundary(op, number1, number2, correct, student_answer),
            lambda: self._reversal_at_ten(op, number1, number2, correct, student_answer),
            lambda: self._digit_reversal(correct, student_answer),
            lambda: self._input_error(correct, student_answer),
            lambda: self._counting(difference),
            lambda: self._off_by_ten(difference),
            lambda: self._place_value(op, number1, number2, correct, student_answer),
        )
        for check in checks:
            found = check()
            if found:
                error_type, severity = found
                break
        else:
            error_type, severity = "other", self._other_severity(abs(difference))

        logger.debug(
            f"Error {error_type} for {number1} {op.value} {number2} = {student_answer} (correct {correct})"
        )
        return ErrorAnalysis(
            error_type=error_type,
            severity=ErrorSeverity(severity),
            difference=abs(difference),
            label=self.labels.get(error_type, error_type),
            placeholder_context=context,
        )

    def analyze_attempt(self, attempt: TaskAttempt) -> ErrorAnalysis | None:
        """Classify the error of a recorded attempt (None if correct or abandoned)."""
        if attempt.is_correct or attempt.student_answer is None:
            return None
        # Compare like with like: placeholder answers are operands, not results
        if attempt.placeholder != PlaceholderPosition.END:
            return self._analyze_placeholder(attempt)
        return self.analyze(
            attempt.operation,
            attempt.number1,
            attempt.number2,
            attempt.student_answer,
            attempt.placeholder,
            attempt.correct_answer,
        )

    def _analyze_placeholder(self, attempt: TaskAttempt) -> ErrorAnalysis:
        difference = attempt.student_answer - attempt.expected_entry
        found = self._counting(difference) or self._off_by_ten(difference)
        error_type, severity = found or ("other", self._other_severity(abs(difference)))
        return ErrorAnalysis(
            error_type=error_type,
            severity=ErrorSeverity(severity),
            difference=abs(difference),
            label=self.labels.get(error_type, error_type),
            placeholder_context=self._placeholder_context(
                attempt.operation,
                attempt.number1,
                attempt.number2,
                attempt.correct_answer,
                attempt.placeholder,
            ),
        )

    # === Category checks (return (error_type, severity) or None) ===

    def _typed(self, error_type: str) -> tuple[str, str]:
        return error_type, self.severities.get(error_type, "moderate")

    def _doubling(self, op: Operator, number1: int, number2: int):
        # 6+6 or 14-7: core facts that should be automatized
        if op == Operator.ADD and number1 == number2:
            return self._typed("doubling_error")
        if op == Operator.SUBTRACT and number1 == number2 * 2:
            return self._typed("doubling_error")
        return None

    def _operation_confusion(self, op: Operator, number1: int, number2: int, student: int):
        if op == Operator.ADD and student == abs(number1 - number2):
            return self._typed("operation_confusion")
        if op == Operator.SUBTRACT and student == number1 + number2:
            return self._typed("operation_confusion")
        return None

    @staticmethod
    def _remainder_after_ten(op: Operator, number1: int, number2: int, correct: int) -> int | None:
        """For 14-6 returns 2 (what is left to subtract after reaching 10)."""
        if op != Operator.SUBTRACT or number1 <= 10 or correct >= 10:
            return None
        remaining = number2 - number1 % 10
        return remaining if remaining > 0 else None

    def _decade_boundary(self, op, number1, number2, correct, student):
        remaining = self._remainder_after_ten(op, number1, number2, correct)
        if remaining is not None and student == 10 + remaining:
            return self._typed("decade_boundary_confusion")
        return None

    def _reversal_at_ten(self, op, number1, number2, correct, student):
        remaining = self._remainder_after_ten(op, number1, number2, correct)
        if remaining is not None and student == remaining:
            return self._typed("subtraction_reversal_at_ten")
        return None

    def _digit_reversal(self, correct: int, student: int):
        correct_str, student_str = str(correct), str(student)
        if len(correct_str) == 2 and student_str == correct_str[::-1]:
            return self._typed("digit_reversal")
        return None

    def _input_error(self, correct: int, student: int):
        """A digit typed twice: 133 for 13."""
        student_str, correct_str = str(student), str(correct)
        if len(student_str) <= len(correct_str):
            return None
        for digit, count in Counter(student_str).items():
            if count < 2:
                continue
            candidate = student_str
            for _ in range(count - 1):
                index = candidate.rfind(digit)
                candidate = candidate[:index] + candidate[index + 1:]
            if candidate and int(candidate) == correct:
                return self._typed("input_error")
        return None

    def _counting(self, difference: int):
        names = {
            -1: "counting_error_minus_1",
            1: "counting_error_plus_1",
            -2: "counting_error_minus_2",
            2: "counting_error_plus_2",
        }
        if difference in names:
            return self._typed(names[difference])
        return None

    def _off_by_ten(self, difference: int):
        if difference == -10:
            return self._typed("off_by_ten_minus")
        if difference == 10:
            return self._typed("off_by_ten_plus")
        return None

    def _place_value(self, op, number1, number2, correct, student):
        difference = abs(student - correct)
        if difference in (90, 100):
            return "place_value", "severe"

        # 7+5 written as "112": ones and the carried ten side by side
        if op == Operator.ADD and 10 < correct < 20:
            ones1, ones2 = number1 % 10, number2 % 10
            if ones1 + ones2 >= 10:
                student_str = str(student)
                if "1" in student_str and str((ones1 + ones2) % 10) in student_str:
                    return "place_value", "moderate"

        # Ones nearly right, tens wrong
        if correct >= 10 and student >= 10:
            if abs(correct % 10 - student % 10) <= 2 and correct // 10 != student // 10:
                return "place_value", "moderate"
        return None

    @staticmethod
    def _other_severity(difference: int) -> str:
        if difference <= 3:
            return "minor"
        if difference >= 20:
            return "severe"
        return "moderate"

    @staticmethod
    def _placeholder_context(op, number1, number2, correct, placeholder) -> str:
        """Render the task with the unknown in brackets: 8 + [5] = 13."""
        position = PlaceholderPosition.parse(placeholder)
        parts = [str(number1), str(number2), str(correct)]
        index = {"start": 0, "middle": 1, "end": 2}[position.value]
        parts[index] = f"[{parts[index]}]"
        return f"{parts[0]} {Operator.parse(op).value} {parts[1]} = {parts[2]}"


# =============================================================================
# Quick classifiers
# =============================================================================


def detect_error_type(
    correct_answer: int,
    student_answer: int,
    operation: str | Operator,
    detected_strategy: str | None = None,
) -> tuple[str, str]:
    """
    Coarse error class used alongside strategy detection.

    Returns:
        (error_type, severity)
    """
    op = Operator.parse(operation)
    difference = abs(correct_answer - student_answer)

    if difference == 1:
        return "off_by_one", "minor"
    if difference == 2:
        return "off_by_two", "minor"
    if op == Operator.ADD and correct_answer > 10 and student_answer < 10:
        return "ten_crossing_error", "severe"
    if difference > 5:
        return "operation_confusion", "severe"
    if detected_strategy == "counting_all" and difference > 3:
        return "counting_error", "moderate"
    return "unknown_error", "moderate"


def gap_error_type(attempt: TaskAttempt) -> str:
    """Error tag recorded with a knowledge gap."""
    op = attempt.operation
    n1, n2 = attempt.number1, attempt.number2

    if has_decade_transition(n1, n2, op):
        return "decade_transition_error"
    if op == Operator.SUBTRACT and n1 <= 20:
        return "subtraction_ZR20_error"
    if op == Operator.ADD and attempt.correct_answer > 20:
        return "addition_ZR20_error"
    if attempt.placeholder == PlaceholderPosition.START:
        return "inverse_thinking_start"
    if attempt.placeholder == PlaceholderPosition.MIDDLE:
        return "inverse_thinking_middle"

    if attempt.student_answer is not None:
        student_str = str(attempt.student_answer)
        correct_str = str(attempt.correct_answer)
        if len(student_str) == len(correct_str) and student_str != correct_str and student_str[::-1] == correct_str:
            return "digit_reversal"
        if abs(attempt.correct_answer - attempt.student_answer) == 1:
            return "off_by_one"
    return "other"
