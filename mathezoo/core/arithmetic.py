"""
Arithmetic validation.

The engine is the arithmetic source of truth: every correct answer is
recomputed here and never taken from the caller. A claimed result that
disagrees is either rejected (verify_*) or corrected with a warning
(ensure_correct_arithmetic).
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from loguru import logger

from mathezoo.core.exceptions import ArithmeticMismatchError, InvalidTaskError
from mathezoo.core.models import Operator, PlaceholderPosition, SolutionStep, TaskAttempt


@dataclass
class ArithmeticCheck:
    """Outcome of checking a claimed result."""

    is_valid: bool
    expected: int
    received: int
    error: str | None = None


def compute_result(operation: str | Operator, number1: int, number2: int) -> int:
    """Compute number1 <op> number2, rejecting negative operands and results."""
    op = Operator.parse(operation)
    if number1 < 0 or number2 < 0:
        raise InvalidTaskError(f"negative operand in {number1} {op.value} {number2}", field="operands")
    result = op.apply(number1, number2)
    if result < 0:
        raise InvalidTaskError(f"{number1} {op.value} {number2} has a negative result", field="operands")
    return result


def validate_arithmetic(
    operation: str | Operator,
    number1: int,
    number2: int,
    claimed_result: int,
) -> ArithmeticCheck:
    """
    Check a claimed result against the recomputed one.

    Returns:
        ArithmeticCheck with is_valid False and an error message on mismatch
    """
    op = Operator.parse(operation)
    expected = compute_result(op, number1, number2)
    if expected != claimed_result:
        logger.error(
            f"Arithmetic mismatch: {number1} {op.value} {number2} = {expected}, got {claimed_result}"
        )
        return ArithmeticCheck(
            is_valid=False,
            expected=expected,
            received=claimed_result,
            error=f"{number1} {op.value} {number2} = {expected}, but got {claimed_result}",
        )
    return ArithmeticCheck(is_valid=True, expected=expected, received=claimed_result)


def ensure_correct_arithmetic(
    operation: str | Operator,
    number1: int,
    number2: int,
    claimed_result: int | None = None,
) -> int:
    """Return the correct result, logging when a claimed value had to be corrected."""
    op = Operator.parse(operation)
    expected = compute_result(op, number1, number2)
    if claimed_result is not None and claimed_result != expected:
        logger.warning(
            f"Correcting result of {number1} {op.value} {number2}: {claimed_result} -> {expected}"
        )
    return expected


def validate_student_answer(
    operation: str | Operator,
    number1: int,
    number2: int,
    student_answer: int | None,
) -> tuple[bool, int]:
    """Compare a learner answer with the recomputed result. Returns (is_correct, correct_answer)."""
    expected = compute_result(operation, number1, number2)
    return student_answer is not None and student_answer == expected, expected


def verify_attempt(attempt: TaskAttempt) -> TaskAttempt:
    """
    Reject an attempt whose stored correct answer is wrong.

    The is_correct flag is recomputed from the learner's entry. A flag that
    contradicts the entry is logged and replaced in the returned attempt.

    Raises:
        ArithmeticMismatchError: correct_answer disagrees with the operands
        InvalidTaskError: the equation has a negative result
    """
    check = validate_arithmetic(
        attempt.operation, attempt.number1, attempt.number2, attempt.correct_answer
    )
    if not check.is_valid:
        raise ArithmeticMismatchError(
            attempt.operation.value,
            attempt.number1,
            attempt.number2,
            check.expected,
            check.received,
        )

    is_correct = attempt.student_answer is not None and attempt.student_answer == attempt.expected_entry
    if is_correct != attempt.is_correct:
        logger.warning(
            f"is_correct={attempt.is_correct} contradicts answer {attempt.student_answer} for "
            f"{attempt.number1} {attempt.operation.value} {attempt.number2}, using {is_correct}"
        )
        return dataclasses.replace(attempt, is_correct=is_correct)
    return attempt


def build_attempt(
    operation: str | Operator,
    number1: int,
    number2: int,
    student_answer: int | None,
    *,
    time_taken_ms: float | None = None,
    solution_steps: Iterable[SolutionStep] = (),
    number_range: int = 20,
    placeholder: str | PlaceholderPosition | None = None,
    task_type: str = "basic",
    level: int | None = None,
    claimed_answer: int | None = None,
    created_at: datetime | None = None,
) -> TaskAttempt:
    """
    Build a TaskAttempt with server-side correctness.

    The correct answer is recomputed from the operands (a differing
    claimed_answer is logged and replaced) and is_correct is derived from
    the learner's entry for the placeholder position.
    """
    op = Operator.parse(operation)
    correct_answer = ensure_correct_arithmetic(op, number1, number2, claimed_answer)
    position = PlaceholderPosition.parse(placeholder)
    expected_entry = {
        PlaceholderPosition.START: number1,
        PlaceholderPosition.MIDDLE: number2,
        PlaceholderPosition.END: correct_answer,
    }[position]

    return TaskAttempt(
        operation=op,
        number1=number1,
        number2=number2,
        correct_answer=correct_answer,
        student_answer=student_answer,
        is_correct=student_answer is not None and student_answer == expected_entry,
        time_taken_ms=time_taken_ms,
        solution_steps=tuple(solution_steps),
        number_range=number_range,
        placeholder=position,
        task_type=task_type,
        level=level,
        created_at=created_at or datetime.now(timezone.utc),
    )


def has_decade_transition(number1: int, number2: int, operation: str | Operator) -> bool:
    """Whether the ones digits force a carry (addition) or a borrow (subtraction)."""
    if Operator.parse(operation) == Operator.ADD:
        return (number1 % 10) + (number2 % 10) >= 10
    return number1 % 10 < number2 % 10
