"""
Exception hierarchy for the diagnostic and progression engine.

Two families reach the caller:
- malformed input (bad operands, unknown operator, arithmetic that does not add up)
- invariant violations (a logic defect inside the engine)

"No data yet" situations (empty attempt window, learner without state) are
never raised; they resolve to documented defaults.
"""

from __future__ import annotations


class MathezooError(Exception):
    """Base class for all engine errors."""


class InvalidTaskError(MathezooError):
    """A task attempt is malformed and cannot be processed."""

    def __init__(self, reason: str, field: str | None = None):
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field else reason
        super().__init__(message)


class ArithmeticMismatchError(InvalidTaskError):
    """The claimed result of a task disagrees with the recomputed one."""

    def __init__(self, operation: str, number1: int, number2: int, expected: int, received: int):
        self.operation = operation
        self.number1 = number1
        self.number2 = number2
        self.expected = expected
        self.received = received
        super().__init__(
            f"{number1} {operation} {number2} = {expected}, got {received}",
            field="correct_answer",
        )


class ProgressionInvariantError(MathezooError):
    """Internal progression state violates an invariant (logic defect)."""

    def __init__(self, reason: str, level: int | None = None):
        self.reason = reason
        self.level = level
        prefix = f"level {level}: " if level is not None else ""
        super().__init__(f"{prefix}{reason}")
