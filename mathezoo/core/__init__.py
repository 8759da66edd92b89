"""
Core domain: task models, arithmetic checks and static lookup tables.
"""

from mathezoo.core.arithmetic import (
    ArithmeticCheck,
    build_attempt,
    compute_result,
    ensure_correct_arithmetic,
    has_decade_transition,
    validate_arithmetic,
    validate_student_answer,
    verify_attempt,
)
from mathezoo.core.exceptions import (
    ArithmeticMismatchError,
    InvalidTaskError,
    MathezooError,
    ProgressionInvariantError,
)
from mathezoo.core.models import (
    Operator,
    PlaceholderPosition,
    SolutionStep,
    StrategyLabel,
    Task,
    TaskAttempt,
)

__all__ = [
    # Models
    "Operator",
    "PlaceholderPosition",
    "SolutionStep",
    "StrategyLabel",
    "Task",
    "TaskAttempt",
    # Arithmetic
    "ArithmeticCheck",
    "build_attempt",
    "compute_result",
    "ensure_correct_arithmetic",
    "has_decade_transition",
    "validate_arithmetic",
    "validate_student_answer",
    "verify_attempt",
    # Errors
    "ArithmeticMismatchError",
    "InvalidTaskError",
    "MathezooError",
    "ProgressionInvariantError",
]
