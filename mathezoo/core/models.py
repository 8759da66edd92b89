"""
Shared domain models for task attempts and generated tasks.

A TaskAttempt is the unit of evidence flowing through the engine:

    attempt -> strategy detector -> competency tracker -> level state machine
            -> (every N attempts) diagnostic engine

Attempts are immutable once recorded. Downstream components read them and
never mutate them; derived labels are attached with dataclasses.replace().
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from mathezoo.core.exceptions import InvalidTaskError


class Operator(str, Enum):
    """Arithmetic operator of a task."""

    ADD = "+"
    SUBTRACT = "-"

    @classmethod
    def parse(cls, value: str | Operator) -> Operator:
        """Parse an operator from a symbol or a word ("addition", "minus", ...)."""
        if isinstance(value, Operator):
            return value
        aliases = {
            "+": cls.ADD,
            "add": cls.ADD,
            "addition": cls.ADD,
            "plus": cls.ADD,
            "-": cls.SUBTRACT,
            "−": cls.SUBTRACT,
            "sub": cls.SUBTRACT,
            "subtraction": cls.SUBTRACT,
            "minus": cls.SUBTRACT,
        }
        try:
            return aliases[str(value).strip().lower()]
        except KeyError:
            raise InvalidTaskError(f"unknown operator {value!r}", field="operation") from None

    def apply(self, number1: int, number2: int) -> int:
        if self is Operator.ADD:
            return number1 + number2
        return number1 - number2


class PlaceholderPosition(str, Enum):
    """Which part of the equation the learner had to fill in."""

    START = "start"  # _ + 3 = 8
    MIDDLE = "middle"  # 5 + _ = 8
    END = "end"  # 5 + 3 = _

    @classmethod
    def parse(cls, value: str | PlaceholderPosition | None) -> PlaceholderPosition:
        if value is None:
            return cls.END
        if isinstance(value, PlaceholderPosition):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidTaskError(f"unknown placeholder {value!r}", field="placeholder") from None


class StrategyLabel(str, Enum):
    """Mental strategies the detector can assign."""

    # Step-based labels (also tallied by the diagnostic engine)
    COUNTING_ALL = "counting_all"
    COUNTING_ON = "counting_on"
    DECOMPOSITION = "decomposition"
    DOUBLES = "doubles"
    NEAR_DOUBLES = "near_doubles"
    MAKE_TEN = "make_ten"
    AUTOMATIZED = "automatized"

    # Timing-only labels
    RETRIEVAL = "retrieval"
    DERIVATION = "derivation"
    DOUBLING = "doubling"
    INVERSE = "inverse"
    DECADE_TRANSITION = "decade_transition"
    COUNTING = "counting"


@dataclass(frozen=True)
class SolutionStep:
    """One recorded interaction while solving a task."""

    timestamp: float  # ms since the task was shown
    representation: str  # twenty_frame, number_line, counters, ...
    action: str  # add_counter, split, move_number_line, ...
    value: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> SolutionStep:
        return cls(
            timestamp=float(data.get("timestamp", 0)),
            representation=data.get("representation", ""),
            action=data.get("action", ""),
            value=data.get("value"),
        )


@dataclass(frozen=True)
class TaskAttempt:
    """
    One solved (or abandoned) arithmetic task.

    Attributes:
        operation: + or -
        number1: First operand (>= 0)
        number2: Second operand (>= 0)
        correct_answer: Arithmetically correct result of the equation
        student_answer: What the learner entered (None if abandoned)
        is_correct: Whether the answer was accepted
        time_taken_ms: Solve time in milliseconds (None if not measured)
        solution_steps: Ordered interaction log
        number_range: Number range of the exercise (10, 20, 100, ...)
        placeholder: Position of the unknown
        task_type: Free-form category ("basic", "inverse_relationship", ...)
        level: Progression level the task was generated for
        strategy_used: Strategy label attached by the detector
        representations_used: Representations touched (derived from steps if empty)
        created_at: When the attempt was recorded
    """

    operation: Operator
    number1: int
    number2: int
    correct_answer: int
    student_answer: int | None
    is_correct: bool
    time_taken_ms: float | None = None
    solution_steps: tuple[SolutionStep, ...] = ()
    number_range: int = 20
    placeholder: PlaceholderPosition = PlaceholderPosition.END
    task_type: str = "basic"
    level: int | None = None
    strategy_used: str | None = None
    representations_used: tuple[str, ...] = ()
    created_at: datetime | None = None

    def __post_init__(self):
        object.__setattr__(self, "operation", Operator.parse(self.operation))
        object.__setattr__(self, "placeholder", PlaceholderPosition.parse(self.placeholder))
        object.__setattr__(self, "solution_steps", tuple(self.solution_steps))
        object.__setattr__(self, "representations_used", tuple(self.representations_used))

        for name in ("number1", "number2"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidTaskError(f"operand must be an integer, got {value!r}", field=name)
            if value < 0:
                raise InvalidTaskError(f"operand must be non-negative, got {value}", field=name)
        if self.number_range < 1:
            raise InvalidTaskError(f"number range must be positive, got {self.number_range}", field="number_range")
        if self.time_taken_ms is not None and self.time_taken_ms < 0:
            raise InvalidTaskError("elapsed time must be non-negative", field="time_taken_ms")

    @property
    def result(self) -> int:
        """Result of the underlying equation (number1 op number2)."""
        return self.operation.apply(self.number1, self.number2)

    @property
    def expected_entry(self) -> int:
        """Value the learner has to enter for the placeholder position."""
        if self.placeholder == PlaceholderPosition.START:
            return self.number1
        if self.placeholder == PlaceholderPosition.MIDDLE:
            return self.number2
        return self.result

    @property
    def representations(self) -> tuple[str, ...]:
        """Representations used, falling back to the ones touched in steps."""
        if self.representations_used:
            return self.representations_used
        seen: list[str] = []
        for step in self.solution_steps:
            if step.representation and step.representation not in seen:
                seen.append(step.representation)
        return tuple(seen)

    @property
    def digit_count(self) -> int:
        """Number of digits of the larger operand."""
        return len(str(max(self.number1, self.number2)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation.value,
            "number1": self.number1,
            "number2": self.number2,
            "correct_answer": self.correct_answer,
            "student_answer": self.student_answer,
            "is_correct": self.is_correct,
            "time_taken_ms": self.time_taken_ms,
            "solution_steps": [s.to_dict() for s in self.solution_steps],
            "number_range": self.number_range,
            "placeholder": self.placeholder.value,
            "task_type": self.task_type,
            "level": self.level,
            "strategy_used": self.strategy_used,
            "representations_used": list(self.representations_used),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskAttempt:
        """Build an attempt from a plain record (as stored by the persistence layer)."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        try:
            return cls(
                operation=data["operation"],
                number1=data["number1"],
                number2=data["number2"],
                correct_answer=data["correct_answer"],
                student_answer=data.get("student_answer"),
                is_correct=bool(data["is_correct"]),
                time_taken_ms=data.get("time_taken_ms"),
                solution_steps=tuple(SolutionStep.from_dict(s) for s in data.get("solution_steps") or []),
                number_range=data.get("number_range", 20),
                placeholder=data.get("placeholder"),
                task_type=data.get("task_type", "basic"),
                level=data.get("level"),
                strategy_used=data.get("strategy_used"),
                representations_used=tuple(data.get("representations_used") or ()),
                created_at=created_at,
            )
        except KeyError as e:
            raise InvalidTaskError("missing required field", field=str(e.args[0])) from None


@dataclass
class Task:
    """A generated task (before anyone attempted it)."""

    number1: int
    number2: int
    operation: Operator
    correct_answer: int
    task_type: str
    number_range: int
    target_strategy: str | None = None
    placeholder: PlaceholderPosition = PlaceholderPosition.END
    metadata: dict = field(default_factory=dict)

    def __str__(self) -> str:
        op = self.operation.value
        if self.placeholder == PlaceholderPosition.START:
            return f"_ {op} {self.number2} = {self.correct_answer}"
        if self.placeholder == PlaceholderPosition.MIDDLE:
            return f"{self.number1} {op} _ = {self.correct_answer}"
        return f"{self.number1} {op} {self.number2} = _"

    def to_dict(self) -> dict:
        return {
            "number1": self.number1,
            "number2": self.number2,
            "operation": self.operation.value,
            "correct_answer": self.correct_answer,
            "task_type": self.task_type,
            "number_range": self.number_range,
            "target_strategy": self.target_strategy,
            "placeholder": self.placeholder.value,
            "metadata": self.metadata,
        }
