"""
Task Package Generator.

Builds short, structured task sets ("packages") that follow a named
pedagogical pattern:

    sum_constancy       3+7, 4+6, 5+5: the sum stays, the parts move
    neighbor_tasks      5+3, 6+3, 7+3: one addend slides by one
    inverse_operations  8+5=13, 13-5, 13-8
    analogy_package     3+4, 13+4: the same fact one decade (or step) higher
    error_pattern       pairs that provoke the learner's typical errors
    turning_points      decompositions of 5/10/15/20 (or 25/50/75/100)
    mixed_practice      shuffled sample of the three patterns above

Every task has non-negative operands and a non-negative result, and no
operand or result exceeds the number range. Candidates that would break this
are skipped, never emitted.

Operand pools come from mathezoo.core.tables. Ranges up to 10 draw from the
ten pools, up to 20 from the twenty pools, larger ranges from the hundreds
pools. Most packages hold at most MAX_PACKAGE_SIZE tasks; inverse_operations
always emits its three pairs in full (three tasks each).
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable

from loguru import logger

from mathezoo.core.exceptions import InvalidTaskError
from mathezoo.core.models import Operator, Task
from mathezoo.core.tables import (
    ANALOGY_BASES,
    ANALOGY_STEPS,
    DEFAULT_SEQUENCE_PATTERN,
    ERROR_PATTERN_PAIRS,
    INVERSE_PAIRS,
    NEIGHBOR_SETTINGS,
    STRATEGY_PATTERNS,
    SUM_CONSTANCY_TARGETS,
    TURNING_POINTS,
)

PATTERNS: tuple[str, ...] = (
    "sum_constancy",
    "neighbor_tasks",
    "inverse_operations",
    "analogy_package",
    "error_pattern",
    "turning_points",
    "mixed_practice",
)

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
MAX_PACKAGE_SIZE = 8


@dataclass
class TaskPackage:
    """A generated package of tasks."""

    pattern: str
    tasks: list[Task] = field(default_factory=list)
    target_strategy: str = "counting_on"
    difficulty: int = 3
    number_range: int = 20

    def __len__(self) -> int:
        return len(self.tasks)

    def to_dict(self) -> dict:
        return {
            "pattern": self.pattern,
            "target_strategy": self.target_strategy,
            "difficulty": self.difficulty,
            "number_range": self.number_range,
            "tasks": [t.to_dict() for t in self.tasks],
        }


def _tier(difficulty: int) -> int:
    """Pool tier: 0 for difficulty 1-2, 1 for 3-4, 2 for 5."""
    if difficulty <= 2:
        return 0
    if difficulty <= 4:
        return 1
    return 2


def _pool_key(number_range: int) -> int:
    if number_range <= 10:
        return 10
    return 20 if number_range <= 20 else 100


class TaskPackageGenerator:
    """
    Generate task packages for a pattern, difficulty and number range.

    Randomized selections (turning points at difficulty 5, shuffles) use the
    injected random.Random, so a seeded generator is reproducible.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()
        self._builders: dict[str, Callable[[str, int, int], TaskPackage]] = {
            "sum_constancy": lambda s, d, r: self.sum_constancy(d, r),
            "neighbor_tasks": lambda s, d, r: self.neighbor_tasks(d, r),
            "inverse_operations": lambda s, d, r: self.inverse_operations(d, r),
            "analogy_package": lambda s, d, r: self.analogy_package(d, r),
            "error_pattern": self.error_pattern,
            "turning_points": lambda s, d, r: self.turning_points(d, r),
            "mixed_practice": self.mixed_practice,
        }

    def generate(
        self,
        pattern: str,
        difficulty: int = 3,
        number_range: int = 20,
        strategy: str = "counting_on",
    ) -> TaskPackage:
        """
        Generate one package.

        Args:
            pattern: One of PATTERNS
            difficulty: 1-5 (clamped)
            number_range: Number range (10, 20, 100, ...)
            strategy: Strategy hint used by error_pattern and mixed_practice

        Raises:
            InvalidTaskError: For an unknown pattern or a non-positive range
        """
        if pattern not in self._builders:
            raise InvalidTaskError(f"unknown pattern {pattern!r}", field="pattern")
        if number_range < 1:
            raise InvalidTaskError(f"number range must be positive, got {number_range}", field="number_range")

        difficulty = max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, difficulty))
        package = self._builders[pattern](strategy, difficulty, number_range)
        logger.debug(f"Generated {pattern} package: {len(package.tasks)} tasks (d={difficulty}, range={number_range})")
        return package

    # =========================================================================
    # Patterns
    # =========================================================================

    def sum_constancy(self, difficulty: int, number_range: int = 20) -> TaskPackage:
        target = SUM_CONSTANCY_TARGETS[_pool_key(number_range)][_tier(difficulty)]
        target = min(target, number_range)
        step = max(1, target // 10) if number_range >= 100 else 1

        tasks = []
        for part in range(step, target, step):
            self._append(tasks, part, target - part, Operator.ADD, "pattern_recognition", number_range)
            if len(tasks) >= 6:
                break
        return TaskPackage("sum_constancy", tasks, "decomposition", difficulty, number_range)

    def neighbor_tasks(self, difficulty: int, number_range: int = 20) -> TaskPackage:
        addend, start = NEIGHBOR_SETTINGS[_pool_key(number_range)][_tier(difficulty)]
        # Pull the sliding window back so it fits ranges between the pool sizes
        addend = max(1, min(addend, number_range // 2))
        start = max(1, min(start, number_range - addend - 5))
        tasks = []
        for i in range(6):
            if start + i + addend <= number_range:
                self._append(tasks, start + i, addend, Operator.ADD, "pattern_recognition", number_range)
        return TaskPackage("neighbor_tasks", tasks, "counting_on", difficulty, number_range)

    def inverse_operations(self, difficulty: int, number_range: int = 20) -> TaskPackage:
        tasks = []
        for a, b in INVERSE_PAIRS[_pool_key(number_range)][_tier(difficulty)]:
            total = a + b
            self._append(tasks, a, b, Operator.ADD, "inverse_relationship", number_range)
            self._append(tasks, total, b, Operator.SUBTRACT, "inverse_relationship", number_range)
            self._append(tasks, total, a, Operator.SUBTRACT, "inverse_relationship", number_range)
        return TaskPackage("inverse_operations", tasks, "decomposition", difficulty, number_range)

    def analogy_package(self, difficulty: int, number_range: int = 20) -> TaskPackage:
        key = _pool_key(number_range)
        step = ANALOGY_STEPS[key]
        tasks = []
        for a, b in ANALOGY_BASES[key][_tier(difficulty)]:
            self._append(tasks, a, b, Operator.ADD, "pattern_recognition", number_range)
            if a + step + b <= number_range:
                self._append(tasks, a + step, b, Operator.ADD, "pattern_recognition", number_range)
        return TaskPackage("analogy_package", tasks, "decomposition", difficulty, number_range)

    def error_pattern(self, strategy: str, difficulty: int, number_range: int = 20) -> TaskPackage:
        pools = ERROR_PATTERN_PAIRS[_pool_key(number_range)]
        pairs = pools["make_ten"] if strategy == "make_ten" else pools["counting"]
        tasks = []
        for a, b in pairs:
            self._append(tasks, a, b, Operator.ADD, "error_diagnosis", number_range)
        return TaskPackage("error_pattern", tasks, strategy, difficulty, number_range)

    def turning_points(self, difficulty: int, number_range: int = 20) -> TaskPackage:
        tasks = []
        for point in TURNING_POINTS[_pool_key(number_range)]:
            decompositions = [(i, point - i) for i in range(1, point)]
            if difficulty <= 2:
                selected = decompositions[:3]
            elif difficulty <= 4:
                selected = decompositions[::2][:4]
            else:
                selected = self.rng.sample(decompositions, min(5, len(decompositions)))
            for a, b in selected:
                self._append(tasks, a, b, Operator.ADD, "pattern_recognition", number_range)

        if difficulty >= 3:
            self.rng.shuffle(tasks)
        return TaskPackage("turning_points", tasks[:MAX_PACKAGE_SIZE], "decomposition", difficulty, number_range)

    def mixed_practice(self, strategy: str, difficulty: int, number_range: int = 20) -> TaskPackage:
        tasks = (
            self.sum_constancy(difficulty, number_range).tasks[:3]
            + self.error_pattern(strategy, difficulty, number_range).tasks[:2]
            + self.turning_points(difficulty, number_range).tasks[:3]
        )
        self.rng.shuffle(tasks)
        return TaskPackage("mixed_practice", tasks[:MAX_PACKAGE_SIZE], strategy, difficulty, number_range)

    # =========================================================================
    # Adaptive sequencing
    # =========================================================================

    def next_package(
        self,
        strategy: str | None,
        difficulty: int,
        success_rate: float,
        number_range: int = 20,
    ) -> TaskPackage:
        """
        Pick the next package from recent success.

        Difficulty moves up after >= 80% success and down after <= 40%;
        the pattern follows the learner's preferred strategy.
        """
        if success_rate >= 0.8:
            difficulty = min(MAX_DIFFICULTY, difficulty + 1)
        elif success_rate <= 0.4:
            difficulty = max(MIN_DIFFICULTY, difficulty - 1)

        strategy = strategy or "counting_on"
        pattern = STRATEGY_PATTERNS.get(strategy, DEFAULT_SEQUENCE_PATTERN)
        return self.generate(pattern, difficulty, number_range, strategy)

    @staticmethod
    def _append(
        tasks: list[Task],
        number1: int,
        number2: int,
        operation: Operator,
        task_type: str,
        number_range: int,
    ) -> None:
        result = operation.apply(number1, number2)
        if number1 < 0 or number2 < 0 or result < 0:
            logger.debug(f"Skipped negative candidate {number1} {operation.value} {number2}")
            return
        if max(number1, number2, result) > number_range:
            logger.debug(f"Skipped candidate {number1} {operation.value} {number2} outside range {number_range}")
            return
        tasks.append(
            Task(
                number1=number1,
                number2=number2,
                operation=operation,
                correct_answer=result,
                task_type=task_type,
                number_range=number_range,
            )
        )
