"""
Strategy Detector.

Classifies which mental strategy a learner most likely used for a single
task attempt. Two classifiers are provided:

1. detect(): step-based. Uses the recorded solution steps (which
   representation was touched, which action was taken) plus timing.
   Rules are evaluated in a fixed order, first match wins:
     automatized fast path -> place value (range 100) -> counting
     -> doubles / near doubles / make ten / decomposition -> counting_on

2. detect_from_timing(): timing-only. Used when no step telemetry exists;
   guesses retrieval, derivation, doubling, inverse, decade transition,
   decomposition or counting from elapsed time bands and number structure.

Based on the Gaidoschik / Wittmann taxonomy of arithmetic strategies
("Herleiten" from core facts instead of counting or rote recall).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from mathezoo.core.models import Operator, SolutionStep, StrategyLabel, TaskAttempt

# =============================================================================
# Thresholds (milliseconds)
# =============================================================================

THRESHOLDS = {
    "automatized_ms": 3000,  # Fast path for step-based detection
    "automatized_max_steps": 2,
    "fast_ms": 5000,  # time_pattern bands
    "medium_ms": 15000,
    "retrieval_ms": 2500,  # Timing-only classifier
    "doubling_ms": 5000,
    "inverse_ms": 6000,
    "decade_transition_ms": 8000,
    "decomposition_min_ms": 5000,
    "decomposition_max_ms": 12000,
    "counting_ms": 10000,
    "derivation_min_ms": 3000,
    "derivation_max_ms": 8000,
    "analogy_max_ms": 10000,
}

COUNTING_ACTIONS = ("add_counter", "move_number_line", "fill_frame")
SPLIT_ACTIONS = ("split", "decompose")


@dataclass
class StrategyDetection:
    """Result of classifying one attempt."""

    label: StrategyLabel
    confidence: float
    indicators: list[str] = field(default_factory=list)
    time_pattern: str = "medium"  # fast, medium, slow
    representation_usage: list[str] = field(default_factory=list)
    timing_label: StrategyLabel | None = None  # Secondary guess without step data

    def to_dict(self) -> dict:
        return {
            "label": self.label.value,
            "confidence": self.confidence,
            "indicators": self.indicators,
            "time_pattern": self.time_pattern,
            "representation_usage": self.representation_usage,
            "timing_label": self.timing_label.value if self.timing_label else None,
        }


class StrategyDetector:
    """Detect the strategy behind a task attempt."""

    def __init__(self, thresholds: dict | None = None):
        self.thresholds = {**THRESHOLDS, **(thresholds or {})}

    # =========================================================================
    # Step-based detection
    # =========================================================================

    def detect(
        self,
        operation: str | Operator,
        number1: int,
        number2: int,
        correct_answer: int,
        steps: Sequence[SolutionStep],
        elapsed_ms: float | None,
        number_range: int = 20,
    ) -> StrategyDetection:
        """
        Classify the strategy used for one task.

        Correctness of the answer is deliberately not an input: a fast,
        wrong answer is still classified as automatized.

        Args:
            operation: + or -
            number1: First operand
            number2: Second operand
            correct_answer: Result of the task
            steps: Recorded solution steps (may be empty)
            elapsed_ms: Solve time in milliseconds (None if unknown)
            number_range: Number range of the exercise

        Returns:
            StrategyDetection with label, confidence in [0, 1] and indicators
        """
        op = Operator.parse(operation)
        steps = list(steps)
        t = self.thresholds
        elapsed = float("inf") if elapsed_ms is None else elapsed_ms

        representation_usage: list[str] = []
        for step in steps:
            if step.representation not in representation_usage:
                representation_usage.append(step.representation)
        time_pattern = self.time_pattern(elapsed_ms)

        def result(label: StrategyLabel, confidence: float, indicators: list[str]) -> StrategyDetection:
            logger.debug(
                f"Strategy {label.value} ({confidence:.2f}) for {number1} {op.value} {number2}"
            )
            return StrategyDetection(
                label=label,
                confidence=confidence,
                indicators=indicators,
                time_pattern=time_pattern,
                representation_usage=representation_usage,
            )

        # 1. Automatized: very fast with almost no interaction
        if elapsed < t["automatized_ms"] and len(steps) <= t["automatized_max_steps"]:
            return result(StrategyLabel.AUTOMATIZED, 0.9, ["Very fast answer", "Minimal steps"])

        # 2. Place value strategies in the hundred range
        if number_range == 100:
            detected = self._detect_place_value(op, number1, number2, steps)
            if detected:
                return result(*detected)

        # 3. Counting
        detected = self._detect_counting(steps, number1, number2)
        if detected:
            return result(*detected)

        # 4. Doubles, near doubles, make ten, decomposition
        detected = self._detect_decomposition(op, number1, number2, steps)
        if detected:
            return result(*detected)

        # 5. Most common beginner strategy
        return result(StrategyLabel.COUNTING_ON, 0.5, ["Default strategy"])

    def _detect_place_value(
        self,
        op: Operator,
        number1: int,
        number2: int,
        steps: list[SolutionStep],
    ) -> tuple[StrategyLabel, float, list[str]] | None:
        """47 + 8 -> 47 + 3 + 5, or tens and ones computed separately."""
        if op == Operator.ADD and (number1 % 10) + (number2 % 10) >= 10:
            splits = [s for s in steps if any(a in s.action for a in SPLIT_ACTIONS)]
            if splits:
                return (
                    StrategyLabel.MAKE_TEN,
                    0.85,
                    [f"Place value strategy: {number1} + {number2}", "Split across the ten"],
                )

        if any("tens" in s.action or s.representation == "hundred_field" for s in steps):
            return (
                StrategyLabel.DECOMPOSITION,
                0.8,
                ["Tens and ones computed separately"],
            )
        return None

    def _detect_counting(
        self,
        steps: list[SolutionStep],
        number1: int,
        number2: int,
    ) -> tuple[StrategyLabel, float, list[str]] | None:
        counting = [s for s in steps if any(a in s.action for a in COUNTING_ACTIONS)]
        if not counting:
            return None

        total = number1 + number2
        smaller = min(number1, number2)

        # Counts every element from the start
        if len(counting) >= total - 2:
            return (
                StrategyLabel.COUNTING_ALL,
                0.85,
                [f"All {total} elements counted", "Step-by-step counting"],
            )

        # Starts at the larger number and counts the smaller one on
        if len(counting) >= smaller - 1:
            return (
                StrategyLabel.COUNTING_ON,
                0.8,
                [f"Counted on from {max(number1, number2)}", f"{smaller} steps added"],
            )
        return None

    def _detect_decomposition(
        self,
        op: Operator,
        number1: int,
        number2: int,
        steps: list[SolutionStep],
    ) -> tuple[StrategyLabel, float, list[str]] | None:
        if op == Operator.ADD and number1 == number2:
            return (StrategyLabel.DOUBLES, 0.95, [f"Doubling: {number1} + {number2}"])

        if op == Operator.ADD and abs(number1 - number2) == 1:
            return (StrategyLabel.NEAR_DOUBLES, 0.85, [f"Near doubling: {number1} + {number2}"])

        crosses_ten = number1 + number2 > 10 and (number1 < 10 or number2 < 10)
        if op == Operator.ADD and crosses_ten:
            if any("10" in s.action or s.value == 10 for s in steps):
                return (
                    StrategyLabel.MAKE_TEN,
                    0.9,
                    ["Intermediate step at 10", "Decomposed to the ten"],
                )

        if len(steps) >= 3 and any("split" in s.action or "combine" in s.action for s in steps):
            return (
                StrategyLabel.DECOMPOSITION,
                0.7,
                ["Decomposition used", "Multi-step solution"],
            )
        return None

    def time_pattern(self, elapsed_ms: float | None) -> str:
        """Classify solve time as fast, medium or slow."""
        if elapsed_ms is None:
            return "medium"
        if elapsed_ms < self.thresholds["fast_ms"]:
            return "fast"
        if elapsed_ms < self.thresholds["medium_ms"]:
            return "medium"
        return "slow"

    # =========================================================================
    # Timing-only detection
    # =========================================================================

    def detect_from_timing(
        self,
        operation: str | Operator,
        number1: int,
        number2: int,
        elapsed_ms: float,
    ) -> StrategyDetection:
        """
        Guess the strategy from elapsed time and number structure alone.

        Args:
            operation: + or -
            number1: First operand
            number2: Second operand
            elapsed_ms: Solve time in milliseconds

        Returns:
            StrategyDetection with a single evidence string as indicator
        """
        op = Operator.parse(operation)
        t = self.thresholds
        pattern = self.time_pattern(elapsed_ms)

        def result(label: StrategyLabel, confidence: float, evidence: str) -> StrategyDetection:
            return StrategyDetection(
                label=label,
                confidence=confidence,
                indicators=[evidence],
                time_pattern=pattern,
            )

        if elapsed_ms < t["retrieval_ms"]:
            return result(StrategyLabel.RETRIEVAL, 0.9, "Very fast answer (recalled)")

        if self._is_derivation(op, number1, number2, elapsed_ms):
            return result(StrategyLabel.DERIVATION, 0.85, "Derived from a core fact")

        if (
            op == Operator.ADD
            and abs(number1 - number2) <= 1
            and elapsed_ms < t["doubling_ms"]
        ):
            return result(StrategyLabel.DOUBLING, 0.8, "Doubling or near doubling")

        if op == Operator.SUBTRACT:
            if number1 <= 10 and number2 < number1 and elapsed_ms < t["inverse_ms"]:
                return result(StrategyLabel.INVERSE, 0.8, "Known inverse addition fact")
            if (
                number1 > 10
                and number2 > number1 % 10
                and elapsed_ms < t["decade_transition_ms"]
            ):
                return result(StrategyLabel.DECADE_TRANSITION, 0.75, "Subtraction across the ten")

        if (
            op == Operator.ADD
            and number1 > 10
            and number2 > 0
            and t["decomposition_min_ms"] < elapsed_ms < t["decomposition_max_ms"]
        ):
            return result(StrategyLabel.DECOMPOSITION, 0.7, "Tens and ones split")

        if elapsed_ms > t["counting_ms"]:
            return result(StrategyLabel.COUNTING, 0.6, "Step-by-step counting")

        return result(StrategyLabel.COUNTING_ON, 0.5, "Probably counting on")

    def _is_derivation(self, op: Operator, number1: int, number2: int, elapsed_ms: float) -> bool:
        """Derivation from core facts: 6+7 = 6+6+1, 7+5 = 5+5+2, 13+4 from 3+4."""
        if op != Operator.ADD:
            return False

        t = self.thresholds
        in_band = t["derivation_min_ms"] <= elapsed_ms <= t["derivation_max_ms"]

        if 1 <= abs(number1 - number2) <= 2 and in_band:
            return True

        total = number1 + number2
        if 10 <= total <= 12 and in_band:
            if total == 10 or (abs(number1 - 5) <= 2 and abs(number2 - 5) <= 2):
                return True

        if number1 > 10 or number2 > 10:
            ones1, ones2 = number1 % 10, number2 % 10
            core_fact = (ones1 <= 5 and ones2 <= 5) or abs(ones1 - ones2) <= 1
            if core_fact and t["derivation_min_ms"] <= elapsed_ms <= t["analogy_max_ms"]:
                return True

        return False

    # =========================================================================
    # Attempt helpers
    # =========================================================================

    def detect_attempt(self, attempt: TaskAttempt) -> StrategyDetection:
        """
        Classify a recorded attempt.

        The step-based label is always the primary label. Without step
        telemetry the timing-only guess is attached as timing_label.
        """
        detection = self.detect(
            attempt.operation,
            attempt.number1,
            attempt.number2,
            attempt.correct_answer,
            attempt.solution_steps,
            attempt.time_taken_ms,
            attempt.number_range,
        )
        if not attempt.solution_steps and attempt.time_taken_ms is not None:
            detection.timing_label = self.detect_from_timing(
                attempt.operation, attempt.number1, attempt.number2, attempt.time_taken_ms
            ).label
        return detection
