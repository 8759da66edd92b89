"""
Competency Progress Tracker with error-compensated task mastery.

Tracks learner progress on two granularities:
- TaskMastery: one record per distinct task signature ("7+8", "_+5=12")
- CompetencyProgress: one record per competency id ("addition_with_transition")

Error-compensation rule for task mastery:
- correct answer:   +1 point
- incorrect answer: -2 points, floored at 0
- mastered:         score >= 3

Example run:
    correct   -> 1/3
    incorrect -> 0/3  (1 - 2 = -1, floored)
    correct   -> 1/3
    correct   -> 2/3
    correct   -> 3/3  mastered

One error erases roughly two successes, so mastery requires sustained
correctness. This score is never reset, unlike the level streak counter.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from loguru import logger

from mathezoo.core.arithmetic import has_decade_transition
from mathezoo.core.models import Operator, PlaceholderPosition, TaskAttempt
from mathezoo.core.tables import SIMPLE_RANGE_BANDS, TRANSITION_RANGE_BANDS

# Level >= this counts a competency as mastered in summaries
MASTERED_COMPETENCY_LEVEL = 4.0
# Level < this counts a competency as weak in summaries
WEAK_COMPETENCY_LEVEL = 2.0


@dataclass
class MasteryConfig:
    """Scoring constants of the compensation rule."""

    mastery_threshold: int = 3
    correct_reward: int = 1
    error_penalty: int = 2
    recent_error_limit: int = 10

    @classmethod
    def from_settings(cls, settings) -> MasteryConfig:
        return cls(
            mastery_threshold=settings.mastery_threshold,
            correct_reward=settings.mastery_correct_reward,
            error_penalty=settings.error_penalty,
            recent_error_limit=settings.recent_error_limit,
        )


@dataclass
class TaskMastery:
    """Compensated score for one task signature."""

    attempts: int = 0
    score: int = 0
    mastered: bool = False
    last_attempt: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "attempts": self.attempts,
            "score": self.score,
            "mastered": self.mastered,
            "last_attempt": self.last_attempt.isoformat() if self.last_attempt else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TaskMastery:
        last = data.get("last_attempt")
        return cls(
            attempts=data.get("attempts", 0),
            score=data.get("score", 0),
            mastered=data.get("mastered", False),
            last_attempt=datetime.fromisoformat(last) if last else None,
        )


@dataclass
class CompetencyProgress:
    """
    Progress on one competency.

    The level is derived from the mastered task count and the success rate
    on every read; it cannot be set directly.
    """

    competency_id: str
    attempted: int = 0
    correct: int = 0
    tasks_mastered: list[str] = field(default_factory=list)
    recent_errors: list[str] = field(default_factory=list)
    last_practiced: datetime | None = None

    @property
    def success_rate(self) -> float:
        return self.correct / self.attempted if self.attempted else 0.0

    @property
    def level(self) -> float:
        return compute_competency_level(len(self.tasks_mastered), self.success_rate)

    def to_dict(self) -> dict:
        return {
            "competency_id": self.competency_id,
            "level": self.level,
            "attempted": self.attempted,
            "correct": self.correct,
            "success_rate": self.success_rate,
            "tasks_mastered": list(self.tasks_mastered),
            "recent_errors": list(self.recent_errors),
            "last_practiced": self.last_practiced.isoformat() if self.last_practiced else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CompetencyProgress:
        last = data.get("last_practiced")
        return cls(
            competency_id=data["competency_id"],
            attempted=data.get("attempted", 0),
            correct=data.get("correct", 0),
            tasks_mastered=list(data.get("tasks_mastered", [])),
            recent_errors=list(data.get("recent_errors", [])),
            last_practiced=datetime.fromisoformat(last) if last else None,
        )


@dataclass
class LearnerCompetencies:
    """All competency and task-mastery records of one learner."""

    competencies: dict[str, CompetencyProgress] = field(default_factory=dict)
    task_mastery: dict[str, TaskMastery] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "competencies": {k: v.to_dict() for k, v in self.competencies.items()},
            "task_mastery": {k: v.to_dict() for k, v in self.task_mastery.items()},
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> LearnerCompetencies:
        if not data:
            return cls()
        return cls(
            competencies={
                k: CompetencyProgress.from_dict({"competency_id": k, **v})
                for k, v in data.get("competencies", {}).items()
            },
            task_mastery={
                k: TaskMastery.from_dict(v) for k, v in data.get("task_mastery", {}).items()
            },
        )


# =============================================================================
# Pure scoring functions
# =============================================================================


def update_task_mastery(
    current: TaskMastery | None,
    is_correct: bool,
    config: MasteryConfig | None = None,
    now: datetime | None = None,
) -> TaskMastery:
    """Apply the compensation rule to one task signature. Returns a new record."""
    config = config or MasteryConfig()
    current = current or TaskMastery()

    if is_correct:
        score = current.score + config.correct_reward
    else:
        score = max(0, current.score - config.error_penalty)

    return TaskMastery(
        attempts=current.attempts + 1,
        score=score,
        mastered=score >= config.mastery_threshold,
        last_attempt=now or datetime.now(timezone.utc),
    )


def compute_competency_level(mastered_count: int, success_rate: float) -> float:
    """
    Competency level 0.0-7.0 from mastered tasks and success rate.

    Rules are evaluated top-down; the first match wins.
    """
    if mastered_count >= 5 or (mastered_count >= 3 and success_rate >= 0.80):
        return 7.0
    if mastered_count >= 4 or (mastered_count >= 2 and success_rate >= 0.75):
        return 6.0
    if mastered_count >= 3 or (mastered_count >= 2 and success_rate >= 0.70):
        return 5.0
    if mastered_count >= 2 or (mastered_count >= 1 and success_rate >= 0.65):
        return 4.0
    if mastered_count >= 1 or success_rate >= 0.60:
        return 3.0
    if success_rate >= 0.50:
        return 2.0
    if success_rate >= 0.30:
        return 1.0
    return 0.0


def task_signature(attempt: TaskAttempt) -> str:
    """Key identifying a task for mastery tracking: 7+8, _+8=15, 7+_=15."""
    op = attempt.operation.value
    if attempt.placeholder == PlaceholderPosition.START:
        return f"_{op}{attempt.number2}={attempt.correct_answer}"
    if attempt.placeholder == PlaceholderPosition.MIDDLE:
        return f"{attempt.number1}{op}_={attempt.correct_answer}"
    return f"{attempt.number1}{op}{attempt.number2}"


def _range_band(number_range: int) -> int:
    bands = sorted(SIMPLE_RANGE_BANDS + TRANSITION_RANGE_BANDS)
    for band in bands:
        if number_range <= band:
            return band
    return bands[-1]


def identify_competencies(attempt: TaskAttempt) -> list[str]:
    """
    Competency ids exercised by a task.

    Derived from placeholder position, number range band, operator, round
    results, decade transitions, doubles and the inverse-relationship type.
    """
    competencies: list[str] = [f"placeholder_{attempt.placeholder.value}"]

    op = attempt.operation
    n1, n2 = attempt.number1, attempt.number2
    result = attempt.result
    transition = has_decade_transition(n1, n2, op)
    number_range = attempt.number_range

    if number_range <= 10:
        if op == Operator.ADD:
            if result == 10:
                competencies += ["addition_to_10", "number_bonds_10"]
            else:
                competencies.append("addition_ZR10_no_transition")
        else:
            if n1 == 10:
                competencies += ["subtraction_from_10", "number_bonds_10"]
            else:
                competencies.append("subtraction_ZR10_no_transition")

    elif number_range <= 20:
        if op == Operator.ADD:
            if result == 20:
                competencies.append("complement_to_20")
            elif transition:
                competencies.append("addition_with_transition")
            else:
                competencies.append("addition_ZR20_no_transition")
        else:
            if transition:
                competencies.append("subtraction_with_transition")
            else:
                competencies.append("subtraction_ZR20_no_transition")

    else:
        band = _range_band(number_range)
        if band in TRANSITION_RANGE_BANDS:
            if op == Operator.ADD:
                if result == band:
                    competencies.append(f"complement_to_{band}")
                elif transition:
                    competencies.append(f"addition_ZR{band}_with_transition")
                else:
                    competencies.append(f"addition_ZR{band}_no_transition")
            else:
                suffix = "with_transition" if transition else "no_transition"
                competencies.append(f"subtraction_ZR{band}_{suffix}")
        else:
            if op == Operator.ADD:
                if result == band:
                    competencies.append(f"complement_to_{band}")
                else:
                    competencies.append(f"addition_ZR{band}_no_transition")
            else:
                competencies.append(f"subtraction_ZR{band}_no_transition")

    if op == Operator.ADD:
        if n1 == n2:
            competencies.append("doubles")
        elif abs(n1 - n2) == 1:
            competencies.append("near_doubles")

    if attempt.task_type == "inverse_relationship":
        competencies.append("inverse_operations")

    return competencies


# =============================================================================
# Tracker
# =============================================================================


class CompetencyTracker:
    """
    Update task mastery and competency progress after each attempt.

    update_after_task() is pure: it returns a new LearnerCompetencies and
    leaves the input untouched, so callers can retry or discard freely.
    """

    def __init__(self, config: MasteryConfig | None = None):
        self.config = config or MasteryConfig()

    def update_after_task(
        self,
        progress: LearnerCompetencies | None,
        attempt: TaskAttempt,
        competency_ids: Sequence[str] | None = None,
        now: datetime | None = None,
    ) -> LearnerCompetencies:
        """
        Apply one attempt.

        Args:
            progress: Current records (None for a new learner)
            attempt: The attempt to apply
            competency_ids: Competencies exercised (identified from the task if None)
            now: Timestamp to record (defaults to the current UTC time)

        Returns:
            Updated LearnerCompetencies
        """
        now = now or datetime.now(timezone.utc)
        updated = copy.deepcopy(progress) if progress else LearnerCompetencies()
        if competency_ids is None:
            competency_ids = identify_competencies(attempt)

        signature = task_signature(attempt)
        mastery = update_task_mastery(
            updated.task_mastery.get(signature), attempt.is_correct, self.config, now
        )
        updated.task_mastery[signature] = mastery

        for competency_id in dict.fromkeys(competency_ids):
            current = updated.competencies.get(competency_id) or CompetencyProgress(competency_id)
            updated.competencies[competency_id] = self._update_competency(
                current, attempt.is_correct, signature, mastery.mastered, now
            )

        logger.debug(
            f"Task {signature}: score={mastery.score} mastered={mastery.mastered} "
            f"competencies={list(competency_ids)}"
        )
        return updated

    def _update_competency(
        self,
        current: CompetencyProgress,
        is_correct: bool,
        signature: str,
        task_mastered: bool,
        now: datetime,
    ) -> CompetencyProgress:
        tasks_mastered = list(current.tasks_mastered)
        if task_mastered and signature not in tasks_mastered:
            tasks_mastered.append(signature)
        elif not task_mastered and signature in tasks_mastered:
            tasks_mastered.remove(signature)

        recent_errors = list(current.recent_errors)
        if is_correct:
            recent_errors = [e for e in recent_errors if e != signature]
        else:
            if signature not in recent_errors:
                recent_errors.insert(0, signature)
            recent_errors = recent_errors[: self.config.recent_error_limit]

        return CompetencyProgress(
            competency_id=current.competency_id,
            attempted=current.attempted + 1,
            correct=current.correct + (1 if is_correct else 0),
            tasks_mastered=tasks_mastered,
            recent_errors=recent_errors,
            last_practiced=now,
        )


# =============================================================================
# Summaries
# =============================================================================


def competency_summary(progress: LearnerCompetencies) -> dict:
    """
    Overview for instructors.

    Returns:
        Dict with total, mastered (level >= 4), average_level and up to five
        weak competencies (level < 2), weakest first
    """
    records = list(progress.competencies.values())
    if not records:
        return {"total": 0, "mastered": 0, "average_level": 0.0, "weak": []}

    weak = sorted(
        (
            {"id": r.competency_id, "level": r.level, "success_rate": r.success_rate}
            for r in records
            if r.level < WEAK_COMPETENCY_LEVEL
        ),
        key=lambda item: item["level"],
    )[:5]

    return {
        "total": len(records),
        "mastered": sum(1 for r in records if r.level >= MASTERED_COMPETENCY_LEVEL),
        "average_level": sum(r.level for r in records) / len(records),
        "weak": weak,
    }


def overall_level(progress: LearnerCompetencies) -> float:
    """Mean of the five highest competency levels (0.0 without data)."""
    levels = sorted((r.level for r in progress.competencies.values()), reverse=True)[:5]
    return sum(levels) / len(levels) if levels else 0.0


def count_value_digits(*numbers: int) -> int:
    """Non-zero digits across all numbers: 70+30 has 2, 77+35 has 4."""
    return sum(1 for n in numbers for digit in str(n) if digit != "0")


def task_difficulty(
    number1: int,
    number2: int,
    operation: str | Operator,
    placeholder: PlaceholderPosition | str | None = None,
) -> float:
    """
    Difficulty score 0-1 for a task.

    Factors: value digits, number size, operation, placeholder position and
    decade transition.
    """
    op = Operator.parse(operation)
    difficulty = 0.0

    value_digits = count_value_digits(number1, number2)
    if value_digits == 2:
        difficulty += 0.15
    elif value_digits == 3:
        difficulty += 0.30
    elif value_digits >= 4:
        difficulty += 0.45

    largest = max(number1, number2)
    if largest <= 10:
        difficulty += 0.1
    elif largest <= 20:
        difficulty += 0.15
    elif largest <= 100:
        difficulty += 0.25
    else:
        difficulty += 0.35

    difficulty += 0.1 if op == Operator.ADD else 0.15

    if PlaceholderPosition.parse(placeholder) != PlaceholderPosition.END:
        difficulty += 0.1

    if has_decade_transition(number1, number2, op):
        difficulty += 0.15

    return min(difficulty, 1.0)
