"""
Level Progression State Machine.

Each learner climbs through 100 levels. A level is mastered by answering
`milestone_target` (default 10) tasks in a row correctly. The streak counter
lives on the level entry and is reset by every wrong answer.

Per attempt:
- correct: counter + 1. When it reaches the target on a level that is not
  yet mastered, a milestone fires, the counter resets to 0 and the learner
  moves to the next level (level 100 is terminal: the milestone fires and
  the level stays).
- incorrect: counter reset to 0. A wrong answer on a level below the current
  one records a knowledge gap keyed by (level, error type).

Alongside the levels the machine keeps learner aggregates (streak, daily
stats, error history, error patterns) and the representation level.

process() never mutates its input: it returns a new ProgressionState.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Mapping

from loguru import logger

from mathezoo.adaptive.error_analyzer import ErrorAnalysis, ErrorAnalyzer, gap_error_type
from mathezoo.core.exceptions import ProgressionInvariantError
from mathezoo.core.models import TaskAttempt
from mathezoo.core.tables import (
    DEFAULT_NUMBER_RANGE,
    FINAL_STAGE,
    LEVEL_NAMES,
    LEVEL_THEMES,
    MAX_REPRESENTATION_LEVEL,
    NUMBER_RANGE_BANDS,
    SEVERITY_WEIGHTS,
    STAGE_BOUNDS,
)
from mathezoo.progression.representation import (
    PerformanceWindow,
    RepresentationChange,
    RepresentationController,
)


MIN_LEVEL = 1


@dataclass
class ProgressionConfig:
    """Configuration for level progression."""

    milestone_target: int = 10
    max_levels: int = 100
    error_history_limit: int = 200
    error_pattern_examples: int = 10

    @classmethod
    def from_settings(cls, settings) -> ProgressionConfig:
        return cls(
            milestone_target=settings.milestone_target,
            max_levels=settings.max_levels,
            error_history_limit=settings.error_history_limit,
            error_pattern_examples=settings.error_pattern_examples,
        )


class GapStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_dt(value) -> datetime | None:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


# =============================================================================
# State records
# =============================================================================


@dataclass
class LevelState:
    """Progress on a single level."""

    level: int
    consecutive_correct: int = 0  # counter toward the milestone
    total_attempts: int = 0
    correct: int = 0
    incorrect: int = 0
    timed_attempts: int = 0
    average_time_ms: float = 0.0
    unlocked_at: datetime | None = None
    mastered_at: datetime | None = None
    last_attempt_at: datetime | None = None

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.correct / self.total_attempts

    @property
    def is_mastered(self) -> bool:
        return self.mastered_at is not None

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "consecutive_correct": self.consecutive_correct,
            "total_attempts": self.total_attempts,
            "correct": self.correct,
            "incorrect": self.incorrect,
            "success_rate": self.success_rate,
            "timed_attempts": self.timed_attempts,
            "average_time_ms": self.average_time_ms,
            "unlocked_at": _iso(self.unlocked_at),
            "mastered_at": _iso(self.mastered_at),
            "last_attempt_at": _iso(self.last_attempt_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> LevelState:
        return cls(
            level=data["level"],
            consecutive_correct=data.get("consecutive_correct", 0),
            total_attempts=data.get("total_attempts", 0),
            correct=data.get("correct", 0),
            incorrect=data.get("incorrect", 0),
            timed_attempts=data.get("timed_attempts", 0),
            average_time_ms=data.get("average_time_ms", 0.0),
            unlocked_at=_parse_dt(data.get("unlocked_at")),
            mastered_at=_parse_dt(data.get("mastered_at")),
            last_attempt_at=_parse_dt(data.get("last_attempt_at")),
        )


@dataclass
class KnowledgeGap:
    """A regression on an earlier level."""

    level: int
    error_type: str
    detected_at: datetime
    error_count: int = 1
    status: GapStatus = GapStatus.ACTIVE
    resolved_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "error_type": self.error_type,
            "detected_at": _iso(self.detected_at),
            "error_count": self.error_count,
            "status": self.status.value,
            "resolved_at": _iso(self.resolved_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> KnowledgeGap:
        return cls(
            level=data["level"],
            error_type=data["error_type"],
            detected_at=_parse_dt(data["detected_at"]),
            error_count=data.get("error_count", 1),
            status=GapStatus(data.get("status", "active")),
            resolved_at=_parse_dt(data.get("resolved_at")),
        )


@dataclass
class ErrorRecord:
    """One entry of the learner's error history."""

    error_type: str
    severity: str
    task: str
    student_answer: int | None
    level: int
    recorded_at: datetime

    def to_dict(self) -> dict:
        return {
            "error_type": self.error_type,
            "severity": self.severity,
            "task": self.task,
            "student_answer": self.student_answer,
            "level": self.level,
            "recorded_at": _iso(self.recorded_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> ErrorRecord:
        return cls(
            error_type=data["error_type"],
            severity=data["severity"],
            task=data["task"],
            student_answer=data.get("student_answer"),
            level=data["level"],
            recorded_at=_parse_dt(data["recorded_at"]),
        )


@dataclass
class ErrorPattern:
    """Aggregate of one recurring error type."""

    error_type: str
    count: int
    first_seen: datetime
    last_seen: datetime
    examples: list[str] = field(default_factory=list)
    severity_score: float = 0.0  # running mean of severity weights

    def to_dict(self) -> dict:
        return {
            "error_type": self.error_type,
            "count": self.count,
            "first_seen": _iso(self.first_seen),
            "last_seen": _iso(self.last_seen),
            "examples": list(self.examples),
            "severity_score": self.severity_score,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ErrorPattern:
        return cls(
            error_type=data["error_type"],
            count=data["count"],
            first_seen=_parse_dt(data["first_seen"]),
            last_seen=_parse_dt(data["last_seen"]),
            examples=list(data.get("examples", [])),
            severity_score=data.get("severity_score", 0.0),
        )


@dataclass
class DailyStats:
    tasks: int = 0
    correct: int = 0
    time_ms: float = 0.0

    def to_dict(self) -> dict:
        return {"tasks": self.tasks, "correct": self.correct, "time_ms": self.time_ms}


@dataclass
class ProgressionState:
    """
    Everything the progression machine knows about one learner.

    Level entries are created lazily: a learner without any attempts has
    no entries and sits on level 1 with full representation support.
    """

    current_level: int = MIN_LEVEL
    levels: dict[int, LevelState] = field(default_factory=dict)
    gaps: list[KnowledgeGap] = field(default_factory=list)
    total_tasks: int = 0
    total_correct: int = 0
    streak: int = 0
    best_streak: int = 0
    daily_stats: dict[str, DailyStats] = field(default_factory=dict)
    error_history: list[ErrorRecord] = field(default_factory=list)
    error_patterns: dict[str, ErrorPattern] = field(default_factory=dict)
    representation_level: int = MAX_REPRESENTATION_LEVEL
    performance: PerformanceWindow = field(default_factory=PerformanceWindow)
    representation_milestones: list[str] = field(default_factory=list)

    def level_state(self, level: int, now: datetime | None = None) -> LevelState:
        """Entry for a level, created on first access."""
        if level not in self.levels:
            self.levels[level] = LevelState(level=level, unlocked_at=now)
        return self.levels[level]

    @property
    def active_gaps(self) -> list[KnowledgeGap]:
        return [g for g in self.gaps if g.status == GapStatus.ACTIVE]

    @property
    def mastered_levels(self) -> list[int]:
        return sorted(level for level, entry in self.levels.items() if entry.is_mastered)

    def to_dict(self) -> dict:
        return {
            "current_level": self.current_level,
            "levels": {str(k): v.to_dict() for k, v in sorted(self.levels.items())},
            "gaps": [g.to_dict() for g in self.gaps],
            "total_tasks": self.total_tasks,
            "total_correct": self.total_correct,
            "streak": self.streak,
            "best_streak": self.best_streak,
            "daily_stats": {k: v.to_dict() for k, v in self.daily_stats.items()},
            "error_history": [e.to_dict() for e in self.error_history],
            "error_patterns": {k: v.to_dict() for k, v in self.error_patterns.items()},
            "representation_level": self.representation_level,
            "performance": self.performance.to_dict(),
            "representation_milestones": list(self.representation_milestones),
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> ProgressionState:
        if not data:
            return cls()
        return cls(
            current_level=data.get("current_level", MIN_LEVEL),
            levels={int(k): LevelState.from_dict(v) for k, v in data.get("levels", {}).items()},
            gaps=[KnowledgeGap.from_dict(g) for g in data.get("gaps", [])],
            total_tasks=data.get("total_tasks", 0),
            total_correct=data.get("total_correct", 0),
            streak=data.get("streak", 0),
            best_streak=data.get("best_streak", 0),
            daily_stats={
                k: DailyStats(v.get("tasks", 0), v.get("correct", 0), v.get("time_ms", 0.0))
                for k, v in data.get("daily_stats", {}).items()
            },
            error_history=[ErrorRecord.from_dict(e) for e in data.get("error_history", [])],
            error_patterns={
                k: ErrorPattern.from_dict(v) for k, v in data.get("error_patterns", {}).items()
            },
            representation_level=data.get("representation_level", MAX_REPRESENTATION_LEVEL),
            performance=PerformanceWindow.from_dict(data.get("performance")),
            representation_milestones=list(data.get("representation_milestones", [])),
        )


# =============================================================================
# Events
# =============================================================================


@dataclass
class MilestoneEvent:
    """Emitted when a level is mastered."""

    milestone_id: str
    level: int
    title: str
    icon: str
    next_level: int
    stats: dict
    achieved_at: datetime

    def to_dict(self) -> dict:
        return {
            "milestone_id": self.milestone_id,
            "level": self.level,
            "title": self.title,
            "icon": self.icon,
            "next_level": self.next_level,
            "stats": dict(self.stats),
            "achieved_at": _iso(self.achieved_at),
        }


@dataclass
class KnowledgeGapEvent:
    """Emitted when a regression is recorded."""

    gap: KnowledgeGap
    is_new: bool

    def to_dict(self) -> dict:
        return {"is_new": self.is_new, **self.gap.to_dict()}


@dataclass
class ProgressionUpdate:
    """Result of processing one attempt."""

    state: ProgressionState
    level: int
    milestone: MilestoneEvent | None = None
    gap: KnowledgeGapEvent | None = None
    error: ErrorAnalysis | None = None
    representation_change: RepresentationChange | None = None
    representation_milestone: str | None = None

    @property
    def leveled_up(self) -> bool:
        return self.milestone is not None and self.milestone.next_level != self.milestone.level


# =============================================================================
# State machine
# =============================================================================


class LevelStateMachine:
    """Apply attempts to a learner's progression state."""

    def __init__(
        self,
        config: ProgressionConfig | None = None,
        representation: RepresentationController | None = None,
        error_analyzer: ErrorAnalyzer | None = None,
        level_names: Mapping[int, str] = LEVEL_NAMES,
    ):
        self.config = config or ProgressionConfig()
        self.representation = representation or RepresentationController()
        self.error_analyzer = error_analyzer or ErrorAnalyzer()
        self.level_names = level_names

    def clamp_level(self, level: int) -> int:
        """Clamp a level into 1..max_levels, warning when it was out of range."""
        clamped = max(MIN_LEVEL, min(self.config.max_levels, level))
        if clamped != level:
            logger.warning(f"Level {level} out of range, clamped to {clamped}")
        return clamped

    def process(
        self,
        state: ProgressionState | None,
        attempt: TaskAttempt,
        error_analysis: ErrorAnalysis | None = None,
        now: datetime | None = None,
    ) -> ProgressionUpdate:
        """
        Apply one attempt.

        Args:
            state: Current progression (None for a new learner)
            attempt: The attempt; attempt.level defaults to the current level
            error_analysis: Pre-computed error classification (computed if None)
            now: Timestamp to record (defaults to the current UTC time)

        Returns:
            ProgressionUpdate with the new state and any events

        Raises:
            ProgressionInvariantError: If the stored counter already exceeds the target
        """
        now = now or datetime.now(timezone.utc)
        new = copy.deepcopy(state) if state else ProgressionState()
        new.current_level = self.clamp_level(new.current_level)

        level = self.clamp_level(attempt.level if attempt.level is not None else new.current_level)
        entry = new.level_state(level, now)
        self._record_attempt(entry, attempt, now)
        self._record_learner(new, attempt, now)

        update = ProgressionUpdate(state=new, level=level)
        if attempt.is_correct:
            update.milestone = self._advance(new, entry, now)
        else:
            entry.consecutive_correct = 0
            if error_analysis is None:
                error_analysis = self.error_analyzer.analyze_attempt(attempt)
            update.error = error_analysis
            if error_analysis is not None:
                self._record_error(new, attempt, error_analysis, level, now)
            if level < new.current_level:
                update.gap = self._record_gap(new, attempt, level, now)

        self._update_representation(new, attempt, update)
        logger.debug(
            f"Level {level}: counter={entry.consecutive_correct}/{self.config.milestone_target} "
            f"current={new.current_level} correct={attempt.is_correct}"
        )
        return update

    def _record_attempt(self, entry: LevelState, attempt: TaskAttempt, now: datetime) -> None:
        entry.total_attempts += 1
        if attempt.is_correct:
            entry.correct += 1
        else:
            entry.incorrect += 1
        if attempt.time_taken_ms is not None:
            n = entry.timed_attempts
            entry.average_time_ms = (entry.average_time_ms * n + attempt.time_taken_ms) / (n + 1)
            entry.timed_attempts = n + 1
        entry.last_attempt_at = now

    def _record_learner(self, state: ProgressionState, attempt: TaskAttempt, now: datetime) -> None:
        state.total_tasks += 1
        if attempt.is_correct:
            state.total_correct += 1
            state.streak += 1
            state.best_streak = max(state.best_streak, state.streak)
        else:
            state.streak = 0

        day = state.daily_stats.setdefault(now.date().isoformat(), DailyStats())
        day.tasks += 1
        day.correct += 1 if attempt.is_correct else 0
        day.time_ms += attempt.time_taken_ms or 0.0

    def _advance(self, state: ProgressionState, entry: LevelState, now: datetime) -> MilestoneEvent | None:
        target = self.config.milestone_target
        if entry.consecutive_correct >= target and not entry.is_mastered:
            # The counter fires at exactly the target, so it can never be stored at or above it
            logger.error(
                f"Level {entry.level}: counter {entry.consecutive_correct} reached "
                f"target {target} without a milestone"
            )
            raise ProgressionInvariantError(
                f"counter {entry.consecutive_correct} at or above target {target}",
                level=entry.level,
            )

        entry.consecutive_correct += 1
        if entry.is_mastered:
            # Practice on a mastered level: a full streak clears its gaps, nothing to unlock
            if entry.consecutive_correct == target:
                self.resolve_gaps(state, entry.level, now)
            entry.consecutive_correct = min(entry.consecutive_correct, target)
            return None
        if entry.level != state.current_level:
            # Only the current level unlocks the next one
            entry.consecutive_correct = min(entry.consecutive_correct, target - 1)
            logger.debug(f"Level {entry.level} is not the current level {state.current_level}, no milestone")
            return None
        if entry.consecutive_correct < target:
            return None

        entry.mastered_at = now
        entry.consecutive_correct = 0
        self.resolve_gaps(state, entry.level, now)

        next_level = entry.level
        if entry.level < self.config.max_levels:
            next_level = entry.level + 1
            state.current_level = next_level
            state.level_state(next_level, now).consecutive_correct = 0

        event = MilestoneEvent(
            milestone_id=f"level_{entry.level}_mastery",
            level=entry.level,
            title=level_name(entry.level, self.level_names),
            icon=icon_tier(entry.level),
            next_level=next_level,
            stats={
                "success_rate": entry.success_rate,
                "average_time_ms": round(entry.average_time_ms, 1),
                "tasks_completed": entry.total_attempts,
            },
            achieved_at=now,
        )
        logger.info(f"Milestone: level {entry.level} '{event.title}' mastered, now on level {state.current_level}")
        return event

    def _record_gap(
        self,
        state: ProgressionState,
        attempt: TaskAttempt,
        level: int,
        now: datetime,
    ) -> KnowledgeGapEvent:
        error_type = gap_error_type(attempt)
        if error_type == "other":
            error_type = f"regression_level_{level}"

        for gap in state.gaps:
            if gap.level == level and gap.error_type == error_type:
                gap.error_count += 1
                gap.status = GapStatus.ACTIVE
                gap.resolved_at = None
                logger.info(f"Knowledge gap on level {level} ({error_type}) seen {gap.error_count} times")
                return KnowledgeGapEvent(gap=gap, is_new=False)

        gap = KnowledgeGap(level=level, error_type=error_type, detected_at=now)
        state.gaps.append(gap)
        logger.info(f"New knowledge gap on level {level}: {error_type} (current level {state.current_level})")
        return KnowledgeGapEvent(gap=gap, is_new=True)

    def _record_error(
        self,
        state: ProgressionState,
        attempt: TaskAttempt,
        analysis: ErrorAnalysis,
        level: int,
        now: datetime,
    ) -> None:
        task = f"{attempt.number1} {attempt.operation.value} {attempt.number2} = {attempt.correct_answer}"
        severity = analysis.severity.value

        state.error_history.append(
            ErrorRecord(analysis.error_type, severity, task, attempt.student_answer, level, now)
        )
        del state.error_history[: -self.config.error_history_limit]

        weight = SEVERITY_WEIGHTS.get(severity, SEVERITY_WEIGHTS["moderate"])
        pattern = state.error_patterns.get(analysis.error_type)
        if pattern is None:
            state.error_patterns[analysis.error_type] = ErrorPattern(
                error_type=analysis.error_type,
                count=1,
                first_seen=now,
                last_seen=now,
                examples=[task],
                severity_score=weight,
            )
            return

        pattern.severity_score = (pattern.severity_score * pattern.count + weight) / (pattern.count + 1)
        pattern.count += 1
        pattern.last_seen = now
        pattern.examples = (pattern.examples + [task])[-self.config.error_pattern_examples:]

    def _update_representation(
        self,
        state: ProgressionState,
        attempt: TaskAttempt,
        update: ProgressionUpdate,
    ) -> None:
        state.performance = self.representation.record_result(
            state.performance, attempt.is_correct, attempt.time_taken_ms
        )
        change = self.representation.update_level(state.representation_level, state.performance)
        state.representation_level = change.new_level
        if change.changed:
            # A new support level starts from a fresh streak
            state.performance.consecutive_correct = 0
            state.performance.consecutive_errors = 0
        update.representation_change = change

        title = self.representation.check_milestone(
            state.representation_level, state.current_level, state.representation_milestones
        )
        if title:
            state.representation_milestones.append(title)
            update.representation_milestone = title
            logger.info(f"Representation milestone reached: {title}")

    def resolve_gaps(self, state: ProgressionState, level: int, now: datetime | None = None) -> int:
        """Mark the active gaps of a level as resolved. Returns how many were resolved."""
        now = now or datetime.now(timezone.utc)
        resolved = 0
        for gap in state.gaps:
            if gap.level == level and gap.status == GapStatus.ACTIVE:
                gap.status = GapStatus.RESOLVED
                gap.resolved_at = now
                resolved += 1
        if resolved:
            logger.info(f"Resolved {resolved} knowledge gap(s) on level {level}")
        return resolved


# =============================================================================
# Level metadata
# =============================================================================


def level_name(level: int, names: Mapping[int, str] = LEVEL_NAMES) -> str:
    return names.get(level, f"Level {level}")


def level_theme(level: int) -> str:
    """Theme of the block of ten a level belongs to."""
    return LEVEL_THEMES.get((level - 1) // 10 + 1, "")


def icon_tier(level: int) -> str:
    """trophy every 10th level, star every 5th, checkmark otherwise."""
    if level % 10 == 0:
        return "trophy"
    if level % 5 == 0:
        return "star"
    return "checkmark"


def stage_for_level(level: int) -> int:
    """Map a level (1-100) onto one of 20 stages."""
    for upper, stage in STAGE_BOUNDS:
        if level <= upper:
            return stage
    return FINAL_STAGE


def number_range_for_level(level: int) -> int:
    for upper, number_range in NUMBER_RANGE_BANDS:
        if level <= upper:
            return number_range
    return DEFAULT_NUMBER_RANGE


def today_stats(state: ProgressionState, day: date | None = None) -> DailyStats:
    """Stats for a day (today by default); zeros when nothing was practiced."""
    key = (day or datetime.now(timezone.utc).date()).isoformat()
    return state.daily_stats.get(key, DailyStats())
