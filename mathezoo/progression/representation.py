"""
Representation (scaffolding) level control.

The representation level (RL) decides how much visual support a learner
gets while solving tasks:

    RL 5  full support: twenty frame, number line, decomposition, hints
    RL 4  strong support
    RL 3  medium support
    RL 2  light support
    RL 1  symbolic only

A higher RL means MORE support. Sustained success lowers the RL (less
support, "advancement"); sustained struggle raises it ("regression").
Every change carries a reason string for audit.

The thresholds are heuristic and configurable through RepresentationConfig.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from loguru import logger

from mathezoo.core.tables import (
    MAX_REPRESENTATION_LEVEL,
    MIN_REPRESENTATION_LEVEL,
    RECOMMENDED_REPRESENTATION_BANDS,
    REPRESENTATION_DESCRIPTIONS,
    REPRESENTATION_MILESTONES,
    REPRESENTATIONS_BY_LEVEL,
)


@dataclass
class RepresentationConfig:
    """Trigger thresholds for scaffolding changes."""

    window: int = 10
    advance_streak: int = 5
    regress_streak: int = 3
    advance_rate: float = 0.9
    advance_time_ms: float = 8000.0
    regress_rate: float = 0.6
    regress_min_results: int = 5
    time_smoothing: float = 0.3  # EMA alpha for the average solve time

    @classmethod
    def from_settings(cls, settings) -> RepresentationConfig:
        return cls(
            window=settings.representation_window,
            advance_streak=settings.representation_advance_streak,
            regress_streak=settings.representation_regress_streak,
            advance_rate=settings.representation_advance_rate,
            advance_time_ms=settings.representation_advance_time_ms,
            regress_rate=settings.representation_regress_rate,
        )


@dataclass
class PerformanceWindow:
    """Rolling performance used for scaffolding decisions."""

    consecutive_correct: int = 0
    consecutive_errors: int = 0
    recent_results: list[bool] = field(default_factory=list)
    average_time_ms: float = 0.0  # exponential moving average

    @property
    def success_rate(self) -> float:
        if not self.recent_results:
            return 0.0
        return sum(1 for r in self.recent_results if r) / len(self.recent_results)

    def to_dict(self) -> dict:
        return {
            "consecutive_correct": self.consecutive_correct,
            "consecutive_errors": self.consecutive_errors,
            "recent_results": list(self.recent_results),
            "success_rate": self.success_rate,
            "average_time_ms": self.average_time_ms,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> PerformanceWindow:
        data = data or {}
        return cls(
            consecutive_correct=data.get("consecutive_correct", 0),
            consecutive_errors=data.get("consecutive_errors", 0),
            recent_results=list(data.get("recent_results", [])),
            average_time_ms=data.get("average_time_ms", 0.0),
        )


@dataclass
class RepresentationChange:
    """Outcome of one scaffolding decision."""

    previous_level: int
    new_level: int
    change_type: str  # advancement, regression, stable
    reason: str

    @property
    def changed(self) -> bool:
        return self.previous_level != self.new_level


class RepresentationController:
    """Adjust the representation level from rolling performance."""

    def __init__(
        self,
        config: RepresentationConfig | None = None,
        representations: Mapping[int, Sequence[str]] = REPRESENTATIONS_BY_LEVEL,
        milestones: Sequence[tuple[int, int, str]] = REPRESENTATION_MILESTONES,
    ):
        self.config = config or RepresentationConfig()
        self.representations = representations
        self.milestones = tuple(milestones)

    def record_result(
        self,
        window: PerformanceWindow,
        is_correct: bool,
        time_ms: float | None,
    ) -> PerformanceWindow:
        """Return a new window including one more result."""
        results = (list(window.recent_results) + [is_correct])[-self.config.window:]

        if is_correct:
            consecutive_correct, consecutive_errors = window.consecutive_correct + 1, 0
        else:
            consecutive_correct, consecutive_errors = 0, window.consecutive_errors + 1

        average = window.average_time_ms
        if time_ms is not None:
            if average == 0:
                average = float(time_ms)
            else:
                alpha = self.config.time_smoothing
                average = alpha * time_ms + (1 - alpha) * average

        return PerformanceWindow(
            consecutive_correct=consecutive_correct,
            consecutive_errors=consecutive_errors,
            recent_results=results,
            average_time_ms=average,
        )

    def update_level(self, current_level: int, window: PerformanceWindow) -> RepresentationChange:
        """
        Decide whether to add or remove support.

        Args:
            current_level: Current representation level (1-5)
            window: Rolling performance including the latest result

        Returns:
            RepresentationChange with the new level and a reason
        """
        c = self.config
        current = clamp_representation_level(current_level)

        def change(new_level: int, change_type: str, reason: str) -> RepresentationChange:
            result = RepresentationChange(current, new_level, change_type, reason)
            if result.changed:
                logger.info(f"Representation level {current} -> {new_level}: {reason}")
            return result

        if window.consecutive_correct >= c.advance_streak and current > MIN_REPRESENTATION_LEVEL:
            return change(current - 1, "advancement", f"{window.consecutive_correct} correct in a row")

        if (
            len(window.recent_results) >= c.window
            and window.success_rate >= c.advance_rate
            and window.average_time_ms < c.advance_time_ms
            and current > MIN_REPRESENTATION_LEVEL
        ):
            return change(current - 1, "advancement", "fast and accurate over the last window")

        if window.consecutive_errors >= c.regress_streak and current < MAX_REPRESENTATION_LEVEL:
            return change(current + 1, "regression", f"{window.consecutive_errors} errors in a row")

        if (
            len(window.recent_results) >= c.regress_min_results
            and window.success_rate < c.regress_rate
            and current < MAX_REPRESENTATION_LEVEL
        ):
            return change(
                current + 1,
                "regression",
                f"success rate {window.success_rate:.0%} over the last {len(window.recent_results)} tasks",
            )

        return RepresentationChange(current, current, "stable", "no change")

    def select_representations(self, representation_level: int) -> list[str]:
        """Representations offered at a given support level."""
        return list(self.representations[clamp_representation_level(representation_level)])

    def check_milestone(
        self,
        representation_level: int,
        level: int,
        already_awarded: Sequence[str] = (),
    ) -> str | None:
        """Title of a newly reached independence milestone, if any."""
        for rl, min_level, title in self.milestones:
            if representation_level == rl and level >= min_level and title not in already_awarded:
                return title
        return None


def clamp_representation_level(value: int) -> int:
    return max(MIN_REPRESENTATION_LEVEL, min(MAX_REPRESENTATION_LEVEL, value))


def recommended_representation_level(level: int) -> int:
    """Default support for a progression level: early levels get full support."""
    for upper, rl in RECOMMENDED_REPRESENTATION_BANDS:
        if level <= upper:
            return rl
    return MIN_REPRESENTATION_LEVEL


def describe_representation_level(value: int) -> str:
    return REPRESENTATION_DESCRIPTIONS[clamp_representation_level(value)]
