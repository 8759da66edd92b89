"""
Diagnostic Engine: cognitive state estimation from recent attempts.

Analyzes a bounded window of task attempts along five dimensions:

1. Process   - which representations are used, how systematic the steps are
2. Strategy  - distribution over detected strategies, dominant strategy
3. Time      - mean / spread of solve time and its trend
4. Pattern   - error rates per task category (mastered vs. struggling)
5. Emotion   - frustration / confidence / persistence heuristics

and condenses them into one Zone of Proximal Development (ZPD) level 1-5.

The ZPD update is a fixed-weight blend of the previous level (prior) and
freshly computed evidence (likelihood):

    zpd = round(prior * 0.6 + likelihood * 0.4), clamped to [1, 5]

This is deterministic and rule-based; nothing is sampled or fitted.

Based on:
- Vygotsky: Zone of Proximal Development
- Gaidoschik: counting vs. derived-fact strategies in early arithmetic
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Sequence

from loguru import logger

from mathezoo.core.models import TaskAttempt
from mathezoo.core.tables import (
    DEFAULT_STRATEGY_LEVEL,
    DIAGNOSTIC_STRATEGIES,
    STRATEGY_LEVELS,
    STRATEGY_PROGRESSION,
)

# =============================================================================
# Thresholds
# =============================================================================

THRESHOLDS = {
    # Process
    "max_useful_steps": 15,  # Steps at which systematics reaches 0
    "representation_variety": 4,  # Distinct representations for full flexibility
    # Strategy
    "strategy_variety": 5,  # Distinct strategies for full flexibility
    "dominant_share": 0.6,  # Share above which the next strategy is recommended
    # Time
    "improving_ratio": 0.9,
    "declining_ratio": 1.1,
    "fast_ms": 5000,
    "medium_ms": 10000,
    # Patterns
    "min_pattern_attempts": 3,
    "mastered_error_rate": 0.2,
    "struggling_error_rate": 0.5,
    "struggling_digit_error_rate": 0.6,
    # Recommendations
    "struggling_categories": 3,  # Reduce difficulty at this many struggling categories
}

ZPD_MIN = 1
ZPD_MAX = 5


class TimeTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass
class DiagnosisConfig:
    """Weights of the ZPD update."""

    prior_weight: float = 0.6
    evidence_weight: float = 0.4
    default_prior: int = 3

    @classmethod
    def from_settings(cls, settings) -> DiagnosisConfig:
        return cls(
            prior_weight=settings.zpd_prior_weight,
            evidence_weight=settings.zpd_evidence_weight,
            default_prior=settings.zpd_default_prior,
        )


# =============================================================================
# Snapshot
# =============================================================================


@dataclass
class ProcessProfile:
    preferred_representations: list[str]
    representation_flexibility: float  # 0-1
    step_systematics: float  # 0-1


@dataclass
class StrategyProfile:
    dominant_strategy: str
    strategy_distribution: dict[str, float]
    strategy_flexibility: float  # 0-1


@dataclass
class TimeProfile:
    average_ms: float
    std_dev_ms: float
    trend: TimeTrend


@dataclass
class PatternProfile:
    error_probabilities: dict[str, float] = field(default_factory=dict)
    mastered_patterns: list[str] = field(default_factory=list)
    struggling_patterns: list[str] = field(default_factory=list)


@dataclass
class EmotionalProfile:
    frustration: float
    confidence: float
    persistence: float


@dataclass
class CognitiveSnapshot:
    """Output of one diagnosis. Replaced, never merged."""

    process: ProcessProfile
    strategy: StrategyProfile
    time: TimeProfile
    pattern: PatternProfile
    emotion: EmotionalProfile
    zpd_level: int
    recommended_difficulty: int
    recommended_strategies: list[str]
    attempts_analyzed: int = 0
    diagnosed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "process": {
                "preferred_representations": self.process.preferred_representations,
                "representation_flexibility": self.process.representation_flexibility,
                "step_systematics": self.process.step_systematics,
            },
            "strategy": {
                "dominant_strategy": self.strategy.dominant_strategy,
                "strategy_distribution": self.strategy.strategy_distribution,
                "strategy_flexibility": self.strategy.strategy_flexibility,
            },
            "time": {
                "average_ms": self.time.average_ms,
                "std_dev_ms": self.time.std_dev_ms,
                "trend": self.time.trend.value,
            },
            "pattern": {
                "error_probabilities": self.pattern.error_probabilities,
                "mastered_patterns": self.pattern.mastered_patterns,
                "struggling_patterns": self.pattern.struggling_patterns,
            },
            "emotion": {
                "frustration": self.emotion.frustration,
                "confidence": self.emotion.confidence,
                "persistence": self.emotion.persistence,
            },
            "zpd_level": self.zpd_level,
            "recommended_difficulty": self.recommended_difficulty,
            "recommended_strategies": self.recommended_strategies,
            "attempts_analyzed": self.attempts_analyzed,
            "diagnosed_at": self.diagnosed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> CognitiveSnapshot:
        diagnosed_at = data.get("diagnosed_at")
        return cls(
            process=ProcessProfile(**data["process"]),
            strategy=StrategyProfile(**data["strategy"]),
            time=TimeProfile(
                average_ms=data["time"]["average_ms"],
                std_dev_ms=data["time"]["std_dev_ms"],
                trend=TimeTrend(data["time"]["trend"]),
            ),
            pattern=PatternProfile(**data["pattern"]),
            emotion=EmotionalProfile(**data["emotion"]),
            zpd_level=data["zpd_level"],
            recommended_difficulty=data["recommended_difficulty"],
            recommended_strategies=list(data["recommended_strategies"]),
            attempts_analyzed=data.get("attempts_analyzed", 0),
            diagnosed_at=datetime.fromisoformat(diagnosed_at) if diagnosed_at else datetime.now(timezone.utc),
        )

    def to_profile_record(self) -> dict:
        """Flattened fields stored on the learner's cognitive profile."""
        return {
            "strategy_preferences": list(self.recommended_strategies),
            "current_zpd_level": self.zpd_level,
            "success_rate": self.emotion.confidence,
            "average_time_per_task": round(self.time.average_ms),
            "error_probabilities": dict(self.pattern.error_probabilities),
            "strategy_usage": dict(self.strategy.strategy_distribution),
            "last_diagnosis_date": self.diagnosed_at.isoformat(),
            "strengths": list(self.pattern.mastered_patterns),
            "weaknesses": list(self.pattern.struggling_patterns),
        }


def default_snapshot() -> CognitiveSnapshot:
    """Cold-start snapshot for a learner without any attempts."""
    distribution = {label: 0.0 for label in DIAGNOSTIC_STRATEGIES}
    distribution.update({"counting_all": 0.4, "counting_on": 0.6})
    return CognitiveSnapshot(
        process=ProcessProfile(
            preferred_representations=["twenty_frame", "counters"],
            representation_flexibility=0.3,
            step_systematics=0.5,
        ),
        strategy=StrategyProfile(
            dominant_strategy="counting_on",
            strategy_distribution=distribution,
            strategy_flexibility=0.2,
        ),
        time=TimeProfile(average_ms=10000.0, std_dev_ms=3000.0, trend=TimeTrend.STABLE),
        pattern=PatternProfile(),
        emotion=EmotionalProfile(frustration=0.2, confidence=0.6, persistence=0.7),
        zpd_level=2,
        recommended_difficulty=2,
        recommended_strategies=["counting_on", "doubles"],
    )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# =============================================================================
# Engine
# =============================================================================


class DiagnosticEngine:
    """
    Five-dimension cognitive diagnosis with a fixed-weight ZPD update.

    Stateless: every call to diagnose() recomputes the snapshot from the
    given window. Invoke it every N attempts, not per attempt.
    """

    def __init__(
        self,
        config: DiagnosisConfig | None = None,
        strategy_levels: Mapping[str, int] = STRATEGY_LEVELS,
        strategy_progression: Sequence[str] = STRATEGY_PROGRESSION,
    ):
        self.config = config or DiagnosisConfig()
        self.strategy_levels = strategy_levels
        self.strategy_progression = tuple(strategy_progression)

    def diagnose(
        self,
        recent_attempts: Sequence[TaskAttempt],
        prior_snapshot: CognitiveSnapshot | None = None,
    ) -> CognitiveSnapshot:
        """
        Compute a fresh cognitive snapshot.

        Args:
            recent_attempts: Recent attempts, oldest first
            prior_snapshot: Previous snapshot (its ZPD level is the prior)

        Returns:
            CognitiveSnapshot; the documented default for an empty window
        """
        attempts = list(recent_attempts)
        if not attempts:
            logger.debug("No attempts to diagnose, using cold-start snapshot")
            return default_snapshot()

        process = self.analyze_process(attempts)
        strategy = self.analyze_strategies(attempts)
        time = self.analyze_time(attempts)
        pattern = self.analyze_patterns(attempts)
        emotion = self.analyze_emotions(attempts, time)

        prior = prior_snapshot.zpd_level if prior_snapshot else None
        zpd_level = self.calculate_zpd(strategy, time, pattern, prior)

        recommended_difficulty = zpd_level
        if len(pattern.struggling_patterns) >= THRESHOLDS["struggling_categories"]:
            recommended_difficulty = max(ZPD_MIN, zpd_level - 1)

        snapshot = CognitiveSnapshot(
            process=process,
            strategy=strategy,
            time=time,
            pattern=pattern,
            emotion=emotion,
            zpd_level=zpd_level,
            recommended_difficulty=recommended_difficulty,
            recommended_strategies=self.recommend_strategies(strategy),
            attempts_analyzed=len(attempts),
        )
        logger.info(
            f"Diagnosis over {len(attempts)} attempts: zpd={zpd_level} "
            f"dominant={strategy.dominant_strategy} trend={time.trend.value}"
        )
        return snapshot

    # === Process ===

    def analyze_process(self, attempts: Sequence[TaskAttempt]) -> ProcessProfile:
        usage: Counter[str] = Counter()
        efficiencies: list[float] = []

        for attempt in attempts:
            usage.update(attempt.representations)
            # Fewer steps for the same correct result = more systematic
            if attempt.is_correct and attempt.solution_steps:
                steps = len(attempt.solution_steps)
                efficiencies.append(max(0.0, 1 - steps / THRESHOLDS["max_useful_steps"]))

        preferred = [rep for rep, _ in usage.most_common(2)]
        flexibility = min(1.0, len(usage) / THRESHOLDS["representation_variety"])
        systematics = sum(efficiencies) / len(efficiencies) if efficiencies else 0.5

        return ProcessProfile(
            preferred_representations=preferred,
            representation_flexibility=flexibility,
            step_systematics=systematics,
        )

    # === Strategy ===

    def analyze_strategies(self, attempts: Sequence[TaskAttempt]) -> StrategyProfile:
        counts = {label: 0 for label in DIAGNOSTIC_STRATEGIES}
        for attempt in attempts:
            if attempt.strategy_used in counts:
                counts[attempt.strategy_used] += 1

        total = sum(counts.values())
        distribution = {
            label: (count / total if total else 0.0) for label, count in counts.items()
        }

        dominant = "counting_on"
        if total:
            # First label in table order wins ties
            dominant = max(counts, key=lambda label: counts[label])

        used = sum(1 for count in counts.values() if count > 0)
        return StrategyProfile(
            dominant_strategy=dominant,
            strategy_distribution=distribution,
            strategy_flexibility=min(1.0, used / THRESHOLDS["strategy_variety"]),
        )

    # === Time ===

    def analyze_time(self, attempts: Sequence[TaskAttempt]) -> TimeProfile:
        times = [a.time_taken_ms for a in attempts if a.time_taken_ms is not None]
        if not times:
            return TimeProfile(average_ms=10000.0, std_dev_ms=0.0, trend=TimeTrend.STABLE)

        mean = sum(times) / len(times)
        variance = sum((t - mean) ** 2 for t in times) / len(times)

        midpoint = len(times) // 2
        first_half, second_half = times[:midpoint], times[midpoint:]
        trend = TimeTrend.STABLE
        if first_half:
            avg_first = sum(first_half) / len(first_half)
            avg_second = sum(second_half) / len(second_half)
            if avg_second <= avg_first * THRESHOLDS["improving_ratio"]:
                trend = TimeTrend.IMPROVING
            elif avg_second >= avg_first * THRESHOLDS["declining_ratio"]:
                trend = TimeTrend.DECLINING

        return TimeProfile(average_ms=mean, std_dev_ms=math.sqrt(variance), trend=trend)

    # === Patterns ===

    def analyze_patterns(self, attempts: Sequence[TaskAttempt]) -> PatternProfile:
        """
        Error rates per task category.

        Three groupings feed the same mastered / struggling lists:
        - "{operator}_{task_type}" (e.g. "+_basic")
        - "digits_{n}": digit count of the larger operand
        - "complement" (result is a round ten) vs. "transition" (crosses a decade)
        """
        categories: dict[str, list[int]] = {}
        digits: dict[int, list[int]] = {}
        structure: dict[str, list[int]] = {"complement": [0, 0], "transition": [0, 0]}

        def tally(bucket: list[int], attempt: TaskAttempt) -> None:
            bucket[0] += 1
            if not attempt.is_correct:
                bucket[1] += 1

        for attempt in attempts:
            key = f"{attempt.operation.value}_{attempt.task_type}"
            tally(categories.setdefault(key, [0, 0]), attempt)
            tally(digits.setdefault(attempt.digit_count, [0, 0]), attempt)

            result = attempt.result
            is_complement = result > 0 and result % 10 == 0
            if is_complement:
                tally(structure["complement"], attempt)
            elif attempt.number1 // 10 != result // 10:
                tally(structure["transition"], attempt)

        t = THRESHOLDS
        profile = PatternProfile()

        def classify(name: str, total: int, errors: int) -> None:
            rate = errors / total
            profile.error_probabilities[name] = rate
            if total < t["min_pattern_attempts"]:
                return
            if rate < t["mastered_error_rate"]:
                profile.mastered_patterns.append(name)
            elif rate > t["struggling_error_rate"]:
                profile.struggling_patterns.append(name)

        for name, (total, errors) in categories.items():
            classify(name, total, errors)

        for digit_count, (total, errors) in sorted(digits.items()):
            name = f"digits_{digit_count}"
            rate = errors / total
            profile.error_probabilities[name] = rate
            if total >= t["min_pattern_attempts"] and rate > t["struggling_digit_error_rate"]:
                profile.struggling_patterns.append(name)

        for name, (total, errors) in structure.items():
            # Structure groups are only reported with enough evidence
            if total >= t["min_pattern_attempts"]:
                classify(name, total, errors)

        return profile

    # === Emotion ===

    def analyze_emotions(self, attempts: Sequence[TaskAttempt], time: TimeProfile) -> EmotionalProfile:
        recent_errors = sum(1 for a in attempts[-5:] if not a.is_correct)
        frustration = 0.0
        if recent_errors >= 3 and time.trend == TimeTrend.DECLINING:
            frustration = 0.7
        elif recent_errors >= 2:
            frustration = 0.4

        success_rate = sum(1 for a in attempts if a.is_correct) / len(attempts)

        persistence = 0.5
        if len(attempts) < 5 and success_rate < 0.5:
            persistence = 0.3
        elif len(attempts) >= 10:
            persistence = 0.8

        return EmotionalProfile(
            frustration=frustration,
            confidence=success_rate,
            persistence=persistence,
        )

    # === ZPD ===

    def calculate_zpd(
        self,
        strategy: StrategyProfile,
        time: TimeProfile,
        pattern: PatternProfile,
        prior: int | None = None,
    ) -> int:
        """
        Blend the prior ZPD level with evidence from this window.

        Likelihood = strategy rank + time contribution + pattern contribution.
        """
        if prior is None:
            prior = self.config.default_prior
        prior = min(ZPD_MAX, max(ZPD_MIN, prior))

        strategy_part = self.strategy_levels.get(strategy.dominant_strategy, DEFAULT_STRATEGY_LEVEL)

        if time.average_ms < THRESHOLDS["fast_ms"]:
            time_part = 1
        elif time.average_ms < THRESHOLDS["medium_ms"]:
            time_part = 0
        else:
            time_part = -1

        rates = list(pattern.error_probabilities.values())
        mean_error = sum(rates) / max(1, len(rates))
        if mean_error < THRESHOLDS["mastered_error_rate"]:
            pattern_part = 1
        elif mean_error > THRESHOLDS["struggling_error_rate"]:
            pattern_part = -1
        else:
            pattern_part = 0

        likelihood = strategy_part + time_part + pattern_part
        posterior = prior * self.config.prior_weight + likelihood * self.config.evidence_weight
        zpd = min(ZPD_MAX, max(ZPD_MIN, _round_half_up(posterior)))

        logger.debug(
            f"ZPD update: prior={prior} likelihood={likelihood} "
            f"(strategy={strategy_part}, time={time_part}, pattern={pattern_part}) -> {zpd}"
        )
        return zpd

    # === Recommendations ===

    def recommend_strategies(self, strategy: StrategyProfile) -> list[str]:
        dominant = strategy.dominant_strategy
        recommendations = [dominant]
        if dominant in self.strategy_progression:
            index = self.strategy_progression.index(dominant)
            share = strategy.strategy_distribution.get(dominant, 0.0)
            if index < len(self.strategy_progression) - 1 and share > THRESHOLDS["dominant_share"]:
                recommendations.append(self.strategy_progression[index + 1])
        return recommendations
