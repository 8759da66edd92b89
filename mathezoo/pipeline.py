"""
Per-attempt learner pipeline.

One attempt flows through the engine components in order:

    verify arithmetic -> detect strategy -> track competencies
    -> classify error -> progress levels -> (every N attempts) diagnose

Everything is a pure function of (learner state, attempt): process_attempt()
returns a new LearnerState and leaves the old one untouched, so the
persistence layer can retry or discard a step safely. Writes must be
serialized per learner by the caller.
"""

from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone

from loguru import logger

from config import Settings, get_settings
from mathezoo.adaptive.diagnostic_engine import CognitiveSnapshot, DiagnosisConfig, DiagnosticEngine
from mathezoo.adaptive.error_analyzer import ErrorAnalysis, ErrorAnalyzer
from mathezoo.adaptive.strategy_detector import StrategyDetection, StrategyDetector
from mathezoo.core.arithmetic import verify_attempt
from mathezoo.core.models import TaskAttempt
from mathezoo.generation.task_packages import TaskPackage, TaskPackageGenerator
from mathezoo.learning.competency_tracker import (
    CompetencyTracker,
    LearnerCompetencies,
    MasteryConfig,
    identify_competencies,
)
from mathezoo.progression.level_state_machine import (
    KnowledgeGapEvent,
    LevelStateMachine,
    MilestoneEvent,
    ProgressionConfig,
    ProgressionState,
    number_range_for_level,
)
from mathezoo.progression.representation import RepresentationConfig, RepresentationController


@dataclass
class LearnerState:
    """Everything the engine keeps per learner."""

    progression: ProgressionState = field(default_factory=ProgressionState)
    competencies: LearnerCompetencies = field(default_factory=LearnerCompetencies)
    snapshot: CognitiveSnapshot | None = None
    recent_attempts: list[TaskAttempt] = field(default_factory=list)
    attempts_since_diagnosis: int = 0

    def to_dict(self) -> dict:
        return {
            "progression": self.progression.to_dict(),
            "competencies": self.competencies.to_dict(),
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
            "recent_attempts": [a.to_dict() for a in self.recent_attempts],
            "attempts_since_diagnosis": self.attempts_since_diagnosis,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> LearnerState:
        if not data:
            return cls()
        snapshot = data.get("snapshot")
        return cls(
            progression=ProgressionState.from_dict(data.get("progression")),
            competencies=LearnerCompetencies.from_dict(data.get("competencies")),
            snapshot=CognitiveSnapshot.from_dict(snapshot) if snapshot else None,
            recent_attempts=[TaskAttempt.from_dict(a) for a in data.get("recent_attempts", [])],
            attempts_since_diagnosis=data.get("attempts_since_diagnosis", 0),
        )


@dataclass
class PipelineResult:
    """Outcome of processing one attempt."""

    state: LearnerState
    attempt: TaskAttempt  # with strategy_used filled in
    detection: StrategyDetection
    competency_ids: list[str]
    error: ErrorAnalysis | None = None
    milestone: MilestoneEvent | None = None
    gap: KnowledgeGapEvent | None = None
    representation_milestone: str | None = None
    diagnosis: CognitiveSnapshot | None = None  # set when a diagnosis ran

    @property
    def events(self) -> list[dict]:
        events = []
        if self.milestone:
            events.append({"type": "milestone", **self.milestone.to_dict()})
        if self.gap:
            events.append({"type": "knowledge_gap", **self.gap.to_dict()})
        if self.representation_milestone:
            events.append({"type": "representation_milestone", "title": self.representation_milestone})
        if self.diagnosis:
            events.append({"type": "diagnosis", "zpd_level": self.diagnosis.zpd_level})
        return events


class LearnerSession:
    """
    Wires the engine components together for one learner at a time.

    Args:
        settings: Settings to derive component configs from (cached settings if None)
    """

    def __init__(self, settings: Settings | None = None):
        settings = settings or get_settings()
        self.diagnosis_window = settings.diagnosis_window
        self.diagnosis_every_n = settings.diagnosis_every_n

        self.detector = StrategyDetector()
        self.error_analyzer = ErrorAnalyzer()
        self.tracker = CompetencyTracker(MasteryConfig.from_settings(settings))
        self.diagnostics = DiagnosticEngine(DiagnosisConfig.from_settings(settings))
        self.progression = LevelStateMachine(
            ProgressionConfig.from_settings(settings),
            representation=RepresentationController(RepresentationConfig.from_settings(settings)),
            error_analyzer=self.error_analyzer,
        )
        self.generator = TaskPackageGenerator()

    def process_attempt(
        self,
        state: LearnerState | None,
        attempt: TaskAttempt,
        now: datetime | None = None,
    ) -> PipelineResult:
        """
        Run one attempt through the engine.

        A contradicting is_correct flag is recomputed from the learner's answer.

        Raises:
            ArithmeticMismatchError: If the attempt's correct answer is wrong
            ProgressionInvariantError: If the stored progression is inconsistent
        """
        now = now or datetime.now(timezone.utc)
        attempt = verify_attempt(attempt)
        new = copy.deepcopy(state) if state else LearnerState()

        detection = self.detector.detect_attempt(attempt)
        attempt = dataclasses.replace(attempt, strategy_used=detection.label.value)

        competency_ids = identify_competencies(attempt)
        new.competencies = self.tracker.update_after_task(new.competencies, attempt, competency_ids, now)

        error = self.error_analyzer.analyze_attempt(attempt)
        update = self.progression.process(new.progression, attempt, error, now)
        new.progression = update.state

        new.recent_attempts = (new.recent_attempts + [attempt])[-self.diagnosis_window:]
        new.attempts_since_diagnosis += 1

        diagnosis = None
        if self.diagnosis_every_n and new.attempts_since_diagnosis >= self.diagnosis_every_n:
            diagnosis = self.diagnostics.diagnose(new.recent_attempts, new.snapshot)
            new.snapshot = diagnosis
            new.attempts_since_diagnosis = 0

        logger.debug(
            f"Processed {attempt.number1} {attempt.operation.value} {attempt.number2}: "
            f"strategy={detection.label.value} correct={attempt.is_correct} level={new.progression.current_level}"
        )
        return PipelineResult(
            state=new,
            attempt=attempt,
            detection=detection,
            competency_ids=competency_ids,
            error=error,
            milestone=update.milestone,
            gap=update.gap,
            representation_milestone=update.representation_milestone,
            diagnosis=diagnosis,
        )

    def diagnose(self, state: LearnerState) -> CognitiveSnapshot:
        """Diagnosis over the stored window without changing the state."""
        return self.diagnostics.diagnose(state.recent_attempts, state.snapshot)

    def next_package(self, state: LearnerState) -> TaskPackage:
        """Next package for the learner, driven by the latest diagnosis."""
        snapshot = state.snapshot or self.diagnostics.diagnose([])
        recent = state.recent_attempts
        success_rate = sum(1 for a in recent if a.is_correct) / len(recent) if recent else 0.5
        return self.generator.next_package(
            snapshot.strategy.dominant_strategy,
            snapshot.recommended_difficulty,
            success_rate,
            number_range_for_level(state.progression.current_level),
        )
