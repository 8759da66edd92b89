"""
Learning: task mastery and competency progress.
"""

from mathezoo.learning.competency_tracker import (
    CompetencyProgress,
    CompetencyTracker,
    LearnerCompetencies,
    MasteryConfig,
    TaskMastery,
    competency_summary,
    compute_competency_level,
    identify_competencies,
    overall_level,
    task_difficulty,
    task_signature,
)

__all__ = [
    "CompetencyProgress",
    "CompetencyTracker",
    "LearnerCompetencies",
    "MasteryConfig",
    "TaskMastery",
    "competency_summary",
    "compute_competency_level",
    "identify_competencies",
    "overall_level",
    "task_difficulty",
    "task_signature",
]
