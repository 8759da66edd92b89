"""
Progression: level state machine and representation (scaffolding) level.
"""

from mathezoo.progression.level_state_machine import (
    GapStatus,
    KnowledgeGap,
    KnowledgeGapEvent,
    LevelState,
    LevelStateMachine,
    MilestoneEvent,
    ProgressionConfig,
    ProgressionState,
    ProgressionUpdate,
    icon_tier,
    level_name,
    level_theme,
    number_range_for_level,
    stage_for_level,
)
from mathezoo.progression.representation import (
    PerformanceWindow,
    RepresentationChange,
    RepresentationConfig,
    RepresentationController,
    recommended_representation_level,
)

__all__ = [
    # Levels
    "GapStatus",
    "KnowledgeGap",
    "KnowledgeGapEvent",
    "LevelState",
    "LevelStateMachine",
    "MilestoneEvent",
    "ProgressionConfig",
    "ProgressionState",
    "ProgressionUpdate",
    "icon_tier",
    "level_name",
    "level_theme",
    "number_range_for_level",
    "stage_for_level",
    # Representation
    "PerformanceWindow",
    "RepresentationChange",
    "RepresentationConfig",
    "RepresentationController",
    "recommended_representation_level",
]
