"""
Configuration management for mathezoo-core.

Uses pydantic-settings for type-safe configuration with environment variable support.
All engine constants (milestone target, mastery threshold, error penalty,
ZPD weights, scaffolding thresholds) default to the values the progression
model was designed around and can be overridden with MATHEZOO_* variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MATHEZOO_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Level Progression
    # ========================================
    milestone_target: int = Field(
        default=10,
        description="Consecutive correct answers required to master a level",
    )
    max_levels: int = Field(
        default=100,
        description="Highest level number (terminal state)",
    )
    error_history_limit: int = Field(
        default=200,
        description="Maximum stored error records per learner",
    )
    error_pattern_examples: int = Field(
        default=10,
        description="Example tasks kept per error pattern",
    )

    # ========================================
    # Task / Competency Mastery
    # ========================================
    mastery_threshold: int = Field(
        default=3,
        description="Compensated score at which a task counts as mastered",
    )
    mastery_correct_reward: int = Field(
        default=1,
        description="Score added for a correct answer",
    )
    error_penalty: int = Field(
        default=2,
        description="Score removed for an incorrect answer (floored at 0)",
    )
    recent_error_limit: int = Field(
        default=10,
        description="Recent error signatures kept per competency",
    )

    # ========================================
    # Diagnosis (ZPD estimation)
    # ========================================
    zpd_prior_weight: float = Field(
        default=0.6,
        description="Weight of the previous ZPD level in the update",
    )
    zpd_evidence_weight: float = Field(
        default=0.4,
        description="Weight of freshly computed evidence in the update",
    )
    zpd_default_prior: int = Field(
        default=3,
        description="Prior ZPD level when no previous snapshot exists",
    )
    diagnosis_window: int = Field(
        default=20,
        description="Number of recent attempts fed into a diagnosis",
    )
    diagnosis_every_n: int = Field(
        default=10,
        description="Re-run the diagnosis after this many attempts (0 to disable)",
    )

    # ========================================
    # Representation (scaffolding) Level
    # ========================================
    representation_window: int = Field(
        default=10,
        description="Rolling window of results used for scaffolding decisions",
    )
    representation_advance_streak: int = Field(
        default=5,
        description="Consecutive correct answers that remove one support step",
    )
    representation_regress_streak: int = Field(
        default=3,
        description="Consecutive errors that add one support step",
    )
    representation_advance_rate: float = Field(
        default=0.9,
        description="Rolling success rate that removes one support step",
    )
    representation_advance_time_ms: float = Field(
        default=8000.0,
        description="Average solve time (ms) required alongside the advance rate",
    )
    representation_regress_rate: float = Field(
        default=0.6,
        description="Rolling success rate below which support is added",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @field_validator("milestone_target", "max_levels", "mastery_threshold")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
