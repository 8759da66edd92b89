"""
Adaptive analysis of task attempts.

Components:
- StrategyDetector: which mental strategy was most likely used
- ErrorAnalyzer: systematic classification of wrong answers
- DiagnosticEngine: five-dimension cognitive snapshot and ZPD level
"""
from mathezoo.adaptive.diagnostic_engine import (
    CognitiveSnapshot,
    DiagnosisConfig,
    DiagnosticEngine,
    TimeTrend,
    default_snapshot,
)
from mathezoo.adaptive.error_analyzer import (
    ErrorAnalysis,
    ErrorAnalyzer,
    ErrorSeverity,
    detect_error_type,
    gap_error_type,
)
from mathezoo.adaptive.strategy_detector import StrategyDetection, StrategyDetector

__all__ = [
    # Diagnosis
    "CognitiveSnapshot",
    "DiagnosisConfig",
    "DiagnosticEngine",
    "TimeTrend",
    "default_snapshot",
    # Errors
    "ErrorAnalysis",
    "ErrorAnalyzer",
    "ErrorSeverity",
    "detect_error_type",
    "gap_error_type",
    # Strategies
    "StrategyDetection",
    "StrategyDetector",
]
