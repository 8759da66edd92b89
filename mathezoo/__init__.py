"""
MatheZoo core: adaptive diagnosis and level progression for early arithmetic.

Subpackages:
- core: task models, arithmetic validation, static tables, exceptions
- adaptive: strategy detection, error analysis, cognitive diagnosis (ZPD)
- learning: per-task mastery and competency levels
- progression: 100-level state machine and representation (scaffolding) level
- generation: pedagogical task packages
"""

__version__ = "1.0.0"
