"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from mathezoo.core.arithmetic import build_attempt  # noqa: E402
from mathezoo.core.models import SolutionStep  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "learning: Mastery and competency tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "learning" in str(item.fspath):
            item.add_marker(pytest.mark.learning)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed timestamp so date-dependent stats are deterministic."""
    return datetime(2024, 3, 4, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_attempt(now):
    """
    Factory for task attempts with server-side correctness.

    Usage:
        make_attempt("+", 7, 8, 15)
        make_attempt("+", 7, 8, 14, time_taken_ms=2000, level=3)
    """

    def _make(operation="+", number1=3, number2=4, answer=None, **kwargs):
        if answer is None:
            answer = number1 + number2 if operation == "+" else number1 - number2
        kwargs.setdefault("time_taken_ms", 4000.0)
        kwargs.setdefault("created_at", now)
        return build_attempt(operation, number1, number2, answer, **kwargs)

    return _make


@pytest.fixture
def make_steps():
    """Factory for solution step sequences: make_steps(("twenty_frame", "add_counter"), ...)."""

    def _make(*entries):
        steps = []
        for i, entry in enumerate(entries):
            representation, action, *value = entry
            steps.append(
                SolutionStep(
                    timestamp=500.0 * i,
                    representation=representation,
                    action=action,
                    value=value[0] if value else None,
                )
            )
        return steps

    return _make
