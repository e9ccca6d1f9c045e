"""Shared test fixtures and configuration for Page Scout tests."""

import sys
from pathlib import Path

import pytest

# Add project root and the shared test helpers to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from pagescout.capture.events import EventBus


@pytest.fixture
def bus():
    """Fresh event bus."""
    return EventBus()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
