"""Shared pytest configuration and fixtures for the test suite.

This module centralizes:
- Path setup (keeps roster_churn importable without installing)
- Pytest markers for test categorization (unit, integration, selenium)
- Common fakes for the roster surface and the artifact sink
"""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest


# ==============================================================================
# Path Setup - Ensures roster_churn/ is importable
# ==============================================================================

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# ==============================================================================
# Pytest Configuration
# ==============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Fast tests with no I/O (mocked dependencies)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests hitting the file system",
    )
    config.addinivalue_line(
        "markers",
        "selenium: Browser-based tests requiring Selenium (slowest)",
    )


# ==============================================================================
# Fakes
# ==============================================================================

FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock():
    """Clock returning a constant timestamp so records compare equal."""
    return lambda: FIXED_NOW


class FakeScrollSurface:
    """Scrollable surface replaying a scripted sequence of content heights.

    Once the script runs out, the last height repeats (content fully loaded).
    """

    def __init__(self, heights):
        self._heights = list(heights)
        self.measurements = 0
        self.bottom_scrolls = 0
        self.origin_scrolls = 0
        self.calls = []

    def content_height(self) -> int:
        index = min(self.measurements, len(self._heights) - 1)
        self.measurements += 1
        self.calls.append("measure")
        return self._heights[index]

    def scroll_to_bottom(self) -> None:
        self.bottom_scrolls += 1
        self.calls.append("bottom")

    def scroll_to_origin(self) -> None:
        self.origin_scrolls += 1
        self.calls.append("origin")


@pytest.fixture
def scroll_surface_factory():
    """Build a FakeScrollSurface from a list of heights.

    Example:
        def test_loader(scroll_surface_factory):
            surface = scroll_surface_factory([100, 200, 200, 200, 200])
    """
    return FakeScrollSurface


@pytest.fixture
def mock_detail_surface():
    """Create a mock detail surface whose controls are always found.

    Tests override ``open_member_detail`` / ``detail_text`` as needed.
    """
    surface = Mock()
    surface.open_member_detail = Mock(return_value=True)
    surface.detail_text = Mock(return_value="")
    surface.dismiss_detail = Mock()
    return surface


@pytest.fixture
def mock_selenium_worker():
    """Create a mock SeleniumWorker with a stable, empty roster.

    Example:
        def test_run(mock_selenium_worker):
            mock_selenium_worker.page_text.return_value = "..."
    """
    worker = Mock()
    worker.login = Mock(return_value=True)
    worker.open_roster = Mock()
    worker.content_height = Mock(return_value=1200)
    worker.scroll_to_bottom = Mock()
    worker.scroll_to_origin = Mock()
    worker.page_text = Mock(return_value="")
    worker.row_snapshots = Mock(return_value=[])
    worker.open_member_detail = Mock(return_value=True)
    worker.detail_text = Mock(return_value="")
    worker.dismiss_detail = Mock()
    worker.capture = Mock()
    worker.quit = Mock()
    return worker


@pytest.fixture
def mock_artifact_sink():
    """Create a mock ArtifactSink that accepts everything."""
    sink = Mock()
    sink.save_snapshot = Mock(return_value=None)
    sink.save_value = Mock(return_value=None)
    sink.push_records = Mock(side_effect=lambda records: len(list(records)))
    return sink


@pytest.fixture
def no_sleep(monkeypatch):
    """Make every settle delay instantaneous."""
    sleeps = []
    monkeypatch.setattr("roster_churn.roster.loader.time.sleep", sleeps.append)
    monkeypatch.setattr("roster_churn.roster.enricher.time.sleep", sleeps.append)
    monkeypatch.setattr("roster_churn.roster.selenium_worker.time.sleep", sleeps.append)
    return sleeps
