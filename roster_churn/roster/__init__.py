"""Roster churn extraction (Selenium surface + heuristic text parsing)."""

from __future__ import annotations

from .artifacts import FileArtifactSink
from .models import ChurnCandidate, EnrichedMember, MemberDetail, RunSummary
from .pipeline import ChurnRosterScraper, ScrapeConfig
from .selenium_worker import SeleniumConfig, SeleniumWorker, SurfaceUnavailableError

__all__ = [
    "ChurnCandidate",
    "ChurnRosterScraper",
    "EnrichedMember",
    "FileArtifactSink",
    "MemberDetail",
    "RunSummary",
    "ScrapeConfig",
    "SeleniumConfig",
    "SeleniumWorker",
    "SurfaceUnavailableError",
]
