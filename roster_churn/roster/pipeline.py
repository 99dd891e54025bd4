"""Run orchestrator: login, load, detect, enrich, aggregate, publish."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..config import ScrapeInputs
from .aggregator import Clock, ResultAggregator
from .artifacts import ArtifactSink
from .detector import DetectorConfig, detect_candidates
from .enricher import DetailEnricher
from .loader import LoaderConfig, load_all_content
from .models import ChurnCandidate, RunSummary
from .selenium_worker import SeleniumWorker


LOGGER = logging.getLogger(__name__)


@dataclass
class ScrapeConfig:
    loader: LoaderConfig = field(default_factory=LoaderConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    detail_settle_seconds: float = 2.0


def _shorten_text(value: Optional[str], limit: int = 60) -> str:
    """Return a condensed representation for log output."""

    if value is None:
        return "-"
    text = str(value).strip()
    if not text:
        return "-"
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 3)] + "..."


class ChurnRosterScraper:
    """Coordinates one scrape run over a single roster.

    Only missing configuration (checked before construction) and unexpected
    errors stop a run; login doubts, loader stalls and per-member enrichment
    failures degrade to partial results.
    """

    def __init__(
        self,
        worker: SeleniumWorker,
        sink: ArtifactSink,
        config: Optional[ScrapeConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._worker = worker
        self._sink = sink
        self._config = config or ScrapeConfig()
        self._clock = clock

    def run(self, inputs: ScrapeInputs) -> RunSummary:
        LOGGER.info("=" * 80)
        LOGGER.info("Starting scrape of churning members in %s", inputs.community)
        LOGGER.info("=" * 80)

        try:
            if not self._worker.login(inputs):
                LOGGER.warning("⚠️  Session may not be authenticated; continuing - check debug screenshots")
            self._worker.open_roster(inputs)

            load_all_content(self._worker, self._config.loader)

            candidates = detect_candidates(
                self._worker.page_text(),
                row_loader=self._worker.row_snapshots,
                config=self._config.detector,
            )
            self._log_candidates(candidates)

            aggregator = ResultAggregator(self._clock)
            enricher = DetailEnricher(self._worker, self._config.detail_settle_seconds)
            for index, candidate in enumerate(candidates, start=1):
                LOGGER.debug("Enriching %d/%d @%s", index, len(candidates), candidate.username)
                outcome = enricher.enrich(candidate)
                aggregator.add(candidate, outcome.detail)

            summary = aggregator.seal(inputs.community)
        except Exception as exc:
            LOGGER.exception("Error during scraping: %s", exc)
            self._capture_failure()
            raise

        self._publish(summary)
        self._print_capture_summary(summary)
        return summary

    def _capture_failure(self) -> None:
        try:
            self._worker.capture("error-screenshot")
        except Exception as exc:
            LOGGER.warning("Could not save error screenshot: %s", exc)

    def _publish(self, summary: RunSummary) -> None:
        records = [member.to_record() for member in summary.members]
        if records:
            self._sink.push_records(records)
        self._sink.save_value("summary", summary.to_dict())

    @staticmethod
    def _log_candidates(candidates: Sequence[ChurnCandidate]) -> None:
        for index, candidate in enumerate(candidates, start=1):
            LOGGER.info(
                "  %3d. CANDIDATE @%s (%s) - %s, %s days",
                index,
                candidate.username,
                candidate.preview_name or "no name",
                candidate.preview_status or "unknown status",
                "?" if candidate.preview_days_remaining is None else candidate.preview_days_remaining,
            )

    @staticmethod
    def _print_capture_summary(summary: RunSummary) -> None:
        LOGGER.info("=" * 80)
        LOGGER.info(
            "✅ CAPTURED %d churning members from %s (%d without detail)",
            summary.total_found,
            summary.target,
            summary.enrichment_failures,
        )
        LOGGER.info("=" * 80)
        if not summary.members:
            LOGGER.info("No churning members found. This could mean:")
            LOGGER.info("  1. No one is currently declined or cancelled")
            LOGGER.info("  2. The page structure may have changed")
            LOGGER.info("  3. The account may not have admin access to the roster")
            return
        for member in summary.members:
            LOGGER.info(
                "  ✓ %s (@%s) %s, %s days, %s, %s",
                _shorten_text(member.name, 40),
                member.username,
                member.churn_status or "unknown",
                "?" if member.days_remaining is None else member.days_remaining,
                member.email or "no email",
                member.price or "no price",
            )
        LOGGER.info("SCRAPE COMPLETE")
