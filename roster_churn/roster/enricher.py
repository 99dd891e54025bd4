"""Per-candidate detail enrichment with isolated failure handling."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from .detail_parser import mentions_other_member, parse_member_detail
from .models import ChurnCandidate, MemberDetail
from .selenium_worker import SurfaceUnavailableError


LOGGER = logging.getLogger(__name__)

ACTIVATION_NOT_FOUND = "activation-not-found"
NO_DETAIL_TEXT = "no-detail-text"
EXTRACTION_ERROR = "extraction-error"
OTHER_MEMBER_DETAIL = "other-member-detail"


class DetailSurface(Protocol):
    def open_member_detail(self, username: str) -> bool: ...

    def detail_text(self) -> str: ...

    def dismiss_detail(self) -> None: ...


@dataclass(frozen=True)
class EnrichmentOutcome:
    candidate: ChurnCandidate
    detail: Optional[MemberDetail] = None
    failure: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.detail is not None


class DetailEnricher:
    """Opens one member's detail view at a time and parses it.

    The detail view is dismissed on every exit path, followed by a settle
    delay, so the next candidate starts from a clean roster.
    """

    def __init__(self, surface: DetailSurface, settle_seconds: float = 2.0) -> None:
        self._surface = surface
        self._settle_seconds = settle_seconds

    def _settle(self, label: str) -> None:
        if self._settle_seconds > 0:
            LOGGER.debug("Delay %.2fs (%s)", self._settle_seconds, label)
            time.sleep(self._settle_seconds)

    def enrich(self, candidate: ChurnCandidate) -> EnrichmentOutcome:
        try:
            if not self._surface.open_member_detail(candidate.username):
                LOGGER.warning("⚠️  Could not locate membership control for @%s; keeping preview fields", candidate.username)
                return EnrichmentOutcome(candidate, failure=ACTIVATION_NOT_FOUND)

            self._settle("detail-open")
            text = self._surface.detail_text()
            if mentions_other_member(text, candidate.username):
                LOGGER.warning(
                    "⚠️  Detail view opened for @%s shows a different member; keeping preview fields",
                    candidate.username,
                )
                return EnrichmentOutcome(candidate, failure=OTHER_MEMBER_DETAIL)
            detail = parse_member_detail(text)
            if detail is None:
                LOGGER.warning("⚠️  Detail view for @%s had no attributable text", candidate.username)
                return EnrichmentOutcome(candidate, failure=NO_DETAIL_TEXT)

            LOGGER.debug("Parsed detail for @%s: %s", candidate.username, detail)
            return EnrichmentOutcome(candidate, detail=detail)
        except SurfaceUnavailableError:
            raise
        except Exception as exc:  # one member's markup must not abort the run
            LOGGER.warning("⚠️  Enrichment failed for @%s (non-fatal): %s", candidate.username, exc)
            LOGGER.debug("Enrichment traceback for @%s", candidate.username, exc_info=True)
            return EnrichmentOutcome(candidate, failure=EXTRACTION_ERROR)
        finally:
            self._close()

    def _close(self) -> None:
        try:
            self._surface.dismiss_detail()
        except SurfaceUnavailableError:
            raise
        except Exception as exc:
            LOGGER.warning("Could not dismiss detail view cleanly: %s", exc)
        self._settle("detail-dismiss")
