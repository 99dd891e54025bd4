"""Merge candidates with their enrichment results into sealed, deduplicated records."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from .models import ChurnCandidate, EnrichedMember, MemberDetail, RunSummary


LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def merge_member(
    candidate: ChurnCandidate,
    detail: Optional[MemberDetail],
    captured_at: datetime,
) -> EnrichedMember:
    """Build the final record; detail values override preview values when present."""

    if detail is None:
        return EnrichedMember(
            username=candidate.username,
            captured_at=captured_at,
            name=candidate.preview_name,
            price=candidate.preview_price,
            churn_status=candidate.preview_status,
            days_remaining=candidate.preview_days_remaining,
            join_date=candidate.preview_join_date,
            last_active=candidate.preview_last_active,
            preview_name=candidate.preview_name,
            preview_days_remaining=candidate.preview_days_remaining,
            enriched=False,
        )

    days_remaining = (
        detail.days_remaining if detail.days_remaining is not None else candidate.preview_days_remaining
    )
    return EnrichedMember(
        username=candidate.username,
        captured_at=captured_at,
        name=detail.name or candidate.preview_name,
        email=detail.email,
        role=detail.role,
        tier=detail.tier,
        price=detail.price or candidate.preview_price,
        churn_status=detail.churn_status or candidate.preview_status,
        days_remaining=days_remaining,
        join_date=detail.join_date or candidate.preview_join_date,
        last_active=detail.last_active or candidate.preview_last_active,
        lifetime_value=detail.lifetime_value,
        invited_by=detail.invited_by,
        preview_name=candidate.preview_name,
        preview_days_remaining=candidate.preview_days_remaining,
        enriched=True,
    )


class ResultAggregator:
    """Append-only result set keyed by username; first record wins."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or utc_now
        self._members: List[EnrichedMember] = []
        self._index: Dict[str, EnrichedMember] = {}
        self._failures = 0
        self._sealed = False

    @property
    def members(self) -> Tuple[EnrichedMember, ...]:
        return tuple(self._members)

    def add(self, candidate: ChurnCandidate, detail: Optional[MemberDetail] = None) -> Optional[EnrichedMember]:
        if self._sealed:
            raise RuntimeError("Result set already sealed; no further records accepted")
        if not candidate.username:
            LOGGER.debug("Dropping candidate without username: %s", candidate)
            return None
        if candidate.username in self._index:
            LOGGER.debug("  [DUP] @%s already recorded; dropping", candidate.username)
            return None

        member = merge_member(candidate, detail, self._clock())
        if detail is None:
            self._failures += 1
        self._index[member.username] = member
        self._members.append(member)
        return member

    def seal(self, target: str) -> RunSummary:
        self._sealed = True
        return RunSummary(
            target=target,
            captured_at=self._clock(),
            members=tuple(self._members),
            enrichment_failures=self._failures,
        )
