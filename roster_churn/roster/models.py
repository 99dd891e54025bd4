"""Data models for roster churn extraction."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple


TRIAL_DECLINED = "trial-declined"
TRIAL_CANCELLED = "trial-cancelled"
PAID_DECLINED = "paid-declined"
PAID_CANCELLED = "paid-cancelled"

CHURN_STATUSES = (TRIAL_DECLINED, TRIAL_CANCELLED, PAID_DECLINED, PAID_CANCELLED)


@dataclass(frozen=True)
class ChurnCandidate:
    """A member row exhibiting a churn signal, before enrichment."""

    username: str  # Lowercase slug; sole identity key
    preview_name: Optional[str] = None
    preview_days_remaining: Optional[int] = None
    preview_status: Optional[str] = None
    preview_price: Optional[str] = None
    preview_join_date: Optional[str] = None
    preview_last_active: Optional[str] = None
    position: int = 0  # First-match offset (or row index) used for ordering


@dataclass(frozen=True)
class RowSnapshot:
    """Flattened text of one roster row plus the profile links inside it."""

    text: str
    hrefs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MemberDetail:
    """Fields parsed from a member's detail view."""

    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    tier: Optional[str] = None
    price: Optional[str] = None
    churn_status: Optional[str] = None
    days_remaining: Optional[int] = None
    join_date: Optional[str] = None
    last_active: Optional[str] = None
    lifetime_value: Optional[str] = None
    invited_by: Optional[str] = None

    def is_empty(self) -> bool:
        return all(value is None for value in self.__dict__.values())


@dataclass(frozen=True)
class EnrichedMember:
    """Final, immutable record for one churning member."""

    username: str
    captured_at: datetime
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    tier: Optional[str] = None
    price: Optional[str] = None
    churn_status: Optional[str] = None
    days_remaining: Optional[int] = None
    join_date: Optional[str] = None
    last_active: Optional[str] = None
    lifetime_value: Optional[str] = None
    invited_by: Optional[str] = None
    preview_name: Optional[str] = None
    preview_days_remaining: Optional[int] = None
    enriched: bool = False

    def to_record(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "tier": self.tier,
            "status": self.churn_status,
            "daysRemaining": self.days_remaining,
            "price": self.price,
            "joinDate": self.join_date,
            "lastActive": self.last_active,
            "lifetimeValue": self.lifetime_value,
            "invitedBy": self.invited_by,
            "capturedAt": self.captured_at.isoformat(),
        }


@dataclass(frozen=True)
class RunSummary:
    target: str
    captured_at: datetime
    members: Tuple[EnrichedMember, ...] = field(default_factory=tuple)
    enrichment_failures: int = 0

    @property
    def total_found(self) -> int:
        return len(self.members)

    def to_dict(self) -> Dict[str, object]:
        return {
            "target": self.target,
            "capturedAt": self.captured_at.isoformat(),
            "totalFound": self.total_found,
            "members": [member.to_record() for member in self.members],
        }
