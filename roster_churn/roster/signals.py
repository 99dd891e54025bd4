"""Churn-signal phrase matching shared by the detector and the detail parser."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from .models import PAID_CANCELLED, PAID_DECLINED, TRIAL_CANCELLED, TRIAL_DECLINED

_SEPARATOR = r"[\s(,:;\-–—·]*"
_COUNTDOWN = r"(?:removing|removed|churn(?:s|ing)?|ends?|ending|expires?|expiring)\s+in\s+(?P<days>\d{1,4})\s+days?"

# No leading \b: flattened text glues labels together ("Tier: goldTrial declined").
TRIAL_SIGNAL_RE = re.compile(
    rf"trial\s*(?P<verb>declined|cancell?ed){_SEPARATOR}{_COUNTDOWN}",
    re.IGNORECASE,
)
PAID_SIGNAL_RE = re.compile(
    rf"(?<!trial)(?<!trial\s)(?P<verb>declined|cancell?ed){_SEPARATOR}{_COUNTDOWN}",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SignalMatch:
    start: int
    end: int
    status: str
    days: int


def _status_for(verb: str, *, trial: bool) -> str:
    declined = verb.lower().startswith("declin")
    if trial:
        return TRIAL_DECLINED if declined else TRIAL_CANCELLED
    return PAID_DECLINED if declined else PAID_CANCELLED


def _to_signal(match: re.Match, *, trial: bool) -> SignalMatch:
    return SignalMatch(
        start=match.start(),
        end=match.end(),
        status=_status_for(match.group("verb"), trial=trial),
        days=int(match.group("days")),
    )


def find_signals(text: str) -> List[SignalMatch]:
    """Return every churn signal in ``text`` ordered by position.

    Trial matches take precedence: a paid match overlapping a trial span is
    the same phrase seen without its "Trial" prefix and is dropped.
    """

    if not text:
        return []
    trial = [_to_signal(m, trial=True) for m in TRIAL_SIGNAL_RE.finditer(text)]
    paid = [
        _to_signal(m, trial=False)
        for m in PAID_SIGNAL_RE.finditer(text)
        if not any(t.start < m.end() and m.start() < t.end for t in trial)
    ]
    return sorted(trial + paid, key=lambda signal: signal.start)


def classify_churn(text: str) -> Optional[SignalMatch]:
    """Return the authoritative churn signal for a single member's text.

    The trial pattern is checked first; the paid pattern only applies when no
    trial phrase is present.
    """

    if not text:
        return None
    trial = TRIAL_SIGNAL_RE.search(text)
    if trial:
        return _to_signal(trial, trial=True)
    paid = PAID_SIGNAL_RE.search(text)
    if paid:
        return _to_signal(paid, trial=False)
    return None
