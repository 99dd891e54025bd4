"""Heuristic churn-candidate detection over flattened roster text.

The roster exposes no stable selectors, so detection works on the page's
rendered text. Two strategies are tried in order and the chain stops at the
first one that yields anything:

1. signal-first: find every churn phrase and attribute it to the nearest
   preceding ``@handle`` within a bounded look-back window;
2. container-first: walk row-shaped containers (handle + "Joined" marker,
   bounded length) and test each for a churn phrase.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from .fields import DATE_LINE_RE, formatted_price, join_date, last_active
from .models import ChurnCandidate, RowSnapshot
from .signals import SignalMatch, classify_churn, find_signals


LOGGER = logging.getLogger(__name__)

# "@jane-doe" but not the domain half of "jane@x.com".
HANDLE_RE = re.compile(r"@([A-Za-z0-9_](?:[A-Za-z0-9_-]*[A-Za-z0-9_])?)(?![A-Za-z0-9_-]|\.[A-Za-z])")
PROFILE_HREF_RE = re.compile(r"/(?:@|u/)([A-Za-z0-9_](?:[A-Za-z0-9_-]*[A-Za-z0-9_])?)(?:[/?#]|$)")
JOINED_RE = re.compile(r"joined", re.IGNORECASE)

NON_NAME_RE = re.compile(
    r"^(?:admins?|owner|moderators?|mod|members?|online|offline|active|inactive|joined|trial|free|paid|"
    r"cancell?ed|declined|removing|churns?|level|lvl|chat|membership|settings|invited|pending|"
    r"approved|new|remove|ban|followers?|following|contributions?|"
    r"tier|plan|premium|pro|basic|standard|gold|silver|bronze|platinum|vip|plus|elite)\b",
    re.IGNORECASE,
)
# Lines that close the previous member's row; the name look-back stops here.
ROW_BOUNDARY_RE = re.compile(
    r"^(?:joined|active|inactive|online|level|lvl|tier|plan|premium|pro|basic|standard|gold|silver|"
    r"bronze|platinum|vip|plus|elite|trial|declined|cancell?ed|removing|churns?)\b"
    r"|\$\s?\d",
    re.IGNORECASE,
)
DIGITS_ONLY_RE = re.compile(r"[\d\s.,:/+-]+")
URL_SHAPED_RE = re.compile(r"https?://|www\.|\.(?:com|net|org|io|co)\b|/", re.IGNORECASE)
MAX_NAME_CHARS = 60
MAX_NAME_WORDS = 5


@dataclass(frozen=True)
class DetectorConfig:
    lookback_chars: int = 500
    max_row_chars: int = 1500
    name_lookback_lines: int = 4


def handle_from_href(href: Optional[str]) -> Optional[str]:
    """Extract a lowercase username from a profile link (``/@jane-doe``, ``/u/jane-doe``)."""

    if not href:
        return None
    cleaned = href.strip()
    if not cleaned:
        return None
    match = PROFILE_HREF_RE.search(cleaned)
    if not match:
        return None
    return match.group(1).lower()


def looks_like_name(line: Optional[str]) -> bool:
    """Return True when ``line`` plausibly is a member's display name."""

    if not line:
        return False
    value = line.strip()
    if len(value) < 2 or len(value) > MAX_NAME_CHARS:
        return False
    if DIGITS_ONLY_RE.fullmatch(value) or DATE_LINE_RE.match(value):
        return False
    if not (value[0].isalpha() and value[0].isupper()):
        return False
    if NON_NAME_RE.match(value):
        return False
    if any(ch in value for ch in "$€£@:|"):
        return False
    if URL_SHAPED_RE.search(value):
        return False
    return len(value.split()) <= MAX_NAME_WORDS


def _preview_name(text: str, floor: int, marker_start: int, max_lines: int) -> Optional[str]:
    segment = text[floor:marker_start]
    inspected = 0
    for line in reversed(segment.splitlines()):
        line = line.strip()
        if not line:
            continue
        inspected += 1
        if looks_like_name(line):
            return line
        if inspected >= max_lines or ROW_BOUNDARY_RE.search(line) or DATE_LINE_RE.match(line):
            break
    return None


def _candidate(
    username: str,
    name: Optional[str],
    signal: SignalMatch,
    row_text: str,
    position: int,
) -> ChurnCandidate:
    return ChurnCandidate(
        username=username,
        preview_name=name,
        preview_days_remaining=signal.days,
        preview_status=signal.status,
        preview_price=formatted_price(row_text),
        preview_join_date=join_date(row_text),
        preview_last_active=last_active(row_text),
        position=position,
    )


def scan_signals(text: str, config: DetectorConfig) -> List[ChurnCandidate]:
    """Signal-first strategy: attribute each churn phrase to the nearest preceding handle."""

    candidates: List[ChurnCandidate] = []
    previous_end = 0
    for signal in find_signals(text):
        # Handles before the previous signal belong to that member's row.
        window_start = max(previous_end, signal.start - config.lookback_chars, 0)
        previous_end = signal.end
        handles = list(HANDLE_RE.finditer(text, window_start, signal.start))
        if not handles:
            LOGGER.debug(
                "Discarding unattributable signal at offset %d: %r",
                signal.start,
                text[signal.start:signal.end],
            )
            continue
        marker = handles[-1]
        floor = handles[-2].end() if len(handles) > 1 else window_start
        candidates.append(
            _candidate(
                marker.group(1).lower(),
                _preview_name(text, floor, marker.start(), config.name_lookback_lines),
                signal,
                text[marker.start():_row_end(text, signal.end, config)],
                signal.start,
            )
        )
    return candidates


def _row_end(text: str, signal_end: int, config: DetectorConfig) -> int:
    """End of the row owning a signal: the next handle, capped by the look-back width."""

    limit = min(len(text), signal_end + config.lookback_chars)
    following = HANDLE_RE.search(text, signal_end, limit)
    if following is None:
        return limit
    # The next member's name sits on the lines just above its handle.
    line_start = text.rfind("\n", signal_end, following.start())
    return line_start if line_start != -1 else following.start()


def is_row_shaped(row: RowSnapshot, config: DetectorConfig) -> bool:
    text = row.text or ""
    if not text or len(text) >= config.max_row_chars:
        return False
    if not JOINED_RE.search(text):
        return False
    return bool(HANDLE_RE.search(text)) or any(handle_from_href(href) for href in row.hrefs)


def scan_rows(rows: Iterable[RowSnapshot], config: DetectorConfig) -> List[ChurnCandidate]:
    """Container-first strategy: test each row-shaped container for a churn phrase."""

    candidates: List[ChurnCandidate] = []
    for index, row in enumerate(rows):
        if not is_row_shaped(row, config):
            continue
        text = row.text
        signal = classify_churn(text)
        if signal is None:
            continue

        handles = list(HANDLE_RE.finditer(text, 0, signal.start)) or list(HANDLE_RE.finditer(text))
        if handles:
            marker = handles[-1]
            username = marker.group(1).lower()
            floor = handles[-2].end() if len(handles) > 1 else 0
            name = _preview_name(text, floor, marker.start(), config.name_lookback_lines)
        else:
            username = next((h for h in map(handle_from_href, row.hrefs) if h), None)
            name = next((line.strip() for line in text.splitlines() if looks_like_name(line)), None)
        if not username:
            continue

        candidates.append(_candidate(username, name, signal, text, index))
    return candidates


def dedupe_candidates(candidates: Sequence[ChurnCandidate]) -> List[ChurnCandidate]:
    """Order by position and keep the first candidate per username."""

    seen = set()
    unique: List[ChurnCandidate] = []
    for candidate in sorted(candidates, key=lambda c: c.position):
        if not candidate.username:
            continue
        if candidate.username in seen:
            LOGGER.debug("  [DUP] @%s at position %d dropped", candidate.username, candidate.position)
            continue
        seen.add(candidate.username)
        unique.append(candidate)
    return unique


def detect_candidates(
    page_text: str,
    row_loader: Optional[Callable[[], Sequence[RowSnapshot]]] = None,
    config: Optional[DetectorConfig] = None,
) -> List[ChurnCandidate]:
    """Run the strategy chain over one snapshot of the roster."""

    config = config or DetectorConfig()
    lowered = (page_text or "").lower()
    LOGGER.debug(
        "Page text: %d chars, contains 'declined'=%s, contains 'cancel'=%s",
        len(lowered),
        "declined" in lowered,
        "cancel" in lowered,
    )

    strategies = (
        ("signal-first", lambda: scan_signals(page_text or "", config)),
        ("container-first", lambda: scan_rows(row_loader(), config) if row_loader else []),
    )
    for label, strategy in strategies:
        found = dedupe_candidates(strategy())
        if found:
            LOGGER.info("%s scan produced %d unique candidates", label, len(found))
            return found
        LOGGER.debug("%s scan produced no candidates", label)
    return []
