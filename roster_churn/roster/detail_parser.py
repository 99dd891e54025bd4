"""Field extraction from a member's flattened detail-view text.

Each field is resolved by an ordered chain of pure extractors
(text -> Optional[str]); the first non-empty result wins. Patterns never rely
on word boundaries before a label because the flattened text glues values to
the next label ("jane@x.comRole: member").
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Optional, Sequence

from .detector import HANDLE_RE, looks_like_name
from .fields import JOIN_DATE_RE, formatted_price, last_active
from .models import MemberDetail
from .signals import classify_churn


LOGGER = logging.getLogger(__name__)

Extractor = Callable[[str], Optional[str]]

_STOP_WORDS = (
    r"(?:Trial|Cancell?ed|Declined|Joined|Invited|Role|Tier|Plan|Price|Email|Lifetime|LTV|"
    r"Membership|Member|Removing|Churns?|Active|Level)"
)
# One word: an acronym ("VIP") or a word whose tail is lowercase ("gold", "Admin").
_TOKEN = r"(?:[A-Z0-9]{2,}(?![a-z])|[A-Za-z0-9][a-z0-9+&'_-]*)"
_VALUE = rf"{_TOKEN}(?:[ ](?!{_STOP_WORDS}\b){_TOKEN}){{0,3}}"
# Inner capitals ("McDonald") are part of the word unless they start a glued label.
_NAME_WORD = rf"[A-Z][a-z'’-]*(?:(?!{_STOP_WORDS})[A-Z][a-z'’-]+)*"
_PERSON = rf"{_NAME_WORD}(?:[ ](?!{_STOP_WORDS}\b){_NAME_WORD}){{0,3}}"
_MONEY = r"\$\s?\d[\d,]*(?:\.\d{2})?"

SECTION_HEADER_RE = re.compile(
    r"(?i:membership settings|member settings|manage membership|membership details)"
)
NAME_TAIL_RE = re.compile(r"([A-Z][A-Za-z'’.-]*(?:[ ][A-Z][A-Za-z'’.-]*){0,4})\s*$")
# A lowercase TLD ends at the next capital ("x.comRole"); an all-caps one at any letter.
EMAIL_RE = re.compile(
    r"(?i:e-?mail)(?i:\s*address)?\s*:?\s*"
    r"(?P<value>[A-Za-z0-9._%+-]+@(?:[A-Za-z0-9-]+\.)+"
    r"(?:[a-z]{2,24}(?![a-z])|[A-Z][a-z]{1,23}(?![a-z])|[A-Z]{2,24}(?![A-Za-z])))"
)
EMAIL_SHAPE_RE = re.compile(r"[^@\s]+@[^@\s]+\.[A-Za-z]{2,}")
ROLE_RE = re.compile(rf"(?i:role)\s*:\s*(?P<value>{_VALUE})")
TIER_RE = re.compile(rf"(?i:tier|plan)\s*:\s*(?P<value>{_VALUE})")
LIFETIME_VALUE_RE = re.compile(
    rf"(?i:lifetime value|lifetime spend|ltv|total paid)\s*:?\s*(?P<value>{_MONEY})"
)
INVITED_BY_RE = re.compile(rf"(?i:invited by)\s*:?\s*(?P<value>{_PERSON})")

MAX_VALUE_CHARS = 40
NAME_LOOKBACK_LINES = 3


def _labeled(pattern: re.Pattern) -> Extractor:
    def extract(text: str) -> Optional[str]:
        match = pattern.search(text)
        if not match:
            return None
        value = match.group("value").strip()
        if not value or len(value) > MAX_VALUE_CHARS:
            return None
        return value

    return extract


def name_before_header(text: str) -> Optional[str]:
    """Name shown immediately above the membership settings header."""

    header = SECTION_HEADER_RE.search(text)
    if not header:
        return None
    lines = [line.strip() for line in text[: header.start()].splitlines() if line.strip()]
    # The handle line ("@jane-doe") may sit between the name and the header.
    for line in reversed(lines[-NAME_LOOKBACK_LINES:]):
        if looks_like_name(line):
            return line
        tail = NAME_TAIL_RE.search(line)
        if tail and looks_like_name(tail.group(1)):
            return tail.group(1).strip()
    return None


def labeled_email(text: str) -> Optional[str]:
    match = EMAIL_RE.search(text)
    if not match:
        return None
    value = match.group("value")
    return value if EMAIL_SHAPE_RE.fullmatch(value) else None


def money_without_space(extractor: Extractor) -> Extractor:
    def extract(text: str) -> Optional[str]:
        value = extractor(text)
        return value.replace(" ", "") if value else None

    return extract


FIELD_EXTRACTORS: Dict[str, Sequence[Extractor]] = {
    "name": (name_before_header,),
    "email": (labeled_email,),
    "role": (_labeled(ROLE_RE),),
    "tier": (_labeled(TIER_RE),),
    "price": (formatted_price,),
    "join_date": (_labeled(JOIN_DATE_RE),),
    "last_active": (last_active,),
    "lifetime_value": (money_without_space(_labeled(LIFETIME_VALUE_RE)),),
    "invited_by": (_labeled(INVITED_BY_RE),),
}


def first_result(extractors: Sequence[Extractor], text: str) -> Optional[str]:
    for extractor in extractors:
        value = extractor(text)
        if value:
            return value
    return None


def mentions_other_member(text: Optional[str], username: str) -> bool:
    """True when the text names members by handle but never ``@username``."""

    if not text:
        return False
    handles = {match.group(1).lower() for match in HANDLE_RE.finditer(text)}
    return bool(handles) and username.lower() not in handles


def parse_member_detail(text: Optional[str]) -> Optional[MemberDetail]:
    """Parse a detail view's text; None when nothing attributable is found."""

    if not text or not text.strip():
        return None

    fields = {name: first_result(chain, text) for name, chain in FIELD_EXTRACTORS.items()}
    signal = classify_churn(text)
    detail = MemberDetail(
        churn_status=signal.status if signal else None,
        days_remaining=signal.days if signal else None,
        **fields,
    )
    if detail.is_empty():
        LOGGER.debug("Detail text had no recognizable fields: %r", text[:200])
        return None
    return detail
