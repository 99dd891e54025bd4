"""Field patterns shared by roster rows and member detail views."""
from __future__ import annotations

import re
from typing import Optional


MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?"
DATE = (
    r"(?:[A-Z][a-z]{2,8}\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}"
    r"|[A-Z][a-z]{2,8}\.?\s+\d{1,2}(?:st|nd|rd|th)?"
    r"|\d{4}-\d{2}-\d{2}"
    r"|\d{1,2}/\d{1,2}/\d{2,4}"
    r"|\d+\s*(?:days?|weeks?|months?|years?)\s+ago)"
)

# "Jan 5, 2024" / "March 3rd" as a whole line: never a display name.
DATE_LINE_RE = re.compile(rf"^{MONTH}\s+\d{{1,2}}(?:st|nd|rd|th)?\b", re.IGNORECASE)
PRICE_RE = re.compile(
    r"\$\s?(?P<amount>\d[\d,]*(?:\.\d{2})?)\s*/\s*(?P<period>(?i:month|mo|year|yr|week|wk))(?![a-z])"
)
JOIN_DATE_RE = re.compile(rf"(?i:joined|join date|member since)\s*:?\s*(?P<value>{DATE})")
# A capitalized label may be glued to the previous value ("goldActive"); "Inactive" never matches.
LAST_ACTIVE_RE = re.compile(
    r"(?:Active|(?<![A-Za-z])(?i:active))\s*:?\s*"
    r"(?P<value>\d+\s*(?:[smhdwy]|mins?|minutes?|hrs?|hours?|days?|weeks?|months?|years?)\s*ago"
    r"|(?i:now|today|yesterday))"
)

_PERIODS = {"mo": "month", "yr": "year", "wk": "week"}


def formatted_price(text: str) -> Optional[str]:
    """Normalized recurring price (``$49/month``) or None."""

    match = PRICE_RE.search(text or "")
    if not match:
        return None
    amount = match.group("amount").replace(",", "")
    period = match.group("period").lower()
    return f"${amount}/{_PERIODS.get(period, period)}"


def join_date(text: str) -> Optional[str]:
    match = JOIN_DATE_RE.search(text or "")
    return match.group("value").strip() if match else None


def last_active(text: str) -> Optional[str]:
    match = LAST_ACTIVE_RE.search(text or "")
    return match.group("value").strip() if match else None
