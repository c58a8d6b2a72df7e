"""
Heuristic parser for storefront release-date text.

The search page shows release dates as free text: exact dates,
"Nov 2025", "2026", "Q3 2026", "Coming soon", "To be announced".
Everything is normalized to a UTC datetime, or None when no date
can be placed on a calendar. Bare years and quarters are deliberate
approximations, not parse failures.
"""

import re
from datetime import datetime, timezone

DEFAULT_YEAR_WINDOW = (2024, 2030)

# Month placeholder used for bare years
BARE_YEAR_MONTH = 6
BARE_YEAR_DAY = 15

_UNKNOWN_MARKERS = ("tba", "coming soon", "to be announced")

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_FULL_MONTHS = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}

_MONTH_YEAR_RE = re.compile(r"^([A-Za-z]+)\.?,?\s+(\d{4})$")
_BARE_YEAR_RE = re.compile(r"^(\d{4})$")
_QUARTER_RE = re.compile(
    r"\bQ([1-4])\b|\b([1-4])(?:st|nd|rd|th)?\s+quarter\b",
    re.IGNORECASE,
)
_YEAR_RE = re.compile(r"\b(\d{4})\b")

_FALLBACK_FORMATS = (
    "%d %b, %Y",
    "%d %B, %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
)


def _month_number(token: str) -> int | None:
    """Map an English month name or abbreviation to 1-12."""
    token = token.lower()
    return _FULL_MONTHS.get(token) or _MONTHS.get(token)


def _utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def _parse_month_year(text: str) -> datetime | None:
    match = _MONTH_YEAR_RE.match(text)
    if not match:
        return None
    month = _month_number(match.group(1))
    if month is None:
        return None
    return _utc(int(match.group(2)), month, 1)


def _parse_bare_year(text: str, year_window: tuple[int, int]) -> datetime | None:
    match = _BARE_YEAR_RE.match(text)
    if not match:
        return None
    year = int(match.group(1))
    first, last = year_window
    if not first <= year <= last:
        return None
    return _utc(year, BARE_YEAR_MONTH, BARE_YEAR_DAY)


def _parse_quarter(text: str) -> datetime | None:
    quarter_match = _QUARTER_RE.search(text)
    if not quarter_match:
        return None
    year_match = _YEAR_RE.search(text)
    if not year_match:
        return None
    quarter = int(quarter_match.group(1) or quarter_match.group(2))
    return _utc(int(year_match.group(1)), (quarter - 1) * 3 + 1, 1)


def _parse_generic(text: str) -> datetime | None:
    for fmt in _FALLBACK_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_release_date(
    text: str | None,
    *,
    year_window: tuple[int, int] = DEFAULT_YEAR_WINDOW,
) -> datetime | None:
    """
    Normalize free-text release date to a UTC datetime.

    Rules are applied in order, first match wins:

    1. Empty, "TBA", "Coming soon", "To be announced" -> None
    2. "<Month> <Year>" -> first day of that month
    3. Bare year inside ``year_window`` -> June 15 of that year
    4. "Q<n> <Year>" or "<n>th Quarter <Year>" -> first day of the quarter
    5. Common exact date formats and ISO strings

    Args:
        text: Raw release date text from the storefront
        year_window: Inclusive (first, last) years accepted for bare years

    Returns:
        datetime | None: UTC midnight of the estimated date, None if unknown

    Example:
        >>> parse_release_date("Q4 2025")
        datetime.datetime(2025, 10, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if not text:
        return None

    normalized = " ".join(text.split())
    if not normalized:
        return None

    lowered = normalized.lower()
    if any(marker in lowered for marker in _UNKNOWN_MARKERS):
        return None

    if _BARE_YEAR_RE.match(normalized):
        return _parse_bare_year(normalized, year_window)

    return (
        _parse_month_year(normalized)
        or _parse_quarter(normalized)
        or _parse_generic(normalized)
    )
