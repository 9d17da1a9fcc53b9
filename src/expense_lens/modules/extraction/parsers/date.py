from __future__ import annotations

import re
from datetime import date, datetime

# First pattern with any match wins, and only its first match is used. A receipt
# with several date stamps therefore resolves to whichever shape ranks highest here.
DATE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("dmy_slash_time", re.compile(r"(\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}:\d{2})")),
    ("dmy_slash", re.compile(r"(\d{1,2}/\d{1,2}/\d{4})")),
    ("numeric_short", re.compile(r"(?<!\d)(\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4})(?!\d)")),
    ("ymd", re.compile(r"(\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2})")),
    ("month_day_comma_year", re.compile(r"(\w{3,9}\s+\d{1,2},?\s+\d{4})", re.ASCII)),
    ("day_month_year", re.compile(r"(\d{1,2}\s+\w{3,9}\s+\d{4})", re.ASCII)),
    ("month_day_year", re.compile(r"(\w{3,9}\s+\d{1,2}\s+\d{4})", re.ASCII)),
    ("day_mon_year", re.compile(r"(\d{1,2}[-/]\w{3}[-/]\d{4})", re.ASCII)),
)

_EUROPEAN_PREFIX_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})")

# Month-first is tried before day-first for ambiguous numeric dates.
_GENERIC_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%m-%d-%Y",
    "%m.%d.%Y",
    "%m/%d/%y",
    "%m-%d-%y",
    "%m.%d.%y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d/%m/%y",
    "%d-%m-%y",
    "%d.%m.%y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%d-%b-%Y",
    "%d/%b/%Y",
)


def extract_date(text: str) -> str:
    raw = find_date(text)
    if not raw:
        return ""
    return normalize_date(raw)


def find_date(text: str) -> str | None:
    if not text:
        return None
    for _name, pattern in DATE_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(1)
    return None


def normalize_date(raw: str) -> str:
    """
    Canonical YYYY-MM-DD for a matched date string.

    D/M/YYYY (optionally followed by a time) is always read day-first. Anything
    that is not a real calendar date comes back unchanged.
    """
    m = _EUROPEAN_PREFIX_RE.match(raw)
    if m:
        day, month, year = (int(g) for g in m.groups())
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return raw

    parsed = _parse_calendar_date(raw)
    return parsed.isoformat() if parsed else raw


def _parse_calendar_date(raw: str) -> date | None:
    s = re.sub(r"\s+", " ", raw.strip())
    for fmt in _GENERIC_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    # "Sept 5, 2025" and similar four-letter abbreviations
    m = re.fullmatch(r"([A-Za-z]{3})[A-Za-z]*\.?\s+(\d{1,2}),?\s+(\d{4})", s)
    if m:
        try:
            return datetime.strptime(f"{m.group(1)} {m.group(2)} {m.group(3)}", "%b %d %Y").date()
        except ValueError:
            return None
    return None
