from __future__ import annotations

import re
from collections.abc import Callable

from expense_lens.modules.extraction.categories import VENDOR_KEYWORDS

VendorStrategy = Callable[[list[str]], str | None]

# Lines that label receipt metadata rather than name a business.
_METADATA_LINE_RE = re.compile(
    r"(RECEIPT|INVOICE|BILL|TOTAL|SUBTOTAL|TAX|DATE|TIME|CUSTOMER|COPY|MERCHANT|TERMINAL|"
    r"STORE|LOCATION|ADDRESS|THANK YOU|VISIT|AGAIN|\d+)",
    re.I,
)
_NUMERIC_LINE_RE = re.compile(r"[\d\s\-/.()]+")
_RULE_LINE_RE = re.compile(r"[*\-=_\s]+")
_BARE_NUMBER_RE = re.compile(r"\d+")
_DATE_LINE_RE = re.compile(r"\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}")
_STREET_LINE_RE = re.compile(
    r"\d+\s+\w+\s+(st|street|ave|avenue|rd|road|blvd|boulevard|dr|drive|ln|lane)", re.I
)
_HAS_LETTER_RE = re.compile(r"[a-zA-Z]")
_DIGITS_PUNCT_RE = re.compile(r"[\d\s\-/.]+")

BUSINESS_NAME_SHAPES: tuple[re.Pattern[str], ...] = (
    # ACME HARDWARE
    re.compile(r"[A-Z][A-Z\s&'.-]{2,35}"),
    # Blue Bottle Cafe
    re.compile(
        r"[A-Z][a-z]+(?:\s[A-Z][a-z]*)*"
        r"(?:\s(?:Inc|LLC|Corp|Ltd|Co|Restaurant|Cafe|Store|Market|Shop)\.?)?"
    ),
    # the corner market
    re.compile(r"[A-Za-z][A-Za-z\s&'.-]*(?:Restaurant|Cafe|Store|Market|Shop|Inc|LLC|Corp|Ltd|Co)", re.I),
    # 7-Eleven
    re.compile(r"[A-Za-z0-9][A-Za-z0-9\s&'.-]{2,35}"),
)


def vendor_from_keywords(lines: list[str]) -> str | None:
    for line in lines[:5]:
        candidate = line.strip()
        if not 2 <= len(candidate) <= 50:
            continue
        lowered = candidate.lower()
        if any(keyword in lowered for keyword in VENDOR_KEYWORDS):
            return candidate
    return None


def vendor_from_business_shape(lines: list[str]) -> str | None:
    for line in lines[:8]:
        candidate = line.strip()
        if not 3 <= len(candidate) <= 40:
            continue
        if _METADATA_LINE_RE.fullmatch(candidate):
            continue
        if _NUMERIC_LINE_RE.fullmatch(candidate) or _RULE_LINE_RE.fullmatch(candidate):
            continue
        if any(shape.fullmatch(candidate) for shape in BUSINESS_NAME_SHAPES):
            return candidate
    return None


def vendor_from_first_plausible_line(lines: list[str]) -> str | None:
    for line in lines[:6]:
        candidate = line.strip()
        if not 3 <= len(candidate) <= 40 or not _HAS_LETTER_RE.search(candidate):
            continue
        if _METADATA_LINE_RE.fullmatch(candidate):
            continue
        if (
            _BARE_NUMBER_RE.fullmatch(candidate)
            or _DATE_LINE_RE.fullmatch(candidate)
            or _STREET_LINE_RE.fullmatch(candidate)
        ):
            continue
        return candidate
    return None


def vendor_from_longest_line(lines: list[str]) -> str | None:
    best = ""
    for line in lines[:4]:
        candidate = line.strip()
        if len(candidate) <= len(best) or not 3 <= len(candidate) <= 40:
            continue
        if not _HAS_LETTER_RE.search(candidate) or _DIGITS_PUNCT_RE.fullmatch(candidate):
            continue
        best = candidate
    return best or None


VENDOR_STRATEGIES: tuple[VendorStrategy, ...] = (
    vendor_from_keywords,
    vendor_from_business_shape,
    vendor_from_first_plausible_line,
    vendor_from_longest_line,
)


def extract_vendor(text: str, lines: list[str] | None = None) -> str:
    if lines is None:
        lines = [ln for ln in (text or "").splitlines() if ln.strip()]
    for strategy in VENDOR_STRATEGIES:
        vendor = strategy(lines)
        if vendor:
            return vendor
    return ""
