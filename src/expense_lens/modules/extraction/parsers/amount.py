from __future__ import annotations

import re

_NUM = r"(\d{1,4}(?:,\d{3})*(?:\.\d{2})?)"
_CUR = r"[€$]?"

MAX_TOTAL = 50000.0
MAX_TRAILING_LINE_AMOUNT = 1000.0
SIGNIFICANT_AMOUNT = 2.0

# Tried in order; the first tier that yields any in-range amount wins.
AMOUNT_TIERS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("in_total_incl_vat", re.compile(r"in\s+total\s*\(incl\s+vat\)\s*" + _CUR + _NUM, re.I)),
    ("in_total", re.compile(r"in\s+total[:\s]*" + _CUR + _NUM, re.I)),
    ("total_label", re.compile(r"(?:total|grand total|amount due)[:\s]*" + _CUR + _NUM, re.I)),
    ("amount_then_total", re.compile(_CUR + _NUM + r"\s*(?:total|grand total)", re.I)),
    ("subtotal_label", re.compile(r"(?:subtotal|sub total)[:\s]*" + _CUR + _NUM, re.I)),
    ("balance_label", re.compile(r"(?:balance|amount due|due)[:\s]*" + _CUR + _NUM, re.I)),
    ("line_end", re.compile(r"\s+(\d{1,3}\.?\d{0,2})\s*$", re.M)),
    ("currency_prefix", re.compile(r"[€$]" + _NUM)),
    ("currency_suffix", re.compile(_NUM + r"\s*[€$]")),
)

_TRAILING_NUMBER_RE = re.compile(r"(\d{1,3}\.?\d{0,2})\s*$")


def extract_amount(text: str, lines: list[str] | None = None) -> float | None:
    """
    Best-guess transaction total.

    Label tiers are never mixed: all matches come from the first tier that produced
    a usable amount. Among those, the largest amount >= 2.00 wins (smaller values
    are usually unit prices caught by a loose pattern), else the largest overall.
    """
    if not text:
        return None

    candidates: list[float] = []
    for _name, pattern in AMOUNT_TIERS:
        candidates = _tier_candidates(pattern, text)
        if candidates:
            break

    if not candidates:
        if lines is None:
            lines = [ln for ln in text.splitlines() if ln.strip()]
        candidates = _trailing_line_amounts(lines)

    return pick_total(candidates)


def pick_total(candidates: list[float]) -> float | None:
    if not candidates:
        return None
    significant = [amt for amt in candidates if amt >= SIGNIFICANT_AMOUNT]
    return max(significant) if significant else max(candidates)


def _tier_candidates(pattern: re.Pattern[str], text: str) -> list[float]:
    out: list[float] = []
    for m in pattern.finditer(text):
        value = parse_amount(m.group(1))
        if value is not None and 0 < value < MAX_TOTAL:
            out.append(value)
    return out


def _trailing_line_amounts(lines: list[str]) -> list[float]:
    out: list[float] = []
    for line in reversed(lines):
        m = _TRAILING_NUMBER_RE.search(line)
        if not m:
            continue
        value = parse_amount(m.group(1))
        if value is not None and 0 < value < MAX_TRAILING_LINE_AMOUNT:
            out.append(value)
    return out


def parse_amount(raw: str | None) -> float | None:
    s = (raw or "").replace(",", "").strip()
    if not s:
        return None
    try:
        return float(s)
    except ValueError:
        return None
