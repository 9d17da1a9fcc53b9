from __future__ import annotations

import re
from collections.abc import Callable

from expense_lens.modules.extraction.parsers.amount import parse_amount
from expense_lens.modules.extraction.types import LineItem

MAX_ITEMS = 15
MAX_FALLBACK_ITEMS = 10
MAX_ITEM_PRICE = 1000.0
MAX_QUANTITY = 100
MIN_DESCRIPTION = 2
MAX_DESCRIPTION = 50
UNIT_TOTAL_TOLERANCE = 0.02

_PRICE = r"(\d{1,3}(?:,\d{3})*\.?\d{0,2})"
_CUR = r"[€$]?"

SKIP_PATTERNS: tuple[re.Pattern[str], ...] = (
    # payment and totals
    re.compile(
        r"^(total|subtotal|tax|discount|tip|change|cash|credit|debit|visa|mastercard|amex|discover)",
        re.I,
    ),
    # receipt metadata
    re.compile(
        r"^(receipt|invoice|bill|date|time|cashier|server|table|order|transaction|reference)", re.I
    ),
    re.compile(r"^[\d\s\-/.#]+$"),
    re.compile(r"^[*\-=_\s]+$"),
    re.compile(r"^.{0,2}$"),
    re.compile(r"^.{60,}$"),
    re.compile(r"^\d{1,2}/\d{1,2}(?:/\d{2,4})?"),
    re.compile(r"^\d{1,2}:\d{2}(?::\d{2})?(?:\s*[AP]M)?", re.I),
    re.compile(
        r"^(thank you|visit us|store|location|address|phone|email|website|manager|employee)", re.I
    ),
    re.compile(r"^(card|account|approval|auth|ref|terminal|merchant)", re.I),
    re.compile(r"^(save|earn|points|rewards|member|loyalty)", re.I),
    # Dutch opening hours, contact and street noise
    re.compile(
        r"^(open|geopend|vrijdag|zaterdag|zondag|maandag|dinsdag|woensdag|donderdag|tel|e-mail|damrak)",
        re.I,
    ),
    re.compile(r"^(in total|incl vat|vat|btw)", re.I),
)

_NUMERIC_DESCRIPTION_RE = re.compile(r"[\d\s\-/.#]+")
_SYMBOL_DESCRIPTION_RE = re.compile(r"[*\-=_\s]+")
_HAS_LETTER_RE = re.compile(r"[a-zA-Z]")
_TRAILING_PRICE_RE = re.compile(_CUR + _PRICE + r"\s*$")


def _valid_price(value: float | None) -> bool:
    return value is not None and 0 < value < MAX_ITEM_PRICE


def _valid_quantity(value: int) -> bool:
    return 0 < value < MAX_QUANTITY


def _leading_quantity_with_price(m: re.Match[str]) -> LineItem | None:
    """`1 McB ChiliChicken      2.50`; an implausible price is dropped, the item kept."""
    quantity = int(m.group(1))
    description = m.group(2).strip()
    price = parse_amount(m.group(3))
    if not _valid_quantity(quantity) or len(description) < MIN_DESCRIPTION:
        return None
    return LineItem(
        description=description,
        quantity=quantity,
        total_price=price if _valid_price(price) else None,
    )


def _leading_quantity_only(m: re.Match[str]) -> LineItem | None:
    quantity = int(m.group(1))
    description = m.group(2).strip()
    if not _valid_quantity(quantity) or len(description) < MIN_DESCRIPTION:
        return None
    return LineItem(description=description, quantity=quantity)


def _description_and_price(m: re.Match[str]) -> LineItem | None:
    price = parse_amount(m.group(2))
    if not _valid_price(price):
        return None
    return LineItem(description=m.group(1).strip(), total_price=price)


def _strict_leading_quantity(m: re.Match[str]) -> LineItem | None:
    quantity = int(m.group(1))
    price = parse_amount(m.group(3))
    if not (_valid_price(price) and _valid_quantity(quantity)):
        return None
    return LineItem(description=m.group(2).strip(), quantity=quantity, total_price=price)


def _labelled_quantity(m: re.Match[str]) -> LineItem | None:
    quantity = int(m.group(2))
    price = parse_amount(m.group(3))
    if not (_valid_price(price) and _valid_quantity(quantity)):
        return None
    return LineItem(description=m.group(1).strip(), quantity=quantity, total_price=price)


def _at_price(m: re.Match[str]) -> LineItem | None:
    price = parse_amount(m.group(2))
    if not _valid_price(price):
        return None
    return LineItem(description=m.group(1).strip(), total_price=price)


def _unit_times_quantity(m: re.Match[str]) -> LineItem | None:
    unit_price = parse_amount(m.group(2))
    quantity = int(m.group(3))
    total_price = parse_amount(m.group(4))
    if not (_valid_price(unit_price) and _valid_price(total_price) and _valid_quantity(quantity)):
        return None
    if abs(unit_price * quantity - total_price) > UNIT_TOTAL_TOLERANCE:
        return None
    return LineItem(
        description=m.group(1).strip(),
        quantity=quantity,
        unit_price=unit_price,
        total_price=total_price,
    )


ItemHandler = Callable[[re.Match[str]], LineItem | None]

# The first shape that matches a line claims it, even when its handler then
# rejects the values.
ITEM_SHAPES: tuple[tuple[re.Pattern[str], ItemHandler], ...] = (
    (
        re.compile(r"^(\d{1,2})\s+([A-Za-z][A-Za-z\s&'.-]{2,40}?)\s{2,}" + _PRICE + r"\s*$"),
        _leading_quantity_with_price,
    ),
    (
        re.compile(
            r"^(\d{1,2})\s+([A-Za-z][A-Za-z\s&'.-]{2,40}?)\s{2,}" + _CUR + _PRICE + r"\s*$"
        ),
        _leading_quantity_with_price,
    ),
    (
        re.compile(r"^(\d{1,2})\s+([A-Za-z][A-Za-z\s&'.-]{2,40}?)\s*$"),
        _leading_quantity_only,
    ),
    (
        re.compile(r"^(.{3,45}?)\s{2,}" + _CUR + _PRICE + r"\s*$"),
        _description_and_price,
    ),
    (
        re.compile(r"^(\d{1,2})\s*x?\s+(.{3,35}?)\s{2,}" + _CUR + _PRICE + r"\s*$"),
        _strict_leading_quantity,
    ),
    (
        re.compile(
            r"^(.{3,35}?)\s+(?:qty|quantity)[:.]?\s*(\d{1,2})\s+" + _CUR + _PRICE + r"\s*$", re.I
        ),
        _labelled_quantity,
    ),
    (
        re.compile(r"^(.{3,35}?)\s+@\s+" + _CUR + _PRICE + r"\s*$"),
        _at_price,
    ),
    (
        re.compile(
            r"^(.{3,35}?)\s+" + _CUR + _PRICE + r"\s*x\s*(\d{1,2})\s*=?\s*" + _CUR + _PRICE + r"\s*$",
            re.I,
        ),
        _unit_times_quantity,
    ),
    (
        re.compile(r"^([a-zA-Z][a-zA-Z\s&'.-]{2,30})\s{2,}(\d{1,3}\.?\d{0,2})\s*$"),
        _description_and_price,
    ),
    (
        re.compile(
            r"^((?:small|medium|large|extra|regular)?\s*[a-zA-Z][a-zA-Z\s&'.-]{2,30})\s{2,}"
            + _CUR
            + _PRICE
            + r"\s*$",
            re.I,
        ),
        _description_and_price,
    ),
)


def is_skipped(line: str) -> bool:
    return any(pattern.search(line) for pattern in SKIP_PATTERNS)


def is_acceptable_description(description: str) -> bool:
    if not MIN_DESCRIPTION <= len(description) <= MAX_DESCRIPTION:
        return False
    return not (
        _NUMERIC_DESCRIPTION_RE.fullmatch(description)
        or _SYMBOL_DESCRIPTION_RE.fullmatch(description)
    )


def parse_item_line(line: str) -> LineItem | None:
    for pattern, handler in ITEM_SHAPES:
        m = pattern.search(line)
        if not m:
            continue
        item = handler(m)
        if item and is_acceptable_description(item.description):
            return item
        return None
    return None


def extract_line_items(lines: list[str]) -> list[LineItem]:
    items: list[LineItem] = []
    for raw in lines:
        line = raw.strip()
        if is_skipped(line):
            continue
        item = parse_item_line(line)
        if item:
            items.append(item)

    if not items:
        items = _fallback_items(lines)

    return items[:MAX_ITEMS]


def _fallback_items(lines: list[str]) -> list[LineItem]:
    """Lower-confidence pass for receipts whose lines fit none of the item shapes."""
    candidates = [
        line.strip()
        for line in lines
        if 3 <= len(line.strip()) <= MAX_DESCRIPTION
        and not is_skipped(line.strip())
        and _HAS_LETTER_RE.search(line)
        and is_acceptable_description(line.strip())
    ][:MAX_FALLBACK_ITEMS]

    items: list[LineItem] = []
    for line in candidates:
        m = _TRAILING_PRICE_RE.search(line)
        if not m:
            items.append(LineItem(description=line))
            continue
        price = parse_amount(m.group(1))
        description = line[: m.start()].strip()
        if _valid_price(price) and is_acceptable_description(description):
            items.append(LineItem(description=description, total_price=price))
    return items
