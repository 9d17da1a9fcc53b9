from __future__ import annotations

import hashlib
import re
import time
from collections.abc import Callable
from typing import TypeVar

from expense_lens.core.logging import get_logger, log_event, log_exception, monotonic_ms
from expense_lens.modules.extraction.categories import classify
from expense_lens.modules.extraction.parsers.amount import extract_amount
from expense_lens.modules.extraction.parsers.date import extract_date
from expense_lens.modules.extraction.parsers.line_items import extract_line_items
from expense_lens.modules.extraction.parsers.vendor import extract_vendor
from expense_lens.modules.extraction.types import (
    OTHER_CATEGORY,
    CategoryGuess,
    ExtractionResult,
    empty_result,
)

logger = get_logger(__name__)

T = TypeVar("T")


def split_receipt_lines(text: str) -> list[str]:
    cleaned = re.sub(r"\n+", "\n", text or "").strip()
    return [ln for ln in cleaned.split("\n") if ln.strip()]


def interpret_receipt(text: str | None) -> ExtractionResult:
    """
    Turn raw OCR text into vendor, date, total, line items and a category guess.

    Pure function of its input. Each stage degrades to its empty value instead of
    raising, so any string (including "") yields a well-formed result.
    """
    if not text or not text.strip():
        return empty_result()

    start = time.monotonic()
    lines = split_receipt_lines(text)
    text_hash = hashlib.sha256(text.encode("utf-8", errors="ignore")).hexdigest()

    amount = _run_stage("amount", text_hash, lambda: extract_amount(text, lines), None)
    date = _run_stage("date", text_hash, lambda: extract_date(text), "")
    vendor = _run_stage("vendor", text_hash, lambda: extract_vendor(text, lines), "")
    items = _run_stage("line_items", text_hash, lambda: extract_line_items(lines), [])
    guess = _run_stage(
        "category",
        text_hash,
        lambda: classify(vendor, items, text),
        CategoryGuess(category=OTHER_CATEGORY, confidence=0.0),
    )

    result = ExtractionResult(
        vendor=vendor,
        amount=amount,
        date=date,
        items=tuple(items),
        suggested_category=guess.category,
        confidence=guess.confidence,
    )
    log_event(
        logger,
        "extraction.interpret.finish",
        text_hash=text_hash,
        text_length=len(text),
        line_count=len(lines),
        has_vendor=bool(result.vendor),
        has_amount=result.amount is not None,
        has_date=bool(result.date),
        item_count=len(result.items),
        category=result.suggested_category,
        confidence=result.confidence,
        duration_ms=monotonic_ms(start),
    )
    return result


def _run_stage(stage: str, text_hash: str, fn: Callable[[], T], default: T) -> T:
    try:
        return fn()
    except Exception:  # noqa: BLE001
        log_exception(logger, "extraction.interpret.stage_error", stage=stage, text_hash=text_hash)
        return default
