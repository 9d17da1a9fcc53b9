from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

OTHER_CATEGORY = "Other"


@dataclass(frozen=True)
class LineItem:
    description: str
    quantity: int | None = None
    unit_price: float | None = None
    total_price: float | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"description": self.description}
        if self.quantity is not None:
            out["quantity"] = self.quantity
        if self.unit_price is not None:
            out["unitPrice"] = self.unit_price
        if self.total_price is not None:
            out["totalPrice"] = self.total_price
        return out


@dataclass(frozen=True)
class CategoryGuess:
    category: str
    confidence: float


@dataclass(frozen=True)
class ExtractionResult:
    vendor: str = ""
    amount: float | None = None
    date: str = ""
    items: tuple[LineItem, ...] = field(default_factory=tuple)
    suggested_category: str = OTHER_CATEGORY
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "vendor": self.vendor,
            "amount": self.amount,
            "date": self.date,
            "items": [item.to_dict() for item in self.items],
            "suggestedCategory": self.suggested_category,
            "confidence": self.confidence,
        }


def empty_result() -> ExtractionResult:
    """The result reported when OCR recognized no text at all."""
    return ExtractionResult()
