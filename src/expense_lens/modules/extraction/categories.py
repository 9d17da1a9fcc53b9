from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType

from expense_lens.modules.extraction.types import OTHER_CATEGORY, CategoryGuess, LineItem

MEALS = "Meals & Entertainment"
TRANSPORTATION = "Transportation"
LODGING = "Lodging"
OFFICE_SUPPLIES = "Office Supplies"
TECHNOLOGY = "Technology"
HEALTHCARE = "Healthcare"
TRAINING = "Training & Education"

CATEGORIES: tuple[str, ...] = (
    MEALS,
    TRANSPORTATION,
    LODGING,
    OFFICE_SUPPLIES,
    TECHNOLOGY,
    HEALTHCARE,
    TRAINING,
    OTHER_CATEGORY,
)

VENDOR_WEIGHT = 5
ITEM_WEIGHT = 2
TEXT_WEIGHT = 1
FULL_CONFIDENCE_SCORE = 8

# Iteration order is part of the contract: equal scores resolve to whichever
# category was scored first.
VENDOR_KEYWORDS: Mapping[str, str] = MappingProxyType(
    {
        "mcdonalds": MEALS,
        "mcdonald": MEALS,
        "starbucks": MEALS,
        "subway": MEALS,
        "pizza": MEALS,
        "restaurant": MEALS,
        "cafe": MEALS,
        "kfc": MEALS,
        "burger king": MEALS,
        "taco bell": MEALS,
        "dominos": MEALS,
        "chipotle": MEALS,
        "panera": MEALS,
        "dunkin": MEALS,
        "uber": TRANSPORTATION,
        "lyft": TRANSPORTATION,
        "taxi": TRANSPORTATION,
        "gas": TRANSPORTATION,
        "shell": TRANSPORTATION,
        "exxon": TRANSPORTATION,
        "mobil": TRANSPORTATION,
        "chevron": TRANSPORTATION,
        "bp": TRANSPORTATION,
        "citgo": TRANSPORTATION,
        "hotel": LODGING,
        "marriott": LODGING,
        "hilton": LODGING,
        "holiday inn": LODGING,
        "hyatt": LODGING,
        "airbnb": LODGING,
        "motel": LODGING,
        "staples": OFFICE_SUPPLIES,
        "office depot": OFFICE_SUPPLIES,
        "best buy": TECHNOLOGY,
        "apple": TECHNOLOGY,
        "microsoft": TECHNOLOGY,
        "amazon": OFFICE_SUPPLIES,
        "walmart": OFFICE_SUPPLIES,
        "target": OFFICE_SUPPLIES,
        "costco": OFFICE_SUPPLIES,
        "pharmacy": HEALTHCARE,
        "cvs": HEALTHCARE,
        "walgreens": HEALTHCARE,
        "rite aid": HEALTHCARE,
    }
)

ITEM_KEYWORDS: Mapping[str, str] = MappingProxyType(
    {
        "coffee": MEALS,
        "lunch": MEALS,
        "dinner": MEALS,
        "breakfast": MEALS,
        "meal": MEALS,
        "food": MEALS,
        "drink": MEALS,
        "beverage": MEALS,
        "sandwich": MEALS,
        "burger": MEALS,
        "pizza": MEALS,
        "salad": MEALS,
        "gas": TRANSPORTATION,
        "gasoline": TRANSPORTATION,
        "fuel": TRANSPORTATION,
        "parking": TRANSPORTATION,
        "toll": TRANSPORTATION,
        "taxi": TRANSPORTATION,
        "uber": TRANSPORTATION,
        "flight": TRANSPORTATION,
        "airline": TRANSPORTATION,
        "hotel": LODGING,
        "room": LODGING,
        "accommodation": LODGING,
        "pen": OFFICE_SUPPLIES,
        "paper": OFFICE_SUPPLIES,
        "notebook": OFFICE_SUPPLIES,
        "printer": OFFICE_SUPPLIES,
        "ink": OFFICE_SUPPLIES,
        "supplies": OFFICE_SUPPLIES,
        "computer": TECHNOLOGY,
        "laptop": TECHNOLOGY,
        "phone": TECHNOLOGY,
        "software": TECHNOLOGY,
        "electronics": TECHNOLOGY,
        "medicine": HEALTHCARE,
        "prescription": HEALTHCARE,
        "medical": HEALTHCARE,
        "pharmacy": HEALTHCARE,
        "conference": TRAINING,
        "training": TRAINING,
        "seminar": TRAINING,
        "course": TRAINING,
        "workshop": TRAINING,
    }
)


def score_categories(vendor: str, items: Iterable[LineItem], full_text: str) -> dict[str, int]:
    scores: dict[str, int] = {}

    def add(category: str, weight: int) -> None:
        scores[category] = scores.get(category, 0) + weight

    vendor_lower = (vendor or "").lower()
    for keyword, category in VENDOR_KEYWORDS.items():
        if keyword in vendor_lower:
            add(category, VENDOR_WEIGHT)

    for item in items:
        description = item.description.lower()
        for keyword, category in ITEM_KEYWORDS.items():
            if keyword in description:
                add(category, ITEM_WEIGHT)

    # Whole-text pass picks up context the structured extraction missed.
    text_lower = (full_text or "").lower()
    for keyword, category in ITEM_KEYWORDS.items():
        if keyword in text_lower:
            add(category, TEXT_WEIGHT)

    return scores


def classify(vendor: str, items: Iterable[LineItem], full_text: str) -> CategoryGuess:
    scores = score_categories(vendor, items, full_text)
    if not scores:
        return CategoryGuess(category=OTHER_CATEGORY, confidence=0.0)

    top_category = ""
    top_score = 0
    for category, score in scores.items():
        if score > top_score:
            top_category, top_score = category, score

    return CategoryGuess(category=top_category, confidence=_confidence(top_score))


def _confidence(score: int) -> float:
    raw = min(Decimal(score) / Decimal(FULL_CONFIDENCE_SCORE), Decimal(1))
    return float(raw.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
