from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OcrIn(BaseModel):
    # Left untyped so a missing or non-string image is reported as a 400, not a 422.
    image: Any = None


class OcrOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vendor: str
    amount: float | None
    date: str
    items: list[dict[str, Any]]
    suggested_category: str = Field(alias="suggestedCategory")
    confidence: float
    text: str
    success: bool = True
