from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from expense_lens.modules.receipts.models import ReceiptStatus


class ReceiptOut(BaseModel):
    id: uuid.UUID
    user_id: str
    file_url: str
    file_name: str
    content_type: str | None
    byte_size: int
    vendor_name: str | None
    amount: float | None
    date: str | None
    category: str | None
    description: str | None
    ocr_data: dict[str, Any] | None
    extraction_error: str | None
    status: ReceiptStatus
    created_at: datetime
    updated_at: datetime


class ReceiptUploadOut(BaseModel):
    success: bool = True
    receipt: ReceiptOut
    message: str = "Receipt uploaded and saved successfully"


class BatchResult(BaseModel):
    index: int
    success: bool = True
    receipt: ReceiptOut


class BatchError(BaseModel):
    index: int
    error: str


class BatchSummary(BaseModel):
    total: int
    successful: int
    failed: int


class BatchUploadOut(BaseModel):
    success: bool = True
    results: list[BatchResult]
    errors: list[BatchError]
    summary: BatchSummary


class ReceiptListOut(BaseModel):
    receipts: list[ReceiptOut]
    total: int
    limit: int
    offset: int


class ReceiptUpdateIn(BaseModel):
    vendor_name: str | None = None
    amount: float | None = None
    date: str | None = None
    category: str | None = None
    description: str | None = None
