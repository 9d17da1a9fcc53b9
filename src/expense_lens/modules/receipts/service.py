from __future__ import annotations

import json
import secrets
import string
import time
import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expense_lens.core.config import settings
from expense_lens.core.db import task_session
from expense_lens.core.logging import get_logger, log_event, log_exception, monotonic_ms
from expense_lens.core.storage import StorageError, get_storage
from expense_lens.modules.extraction.service import interpret_receipt
from expense_lens.modules.extraction.types import ExtractionResult, empty_result
from expense_lens.modules.ocr.engines import OcrEngine, OcrError, TesseractOcr, get_ocr_engine
from expense_lens.modules.ocr.files import detect_file_kind
from expense_lens.modules.receipts.models import Receipt, ReceiptStatus

logger = get_logger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
EDITABLE_FIELDS = ("vendor_name", "amount", "date", "category", "description")


def build_storage_key(*, user_id: str, filename: str, index: int | None = None) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    timestamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    stem = f"{timestamp}-{suffix}" if index is None else f"{timestamp}-{index}-{suffix}"
    return f"{user_id}/{stem}.{ext}"


def validate_upload(*, content_type: str | None, byte_size: int) -> None:
    ctype = (content_type or "").lower()
    if not (ctype.startswith("image/") or ctype == "application/pdf"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image and PDF files are allowed",
        )
    if byte_size > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File size must be less than {limit_mb}MB",
        )


def parse_ocr_data(raw: str | None) -> dict[str, Any] | None:
    """Client-supplied OCR result; unreadable JSON is ignored rather than rejected."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        log_event(logger, "receipts.upload.ocr_data_invalid", byte_size=len(raw))
        return None
    return data if isinstance(data, dict) else None


def parse_amount_field(raw: Any) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Amount must be a number"
        ) from e


def create_receipt(
    session: Session,
    *,
    user_id: str,
    filename: str,
    content_type: str | None,
    body: bytes,
    vendor: str | None = None,
    amount: float | None = None,
    date: str | None = None,
    category: str | None = None,
    description: str | None = None,
    ocr_data: dict[str, Any] | None = None,
    index: int | None = None,
) -> Receipt:
    validate_upload(content_type=content_type, byte_size=len(body))

    storage = get_storage()
    key = build_storage_key(user_id=user_id, filename=filename, index=index)
    try:
        stored = storage.put(key=key, body=body, content_type=content_type)
    except (StorageError, OSError) as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Upload failed: {e}"
        ) from e

    suggested = (ocr_data or {}).get("suggestedCategory")
    receipt = Receipt(
        user_id=user_id,
        file_url=stored.url,
        file_name=filename,
        content_type=content_type,
        byte_size=stored.byte_size,
        storage_key=stored.key,
        vendor_name=vendor or None,
        amount=amount,
        date=date or None,
        category=category or (suggested if isinstance(suggested, str) else None) or None,
        description=description or None,
        ocr_data=ocr_data,
        status=ReceiptStatus.PENDING,
    )
    session.add(receipt)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        log_exception(logger, "receipts.upload.db_error", storage_key=key)
        _discard_stored_file(key)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save receipt: {type(e).__name__}",
        ) from e
    session.refresh(receipt)
    log_event(
        logger,
        "receipts.upload.stored",
        receipt_id=str(receipt.id),
        storage_key=key,
        content_type=content_type,
        byte_size=stored.byte_size,
        has_ocr_data=ocr_data is not None,
    )
    return receipt


def _discard_stored_file(key: str) -> None:
    try:
        get_storage().delete(key=key)
    except Exception:  # noqa: BLE001
        log_exception(logger, "receipts.upload.cleanup_failed", storage_key=key)
        return
    log_event(logger, "receipts.upload.cleanup", storage_key=key)


def get_receipt_for_user(session: Session, *, receipt_id: uuid.UUID, user_id: str) -> Receipt:
    receipt = session.scalar(
        select(Receipt).where(Receipt.id == receipt_id, Receipt.user_id == user_id)
    )
    if not receipt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt not found")
    return receipt


def list_receipts(
    session: Session,
    *,
    user_id: str,
    status_filter: ReceiptStatus | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Receipt], int]:
    conditions = [Receipt.user_id == user_id]
    if status_filter is not None:
        conditions.append(Receipt.status == status_filter)
    # ISO dates compare correctly as strings.
    if start_date:
        conditions.append(Receipt.date >= start_date)
    if end_date:
        conditions.append(Receipt.date <= end_date)

    total = session.scalar(select(func.count()).select_from(Receipt).where(*conditions)) or 0
    receipts = list(
        session.scalars(
            select(Receipt)
            .where(*conditions)
            .order_by(Receipt.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
    )
    return receipts, total


def update_receipt(session: Session, *, receipt: Receipt, changes: dict[str, Any]) -> Receipt:
    for field in EDITABLE_FIELDS:
        if field in changes:
            setattr(receipt, field, changes[field])
    session.add(receipt)
    session.commit()
    session.refresh(receipt)
    return receipt


def apply_extraction(session: Session, *, receipt: Receipt, result: ExtractionResult) -> Receipt:
    """Fill the fields the uploader left blank from an interpreted receipt."""
    if receipt.ocr_data is None:
        receipt.ocr_data = result.to_dict()
    if not receipt.vendor_name and result.vendor:
        receipt.vendor_name = result.vendor
    if receipt.amount is None and result.amount is not None:
        receipt.amount = result.amount
    if not receipt.date and result.date:
        receipt.date = result.date
    if not receipt.category:
        receipt.category = result.suggested_category
    receipt.extraction_error = None
    session.add(receipt)
    session.commit()
    session.refresh(receipt)
    return receipt


def extract_receipt(*, receipt_id: str, engine: OcrEngine | None = None) -> None:
    with task_session() as session:
        receipt = session.scalar(select(Receipt).where(Receipt.id == uuid.UUID(receipt_id)))
        if not receipt:
            return
        if receipt.ocr_data is not None:
            return

        start = time.monotonic()
        body = get_storage().get(key=receipt.storage_key)
        kind = detect_file_kind(
            filename=receipt.file_name, content_type=receipt.content_type, body=body
        )
        # Vision only accepts images; PDFs go through the embedded text layer.
        if kind == "pdf":
            engine = TesseractOcr(lang=settings.tesseract_lang)
        engine = engine or get_ocr_engine()
        log_event(
            logger,
            "extraction.receipt.start",
            receipt_id=receipt_id,
            engine=engine.name,
            kind=kind,
            byte_size=len(body),
        )

        try:
            text = engine.recognize_text(body)
        except OcrError as e:
            receipt.extraction_error = e.reason
            session.add(receipt)
            session.commit()
            log_event(
                logger,
                "extraction.receipt.failed",
                receipt_id=receipt_id,
                engine=engine.name,
                reason=e.reason,
                error_message=str(e),
                duration_ms=monotonic_ms(start),
            )
            return

        result = interpret_receipt(text) if text.strip() else empty_result()
        apply_extraction(session, receipt=receipt, result=result)
        log_event(
            logger,
            "extraction.receipt.finish",
            receipt_id=receipt_id,
            engine=engine.name,
            vendor=receipt.vendor_name,
            category=receipt.category,
            duration_ms=monotonic_ms(start),
        )
