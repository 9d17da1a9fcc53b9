from __future__ import annotations

import json
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile as StarletteUploadFile

from expense_lens.api.deps import get_current_user_id
from expense_lens.core.db import db_session
from expense_lens.core.logging import get_logger, log_event, log_exception
from expense_lens.modules.receipts.models import Receipt, ReceiptStatus
from expense_lens.modules.receipts.schemas import (
    BatchError,
    BatchResult,
    BatchSummary,
    BatchUploadOut,
    ReceiptListOut,
    ReceiptOut,
    ReceiptUpdateIn,
    ReceiptUploadOut,
)
from expense_lens.modules.receipts.service import (
    create_receipt,
    get_receipt_for_user,
    list_receipts,
    parse_amount_field,
    parse_ocr_data,
    update_receipt,
)
from expense_lens.worker.tasks import extract_receipt_task

router = APIRouter(tags=["receipts"])
logger = get_logger(__name__)


def _enqueue_extraction(receipt: Receipt) -> None:
    if receipt.ocr_data is not None:
        return
    try:
        async_result = extract_receipt_task.delay(str(receipt.id))
    except Exception:  # noqa: BLE001
        # The receipt is saved either way; its fields can still be entered by hand.
        log_exception(
            logger,
            "celery.task.enqueue_failed",
            task_name="extract_receipt",
            receipt_id=str(receipt.id),
        )
        return
    log_event(
        logger,
        "celery.task.enqueued",
        task_name="extract_receipt",
        celery_task_id=async_result.id,
        receipt_id=str(receipt.id),
    )


@router.post("/receipts/upload", response_model=ReceiptUploadOut)
async def upload_receipt(
    file: UploadFile | None = File(None),
    vendor: str | None = Form(None),
    amount: str | None = Form(None),
    date: str | None = Form(None),
    category: str | None = Form(None),
    description: str | None = Form(None),
    ocr_data: str | None = Form(None),
    session: Session = Depends(db_session),
    user_id: str = Depends(get_current_user_id),
) -> ReceiptUploadOut:
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")
    body = await file.read()
    log_event(
        logger,
        "receipts.upload.received",
        filename=file.filename or "upload.bin",
        content_type=file.content_type,
        byte_size=len(body),
    )
    receipt = create_receipt(
        session,
        user_id=user_id,
        filename=file.filename or "upload.bin",
        content_type=file.content_type,
        body=body,
        vendor=vendor,
        amount=parse_amount_field(amount),
        date=date,
        category=category,
        description=description,
        ocr_data=parse_ocr_data(ocr_data),
    )
    _enqueue_extraction(receipt)
    session.refresh(receipt)
    return ReceiptUploadOut(receipt=ReceiptOut.model_validate(receipt, from_attributes=True))


@router.post("/receipts/upload/batch", response_model=BatchUploadOut)
async def upload_receipts_batch(
    request: Request,
    session: Session = Depends(db_session),
    user_id: str = Depends(get_current_user_id),
) -> BatchUploadOut:
    form = await request.form()
    raw_batch = form.get("batch_data")
    if not raw_batch or not isinstance(raw_batch, str):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No batch data provided")
    try:
        entries = json.loads(raw_batch)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid batch data format"
        ) from e
    if not isinstance(entries, list) or not entries:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Batch data must be a non-empty array"
        )

    log_event(logger, "receipts.batch.start", total=len(entries))
    results: list[BatchResult] = []
    errors: list[BatchError] = []
    for i, entry in enumerate(entries):
        upload = form.get(f"file_{i}")
        if not isinstance(upload, StarletteUploadFile):
            errors.append(BatchError(index=i, error="No file provided"))
            continue
        if not isinstance(entry, dict):
            errors.append(BatchError(index=i, error="Invalid batch entry"))
            continue

        body = await upload.read()
        try:
            receipt = create_receipt(
                session,
                user_id=user_id,
                filename=upload.filename or "upload.bin",
                content_type=upload.content_type,
                body=body,
                vendor=entry.get("vendor"),
                amount=parse_amount_field(entry.get("amount")),
                date=entry.get("date"),
                category=entry.get("category"),
                description=entry.get("description"),
                ocr_data=parse_ocr_data(entry.get("ocr_data")),
                index=i,
            )
        except HTTPException as e:
            log_event(logger, "receipts.batch.entry_failed", index=i, error_message=str(e.detail))
            errors.append(BatchError(index=i, error=str(e.detail)))
            continue

        _enqueue_extraction(receipt)
        session.refresh(receipt)
        results.append(
            BatchResult(index=i, receipt=ReceiptOut.model_validate(receipt, from_attributes=True))
        )

    log_event(
        logger,
        "receipts.batch.finish",
        total=len(entries),
        successful=len(results),
        failed=len(errors),
    )
    return BatchUploadOut(
        results=results,
        errors=errors,
        summary=BatchSummary(total=len(entries), successful=len(results), failed=len(errors)),
    )


@router.get("/receipts", response_model=ReceiptListOut)
def list_receipts_endpoint(
    status_filter: ReceiptStatus | None = Query(None, alias="status"),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: Session = Depends(db_session),
    user_id: str = Depends(get_current_user_id),
) -> ReceiptListOut:
    receipts, total = list_receipts(
        session,
        user_id=user_id,
        status_filter=status_filter,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return ReceiptListOut(
        receipts=[ReceiptOut.model_validate(r, from_attributes=True) for r in receipts],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/receipts/{receipt_id}", response_model=ReceiptOut)
def get_receipt_endpoint(
    receipt_id: uuid.UUID,
    session: Session = Depends(db_session),
    user_id: str = Depends(get_current_user_id),
) -> ReceiptOut:
    receipt = get_receipt_for_user(session, receipt_id=receipt_id, user_id=user_id)
    return ReceiptOut.model_validate(receipt, from_attributes=True)


@router.patch("/receipts/{receipt_id}", response_model=ReceiptOut)
def update_receipt_endpoint(
    receipt_id: uuid.UUID,
    payload: ReceiptUpdateIn,
    session: Session = Depends(db_session),
    user_id: str = Depends(get_current_user_id),
) -> ReceiptOut:
    receipt = get_receipt_for_user(session, receipt_id=receipt_id, user_id=user_id)
    receipt = update_receipt(session, receipt=receipt, changes=payload.model_dump(exclude_unset=True))
    return ReceiptOut.model_validate(receipt, from_attributes=True)
