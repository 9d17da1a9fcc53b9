from __future__ import annotations

import time

from fastapi import APIRouter, Depends, HTTPException, status

from expense_lens.core.logging import get_logger, log_event, monotonic_ms
from expense_lens.modules.extraction.service import interpret_receipt
from expense_lens.modules.extraction.types import ExtractionResult, empty_result
from expense_lens.modules.ocr.engines import OcrEngine, OcrError, get_ocr_engine
from expense_lens.modules.ocr.files import decode_base64_image
from expense_lens.modules.ocr.schemas import OcrIn, OcrOut

router = APIRouter(tags=["ocr"])
logger = get_logger(__name__)

OCR_FAILURE_MESSAGE = "Could not read this receipt; please enter details manually."


def ocr_http_error(error: OcrError) -> HTTPException:
    return HTTPException(
        status_code=error.status_code,
        detail={"message": OCR_FAILURE_MESSAGE, "reason": error.reason},
    )


@router.post("/ocr", response_model=OcrOut)
def ocr_endpoint(payload: OcrIn, engine: OcrEngine = Depends(get_ocr_engine)) -> OcrOut:
    if payload.image is None or payload.image == "":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image provided")
    if not isinstance(payload.image, str):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Image must be a base64 string"
        )
    image = decode_base64_image(payload.image)
    if image is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid base64 image format"
        )

    start = time.monotonic()
    log_event(logger, "ocr.request.start", engine=engine.name, byte_size=len(image))
    try:
        text = engine.recognize_text(image)
    except OcrError as e:
        log_event(
            logger,
            "ocr.request.failed",
            engine=engine.name,
            reason=e.reason,
            status_code=e.status_code,
            error_message=str(e),
            duration_ms=monotonic_ms(start),
        )
        raise ocr_http_error(e) from e

    result: ExtractionResult = interpret_receipt(text) if text.strip() else empty_result()
    log_event(
        logger,
        "ocr.request.finish",
        engine=engine.name,
        text_length=len(text),
        has_text=bool(text.strip()),
        duration_ms=monotonic_ms(start),
    )
    return OcrOut.model_validate({**result.to_dict(), "text": text, "success": True})
