from __future__ import annotations

import mimetypes

from fastapi import APIRouter
from fastapi.responses import Response

from expense_lens.core.config import settings
from expense_lens.core.storage import StorageError, get_storage
from expense_lens.modules.ocr.api import router as ocr_router
from expense_lens.modules.receipts.api import router as receipts_router

router = APIRouter()

router.include_router(ocr_router, prefix="/api")
router.include_router(receipts_router, prefix="/api")


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/files/{key:path}")
def local_file(key: str) -> Response:
    # S3 objects are served by the bucket itself.
    if settings.storage_backend != "local" or ".." in key.split("/"):
        return Response(status_code=404)
    try:
        body = get_storage().get(key=key)
    except StorageError:
        return Response(status_code=404)
    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=body, media_type=media_type)
