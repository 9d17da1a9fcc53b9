from __future__ import annotations

import base64
import time
from io import BytesIO
from typing import Any, Protocol

import httpx
import pytesseract
from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from expense_lens.core.config import Settings, settings
from expense_lens.core.logging import get_logger, log_event, monotonic_ms
from expense_lens.modules.ocr.files import detect_file_kind

logger = get_logger(__name__)


class OcrError(RuntimeError):
    reason = "ocr_failed"
    status_code = 500


class OcrAuthenticationError(OcrError):
    reason = "ocr_authentication_failed"
    status_code = 401


class OcrPermissionError(OcrError):
    reason = "ocr_permission_denied"
    status_code = 403


class OcrQuotaError(OcrError):
    reason = "ocr_quota_exceeded"
    status_code = 429


class OcrConfigurationError(OcrError):
    reason = "ocr_not_configured"
    status_code = 500


class OcrEngine(Protocol):
    name: str

    def recognize_text(self, image: bytes) -> str:
        """Recognized text for one receipt image, "" when none; raises OcrError."""
        ...


class GoogleVisionOcr:
    name = "google_vision"

    def __init__(self, *, api_key: str | None, endpoint: str, timeout_seconds: float) -> None:
        self._api_key = api_key
        self._endpoint = endpoint
        self._timeout = timeout_seconds

    def recognize_text(self, image: bytes) -> str:
        if not self._api_key:
            raise OcrConfigurationError("Google Vision API key is not configured")
        if not image:
            raise OcrError("No image data provided")

        payload = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image).decode("ascii")},
                    "features": [{"type": "DOCUMENT_TEXT_DETECTION", "maxResults": 1}],
                }
            ]
        }
        start = time.monotonic()
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(self._endpoint, params={"key": self._api_key}, json=payload)
        except httpx.HTTPError as e:
            raise OcrError(f"OCR request failed: {type(e).__name__}") from e

        body = _json_or_empty(resp)
        if resp.status_code >= 400:
            raise _error_from_status(resp.status_code, body.get("error") or {})

        responses = body.get("responses") or [{}]
        first = responses[0] if isinstance(responses[0], dict) else {}
        if first.get("error"):
            raise _error_from_status(None, first["error"])

        annotations = first.get("textAnnotations") or []
        text = ""
        if annotations and isinstance(annotations[0], dict):
            text = str(annotations[0].get("description") or "")
        log_event(
            logger,
            "ocr.engine.finish",
            engine=self.name,
            byte_size=len(image),
            text_length=len(text),
            duration_ms=monotonic_ms(start),
        )
        return text


def _json_or_empty(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _error_from_status(http_status: int | None, error: dict[str, Any]) -> OcrError:
    grpc_status = str(error.get("status") or "").upper()
    message = str(error.get("message") or "Unknown API error")
    lowered = message.lower()
    if http_status == 401 or grpc_status == "UNAUTHENTICATED" or "authentication" in lowered:
        return OcrAuthenticationError(f"Google Vision authentication failed: {message}")
    if http_status == 429 or grpc_status == "RESOURCE_EXHAUSTED" or "quota" in lowered:
        return OcrQuotaError(f"Google Vision quota exceeded: {message}")
    if (
        http_status == 403
        or grpc_status == "PERMISSION_DENIED"
        or "permission" in lowered
        or "billing" in lowered
    ):
        return OcrPermissionError(f"Google Vision permission denied: {message}")
    return OcrError(f"Google Vision API error: {message}")


class TesseractOcr:
    name = "tesseract"

    def __init__(self, *, lang: str) -> None:
        self._lang = lang

    def recognize_text(self, image: bytes) -> str:
        start = time.monotonic()
        kind = detect_file_kind(filename="", content_type=None, body=image)
        if kind == "pdf":
            pages, ocr_pages = extract_pdf_pages(image, lang=self._lang)
            text = "\n".join(p for p in pages if p.strip())
        elif kind == "image":
            ocr_pages = 1
            text = self._ocr_image(image)
        elif kind == "text":
            ocr_pages = 0
            text = image.decode("utf-8", errors="replace")
        else:
            raise OcrError("Unsupported file type")
        log_event(
            logger,
            "ocr.engine.finish",
            engine=self.name,
            kind=kind,
            ocr_pages=ocr_pages,
            byte_size=len(image),
            text_length=len(text),
            duration_ms=monotonic_ms(start),
        )
        return text

    def _ocr_image(self, body: bytes) -> str:
        try:
            image = Image.open(BytesIO(body))
        except (UnidentifiedImageError, OSError) as e:
            raise OcrError("Image could not be decoded") from e
        return _tesseract(image, lang=self._lang)


def _tesseract(image: Image.Image, *, lang: str) -> str:
    if image.mode not in {"RGB", "L"}:
        image = image.convert("RGB")
    try:
        return pytesseract.image_to_string(image, lang=lang) or ""
    except pytesseract.TesseractNotFoundError as e:
        raise OcrConfigurationError("Tesseract is not installed") from e
    except pytesseract.TesseractError as e:
        raise OcrError(f"Tesseract failed: {e}") from e


def extract_pdf_pages(body: bytes, *, lang: str) -> tuple[list[str], int]:
    try:
        reader = PdfReader(BytesIO(body))
    except PdfReadError as e:
        raise OcrError("PDF could not be read") from e
    pages: list[str] = []
    ocr_pages = 0
    for page in reader.pages:
        text = (page.extract_text() or "").replace("\u202f", " ").replace("\xa0", " ")
        if not text.strip():
            ocr_pages += 1
            text = ocr_pdf_page(page, lang=lang) or text
        pages.append(text)
    return pages, ocr_pages


def ocr_pdf_page(page, *, lang: str) -> str:
    """OCR the largest embedded image of a page that has no text layer."""
    best_image = None
    best_area = 0
    for image_file in page.images:
        image = image_file.image
        if image is None:
            continue
        area = image.width * image.height
        if area > best_area:
            best_area = area
            best_image = image
    if best_image is None:
        return ""
    return _tesseract(best_image, lang=lang)


def build_ocr_engine(config: Settings) -> OcrEngine:
    if config.ocr_backend == "tesseract":
        return TesseractOcr(lang=config.tesseract_lang)
    return GoogleVisionOcr(
        api_key=config.google_vision_api_key,
        endpoint=config.google_vision_endpoint,
        timeout_seconds=config.ocr_timeout_seconds,
    )


def get_ocr_engine() -> OcrEngine:
    return build_ocr_engine(settings)
