from __future__ import annotations

import base64
import binascii
import re

_BASE64_RE = re.compile(r"[A-Za-z0-9+/]*={0,2}")

SUPPORTED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tif", ".tiff")


def decode_base64_image(data: str) -> bytes | None:
    """Strict base64 decode of an uploaded image; None when the payload is not usable."""
    payload = (data or "").strip()
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    if not payload or not _BASE64_RE.fullmatch(payload):
        return None
    try:
        body = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None
    return body or None


def detect_file_kind(*, filename: str, content_type: str | None, body: bytes) -> str:
    if looks_like_pdf_bytes(body):
        return "pdf"
    if looks_like_image_bytes(body):
        return "image"
    if looks_like_text_bytes(body):
        return "text"

    if is_supported_image(filename, content_type):
        return "image"

    # Never hand non-PDF bytes to the PDF reader.
    if filename.lower().endswith(".pdf") or (content_type or "").lower().endswith("/pdf"):
        return "bad_pdf_upload"

    return "unknown"


def is_supported_image(filename: str, content_type: str | None) -> bool:
    if (content_type or "").lower().startswith("image/"):
        return True
    return filename.lower().endswith(SUPPORTED_IMAGE_EXTENSIONS)


def looks_like_pdf_bytes(body: bytes) -> bool:
    if not body:
        return False
    b = body.lstrip()
    if b.startswith(b"\xef\xbb\xbf"):
        b = b[3:].lstrip()
    return b.startswith(b"%PDF")


def looks_like_image_bytes(body: bytes) -> bool:
    if not body:
        return False
    return (
        body.startswith(b"\x89PNG\r\n\x1a\n")
        or body.startswith(b"\xff\xd8\xff")
        or body.startswith(b"II*\x00")
        or body.startswith(b"MM\x00*")
        or body.startswith(b"BM")
        or body.startswith((b"GIF87a", b"GIF89a"))
        or (len(body) >= 12 and body.startswith(b"RIFF") and body[8:12] == b"WEBP")
    )


def looks_like_text_bytes(body: bytes) -> bool:
    if not body:
        return False
    sample = body[:4096]
    if b"\x00" in sample:
        return False
    if sample.startswith(b"\xef\xbb\xbf"):
        sample = sample[3:]
    try:
        decoded = sample.decode("utf-8", errors="strict")
    except UnicodeDecodeError:
        return False
    control = sum(1 for ch in decoded if ord(ch) < 32 and ch not in "\t\n\r")
    return (control / max(1, len(decoded))) <= 0.02
