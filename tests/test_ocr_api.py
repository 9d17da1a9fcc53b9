from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")


class _FakeEngine:
    name = "fake"

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self._text = text
        self._error = error
        self.calls: list[bytes] = []

    def recognize_text(self, image: bytes) -> str:
        self.calls.append(image)
        if self._error is not None:
            raise self._error
        return self._text


@pytest.fixture()
def ocr_client():
    from expense_lens.main import app
    from expense_lens.modules.ocr.engines import get_ocr_engine

    def _install(engine: _FakeEngine) -> TestClient:
        app.dependency_overrides[get_ocr_engine] = lambda: engine
        return TestClient(app)

    yield _install
    app.dependency_overrides.clear()


def test_ocr_interprets_recognized_text(ocr_client):
    engine = _FakeEngine(text="MCDONALDS\n1 McB ChiliChicken    2.50\nTotal: $2.50")
    resp = ocr_client(engine).post("/api/ocr", json={"image": PNG_B64})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["vendor"] == "MCDONALDS"
    assert body["amount"] == 2.5
    assert body["suggestedCategory"] == "Meals & Entertainment"
    assert body["items"] == [{"description": "McB ChiliChicken", "quantity": 1, "totalPrice": 2.5}]
    assert body["text"].startswith("MCDONALDS")
    assert engine.calls == [PNG_BYTES]


def test_ocr_without_recognized_text_returns_empty_result(ocr_client):
    resp = ocr_client(_FakeEngine(text="   ")).post("/api/ocr", json={"image": PNG_B64})

    assert resp.status_code == 200
    assert resp.json() == {
        "vendor": "",
        "amount": None,
        "date": "",
        "items": [],
        "suggestedCategory": "Other",
        "confidence": 0.0,
        "text": "   ",
        "success": True,
    }


@pytest.mark.parametrize(
    "payload",
    [{}, {"image": ""}, {"image": 123}, {"image": ["a"]}, {"image": "not base64!!"}],
)
def test_ocr_rejects_bad_image_payloads(ocr_client, payload):
    engine = _FakeEngine(text="unused")
    resp = ocr_client(engine).post("/api/ocr", json=payload)

    assert resp.status_code == 400
    assert engine.calls == []


def test_ocr_failure_maps_to_status_and_manual_entry_message(ocr_client):
    from expense_lens.modules.ocr.engines import OcrQuotaError

    engine = _FakeEngine(error=OcrQuotaError("Google Vision quota exceeded"))
    resp = ocr_client(engine).post("/api/ocr", json={"image": PNG_B64})

    assert resp.status_code == 429
    detail = resp.json()["detail"]
    assert detail["reason"] == "ocr_quota_exceeded"
    assert "enter details manually" in detail["message"]


def test_ocr_not_configured_is_server_error(ocr_client):
    from expense_lens.modules.ocr.engines import OcrConfigurationError

    engine = _FakeEngine(error=OcrConfigurationError("no key"))
    resp = ocr_client(engine).post("/api/ocr", json={"image": PNG_B64})

    assert resp.status_code == 500
    assert resp.json()["detail"]["reason"] == "ocr_not_configured"


def test_healthz_sets_request_id_header():
    from expense_lens.main import app

    resp = TestClient(app).get("/healthz", headers={"x-request-id": "req-42"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["x-request-id"] == "req-42"
