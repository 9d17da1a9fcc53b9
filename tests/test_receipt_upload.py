from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
USER_ID = "user-1"


class _FakeEngine:
    name = "fake"

    def __init__(self, text: str) -> None:
        self._text = text

    def recognize_text(self, image: bytes) -> str:
        return self._text


def _auth(user_id: str = USER_ID) -> dict[str, str]:
    from expense_lens.core.security import create_access_token

    return {"Authorization": f"Bearer {create_access_token(subject=user_id)}"}


@pytest.fixture()
def client(monkeypatch):
    from expense_lens.main import app
    from expense_lens.modules.receipts import service as receipts_service

    monkeypatch.setattr(
        receipts_service,
        "get_ocr_engine",
        lambda: _FakeEngine("Starbucks\nLatte  4.20\nTotal: $4.20\n15/03/2024"),
    )
    with TestClient(app) as c:
        yield c


def test_upload_requires_token(client):
    resp = client.post(
        "/api/receipts/upload", files={"file": ("r.png", PNG_BYTES, "image/png")}
    )
    assert resp.status_code == 401

    resp = client.post(
        "/api/receipts/upload",
        files={"file": ("r.png", PNG_BYTES, "image/png")},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert resp.status_code == 401


def test_upload_stores_file_and_fills_blanks_from_extraction(client, storage_root):
    resp = client.post(
        "/api/receipts/upload",
        files={"file": ("Receipt.PNG", PNG_BYTES, "image/png")},
        data={"vendor": "Starbucks Reserve", "description": "Team coffee"},
        headers=_auth(),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    receipt = body["receipt"]
    assert receipt["status"] == "pending"
    assert receipt["vendor_name"] == "Starbucks Reserve"
    assert receipt["description"] == "Team coffee"
    assert receipt["amount"] == 4.20
    assert receipt["date"] == "2024-03-15"
    assert receipt["category"] == "Meals & Entertainment"
    assert receipt["ocr_data"]["suggestedCategory"] == "Meals & Entertainment"
    assert receipt["file_url"].endswith(".png")

    stored = list((storage_root / USER_ID).iterdir())
    assert len(stored) == 1
    assert stored[0].read_bytes() == PNG_BYTES


def test_upload_with_client_ocr_data_skips_extraction(client):
    ocr_data = {"vendor": "Hilton", "suggestedCategory": "Lodging", "confidence": 0.63}
    resp = client.post(
        "/api/receipts/upload",
        files={"file": ("r.pdf", b"%PDF-1.4 stub", "application/pdf")},
        data={"amount": "120.50", "ocr_data": json.dumps(ocr_data)},
        headers=_auth(),
    )

    assert resp.status_code == 200
    receipt = resp.json()["receipt"]
    assert receipt["category"] == "Lodging"
    assert receipt["amount"] == 120.5
    assert receipt["ocr_data"] == ocr_data
    assert receipt["vendor_name"] is None
    assert receipt["extraction_error"] is None


def test_upload_explicit_category_wins_over_suggestion(client):
    resp = client.post(
        "/api/receipts/upload",
        files={"file": ("r.png", PNG_BYTES, "image/png")},
        data={"category": "Training & Education", "ocr_data": '{"suggestedCategory": "Other"}'},
        headers=_auth(),
    )
    assert resp.json()["receipt"]["category"] == "Training & Education"


@pytest.mark.parametrize(
    ("filename", "content_type", "body", "message"),
    [
        ("notes.txt", "text/plain", b"hello", "Only image and PDF files are allowed"),
        ("big.png", "image/png", b"\x89PNG" + b"0" * (10 * 1024 * 1024), "less than 10MB"),
    ],
)
def test_upload_validation(client, storage_root, filename, content_type, body, message):
    resp = client.post(
        "/api/receipts/upload",
        files={"file": (filename, body, content_type)},
        headers=_auth(),
    )
    assert resp.status_code == 400
    assert message in resp.json()["detail"]
    assert not storage_root.exists() or not any(storage_root.rglob("*.*"))


def test_upload_without_file_is_bad_request(client):
    resp = client.post("/api/receipts/upload", data={"vendor": "x"}, headers=_auth())
    assert resp.status_code == 400


def test_batch_upload_reports_each_entry(client):
    batch = [
        {"vendor": "Uber", "amount": "23.10", "category": "Transportation"},
        {"vendor": "Bad file"},
        {"vendor": "Missing file"},
    ]
    resp = client.post(
        "/api/receipts/upload/batch",
        data={"batch_data": json.dumps(batch)},
        files={
            "file_0": ("a.jpg", b"\xff\xd8\xff\xe0jpeg", "image/jpeg"),
            "file_1": ("b.txt", b"plain", "text/plain"),
        },
        headers=_auth(),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["summary"] == {"total": 3, "successful": 1, "failed": 2}
    assert body["results"][0]["index"] == 0
    assert body["results"][0]["receipt"]["vendor_name"] == "Uber"
    assert body["results"][0]["receipt"]["category"] == "Transportation"
    assert "-0-" in body["results"][0]["receipt"]["file_url"]
    assert body["errors"] == [
        {"index": 1, "error": "Only image and PDF files are allowed"},
        {"index": 2, "error": "No file provided"},
    ]


@pytest.mark.parametrize("batch_data", [None, "not json", "[]", '{"a": 1}'])
def test_batch_upload_rejects_bad_batch_data(client, batch_data):
    data = {} if batch_data is None else {"batch_data": batch_data}
    resp = client.post(
        "/api/receipts/upload/batch",
        data=data,
        files={"file_0": ("a.png", PNG_BYTES, "image/png")},
        headers=_auth(),
    )
    assert resp.status_code == 400


def test_list_and_get_are_scoped_to_the_caller(client):
    for vendor in ("First", "Second"):
        client.post(
            "/api/receipts/upload",
            files={"file": ("r.png", PNG_BYTES, "image/png")},
            data={"vendor": vendor},
            headers=_auth(),
        )
    other = client.post(
        "/api/receipts/upload",
        files={"file": ("r.png", PNG_BYTES, "image/png")},
        headers=_auth("user-2"),
    ).json()["receipt"]

    listed = client.get("/api/receipts", headers=_auth()).json()
    assert listed["total"] == 2
    assert [r["vendor_name"] for r in listed["receipts"]] == ["Second", "First"]

    pending = client.get("/api/receipts?status=pending", headers=_auth()).json()
    assert pending["total"] == 2
    approved = client.get("/api/receipts?status=approved", headers=_auth()).json()
    assert approved["total"] == 0

    first_id = listed["receipts"][1]["id"]
    assert client.get(f"/api/receipts/{first_id}", headers=_auth()).status_code == 200
    assert client.get(f"/api/receipts/{other['id']}", headers=_auth()).status_code == 404


def test_update_receipt_edits_fields_but_not_status(client):
    created = client.post(
        "/api/receipts/upload",
        files={"file": ("r.png", PNG_BYTES, "image/png")},
        headers=_auth(),
    ).json()["receipt"]

    resp = client.patch(
        f"/api/receipts/{created['id']}",
        json={"vendor_name": "Corrected Cafe", "amount": 5.0, "status": "approved"},
        headers=_auth(),
    )
    assert resp.status_code == 200
    assert resp.json()["vendor_name"] == "Corrected Cafe"
    assert resp.json()["amount"] == 5.0
    assert resp.json()["status"] == "pending"


def test_uploaded_file_is_served_from_local_storage(client):
    receipt = client.post(
        "/api/receipts/upload",
        files={"file": ("r.png", PNG_BYTES, "image/png")},
        headers=_auth(),
    ).json()["receipt"]

    path = receipt["file_url"].split("/files/", 1)[1]
    resp = client.get(f"/files/{path}")
    assert resp.status_code == 200
    assert resp.content == PNG_BYTES
    assert resp.headers["content-type"] == "image/png"
