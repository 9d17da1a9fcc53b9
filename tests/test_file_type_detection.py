from __future__ import annotations


def test_detect_file_kind_rejects_non_pdf_bytes_for_pdf_extension():
    from expense_lens.modules.ocr.files import detect_file_kind

    kind = detect_file_kind(
        filename="receipt.pdf",
        content_type="application/pdf",
        body=b"\x00\x01\x02\x03",
    )
    assert kind == "bad_pdf_upload"


def test_detect_file_kind_treats_text_bytes_as_text_even_when_named_pdf():
    from expense_lens.modules.ocr.files import detect_file_kind

    kind = detect_file_kind(
        filename="receipt.pdf",
        content_type="application/pdf",
        body=b"Example Hotel\nTotal USD 10.00\n",
    )
    assert kind == "text"


def test_detect_file_kind_sniffs_images_by_magic_bytes():
    from expense_lens.modules.ocr.files import detect_file_kind

    assert detect_file_kind(filename="", content_type=None, body=b"\xff\xd8\xff\xe0jpeg") == "image"
    assert (
        detect_file_kind(filename="", content_type=None, body=b"RIFF\x00\x00\x00\x00WEBPVP8 ")
        == "image"
    )
    assert detect_file_kind(filename="", content_type=None, body=b"  %PDF-1.4") == "pdf"


def test_decode_base64_image_accepts_plain_and_data_url_payloads():
    from expense_lens.modules.ocr.files import decode_base64_image

    assert decode_base64_image("aGVsbG8=") == b"hello"
    assert decode_base64_image("data:image/png;base64,aGVsbG8=") == b"hello"


def test_decode_base64_image_rejects_invalid_payloads():
    from expense_lens.modules.ocr.files import decode_base64_image

    assert decode_base64_image("") is None
    assert decode_base64_image("not base64!!") is None
    assert decode_base64_image("abc") is None
    assert decode_base64_image("aGVs=bG8") is None
