from __future__ import annotations

import pytest


def test_local_storage_roundtrip(tmp_path):
    from expense_lens.core.storage import LocalObjectStorage, StorageError

    storage = LocalObjectStorage(tmp_path, base_url="http://files.test/")
    stored = storage.put(key="u1/a b.png", body=b"img", content_type="image/png")

    assert stored.byte_size == 3
    assert stored.url == "http://files.test/files/u1/a%20b.png"
    assert storage.get(key="u1/a b.png") == b"img"

    with pytest.raises(StorageError):
        storage.put(key="u1/a b.png", body=b"again")

    storage.delete(key="u1/a b.png")
    storage.delete(key="u1/a b.png")
    with pytest.raises(StorageError):
        storage.get(key="u1/a b.png")


def test_get_storage_is_cached():
    from expense_lens.core.storage import LocalObjectStorage, get_storage

    first = get_storage()
    assert isinstance(first, LocalObjectStorage)
    assert get_storage() is first


def test_access_token_roundtrip():
    from expense_lens.core.security import create_access_token, decode_access_token

    token = create_access_token(subject="user-7")
    assert decode_access_token(token) == "user-7"


def test_invalid_tokens_are_rejected():
    from expense_lens.core.security import create_access_token, decode_access_token

    assert decode_access_token("garbage") is None
    assert decode_access_token(create_access_token(subject="   ")) is None
    assert decode_access_token(create_access_token(subject="user-7", expires_minutes=-5)) is None


def test_sqlite_connections_wait_on_the_file_lock():
    from expense_lens.core.db import SQLITE_BUSY_TIMEOUT_SECONDS, _connect_args

    assert _connect_args("sqlite:///./x.db") == {
        "check_same_thread": False,
        "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
    }
    assert _connect_args("postgresql+psycopg://u:p@db/expense_lens") == {}


def test_task_session_rolls_back_on_error():
    from expense_lens.core.db import task_session
    from expense_lens.modules.receipts.models import Receipt

    with pytest.raises(RuntimeError):
        with task_session() as session:
            session.add(
                Receipt(
                    user_id="u1",
                    file_url="http://files.test/files/u1/a.png",
                    file_name="a.png",
                    storage_key="u1/a.png",
                )
            )
            session.flush()
            raise RuntimeError("boom")

    with task_session() as session:
        assert session.query(Receipt).count() == 0
