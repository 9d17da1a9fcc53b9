from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

# Set env before any expense_lens imports (settings/engine are created at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./.expense_lens_test.db")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", ".tmp_storage_test")
os.environ.setdefault("OCR_BACKEND", "google_vision")
os.environ.setdefault("GOOGLE_VISION_API_KEY", "test-key")


@pytest.fixture(autouse=True)
def _reset_db_and_storage() -> None:
    import expense_lens.core.storage as storage_mod
    import expense_lens.models  # noqa: F401
    from expense_lens.core.db import engine
    from expense_lens.core.models import Base

    storage_mod._storage = None
    storage_path = Path(os.environ["LOCAL_STORAGE_PATH"])
    if storage_path.exists():
        shutil.rmtree(storage_path)

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield


@pytest.fixture()
def storage_root() -> Path:
    return Path(os.getcwd()) / os.environ["LOCAL_STORAGE_PATH"]
