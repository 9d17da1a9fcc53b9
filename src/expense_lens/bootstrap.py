from __future__ import annotations

import expense_lens.models  # noqa: F401
from expense_lens.core.config import settings
from expense_lens.core.db import engine
from expense_lens.core.logging import get_logger, log_event
from expense_lens.core.models import Base
from expense_lens.core.storage import get_storage

logger = get_logger(__name__)


def bootstrap() -> None:
    if settings.environment in {"dev", "test"} and str(settings.database_url).startswith("sqlite"):
        Base.metadata.create_all(engine)
        log_event(logger, "bootstrap.schema.created", database="sqlite")

    storage = get_storage()
    log_event(
        logger,
        "bootstrap.ready",
        environment=settings.environment,
        storage_backend=settings.storage_backend,
        storage=type(storage).__name__,
        ocr_backend=settings.ocr_backend,
    )
