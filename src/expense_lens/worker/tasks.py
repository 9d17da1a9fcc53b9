from __future__ import annotations

# Models must be registered before any task touches the session.
# isort: off
import expense_lens.models  # noqa: F401
# isort: on

import time

from expense_lens.core.logging import (
    get_logger,
    log_event,
    log_exception,
    monotonic_ms,
    reset_task_context,
    set_task_context,
)
from expense_lens.worker.celery_app import celery_app

logger = get_logger(__name__)


@celery_app.task(name="extract_receipt", bind=True)
def extract_receipt_task(self, receipt_id: str) -> None:
    from expense_lens.modules.receipts.service import extract_receipt

    task_id = getattr(self.request, "id", None)
    token = set_task_context(task_id)
    start = time.monotonic()
    log_event(
        logger,
        "celery.task.start",
        task_name="extract_receipt",
        celery_task_id=task_id,
        receipt_id=receipt_id,
    )
    try:
        extract_receipt(receipt_id=receipt_id)
        log_event(
            logger,
            "celery.task.finish",
            task_name="extract_receipt",
            celery_task_id=task_id,
            receipt_id=receipt_id,
            duration_ms=monotonic_ms(start),
        )
    except Exception:
        log_exception(
            logger,
            "celery.task.error",
            task_name="extract_receipt",
            celery_task_id=task_id,
            receipt_id=receipt_id,
            duration_ms=monotonic_ms(start),
        )
        raise
    finally:
        reset_task_context(token)
