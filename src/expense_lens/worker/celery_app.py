from __future__ import annotations

from celery import Celery

from expense_lens.core.config import settings

EXTRACTION_QUEUE = "extraction"


def make_celery() -> Celery:
    app = Celery("expense_lens", broker=settings.redis_url, backend=settings.redis_url)
    app.conf.update(
        task_always_eager=settings.environment != "prod",
        task_eager_propagates=True,
        task_track_started=True,
        task_acks_late=True,
        # OCR calls are slow; a worker holds one receipt at a time.
        worker_prefetch_multiplier=1,
        task_routes={"extract_receipt": {"queue": EXTRACTION_QUEUE}},
    )
    app.autodiscover_tasks(["expense_lens.worker.tasks"])
    return app


celery_app = make_celery()
