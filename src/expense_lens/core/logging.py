from __future__ import annotations

import contextvars
import json
import logging
import os
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

ROOT_LOGGER = "expense_lens"
REQUEST_ID_HEADER = "x-request-id"

_request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_user_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("user_id", default=None)
_task_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "celery_task_id", default=None
)
# Context carried onto every event: (field name in the JSON line, variable).
_CONTEXT_FIELDS = (
    ("request_id", _request_id_var),
    ("user_id", _user_id_var),
    ("celery_task_id", _task_id_var),
)

_configured = False


def _utc_timestamp(created: float) -> str:
    ts = datetime.fromtimestamp(created, tz=timezone.utc).isoformat(timespec="milliseconds")
    return ts.replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, message, event and its fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event = getattr(record, "event", None)
        if event:
            payload["event"] = event
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            payload.update({k: v for k, v in fields.items() if v is not None})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


def configure_logging(level_name: str | None = None) -> None:
    global _configured  # noqa: PLW0603
    if _configured:
        return
    level_name = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelNamesMapping().get(level_name, logging.INFO)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    root.handlers = [handler]
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def set_request_context(*, request_id: str | None) -> tuple[contextvars.Token, contextvars.Token]:
    return _request_id_var.set(request_id), _user_id_var.set(None)


def reset_request_context(tokens: tuple[contextvars.Token, contextvars.Token]) -> None:
    token_request, token_user = tokens
    _request_id_var.reset(token_request)
    _user_id_var.reset(token_user)


def set_user_context(user_id: str | None) -> None:
    _user_id_var.set(user_id)


def set_task_context(task_id: str | None) -> contextvars.Token:
    return _task_id_var.set(task_id)


def reset_task_context(token: contextvars.Token) -> None:
    _task_id_var.reset(token)


def _merge_fields(fields: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for name, var in _CONTEXT_FIELDS:
        value = var.get()
        if value:
            payload[name] = value
    payload.update({k: v for k, v in fields.items() if v is not None})
    return payload


def log_event(
    logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any
) -> None:
    logger.log(level, event, extra={"event": event, "fields": _merge_fields(fields)})


def log_exception(logger: logging.Logger, event: str, **fields: Any) -> None:
    logger.exception(event, extra={"event": event, "fields": _merge_fields(fields)})


def monotonic_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every event logged while serving a request with its request id."""

    async def dispatch(self, request: Request, call_next) -> Response:
        logger = get_logger(__name__)
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        tokens = set_request_context(request_id=request_id)
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            log_exception(
                logger,
                "http.request.error",
                method=request.method,
                path=request.url.path,
                duration_ms=monotonic_ms(start),
            )
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            log_event(
                logger,
                "http.request.finish",
                level=logging.DEBUG,
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=monotonic_ms(start),
            )
            return response
        finally:
            reset_request_context(tokens)
