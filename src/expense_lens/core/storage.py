from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from expense_lens.core.config import settings
from expense_lens.core.logging import get_logger, log_event, log_exception, monotonic_ms

logger = get_logger(__name__)


class StorageError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoredObject:
    key: str
    byte_size: int
    url: str


class ObjectStorage:
    def put(self, *, key: str, body: bytes, content_type: str | None = None) -> StoredObject:  # pragma: no cover
        raise NotImplementedError

    def get(self, *, key: str) -> bytes:  # pragma: no cover
        raise NotImplementedError

    def delete(self, *, key: str) -> None:  # pragma: no cover
        raise NotImplementedError

    def url_for(self, *, key: str) -> str:  # pragma: no cover
        raise NotImplementedError


class LocalObjectStorage(ObjectStorage):
    def __init__(self, root: Path, *, base_url: str):
        self._root = root
        self._base_url = base_url.rstrip("/")
        self._root.mkdir(parents=True, exist_ok=True)

    def url_for(self, *, key: str) -> str:
        return f"{self._base_url}/files/{quote(key)}"

    def put(self, *, key: str, body: bytes, content_type: str | None = None) -> StoredObject:
        start = time.monotonic()
        path = self._root / key
        if path.exists():
            raise StorageError(f"Object already exists: {key}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(body)
        except Exception:
            log_exception(
                logger,
                "storage.put.failure",
                backend="local",
                storage_key=key,
                byte_size=len(body),
            )
            raise
        log_event(
            logger,
            "storage.put.success",
            backend="local",
            storage_key=key,
            byte_size=len(body),
            content_type=content_type,
            duration_ms=monotonic_ms(start),
        )
        return StoredObject(key=key, byte_size=len(body), url=self.url_for(key=key))

    def get(self, *, key: str) -> bytes:
        path = self._root / key
        if not path.exists():
            log_event(logger, "storage.get.missing", backend="local", storage_key=key)
            raise StorageError(f"Object not found: {key}")
        try:
            return path.read_bytes()
        except Exception:
            log_exception(logger, "storage.get.failure", backend="local", storage_key=key)
            raise

    def delete(self, *, key: str) -> None:
        path = self._root / key
        if not path.exists():
            return
        try:
            path.unlink()
        except Exception:
            log_exception(logger, "storage.delete.failure", backend="local", storage_key=key)
            raise


class S3ObjectStorage(ObjectStorage):
    _RETRYABLE_CODES = frozenset(
        {
            "RequestCanceled",
            "RequestTimeout",
            "Throttling",
            "ThrottlingException",
            "SlowDown",
            "InternalError",
            "ServiceUnavailable",
        }
    )

    def __init__(self) -> None:
        region = settings.s3_region
        if not region or region.lower() == "auto":
            region = "us-east-1"

        session = boto3.session.Session(
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
            region_name=region,
        )
        config = Config(
            retries={"max_attempts": 3, "mode": "adaptive"},
            connect_timeout=30,
            read_timeout=60,
        )
        self._client = session.client(
            "s3", endpoint_url=settings.s3_endpoint_url or None, config=config
        )
        self._bucket = settings.s3_bucket
        self._region = region

    def url_for(self, *, key: str) -> str:
        if settings.s3_public_base_url:
            return f"{settings.s3_public_base_url.rstrip('/')}/{quote(key)}"
        if settings.s3_endpoint_url:
            return f"{settings.s3_endpoint_url.rstrip('/')}/{self._bucket}/{quote(key)}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{quote(key)}"

    def _retry_delay_s(self, attempt: int) -> float:
        # attempt=1 => 0.25s, attempt=2 => 0.5s, attempt=3 => 1.0s, ...
        return min(3.0, 0.25 * (2 ** (attempt - 1)))

    def _should_retry_error(self, error: Exception) -> bool:
        if isinstance(error, ClientError):
            code = (error.response.get("Error") or {}).get("Code")
            return code in self._RETRYABLE_CODES
        return isinstance(error, BotoCoreError)

    def put(self, *, key: str, body: bytes, content_type: str | None = None) -> StoredObject:
        start = time.monotonic()
        extra: dict[str, str] = {"CacheControl": "max-age=3600"}
        if content_type:
            extra["ContentType"] = content_type
        max_attempts = 4
        for attempt in range(1, max_attempts + 1):
            try:
                self._client.put_object(Bucket=self._bucket, Key=key, Body=body, **extra)
                break
            except Exception as e:  # noqa: BLE001
                if attempt < max_attempts and self._should_retry_error(e):
                    delay_s = self._retry_delay_s(attempt)
                    log_event(
                        logger,
                        "storage.put.retry",
                        backend="s3",
                        storage_key=key,
                        attempt=attempt,
                        delay_s=delay_s,
                        error_type=type(e).__name__,
                    )
                    time.sleep(delay_s)
                    continue
                log_exception(
                    logger,
                    "storage.put.failure",
                    backend="s3",
                    storage_key=key,
                    byte_size=len(body),
                    attempt=attempt,
                )
                raise StorageError(f"Upload failed: {key}") from e
        log_event(
            logger,
            "storage.put.success",
            backend="s3",
            storage_key=key,
            byte_size=len(body),
            content_type=content_type,
            duration_ms=monotonic_ms(start),
        )
        return StoredObject(key=key, byte_size=len(body), url=self.url_for(key=key))

    def get(self, *, key: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
            return resp["Body"].read()
        except Exception as e:  # noqa: BLE001
            log_exception(logger, "storage.get.failure", backend="s3", storage_key=key)
            raise StorageError(f"Object not found: {key}") from e

    def delete(self, *, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except Exception:
            log_exception(logger, "storage.delete.failure", backend="s3", storage_key=key)
            raise


_storage: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
    global _storage  # noqa: PLW0603
    if _storage is not None:
        return _storage

    if settings.storage_backend == "s3":
        _storage = S3ObjectStorage()
    else:
        root = settings.local_storage_path
        if not root.is_absolute():
            root = Path(os.getcwd()) / root
        _storage = LocalObjectStorage(root, base_url=settings.base_url)
    return _storage
