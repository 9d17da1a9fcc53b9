from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"
    base_url: str = "http://localhost:8000"
    secret_key: str = "change-me"

    database_url: str = "sqlite:///./expense_lens.db"
    redis_url: str = "redis://localhost:6379/0"

    storage_backend: Literal["local", "s3"] = "local"
    local_storage_path: Path = Path(".local_storage")

    s3_endpoint_url: str | None = None
    s3_region: str | None = None
    s3_bucket: str = "receipts"
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_public_base_url: str | None = None

    ocr_backend: Literal["google_vision", "tesseract"] = "google_vision"
    google_vision_api_key: str | None = None
    google_vision_endpoint: str = "https://vision.googleapis.com/v1/images:annotate"
    ocr_timeout_seconds: float = 30.0
    tesseract_lang: str = "eng"

    max_upload_bytes: int = 10 * 1024 * 1024
    access_token_exp_minutes: int = 60 * 24


settings = Settings()
