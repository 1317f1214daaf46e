"""FileHub configuration — Pydantic BaseSettings loaded from .env."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "FileHub"
    debug: bool = True
    environment: str = "development"
    log_level: str = "INFO"

    # Network
    host: str = "127.0.0.1"
    port: int = 3000
    api_prefix: str = "/api"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Auth: tokens are issued upstream and verified locally with the shared secret
    secret_key: str = "change-me-in-prod"
    token_algorithm: str = "HS256"
    auth_url: str = "http://127.0.0.1:9000"
    auth_timeout_seconds: float = 10.0

    # Storage paths (relative resolved from backend/ at runtime)
    data_dir: str = "./data"
    storage_root: str = "./data/tenants"
    database_path: str = "./data/filehub.db"

    # Listing / search
    default_page_size: int = 50
    max_page_size: int = 500
    search_max_depth: int = 64
    search_max_nodes: int = 200_000

    # Uploads
    upload_workers: int = 4
    max_upload_files: int = 500
    upload_chunk_size: int = 1024 * 1024  # 1 MB

    # Orphaned temp-file sweep
    orphan_max_age_minutes: int = 60
    cleanup_interval_minutes: int = 15

    # Per-request deadline for storage/search work
    request_timeout_seconds: float = 120.0

    uvicorn_workers: int = 1
    max_db_connections: int = 5

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        env_prefix="FILEHUB_",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str) and not value.startswith("["):
            return [o.strip() for o in value.split(",") if o.strip()]
        if isinstance(value, list):
            return value
        return ["http://localhost:5173"]

    @field_validator("upload_workers", "max_page_size", "default_page_size")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        return max(1, value)

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Ensure data directories are absolute."""
        base = Path(__file__).resolve().parent.parent  # backend/
        for field in ("data_dir", "storage_root", "database_path"):
            val = getattr(self, field)
            if not Path(val).is_absolute():
                setattr(self, field, str((base / val).resolve()))
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
