# leadgrid/config.py - Pydantic settings (env vars)

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Upstream search service (paginated query endpoint + job-based export API)
    search_api_url: str = "http://localhost:5000"
    search_api_token: str | None = None
    search_path: str = "/api/data/leads"
    export_start_path: str = "/api/export/start"
    export_status_path: str = "/api/export/status"
    export_download_path: str = "/api/export/download"
    http_timeout_seconds: float = 30.0

    # Pagination
    total_hits_cap: int = 10000
    default_page_size: int = 100
    bulk_batch_size: int = 1000

    # Export job polling
    export_poll_interval_ms: int = 1500
    export_max_poll_attempts: int = 2400
    export_poll_failure_tolerance: int = 1

    # Local persistence
    export_job_store_path: str = ".leadgrid/export_job.json"
    export_download_dir: str = "exports"

    model_config = SettingsConfigDict(
        env_prefix="LEADGRID_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @field_validator("search_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        cleaned = value.strip().rstrip("/")
        if not cleaned:
            raise ValueError("LEADGRID_SEARCH_API_URL must be set and non-empty")
        return cleaned

    @field_validator("search_path", "export_start_path", "export_status_path", "export_download_path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        cleaned = value.strip().rstrip("/")
        if not cleaned.startswith("/"):
            cleaned = f"/{cleaned}"
        return cleaned

    @field_validator("search_api_token")
    @classmethod
    def _blank_token_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("bulk_batch_size", "default_page_size", "total_hits_cap", "export_max_poll_attempts")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be a positive integer")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
