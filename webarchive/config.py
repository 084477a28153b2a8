from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Web Archiver"
    base_storage_dir: str = "./archives"
    request_timeout: float = 10.0
    user_agent: str = "Web-Archiver/1.0"

    # Crawl limits
    max_crawl_depth: int = 2
    max_concurrent_requests: int = 5
    crawl_timeout: float | None = None  # seconds, whole crawl

    # Retry for idempotent GETs (pages and assets)
    fetch_retries: int = 2
    retry_backoff: float = 0.5

    # "overwrite" = last writer wins, "error" = refuse a second URL on the same path
    filename_collisions: Literal["overwrite", "error"] = "overwrite"

    log_level: str = "INFO"


settings = Settings()
