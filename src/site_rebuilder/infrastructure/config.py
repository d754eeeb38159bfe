from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """환경 변수(SITE_REBUILDER_*)와 .env 파일에서 읽는 애플리케이션 설정"""

    model_config = SettingsConfigDict(
        env_prefix="SITE_REBUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = "sqlite:///site_rebuilder.db"
    log_level: str = "DEBUG"
    log_file: Path | None = None

    preview_base_url: str = "http://localhost:3000/preview"

    scrape_timeout_ms: int = Field(default=30_000, gt=0)
    max_link_depth: int = Field(default=2, ge=0)
    headless: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
