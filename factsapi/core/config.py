"""
Centralised application settings loaded from environment / .env file.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ── ClickHouse ───────────────────────────────────────
    clickhouse_host: str = "localhost"
    clickhouse_port: int = 9000
    clickhouse_db: str = "default"
    clickhouse_user: str = "default"
    clickhouse_password: str = ""
    clickhouse_max_execution_time: int = 60

    # ── Pool ─────────────────────────────────────────────
    pool_size: int = 5
    max_overflow: int = 5
    pool_recycle_s: int = 3600
    connect_timeout_s: int = 5

    # ── App ──────────────────────────────────────────────
    api_port: int = 8080
    log_level: str = "INFO"
    query_timeout_s: float = 60.0

    @property
    def database_url(self) -> str:
        return (
            f"clickhouse+native://{self.clickhouse_user}:{self.clickhouse_password}"
            f"@{self.clickhouse_host}:{self.clickhouse_port}/{self.clickhouse_db}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
