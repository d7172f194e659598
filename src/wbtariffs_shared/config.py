"""
config.py — pydantic-settings Settings class.

All environment variables for the tariffs service are declared here.
The pipeline, the scheduler and the API read them through `settings`
or through a Settings instance passed in explicitly (tests).

Usage:
    from wbtariffs_shared.config import settings
    print(settings.wb_api_url)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = Field(
        default="development"
    )

    # -------------------------------------------------------------------------
    # Supabase
    # -------------------------------------------------------------------------
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_service_key: str = Field(default="")

    # -------------------------------------------------------------------------
    # Wildberries API
    # -------------------------------------------------------------------------
    wb_api_url: str = Field(default="https://common-api.wildberries.ru")
    wb_api_token: str = Field(default="")
    wb_api_timeout: float = Field(default=30.0, gt=0)
    wb_max_attempts: int = Field(default=3, ge=1)
    wb_retry_delay: float = Field(default=2.0, ge=0)

    # -------------------------------------------------------------------------
    # Google Sheets
    # -------------------------------------------------------------------------
    google_service_account_email: str = Field(default="")
    google_private_key: str = Field(default="")
    google_sheet_ids: str = Field(default="")
    google_sheet_name: str = Field(default="stocks_coefs")

    # -------------------------------------------------------------------------
    # Scheduling & retention
    # -------------------------------------------------------------------------
    cron_fetch_wb_data: str = Field(default="0 * * * *")
    cron_update_sheets: str = Field(default="*/30 * * * *")
    cron_cleanup: str = Field(default="0 3 * * *")
    retention_days: int = Field(default=30, ge=0)

    # -------------------------------------------------------------------------
    # API server
    # -------------------------------------------------------------------------
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3000)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def google_sheet_ids_list(self) -> list[str]:
        return [s.strip() for s in self.google_sheet_ids.split(",") if s.strip()]

    @property
    def google_credentials_configured(self) -> bool:
        return bool(self.google_service_account_email and self.google_private_key)

    @field_validator("supabase_url", "wb_api_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v

    @field_validator("google_private_key", mode="before")
    @classmethod
    def unescape_newlines(cls, v: str) -> str:
        # Keys pasted into .env files usually carry literal "\n" sequences
        return v.replace("\\n", "\n") if isinstance(v, str) else v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level instance — read-only configuration, import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
