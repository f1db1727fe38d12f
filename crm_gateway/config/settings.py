from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_audit_dir() -> Path:
    # Relative to the working directory: an installed package has no repo root.
    return Path.cwd() / "data" / "audit"


class Settings(BaseSettings):
    """
    Process-wide configuration, loaded once at startup.

    Frozen on purpose: adapters and the diagnostics reporter receive this
    object (or configs derived from it) by reference.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Environment
    env: str = "local"
    log_level: str = "INFO"

    # Paths
    audit_dir: Path = Field(default_factory=_default_audit_dir)

    # Google Sheets
    google_credentials_path: Path | None = Field(
        default=None, validation_alias="GOOGLE_APPLICATION_CREDENTIALS"
    )
    spreadsheet_id: str = ""
    google_project_id: str | None = None
    google_service_account_email: str | None = None
    sheet_range: str = "Sheet1!A:F"
    sheets_base_url: str = "https://sheets.googleapis.com"

    # Calendly
    calendly_api_token: SecretStr = SecretStr("")
    calendly_organization_uri: str | None = None
    calendly_base_url: str = "https://api.calendly.com"
    calendly_page_size: int = Field(default=100, ge=1, le=100)
    calendly_max_pages: int = Field(default=50, ge=1)

    # Dispatch
    adapter_timeout_seconds: float = Field(default=5.0, gt=0.0)
    tool_max_retries: int = Field(default=0, ge=0)
    enable_audit_log: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
