"""
Immutable per-adapter configuration.

Built once from `Settings` at startup and handed to the adapters and the
diagnostics reporter by reference. Tests build these directly.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from crm_gateway.config.settings import Settings
from crm_gateway.security import CredentialDescriptor


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpreadsheetConfig:
    credentials_path: Path | None
    spreadsheet_id: str
    project_id: str | None = None
    service_account_email: str | None = None
    sheet_range: str = "Sheet1!A:F"
    base_url: str = "https://sheets.googleapis.com"

    @property
    def sheet_name(self) -> str:
        return self.sheet_range.split("!", 1)[0] if "!" in self.sheet_range else self.sheet_range


@dataclass(frozen=True)
class SchedulingConfig:
    api_token: CredentialDescriptor
    organization_uri: str | None = None
    base_url: str = "https://api.calendly.com"
    page_size: int = 100
    max_pages: int = 50


def _read_service_account_info(path: Path | None) -> dict[str, str]:
    """
    Read non-secret identifiers from a service-account JSON file.
    Only `project_id` and `client_email` are kept; the private key is dropped.
    """
    if path is None or not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Could not read credentials file %s: %s", path, type(e).__name__)
        return {}
    if not isinstance(data, dict):
        return {}
    return {
        k: str(data[k]) for k in ("project_id", "client_email") if data.get(k)
    }


def build_spreadsheet_config(settings: Settings) -> SpreadsheetConfig:
    info = _read_service_account_info(settings.google_credentials_path)
    return SpreadsheetConfig(
        credentials_path=settings.google_credentials_path,
        spreadsheet_id=settings.spreadsheet_id.strip(),
        project_id=settings.google_project_id or info.get("project_id"),
        service_account_email=(
            settings.google_service_account_email or info.get("client_email")
        ),
        sheet_range=settings.sheet_range,
        base_url=settings.sheets_base_url,
    )


def build_scheduling_config(settings: Settings) -> SchedulingConfig:
    return SchedulingConfig(
        api_token=CredentialDescriptor.from_secret(
            settings.calendly_api_token, source_label="env:CALENDLY_API_TOKEN"
        ),
        organization_uri=settings.calendly_organization_uri or None,
        base_url=settings.calendly_base_url,
        page_size=settings.calendly_page_size,
        max_pages=settings.calendly_max_pages,
    )
