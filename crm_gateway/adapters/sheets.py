"""
Google Sheets adapter: customer records as spreadsheet rows.

- `append_record` appends one row per call. There is no deduplication; a
  caller that needs it must supply and check its own key.
- `list_records` reads the configured range back.

Values are written with valueInputOption=RAW so user-supplied text is stored
verbatim and never evaluated as a formula.
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

from crm_gateway.adapters.google_auth import AccessTokenProvider, ServiceAccountTokenProvider
from crm_gateway.adapters.http import (
    bearer_headers,
    raise_for_backend_status,
    transport_error,
)
from crm_gateway.config.adapters import SpreadsheetConfig
from crm_gateway.security import CredentialDescriptor
from crm_gateway.tools.schemas import (
    CUSTOMER_COLUMNS,
    CustomerRecord,
    ListCustomerRecordsInput,
    RowReference,
    StoredCustomerRecord,
)
from crm_gateway.tools.types import BackendError


logger = logging.getLogger(__name__)

BACKEND = "Google Sheets"

# "Sheet1!A5:F5" or "'Support Queue'!A5:F5"
_RANGE_START_RE = re.compile(r"^(?:'?(?P<sheet>.*?)'?!)?\$?[A-Za-z]+\$?(?P<row>\d+)?")


def _split_range(a1_range: str) -> tuple[str | None, int | None]:
    m = _RANGE_START_RE.match(a1_range or "")
    if not m:
        return None, None
    row = m.group("row")
    return m.group("sheet") or None, int(row) if row else None


class GoogleSheetsAdapter:
    def __init__(
        self,
        config: SpreadsheetConfig,
        *,
        token_provider: AccessTokenProvider | None = None,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._config = config
        self._tokens = token_provider or ServiceAccountTokenProvider(config.credentials_path)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url, timeout=timeout_seconds
        )

    @property
    def config(self) -> SpreadsheetConfig:
        return self._config

    def credentials(self) -> tuple[CredentialDescriptor, ...]:
        return self._tokens.credentials()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---- Operations ----

    async def append_record(self, record: CustomerRecord) -> RowReference:
        data = await self._request(
            "POST",
            f"{self._values_path()}:append",
            params={
                "valueInputOption": "RAW",
                "insertDataOption": "INSERT_ROWS",
            },
            json={"majorDimension": "ROWS", "values": [record.to_row()]},
        )

        updates = data.get("updates") or {}
        updated_range = str(updates.get("updatedRange") or "")
        if not updated_range:
            raise BackendError(f"{BACKEND} append response had no updatedRange.")

        sheet, row = _split_range(updated_range)
        logger.info("Appended customer record at %s", updated_range)
        return RowReference(
            spreadsheet_id=str(data.get("spreadsheetId") or self._config.spreadsheet_id),
            sheet=sheet or self._config.sheet_name,
            updated_range=updated_range,
            row_number=row,
        )

    async def list_records(
        self, query: ListCustomerRecordsInput
    ) -> list[StoredCustomerRecord]:
        data = await self._request(
            "GET",
            self._values_path(),
            params={"majorDimension": "ROWS"},
        )

        rows: list[list[Any]] = data.get("values") or []
        _, first_row = _split_range(str(data.get("range") or self._config.sheet_range))
        row_number = first_row or 1

        records: list[StoredCustomerRecord] = []
        for i, row in enumerate(rows):
            cells = [str(c) for c in row] + [""] * (len(CUSTOMER_COLUMNS) - len(row))
            if i == 0 and cells[0].strip().lower() == "name":
                continue
            if not any(c.strip() for c in cells):
                continue
            records.append(
                StoredCustomerRecord(
                    row_number=row_number + i,
                    **dict(zip(CUSTOMER_COLUMNS, cells)),
                )
            )
        return records[-query.limit:]

    # ---- HTTP ----

    def _values_path(self) -> str:
        if not self._config.spreadsheet_id:
            raise BackendError("No spreadsheet id configured (set SPREADSHEET_ID).")
        return (
            f"/v4/spreadsheets/{quote(self._config.spreadsheet_id, safe='')}"
            f"/values/{quote(self._config.sheet_range, safe='')}"
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        token = await self._tokens.token()
        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=bearer_headers(token)
            )
        except httpx.TransportError as e:
            raise transport_error(e, backend=BACKEND, credentials=self.credentials()) from e

        raise_for_backend_status(response, backend=BACKEND, credentials=self.credentials())
        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"{BACKEND} returned a non-JSON response.") from e
        if not isinstance(data, dict):
            raise BackendError(f"{BACKEND} returned an unexpected payload.")
        return data
