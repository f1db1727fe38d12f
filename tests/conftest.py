"""Pytest configuration, fixtures and adapter test doubles."""

from __future__ import annotations

import asyncio
from typing import Callable

import httpx
import pytest

from crm_gateway.adapters.calendly import CalendlyAdapter
from crm_gateway.adapters.sheets import GoogleSheetsAdapter
from crm_gateway.config import SchedulingConfig, SpreadsheetConfig
from crm_gateway.security import CredentialDescriptor
from crm_gateway.tools.dispatcher import ToolDispatcher
from crm_gateway.tools.factory import register_tools
from crm_gateway.tools.registry import ToolRegistry
from crm_gateway.tools.schemas import (
    CUSTOMER_COLUMNS,
    CurrentUserInput,
    CustomerRecord,
    EventType,
    EventTypeQuery,
    ListCustomerRecordsInput,
    RowReference,
    SchedulingUser,
    StoredCustomerRecord,
)


CALENDLY_TOKEN = "cal_pat_9f8e7d6c5b4a3210ZYXWVU"
GOOGLE_TOKEN = "ya29.a0AfH6SMBx-very-secret-access-token"
ORG_URI = "https://api.calendly.com/organizations/ABC"


class FakeRecordStore:
    """Spreadsheet double: appends to a list, hands out increasing row numbers."""

    def __init__(self) -> None:
        self.appended: list[CustomerRecord] = []
        self.list_calls = 0
        self._next_row = 2

    async def append_record(self, record: CustomerRecord) -> RowReference:
        self.appended.append(record)
        row = self._next_row
        self._next_row += 1
        return RowReference(
            spreadsheet_id="sheet-123",
            sheet="Sheet1",
            updated_range=f"Sheet1!A{row}:F{row}",
            row_number=row,
        )

    async def list_records(
        self, query: ListCustomerRecordsInput
    ) -> list[StoredCustomerRecord]:
        self.list_calls += 1
        records = [
            StoredCustomerRecord(row_number=2 + i, **dict(zip(CUSTOMER_COLUMNS, r.to_row())))
            for i, r in enumerate(self.appended)
        ]
        return records[-query.limit:]


class FakeEventCatalog:
    """
    Scheduling double. Raises `error` when set, sleeps `delay` seconds
    before answering, and counts calls.
    """

    def __init__(
        self,
        *,
        error: Exception | None = None,
        delay: float = 0.0,
        event_types: list[EventType] | None = None,
    ) -> None:
        self.error = error
        self.delay = delay
        self.calls = 0
        self.event_types = event_types or [
            EventType(uri="https://api.calendly.com/event_types/ET1", name="Intro call", duration_minutes=30),
        ]

    async def list_event_types(self, query: EventTypeQuery) -> list[EventType]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.event_types)

    async def get_current_user(self, query: CurrentUserInput) -> SchedulingUser:
        self.calls += 1
        if self.error:
            raise self.error
        return SchedulingUser(
            uri="https://api.calendly.com/users/U1",
            name="Support Desk",
            organization_uri=ORG_URI,
        )


class StaticTokenProvider:
    def __init__(self, token: str = GOOGLE_TOKEN) -> None:
        self._cred = CredentialDescriptor.from_secret(token, source_label="test")

    async def token(self) -> str:
        return self._cred.reveal()

    def credentials(self) -> tuple[CredentialDescriptor, ...]:
        return (self._cred,)


Handler = Callable[[httpx.Request], httpx.Response]


def make_dispatcher(
    *,
    records=None,
    scheduling=None,
    timeout_seconds: float = 1.0,
    audit_logger=None,
    credentials=(),
) -> ToolDispatcher:
    registry = register_tools(
        ToolRegistry(),
        records=records if records is not None else FakeRecordStore(),
        scheduling=scheduling if scheduling is not None else FakeEventCatalog(),
    )
    return ToolDispatcher(
        registry=registry,
        timeout_seconds=timeout_seconds,
        audit_logger=audit_logger,
        credentials=credentials,
    )


def make_sheets_adapter(handler: Handler, **config_overrides) -> GoogleSheetsAdapter:
    config = SpreadsheetConfig(
        **{"credentials_path": None, "spreadsheet_id": "sheet-123", **config_overrides}
    )
    client = httpx.AsyncClient(
        base_url="https://sheets.test", transport=httpx.MockTransport(handler)
    )
    return GoogleSheetsAdapter(config, token_provider=StaticTokenProvider(), client=client)


def make_calendly_adapter(handler: Handler, **config_overrides) -> CalendlyAdapter:
    config = SchedulingConfig(
        **{
            "api_token": CredentialDescriptor.from_secret(CALENDLY_TOKEN, source_label="test"),
            "base_url": "https://calendly.test",
            **config_overrides,
        }
    )
    client = httpx.AsyncClient(
        base_url=config.base_url, transport=httpx.MockTransport(handler)
    )
    return CalendlyAdapter(config, client=client)


@pytest.fixture
def record_store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def event_catalog() -> FakeEventCatalog:
    return FakeEventCatalog()


@pytest.fixture
def dispatcher(record_store, event_catalog) -> ToolDispatcher:
    return make_dispatcher(records=record_store, scheduling=event_catalog)


@pytest.fixture
def jane_doe() -> dict:
    return {
        "name": "Jane Doe",
        "email": "jane@x.com",
        "issue": "billing",
        "status": "open",
        "priority": "high",
    }
