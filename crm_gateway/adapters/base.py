"""
Adapter capabilities.

The registry holds an opaque adapter reference plus an operation name; these
protocols describe what the spreadsheet and scheduling variants provide.
Test doubles only need to match the methods they are registered for.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from crm_gateway.security import CredentialDescriptor
from crm_gateway.tools.schemas import (
    CurrentUserInput,
    CustomerRecord,
    EventType,
    EventTypeQuery,
    ListCustomerRecordsInput,
    RowReference,
    SchedulingUser,
    StoredCustomerRecord,
)


@runtime_checkable
class HoldsCredentials(Protocol):
    def credentials(self) -> tuple[CredentialDescriptor, ...]: ...


class CustomerRecordStore(Protocol):
    async def append_record(self, record: CustomerRecord) -> RowReference: ...

    async def list_records(
        self, query: ListCustomerRecordsInput
    ) -> list[StoredCustomerRecord]: ...


class EventTypeCatalog(Protocol):
    async def list_event_types(self, query: EventTypeQuery) -> list[EventType]: ...

    async def get_current_user(self, query: CurrentUserInput) -> SchedulingUser: ...
