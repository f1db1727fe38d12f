"""
Tool factory / wiring.

We keep construction in one place so deployments and tests can swap:
- the Sheets / Calendly adapters for test doubles
- the audit logger
"""

from __future__ import annotations

from dataclasses import dataclass

from crm_gateway.adapters.base import CustomerRecordStore, EventTypeCatalog
from crm_gateway.adapters.calendly import CalendlyAdapter
from crm_gateway.adapters.sheets import GoogleSheetsAdapter
from crm_gateway.config import (
    Settings,
    build_scheduling_config,
    build_spreadsheet_config,
)
from crm_gateway.tools.audit import ToolAuditLogger
from crm_gateway.tools.dispatcher import ToolDispatcher
from crm_gateway.tools.registry import ToolDefinition, ToolRegistry
from crm_gateway.tools.schemas import (
    CurrentUserInput,
    CustomerRecord,
    EventTypeQuery,
    ListCustomerRecordsInput,
)


@dataclass(frozen=True)
class Backends:
    sheets: GoogleSheetsAdapter
    calendly: CalendlyAdapter

    async def aclose(self) -> None:
        await self.sheets.aclose()
        await self.calendly.aclose()


def register_tools(
    registry: ToolRegistry,
    *,
    records: CustomerRecordStore,
    scheduling: EventTypeCatalog,
) -> ToolRegistry:
    registry.register(
        ToolDefinition(
            name="add_customer_record",
            description=(
                "Record a customer issue as a new row in the CRM spreadsheet. "
                "status: open | in-progress | resolved | closed; "
                "priority: low | medium | high | urgent."
            ),
            input_model=CustomerRecord,
            adapter=records,
            operation="append_record",
        )
    )
    registry.register(
        ToolDefinition(
            name="list_customer_records",
            description="List the most recent customer records from the CRM spreadsheet.",
            input_model=ListCustomerRecordsInput,
            adapter=records,
            operation="list_records",
        )
    )
    registry.register(
        ToolDefinition(
            name="list_event_types",
            description=(
                "List all Calendly event types for an organization URI "
                "(defaults to the configured organization)."
            ),
            input_model=EventTypeQuery,
            adapter=scheduling,
            operation="list_event_types",
        )
    )
    registry.register(
        ToolDefinition(
            name="get_current_user",
            description="Show the Calendly user behind the API token, including its organization URI.",
            input_model=CurrentUserInput,
            adapter=scheduling,
            operation="get_current_user",
        )
    )
    registry.seal()
    return registry


def build_tool_registry(settings: Settings) -> tuple[ToolRegistry, Backends]:
    timeout = float(settings.adapter_timeout_seconds)
    backends = Backends(
        sheets=GoogleSheetsAdapter(
            build_spreadsheet_config(settings), timeout_seconds=timeout
        ),
        calendly=CalendlyAdapter(
            build_scheduling_config(settings), timeout_seconds=timeout
        ),
    )
    registry = register_tools(
        ToolRegistry(),
        records=backends.sheets,
        scheduling=backends.calendly,
    )
    return registry, backends


def build_dispatcher(settings: Settings) -> tuple[ToolDispatcher, Backends]:
    registry, backends = build_tool_registry(settings)
    audit = (
        ToolAuditLogger(audit_dir=settings.audit_dir)
        if settings.enable_audit_log
        else None
    )
    dispatcher = ToolDispatcher(
        registry=registry,
        timeout_seconds=settings.adapter_timeout_seconds,
        audit_logger=audit,
    )
    return dispatcher, backends
