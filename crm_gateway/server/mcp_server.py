"""
MCP stdio server exposing the gateway tools.

This is a thin surface: each MCP tool forwards its arguments to the
dispatcher and returns the ToolResult envelope as a dict. Enum and schema
validation happen in the dispatcher, so the MCP signatures use plain types.

stdout carries the MCP protocol; logs and diagnostics go to stderr.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from mcp.server.fastmcp import FastMCP

from crm_gateway.config import (
    Settings,
    build_scheduling_config,
    build_spreadsheet_config,
    get_settings,
)
from crm_gateway.diagnostics import describe
from crm_gateway.tools.dispatcher import ToolDispatcher
from crm_gateway.tools.factory import Backends, build_dispatcher
from crm_gateway.tools.retrying import dispatch_with_retry
from crm_gateway.tools.types import ToolCall, ToolContext
from crm_gateway.utils.logging import setup_logging


logger = logging.getLogger(__name__)


def build_server(
    dispatcher: ToolDispatcher,
    *,
    backends: Backends | None = None,
    max_attempts: int = 1,
) -> FastMCP:
    @asynccontextmanager
    async def lifespan(_server: FastMCP) -> AsyncIterator[None]:
        try:
            yield
        finally:
            if backends is not None:
                await backends.aclose()

    mcp = FastMCP(
        name="crm-gateway",
        instructions=(
            "CRM tools: record customer issues in the CRM spreadsheet and "
            "look up Calendly event types. Every tool returns an envelope with "
            "status 'success' (payload) or 'failure' (kind, message, retryable)."
        ),
        lifespan=lifespan,
    )
    registry = dispatcher.registry

    async def call(name: str, args: dict[str, Any]) -> dict[str, Any]:
        result = await dispatch_with_retry(
            dispatcher,
            ToolCall(name=name, args={k: v for k, v in args.items() if v is not None}),
            max_attempts=max_attempts,
            ctx=ToolContext(actor="mcp"),
        )
        return result.model_dump(mode="json")

    @mcp.tool(
        name="add_customer_record",
        description=registry.lookup("add_customer_record").description,
    )
    async def add_customer_record(
        name: str,
        email: str,
        issue: str,
        status: str = "open",
        priority: str = "medium",
    ) -> dict[str, Any]:
        return await call(
            "add_customer_record",
            {
                "name": name,
                "email": email,
                "issue": issue,
                "status": status,
                "priority": priority,
            },
        )

    @mcp.tool(
        name="list_customer_records",
        description=registry.lookup("list_customer_records").description,
    )
    async def list_customer_records(limit: int = 20) -> dict[str, Any]:
        return await call("list_customer_records", {"limit": limit})

    @mcp.tool(
        name="list_event_types",
        description=registry.lookup("list_event_types").description,
    )
    async def list_event_types(
        organization: str | None = None,
        active: bool | None = None,
    ) -> dict[str, Any]:
        return await call(
            "list_event_types", {"organization": organization, "active": active}
        )

    @mcp.tool(
        name="get_current_user",
        description=registry.lookup("get_current_user").description,
    )
    async def get_current_user() -> dict[str, Any]:
        return await call("get_current_user", {})

    return mcp


def create_app(settings: Settings) -> FastMCP:
    dispatcher, backends = build_dispatcher(settings)
    return build_server(
        dispatcher,
        backends=backends,
        max_attempts=1 + int(settings.tool_max_retries),
    )


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)

    print(
        describe(build_spreadsheet_config(settings), build_scheduling_config(settings)),
        file=sys.stderr,
    )
    logger.info("Starting crm-gateway MCP server (env=%s)", settings.env)
    create_app(settings).run()


if __name__ == "__main__":
    main()
