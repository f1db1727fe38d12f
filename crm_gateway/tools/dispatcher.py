from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Iterable

import httpx
from pydantic import BaseModel, ValidationError

from crm_gateway.adapters.base import HoldsCredentials
from crm_gateway.adapters.http import error_from_response
from crm_gateway.security import CredentialDescriptor, scrub_secrets
from crm_gateway.tools.audit import ToolAuditEvent, ToolAuditLogger
from crm_gateway.tools.registry import ToolDefinition, ToolRegistry, allowed_values
from crm_gateway.tools.types import (
    AdapterError,
    ArgumentError,
    Failure,
    FailureKind,
    RateLimitedError,
    Success,
    ToolCall,
    ToolContext,
    ToolResult,
    UnknownToolError,
)


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class ToolDispatcher:
    """
    Routes a tool call to its adapter and normalizes the outcome.

    `dispatch` is total: every call produces exactly one `ToolResult`.
    Validation failures are returned before any adapter runs; adapter
    failures are classified and scrubbed of credential values. Nothing is
    retried here, the `retryable` flag is left to the caller.
    """

    def __init__(
        self,
        *,
        registry: ToolRegistry,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        credentials: Iterable[CredentialDescriptor] = (),
        audit_logger: ToolAuditLogger | None = None,
    ) -> None:
        self._registry = registry
        self._timeout = float(timeout_seconds)
        self._audit = audit_logger
        self._static_credentials = tuple(credentials)
        self._credential_holders = _credential_holders(registry)

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def dispatch(self, call: ToolCall, ctx: ToolContext | None = None) -> ToolResult:
        ctx = ctx or ToolContext()
        start = time.perf_counter()

        result = await self._dispatch(call)

        duration_ms = _ms_since(start)
        if isinstance(result, Failure):
            logger.warning(
                "tool=%s request=%s failed kind=%s retryable=%s (%d ms): %s",
                call.name,
                ctx.request_id,
                result.kind.value,
                result.retryable,
                duration_ms,
                result.message,
            )
        else:
            logger.info(
                "tool=%s request=%s succeeded (%d ms)",
                call.name,
                ctx.request_id,
                duration_ms,
            )
        self._log_event(ctx=ctx, call=call, result=result, duration_ms=duration_ms)
        return result

    async def _dispatch(self, call: ToolCall) -> ToolResult:
        try:
            definition = self._registry.lookup(call.name)
        except UnknownToolError as e:
            return Failure(kind=FailureKind.UNKNOWN_TOOL, message=str(e))

        try:
            parsed_input = definition.input_model.model_validate(
                {} if call.args is None else call.args
            )
        except ValidationError as e:
            return _validation_failure(definition, e)

        operation = definition.bound_operation()
        try:
            output = await asyncio.wait_for(operation(parsed_input), timeout=self._timeout)
        except Exception as e:
            return self._classify(definition, e)

        return Success(payload=_to_payload(output))

    def _classify(self, definition: ToolDefinition, exc: Exception) -> Failure:
        if isinstance(exc, httpx.HTTPStatusError):
            exc = error_from_response(exc.response, backend=definition.name)

        if isinstance(exc, RateLimitedError):
            return Failure(
                kind=exc.kind,
                message=self._scrub(str(exc)),
                retryable=True,
                retry_after=exc.retry_after,
            )

        if isinstance(exc, AdapterError):
            return Failure(
                kind=exc.kind,
                message=self._scrub(str(exc)),
                retryable=exc.retryable,
            )

        if isinstance(exc, ArgumentError):
            return Failure(kind=exc.kind, message=self._scrub(str(exc)), field=exc.field)

        if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
            return Failure(
                kind=FailureKind.BACKEND_UNAVAILABLE,
                message=f"Backend call for {definition.name!r} timed out after {self._timeout:g}s.",
                retryable=True,
            )

        if isinstance(exc, httpx.TransportError):
            return Failure(
                kind=FailureKind.BACKEND_UNAVAILABLE,
                message=self._scrub(f"Backend unreachable: {exc}"),
                retryable=True,
            )

        logger.error(
            "Unexpected error from adapter for tool=%s: %s",
            definition.name,
            self._scrub(repr(exc)),
        )
        return Failure(
            kind=FailureKind.BACKEND_ERROR,
            message=self._scrub(str(exc) or type(exc).__name__),
        )

    def _scrub(self, text: str) -> str:
        # Adapters may mint tokens after startup, so ask them on every scrub.
        creds = list(self._static_credentials)
        for holder in self._credential_holders:
            creds.extend(holder.credentials())
        return scrub_secrets(text, creds)

    def _log_event(
        self,
        *,
        ctx: ToolContext,
        call: ToolCall,
        result: ToolResult,
        duration_ms: int | None,
    ) -> None:
        if not self._audit:
            return
        event = ToolAuditEvent.for_result(
            ctx=ctx, call=call, result=result, duration_ms=duration_ms
        )
        try:
            self._audit.log(event)
        except OSError:
            # The backend call already happened; its result still goes back.
            logger.exception(
                "Audit write failed for tool=%s request=%s", call.name, ctx.request_id
            )


def _validation_failure(definition: ToolDefinition, exc: ValidationError) -> Failure:
    # Pydantic reports errors in field declaration order; the first one wins.
    err = exc.errors()[0]
    loc = err.get("loc") or ()
    field = str(loc[0]) if loc else None
    err_type = err["type"]
    tool = definition.name

    if field is None:
        return Failure(
            kind=FailureKind.TYPE_MISMATCH,
            message=f"Arguments for tool {tool!r} must be an object: {err['msg']}.",
        )

    if err_type == "missing":
        return Failure(
            kind=FailureKind.MISSING_FIELD,
            message=f"Missing required field {field!r} for tool {tool!r}.",
            field=field,
        )

    if err_type in {"literal_error", "enum"}:
        info = definition.input_model.model_fields.get(field)
        allowed = list(allowed_values(info.annotation) or ()) if info else []
        return Failure(
            kind=FailureKind.INVALID_ENUM_VALUE,
            message=(
                f"Invalid value {err.get('input')!r} for field {field!r}. "
                f"Allowed values: {', '.join(allowed)}."
            ),
            field=field,
            allowed_values=allowed,
        )

    if err_type.endswith("_type"):
        return Failure(
            kind=FailureKind.TYPE_MISMATCH,
            message=f"Type mismatch for field {field!r}: {err['msg']}.",
            field=field,
        )

    return Failure(
        kind=FailureKind.INVALID_VALUE,
        message=f"Invalid value for field {field!r}: {err['msg']}.",
        field=field,
    )


def _credential_holders(registry: ToolRegistry) -> tuple[HoldsCredentials, ...]:
    seen: dict[int, HoldsCredentials] = {}
    for definition in registry.definitions():
        if isinstance(definition.adapter, HoldsCredentials):
            seen.setdefault(id(definition.adapter), definition.adapter)
    return tuple(seen.values())


def _to_payload(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_to_payload(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_payload(v) for k, v in value.items()}
    return value


def _ms_since(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
