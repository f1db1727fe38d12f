"""
Tool audit trail.

One JSONL line per dispatch, success or failure, appended to
`<audit_dir>/tool_calls.jsonl`.

What gets written:
- the call (tool name, request id, actor) and its outcome kind
- arguments with email addresses partially masked and free-text fields
  clipped, so customer issue descriptions do not pile up in the trail
- failure messages, which the dispatcher has already scrubbed of credentials
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Mapping

from crm_gateway.tools.types import Failure, ToolCall, ToolContext, ToolResult


AUDIT_FILENAME = "tool_calls.jsonl"

_EMAIL_FIELDS = frozenset({"email"})
_FREE_TEXT_FIELDS = frozenset({"issue"})
_MAX_TEXT_CHARS = 80


def mask_email(value: str) -> str:
    local, sep, domain = value.partition("@")
    if not sep:
        return "***"
    return (local[:2] if len(local) > 2 else "") + "***@" + domain


def _clip(value: str) -> str:
    if len(value) <= _MAX_TEXT_CHARS:
        return value
    return f"{value[:_MAX_TEXT_CHARS]}... ({len(value)} chars)"


def redact_args(args: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in args.items():
        name = str(key).lower()
        if isinstance(value, str) and name in _EMAIL_FIELDS:
            out[key] = mask_email(value)
        elif isinstance(value, str) and name in _FREE_TEXT_FIELDS:
            out[key] = _clip(value)
        else:
            out[key] = value
    return out


@dataclass(frozen=True)
class ToolAuditEvent:
    timestamp: str
    request_id: str
    actor: str
    tool_name: str
    args: dict[str, Any]
    status: str  # "success" | "failure"
    failure_kind: str | None
    retryable: bool | None
    message: str | None
    duration_ms: int | None

    @classmethod
    def for_result(
        cls,
        *,
        ctx: ToolContext,
        call: ToolCall,
        result: ToolResult,
        duration_ms: int | None,
    ) -> ToolAuditEvent:
        failure = result if isinstance(result, Failure) else None
        return cls(
            timestamp=now_iso(),
            request_id=str(ctx.request_id),
            actor=ctx.actor,
            tool_name=call.name,
            args=redact_args(call.args) if isinstance(call.args, Mapping) else {},
            status=result.status,
            failure_kind=failure.kind.value if failure else None,
            retryable=failure.retryable if failure else None,
            message=failure.message if failure else None,
            duration_ms=duration_ms,
        )


class ToolAuditLogger:
    """Append-only JSONL sink. Writes are small and synchronous."""

    def __init__(self, *, audit_dir: Path, filename: str = AUDIT_FILENAME) -> None:
        audit_dir.mkdir(parents=True, exist_ok=True)
        self._path = audit_dir / filename

    @property
    def path(self) -> Path:
        return self._path

    def log(self, event: ToolAuditEvent) -> None:
        line = json.dumps(asdict(event), ensure_ascii=False, default=str)
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")


def now_iso() -> str:
    return datetime.now(UTC).isoformat()
