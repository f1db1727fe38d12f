"""
Shared tool types, exceptions and the result envelope.

Why this exists:
- Tools are a security boundary. We want strict typing, strict allow-listing,
  and predictable error handling.
- Adapters raise the typed errors below; the dispatcher turns them into a
  `Failure` so callers always get a `ToolResult` back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, NewType, Union
from uuid import uuid4

from pydantic import BaseModel


RequestId = NewType("RequestId", str)


def new_request_id() -> RequestId:
    return RequestId(f"req_{uuid4().hex[:12]}")


@dataclass(frozen=True)
class ToolContext:
    """
    Context passed along with every tool call.

    Only used for audit correlation; tools do not read it.
    """
    request_id: RequestId = field(default_factory=new_request_id)
    actor: str = "agent"  # e.g. "agent", "operator", "script"


@dataclass(frozen=True)
class ToolCall:
    name: str
    args: dict[str, Any] = field(default_factory=dict)


class FailureKind(str, Enum):
    UNKNOWN_TOOL = "UnknownTool"
    MISSING_FIELD = "MissingField"
    INVALID_ENUM_VALUE = "InvalidEnumValue"
    TYPE_MISMATCH = "TypeMismatch"
    INVALID_VALUE = "InvalidValue"
    BACKEND_UNAVAILABLE = "BackendUnavailable"
    RATE_LIMITED = "RateLimited"
    AUTH_FAILURE = "AuthFailure"
    BACKEND_ERROR = "BackendError"


class Success(BaseModel):
    status: Literal["success"] = "success"
    payload: Any = None


class Failure(BaseModel):
    status: Literal["failure"] = "failure"
    kind: FailureKind
    message: str
    retryable: bool = False
    retry_after: float | None = None
    field: str | None = None
    allowed_values: list[str] | None = None


ToolResult = Union[Success, Failure]


# ---- Exceptions ----

class ToolError(Exception):
    """Base class for tool errors."""


class ToolRegistrationError(ToolError):
    """Registry misuse at startup (sealed registry, bad definition)."""


class DuplicateToolError(ToolRegistrationError):
    """A tool with the same name is already registered."""


class UnknownToolError(ToolError):
    """Tool name not on allow-list or not registered."""


class AdapterError(ToolError):
    """
    Base class for failures raised by backend adapters.

    Messages must already be scrubbed of credential values when raised.
    """

    kind: FailureKind = FailureKind.BACKEND_ERROR
    retryable: bool = False


class BackendUnavailableError(AdapterError):
    """Network failure or timeout; safe to retry."""

    kind = FailureKind.BACKEND_UNAVAILABLE
    retryable = True


class AuthFailureError(AdapterError):
    """Credentials rejected (401/403). Needs an operator fix."""

    kind = FailureKind.AUTH_FAILURE


class RateLimitedError(AdapterError):
    """Provider throttled the request."""

    kind = FailureKind.RATE_LIMITED
    retryable = True

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class BackendError(AdapterError):
    """Any other provider-side error."""


class ArgumentError(ToolError):
    """
    Argument problem detected by an adapter before any network I/O,
    e.g. a value that may come either from the call or from configuration.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: FailureKind = FailureKind.MISSING_FIELD,
        field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.field = field
