"""
Tool input/output schemas.

Rules:
- Inputs are validated server-side using Pydantic, before any adapter runs.
- Enum-like inputs are normalized first ("In Progress" -> "in-progress").
- Outputs are structured and stable for downstream agent logic.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic_core import PydanticCustomError


CustomerStatus = Literal["open", "in-progress", "resolved", "closed"]
CustomerPriority = Literal["low", "medium", "high", "urgent"]

CUSTOMER_STATUSES: tuple[str, ...] = get_args(CustomerStatus)
CUSTOMER_PRIORITIES: tuple[str, ...] = get_args(CustomerPriority)

# Column order of the customer sheet. Row serialization follows this order.
CUSTOMER_COLUMNS: tuple[str, ...] = (
    "name",
    "email",
    "issue",
    "status",
    "priority",
    "created_at",
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _normalize_choice(value: str) -> str:
    return "-".join(value.strip().lower().replace("_", " ").split())


class ToolInput(BaseModel):
    """Base for tool inputs: strict types, unknown keys ignored."""

    model_config = ConfigDict(strict=True, extra="ignore", str_strip_whitespace=True)


class CustomerRecord(ToolInput):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    issue: str = Field(min_length=1, max_length=2000)
    status: CustomerStatus = "open"
    priority: CustomerPriority = "medium"
    # Lax so ISO strings from JSON callers are accepted.
    created_at: datetime = Field(default_factory=_utcnow, strict=False)

    @field_validator("status", "priority", mode="before")
    @classmethod
    def _normalize_enum(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise PydanticCustomError("string_type", "Input should be a valid string")
        return _normalize_choice(value)

    def to_row(self) -> list[str]:
        return [
            self.name,
            str(self.email),
            self.issue,
            self.status,
            self.priority,
            self.created_at.isoformat(timespec="seconds"),
        ]


class ListCustomerRecordsInput(ToolInput):
    limit: int = Field(default=20, ge=1, le=200)


class EventTypeQuery(ToolInput):
    organization: str | None = Field(
        default=None,
        description=(
            "Organization URI, e.g. https://api.calendly.com/organizations/ABC. "
            "Defaults to the configured organization."
        ),
    )
    active: bool | None = None


class CurrentUserInput(ToolInput):
    pass


class RowReference(BaseModel):
    spreadsheet_id: str
    sheet: str
    updated_range: str
    row_number: int | None = None


class StoredCustomerRecord(BaseModel):
    """A customer row read back from the sheet. Values are kept as stored."""

    row_number: int
    name: str
    email: str
    issue: str
    status: str
    priority: str
    created_at: str


class EventType(BaseModel):
    uri: str
    name: str
    slug: str | None = None
    active: bool = True
    kind: str | None = None
    duration_minutes: int | None = None
    scheduling_url: str | None = None
    description: str | None = None


class SchedulingUser(BaseModel):
    uri: str
    name: str
    email: str | None = None
    organization_uri: str | None = None
    scheduling_url: str | None = None
    timezone: str | None = None
