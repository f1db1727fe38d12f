"""Tests for tool dispatch: validation, routing and failure classification."""

import httpx
import pytest

from crm_gateway.security import CredentialDescriptor
from crm_gateway.tools.schemas import CUSTOMER_PRIORITIES, CUSTOMER_STATUSES
from crm_gateway.tools.types import (
    AuthFailureError,
    BackendError,
    BackendUnavailableError,
    Failure,
    FailureKind,
    RateLimitedError,
    Success,
    ToolCall,
)
from tests.conftest import (
    CALENDLY_TOKEN,
    ORG_URI,
    FakeEventCatalog,
    make_calendly_adapter,
    make_dispatcher,
)


class TestValidation:
    """Arguments are rejected before any adapter runs."""

    @pytest.mark.asyncio
    async def test_jane_doe_record_succeeds(self, dispatcher, record_store, jane_doe):
        result = await dispatcher.dispatch(ToolCall("add_customer_record", jane_doe))

        assert isinstance(result, Success)
        assert result.payload["spreadsheet_id"] == "sheet-123"
        assert result.payload["row_number"] == 2
        assert len(record_store.appended) == 1
        assert record_store.appended[0].status == "open"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", CUSTOMER_STATUSES)
    @pytest.mark.parametrize("priority", CUSTOMER_PRIORITIES)
    async def test_every_status_priority_pair_succeeds(self, dispatcher, jane_doe, status, priority):
        args = {**jane_doe, "status": status, "priority": priority}

        result = await dispatcher.dispatch(ToolCall("add_customer_record", args))

        assert isinstance(result, Success)

    @pytest.mark.asyncio
    async def test_status_outside_enum_is_rejected_without_adapter_call(
        self, dispatcher, record_store, jane_doe
    ):
        args = {**jane_doe, "status": "pending"}

        result = await dispatcher.dispatch(ToolCall("add_customer_record", args))

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.INVALID_ENUM_VALUE
        assert result.retryable is False
        assert result.field == "status"
        assert "status" in result.message
        assert result.allowed_values == list(CUSTOMER_STATUSES)
        assert record_store.appended == []

    @pytest.mark.asyncio
    async def test_priority_outside_enum_is_rejected(self, dispatcher, record_store, jane_doe):
        result = await dispatcher.dispatch(
            ToolCall("add_customer_record", {**jane_doe, "priority": "critical"})
        )

        assert result.kind == FailureKind.INVALID_ENUM_VALUE
        assert result.field == "priority"
        assert "urgent" in result.message
        assert record_store.appended == []

    @pytest.mark.asyncio
    async def test_enum_values_are_normalized(self, dispatcher, record_store, jane_doe):
        args = {**jane_doe, "status": "  In Progress ", "priority": "URGENT"}

        result = await dispatcher.dispatch(ToolCall("add_customer_record", args))

        assert isinstance(result, Success)
        assert record_store.appended[0].status == "in-progress"
        assert record_store.appended[0].priority == "urgent"

    @pytest.mark.asyncio
    async def test_missing_required_field(self, dispatcher, record_store, jane_doe):
        args = dict(jane_doe)
        del args["email"]

        result = await dispatcher.dispatch(ToolCall("add_customer_record", args))

        assert result.kind == FailureKind.MISSING_FIELD
        assert result.field == "email"
        assert "email" in result.message
        assert result.retryable is False
        assert record_store.appended == []

    @pytest.mark.asyncio
    async def test_status_and_priority_have_defaults(self, dispatcher, record_store):
        result = await dispatcher.dispatch(
            ToolCall(
                "add_customer_record",
                {"name": "Sam", "email": "sam@x.com", "issue": "login"},
            )
        )

        assert isinstance(result, Success)
        assert record_store.appended[0].status == "open"
        assert record_store.appended[0].priority == "medium"

    @pytest.mark.asyncio
    async def test_type_mismatch(self, dispatcher, record_store, jane_doe):
        result = await dispatcher.dispatch(
            ToolCall("add_customer_record", {**jane_doe, "name": 12345})
        )

        assert result.kind == FailureKind.TYPE_MISMATCH
        assert result.field == "name"
        assert result.retryable is False
        assert record_store.appended == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field, value", [("status", 7), ("priority", None), ("status", ["open"])])
    async def test_non_string_enum_is_a_type_mismatch(
        self, dispatcher, record_store, jane_doe, field, value
    ):
        result = await dispatcher.dispatch(
            ToolCall("add_customer_record", {**jane_doe, field: value})
        )

        assert result.kind == FailureKind.TYPE_MISMATCH
        assert result.field == field
        assert record_store.appended == []

    @pytest.mark.asyncio
    async def test_arguments_must_be_an_object(self, dispatcher):
        result = await dispatcher.dispatch(ToolCall("add_customer_record", ["Jane"]))  # type: ignore[arg-type]

        assert result.kind == FailureKind.TYPE_MISMATCH
        assert result.field is None

    @pytest.mark.asyncio
    async def test_malformed_email_is_an_invalid_value(self, dispatcher, record_store, jane_doe):
        result = await dispatcher.dispatch(
            ToolCall("add_customer_record", {**jane_doe, "email": "not-an-email"})
        )

        assert result.kind == FailureKind.INVALID_VALUE
        assert result.field == "email"
        assert record_store.appended == []

    @pytest.mark.asyncio
    async def test_blank_name_is_an_invalid_value(self, dispatcher, jane_doe):
        result = await dispatcher.dispatch(
            ToolCall("add_customer_record", {**jane_doe, "name": "   "})
        )

        assert result.kind == FailureKind.INVALID_VALUE
        assert result.field == "name"

    @pytest.mark.asyncio
    async def test_list_limit_bounds(self, dispatcher, record_store):
        result = await dispatcher.dispatch(ToolCall("list_customer_records", {"limit": 0}))

        assert result.kind == FailureKind.INVALID_VALUE
        assert result.field == "limit"
        assert record_store.list_calls == 0


class TestRouting:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["delete_customer", "", "ADD_CUSTOMER_RECORD", "list_event_types "])
    async def test_unknown_tool(self, dispatcher, name):
        result = await dispatcher.dispatch(ToolCall(name, {}))

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.UNKNOWN_TOOL
        assert result.retryable is False

    @pytest.mark.asyncio
    async def test_list_event_types_routes_to_scheduling(self, dispatcher, event_catalog, record_store):
        result = await dispatcher.dispatch(
            ToolCall("list_event_types", {"organization": ORG_URI})
        )

        assert isinstance(result, Success)
        assert result.payload[0]["name"] == "Intro call"
        assert event_catalog.calls == 1
        assert record_store.appended == []

    @pytest.mark.asyncio
    async def test_list_customer_records_reads_back(self, dispatcher, jane_doe):
        await dispatcher.dispatch(ToolCall("add_customer_record", jane_doe))

        result = await dispatcher.dispatch(ToolCall("list_customer_records", {"limit": 5}))

        assert isinstance(result, Success)
        assert [r["name"] for r in result.payload] == ["Jane Doe"]

    @pytest.mark.asyncio
    async def test_identical_appends_get_distinct_rows(self, dispatcher, jane_doe):
        first = await dispatcher.dispatch(ToolCall("add_customer_record", jane_doe))
        second = await dispatcher.dispatch(ToolCall("add_customer_record", jane_doe))

        assert first.payload["updated_range"] != second.payload["updated_range"]


class TestBackendFailures:
    @pytest.mark.asyncio
    async def test_timeout_is_retryable_backend_unavailable(self):
        dispatcher = make_dispatcher(
            scheduling=FakeEventCatalog(delay=1.0), timeout_seconds=0.05
        )

        result = await dispatcher.dispatch(ToolCall("list_event_types", {"organization": ORG_URI}))

        assert result.kind == FailureKind.BACKEND_UNAVAILABLE
        assert result.retryable is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, kind, retryable",
        [
            (BackendUnavailableError("connection reset"), FailureKind.BACKEND_UNAVAILABLE, True),
            (AuthFailureError("token expired"), FailureKind.AUTH_FAILURE, False),
            (RateLimitedError("slow down", retry_after=3.0), FailureKind.RATE_LIMITED, True),
            (BackendError("boom"), FailureKind.BACKEND_ERROR, False),
            (httpx.ConnectError("refused"), FailureKind.BACKEND_UNAVAILABLE, True),
            (httpx.ReadTimeout("slow"), FailureKind.BACKEND_UNAVAILABLE, True),
            (RuntimeError("unexpected"), FailureKind.BACKEND_ERROR, False),
        ],
    )
    async def test_adapter_errors_are_classified(self, error, kind, retryable):
        dispatcher = make_dispatcher(scheduling=FakeEventCatalog(error=error))

        result = await dispatcher.dispatch(ToolCall("get_current_user", {}))

        assert isinstance(result, Failure)
        assert result.kind == kind
        assert result.retryable is retryable

    @pytest.mark.asyncio
    async def test_rate_limit_carries_retry_after(self):
        dispatcher = make_dispatcher(
            scheduling=FakeEventCatalog(error=RateLimitedError("throttled", retry_after=12.0))
        )

        result = await dispatcher.dispatch(ToolCall("list_event_types", {"organization": ORG_URI}))

        assert result.kind == FailureKind.RATE_LIMITED
        assert result.retry_after == 12.0

    @pytest.mark.asyncio
    async def test_http_status_error_from_adapter_is_mapped(self):
        request = httpx.Request("GET", "https://calendly.test/users/me")
        response = httpx.Response(403, json={"title": "Permission Denied"}, request=request)
        error = httpx.HTTPStatusError("forbidden", request=request, response=response)
        dispatcher = make_dispatcher(scheduling=FakeEventCatalog(error=error))

        result = await dispatcher.dispatch(ToolCall("get_current_user", {}))

        assert result.kind == FailureKind.AUTH_FAILURE

    @pytest.mark.asyncio
    async def test_calendly_401_is_auth_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                401,
                json={"title": "Unauthenticated", "message": "The access token is invalid"},
            )

        dispatcher = make_dispatcher(scheduling=make_calendly_adapter(handler))

        result = await dispatcher.dispatch(
            ToolCall("list_event_types", {"organization": ORG_URI})
        )

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.AUTH_FAILURE
        assert result.retryable is False

    @pytest.mark.asyncio
    async def test_credentials_are_scrubbed_from_backend_messages(self):
        def handler(request: httpx.Request) -> httpx.Response:
            echoed = request.headers["Authorization"].removeprefix("Bearer ")
            return httpx.Response(
                400,
                json={"title": "Invalid Argument", "message": f"token {echoed} not allowed here"},
            )

        dispatcher = make_dispatcher(scheduling=make_calendly_adapter(handler))

        result = await dispatcher.dispatch(
            ToolCall("list_event_types", {"organization": ORG_URI})
        )

        assert result.kind == FailureKind.BACKEND_ERROR
        assert CALENDLY_TOKEN not in result.message
        assert "Invalid Argument" in result.message

    @pytest.mark.asyncio
    async def test_unexpected_exception_text_is_scrubbed(self):
        token = CredentialDescriptor.from_secret(CALENDLY_TOKEN, source_label="test")
        dispatcher = make_dispatcher(
            scheduling=FakeEventCatalog(error=RuntimeError(f"leaked {CALENDLY_TOKEN}")),
            credentials=[token],
        )

        result = await dispatcher.dispatch(
            ToolCall("list_event_types", {"organization": ORG_URI})
        )

        assert result.kind == FailureKind.BACKEND_ERROR
        assert CALENDLY_TOKEN not in result.message
        assert token.masked in result.message
