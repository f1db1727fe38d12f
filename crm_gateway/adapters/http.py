"""
HTTP helpers shared by the adapters.

Maps provider responses onto the adapter error taxonomy and keeps credential
values out of every message.
"""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any, Iterable

import httpx

from crm_gateway.security import CredentialDescriptor, scrub_secrets
from crm_gateway.tools.types import (
    AdapterError,
    AuthFailureError,
    BackendError,
    BackendUnavailableError,
    RateLimitedError,
)


_MAX_DETAIL_CHARS = 500


def bearer_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}", "Accept": "application/json"}


def parse_retry_after(value: str | None) -> float | None:
    """
    Parse a Retry-After header: either delay-seconds or an HTTP date.
    Returns seconds from now, or None when absent or unparseable.
    """
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - datetime.now(UTC)).total_seconds())


def _detail(response: httpx.Response) -> str:
    try:
        body: Any = response.json()
    except ValueError:
        return response.text[:_MAX_DETAIL_CHARS].strip()

    # Google: {"error": {"code": 403, "message": "...", "status": "PERMISSION_DENIED"}}
    # Calendly: {"title": "Unauthenticated", "message": "...", "details": [...]}
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        parts = [str(body[k]) for k in ("title", "message") if body.get(k)]
        if parts:
            return ": ".join(parts)
    return str(body)[:_MAX_DETAIL_CHARS]


def error_from_response(
    response: httpx.Response,
    *,
    backend: str,
    credentials: Iterable[CredentialDescriptor] = (),
) -> AdapterError:
    status = response.status_code
    message = scrub_secrets(
        f"{backend} returned HTTP {status}: {_detail(response)}", credentials
    )

    if status in (401, 403):
        return AuthFailureError(message)
    if status == 429:
        return RateLimitedError(
            message, retry_after=parse_retry_after(response.headers.get("Retry-After"))
        )
    if status in (502, 503, 504):
        return BackendUnavailableError(message)
    return BackendError(message)


def raise_for_backend_status(
    response: httpx.Response,
    *,
    backend: str,
    credentials: Iterable[CredentialDescriptor] = (),
) -> None:
    if response.is_success:
        return
    raise error_from_response(response, backend=backend, credentials=credentials)


def transport_error(
    exc: httpx.TransportError,
    *,
    backend: str,
    credentials: Iterable[CredentialDescriptor] = (),
) -> BackendUnavailableError:
    if isinstance(exc, httpx.TimeoutException):
        text = f"{backend} request timed out"
    else:
        text = f"{backend} unreachable: {type(exc).__name__}: {exc}"
    return BackendUnavailableError(scrub_secrets(text, credentials))
