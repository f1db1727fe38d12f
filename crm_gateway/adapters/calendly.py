"""
Calendly adapter: read-only scheduling queries.

Listing drains every page before returning. Page size defaults to the
provider maximum (100) and listing stops with an error after `max_pages`
pages rather than returning a partial sequence.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from crm_gateway.adapters.http import (
    bearer_headers,
    raise_for_backend_status,
    transport_error,
)
from crm_gateway.config.adapters import SchedulingConfig
from crm_gateway.security import CredentialDescriptor
from crm_gateway.tools.schemas import (
    CurrentUserInput,
    EventType,
    EventTypeQuery,
    SchedulingUser,
)
from crm_gateway.tools.types import ArgumentError, AuthFailureError, BackendError


logger = logging.getLogger(__name__)

BACKEND = "Calendly"


def _event_type(item: dict[str, Any]) -> EventType:
    return EventType(
        uri=str(item.get("uri") or ""),
        name=str(item.get("name") or ""),
        slug=item.get("slug"),
        active=bool(item.get("active", True)),
        kind=item.get("kind"),
        duration_minutes=item.get("duration"),
        scheduling_url=item.get("scheduling_url"),
        description=item.get("description_plain"),
    )


class CalendlyAdapter:
    def __init__(
        self,
        config: SchedulingConfig,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url, timeout=timeout_seconds
        )

    @property
    def config(self) -> SchedulingConfig:
        return self._config

    def credentials(self) -> tuple[CredentialDescriptor, ...]:
        return (self._config.api_token,)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---- Operations ----

    async def list_event_types(self, query: EventTypeQuery) -> list[EventType]:
        organization = query.organization or self._config.organization_uri
        if not organization:
            raise ArgumentError(
                "Missing required field 'organization' "
                "(no CALENDLY_ORGANIZATION_URI configured).",
                field="organization",
            )

        params: dict[str, str] | None = {
            "organization": organization,
            "count": str(self._config.page_size),
        }
        if query.active is not None:
            params["active"] = "true" if query.active else "false"

        event_types: list[EventType] = []
        url: str | None = "/event_types"
        pages = 0
        while url:
            if pages >= self._config.max_pages:
                raise BackendError(
                    f"{BACKEND} event type listing exceeded {self._config.max_pages} pages."
                )
            data = await self._get(url, params=params)
            pages += 1

            event_types.extend(
                _event_type(item)
                for item in data.get("collection") or []
                if isinstance(item, dict)
            )
            pagination = data.get("pagination") or {}
            url = pagination.get("next_page") or None
            # The token travels with every page request.
            if url and not self._is_api_url(url):
                raise BackendError(
                    f"{BACKEND} pagination pointed outside {self._config.base_url}; not followed."
                )
            # next_page already carries the query string.
            params = None

        logger.info("Listed %d event types over %d page(s)", len(event_types), pages)
        return event_types

    async def get_current_user(self, query: CurrentUserInput) -> SchedulingUser:
        data = await self._get("/users/me")
        resource = data.get("resource") or {}
        return SchedulingUser(
            uri=str(resource.get("uri") or ""),
            name=str(resource.get("name") or ""),
            email=resource.get("email"),
            organization_uri=resource.get("current_organization"),
            scheduling_url=resource.get("scheduling_url"),
            timezone=resource.get("timezone"),
        )

    # ---- HTTP ----

    def _is_api_url(self, url: str) -> bool:
        base = self._config.base_url.rstrip("/")
        return url == base or url.startswith(base + "/")

    async def _get(self, url: str, *, params: dict[str, str] | None = None) -> dict[str, Any]:
        token = self._config.api_token
        if not token.is_set:
            raise AuthFailureError("No Calendly API token configured (set CALENDLY_API_TOKEN).")

        try:
            response = await self._client.get(
                url, params=params, headers=bearer_headers(token.reveal())
            )
        except httpx.TransportError as e:
            raise transport_error(e, backend=BACKEND, credentials=self.credentials()) from e

        raise_for_backend_status(response, backend=BACKEND, credentials=self.credentials())
        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"{BACKEND} returned a non-JSON response.") from e
        if not isinstance(data, dict):
            raise BackendError(f"{BACKEND} returned an unexpected payload.")
        return data
