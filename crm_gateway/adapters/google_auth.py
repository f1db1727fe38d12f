"""
Google service-account access tokens for the Sheets adapter.

google-auth is synchronous, so loading and refreshing run in a worker thread
to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol

import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from crm_gateway.security import CredentialDescriptor
from crm_gateway.tools.types import AuthFailureError, BackendUnavailableError


logger = logging.getLogger(__name__)

SHEETS_SCOPES: tuple[str, ...] = ("https://www.googleapis.com/auth/spreadsheets",)


class AccessTokenProvider(Protocol):
    async def token(self) -> str: ...

    def credentials(self) -> tuple[CredentialDescriptor, ...]: ...


class ServiceAccountTokenProvider:
    def __init__(
        self,
        credentials_path: Path | None,
        *,
        scopes: tuple[str, ...] = SHEETS_SCOPES,
    ) -> None:
        self._path = credentials_path
        self._scopes = scopes
        self._creds: service_account.Credentials | None = None
        self._current: CredentialDescriptor | None = None
        self._lock = asyncio.Lock()

    def credentials(self) -> tuple[CredentialDescriptor, ...]:
        return (self._current,) if self._current else ()

    async def token(self) -> str:
        async with self._lock:
            if self._creds is None:
                self._creds = await asyncio.to_thread(self._load)
            if not self._creds.valid:
                await asyncio.to_thread(self._refresh, self._creds)
                logger.info("Refreshed Google access token (expires %s)", self._creds.expiry)
            token = str(self._creds.token)
            self._current = CredentialDescriptor.from_secret(
                token, source_label="google:service-account"
            )
            return token

    def _load(self) -> service_account.Credentials:
        if self._path is None:
            raise AuthFailureError(
                "No service-account credentials configured "
                "(set GOOGLE_APPLICATION_CREDENTIALS)."
            )
        try:
            return service_account.Credentials.from_service_account_file(
                str(self._path), scopes=list(self._scopes)
            )
        except (OSError, ValueError) as e:
            raise AuthFailureError(
                f"Could not load service-account credentials from {self._path}: "
                f"{type(e).__name__}"
            ) from e

    @staticmethod
    def _refresh(creds: service_account.Credentials) -> None:
        try:
            creds.refresh(Request())
        except google.auth.exceptions.RefreshError as e:
            raise AuthFailureError(f"Google token refresh rejected: {e}") from e
        except google.auth.exceptions.TransportError as e:
            raise BackendUnavailableError(
                f"Google token endpoint unreachable: {type(e).__name__}"
            ) from e
