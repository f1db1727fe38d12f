"""
Credential descriptors and masking.

Rules:
- A raw secret is only ever read through `CredentialDescriptor.reveal()`,
  and only by the adapter that owns it, right before a backend call.
- Everything that can reach a log, a diagnostic block or an error message
  uses the masked form.
- Masking is a pure function so it can be tested on its own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final, Iterable

from pydantic import SecretStr


MASK_MARKER: Final[str] = "********"
MAX_VISIBLE_CHARS: Final[int] = 4

_BEARER_RE = re.compile(r"(?i)\b(bearer\s+)[A-Za-z0-9._~+/=\-]+")


def mask_secret(raw: str, *, keep: int = MAX_VISIBLE_CHARS) -> str:
    """
    Return the display form of a secret.

    At most `keep` characters survive on each side, and never more than a
    quarter of the secret per side. The marker has a fixed length so the
    mask does not leak the secret's length.

    A secret that itself contains runs of "*" can share those runs with the
    marker. Provider tokens (Calendly PATs, Google access tokens) never do.
    """
    if not raw:
        return ""

    visible = min(keep, len(raw) // 4)
    if visible == 0:
        return MASK_MARKER
    return raw[:visible] + MASK_MARKER + raw[-visible:]


@dataclass(frozen=True)
class CredentialDescriptor:
    masked: str
    source_label: str
    _raw: str = field(repr=False, compare=False)

    @classmethod
    def from_secret(
        cls,
        raw: str | SecretStr | None,
        *,
        source_label: str,
    ) -> CredentialDescriptor:
        if isinstance(raw, SecretStr):
            value = raw.get_secret_value()
        else:
            value = raw or ""
        value = value.strip()
        return cls(masked=mask_secret(value), source_label=source_label, _raw=value)

    @property
    def is_set(self) -> bool:
        return bool(self._raw)

    def reveal(self) -> str:
        return self._raw

    def __str__(self) -> str:
        return self.masked


def scrub_secrets(text: str, credentials: Iterable[CredentialDescriptor]) -> str:
    """
    Replace every raw credential value in `text` with its masked form.

    Bearer tokens that are not known credentials are blanked as well, since
    providers sometimes echo the Authorization header back.
    """
    out = text
    # Longest first, so a secret that contains another is replaced whole.
    for cred in sorted(credentials, key=lambda c: len(c.reveal()), reverse=True):
        raw = cred.reveal()
        if raw:
            out = out.replace(raw, cred.masked)
    return _BEARER_RE.sub(lambda m: m.group(1) + MASK_MARKER, out)
