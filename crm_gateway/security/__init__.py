from crm_gateway.security.credentials import (
    MASK_MARKER,
    CredentialDescriptor,
    mask_secret,
    scrub_secrets,
)

__all__ = ["MASK_MARKER", "CredentialDescriptor", "mask_secret", "scrub_secrets"]
