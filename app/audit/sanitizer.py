"""Redact known-sensitive fields from request payloads before they are stored."""

from collections.abc import Mapping
from typing import Any

# Flat denylist. Nested objects are copied by reference and are not scanned.
SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "currentPassword",
        "newPassword",
        "confirmPassword",
        "token",
    }
)


def sanitize_payload(payload: Any) -> Any:
    """Return a shallow copy of a mapping without sensitive keys. Anything else is returned as is."""
    if not isinstance(payload, Mapping):
        return payload
    return {key: value for key, value in payload.items() if key not in SENSITIVE_FIELDS}
