"""Best-effort extraction of labels from response payloads. Nothing here raises."""

import json
from collections.abc import Mapping
from typing import Any, Callable, Optional, Tuple

from app.audit.exceptions import ParseError

UNKNOWN_ERROR = "Unknown error"


def parse_body(body: Any) -> Any:
    """Decode a raw (bytes/str) JSON body. Structured values pass through. Raises ParseError."""
    if isinstance(body, (bytes, bytearray)):
        try:
            body = bytes(body).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Body is not UTF-8: {e}") from e
    if isinstance(body, str):
        try:
            return json.loads(body)
        except ValueError as e:
            raise ParseError(f"Body is not JSON: {e}") from e
    return body


def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _join(*values: Any) -> Optional[str]:
    parts = [t for t in (_text(v) for v in values) if t]
    return " ".join(parts) or None


def _vehicle_label(vehicle: Mapping) -> Optional[str]:
    base = _join(vehicle.get("brand"), vehicle.get("model"))
    plate = _text(vehicle.get("licensePlate"))
    if base and plate:
        return f"{base} ({plate})"
    return base or plate


def _user_label(user: Mapping) -> Optional[str]:
    return _join(
        user.get("firstName"),
        user.get("secondName"),
        user.get("lastName"),
        user.get("secondLastName"),
    )


def _document_label(document: Mapping) -> Optional[str]:
    return _text(document.get("name")) or _text(document.get("title"))


def _alert_label(alert: Mapping) -> Optional[str]:
    return _text(alert.get("title"))


# (path segment, response key, label builder); checked in order, first label wins.
_LABELERS: Tuple[Tuple[str, str, Callable[[Mapping], Optional[str]]], ...] = (
    ("/vehicles", "vehicle", _vehicle_label),
    ("/users", "user", _user_label),
    ("/documents", "document", _document_label),
    ("/alerts", "alert", _alert_label),
)


def extract_entity_name(path: str, body: Any) -> Optional[str]:
    """Human-readable label for the entity in the response, e.g. 'Fiat Ducato (B-456-DE)'."""
    try:
        body = parse_body(body)
    except ParseError:
        return None
    if not isinstance(body, Mapping) or not isinstance(path, str):
        return None
    for segment, key, labeler in _LABELERS:
        if segment not in path:
            continue
        entity = body.get(key)
        if isinstance(entity, Mapping):
            label = labeler(entity)
            if label:
                return label
    return None


def extract_error_message(body: Any) -> str:
    """Message for a failed outcome: `message`, `error`, then FastAPI's `detail`."""
    try:
        body = parse_body(body)
    except ParseError:
        return UNKNOWN_ERROR
    if not isinstance(body, Mapping):
        return UNKNOWN_ERROR
    for key in ("message", "error", "detail"):
        value = body.get(key)
        if value is None or value == "":
            continue
        if isinstance(value, str):
            return value
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError):
            return str(value)
    return UNKNOWN_ERROR
