"""Derive an action name and an entity type from method, route template and path. Pure, total."""

import re
from types import MappingProxyType
from typing import Mapping, Tuple

from app.audit.audit_models import EntityType

# Explicit endpoint meanings, keyed by (METHOD, route template relative to the API prefix).
_EXPLICIT_ACTIONS: Mapping[Tuple[str, str], str] = MappingProxyType(
    {
        ("GET", "/auth/login"): "USER_LOGIN",
        ("GET", "/auth/logout"): "USER_LOGOUT",
        ("GET", "/auth/me"): "VIEW_PROFILE",
        ("POST", "/auth/login"): "USER_LOGIN",
        ("POST", "/auth/register"): "USER_REGISTER",
        ("POST", "/vehicles"): "CREATE_VEHICLE",
        ("POST", "/users"): "CREATE_USER",
        ("POST", "/alerts"): "CREATE_ALERT",
        ("PUT", "/vehicles/:id"): "UPDATE_VEHICLE",
        ("PUT", "/users/:id"): "UPDATE_USER",
        ("PUT", "/alerts/:id"): "UPDATE_ALERT",
        ("DELETE", "/vehicles/:id"): "DELETE_VEHICLE",
        ("DELETE", "/users/:id"): "DELETE_USER",
        ("DELETE", "/alerts/:id"): "DELETE_ALERT",
    }
)

_GENERIC_ACTIONS: Mapping[str, str] = MappingProxyType(
    {
        "GET": "VIEW",
        "POST": "CREATE",
        "PUT": "UPDATE",
        "PATCH": "UPDATE",
        "DELETE": "DELETE",
    }
)

UNKNOWN_ACTION = "UNKNOWN"

# First match wins; order matters for paths containing more than one segment name.
_ENTITY_PRECEDENCE: Tuple[Tuple[str, EntityType], ...] = (
    ("/vehicles", EntityType.VEHICLE),
    ("/users", EntityType.USER),
    ("/documents", EntityType.DOCUMENT),
    ("/alerts", EntityType.ALERT),
    ("/auth", EntityType.SYSTEM),
    ("/erp", EntityType.COMPANY),
)

_BRACE_PARAM = re.compile(r"\{([^}:]+)(?::[^}]*)?\}")
_COLON_PARAM = re.compile(r":[^/]+")


def normalize_route_template(template: str, prefix: str = "") -> str:
    """
    Turn a framework route path into the lookup form used by the action table:
    `{vehicle_id}` placeholders become `:vehicle_id`, the API prefix is dropped
    and a trailing slash is removed.
    """
    normalized = _BRACE_PARAM.sub(lambda m: f":{m.group(1)}", template or "")
    prefix = prefix.rstrip("/")
    if prefix and (normalized == prefix or normalized.startswith(prefix + "/")):
        normalized = normalized[len(prefix):]
    if len(normalized) > 1:
        normalized = normalized.rstrip("/")
    return normalized or "/"


def classify_action(method: str, route_template: str) -> str:
    """
    Explicit table first, then the generic per-verb action, then UNKNOWN.
    `/vehicles/:vehicle_id` matches the `/vehicles/:id` rule: parameter names are not significant.
    """
    verb = (method or "").upper()
    explicit = _EXPLICIT_ACTIONS.get((verb, route_template))
    if explicit is None and route_template:
        explicit = _EXPLICIT_ACTIONS.get((verb, _COLON_PARAM.sub(":id", route_template)))
    if explicit is not None:
        return explicit
    return _GENERIC_ACTIONS.get(verb, UNKNOWN_ACTION)


def classify_entity_type(path: str) -> EntityType:
    """Scan the literal request path for known segments. Unmatched -> SYSTEM."""
    for needle, entity_type in _ENTITY_PRECEDENCE:
        if needle in (path or ""):
            return entity_type
    return EntityType.SYSTEM
