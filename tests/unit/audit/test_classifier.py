"""Classifier tests: explicit action table, per-verb fallback, entity type precedence."""

import pytest

from app.audit.audit_models import EntityType
from app.audit.classifier import classify_action, classify_entity_type, normalize_route_template


@pytest.mark.parametrize(
    "method,template,expected",
    [
        ("GET", "/auth/login", "USER_LOGIN"),
        ("GET", "/auth/logout", "USER_LOGOUT"),
        ("GET", "/auth/me", "VIEW_PROFILE"),
        ("POST", "/auth/login", "USER_LOGIN"),
        ("POST", "/auth/register", "USER_REGISTER"),
        ("POST", "/vehicles", "CREATE_VEHICLE"),
        ("POST", "/users", "CREATE_USER"),
        ("POST", "/alerts", "CREATE_ALERT"),
        ("PUT", "/vehicles/:id", "UPDATE_VEHICLE"),
        ("PUT", "/users/:id", "UPDATE_USER"),
        ("PUT", "/alerts/:id", "UPDATE_ALERT"),
        ("DELETE", "/vehicles/:id", "DELETE_VEHICLE"),
        ("DELETE", "/users/:id", "DELETE_USER"),
        ("DELETE", "/alerts/:id", "DELETE_ALERT"),
    ],
)
def test_explicit_actions(method, template, expected):
    assert classify_action(method, template) == expected


@pytest.mark.parametrize(
    "method,expected",
    [("GET", "VIEW"), ("POST", "CREATE"), ("PUT", "UPDATE"), ("PATCH", "UPDATE"), ("DELETE", "DELETE")],
)
def test_generic_fallback_for_unlisted_routes(method, expected):
    assert classify_action(method, "/documents/:id/attachments") == expected


def test_get_on_parameterized_vehicle_path_is_view():
    """No explicit rule for GET /vehicles/:id."""
    assert classify_action("GET", "/vehicles/:id") == "VIEW"


def test_unknown_method():
    assert classify_action("OPTIONS", "/vehicles") == "UNKNOWN"
    assert classify_action("", "/vehicles") == "UNKNOWN"


def test_method_is_case_insensitive():
    assert classify_action("post", "/vehicles") == "CREATE_VEHICLE"


def test_parameter_name_does_not_matter():
    assert classify_action("PUT", "/vehicles/:vehicle_id") == "UPDATE_VEHICLE"


def test_literal_ids_do_not_match_templates():
    """Templates carry placeholders; a literal path only gets the generic action."""
    assert classify_action("PUT", "/vehicles/3f2a") == "UPDATE"


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/api/vehicles/12", EntityType.VEHICLE),
        ("/api/users", EntityType.USER),
        ("/api/documents/7", EntityType.DOCUMENT),
        ("/api/alerts", EntityType.ALERT),
        ("/api/auth/login", EntityType.SYSTEM),
        ("/api/erp/companies", EntityType.COMPANY),
        ("/api/dashboard", EntityType.SYSTEM),
        ("", EntityType.SYSTEM),
    ],
)
def test_entity_type(path, expected):
    assert classify_entity_type(path) == expected


def test_entity_type_precedence_first_match_wins():
    assert classify_entity_type("/api/erp/documents") == EntityType.DOCUMENT
    assert classify_entity_type("/api/users/1/vehicles") == EntityType.VEHICLE
    assert classify_entity_type("/api/alerts/auth") == EntityType.ALERT


def test_normalize_route_template():
    assert normalize_route_template("/api/vehicles/{id}", "/api") == "/vehicles/:id"
    assert normalize_route_template("/api/vehicles/{id:int}", "/api") == "/vehicles/:id"
    assert normalize_route_template("/api/vehicles/", "/api") == "/vehicles"
    assert normalize_route_template("/api", "/api") == "/"
    assert normalize_route_template("/apiary/x", "/api") == "/apiary/x"
    assert normalize_route_template("/vehicles/{vehicle_id}") == "/vehicles/:vehicle_id"
