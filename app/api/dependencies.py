"""FastAPI dependency injection: audit repository, audit logger, actor, correlation_id."""

from fastapi import Request

from app.audit.audit_logger import AuditLogger
from app.audit.audit_models import ANONYMOUS, Actor
from app.audit.audit_repository import AuditQueryRepository


def get_audit_repository(request: Request) -> AuditQueryRepository:
    """Return the audit repository shared with the interceptor (app.state)."""
    return request.app.state.audit_repository


def get_audit_logger(request: Request) -> AuditLogger:
    """Return the AuditLogger shared with the interceptor; business logic uses it for log_changes."""
    return request.app.state.audit_logger


def get_actor(request: Request) -> Actor:
    """Extract actor from request.state (set by middleware). Anonymous when absent."""
    actor = getattr(request.state, "actor", None)
    return actor if isinstance(actor, Actor) else ANONYMOUS


def get_correlation_id(request: Request) -> str:
    """Extract correlation_id from request.state (set by middleware)."""
    return getattr(request.state, "correlation_id", "") or ""
