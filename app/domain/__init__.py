"""Domain layer: API schemas for audit records. No DB or infrastructure."""

from app.domain.schemas import AuditLogPage, AuditLogResponse

__all__ = [
    "AuditLogPage",
    "AuditLogResponse",
]
