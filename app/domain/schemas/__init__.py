"""Domain schemas. Audit read API responses."""

from app.domain.schemas.audit import AuditLogPage, AuditLogResponse

__all__ = [
    "AuditLogPage",
    "AuditLogResponse",
]
