"""Pydantic schemas for the audit read API. No DB or infrastructure."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from app.audit.audit_models import AuditRecord, EntityType


class AuditLogResponse(BaseModel):
    """One stored audit record."""

    id: str
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    actor_role: Optional[str] = None
    action: str
    entity_type: EntityType
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    method: Optional[str] = None
    url: Optional[str] = None
    client_address: Optional[str] = None
    client_agent: Optional[str] = None
    success: bool
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    changes: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = {}
    created_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditLogResponse":
        return cls.model_validate(record)


class AuditLogPage(BaseModel):
    """Paginated list of audit records, newest first."""

    logs: List[AuditLogResponse]
    total: int
    page: int
    total_pages: int
