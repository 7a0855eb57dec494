"""Immutable audit record model and the value types the audit layer passes around."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

ANONYMOUS_ACTOR_NAME = "Anonymous"


class EntityType(str, Enum):
    """Coarse category of the business object an audited operation touched."""

    VEHICLE = "vehicle"
    USER = "user"
    DOCUMENT = "document"
    ALERT = "alert"
    COMPANY = "company"
    SYSTEM = "system"


class _Absent:
    """Marker for a field that no longer exists in the new snapshot."""

    _instance: Optional["_Absent"] = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<absent>"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Absent, ())


ABSENT = _Absent()


@dataclass(frozen=True)
class Actor:
    """Identity of the requester as supplied by the authentication layer."""

    id: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.id is None


ANONYMOUS = Actor()


@dataclass(frozen=True)
class FieldChange:
    """One field-level difference between two entity snapshots."""

    old: Any
    new: Any


@dataclass(frozen=True)
class ExchangeSnapshot:
    """
    Everything observed about one finished request/response exchange.
    Built by the interceptor after the last body chunk has been sent.
    """

    method: str
    path: str
    url: str
    route_template: str
    status_code: int
    duration_ms: int
    path_params: Mapping[str, Any] = field(default_factory=dict)
    query_params: Mapping[str, Any] = field(default_factory=dict)
    client_address: Optional[str] = None
    client_agent: Optional[str] = None
    request_body: bytes = b""
    request_content_type: Optional[str] = None
    response_body: bytes = b""
    response_content_type: Optional[str] = None


@dataclass(frozen=True)
class AuditRecord:
    """
    Immutable audit record: who, what, on which entity, with which outcome, when (UTC).
    Created once per audited operation and never updated.
    """

    action: str
    entity_type: EntityType
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    actor_role: Optional[str] = None
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    method: Optional[str] = None
    url: Optional[str] = None
    client_address: Optional[str] = None
    client_agent: Optional[str] = None
    success: bool = True
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    changes: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for JSON logging and API responses."""
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "actor_role": self.actor_role,
            "action": self.action,
            "entity_type": self.entity_type.value,
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "method": self.method,
            "url": self.url,
            "client_address": self.client_address,
            "client_agent": self.client_agent,
            "success": self.success,
            "error_message": self.error_message,
            "duration_ms": self.duration_ms,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "changes": self.changes,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }
