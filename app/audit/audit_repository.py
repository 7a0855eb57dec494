"""Audit storage protocols. The audit layer depends on these; infrastructure implements them."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from app.audit.audit_models import AuditRecord, EntityType


@dataclass(frozen=True)
class AuditQuery:
    """Filters for reading audit records back. None means 'any'."""

    actor_id: Optional[str] = None
    action: Optional[str] = None
    entity_type: Optional[EntityType] = None
    entity_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    def __post_init__(self) -> None:
        # Offset-less bounds (e.g. `?date_from=2024-01-01`) are read as UTC.
        for name in ("date_from", "date_to"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=timezone.utc))


@dataclass(frozen=True)
class AuditPage:
    """One page of records, newest first, plus the total matching count."""

    records: List[AuditRecord] = field(default_factory=list)
    total: int = 0


class AuditRepository(Protocol):
    """Write side. Append-only: records are created, never updated or deleted."""

    async def create(self, record: AuditRecord) -> AuditRecord:
        """Persist the record and return it. Raises StorageError on failure."""
        ...


class AuditQueryRepository(AuditRepository, Protocol):
    """Read side used by the audit API."""

    async def get(self, record_id: str) -> Optional[AuditRecord]:
        """Return the record with this id, or None."""
        ...

    async def list(self, query: AuditQuery, *, offset: int = 0, limit: int = 50) -> AuditPage:
        """Return records matching query ordered by created_at descending."""
        ...
