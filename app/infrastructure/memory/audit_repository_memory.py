"""In-memory audit repository for development and tests. Data is lost on restart."""

import asyncio
from typing import Dict, List, Optional

from app.audit.audit_models import AuditRecord, EntityType
from app.audit.audit_repository import AuditPage, AuditQuery


def _matches(record: AuditRecord, query: AuditQuery) -> bool:
    if query.actor_id and record.actor_id != query.actor_id:
        return False
    if query.action and record.action != query.action:
        return False
    if query.entity_type and record.entity_type != EntityType(query.entity_type):
        return False
    if query.entity_id and record.entity_id != query.entity_id:
        return False
    if query.date_from and record.created_at < query.date_from:
        return False
    if query.date_to and record.created_at > query.date_to:
        return False
    return True


class InMemoryAuditRepository:
    """Append-only list of records guarded by an asyncio lock. Implements AuditQueryRepository."""

    def __init__(self) -> None:
        self._records: Dict[str, AuditRecord] = {}
        self._order: List[str] = []
        self._lock = asyncio.Lock()

    @property
    def records(self) -> List[AuditRecord]:
        """All records in insertion order."""
        return [self._records[record_id] for record_id in self._order]

    async def create(self, record: AuditRecord) -> AuditRecord:
        async with self._lock:
            self._records[record.id] = record
            self._order.append(record.id)
        return record

    async def get(self, record_id: str) -> Optional[AuditRecord]:
        return self._records.get(record_id)

    async def list(self, query: AuditQuery, *, offset: int = 0, limit: int = 50) -> AuditPage:
        matching = [r for r in self.records if _matches(r, query)]
        matching.sort(key=lambda r: r.created_at, reverse=True)
        return AuditPage(records=matching[offset : offset + limit], total=len(matching))
