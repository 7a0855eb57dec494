"""DB-backed audit repository. Persists audit records to the audit_logs table."""

from datetime import timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.audit.audit_models import AuditRecord, EntityType
from app.audit.audit_repository import AuditPage, AuditQuery
from app.audit.exceptions import StorageError
from app.infrastructure.database.models import AuditLog


def _to_orm(record: AuditRecord) -> AuditLog:
    return AuditLog(
        id=record.id,
        actor_id=record.actor_id,
        actor_name=record.actor_name,
        actor_role=record.actor_role,
        action=record.action,
        entity_type=record.entity_type.value,
        entity_id=record.entity_id,
        entity_name=record.entity_name,
        method=record.method,
        url=record.url,
        client_address=record.client_address,
        client_agent=record.client_agent,
        success=record.success,
        error_message=record.error_message,
        duration_ms=record.duration_ms,
        old_values=record.old_values,
        new_values=record.new_values,
        changes=record.changes,
        metadata_=record.metadata,
        created_at=record.created_at,
    )


def _to_record(orm: AuditLog) -> AuditRecord:
    created_at = orm.created_at
    if created_at is not None and created_at.tzinfo is None:
        # SQLite drops the offset; values are always written in UTC.
        created_at = created_at.replace(tzinfo=timezone.utc)
    return AuditRecord(
        id=orm.id,
        actor_id=orm.actor_id,
        actor_name=orm.actor_name,
        actor_role=orm.actor_role,
        action=orm.action,
        entity_type=EntityType(orm.entity_type),
        entity_id=orm.entity_id,
        entity_name=orm.entity_name,
        method=orm.method,
        url=orm.url,
        client_address=orm.client_address,
        client_agent=orm.client_agent,
        success=orm.success,
        error_message=orm.error_message,
        duration_ms=orm.duration_ms,
        old_values=orm.old_values,
        new_values=orm.new_values,
        changes=orm.changes,
        metadata=orm.metadata_ or {},
        created_at=created_at,
    )


def _conditions(query: AuditQuery) -> list:
    conditions = []
    if query.actor_id:
        conditions.append(AuditLog.actor_id == query.actor_id)
    if query.action:
        conditions.append(AuditLog.action == query.action)
    if query.entity_type:
        conditions.append(AuditLog.entity_type == EntityType(query.entity_type).value)
    if query.entity_id:
        conditions.append(AuditLog.entity_id == query.entity_id)
    if query.date_from:
        conditions.append(AuditLog.created_at >= query.date_from)
    if query.date_to:
        conditions.append(AuditLog.created_at <= query.date_to)
    return conditions


class DbAuditRepository:
    """
    Persists audit records with SQLAlchemy. Implements AuditQueryRepository.
    Opens a session per call: writes run in background tasks, detached from any request session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(self, record: AuditRecord) -> AuditRecord:
        """Insert one row. SQLAlchemy failures surface as StorageError."""
        try:
            async with self._session_factory() as session:
                session.add(_to_orm(record))
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Could not persist audit record {record.id}: {e}") from e
        return record

    async def get(self, record_id: str) -> Optional[AuditRecord]:
        try:
            async with self._session_factory() as session:
                orm = await session.get(AuditLog, record_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not read audit record {record_id}: {e}") from e
        return _to_record(orm) if orm is not None else None

    async def list(self, query: AuditQuery, *, offset: int = 0, limit: int = 50) -> AuditPage:
        conditions = _conditions(query)
        count_stmt = select(func.count()).select_from(AuditLog).where(*conditions)
        rows_stmt = (
            select(AuditLog)
            .where(*conditions)
            .order_by(AuditLog.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        try:
            async with self._session_factory() as session:
                total = (await session.execute(count_stmt)).scalar_one()
                rows = (await session.execute(rows_stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"Could not query audit records: {e}") from e
        return AuditPage(records=[_to_record(r) for r in rows], total=total)
