# app/infrastructure/database/models.py

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from app.infrastructure.database.session import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class AuditLog(Base):
    """ORM model for audit records. Append-only: rows are inserted, never updated."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id = Column(String(36), primary_key=True)

    actor_id = Column(Text, nullable=True, index=True)
    actor_name = Column(Text, nullable=True)
    actor_role = Column(Text, nullable=True)

    action = Column(String(64), nullable=False, index=True)
    entity_type = Column(String(16), nullable=False)
    entity_id = Column(Text, nullable=True)
    entity_name = Column(Text, nullable=True)

    method = Column(String(16), nullable=True)
    url = Column(Text, nullable=True)
    client_address = Column(String(64), nullable=True)
    client_agent = Column(Text, nullable=True)

    success = Column(Boolean, nullable=False, default=True, index=True)
    error_message = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=True)

    old_values = Column(JSONType, nullable=True)
    new_values = Column(JSONType, nullable=True)
    changes = Column(JSONType, nullable=True)
    metadata_ = Column("metadata", JSONType, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
