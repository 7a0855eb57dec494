"""Audit trail: classification, sanitization, entity labels, diffs and immutable records. No FastAPI."""

from app.audit.audit_logger import AuditLogger
from app.audit.audit_models import ABSENT, Actor, AuditRecord, EntityType, ExchangeSnapshot
from app.audit.classifier import classify_action, classify_entity_type
from app.audit.diff import calculate_changes
from app.audit.entity_names import extract_entity_name
from app.audit.sanitizer import sanitize_payload

__all__ = [
    "ABSENT",
    "Actor",
    "AuditLogger",
    "AuditRecord",
    "EntityType",
    "ExchangeSnapshot",
    "calculate_changes",
    "classify_action",
    "classify_entity_type",
    "extract_entity_name",
    "sanitize_payload",
]
