"""Audit record builder: turns observed exchanges and explicit entity updates into immutable records. No FastAPI."""

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, Set, Union
from urllib.parse import parse_qsl

from app.audit.audit_models import (
    ANONYMOUS,
    ANONYMOUS_ACTOR_NAME,
    Actor,
    AuditRecord,
    EntityType,
    ExchangeSnapshot,
)
from app.audit.audit_repository import AuditRepository
from app.audit.classifier import classify_action, classify_entity_type, normalize_route_template
from app.audit.diff import calculate_changes, serialize_changes
from app.audit.entity_names import extract_entity_name, extract_error_message, parse_body
from app.audit.exceptions import ParseError, StorageError
from app.audit.sanitizer import sanitize_payload
from app.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _json_safe(value: Any) -> Any:
    """Copy of value that the JSON columns accept (datetimes, UUIDs, ... become strings)."""
    return json.loads(json.dumps(value, default=str))


def _request_payload(snapshot: ExchangeSnapshot) -> Any:
    """Structured view of the inbound body: JSON or form fields. Anything else -> None."""
    if not snapshot.request_body:
        return None
    content_type = (snapshot.request_content_type or "").split(";")[0].strip().lower()
    if content_type == FORM_CONTENT_TYPE:
        try:
            return dict(parse_qsl(snapshot.request_body.decode("utf-8"), keep_blank_values=True))
        except UnicodeDecodeError:
            return None
    try:
        return parse_body(snapshot.request_body)
    except ParseError:
        return None


def _entity_id(path_params: Mapping[str, Any]) -> Optional[str]:
    """`id` path parameter, else the only `*id` parameter, else None."""
    if path_params.get("id") is not None:
        return str(path_params["id"])
    candidates = [v for k, v in path_params.items() if k.lower().endswith("id") and v is not None]
    if len(candidates) == 1:
        return str(candidates[0])
    return None


class AuditLogger:
    """
    Builds audit records and writes them via repository.
    Generic path: one record per finished HTTP exchange, scheduled in the background.
    Explicit path: one record per non-empty diff supplied by business logic.
    Failures are logged and swallowed; callers never see them.
    """

    def __init__(
        self,
        repository: AuditRepository,
        *,
        path_prefix: str = "",
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._repository = repository
        self._path_prefix = path_prefix
        self._metrics = metrics or MetricsCollector()
        self._pending: Set[asyncio.Task] = set()

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Generic path
    # ------------------------------------------------------------------

    def build_exchange_record(self, snapshot: ExchangeSnapshot, actor: Optional[Actor] = None) -> AuditRecord:
        """Assemble the record for one exchange. Pure: no I/O."""
        actor = actor or ANONYMOUS
        template = normalize_route_template(snapshot.route_template, self._path_prefix)
        success = snapshot.status_code < 400
        return AuditRecord(
            actor_id=actor.id,
            actor_name=actor.name or (ANONYMOUS_ACTOR_NAME if actor.is_anonymous else None),
            actor_role=actor.role,
            action=classify_action(snapshot.method, template),
            entity_type=classify_entity_type(snapshot.path),
            entity_id=_entity_id(snapshot.path_params),
            entity_name=extract_entity_name(snapshot.path, snapshot.response_body),
            method=snapshot.method,
            url=snapshot.url,
            client_address=snapshot.client_address,
            client_agent=snapshot.client_agent,
            success=success,
            error_message=None if success else extract_error_message(snapshot.response_body),
            duration_ms=max(0, int(snapshot.duration_ms)),
            metadata=_json_safe(
                {
                    "request_body": sanitize_payload(_request_payload(snapshot)),
                    "query_params": dict(snapshot.query_params),
                    "response_status_code": snapshot.status_code,
                    "response_size": len(snapshot.response_body),
                }
            ),
        )

    async def record_exchange(self, snapshot: ExchangeSnapshot, actor: Optional[Actor] = None) -> Optional[AuditRecord]:
        """Build and persist the record for one exchange. Returns None if anything failed."""
        self._metrics.observe_latency(
            "audited_request_duration_ms", snapshot.duration_ms, method=snapshot.method
        )
        try:
            record = self.build_exchange_record(snapshot, actor)
        except Exception:
            logger.exception(
                "audit_record_build_failed",
                extra={"method": snapshot.method, "path": snapshot.path},
            )
            self._metrics.increment("audit_records_failed")
            return None
        return await self._persist(record)

    def submit_exchange(self, snapshot: ExchangeSnapshot, actor: Optional[Actor] = None) -> "asyncio.Task[Optional[AuditRecord]]":
        """Schedule record_exchange as a detached task; the caller does not wait for it."""
        task = asyncio.get_running_loop().create_task(self.record_exchange(snapshot, actor))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled write to finish (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Explicit path
    # ------------------------------------------------------------------

    async def log_changes(
        self,
        *,
        actor_id: Optional[str],
        entity_type: Union[EntityType, str],
        entity_id: Optional[str],
        old_values: Mapping[str, Any],
        new_values: Mapping[str, Any],
        action: str = "UPDATE",
        actor_name: Optional[str] = None,
        actor_role: Optional[str] = None,
        entity_name: Optional[str] = None,
    ) -> Optional[AuditRecord]:
        """
        Record the field-level diff between two snapshots of one entity.
        Returns None without writing when nothing changed or when the write failed.
        """
        try:
            changes = calculate_changes(old_values, new_values)
            if not changes:
                self._metrics.increment(
                    "audit_changes_skipped", entity_type=EntityType(entity_type).value
                )
                logger.debug(
                    "audit_changes_empty",
                    extra={"entity_type": str(entity_type), "entity_id": entity_id},
                )
                return None
            record = AuditRecord(
                actor_id=actor_id,
                actor_name=actor_name,
                actor_role=actor_role,
                action=action,
                entity_type=EntityType(entity_type),
                entity_id=str(entity_id) if entity_id is not None else None,
                entity_name=entity_name,
                success=True,
                old_values=_json_safe(dict(old_values or {})),
                new_values=_json_safe(dict(new_values or {})),
                changes=_json_safe(serialize_changes(changes)),
            )
        except Exception:
            logger.exception(
                "audit_changes_build_failed",
                extra={"entity_type": str(entity_type), "entity_id": entity_id},
            )
            self._metrics.increment("audit_records_failed")
            return None
        return await self._persist(record)

    # ------------------------------------------------------------------

    async def _persist(self, record: AuditRecord) -> Optional[AuditRecord]:
        entity_type = record.entity_type.value
        try:
            stored = await self._repository.create(record)
        except StorageError as e:
            logger.error(
                "audit_record_write_failed",
                exc_info=True,
                extra={"audit_id": record.id, "action": record.action, "error": e.message},
            )
            self._metrics.increment("audit_records_failed", entity_type=entity_type)
            return None
        except Exception as e:
            logger.exception(
                "audit_record_write_failed",
                extra={"audit_id": record.id, "action": record.action, "error": str(e)},
            )
            self._metrics.increment("audit_records_failed", entity_type=entity_type)
            return None
        self._metrics.increment("audit_records_written", entity_type=entity_type)
        logger.debug(
            "audit_record_written",
            extra={"audit_id": record.id, "action": record.action, "entity_type": entity_type},
        )
        return stored
