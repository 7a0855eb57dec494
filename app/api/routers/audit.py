"""Audit API router (read-only): logs, single record, user activity, entity activity."""

import math
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.api.dependencies import get_audit_repository
from app.audit.audit_models import EntityType
from app.audit.audit_repository import AuditPage, AuditQuery, AuditQueryRepository
from app.config.settings import get_settings
from app.domain.schemas.audit import AuditLogPage, AuditLogResponse

router = APIRouter()

_settings = get_settings()

Page = Annotated[int, Query(ge=1)]
Limit = Annotated[int, Query(ge=1, le=_settings.audit_page_size_max)]
Repository = Annotated[AuditQueryRepository, Depends(get_audit_repository)]


async def _page(repository: AuditQueryRepository, query: AuditQuery, page: int, limit: int) -> AuditLogPage:
    result: AuditPage = await repository.list(query, offset=(page - 1) * limit, limit=limit)
    return AuditLogPage(
        logs=[AuditLogResponse.from_record(r) for r in result.records],
        total=result.total,
        page=page,
        total_pages=math.ceil(result.total / limit) if result.total else 0,
    )


@router.get("/logs", response_model=AuditLogPage)
async def list_audit_logs(
    repository: Repository,
    page: Page = 1,
    limit: Limit = _settings.audit_page_size_default,
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    entity_type: Optional[EntityType] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
):
    """List audit records, newest first, with optional filters."""
    query = AuditQuery(
        actor_id=user_id or None,
        action=action or None,
        entity_type=entity_type,
        date_from=date_from,
        date_to=date_to,
    )
    return await _page(repository, query, page, limit)


@router.get("/logs/{record_id}", response_model=AuditLogResponse)
async def get_audit_log(record_id: str, repository: Repository):
    """Get one audit record by ID."""
    record = await repository.get(record_id)
    if record is None:
        return JSONResponse(status_code=404, content={"detail": "Audit record not found"})
    return AuditLogResponse.from_record(record)


@router.get("/user-activity/{user_id}", response_model=AuditLogPage)
async def user_activity(
    user_id: str,
    repository: Repository,
    page: Page = 1,
    limit: Limit = _settings.audit_page_size_default,
):
    """Everything one actor did, newest first."""
    return await _page(repository, AuditQuery(actor_id=user_id), page, limit)


@router.get("/entity-activity/{entity_type}/{entity_id}", response_model=AuditLogPage)
async def entity_activity(
    entity_type: EntityType,
    entity_id: str,
    repository: Repository,
    page: Page = 1,
    limit: Limit = _settings.audit_page_size_default,
):
    """Everything that happened to one entity, newest first."""
    query = AuditQuery(entity_type=entity_type, entity_id=entity_id)
    return await _page(repository, query, page, limit)
