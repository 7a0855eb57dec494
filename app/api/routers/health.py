# app/api/routers/health.py

from fastapi import APIRouter, Depends, Request

from app.api.dependencies import get_correlation_id
from app.config.settings import get_settings

router = APIRouter()


@router.get("/health")
async def health(request: Request, correlation_id: str = Depends(get_correlation_id)):
    """Health check with correlation ID and pending audit writes."""
    settings = get_settings()
    audit_logger = getattr(request.app.state, "audit_logger", None)
    return {
        "status": "ok",
        "correlation_id": correlation_id,
        "environment": settings.environment,
        "version": settings.version,
        "audit_pending": audit_logger.pending_count if audit_logger else 0,
    }
