# app/main.py

import logging
from contextlib import asynccontextmanager

from fastapi.responses import JSONResponse

from app.api.middleware import ActorContextMiddleware, AuditedFastAPI, CorrelationIdMiddleware
from app.api.routers import audit, health
from app.audit.audit_logger import AuditLogger
from app.audit.exceptions import AuditError, StorageError
from app.config.logging import configure_logging
from app.config.settings import get_settings
from app.infrastructure.database.audit_repository_db import DbAuditRepository
from app.infrastructure.database.session import AsyncSessionLocal, close_db, init_db

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: AuditedFastAPI):
    if settings.auto_create_tables:
        await init_db()
    yield
    # Let in-flight audit writes finish before the engine goes away.
    await app.state.audit_logger.drain()
    await close_db()


app = AuditedFastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=lifespan,
    audit_options={
        "path_prefix": settings.audit_path_prefix,
        "excluded_paths": settings.audit_excluded_paths,
        "enabled": settings.audit_enabled,
    },
)

app.state.audit_repository = DbAuditRepository(AsyncSessionLocal)
app.state.audit_logger = AuditLogger(
    app.state.audit_repository,
    path_prefix=settings.audit_path_prefix,
)

# Request flow: AuditInterceptor (wraps the whole stack) -> ServerError -> CorrelationId -> ActorContext.
app.add_middleware(ActorContextMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(StorageError)
async def storage_error_handler(request, exc: StorageError):
    logger.error("audit_storage_unavailable", extra={"error": exc.message})
    return JSONResponse(status_code=503, content={"detail": "Audit storage unavailable"})


@app.exception_handler(AuditError)
async def audit_error_handler(request, exc: AuditError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers: /health, /api/audit
app.include_router(health.router)
app.include_router(audit.router, prefix=f"{settings.audit_path_prefix}/audit", tags=["audit"])
