"""Fixtures for API unit tests: in-memory audit storage, a fleet app with business routes, AsyncClient."""

import asyncio

import pytest
from fastapi import APIRouter, Body, Depends, FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_actor, get_audit_logger
from app.api.middleware import ActorContextMiddleware, AuditedFastAPI, CorrelationIdMiddleware
from app.audit.audit_logger import AuditLogger
from app.audit.audit_models import Actor, EntityType
from app.infrastructure.memory.audit_repository_memory import InMemoryAuditRepository
from app.main import app

VEHICLE = {"id": "v-1", "brand": "Fiat", "model": "Ducato", "licensePlate": "B-456-DE"}


def _fleet_router() -> APIRouter:
    """Stand-ins for the business routes the interceptor observes."""
    router = APIRouter()

    @router.get("/vehicles/{id}")
    async def get_vehicle(id: str):
        return {"vehicle": {**VEHICLE, "id": id}}

    @router.post("/vehicles", status_code=201)
    async def create_vehicle(body: dict = Body(...)):
        return {"vehicle": {"id": "v-2", **body}}

    @router.put("/vehicles/{vehicle_id}")
    async def update_vehicle(vehicle_id: str, body: dict = Body(...)):
        return {"vehicle": {**VEHICLE, **body, "id": vehicle_id}}

    @router.patch("/vehicles/{id}")
    async def patch_vehicle(
        id: str,
        body: dict = Body(...),
        audit_logger: AuditLogger = Depends(get_audit_logger),
        actor: Actor = Depends(get_actor),
    ):
        before = {**VEHICLE, "id": id}
        after = {**before, **body}
        await audit_logger.log_changes(
            actor_id=actor.id,
            actor_name=actor.name,
            actor_role=actor.role,
            entity_type=EntityType.VEHICLE,
            entity_id=id,
            old_values=before,
            new_values=after,
            action="UPDATE_VEHICLE",
        )
        return {"vehicle": after}

    @router.post("/auth/login")
    async def login(body: dict = Body(...)):
        return {"token": "issued-token", "user": {"firstName": "Ana", "lastName": "Ruiz"}}

    @router.get("/documents/{id}")
    async def broken_document(id: str):
        return JSONResponse(status_code=500, content={"message": "db down"})

    @router.get("/users/{id}")
    async def crashing_user(id: str):
        raise RuntimeError("db down")

    @router.get("/erp/status")
    async def erp_status():
        return PlainTextResponse("erp online")

    @router.get("/alerts/export")
    async def alerts_stream():
        async def chunks():
            for part in (b'{"alert": ', b'{"title": "ITV vence"}', b"}"):
                await asyncio.sleep(0)
                yield part

        return StreamingResponse(chunks(), media_type="application/json")

    return router


def build_fleet_app(audit_logger: AuditLogger) -> FastAPI:
    """App wired like app.main: interceptor around the whole stack, actor and correlation inside."""
    fleet_app = AuditedFastAPI(audit_options={"path_prefix": "/api"})
    fleet_app.state.audit_logger = audit_logger
    fleet_app.add_middleware(ActorContextMiddleware)
    fleet_app.add_middleware(CorrelationIdMiddleware)
    fleet_app.include_router(_fleet_router(), prefix="/api")

    @fleet_app.exception_handler(Exception)
    async def unexpected_error(request, exc: Exception):
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @fleet_app.get("/health")
    async def health():
        return {"status": "ok"}

    return fleet_app


@pytest.fixture
def audit_repository():
    return InMemoryAuditRepository()


@pytest.fixture
def audit_logger(audit_repository):
    return AuditLogger(audit_repository, path_prefix="/api")


@pytest.fixture
def fleet_app(audit_logger):
    return build_fleet_app(audit_logger)


@pytest.fixture
async def fleet_client(fleet_app):
    transport = ASGITransport(app=fleet_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def app_with_overrides(audit_repository, audit_logger):
    """The real app with its database-backed audit storage swapped for memory."""
    original = (app.state.audit_repository, app.state.audit_logger)
    app.state.audit_repository = audit_repository
    app.state.audit_logger = audit_logger
    yield app
    app.state.audit_repository, app.state.audit_logger = original


@pytest.fixture
async def async_client(app_with_overrides):
    """Async HTTP client for testing; uses overridden app."""
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def actor_headers():
    return {"X-User-ID": "u-1", "X-User-Name": "Ana Ruiz", "X-User-Role": "gestor"}
