"""API middleware: correlation ID, actor context, audit interception."""

import logging
import time
import uuid
from typing import Any, Dict, Iterable, Optional

from fastapi import FastAPI
from starlette.datastructures import Headers, QueryParams
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.audit.audit_logger import AuditLogger
from app.audit.audit_models import Actor, ExchangeSnapshot
from app.core.context import actor_id_ctx, correlation_id_ctx

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
ACTOR_ID_HEADER = "X-User-ID"
ACTOR_NAME_HEADER = "X-User-Name"
ACTOR_ROLE_HEADER = "X-User-Role"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Generate or preserve correlation ID; attach to request.state, response header, and logging context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        correlation_id_ctx.set(correlation_id)

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class ActorContextMiddleware(BaseHTTPMiddleware):
    """
    Resolve the requester into request.state.actor. An authentication layer running earlier
    may set request.state.actor itself; otherwise the trusted gateway headers are read.
    Missing identity is not an error: the request proceeds as anonymous.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        actor = getattr(request.state, "actor", None)
        if not isinstance(actor, Actor):
            actor_id = (request.headers.get(ACTOR_ID_HEADER) or "").strip() or None
            actor = Actor(
                id=actor_id,
                name=(request.headers.get(ACTOR_NAME_HEADER) or "").strip() or None,
                role=(request.headers.get(ACTOR_ROLE_HEADER) or "").strip() or None,
            )
            request.state.actor = actor
        actor_id_ctx.set(actor.id)
        return await call_next(request)


def _route_template(scope: Scope) -> str:
    route = scope.get("route")
    path = getattr(route, "path_format", None) or getattr(route, "path", None)
    return path or scope.get("path", "")


class AuditInterceptorMiddleware:
    """
    Observe each audited exchange without touching it: every ASGI message is forwarded
    unchanged and in order, copies of the body chunks are kept aside. Once the last
    response chunk has been sent, the exchange is handed to the AuditLogger, which writes
    the record in a detached task. Requests whose response never completes are not audited.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        path_prefix: str = "/api",
        excluded_paths: Iterable[str] = (),
        enabled: bool = True,
        audit_logger: Optional[AuditLogger] = None,
    ) -> None:
        self.app = app
        self.path_prefix = path_prefix.rstrip("/")
        self.excluded_paths = frozenset(p.rstrip("/") or "/" for p in excluded_paths)
        self.enabled = enabled
        self._audit_logger = audit_logger

    def _in_scope(self, scope: Scope) -> bool:
        if not self.enabled or scope["type"] != "http":
            return False
        path = scope.get("path", "")
        if (path.rstrip("/") or "/") in self.excluded_paths:
            return False
        if not self.path_prefix:
            return True
        return path == self.path_prefix or path.startswith(self.path_prefix + "/")

    def _resolve_logger(self, scope: Scope) -> Optional[AuditLogger]:
        if self._audit_logger is not None:
            return self._audit_logger
        app = scope.get("app")
        state = getattr(app, "state", None)
        return getattr(state, "audit_logger", None)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self._in_scope(scope):
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        request_chunks: list[bytes] = []
        response_chunks: list[bytes] = []
        response_start: dict = {}

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request_chunks.append(message.get("body", b""))
            return message

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_start["status"] = message["status"]
                response_start["headers"] = message.get("headers", [])
            elif message["type"] == "http.response.body":
                response_chunks.append(message.get("body", b""))
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                duration_ms = int((time.perf_counter() - started) * 1000)
                self._dispatch(scope, request_chunks, response_start, response_chunks, duration_ms)

        await self.app(scope, receive_wrapper, send_wrapper)

    def _dispatch(
        self,
        scope: Scope,
        request_chunks: list[bytes],
        response_start: dict,
        response_chunks: list[bytes],
        duration_ms: int,
    ) -> None:
        """Hand the finished exchange to the audit logger. Never raises into the request."""
        try:
            audit_logger = self._resolve_logger(scope)
            if audit_logger is None:
                logger.warning("audit_logger_missing", extra={"path": scope.get("path")})
                return
            state = scope.get("state") or {}
            actor = state.get("actor")
            if not isinstance(actor, Actor):
                actor = None
            correlation_id_ctx.set(state.get("correlation_id"))
            actor_id_ctx.set(actor.id if actor else None)

            request_headers = Headers(scope=scope)
            response_headers = Headers(raw=response_start.get("headers", []))
            query_string = scope.get("query_string", b"").decode("latin-1")
            path = scope.get("path", "")
            client = scope.get("client")
            snapshot = ExchangeSnapshot(
                method=scope.get("method", ""),
                path=path,
                url=f"{path}?{query_string}" if query_string else path,
                route_template=_route_template(scope),
                status_code=int(response_start.get("status", 0)),
                duration_ms=duration_ms,
                path_params=dict(scope.get("path_params") or {}),
                query_params=dict(QueryParams(query_string)),
                client_address=client[0] if client else None,
                client_agent=request_headers.get("user-agent"),
                request_body=b"".join(request_chunks),
                request_content_type=request_headers.get("content-type"),
                response_body=b"".join(response_chunks),
                response_content_type=response_headers.get("content-type"),
            )
            audit_logger.submit_exchange(snapshot, actor)
        except Exception:
            logger.exception("audit_dispatch_failed", extra={"path": scope.get("path")})


class AuditedFastAPI(FastAPI):
    """
    FastAPI app with the audit interceptor wrapped around the whole middleware stack,
    Starlette's server-error layer included. Responses produced by the catch-all
    exception handler therefore get audited like any other outcome.
    """

    def __init__(self, *, audit_options: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self.audit_options = dict(audit_options or {})
        super().__init__(**kwargs)

    def build_middleware_stack(self) -> ASGIApp:
        return AuditInterceptorMiddleware(super().build_middleware_stack(), **self.audit_options)
