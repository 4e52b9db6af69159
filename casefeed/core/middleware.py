import time

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from casefeed.core.exceptions import AuthenticationError
from casefeed.services.audit import AuditService
from casefeed.services.jwt_service import JWTService

logger = structlog.get_logger()

# Paths that skip authentication
PUBLIC_PATHS = {"/", "/api/health", "/docs", "/openapi.json", "/redoc"}


class AuthMiddleware(BaseHTTPMiddleware):
    """Validates the Bearer JWT on every request except public paths.

    On success the actor's id, role and display name are placed on
    ``request.state`` for the ``get_actor`` dependency.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        if not auth_header.startswith("Bearer "):
            error = AuthenticationError("Missing or malformed Authorization header.")
            return JSONResponse(status_code=error.status, content=error.to_dict())

        token = auth_header.removeprefix("Bearer ").strip()
        claims = JWTService().decode_token(token)
        if claims is None or not claims.get("sub"):
            error = AuthenticationError("Invalid or expired token.")
            return JSONResponse(status_code=error.status, content=error.to_dict())

        request.state.user_id = claims["sub"]
        request.state.user_role = claims.get("role")
        request.state.user_name = claims.get("name", "")

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request as structured JSON and writes it to the audit log."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = round((time.perf_counter() - start) * 1000, 1)

        actor_id = getattr(request.state, "user_id", None)

        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            latency_ms=latency_ms,
            actor_id=actor_id,
        )

        await AuditService().record_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            latency_ms=latency_ms,
            actor_id=actor_id,
        )

        return response
