from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from casefeed.api.v1.router import v1_router
from casefeed.config import settings
from casefeed.core.database import close_db, init_db
from casefeed.core.exceptions import (
    CaseFeedError,
    InternalError,
    casefeed_error_handler,
    request_validation_handler,
)
from casefeed.core.middleware import AuthMiddleware, RequestLoggingMiddleware

_NAME_TO_LEVEL = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "warn": 30,
    "error": 40,
    "critical": 50,
}

structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        _NAME_TO_LEVEL.get(settings.casefeed_log_level.lower(), 20)
    ),
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    await init_db()
    logger.info(
        "casefeed_starting",
        allowed_roles=sorted(settings.allowed_roles),
        same_day_order=settings.casefeed_same_day_order,
    )
    yield
    await close_db()
    logger.info("casefeed_stopping")


async def unhandled_error_handler(request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=request.url.path, error=str(exc))
    error = InternalError()
    return JSONResponse(status_code=error.status, content=error.to_dict())


app = FastAPI(
    title="Casefeed",
    description="Integrated client activity feed and search for case management",
    version="0.1.0",
    lifespan=lifespan,
)

# Exception handlers
app.add_exception_handler(CaseFeedError, casefeed_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# Middleware (Starlette: last-added = outermost. Execution order top to bottom.)
# 1. RequestLogging (outermost): sees auth rejections too
# 2. CORS: preflight is answered before auth
# 3. Auth: Bearer token validation (innermost)
app.add_middleware(AuthMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.casefeed_cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Routes
app.include_router(v1_router)


@app.get("/")
async def root():
    return {"service": "casefeed", "version": "0.1.0"}
