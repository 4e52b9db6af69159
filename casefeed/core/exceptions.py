from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class CaseFeedError(Exception):
    """Base exception for casefeed API errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status: int = 500,
        details: dict | None = None,
    ):
        self.code = code
        self.message = message
        self.status = status
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        result = {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result


class AuthenticationError(CaseFeedError):
    def __init__(self, message: str = "Missing or invalid credentials.", details: dict | None = None):
        super().__init__(code="authentication_required", message=message, status=401, details=details)


class AuthorizationError(CaseFeedError):
    def __init__(self, message: str = "Insufficient permissions.", details: dict | None = None):
        super().__init__(code="insufficient_permissions", message=message, status=403, details=details)


class ValidationError(CaseFeedError):
    """Malformed request input. ``fields`` maps each offending field to its messages."""

    def __init__(
        self,
        message: str = "Validation failed.",
        fields: dict[str, list[str]] | None = None,
    ):
        details = {"fields": fields} if fields else None
        super().__init__(code="validation_failed", message=message, status=400, details=details)
        self.fields = fields or {}


class NotFoundError(CaseFeedError):
    def __init__(self, message: str = "Resource not found.", details: dict | None = None):
        super().__init__(code="not_found", message=message, status=404, details=details)


class SourceUnavailableError(CaseFeedError):
    """One activity source could not be read. Isolated per source, never returned directly."""

    def __init__(self, source: str, message: str | None = None):
        super().__init__(
            code="source_unavailable",
            message=message or f"Activity source '{source}' is unavailable.",
            status=503,
            details={"source": source},
        )
        self.source = source


class InternalError(CaseFeedError):
    def __init__(self, message: str = "Internal server error.", details: dict | None = None):
        super().__init__(code="internal_error", message=message, status=500, details=details)


def field_errors(errors) -> dict[str, list[str]]:
    """Group pydantic/FastAPI error entries by their last location segment."""
    fields: dict[str, list[str]] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        # FastAPI prefixes the parameter source: ("query", "page")
        if len(loc) > 1 and loc[0] in ("query", "path", "body"):
            loc = loc[1:]
        name = loc[-1] if loc else "__root__"
        fields.setdefault(name, []).append(err.get("msg", "Invalid value."))
    return fields


async def casefeed_error_handler(request: Request, exc: CaseFeedError) -> JSONResponse:
    """Global exception handler for CaseFeedError and subclasses."""
    return JSONResponse(status_code=exc.status, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI parameter errors as 400 with field-level details."""
    error = ValidationError(fields=field_errors(exc.errors()))
    return JSONResponse(status_code=error.status, content=error.to_dict())
