import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """HTTPException that can point at the offending request field."""

    def __init__(self, status_code: int, message: str, field: Optional[str] = None):
        super().__init__(status_code=status_code, detail=message)
        self.field = field


class ValidationFailed(ApiError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, field)


class ConflictError(ApiError):
    # Registration collisions surface as 400 with a friendly message
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, field)


class NotFoundError(ApiError):
    def __init__(self, message: str = "Not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, message)


class UnauthorizedError(ApiError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message)


class ForbiddenError(ApiError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(status.HTTP_403_FORBIDDEN, message)


class UpstreamError(ApiError):
    def __init__(self, message: str = "Upstream service failed"):
        super().__init__(status.HTTP_502_BAD_GATEWAY, message)


class PayloadTooLarge(ApiError):
    def __init__(self, message: str = "File too large"):
        super().__init__(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTP %s: %s - %s %s", exc.status_code, exc.detail, request.method, request.url.path)

    content = {"message": exc.detail}
    field = getattr(exc, "field", None)
    if field:
        content["field"] = field
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


def _first_error(errors: list[dict]) -> tuple[str, Optional[str]]:
    if not errors:
        return "Invalid request", None
    err = errors[0]
    # Drop the location prefix ("body", "query", ...) so only the field path remains
    loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
    message = err.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return message, ".".join(loc) or None


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    message, field = _first_error(exc.errors())
    return await http_exception_handler(request, ValidationFailed(message, field))


async def general_exception_handler(request: Request, exc: Exception):
    logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )
