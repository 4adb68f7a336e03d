from typing import Dict, Any, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError, HTTPException
from fastapi.responses import JSONResponse

from core.logger import get_logger
from core.response import error_response

logger = get_logger(__name__)


class AppException(Exception):
    def __init__(self, message: str, code: int = 400, extra: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.extra = extra or {}
        super().__init__(self.message)


class ResourceNotFoundError(AppException):
    def __init__(self, resource: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message=f"{resource} not found", code=status.HTTP_404_NOT_FOUND, extra=extra)


class PermissionDeniedError(AppException):
    def __init__(self, message: str = "Insufficient permissions", extra: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=status.HTTP_403_FORBIDDEN, extra=extra)


class AuthenticationError(AppException):
    def __init__(self, message: str = "Not authenticated", extra: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=status.HTTP_401_UNAUTHORIZED, extra=extra)


class ValidationFailedError(AppException):
    """Business-rule validation failure, raised before anything is written."""

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=status.HTTP_422_UNPROCESSABLE_ENTITY, extra=extra)


class ConflictError(AppException):
    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=status.HTTP_409_CONFLICT, extra=extra)


class GenerationError(AppException):
    """Upstream generation failure; ``upstream_status`` is the upstream HTTP status when there was one."""

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        code = upstream_status if upstream_status and upstream_status >= 400 else status.HTTP_502_BAD_GATEWAY
        super().__init__(message=message, code=code, extra={"upstream_status": upstream_status})
        self.upstream_status = upstream_status


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Custom domain exception handler."""
    logger.warning(
        "App exception",
        message=exc.message,
        request_path=request.url.path,
        request_method=request.method,
        status_code=exc.code,
    )
    return JSONResponse(
        status_code=exc.code,
        content=error_response(message=exc.message, code=exc.code, data=exc.extra or None).model_dump()
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.warning(
        "HTTP exception",
        detail=str(exc.detail),
        request_path=request.url.path,
        request_method=request.method,
        status_code=exc.status_code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=str(exc.detail), code=exc.status_code).model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error_details = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"][1:])  # drop the "body"/"query" prefix
        error_details.append(f"{field}: {err['msg']}")

    logger.error(
        "Validation error",
        request_path=request.url.path,
        request_method=request.method,
        errors=error_details,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response(
            message="Validation failed",
            code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            data={"details": error_details}
        ).model_dump()
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.error(
        "Unhandled exception",
        exc_info=True,
        request_path=request.url.path,
        request_method=request.method,
        error=str(exc),
    )
    debug = getattr(request.app.state, "debug", False)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(
            message=f"Internal server error: {exc}" if debug else "Service error; contact support",
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).model_dump()
    )


def register_exception_handlers(app):
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
