"""Error-handling middleware for the live-reload server.

Translates engine exceptions raised by request handlers into structured
JSON error responses with appropriate HTTP status codes.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from begin.api.schemas import ErrorResponse
from begin.utils.exceptions import (
    BeginError,
    ConfigurationError,
    LiveReloadError,
    TaskNotFoundError,
)
from begin.utils.logging import get_logger

logger = get_logger("livereload.errors")

# Map exception types to HTTP status codes.
_STATUS_MAP: dict[type, int] = {
    ConfigurationError: 400,
    TaskNotFoundError: 404,
    LiveReloadError: 503,
}


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Wraps every HTTP request and converts known exceptions to JSON.

    Unknown exceptions are logged and returned as HTTP 500.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)

        except BeginError as exc:
            status_code = _STATUS_MAP.get(type(exc), 500)
            logger.warning(
                "handled_error",
                error_type=type(exc).__name__,
                status_code=status_code,
                detail=str(exc),
                path=request.url.path,
            )
            return JSONResponse(
                status_code=status_code,
                content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump(),
            )

        except Exception as exc:
            logger.error(
                "unhandled_error",
                error_type=type(exc).__name__,
                detail=str(exc),
                path=request.url.path,
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(error="InternalServerError", detail=str(exc)).model_dump(),
            )
