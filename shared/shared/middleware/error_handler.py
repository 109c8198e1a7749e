import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


def _envelope(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message},
            "request_id": getattr(request.state, "request_id", None),
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Render HTTPExceptions raised by routes in the same envelope as the middleware."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    return _envelope(request, exc.status_code, code, detail)


async def error_envelope_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    try:
        return await call_next(request)
    except StarletteHTTPException as exc:
        return await http_exception_handler(request, exc)
    except Exception:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _envelope(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "An unexpected error occurred",
        )
