import uuid
from collections.abc import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
# Incoming ids longer than this (or with non-printable chars) are replaced
_MAX_REQUEST_ID_LENGTH = 128


def _accept_request_id(value: str | None) -> str | None:
    if not value or len(value) > _MAX_REQUEST_ID_LENGTH or not value.isprintable():
        return None
    return value


async def request_id_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    request_id = _accept_request_id(request.headers.get(REQUEST_ID_HEADER)) or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response
