"""Request-ID middleware — one correlation id per request, echoed back.

A caller-supplied ``X-Request-ID`` is reused when it is short and
printable; anything else is replaced with a fresh uuid4 hex string.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"
MAX_LENGTH = 128


def accept_request_id(value: str | None) -> str:
    if value and len(value) <= MAX_LENGTH and value.isprintable():
        return value
    return uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = request_id = accept_request_id(request.headers.get(HEADER))
        response = await call_next(request)
        response.headers[HEADER] = request_id
        return response
