"""
Caller-context middleware — turns identity headers into a ``CallerContext``.

The context is stored on ``request.state.caller`` and handed to the
dispatcher explicitly by the router.  The same values are bound into the
structlog context for log correlation only.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from querygate.core.logging import LogContext
from querygate.dispatch.bucketing import CallerContext


def caller_from_request(
    request: Request,
    *,
    user_id_header: str = "X-User-Id",
    is_internal_header: str = "X-Is-Internal",
) -> CallerContext:
    """Build a :class:`CallerContext` from the request headers."""
    return CallerContext(
        user_id=request.headers.get(user_id_header),
        is_internal=request.headers.get(is_internal_header),
        request_id=getattr(request.state, "request_id", None),
    )


class CallerContextMiddleware(BaseHTTPMiddleware):
    """Attach a :class:`CallerContext` to every request.

    Parameters
    ----------
    app:
        The ASGI application to wrap.
    user_id_header / is_internal_header:
        Header names to read identity from.
    """

    def __init__(
        self,
        app: object,
        user_id_header: str = "X-User-Id",
        is_internal_header: str = "X-Is-Internal",
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._user_id_header = user_id_header
        self._is_internal_header = is_internal_header

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        caller = caller_from_request(
            request,
            user_id_header=self._user_id_header,
            is_internal_header=self._is_internal_header,
        )
        request.state.caller = caller
        async with LogContext(request_id=caller.request_id, user_id=caller.user_id):
            return await call_next(request)
