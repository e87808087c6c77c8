"""
Error-handling middleware — maps querygate errors to RFC 7807 responses.

``NotFoundError`` and ``ValidationError`` are raised before submission;
``DownstreamFailureError`` and propagated causes arrive from a resolved
outcome.  All of them leave the API through these handlers.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from querygate.api.schemas.common import ErrorDetail, ProblemDetail
from querygate.core.errors import ErrorCategory, QueryGateError, ValidationError
from querygate.core.logging import get_logger

logger = get_logger(__name__)

# ── Error category → HTTP status mapping ─────────────────────────────────

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.DOWNSTREAM: 502,
    ErrorCategory.INTERNAL: 500,
    ErrorCategory.UNKNOWN: 500,
}

_TITLES: dict[int, str] = {
    400: "Bad Request",
    404: "Not Found",
    500: "Internal Server Error",
    502: "Bad Gateway",
}


def status_for_error(error: BaseException) -> int:
    """Resolve an error to an HTTP status, defaulting to 500."""
    if isinstance(error, QueryGateError):
        return CATEGORY_TO_STATUS.get(error.category, 500)
    return 500


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance,
    )
    if errors:
        body.errors = [ErrorDetail(**e) for e in errors]
    return JSONResponse(status_code=status, content=body.model_dump())


def _validation_details(error: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "code": e.get("type", "invalid"),
            "message": e.get("msg", ""),
            "field": ".".join(str(p) for p in e.get("loc", [])) or None,
        }
        for e in error.errors
    ]


async def querygate_error_handler(request: Request, exc: QueryGateError) -> JSONResponse:
    """Render a :class:`QueryGateError` as a problem response."""
    status = status_for_error(exc)
    log = logger.error if status >= 500 else logger.info
    log("api.error", status=status, **exc.to_dict())
    return problem_response(
        status=status,
        title=_TITLES.get(status, "Error"),
        detail=exc.message,
        instance=str(request.url),
        errors=_validation_details(exc) if isinstance(exc, ValidationError) else None,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — returns 500 with ProblemDetail."""
    logger.error("api.unhandled_exception", error=str(exc), error_type=type(exc).__name__)
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=str(request.url),
    )
