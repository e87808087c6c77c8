"""
FastAPI dependency injection — shared singletons and per-request factories.

Usage in routers::

    from querygate.api.deps import Caller, Dispatcher

    @router.post("/things")
    async def create(dispatcher: Dispatcher, caller: Caller):
        ...

Singletons (settings, query service, dispatcher) are created once by
``create_app`` and kept on ``app.state``; the caller context is per-request.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from querygate.api.middleware.caller_context import caller_from_request
from querygate.api.settings import QueryGateAPISettings
from querygate.dispatch.bucketing import CallerContext
from querygate.dispatch.facade import QueryDispatcher
from querygate.dispatch.processor import QueryService

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> QueryGateAPISettings:
    """Cached settings — loaded once per process."""
    return QueryGateAPISettings()


# ── Query service / dispatcher (app-scoped) ─────────────────────────────


def get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service


def get_dispatcher(request: Request) -> QueryDispatcher:
    return request.app.state.dispatcher


# ── Caller context (per-request) ─────────────────────────────────────────


def get_caller_context(
    request: Request,
    settings: Annotated[QueryGateAPISettings, Depends(get_settings)],
) -> CallerContext:
    """Return the context set by the middleware, or build it from headers."""
    caller = getattr(request.state, "caller", None)
    if caller is not None:
        return caller
    return caller_from_request(
        request,
        user_id_header=settings.user_id_header,
        is_internal_header=settings.is_internal_header,
    )


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[QueryGateAPISettings, Depends(get_settings)]
Service = Annotated[QueryService, Depends(get_query_service)]
Dispatcher = Annotated[QueryDispatcher, Depends(get_dispatcher)]
Caller = Annotated[CallerContext, Depends(get_caller_context)]
