"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers, the query
service and the dispatcher into a single ``FastAPI`` instance.

Tags:
    querygate, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from querygate.api.deps import get_settings
from querygate.api.middleware.caller_context import CallerContextMiddleware
from querygate.api.middleware.errors import querygate_error_handler, unhandled_exception_handler
from querygate.api.middleware.request_id import RequestIDMiddleware
from querygate.api.middleware.timing import TimingMiddleware
from querygate.api.settings import QueryGateAPISettings
from querygate.core.errors import QueryGateError
from querygate.core.logging import configure_logging, get_logger
from querygate.dispatch.facade import QueryDispatcher
from querygate.dispatch.local import LocalQueryService
from querygate.dispatch.processor import QueryService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — startup / shutdown hooks."""
    settings: QueryGateAPISettings = app.state.settings
    configure_logging(level=settings.log_level, service="querygate")
    log = get_logger("querygate.api")
    log.info(
        "querygate API starting",
        version=app.version,
        query_service=type(app.state.query_service).__name__,
    )

    yield

    if app.state.owns_query_service:
        app.state.query_service.shutdown(wait=False)
    log.info("querygate API shutting down")


def create_app(
    *,
    settings: QueryGateAPISettings | None = None,
    query_service: QueryService | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : QueryGateAPISettings | None
        Override settings (useful for testing).  When ``None`` the cached
        singleton from :func:`get_settings` is used.
    query_service : QueryService | None
        Downstream query service.  When ``None`` an empty
        :class:`LocalQueryService` is created and shut down with the app.
    """

    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    app.state.owns_query_service = query_service is None
    if query_service is None:
        query_service = LocalQueryService(max_workers=settings.worker_threads)
    app.state.query_service = query_service
    app.state.dispatcher = QueryDispatcher(
        query_service,
        outcome_timeout_s=settings.outcome_timeout_s,
    )

    # ── Middleware (last added runs first) ────────────────────────────
    app.add_middleware(TimingMiddleware)
    app.add_middleware(
        CallerContextMiddleware,
        user_id_header=settings.user_id_header,
        is_internal_header=settings.is_internal_header,
    )
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(QueryGateError, querygate_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from querygate.api.routers import registry
    from querygate.core.health import create_health_router, registry_checks

    app.include_router(
        create_health_router(
            "querygate",
            version=settings.api_version,
            checks=registry_checks(query_service, settings.health_registries),
        ),
        tags=["health"],
    )
    app.include_router(registry.router, prefix=settings.api_prefix, tags=["registry"])

    return app
