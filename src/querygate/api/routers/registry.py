"""
Registry router — domain documents and the query endpoint.

Endpoints:
    GET  /registry/{registryName}/domain
    GET  /registry/{registryName}/domain/cubes/{cube}
    GET  /registry/{registryName}/flattenDomain
    GET  /registry/{registryName}/flattenDomain/cubes/{cube}
    GET  /registry/{registryName}/flattenDomain/cubes/{cube}/{revision}
    POST /registry/{registryName}/schemas/{schema}/query

Domain endpoints return the registry's JSON document verbatim or 404.
The query endpoint dispatches the body, awaits the single outcome without
blocking the event loop, and streams the result.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response, StreamingResponse

from querygate.api.deps import Caller, Dispatcher, Service
from querygate.core.errors import NotFoundError
from querygate.dispatch.outcome import Failure
from querygate.dispatch.streaming import MEDIA_TYPE

router = APIRouter(prefix="/registry")


def _json_or_404(document: str | None, detail: str, **context) -> Response:
    if document is None:
        raise NotFoundError(detail).with_context(**context)
    return Response(content=document, media_type=MEDIA_TYPE)


@router.get("/{registry_name}/domain")
def get_domain(registry_name: str, service: Service) -> Response:
    """Full domain document for a registry."""
    return _json_or_404(
        service.get_domain(registry_name),
        f"registry {registry_name} not found",
        registry=registry_name,
    )


@router.get("/{registry_name}/domain/cubes/{cube}")
def get_domain_for_cube(registry_name: str, cube: str, service: Service) -> Response:
    return _json_or_404(
        service.get_domain_for_cube(registry_name, cube),
        f"registry {registry_name} and cube {cube} not found",
        registry=registry_name,
        cube=cube,
    )


@router.get("/{registry_name}/flattenDomain")
def get_flatten_domain(registry_name: str, service: Service) -> Response:
    return _json_or_404(
        service.get_flatten_domain(registry_name),
        f"registry {registry_name} not found",
        registry=registry_name,
    )


@router.get("/{registry_name}/flattenDomain/cubes/{cube}")
def get_flatten_domain_for_cube(registry_name: str, cube: str, service: Service) -> Response:
    return _json_or_404(
        service.get_flatten_domain_for_cube(registry_name, cube),
        f"registry {registry_name} and cube {cube} not found",
        registry=registry_name,
        cube=cube,
    )


@router.get("/{registry_name}/flattenDomain/cubes/{cube}/{revision}")
def get_flatten_domain_for_cube_revision(
    registry_name: str,
    cube: str,
    revision: int,
    service: Service,
) -> Response:
    return _json_or_404(
        service.get_flatten_domain_for_cube(registry_name, cube, revision),
        f"registry {registry_name} and cube {cube} with revision {revision} not found",
        registry=registry_name,
        cube=cube,
        revision=revision,
    )


@router.post("/{registry_name}/schemas/{schema}/query")
async def query(
    registry_name: str,
    schema: str,
    request: Request,
    dispatcher: Dispatcher,
    caller: Caller,
    debug: bool = Query(False, description="Ask the engine for debug output"),
    force_engine: str | None = Query(None, alias="forceEngine", description="Pin to an engine"),
    force_revision: int | None = Query(None, alias="forceRevision", description="Pin to a cube revision"),
) -> StreamingResponse:
    """Run a reporting query and stream the result document.

    Example:
        POST /registry/reg1/schemas/student/query?debug=true&forceEngine=druid

        {"cube": "performance_stats", "selectFields": [{"field": "Day"}]}
    """
    body = await request.body()
    deferred = dispatcher.dispatch(
        registry_name,
        schema,
        raw_body=body,
        debug=debug,
        force_engine=force_engine,
        force_revision=force_revision,
        caller=caller,
    )
    outcome = await deferred.wait()
    if isinstance(outcome, Failure):
        raise outcome.error
    return StreamingResponse(outcome.body, media_type=outcome.body.media_type)
