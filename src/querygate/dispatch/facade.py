"""
Dispatch façade — normalize a raw query request and submit it once.

``QueryDispatcher.dispatch()`` runs synchronously on the caller's thread
up to the point of submission, then returns a :class:`DeferredResponse`
without waiting for the downstream computation.

Lifecycle::

    ┌───────────────────────────────────────────────────┐
    │ 1. Resolve schema (case-insensitive)  → NotFound  │
    │ 2. Resolve registry                   → NotFound  │
    │ 3. Read body once into bytes                      │
    │ 4. Parse into ReportingRequest        → Validation│
    │ 5. Apply debug / engine overrides                 │
    │ 6. Build BucketParams from caller context         │
    │ 7. Bind on_success / on_failure                   │
    │ 8. process()  ── ownership moves to processor ──  │
    │ 9. Return DeferredResponse                        │
    └───────────────────────────────────────────────────┘

Steps 1-4 fail before anything reaches the processor.

Example:
    >>> dispatcher = QueryDispatcher(service)
    >>> deferred = dispatcher.dispatch("reg1", "student", raw_body=body, debug=True)
    >>> outcome = await deferred.wait()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from querygate.core.errors import NotFoundError, ValidationError
from querygate.core.logging import get_logger
from querygate.dispatch.bucketing import BucketParams, CallerContext, build_bucket_params
from querygate.dispatch.outcome import DeferredResponse, OutcomeResolver
from querygate.dispatch.overrides import apply_overrides
from querygate.dispatch.processor import QueryService
from querygate.domain.enums import Schema
from querygate.domain.request import ReportingRequest, deserialize_sync

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DispatchUnit:
    """The fully normalized package submitted once to a processor."""

    registry_name: str
    request: ReportingRequest
    raw_bytes: bytes
    bucket_params: BucketParams


def read_body(raw_body: Any) -> bytes:
    """Read *raw_body* once into an in-memory byte string.

    Accepts bytes-like objects, ``str`` (UTF-8 encoded), or any object with
    a ``read()`` method returning one of those.
    """
    if hasattr(raw_body, "read"):
        raw_body = raw_body.read()
    if isinstance(raw_body, (bytes, bytearray, memoryview)):
        return bytes(raw_body)
    if isinstance(raw_body, str):
        return raw_body.encode("utf-8")
    if raw_body is None:
        return b""
    raise ValidationError(f"unsupported request body type: {type(raw_body).__name__}")


class QueryDispatcher:
    """Validates, normalizes and submits reporting requests.

    Parameters
    ----------
    service : QueryService
        Downstream query service; asked for a fresh processor per call.
    outcome_timeout_s : float | None
        Passed to each :class:`DeferredResponse` as its default wait timeout.
    """

    def __init__(self, service: QueryService, *, outcome_timeout_s: float | None = None) -> None:
        self._service = service
        self._outcome_timeout_s = outcome_timeout_s

    def dispatch(
        self,
        registry_name: str,
        schema_name: str,
        *,
        raw_body: Any,
        debug: bool = False,
        force_engine: str | None = None,
        force_revision: int | None = None,
        caller: CallerContext | None = None,
    ) -> DeferredResponse:
        logger.info(
            "query.dispatch",
            registry=registry_name,
            schema=schema_name,
            debug=debug,
            force_engine=force_engine,
            force_revision=force_revision,
        )

        schema = Schema.from_name_insensitive(schema_name)
        if schema is None:
            raise NotFoundError(f"schema {schema_name} not found").with_context(
                registry=registry_name, schema=schema_name
            )
        if not self._service.is_valid_registry(registry_name):
            raise NotFoundError(f"registry {registry_name} not found").with_context(
                registry=registry_name, schema=schema_name
            )

        raw = read_body(raw_body)
        request = apply_overrides(deserialize_sync(raw, schema), debug, force_engine)
        unit = DispatchUnit(
            registry_name=registry_name,
            request=request,
            raw_bytes=raw,
            bucket_params=build_bucket_params(caller, force_revision),
        )
        return self.submit(unit, request_id=caller.request_id if caller else None)

    def submit(self, unit: DispatchUnit, *, request_id: str | None = None) -> DeferredResponse:
        """Bind callbacks and hand *unit* to a processor exactly once."""
        deferred = DeferredResponse(timeout=self._outcome_timeout_s, request_id=request_id)
        resolver = OutcomeResolver(deferred)

        processor = self._service.processor_for(unit.registry_name)
        processor.on_success(resolver.on_success)
        processor.on_failure(resolver.on_failure)
        processor.process(unit.bucket_params, unit.request, unit.raw_bytes)

        logger.debug(
            "query.submitted",
            registry=unit.registry_name,
            cube=unit.request.cube,
            request_id=request_id,
        )
        return deferred
