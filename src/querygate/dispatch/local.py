"""Local query service — ThreadPool-backed in-process processor.

Manifesto:
The real downstream query service runs elsewhere.  ``LocalQueryService``
implements the same :class:`~querygate.dispatch.processor.QueryService`
contract in-process so the API can be run and tested without it.  Each
registry lists its cubes (with revisions) and a row handler; processing
happens on a ``ThreadPoolExecutor`` so callbacks fire from a worker
thread, just as they would from a remote client library.

ARCHITECTURE
────────────
::

    LocalQueryService(max_workers=4)
      ├── .register(LocalRegistry)     ─ add a registry
      ├── .processor_for(name)         ─ LocalRequestProcessor
      ├── .get_domain[...]             ─ JSON documents
      └── .shutdown()                  ─ drain pool

    LocalRequestProcessor
      └── .process(...)  ─ pool.submit → resolve cube/revision
                                        → handler(request, bucket_params)
                                        → on_success | on_failure

Example::

    service = LocalQueryService()
    service.register(LocalRegistry(
        name="reg1",
        cubes=[CubeSpec("performance_stats", {"Day": "DIM", "Impressions": "FACT"})],
        handler=lambda request, params: [["2024-01-01", 10]],
    ))
"""

from __future__ import annotations

import itertools
import json
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from querygate.core.errors import ProtocolViolationError
from querygate.core.logging import get_logger
from querygate.dispatch.bucketing import BucketParams
from querygate.dispatch.processor import (
    ColumnInfo,
    FailureCallback,
    GeneralError,
    RequestModel,
    RequestResult,
    Rows,
    SuccessCallback,
)
from querygate.domain.enums import Engine
from querygate.domain.request import ReportingRequest

logger = get_logger(__name__)

QueryHandler = Callable[[ReportingRequest, BucketParams], Rows]


def _no_rows(request: ReportingRequest, bucket_params: BucketParams) -> Iterable[Any]:
    return iter(())


_EXHAUSTED = object()


def _prime(rows: Rows) -> Rows:
    """Pull the first row of a lazy sync source so a failing handler fails the request.

    Async sources are passed through untouched.
    """
    if isinstance(rows, (list, tuple)) or not hasattr(rows, "__iter__"):
        return rows
    iterator = iter(rows)
    first = next(iterator, _EXHAUSTED)
    if first is _EXHAUSTED:
        return ()
    return itertools.chain((first,), iterator)


@dataclass(frozen=True)
class CubeSpec:
    """One revision of a cube: its fields and their types (``DIM`` / ``FACT``)."""

    name: str
    fields: dict[str, str]
    revision: int = 0
    max_rows: int = 5000
    engines: tuple[Engine, ...] = (Engine.ORACLE, Engine.DRUID, Engine.HIVE)

    def to_domain(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "revision": self.revision,
            "maxRows": self.max_rows,
            "engines": [e.value for e in self.engines],
            "fields": [{"name": n, "type": t} for n, t in self.fields.items()],
        }

    def to_flat(self) -> list[dict[str, Any]]:
        return [
            {"cube": self.name, "revision": self.revision, "field": n, "type": t}
            for n, t in self.fields.items()
        ]


@dataclass
class LocalRegistry:
    """Cubes of one registry plus the handler that produces their rows.

    A handler may return rows lazily.  An error raised before the first row
    fails the request; one raised later surfaces mid-stream, after the
    success outcome, and truncates the response body.
    """

    name: str
    cubes: list[CubeSpec] = field(default_factory=list)
    handler: QueryHandler = _no_rows

    def revisions(self, cube: str) -> dict[int, CubeSpec]:
        return {c.revision: c for c in self.cubes if c.name == cube}

    def cube(self, cube: str, revision: int | None = None) -> CubeSpec | None:
        revisions = self.revisions(cube)
        if not revisions:
            return None
        if revision is None:
            return revisions[max(revisions)]
        return revisions.get(revision)

    def latest_cubes(self) -> list[CubeSpec]:
        names = dict.fromkeys(c.name for c in self.cubes)
        return [self.cube(n) for n in names]  # type: ignore[misc]


class LocalRequestProcessor:
    """Processes one request on the shared pool and fires one callback."""

    def __init__(self, registry: LocalRegistry, pool: ThreadPoolExecutor) -> None:
        self._registry = registry
        self._pool = pool
        self._on_success: SuccessCallback | None = None
        self._on_failure: FailureCallback | None = None
        self._started = False
        self._lock = threading.Lock()

    def on_success(self, callback: SuccessCallback) -> None:
        self._on_success = callback

    def on_failure(self, callback: FailureCallback) -> None:
        self._on_failure = callback

    def process(
        self,
        bucket_params: BucketParams,
        request: ReportingRequest,
        raw_bytes: bytes,
    ) -> None:
        with self._lock:
            if self._on_success is None or self._on_failure is None:
                raise ProtocolViolationError("both callbacks must be registered before process()")
            if self._started:
                raise ProtocolViolationError("processor already started")
            self._started = True
        future = self._pool.submit(self._run, bucket_params, request)
        future.add_done_callback(self._report_crash)

    def _report_crash(self, future: Future[None]) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.critical(
                "local_processor.callback_failed",
                registry=self._registry.name,
                error=str(error),
                error_type=type(error).__name__,
            )

    def _build_model(self, request: ReportingRequest, bucket_params: BucketParams) -> RequestModel:
        cube = self._registry.cube(request.cube, bucket_params.force_revision)
        if cube is None:
            if bucket_params.force_revision is not None and self._registry.revisions(request.cube):
                raise LookupError(
                    f"revision {bucket_params.force_revision} not found for cube {request.cube}"
                )
            raise LookupError(f"cube {request.cube} not found in registry {self._registry.name}")

        unknown = [f.field for f in request.select_fields if f.field not in cube.fields]
        if unknown:
            raise LookupError(f"unknown fields for cube {cube.name}: {', '.join(unknown)}")

        engine = request.query_engine or cube.engines[0]
        if engine not in cube.engines:
            raise LookupError(f"cube {cube.name} is not available on {engine.value}")

        max_rows = cube.max_rows
        if request.rows_per_page > 0:
            max_rows = min(max_rows, request.rows_per_page)

        return RequestModel(
            registry_name=self._registry.name,
            cube=cube.name,
            columns=tuple(
                ColumnInfo(name=f.output_name, field_type=cube.fields[f.field])
                for f in request.select_fields
            ),
            max_rows=max_rows,
            engine=engine,
            revision=cube.revision,
            is_debug_enabled=request.is_debug_enabled,
            debug_info={
                "userId": bucket_params.user_info.user_id,
                "isInternal": bucket_params.user_info.is_internal,
            },
        )

    def _run(self, bucket_params: BucketParams, request: ReportingRequest) -> None:
        assert self._on_success is not None and self._on_failure is not None
        try:
            model = self._build_model(request, bucket_params)
            rows = _prime(self._registry.handler(request, bucket_params))
        except LookupError as e:
            logger.info("local_processor.lookup_failed", registry=self._registry.name, error=str(e))
            self._on_failure(GeneralError(message=str(e)))
            return
        except Exception as e:
            logger.error("local_processor.failed", registry=self._registry.name, error=str(e))
            self._on_failure(GeneralError(message=str(e), cause=e))
            return
        self._on_success(model, RequestResult(rows=rows))


class LocalQueryService:
    """In-process :class:`~querygate.dispatch.processor.QueryService`.

    Parameters
    ----------
    registries : Iterable[LocalRegistry]
        Registries available at startup.
    max_workers : int
        ThreadPool size shared by all processors.
    """

    def __init__(self, registries: Iterable[LocalRegistry] = (), max_workers: int = 4) -> None:
        self.pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="querygate")
        self._registries: dict[str, LocalRegistry] = {}
        for registry in registries:
            self.register(registry)

    def register(self, registry: LocalRegistry) -> None:
        self._registries[registry.name] = registry
        logger.debug("local_service.registered", registry=registry.name, cubes=len(registry.cubes))

    def is_valid_registry(self, registry_name: str) -> bool:
        return registry_name in self._registries

    def processor_for(self, registry_name: str) -> LocalRequestProcessor:
        return LocalRequestProcessor(self._registries[registry_name], self.pool)

    # ── Domain documents ─────────────────────────────────────────────

    def get_domain(self, registry_name: str) -> str | None:
        registry = self._registries.get(registry_name)
        if registry is None:
            return None
        return json.dumps({"cubes": [c.to_domain() for c in registry.latest_cubes()]})

    def get_domain_for_cube(self, registry_name: str, cube: str) -> str | None:
        registry = self._registries.get(registry_name)
        spec = registry.cube(cube) if registry else None
        if spec is None:
            return None
        return json.dumps(spec.to_domain())

    def get_flatten_domain(self, registry_name: str) -> str | None:
        registry = self._registries.get(registry_name)
        if registry is None:
            return None
        fields = [row for c in registry.latest_cubes() for row in c.to_flat()]
        return json.dumps({"fields": fields})

    def get_flatten_domain_for_cube(
        self,
        registry_name: str,
        cube: str,
        revision: int | None = None,
    ) -> str | None:
        registry = self._registries.get(registry_name)
        spec = registry.cube(cube, revision) if registry else None
        if spec is None:
            return None
        return json.dumps({"fields": spec.to_flat()})

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown thread pool.

        Args:
            wait: If True, wait for pending work to complete
        """
        self.pool.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
