"""Query processor interfaces — the downstream contract the dispatcher depends on.

The downstream query service is an external collaborator.  The dispatcher
only needs the shapes defined here; any object with the right methods
satisfies the protocols, no base class required.

ARCHITECTURE
────────────
::

    QueryService (Protocol)
      ├── .is_valid_registry(name)      ─ registry known?
      ├── .processor_for(name)          ─ fresh RequestProcessor per call
      └── .get_domain / .get_flatten_domain[...]   ─ JSON documents or None

    RequestProcessor (Protocol)
      ├── .on_success(fn(model, result))   ─ must be bound before process()
      ├── .on_failure(fn(general_error))   ─ must be bound before process()
      └── .process(bucket_params, request, raw_bytes)
                                           ─ runs asynchronously, then invokes
                                             exactly one callback exactly once

Implementations:
    LocalQueryService  ─ in-process, ThreadPool backed   (dev / tests)
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from querygate.dispatch.bucketing import BucketParams
from querygate.domain.enums import Engine
from querygate.domain.request import ReportingRequest

Row = Any
Rows = Iterable[Row] | AsyncIterable[Row]


@dataclass(frozen=True, slots=True)
class GeneralError:
    """Failure reported by a processor.

    ``cause`` is the original exception when the processor has one;
    otherwise only ``message`` is available.
    """

    message: str
    cause: BaseException | None = None


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    name: str
    field_type: str = "DIM"


@dataclass(frozen=True)
class RequestModel:
    """What the processor decided to run; drives the shape of the output document.

    Attributes:
        registry_name: Registry the request ran against.
        cube: Cube queried.
        columns: Output columns, in row order.
        max_rows: Row cap applied by the processor (``-1`` for none).
        engine: Engine the query ran on.
        revision: Cube revision used.
        is_debug_enabled: Whether the request asked for debug output.
        debug_info: Engine-specific debug payload, emitted only in debug mode.
    """

    registry_name: str
    cube: str
    columns: tuple[ColumnInfo, ...]
    max_rows: int = -1
    engine: Engine | None = None
    revision: int | None = None
    is_debug_enabled: bool = False
    debug_info: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestResult:
    """Rows produced by the processor.

    ``rows`` may be a lazy iterable (sync or async); it is consumed exactly
    once, by the streaming emitter.
    """

    rows: Rows
    metadata: dict[str, Any] = field(default_factory=dict)


SuccessCallback = Callable[[RequestModel, RequestResult], None]
FailureCallback = Callable[[GeneralError], None]


@runtime_checkable
class RequestProcessor(Protocol):
    """One-shot processor for a single reporting request."""

    def on_success(self, callback: SuccessCallback) -> None:
        ...

    def on_failure(self, callback: FailureCallback) -> None:
        ...

    def process(
        self,
        bucket_params: BucketParams,
        request: ReportingRequest,
        raw_bytes: bytes,
    ) -> None:
        """Start processing and return without waiting for the outcome."""
        ...


@runtime_checkable
class QueryService(Protocol):
    """Registry-aware entry point to the downstream query service."""

    def is_valid_registry(self, registry_name: str) -> bool:
        ...

    def processor_for(self, registry_name: str) -> RequestProcessor:
        ...

    def get_domain(self, registry_name: str) -> str | None:
        ...

    def get_domain_for_cube(self, registry_name: str, cube: str) -> str | None:
        ...

    def get_flatten_domain(self, registry_name: str) -> str | None:
        ...

    def get_flatten_domain_for_cube(
        self,
        registry_name: str,
        cube: str,
        revision: int | None = None,
    ) -> str | None:
        ...
