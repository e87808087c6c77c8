"""
Shared pytest fixtures for querygate tests.

This module provides:
- Sample request bodies
- Stub query services whose processors resolve (or misbehave) on demand
- A local query service with a small registry

Usage:
    Fixtures are auto-discovered by pytest::

        def test_something(stub_service, sample_body):
            ...
"""

from __future__ import annotations

import json
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from querygate.dispatch.bucketing import BucketParams
from querygate.dispatch.local import CubeSpec, LocalQueryService, LocalRegistry
from querygate.dispatch.processor import (
    ColumnInfo,
    FailureCallback,
    GeneralError,
    RequestModel,
    RequestResult,
    SuccessCallback,
)
from querygate.domain.enums import Engine
from querygate.domain.request import ReportingRequest


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if str(test_path).startswith("api"):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Request bodies
# =============================================================================


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    return {
        "cube": "performance_stats",
        "selectFields": [
            {"field": "Day"},
            {"field": "Impressions", "alias": "imps"},
        ],
        "filterExpressions": [
            {"field": "Day", "operator": "between", "from": "2024-01-01", "to": "2024-01-07"}
        ],
        "rowsPerPage": 100,
    }


@pytest.fixture
def sample_body(sample_payload: dict[str, Any]) -> bytes:
    return json.dumps(sample_payload).encode("utf-8")


# =============================================================================
# Stub processor / service
# =============================================================================


Script = Callable[["StubProcessor"], None]


def stub_model(cube: str = "performance_stats") -> RequestModel:
    return RequestModel(
        registry_name="reg1",
        cube=cube,
        columns=(ColumnInfo("Day"), ColumnInfo("imps", "FACT")),
        max_rows=100,
    )


class StubProcessor:
    """Records what it receives and runs *script* from ``process()``.

    The script decides how (and how often) callbacks fire, so tests can
    make the processor break its contract on purpose.
    """

    def __init__(self, script: Script | None = None) -> None:
        self.script = script
        self.success_callback: SuccessCallback | None = None
        self.failure_callback: FailureCallback | None = None
        self.calls: list[tuple[BucketParams, ReportingRequest, bytes]] = []
        self.callbacks_bound_at_process: tuple[bool, bool] | None = None

    def on_success(self, callback: SuccessCallback) -> None:
        self.success_callback = callback

    def on_failure(self, callback: FailureCallback) -> None:
        self.failure_callback = callback

    def process(self, bucket_params: BucketParams, request: ReportingRequest, raw_bytes: bytes) -> None:
        self.callbacks_bound_at_process = (
            self.success_callback is not None,
            self.failure_callback is not None,
        )
        self.calls.append((bucket_params, request, raw_bytes))
        if self.script is not None:
            self.script(self)

    # ── helpers for scripts ──────────────────────────────────────────

    def succeed(self, rows: Any = ()) -> None:
        assert self.success_callback is not None
        self.success_callback(stub_model(), RequestResult(rows=rows))

    def fail(self, message: str, cause: BaseException | None = None) -> None:
        assert self.failure_callback is not None
        self.failure_callback(GeneralError(message=message, cause=cause))


class StubQueryService:
    """QueryService that hands out :class:`StubProcessor` instances."""

    def __init__(self, registries: tuple[str, ...] = ("reg1",), script: Script | None = None) -> None:
        self.registries = registries
        self.script = script
        self.processors: list[StubProcessor] = []

    @property
    def process_calls(self) -> int:
        return sum(len(p.calls) for p in self.processors)

    def is_valid_registry(self, registry_name: str) -> bool:
        return registry_name in self.registries

    def processor_for(self, registry_name: str) -> StubProcessor:
        processor = StubProcessor(self.script)
        self.processors.append(processor)
        return processor

    def get_domain(self, registry_name: str) -> str | None:
        return '{"cubes":[]}' if registry_name in self.registries else None

    def get_domain_for_cube(self, registry_name: str, cube: str) -> str | None:
        return None

    def get_flatten_domain(self, registry_name: str) -> str | None:
        return None

    def get_flatten_domain_for_cube(
        self, registry_name: str, cube: str, revision: int | None = None
    ) -> str | None:
        return None


@pytest.fixture
def stub_service() -> StubQueryService:
    """Stub service whose processors resolve with two rows immediately."""
    return StubQueryService(script=lambda p: p.succeed([["2024-01-01", 10], ["2024-01-02", 7]]))


# =============================================================================
# Local service
# =============================================================================


def performance_rows(request: ReportingRequest, bucket_params: BucketParams):
    for day in range(1, 4):
        yield {"Day": f"2024-01-0{day}", "imps": day * 10}


@pytest.fixture
def local_registry() -> LocalRegistry:
    return LocalRegistry(
        name="reg1",
        cubes=[
            CubeSpec("performance_stats", {"Day": "DIM", "Impressions": "FACT"}, revision=0),
            CubeSpec(
                "performance_stats",
                {"Day": "DIM", "Impressions": "FACT", "Clicks": "FACT"},
                revision=1,
            ),
            CubeSpec("campaign", {"Campaign ID": "DIM"}, engines=(Engine.ORACLE,)),
        ],
        handler=performance_rows,
    )


@pytest.fixture
def local_service(local_registry: LocalRegistry) -> Generator[LocalQueryService, None, None]:
    service = LocalQueryService([local_registry], max_workers=2)
    yield service
    service.shutdown(wait=True)


@pytest.fixture
def make_stub_service() -> type[StubQueryService]:
    """The :class:`StubQueryService` class, for tests that script their own processor."""
    return StubQueryService
