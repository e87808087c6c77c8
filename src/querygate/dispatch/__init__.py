"""Asynchronous dispatch and outcome resolution.

Architecture::

    overrides.py   debug / engine overrides (pure)
    bucketing.py   CallerContext → BucketParams
    processor.py   downstream QueryService / RequestProcessor contract
    outcome.py     Outcome, DeferredResponse, OutcomeResolver
    streaming.py   JsonStreamingOutput
    facade.py      QueryDispatcher
    local.py       LocalQueryService (in-process processor)
"""

from querygate.dispatch.bucketing import BucketParams, CallerContext, UserInfo, build_bucket_params
from querygate.dispatch.facade import DispatchUnit, QueryDispatcher
from querygate.dispatch.local import CubeSpec, LocalQueryService, LocalRegistry
from querygate.dispatch.outcome import DeferredResponse, Failure, Outcome, OutcomeResolver, Success
from querygate.dispatch.overrides import apply_overrides
from querygate.dispatch.processor import (
    ColumnInfo,
    GeneralError,
    QueryService,
    RequestModel,
    RequestProcessor,
    RequestResult,
)
from querygate.dispatch.streaming import JsonStreamingOutput, emit

__all__ = [
    "BucketParams",
    "CallerContext",
    "ColumnInfo",
    "CubeSpec",
    "DeferredResponse",
    "DispatchUnit",
    "Failure",
    "GeneralError",
    "JsonStreamingOutput",
    "LocalQueryService",
    "LocalRegistry",
    "Outcome",
    "OutcomeResolver",
    "QueryDispatcher",
    "QueryService",
    "RequestModel",
    "RequestProcessor",
    "RequestResult",
    "Success",
    "UserInfo",
    "apply_overrides",
    "build_bucket_params",
    "emit",
]
