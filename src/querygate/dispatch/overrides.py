"""
Per-call overrides applied to a parsed reporting request.

Two overrides exist, applied in this order, each on the output of the
previous step:

1. ``debug`` — switch on engine debug output.
2. ``force_engine`` — pin the request to one engine.

Both are pure: the input request is never modified.  An engine name that
does not match a known engine value exactly (case-sensitive) is ignored
rather than rejected, and so is a known engine that cannot be pinned
(``presto``).
"""

from __future__ import annotations

from collections.abc import Callable

from querygate.core.logging import get_logger
from querygate.domain.enums import Engine
from querygate.domain.request import (
    ReportingRequest,
    enable_debug,
    force_druid,
    force_hive,
    force_oracle,
)

logger = get_logger(__name__)

ENGINE_OVERRIDES: dict[Engine, Callable[[ReportingRequest], ReportingRequest]] = {
    Engine.ORACLE: force_oracle,
    Engine.DRUID: force_druid,
    Engine.HIVE: force_hive,
}


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def apply_debug(request: ReportingRequest, debug: bool) -> ReportingRequest:
    return enable_debug(request) if debug else request


def apply_engine(request: ReportingRequest, force_engine: str | None) -> ReportingRequest:
    """Pin *request* to the engine named by *force_engine*, if it is one we can force."""
    if _is_blank(force_engine):
        return request
    engine = Engine.from_name(force_engine)
    override = ENGINE_OVERRIDES.get(engine) if engine is not None else None
    if override is None:
        logger.debug("overrides.engine_ignored", force_engine=force_engine)
        return request
    return override(request)


def apply_overrides(
    request: ReportingRequest,
    debug: bool = False,
    force_engine: str | None = None,
) -> ReportingRequest:
    """Apply the debug and engine overrides to *request*.

    Returns *request* itself when neither override is requested.
    """
    if not debug and _is_blank(force_engine):
        return request
    return apply_engine(apply_debug(request, debug), force_engine)
