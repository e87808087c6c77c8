"""
Structured logging for querygate.

``configure_logging`` is called once by the API lifespan; modules grab a
logger with ``get_logger(__name__)`` at import time.  Loggers stay lazy
until first use, so module-level loggers pick up whatever configuration
is in place when they first emit.

Output is JSON with ECS-style keys (``@timestamp``, ``log.level``,
``service.name``) when stdout is not a TTY, and colored console lines
otherwise.

Examples:
    >>> configure_logging(level="INFO", json_format=True)
    >>> logger = get_logger(__name__)
    >>> logger.info("query.dispatch", registry="reg1", schema="student")

    Correlation ids for everything logged inside a request:

    >>> async with LogContext(request_id="abc123", user_id="u1"):
    ...     logger.info("query.submitted")

Guardrails:
    Values bound here are for log correlation only.  The dispatcher gets
    the caller identity as an explicit ``CallerContext`` argument.

Tags:
    logging, structlog, observability, querygate
"""

from __future__ import annotations

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_service_name = "querygate"


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _service_name)
    return event_dict


def _ecs_keys(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename ``timestamp`` / ``level`` to their ECS names."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def _renderers(json_format: bool) -> list[Processor]:
    if json_format:
        return [_ecs_keys, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "querygate",
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Force JSON (True) or console (False); None picks JSON
            when stdout is not a TTY.
        service: Value of ``service.name`` on every event.

    Raises:
        ValueError: *level* is not a known level name.
    """
    global _service_name
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level: {level}")
    _service_name = service
    if json_format is None:
        json_format = not sys.stdout.isatty()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            _add_service,
            *_renderers(json_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric)


def get_logger(name: str | None = None) -> Any:
    """Lazy structlog logger carrying ``logger=<name>`` on every event."""
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger=name)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind correlation values for the duration of a ``with`` / ``async with`` block.

    Values that were already bound under the same keys are restored on
    exit, so nested scopes compose.
    """

    def __init__(self, **kwargs: Any) -> None:
        self._values = kwargs
        self._scope: AbstractContextManager[Any] | None = None

    def __enter__(self) -> LogContext:
        self._scope = structlog.contextvars.bound_contextvars(**self._values)
        self._scope.__enter__()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        assert self._scope is not None
        self._scope.__exit__(*exc_info)
        self._scope = None

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
