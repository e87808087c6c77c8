"""Shared base settings for querygate services.

``QueryGateBaseSettings`` carries the knobs every entry point needs (bind
address, debug mode, log level).  The API settings extend it with
transport-specific fields.

Examples:
    >>> from querygate.core.settings import QueryGateBaseSettings
    >>> class WorkerSettings(QueryGateBaseSettings):
    ...     model_config = {"env_prefix": "QUERYGATE_WORKER_"}
    ...     threads: int = 8

Tags:
    settings, configuration, pydantic, environment, querygate
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class QueryGateBaseSettings(BaseSettings):
    """Common settings shared across querygate entry points.

    Fields
    ──────
    host         : Bind address for the HTTP transport
    port         : Bind port for the HTTP transport
    debug        : Enable debug mode (error details in responses, verbose logs)
    log_level    : Structlog log level
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Network ──────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
