"""
API-specific settings.

Extends :class:`~querygate.core.settings.QueryGateBaseSettings` with
parameters that govern the REST transport (prefix, CORS, caller-identity
headers) and the dispatcher (worker threads, outcome timeout).

All values can be overridden via environment variables prefixed with
``QUERYGATE_``.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from querygate.core.settings import QueryGateBaseSettings


class QueryGateAPISettings(QueryGateBaseSettings):
    """Settings for the querygate REST API.

    Order of precedence (highest → lowest):
        1. Environment variables (``QUERYGATE_API_PREFIX``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    # ── Server ───────────────────────────────────────────────────────────
    port: int = Field(default=8080, description="Bind port")

    # ── API ──────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="", description="URL prefix for all endpoints")
    api_title: str = Field(default="querygate", description="OpenAPI title")
    api_version: str = Field(default="0.1.0", description="OpenAPI version string")

    # ── CORS ─────────────────────────────────────────────────────────────
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # ── Caller identity ──────────────────────────────────────────────────
    user_id_header: str = Field(default="X-User-Id", description="Header carrying the caller's user id")
    is_internal_header: str = Field(
        default="X-Is-Internal",
        description="Header carrying the internal-user flag",
    )

    # ── Dispatch ─────────────────────────────────────────────────────────
    worker_threads: int = Field(default=8, ge=1, description="Local query service thread pool size")
    outcome_timeout_s: float = Field(
        default=300.0,
        gt=0,
        description="Seconds to wait for a processor outcome before reporting a hang",
    )

    # ── Health ───────────────────────────────────────────────────────────
    health_registries: list[str] = Field(
        default_factory=list,
        description="Registries probed by /health and /health/ready",
    )

    model_config: dict[str, Any] = {
        "env_prefix": "QUERYGATE_",
        "env_file": ".env",
        "extra": "ignore",
        "env_nested_delimiter": "__",
    }
