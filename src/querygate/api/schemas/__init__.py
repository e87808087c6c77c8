"""API schemas."""

from querygate.api.schemas.common import ErrorDetail, ProblemDetail

__all__ = ["ErrorDetail", "ProblemDetail"]
