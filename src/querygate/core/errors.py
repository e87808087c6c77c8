"""
Structured error types for querygate.

Every failure the dispatcher can surface is a :class:`QueryGateError`
subclass carrying a category, optional context, and an optional chained
cause.  The API layer maps categories to HTTP status codes; nothing below
the API knows about HTTP.

Manifesto:
    - **Typed taxonomy:** NotFound, Validation, DownstreamFailure and
      ProtocolViolation are distinct types, not string codes.
    - **Synchronous vs asynchronous:** NotFound and Validation are raised
      before any submission; DownstreamFailure only ever arrives through
      a resolved outcome.
    - **Error chaining:** wrapped exceptions stay reachable via ``cause``.

Architecture:
    ::

        QueryGateError (category, context, cause)
          ├── NotFoundError           NOT_FOUND   registry / schema / cube / revision
          ├── ValidationError         VALIDATION  unparsable request body
          ├── DownstreamFailureError  DOWNSTREAM  processor failed without a cause
          └── ProtocolViolationError  INTERNAL    outcome resolved twice / never

Tags:
    error-handling, exception-hierarchy, querygate, dispatch

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Categories used to route errors to an HTTP status and to alerting."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    DOWNSTREAM = "DOWNSTREAM"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error for logging.

    Attributes:
        registry: Registry name the call targeted.
        schema: Schema name the call targeted.
        cube: Cube name, for domain lookups.
        revision: Cube revision, for domain lookups.
        request_id: Correlation id of the HTTP request.
        metadata: Additional key-value pairs.
    """

    registry: str | None = None
    schema: str | None = None
    cube: str | None = None
    revision: int | None = None
    request_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["registry", "schema", "cube", "revision", "request_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class QueryGateError(Exception):
    """
    Base exception for all querygate errors.

    Subclasses set ``default_category``.  The ``cause`` keyword chains an
    underlying exception both on ``self.cause`` and ``__cause__`` so
    tracebacks show the original failure.

    Examples:
        >>> error = QueryGateError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> error = NotFoundError("schema foo not found").with_context(schema="foo")
        >>> error.context.schema
        'foo'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> QueryGateError:
        """
        Add context to this error (fluent API).

        Usage:
            raise NotFoundError("registry r1 not found").with_context(registry="r1")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class NotFoundError(QueryGateError):
    """Unknown registry, schema, cube or revision at lookup time."""

    default_category = ErrorCategory.NOT_FOUND


class ValidationError(QueryGateError):
    """
    Malformed or unparsable request body.

    Raised synchronously, before anything is submitted downstream.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.errors:
            result["errors"] = self.errors
        return result


class DownstreamFailureError(QueryGateError):
    """The query processor failed and supplied only a message."""

    default_category = ErrorCategory.DOWNSTREAM


class ProtocolViolationError(QueryGateError):
    """
    The processor broke its callback contract.

    Either an outcome was delivered twice or no outcome was delivered at
    all.  This is an internal defect, never a user-facing condition.
    """

    default_category = ErrorCategory.INTERNAL


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, QueryGateError):
        return error.category
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "QueryGateError",
    "NotFoundError",
    "ValidationError",
    "DownstreamFailureError",
    "ProtocolViolationError",
    "categorize_error",
]
