"""
Error envelope shared by every querygate endpoint.

Query responses are streamed documents and domain responses are the
registry's own JSON, so only failures need a common schema: RFC 7807
problem details, with per-field entries for request bodies that fail
validation.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """One field-level problem in a rejected request body."""

    code: str = Field(description="Validation error type, e.g. 'missing' or 'greater_than_equal'")
    message: str = Field(description="What is wrong with the field")
    field: str | None = Field(default=None, description="Dotted path into the request body, e.g. 'selectFields.0.field'")


class ProblemDetail(BaseModel):
    """RFC 7807 problem document.

    Example:
        {
            "type": "about:blank",
            "title": "Bad Gateway",
            "status": 502,
            "detail": "cube nope not found in registry reg1",
            "instance": "http://testserver/registry/reg1/schemas/student/query",
            "errors": []
        }
    """

    type: str = Field(default="about:blank", description="Problem type URI")
    title: str = Field(description="Reason phrase for the status")
    status: int = Field(description="404 unknown registry/schema/cube, 400 bad body, 502 downstream failure, 500 otherwise")
    detail: str = Field(default="", description="Error message; hidden for unexpected errors unless debug is on")
    instance: str = Field(default="", description="URL of the request that failed")
    errors: list[ErrorDetail] = Field(default_factory=list, description="Field-level problems for 400 responses")
