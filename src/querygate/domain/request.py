"""
Reporting request — the canonical, validated form of a query body.

A :class:`ReportingRequest` is produced once per call by
:func:`deserialize_sync` and never mutated afterwards; every override is a
new value built with ``model_copy``.

The façade only cares about a handful of fields (cube, selected fields,
paging, additional parameters).  Filter and sort expressions are carried
through opaquely for the downstream service.

Example body::

    {
        "cube": "performance_stats",
        "selectFields": [{"field": "Day"}, {"field": "Impressions", "alias": "imps"}],
        "filterExpressions": [{"field": "Day", "operator": "between", "from": "2024-01-01", "to": "2024-01-07"}],
        "rowsPerPage": 100
    }

Tags:
    querygate, domain, request, pydantic
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from querygate.core.errors import ValidationError
from querygate.domain.enums import Engine, Schema


class SelectField(BaseModel):
    """A single selected column, optionally aliased in the output."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(min_length=1, description="Column name in the cube")
    alias: str | None = Field(default=None, description="Output column name")

    @property
    def output_name(self) -> str:
        return self.alias or self.field


class AdditionalParameters(BaseModel):
    """Per-request knobs forwarded to the downstream engine."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    debug: bool = Field(default=False, description="Ask the engine for debug output")
    query_engine: Engine | None = Field(
        default=None,
        validation_alias=AliasChoices("queryEngine", "query_engine"),
        serialization_alias="queryEngine",
        description="Engine the request is pinned to",
    )


class ReportingRequest(BaseModel):
    """Parsed, validated reporting query.

    Attributes:
        cube: Cube to query.
        select_fields: Columns to return, in order.
        filter_expressions: Opaque filter clauses.
        sort_by: Opaque sort clauses.
        pagination_start_index: Zero-based first row.
        rows_per_page: Page size, ``-1`` for unlimited.
        additional_parameters: Debug / engine pinning.
        request_schema: Schema the request was parsed against (set by
            :func:`deserialize_sync`, not read from the body).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    cube: str = Field(min_length=1)
    select_fields: list[SelectField] = Field(
        min_length=1,
        validation_alias=AliasChoices("selectFields", "fields", "select_fields"),
        serialization_alias="selectFields",
    )
    filter_expressions: list[dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("filterExpressions", "filter_expressions"),
        serialization_alias="filterExpressions",
    )
    sort_by: list[dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("sortBy", "sort_by"),
        serialization_alias="sortBy",
    )
    pagination_start_index: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("paginationStartIndex", "pagination_start_index"),
        serialization_alias="paginationStartIndex",
    )
    rows_per_page: int = Field(
        default=-1,
        ge=-1,
        validation_alias=AliasChoices("rowsPerPage", "rows_per_page"),
        serialization_alias="rowsPerPage",
    )
    additional_parameters: AdditionalParameters = Field(
        default_factory=AdditionalParameters,
        validation_alias=AliasChoices("additionalParameters", "additional_parameters"),
        serialization_alias="additionalParameters",
    )
    request_schema: Schema | None = Field(default=None, exclude=True)

    @field_validator("cube")
    @classmethod
    def _cube_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("cube must not be blank")
        return value

    @field_validator("select_fields", mode="before")
    @classmethod
    def _accept_bare_field_names(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"field": item} if isinstance(item, str) else item for item in value]
        return value

    @property
    def is_debug_enabled(self) -> bool:
        return self.additional_parameters.debug

    @property
    def query_engine(self) -> Engine | None:
        return self.additional_parameters.query_engine


def deserialize_sync(raw: bytes, schema: Schema) -> ReportingRequest:
    """Parse *raw* JSON into a :class:`ReportingRequest` bound to *schema*.

    Either the whole body parses or :class:`ValidationError` is raised;
    no partially-built request ever escapes.

    Raises:
        ValidationError: Empty body, invalid JSON, or a field failing validation.
    """
    if not raw or not raw.strip():
        raise ValidationError("request body is empty").with_context(schema=schema.value)
    try:
        parsed = ReportingRequest.model_validate_json(raw)
    except PydanticValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        summary = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in errors
        )
        raise ValidationError(
            f"invalid reporting request: {summary}",
            errors=[{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in errors],
            cause=exc,
        ).with_context(schema=schema.value) from exc
    return parsed.model_copy(update={"request_schema": schema})


def enable_debug(request: ReportingRequest) -> ReportingRequest:
    """Return a copy of *request* with engine debug output switched on."""
    params = request.additional_parameters.model_copy(update={"debug": True})
    return request.model_copy(update={"additional_parameters": params})


def _force(request: ReportingRequest, engine: Engine) -> ReportingRequest:
    params = request.additional_parameters.model_copy(update={"query_engine": engine})
    return request.model_copy(update={"additional_parameters": params})


def force_oracle(request: ReportingRequest) -> ReportingRequest:
    return _force(request, Engine.ORACLE)


def force_druid(request: ReportingRequest) -> ReportingRequest:
    return _force(request, Engine.DRUID)


def force_hive(request: ReportingRequest) -> ReportingRequest:
    return _force(request, Engine.HIVE)
