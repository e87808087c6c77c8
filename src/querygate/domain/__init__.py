"""Domain values: engines, schemas and the canonical reporting request."""

from querygate.domain.enums import Engine, Schema
from querygate.domain.request import (
    AdditionalParameters,
    ReportingRequest,
    SelectField,
    deserialize_sync,
    enable_debug,
    force_druid,
    force_hive,
    force_oracle,
)

__all__ = [
    "AdditionalParameters",
    "Engine",
    "ReportingRequest",
    "Schema",
    "SelectField",
    "deserialize_sync",
    "enable_debug",
    "force_druid",
    "force_hive",
    "force_oracle",
]
