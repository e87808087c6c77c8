"""
Engine and schema enums shared by the dispatch and API layers.

STDLIB ONLY - NO PYDANTIC.
"""

from __future__ import annotations

from enum import Enum


class Engine(str, Enum):
    """
    Downstream query-execution backends.

    Lookup by value is case-sensitive: ``"druid"`` resolves, ``"Druid"``
    does not.
    """

    ORACLE = "oracle"
    DRUID = "druid"
    HIVE = "hive"
    PRESTO = "presto"

    @classmethod
    def from_name(cls, value: str | None) -> Engine | None:
        """Return the engine whose value equals *value*, or ``None``."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class Schema(str, Enum):
    """
    Caller-facing namespaces that gate which queries are valid.
    """

    ADVERTISER = "advertiser"
    RESELLER = "reseller"
    INTERNAL = "internal"
    STUDENT = "student"

    @classmethod
    def from_name_insensitive(cls, name: str | None) -> Schema | None:
        """Case-insensitive lookup; ``None`` when *name* is unknown."""
        if not name:
            return None
        lowered = name.strip().lower()
        for member in cls:
            if member.value == lowered:
                return member
        return None
