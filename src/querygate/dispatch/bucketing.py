"""
Bucketing parameters — per-request identity and revision routing.

The caller's identity arrives as an explicit :class:`CallerContext`
built by the transport layer; nothing here reads ambient or thread-local
state.

``force_revision`` is ``None`` when the caller did not ask for one.  A
value of ``0`` is a real, forced revision 0.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CallerContext:
    """Request-scoped caller identity as received from the transport.

    Attributes:
        user_id: Authenticated user identifier, if any.
        is_internal: Raw internal-user flag, unparsed (e.g. ``"true"``).
        request_id: Correlation id of the inbound request.
    """

    user_id: str | None = None
    is_internal: str | None = None
    request_id: str | None = None


@dataclass(frozen=True, slots=True)
class UserInfo:
    user_id: str | None
    is_internal: bool = False


@dataclass(frozen=True, slots=True)
class BucketParams:
    """Routing parameters handed to the query processor with each request."""

    user_info: UserInfo
    force_revision: int | None = None


def parse_is_internal(raw: object) -> bool:
    """Lenient boolean parse: ``"true"`` (any case) is True, everything else False."""
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return False
    return str(raw).strip().lower() == "true"


def build_bucket_params(
    caller: CallerContext | None,
    force_revision: int | None = None,
) -> BucketParams:
    """Build :class:`BucketParams` for one request.  Never raises."""
    caller = caller or CallerContext()
    return BucketParams(
        user_info=UserInfo(
            user_id=caller.user_id,
            is_internal=parse_is_internal(caller.is_internal),
        ),
        force_revision=force_revision,
    )
