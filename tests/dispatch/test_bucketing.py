"""Tests for querygate.dispatch.bucketing."""

from __future__ import annotations

import dataclasses

import pytest

from querygate.dispatch.bucketing import (
    BucketParams,
    CallerContext,
    UserInfo,
    build_bucket_params,
    parse_is_internal,
)


class TestParseIsInternal:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("true", True),
            ("TRUE", True),
            (" True ", True),
            (True, True),
            ("false", False),
            ("yes", False),
            ("1", False),
            ("", False),
            (None, False),
            (False, False),
        ],
    )
    def test_lenient_parse(self, raw, expected):
        assert parse_is_internal(raw) is expected


class TestBuildBucketParams:
    def test_from_caller(self):
        caller = CallerContext(user_id="u1", is_internal="TRUE", request_id="r1")
        params = build_bucket_params(caller, force_revision=3)
        assert params == BucketParams(user_info=UserInfo("u1", True), force_revision=3)

    def test_no_caller(self):
        params = build_bucket_params(None)
        assert params.user_info == UserInfo(user_id=None, is_internal=False)
        assert params.force_revision is None

    def test_revision_zero_is_kept(self):
        assert build_bucket_params(CallerContext(), force_revision=0).force_revision == 0

    def test_garbage_flag_never_raises(self):
        params = build_bucket_params(CallerContext(user_id="u2", is_internal="maybe?"))
        assert params.user_info.is_internal is False

    def test_frozen(self):
        params = build_bucket_params(None)
        with pytest.raises(dataclasses.FrozenInstanceError):
            params.force_revision = 1  # type: ignore[misc]
