"""Tests for querygate.dispatch.facade — validation, normalization, single submission."""

from __future__ import annotations

import io
import json

import pytest

from querygate.core.errors import NotFoundError, ProtocolViolationError, ValidationError
from querygate.dispatch.bucketing import CallerContext, UserInfo
from querygate.dispatch.facade import QueryDispatcher, read_body
from querygate.dispatch.outcome import Failure, Success
from querygate.domain.enums import Engine, Schema


class TestReadBody:
    @pytest.mark.parametrize(
        "raw",
        [b'{"a":1}', bytearray(b'{"a":1}'), memoryview(b'{"a":1}'), '{"a":1}', io.BytesIO(b'{"a":1}')],
    )
    def test_supported_inputs(self, raw):
        assert read_body(raw) == b'{"a":1}'

    def test_text_stream(self):
        assert read_body(io.StringIO("é")) == "é".encode("utf-8")

    def test_none_is_empty(self):
        assert read_body(None) == b""

    def test_unsupported_type(self):
        with pytest.raises(ValidationError, match="unsupported request body type: int"):
            read_body(42)


class TestSynchronousRejection:
    def test_unknown_schema(self, stub_service, sample_body):
        with pytest.raises(NotFoundError, match="schema teacher not found"):
            QueryDispatcher(stub_service).dispatch("reg1", "teacher", raw_body=sample_body)
        assert stub_service.processors == []

    def test_unknown_registry(self, stub_service, sample_body):
        with pytest.raises(NotFoundError, match="registry nope not found") as exc_info:
            QueryDispatcher(stub_service).dispatch("nope", "student", raw_body=sample_body)
        assert exc_info.value.context.registry == "nope"
        assert stub_service.processors == []

    def test_schema_checked_first(self, stub_service, sample_body):
        with pytest.raises(NotFoundError, match="schema"):
            QueryDispatcher(stub_service).dispatch("nope", "teacher", raw_body=sample_body)

    @pytest.mark.parametrize("raw", [b"", b"{not json", b'{"cube": "c"}', b"[]"])
    def test_bad_body(self, stub_service, raw):
        with pytest.raises(ValidationError):
            QueryDispatcher(stub_service).dispatch("reg1", "student", raw_body=raw)
        assert stub_service.process_calls == 0


class TestSubmission:
    def test_schema_case_insensitive(self, stub_service, sample_body):
        QueryDispatcher(stub_service).dispatch("reg1", "StUdEnT", raw_body=sample_body)
        _, request, _ = stub_service.processors[0].calls[0]
        assert request.request_schema is Schema.STUDENT

    def test_callbacks_bound_before_single_process(self, stub_service, sample_body):
        QueryDispatcher(stub_service).dispatch("reg1", "student", raw_body=sample_body)
        assert len(stub_service.processors) == 1
        assert stub_service.processors[0].callbacks_bound_at_process == (True, True)
        assert stub_service.process_calls == 1

    def test_overrides_and_caller_reach_processor(self, stub_service, sample_body):
        caller = CallerContext(user_id="u1", is_internal="TRUE", request_id="req-9")
        deferred = QueryDispatcher(stub_service).dispatch(
            "reg1",
            "student",
            raw_body=sample_body,
            debug=True,
            force_engine="druid",
            force_revision=3,
            caller=caller,
        )
        bucket_params, request, raw = stub_service.processors[0].calls[0]
        assert request.is_debug_enabled is True
        assert request.query_engine is Engine.DRUID
        assert bucket_params.user_info == UserInfo(user_id="u1", is_internal=True)
        assert bucket_params.force_revision == 3
        assert raw == sample_body
        assert deferred.request_id == "req-9"

    def test_unknown_force_engine_ignored(self, stub_service, sample_body):
        QueryDispatcher(stub_service).dispatch("reg1", "student", raw_body=sample_body, force_engine="Druid")
        _, request, _ = stub_service.processors[0].calls[0]
        assert request.query_engine is None

    @pytest.mark.parametrize("revision", [None, 0])
    def test_force_revision_absent_vs_zero(self, stub_service, sample_body, revision):
        QueryDispatcher(stub_service).dispatch(
            "reg1", "student", raw_body=sample_body, force_revision=revision
        )
        bucket_params, _, _ = stub_service.processors[0].calls[0]
        assert bucket_params.force_revision == revision

    def test_stream_body(self, stub_service, sample_body):
        QueryDispatcher(stub_service).dispatch("reg1", "student", raw_body=io.BytesIO(sample_body))
        _, request, raw = stub_service.processors[0].calls[0]
        assert raw == sample_body
        assert request.cube == "performance_stats"


class TestOutcome:
    def test_returns_before_outcome(self, make_stub_service, sample_body):
        service = make_stub_service()
        deferred = QueryDispatcher(service).dispatch("reg1", "student", raw_body=sample_body)
        assert deferred.resolved is False
        service.processors[0].succeed([["2024-01-01", 1]])
        assert deferred.resolved is True

    def test_success(self, stub_service, sample_body):
        deferred = QueryDispatcher(stub_service).dispatch("reg1", "student", raw_body=sample_body)
        outcome = deferred.outcome(timeout=1)
        assert isinstance(outcome, Success)
        assert json.loads(b"".join(outcome.body))["rows"] == [["2024-01-01", 10], ["2024-01-02", 7]]

    def test_failure_cause_propagated(self, make_stub_service, sample_body):
        cause = ConnectionError("broker down")
        service = make_stub_service(script=lambda p: p.fail("broker down", cause))
        outcome = QueryDispatcher(service).dispatch("reg1", "student", raw_body=sample_body).outcome(1)
        assert isinstance(outcome, Failure)
        assert outcome.error is cause

    def test_processor_resolving_twice_is_surfaced(self, make_stub_service, sample_body):
        def twice(p):
            p.succeed([])
            p.fail("late")

        service = make_stub_service(script=twice)
        with pytest.raises(ProtocolViolationError):
            QueryDispatcher(service).dispatch("reg1", "student", raw_body=sample_body)

    def test_hung_processor_times_out(self, make_stub_service, sample_body):
        dispatcher = QueryDispatcher(make_stub_service(), outcome_timeout_s=0.05)
        deferred = dispatcher.dispatch("reg1", "student", raw_body=sample_body)
        with pytest.raises(ProtocolViolationError, match="no outcome delivered"):
            deferred.outcome()
