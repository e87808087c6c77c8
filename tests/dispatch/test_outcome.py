"""Tests for querygate.dispatch.outcome — exactly-once resolution."""

from __future__ import annotations

import asyncio
import json
import threading

import pytest

from querygate.core.errors import DownstreamFailureError, ProtocolViolationError
from querygate.dispatch.outcome import DeferredResponse, Failure, OutcomeResolver, Success
from querygate.dispatch.processor import ColumnInfo, GeneralError, RequestModel, RequestResult
from querygate.dispatch.streaming import JsonStreamingOutput


def _model() -> RequestModel:
    return RequestModel(registry_name="reg1", cube="performance_stats", columns=(ColumnInfo("Day"),))


class TestDeferredResponse:
    def test_unresolved_initially(self):
        assert DeferredResponse().resolved is False

    def test_resume_once(self):
        deferred = DeferredResponse()
        failure = Failure(error=RuntimeError("x"))
        deferred.resume(failure)
        assert deferred.resolved is True
        assert deferred.outcome() is failure

    def test_second_resume_raises_and_keeps_first(self):
        deferred = DeferredResponse(request_id="r1")
        first = Failure(error=RuntimeError("first"))
        deferred.resume(first)
        with pytest.raises(ProtocolViolationError, match="already resumed with failure") as exc_info:
            deferred.resume(Failure(error=RuntimeError("second")))
        assert exc_info.value.context.request_id == "r1"
        assert deferred.outcome() is first

    def test_blocking_outcome_times_out(self):
        with pytest.raises(ProtocolViolationError, match="no outcome delivered"):
            DeferredResponse(timeout=0.05).outcome()

    def test_explicit_timeout_overrides_default(self):
        with pytest.raises(ProtocolViolationError, match="0.01s"):
            DeferredResponse(timeout=60).outcome(timeout=0.01)

    @pytest.mark.asyncio
    async def test_wait_for_cross_thread_resume(self):
        deferred = DeferredResponse()
        error = RuntimeError("from worker")
        timer = threading.Timer(0.05, deferred.resume, args=(Failure(error=error),))
        timer.start()
        outcome = await deferred.wait(timeout=5)
        assert isinstance(outcome, Failure)
        assert outcome.error is error

    @pytest.mark.asyncio
    async def test_wait_already_resolved(self):
        deferred = DeferredResponse()
        failure = Failure(error=RuntimeError("x"))
        deferred.resume(failure)
        assert await deferred.wait() is failure

    @pytest.mark.asyncio
    async def test_wait_times_out(self):
        with pytest.raises(ProtocolViolationError, match="no outcome delivered"):
            await DeferredResponse().wait(timeout=0.05)

    @pytest.mark.asyncio
    async def test_late_resume_after_timeout_still_lands(self):
        deferred = DeferredResponse()
        with pytest.raises(ProtocolViolationError):
            await deferred.wait(timeout=0.01)
        failure = Failure(error=RuntimeError("late"))
        deferred.resume(failure)
        assert deferred.outcome() is failure

    @pytest.mark.asyncio
    async def test_wait_does_not_block_event_loop(self):
        deferred = DeferredResponse()
        ticks = 0

        async def ticker():
            nonlocal ticks
            while not deferred.resolved:
                ticks += 1
                await asyncio.sleep(0.005)

        task = asyncio.create_task(ticker())
        threading.Timer(0.1, deferred.resume, args=(Failure(error=RuntimeError("x")),)).start()
        await deferred.wait(timeout=5)
        await task
        assert ticks > 1


class TestOutcomeResolver:
    def test_success_wraps_rows_in_stream(self):
        deferred = DeferredResponse()
        model = _model()
        OutcomeResolver(deferred).on_success(model, RequestResult(rows=[["2024-01-01"]]))
        outcome = deferred.outcome()
        assert isinstance(outcome, Success)
        assert outcome.model is model
        assert isinstance(outcome.body, JsonStreamingOutput)
        assert json.loads(b"".join(outcome.body))["rows"] == [["2024-01-01"]]

    def test_failure_with_cause_propagates_cause(self):
        deferred = DeferredResponse()
        cause = KeyError("missing partition")
        OutcomeResolver(deferred).on_failure(GeneralError(message="lookup failed", cause=cause))
        outcome = deferred.outcome()
        assert isinstance(outcome, Failure)
        assert outcome.error is cause

    def test_failure_without_cause_synthesizes_error(self):
        deferred = DeferredResponse()
        OutcomeResolver(deferred).on_failure(GeneralError(message="engine unavailable"))
        error = deferred.outcome().error
        assert isinstance(error, DownstreamFailureError)
        assert error.message == "engine unavailable"

    def test_success_then_failure_is_violation(self):
        deferred = DeferredResponse()
        resolver = OutcomeResolver(deferred)
        resolver.on_success(_model(), RequestResult(rows=[]))
        with pytest.raises(ProtocolViolationError, match="refusing second failure"):
            resolver.on_failure(GeneralError(message="late"))
        assert isinstance(deferred.outcome(), Success)

    def test_failure_twice_is_violation(self):
        resolver = OutcomeResolver(DeferredResponse())
        resolver.on_failure(GeneralError(message="one"))
        with pytest.raises(ProtocolViolationError):
            resolver.on_failure(GeneralError(message="two"))

    def test_success_twice_is_violation(self):
        resolver = OutcomeResolver(DeferredResponse())
        resolver.on_success(_model(), RequestResult(rows=[]))
        with pytest.raises(ProtocolViolationError):
            resolver.on_success(_model(), RequestResult(rows=[]))

    def test_racing_callbacks_resolve_once(self):
        deferred = DeferredResponse()
        resolver = OutcomeResolver(deferred)
        barrier = threading.Barrier(8)
        violations: list[ProtocolViolationError] = []
        lock = threading.Lock()

        def fire(i: int) -> None:
            barrier.wait()
            try:
                if i % 2:
                    resolver.on_success(_model(), RequestResult(rows=[]))
                else:
                    resolver.on_failure(GeneralError(message=f"f{i}"))
            except ProtocolViolationError as e:
                with lock:
                    violations.append(e)

        threads = [threading.Thread(target=fire, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert deferred.resolved
        assert len(violations) == 7
