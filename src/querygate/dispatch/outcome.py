"""Outcome resolution — exactly one terminal result per dispatched request.

Every dispatched request ends in exactly one :data:`Outcome`: a
:class:`Success` carrying the streaming body, or a :class:`Failure`
carrying the error to surface.  The :class:`DeferredResponse` is the only
object shared between the submitting side and whichever processor thread
later resolves it.

Lifecycle::

    Submitted ──on_success──▶ Resolved(Success)
        │
        └──────on_failure──▶ Resolved(Failure)

    Resolved ──any resume──▶ ProtocolViolationError   (never absorbed)

The guard is enforced here with a lock around a single-assignment
``concurrent.futures.Future``; the processor is not trusted to keep its
side of the contract.

Example:
    >>> deferred = DeferredResponse()
    >>> resolver = OutcomeResolver(deferred)
    >>> processor.on_success(resolver.on_success)
    >>> processor.on_failure(resolver.on_failure)
    >>> processor.process(bucket_params, request, raw)
    >>> outcome = await deferred.wait()
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from dataclasses import dataclass

from querygate.core.errors import DownstreamFailureError, ProtocolViolationError
from querygate.core.logging import get_logger
from querygate.dispatch.processor import GeneralError, RequestModel, RequestResult
from querygate.dispatch.streaming import JsonStreamingOutput, emit

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Success:
    model: RequestModel
    body: JsonStreamingOutput


@dataclass(frozen=True, slots=True)
class Failure:
    error: BaseException


Outcome = Success | Failure


def _kind(outcome: Outcome) -> str:
    return "success" if isinstance(outcome, Success) else "failure"


class DeferredResponse:
    """Single-assignment handle for the outcome of one dispatched request.

    ``resume`` may be called from any thread, exactly once.  A second call
    raises :class:`ProtocolViolationError` to the caller that made it.

    Parameters
    ----------
    timeout : float | None
        Default seconds :meth:`wait` / :meth:`outcome` block before declaring
        the processor hung.  ``None`` waits forever.
    """

    def __init__(self, *, timeout: float | None = None, request_id: str | None = None) -> None:
        self._future: Future[Outcome] = Future()
        self._lock = threading.Lock()
        self._timeout = timeout
        self.request_id = request_id

    @property
    def resolved(self) -> bool:
        return self._future.done()

    def resume(self, outcome: Outcome) -> None:
        """Deliver the terminal outcome."""
        with self._lock:
            if self._future.done():
                previous = self._future.result()
                logger.critical(
                    "outcome.resumed_twice",
                    request_id=self.request_id,
                    first=_kind(previous),
                    second=_kind(outcome),
                )
                raise ProtocolViolationError(
                    f"response already resumed with {_kind(previous)}, "
                    f"refusing second {_kind(outcome)}"
                ).with_context(request_id=self.request_id)
            self._future.set_result(outcome)

    def _hung(self, timeout: float | None) -> ProtocolViolationError:
        logger.critical("outcome.not_resolved", request_id=self.request_id, timeout_s=timeout)
        return ProtocolViolationError(
            f"no outcome delivered within {timeout}s"
        ).with_context(request_id=self.request_id)

    def outcome(self, timeout: float | None = None) -> Outcome:
        """Block the current thread until resolved."""
        timeout = self._timeout if timeout is None else timeout
        try:
            return self._future.result(timeout)
        except TimeoutError:
            raise self._hung(timeout) from None

    async def wait(self, timeout: float | None = None) -> Outcome:
        """Await the outcome without blocking the event loop."""
        timeout = self._timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(
                asyncio.shield(asyncio.wrap_future(self._future)),
                timeout=timeout,
            )
        except TimeoutError:
            raise self._hung(timeout) from None


class OutcomeResolver:
    """The pair of callbacks bound to a processor for one request."""

    def __init__(self, deferred: DeferredResponse) -> None:
        self._deferred = deferred

    def on_success(self, model: RequestModel, result: RequestResult) -> None:
        logger.info(
            "outcome.success",
            request_id=self._deferred.request_id,
            cube=model.cube,
            engine=model.engine.value if model.engine else None,
        )
        self._deferred.resume(Success(model=model, body=emit(model, result.rows)))

    def on_failure(self, error: GeneralError) -> None:
        if error.cause is not None:
            failure: BaseException = error.cause
        else:
            failure = DownstreamFailureError(error.message)
        logger.warning(
            "outcome.failure",
            request_id=self._deferred.request_id,
            error=error.message,
            has_cause=error.cause is not None,
        )
        self._deferred.resume(Failure(error=failure))
