"""
Streaming JSON emitter for query results.

:class:`JsonStreamingOutput` writes the result document incrementally::

    {"header":{"cube":"...","fields":[{"fieldName":"Day","fieldType":"DIM"}],"maxRows":100},
     "rows":[["2024-01-01",12],["2024-01-02",7]]}

The header is yielded before the first row is pulled from the row
source, so the first bytes reach the client while the processor is still
producing rows.  The output is single-pass: rows come from a one-shot
iterable, so iterating the output a second time raises ``RuntimeError``.

Both sync and async row sources are supported.  Starlette's
``StreamingResponse`` prefers ``__aiter__``; sync row sources are then
pulled in the threadpool so a slow producer never blocks the event loop.
"""

from __future__ import annotations

import json
import threading
from collections.abc import AsyncIterator, Iterator, Mapping
from typing import Any

from starlette.concurrency import iterate_in_threadpool

from querygate.dispatch.processor import RequestModel, Row, Rows

MEDIA_TYPE = "application/json"


def _dumps(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), default=str).encode("utf-8")


class JsonStreamingOutput:
    """Lazy, single-pass JSON byte stream for one query result."""

    media_type = MEDIA_TYPE

    def __init__(self, model: RequestModel, rows: Rows) -> None:
        self.model = model
        self._rows = rows
        self._consumed = False
        self._lock = threading.Lock()

    @property
    def consumed(self) -> bool:
        return self._consumed

    def _claim(self) -> None:
        with self._lock:
            if self._consumed:
                raise RuntimeError("streaming output can only be consumed once")
            self._consumed = True

    def header(self) -> dict[str, Any]:
        model = self.model
        header: dict[str, Any] = {
            "cube": model.cube,
            "fields": [{"fieldName": c.name, "fieldType": c.field_type} for c in model.columns],
            "maxRows": model.max_rows,
        }
        if model.is_debug_enabled:
            header["debug"] = {
                "engine": model.engine.value if model.engine else None,
                "revision": model.revision,
                **model.debug_info,
            }
        return header

    def _encode_row(self, row: Row) -> bytes:
        if isinstance(row, Mapping):
            row = [row.get(c.name) for c in self.model.columns]
        elif not isinstance(row, (list, tuple)):
            row = list(row)
        return _dumps(row)

    def _prefix(self) -> bytes:
        return b'{"header":' + _dumps(self.header()) + b',"rows":['

    def __iter__(self) -> Iterator[bytes]:
        if not hasattr(self._rows, "__iter__"):
            raise TypeError("row source is async-only; iterate with 'async for'")
        self._claim()
        return self._iter_rows()

    def __aiter__(self) -> AsyncIterator[bytes]:
        self._claim()
        return self._aiter_rows()

    def _iter_rows(self) -> Iterator[bytes]:
        yield self._prefix()
        first = True
        for row in self._rows:  # type: ignore[union-attr]
            yield self._encode_row(row) if first else b"," + self._encode_row(row)
            first = False
        yield b"]}"

    async def _aiter_rows(self) -> AsyncIterator[bytes]:
        yield self._prefix()
        if hasattr(self._rows, "__aiter__"):
            source = self._rows
        else:
            source = iterate_in_threadpool(iter(self._rows))  # type: ignore[arg-type]
        first = True
        async for row in source:  # type: ignore[union-attr]
            yield self._encode_row(row) if first else b"," + self._encode_row(row)
            first = False
        yield b"]}"


def emit(model: RequestModel, rows: Rows) -> JsonStreamingOutput:
    """Wrap *rows* in a lazy JSON stream shaped by *model*."""
    return JsonStreamingOutput(model, rows)
