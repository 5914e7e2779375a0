"""Log correlation: trace ids plus the encoder operation in flight."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING
from uuid import uuid4


if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(frozen=True)
class LogContext:
    trace_id: str
    span_id: str
    operation: str = ""

    def as_fields(self) -> dict[str, str]:
        fields = {"trace_id": self.trace_id, "span_id": self.span_id}
        if self.operation:
            fields["operation"] = self.operation
        return fields


_log_context: ContextVar[LogContext | None] = ContextVar("vectordb_text_log_context", default=None)


def current_log_context() -> LogContext:
    """Return the active context, starting a fresh trace when none is set."""
    ctx = _log_context.get()
    if ctx is None:
        ctx = LogContext(trace_id=uuid4().hex, span_id=uuid4().hex[:16])
        _log_context.set(ctx)
    return ctx


def set_log_context(trace_id: str, span_id: str, operation: str = "") -> None:
    _log_context.set(LogContext(trace_id=trace_id, span_id=span_id, operation=operation))


def reset_log_context() -> None:
    _log_context.set(None)


@contextmanager
def bind_span(operation: str, *, span_id: str | None = None, trace_id: str | None = None) -> Iterator[LogContext]:
    """Scope log records to ``operation``; the previous context returns on exit."""
    previous = current_log_context()
    ctx = replace(
        previous,
        operation=operation,
        span_id=span_id or previous.span_id,
        trace_id=trace_id or previous.trace_id,
    )
    token = _log_context.set(ctx)
    try:
        yield ctx
    finally:
        _log_context.reset(token)
