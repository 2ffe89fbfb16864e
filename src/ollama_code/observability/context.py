"""Active-span propagation through contextvars."""

from contextvars import ContextVar
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ollama_code.observability.tracing import Span


_current_span: ContextVar[Optional["Span"]] = ContextVar("ollama_code_current_span", default=None)


def current_span() -> Optional["Span"]:
    """Return the span active in the calling context, if any."""
    return _current_span.get()


def current_trace_id() -> str:
    """Return the active trace id, or "" outside any span."""
    span = _current_span.get()
    return span.trace_id if span is not None else ""
