"""Span-based tracing with parent/child propagation via contextvars."""

import secrets
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from ollama_code.observability.context import _current_span, current_span
from ollama_code.observability.logger import Logger


MAX_SPANS = 1000


def new_id() -> str:
    """128-bit random identifier, hex encoded."""
    return secrets.token_hex(16)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SpanEvent:
    name: str
    timestamp: datetime
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class Span:
    """One timed unit of work.

    A span becomes visible in the tracer only once it is ended.
    """
    trace_id: str
    span_id: str
    name: str
    parent_id: Optional[str] = None
    start_time: datetime = field(default_factory=_now)
    end_time: Optional[datetime] = None
    tags: dict[str, str] = field(default_factory=dict)
    events: list[SpanEvent] = field(default_factory=list)
    error: Optional[str] = None
    _started: float = field(default_factory=time.perf_counter, repr=False)
    _duration: Optional[float] = field(default=None, repr=False)

    def add_tag(self, key: str, value: Any) -> None:
        self.tags[key] = str(value)

    def add_event(self, name: str, **attributes: Any) -> None:
        self.events.append(SpanEvent(name=name, timestamp=_now(), attributes=attributes))

    def set_error(self, error: Any) -> None:
        self.error = str(error)
        self.tags["error"] = "true"

    def finish(self) -> None:
        if self.end_time is not None:
            return
        self._duration = time.perf_counter() - self._started
        # Wall clock may step backwards; keep end >= start.
        self.end_time = max(_now(), self.start_time)

    @property
    def is_finished(self) -> bool:
        return self.end_time is not None

    @property
    def duration_ms(self) -> float:
        """Elapsed milliseconds (still running spans report time so far)."""
        if self._duration is not None:
            return self._duration * 1000
        return (time.perf_counter() - self._started) * 1000


class Tracer:
    """Collects finished spans (bounded, oldest evicted first)."""

    def __init__(self, logger: Optional[Logger] = None, max_spans: int = MAX_SPANS):
        self._lock = threading.Lock()
        self._spans: deque[Span] = deque(maxlen=max_spans)
        self.logger = logger or Logger().with_component("tracer")

    def start_span(self, name: str, parent: Optional[Span] = None) -> Span:
        """Create a span under `parent` (defaults to the active span).

        The span is not activated; use `activate` or `span` to make it
        the parent of spans started in the same context.
        """
        if parent is None:
            parent = current_span()
        if parent is not None:
            return Span(trace_id=parent.trace_id, span_id=new_id(), name=name, parent_id=parent.span_id)
        return Span(trace_id=new_id(), span_id=new_id(), name=name)

    def end_span(self, span: Span) -> None:
        """Finish a span, store it and emit one log record."""
        if span.is_finished:
            return
        span.finish()
        with self._lock:
            self._spans.append(span)

        fields = dict(
            trace_id=span.trace_id,
            span_id=span.span_id,
            parent_id=span.parent_id or "",
            span=span.name,
            duration_ms=round(span.duration_ms, 3),
        )
        if span.error:
            self.logger.error("span_complete", error=span.error, **fields)
        else:
            self.logger.debug("span_complete", **fields)

    @contextmanager
    def activate(self, span: Span) -> Iterator[Span]:
        """Make `span` the active span for the enclosed block."""
        token = _current_span.set(span)
        try:
            yield span
        finally:
            _current_span.reset(token)

    @contextmanager
    def span(self, name: str, **tags: Any) -> Iterator[Span]:
        """Start, activate and end a span around a block.

        An exception escaping the block is recorded on the span and
        re-raised.
        """
        span = self.start_span(name)
        for key, value in tags.items():
            span.add_tag(key, value)
        try:
            with self.activate(span):
                yield span
        except BaseException as e:
            span.set_error(e)
            raise
        finally:
            self.end_span(span)

    # --- Queries ---

    def get_spans(self) -> list[Span]:
        with self._lock:
            return list(self._spans)

    def get_spans_by_trace(self, trace_id: str) -> list[Span]:
        with self._lock:
            return [s for s in self._spans if s.trace_id == trace_id]

    def get_trace_tree(self, trace_id: str) -> str:
        """Render a trace as an indented tree rooted at its parentless span."""
        spans = self.get_spans_by_trace(trace_id)
        if not spans:
            return f"No spans found for trace {trace_id}"

        root = next((s for s in spans if not s.parent_id), None)
        if root is None:
            return "No root span found"

        children: dict[str, list[Span]] = {}
        for s in spans:
            if s.parent_id:
                children.setdefault(s.parent_id, []).append(s)

        lines: list[str] = []
        self._render(root, children, 0, lines)
        return "\n".join(lines) + "\n"

    def _render(self, span: Span, children: dict[str, list[Span]], depth: int, lines: list[str]) -> None:
        indent = "  " * depth
        error = f" ERROR: {span.error}" if span.error else ""
        lines.append(f"{indent}└─ {span.name} ({span.duration_ms:.0f}ms){error}")
        for event in span.events:
            lines.append(f"{indent}   • {event.name}")
        for child in sorted(children.get(span.span_id, []), key=lambda s: s.start_time):
            self._render(child, children, depth + 1, lines)

    def render_all_traces(self) -> str:
        """Render every stored trace, oldest first."""
        order: list[str] = []
        for s in self.get_spans():
            if s.trace_id not in order:
                order.append(s.trace_id)
        if not order:
            return "No traces recorded\n"

        blocks = []
        for trace_id in order:
            blocks.append(f"Trace {trace_id}:\n{self.get_trace_tree(trace_id)}")
        return "\n".join(blocks)

    def reset(self) -> None:
        with self._lock:
            self._spans.clear()
