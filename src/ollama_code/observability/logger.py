"""Structured logging built on structlog.

Every record is an event name plus key/value fields, rendered as JSON
lines or as aligned console text:

    {"event": "handler_complete", "handler": "execute", "duration_ms": 12.4, ...}
"""

import logging
import sys
from typing import IO, Any, Optional

import structlog

from ollama_code.observability.context import current_trace_id


ROOT_LOGGER = "ollama_code"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

FORMATS = ("json", "text")


def parse_level(level: str) -> int:
    """Map a level name to a logging constant (info when unknown)."""
    return LEVELS.get((level or "").strip().lower(), logging.INFO)


def configure_logging(level: str = "info", fmt: str = "json", stream: Optional[IO[str]] = None) -> None:
    """Install the processor chain and the output sink.

    Args:
        level: One of debug, info, warn, error.
        fmt: "json" for machine-readable lines, "text" for console output.
        stream: Sink for records (stderr by default).
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger(ROOT_LOGGER)
    root.handlers = [handler]
    root.setLevel(parse_level(level))
    root.propagate = False

    if fmt == "text":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def _ms(duration_ms: float) -> float:
    return round(float(duration_ms), 3)


class Logger:
    """Field-accumulating logger facade.

    Bound fields are kept on the facade and merged into each call, so a
    derived logger (`with_fields`, `with_context`, `with_component`)
    never mutates its parent.
    """

    def __init__(self, name: str = ROOT_LOGGER, fields: Optional[dict[str, Any]] = None):
        self.name = name
        self.fields: dict[str, Any] = dict(fields or {})
        self._logger = structlog.get_logger(name)

    def with_fields(self, **fields: Any) -> "Logger":
        merged = dict(self.fields)
        merged.update(fields)
        return Logger(self.name, merged)

    def with_context(self) -> "Logger":
        """Attach the active span's trace_id, if one is active."""
        trace_id = current_trace_id()
        if not trace_id:
            return self
        return self.with_fields(trace_id=trace_id)

    def with_component(self, component: str) -> "Logger":
        return self.with_fields(component=component)

    def _emit(self, method: str, event: str, fields: dict[str, Any]) -> None:
        payload = dict(self.fields)
        payload.update(fields)
        getattr(self._logger, method)(event, **payload)

    def debug(self, event: str, **fields: Any) -> None:
        self._emit("debug", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit("info", event, fields)

    def warn(self, event: str, **fields: Any) -> None:
        self._emit("warning", event, fields)

    warning = warn

    def error(self, event: str, **fields: Any) -> None:
        self._emit("error", event, fields)

    # --- Vocabulary used by the wrappers ---

    def log_handler_start(self, handler: str, intent: str) -> None:
        self.info("handler_start", handler=handler, intent=intent)

    def log_handler_end(self, handler: str, duration_ms: float, error: Optional[BaseException] = None) -> None:
        if error is not None:
            self.error("handler_error", handler=handler, duration_ms=_ms(duration_ms), error=str(error))
        else:
            self.info("handler_complete", handler=handler, duration_ms=_ms(duration_ms))

    def log_tool_execution(self, tool: str, duration_ms: float, success: bool) -> None:
        self.debug("tool_execution", tool=tool, duration_ms=_ms(duration_ms), success=success)

    def log_llm_request(self, model: str, tokens: int, duration_ms: float) -> None:
        self.info("llm_request", model=model, tokens=tokens, duration_ms=_ms(duration_ms))

    def log_intent_detection(self, intent: str, confidence: float, duration_ms: float) -> None:
        self.info("intent_detection", intent=intent, confidence=confidence, duration_ms=_ms(duration_ms))

    def log_cache_hit(self, key: str, hit: bool) -> None:
        self.debug("cache_access", key=key, hit=hit)
