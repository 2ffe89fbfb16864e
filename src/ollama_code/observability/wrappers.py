"""Instrumentation wrappers composing logger, metrics and tracer.

Each wrapper times its callee, records the duration, emits the matching
log event and closes a span. The span is always ended last, after the
metrics for the same call have been written.
"""

import time
from typing import Any, Callable, Optional, TypeVar

from ollama_code.observability.logger import Logger
from ollama_code.observability.metrics import MetricsCollector
from ollama_code.observability.tracing import Tracer


T = TypeVar("T")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _symbol(value: Any) -> str:
    """Enum members render as their value, everything else via str()."""
    return str(getattr(value, "value", value))


def estimate_tokens(text: Any) -> int:
    """Rough token count (about four characters per token)."""
    if not isinstance(text, str) or not text:
        return 0
    return max(1, len(text) // 4)


class HandlerWrapper:
    """Wraps a handler so every dispatch is traced, timed and logged.

    The wrapper exposes the same `handle(deps, result)` method as the
    handler it decorates and returns its result unchanged.
    """

    def __init__(self, handler: Any, name: str, logger: Logger, metrics: MetricsCollector, tracer: Tracer):
        self.handler = handler
        self.name = name
        self.logger = logger
        self.metrics = metrics
        self.tracer = tracer

    def handle(self, deps: Any, result: Any) -> str:
        span = self.tracer.start_span(f"handler:{self.name}")
        span.add_tag("handler", self.name)
        span.add_tag("intent", _symbol(result.intent))
        span.add_tag("confidence", f"{result.confidence:.2f}")

        with self.tracer.activate(span):
            log = self.logger.with_context()
            log.log_handler_start(self.name, _symbol(result.intent))

            start = time.perf_counter()
            error: Optional[BaseException] = None
            try:
                return self.handler.handle(deps, result)
            except Exception as e:
                error = e
                raise
            finally:
                duration = _elapsed_ms(start)
                self.metrics.record_handler_duration(self.name, duration)
                if error is not None:
                    self.metrics.record_handler_error(self.name)
                    span.set_error(error)
                log.log_handler_end(self.name, duration, error)
                self.tracer.end_span(span)


class ToolWrapper:
    """Instruments tool invocations under a `tool:<name>` span."""

    def __init__(self, logger: Logger, metrics: MetricsCollector, tracer: Tracer):
        self.logger = logger
        self.metrics = metrics
        self.tracer = tracer

    def wrap_tool_execution(self, tool_name: str, fn: Callable[[], T]) -> T:
        """Run `fn` as tool `tool_name`.

        A result carrying ``success=False`` counts as a failed execution
        even though no exception was raised.
        """
        span = self.tracer.start_span(f"tool:{tool_name}")
        span.add_tag("tool", tool_name)

        with self.tracer.activate(span):
            start = time.perf_counter()
            success = False
            try:
                result = fn()
                success = bool(getattr(result, "success", True))
                if not success:
                    span.set_error(getattr(result, "error", "") or "tool reported failure")
                return result
            except Exception as e:
                span.set_error(e)
                raise
            finally:
                duration = _elapsed_ms(start)
                self.metrics.record_tool_duration(tool_name, duration)
                self.logger.with_context().log_tool_execution(tool_name, duration, success)
                self.tracer.end_span(span)


class LLMWrapper:
    """Instruments completion-service calls under an `llm:request` span."""

    def __init__(self, logger: Logger, metrics: MetricsCollector, tracer: Tracer):
        self.logger = logger
        self.metrics = metrics
        self.tracer = tracer

    def wrap_llm_request(
        self,
        model: str,
        fn: Callable[[], T],
        count_tokens: Callable[[Any], int] = estimate_tokens,
    ) -> T:
        span = self.tracer.start_span("llm:request")
        span.add_tag("model", model)

        with self.tracer.activate(span):
            start = time.perf_counter()
            tokens = 0
            try:
                response = fn()
                tokens = count_tokens(response)
                return response
            except Exception as e:
                span.set_error(e)
                raise
            finally:
                duration = _elapsed_ms(start)
                self.metrics.record_llm_duration(duration)
                self.logger.with_context().log_llm_request(model, tokens, duration)
                span.add_tag("tokens", tokens)
                self.tracer.end_span(span)


class IntentWrapper:
    """Instruments intent detection under an `intent:detection` span."""

    def __init__(self, logger: Logger, metrics: MetricsCollector, tracer: Tracer):
        self.logger = logger
        self.metrics = metrics
        self.tracer = tracer

    def wrap_intent_detection(self, fn: Callable[[], T]) -> T:
        span = self.tracer.start_span("intent:detection")

        with self.tracer.activate(span):
            start = time.perf_counter()
            try:
                result = fn()
            except Exception as e:
                self.metrics.record_intent_duration(_elapsed_ms(start))
                span.set_error(e)
                self.tracer.end_span(span)
                raise

            duration = _elapsed_ms(start)
            self.metrics.record_intent_duration(duration)
            intent = _symbol(result.intent)
            self.logger.with_context().log_intent_detection(intent, result.confidence, duration)
            span.add_tag("intent", intent)
            span.add_tag("confidence", f"{result.confidence:.2f}")
            self.tracer.end_span(span)
            return result


class CacheWrapper:
    """Counts cache hits and misses for lookups."""

    def __init__(self, logger: Logger, metrics: MetricsCollector):
        self.logger = logger
        self.metrics = metrics

    def wrap_cache_get(self, key: str, fn: Callable[[], tuple[Any, bool]]) -> tuple[Any, bool]:
        value, hit = fn()
        if hit:
            self.metrics.record_cache_hit()
        else:
            self.metrics.record_cache_miss()
        self.logger.with_context().log_cache_hit(key, hit)
        return value, hit
