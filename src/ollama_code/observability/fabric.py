"""Aggregate of logger, metrics and tracer shared by one runtime."""

from typing import IO, Any, Optional

from ollama_code.observability.logger import Logger, configure_logging
from ollama_code.observability.metrics import MetricsCollector
from ollama_code.observability.tracing import Tracer
from ollama_code.observability.wrappers import (
    CacheWrapper,
    HandlerWrapper,
    IntentWrapper,
    LLMWrapper,
    ToolWrapper,
)


class Observability:
    """Owns one logger, one metrics collector and one tracer.

    Args:
        level: Log level name (debug, info, warn, error).
        fmt: "json" or "text".
        stream: Optional log sink; stderr when omitted.
        configure: Install the structlog configuration. Pass False when
            logging has already been configured by the host application.
    """

    def __init__(
        self,
        level: str = "info",
        fmt: str = "text",
        stream: Optional[IO[str]] = None,
        configure: bool = True,
    ):
        if configure:
            configure_logging(level, fmt, stream)
        self.logger = Logger()
        self.metrics = MetricsCollector()
        self.tracer = Tracer(self.logger.with_component("tracer"))

    def handler_wrapper(self, handler: Any, name: str) -> HandlerWrapper:
        return HandlerWrapper(handler, name, self.logger.with_component("handler"), self.metrics, self.tracer)

    def tool_wrapper(self) -> ToolWrapper:
        return ToolWrapper(self.logger.with_component("tool"), self.metrics, self.tracer)

    def llm_wrapper(self) -> LLMWrapper:
        return LLMWrapper(self.logger.with_component("llm"), self.metrics, self.tracer)

    def intent_wrapper(self) -> IntentWrapper:
        return IntentWrapper(self.logger.with_component("intent"), self.metrics, self.tracer)

    def cache_wrapper(self) -> CacheWrapper:
        return CacheWrapper(self.logger.with_component("cache"), self.metrics)

    def summary(self) -> str:
        """Metrics summary followed by the recorded traces."""
        text = self.metrics.summary()
        if self.tracer.get_spans():
            text += "\n" + self.tracer.render_all_traces()
        return text

    def reset(self) -> None:
        self.metrics.reset()
        self.tracer.reset()
