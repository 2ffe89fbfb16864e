"""Observability fabric.

Provides:
- Logger facade over structlog and configure_logging
- MetricsCollector with sliding latency windows
- Tracer and Span with contextvar propagation
- Wrappers that instrument handlers, tools, LLM calls, intent detection and cache lookups
- Observability aggregate
"""

from ollama_code.observability.context import current_span, current_trace_id
from ollama_code.observability.fabric import Observability
from ollama_code.observability.logger import Logger, configure_logging
from ollama_code.observability.metrics import (
    MAX_SAMPLES,
    CacheStats,
    MetricsCollector,
    Stats,
    compute_stats,
)
from ollama_code.observability.tracing import MAX_SPANS, Span, SpanEvent, Tracer
from ollama_code.observability.wrappers import (
    CacheWrapper,
    HandlerWrapper,
    IntentWrapper,
    LLMWrapper,
    ToolWrapper,
    estimate_tokens,
)

__all__ = [
    "Observability",
    "Logger",
    "configure_logging",
    "MetricsCollector",
    "Stats",
    "CacheStats",
    "compute_stats",
    "MAX_SAMPLES",
    "Tracer",
    "Span",
    "SpanEvent",
    "MAX_SPANS",
    "current_span",
    "current_trace_id",
    "HandlerWrapper",
    "ToolWrapper",
    "LLMWrapper",
    "IntentWrapper",
    "CacheWrapper",
    "estimate_tokens",
]
