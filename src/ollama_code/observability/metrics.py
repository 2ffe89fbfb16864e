"""Latency windows and counters for handlers, tools, LLM and intent calls."""

from collections import deque
from dataclasses import dataclass, asdict
from typing import Iterable, Optional

from ollama_code.locks import RWLock


MAX_SAMPLES = 1000


@dataclass
class Stats:
    """Summary of one latency series, in milliseconds."""
    count: int
    min: float
    max: float
    mean: float
    median: float
    p50: float
    p95: float
    p99: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CacheStats:
    hits: int
    misses: int
    total: int
    hit_rate: float


def percentile(sorted_samples: list[float], p: float) -> float:
    """Nearest-rank percentile on an ascending list: index floor((n-1)*p)."""
    if not sorted_samples:
        return 0.0
    return sorted_samples[int((len(sorted_samples) - 1) * p)]


def compute_stats(samples: Iterable[float]) -> Optional[Stats]:
    """Summarize a series; None for an empty one."""
    ordered = sorted(samples)
    if not ordered:
        return None
    n = len(ordered)
    p50 = percentile(ordered, 0.50)
    return Stats(
        count=n,
        min=ordered[0],
        max=ordered[-1],
        mean=sum(ordered) / n,
        median=p50,
        p50=p50,
        p95=percentile(ordered, 0.95),
        p99=percentile(ordered, 0.99),
    )


def _window() -> deque:
    return deque(maxlen=MAX_SAMPLES)


class MetricsCollector:
    """Thread-safe store of sliding latency windows and counters.

    Every series keeps at most MAX_SAMPLES values; the oldest sample is
    dropped when a new one arrives at capacity.
    """

    def __init__(self):
        self._lock = RWLock()
        self._init_state()

    def _init_state(self) -> None:
        self._handler_durations: dict[str, deque] = {}
        self._tool_durations: dict[str, deque] = {}
        self._llm_durations: deque = _window()
        self._intent_durations: deque = _window()
        self._handler_counts: dict[str, int] = {}
        self._handler_errors: dict[str, int] = {}
        self._tool_counts: dict[str, int] = {}
        self._cache_hits = 0
        self._cache_misses = 0

    # --- Recording ---

    def record_handler_duration(self, handler: str, duration_ms: float) -> None:
        """Record one handler invocation and its latency."""
        with self._lock.write():
            self._handler_durations.setdefault(handler, _window()).append(duration_ms)
            self._handler_counts[handler] = self._handler_counts.get(handler, 0) + 1

    def record_handler_error(self, handler: str) -> None:
        with self._lock.write():
            self._handler_errors[handler] = self._handler_errors.get(handler, 0) + 1

    def record_tool_duration(self, tool: str, duration_ms: float) -> None:
        with self._lock.write():
            self._tool_durations.setdefault(tool, _window()).append(duration_ms)
            self._tool_counts[tool] = self._tool_counts.get(tool, 0) + 1

    def record_llm_duration(self, duration_ms: float) -> None:
        with self._lock.write():
            self._llm_durations.append(duration_ms)

    def record_intent_duration(self, duration_ms: float) -> None:
        with self._lock.write():
            self._intent_durations.append(duration_ms)

    def record_cache_hit(self) -> None:
        with self._lock.write():
            self._cache_hits += 1

    def record_cache_miss(self) -> None:
        with self._lock.write():
            self._cache_misses += 1

    # --- Queries ---

    def get_handler_stats(self, handler: str) -> Optional[Stats]:
        with self._lock.read():
            samples = list(self._handler_durations.get(handler, ()))
        return compute_stats(samples)

    def get_tool_stats(self, tool: str) -> Optional[Stats]:
        with self._lock.read():
            samples = list(self._tool_durations.get(tool, ()))
        return compute_stats(samples)

    def get_llm_stats(self) -> Optional[Stats]:
        with self._lock.read():
            samples = list(self._llm_durations)
        return compute_stats(samples)

    def get_intent_stats(self) -> Optional[Stats]:
        with self._lock.read():
            samples = list(self._intent_durations)
        return compute_stats(samples)

    def get_handler_samples(self, handler: str) -> list[float]:
        """Raw window for a handler, oldest first."""
        with self._lock.read():
            return list(self._handler_durations.get(handler, ()))

    def get_cache_stats(self) -> CacheStats:
        with self._lock.read():
            hits, misses = self._cache_hits, self._cache_misses
        total = hits + misses
        hit_rate = hits / total * 100 if total else 0.0
        return CacheStats(hits=hits, misses=misses, total=total, hit_rate=hit_rate)

    def get_all_handlers(self) -> list[str]:
        with self._lock.read():
            return list(self._handler_counts)

    def get_all_tools(self) -> list[str]:
        with self._lock.read():
            return list(self._tool_counts)

    def get_handler_count(self, handler: str) -> int:
        with self._lock.read():
            return self._handler_counts.get(handler, 0)

    def get_handler_error_count(self, handler: str) -> int:
        with self._lock.read():
            return self._handler_errors.get(handler, 0)

    def get_tool_count(self, tool: str) -> int:
        with self._lock.read():
            return self._tool_counts.get(tool, 0)

    def get_handler_error_rate(self, handler: str) -> float:
        """Error percentage for a handler (0 when never invoked)."""
        with self._lock.read():
            count = self._handler_counts.get(handler, 0)
            errors = self._handler_errors.get(handler, 0)
        return errors / count * 100 if count else 0.0

    def reset(self) -> None:
        with self._lock.write():
            self._init_state()

    def summary(self) -> str:
        """Render a multi-line performance summary."""
        lines = ["Performance metrics", ""]

        handlers = self.get_all_handlers()
        if handlers:
            lines.append("Handlers:")
            for handler in sorted(handlers):
                stats = self.get_handler_stats(handler)
                if stats is None:
                    continue
                lines.append(
                    f"  - {handler}: {stats.count} runs "
                    f"({self.get_handler_error_rate(handler):.1f}% errors) - "
                    f"p50: {stats.p50:.0f}ms, p95: {stats.p95:.0f}ms, p99: {stats.p99:.0f}ms"
                )
            lines.append("")

        tools = self.get_all_tools()
        if tools:
            lines.append("Tools:")
            for tool in sorted(tools):
                stats = self.get_tool_stats(tool)
                if stats is None:
                    continue
                lines.append(
                    f"  - {tool}: {self.get_tool_count(tool)} runs - "
                    f"p50: {stats.p50:.0f}ms, p95: {stats.p95:.0f}ms"
                )
            lines.append("")

        llm = self.get_llm_stats()
        if llm:
            lines.append(
                f"LLM: {llm.count} requests - "
                f"p50: {llm.p50:.0f}ms, p95: {llm.p95:.0f}ms, p99: {llm.p99:.0f}ms"
            )

        intent = self.get_intent_stats()
        if intent:
            lines.append(f"Intent detection: {intent.count} runs - p50: {intent.p50:.0f}ms")

        cache = self.get_cache_stats()
        if cache.total:
            lines.append(
                f"Cache: {cache.hit_rate:.1f}% hit rate ({cache.hits} hits, {cache.misses} misses)"
            )

        return "\n".join(lines).rstrip() + "\n"
