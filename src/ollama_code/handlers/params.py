"""Typed parameter records, one per intent.

The classifier hands over an untyped `parameters` mapping. Each handler
converts it into one of these records first, so malformed input fails
with BadRequest at the boundary rather than deep inside a tool call.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from ollama_code.errors import BadRequest
from ollama_code.intent.types import DetectionResult


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "sim")
    return bool(value)


def _as_int(value: Any, key: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise BadRequest(f"invalid {key}: {value!r}") from e
    if number < 1:
        raise BadRequest(f"invalid {key}: {value!r}")
    return number


@dataclass(frozen=True)
class ReadFileParams:
    file_path: str

    @classmethod
    def from_result(cls, result: DetectionResult) -> "ReadFileParams":
        file_path = result.str_param("file_path")
        if not file_path:
            raise BadRequest("file_path not specified", suggestion="Name the file to read, e.g. 'read main.py'")
        return cls(file_path=file_path)


@dataclass(frozen=True)
class WriteFileParams:
    file_path: str = ""
    content: str = ""
    mode: str = "create"  # "create" or "append"

    @classmethod
    def from_result(cls, result: DetectionResult) -> "WriteFileParams":
        content = result.param("content")
        if content is not None and not isinstance(content, str):
            raise BadRequest("content must be a string")
        mode = result.str_param("mode", "create").lower()
        if mode not in ("create", "append"):
            raise BadRequest(f"invalid write mode: {mode}")
        return cls(file_path=result.str_param("file_path"), content=content or "", mode=mode)


@dataclass(frozen=True)
class ExecuteParams:
    command: str
    background: bool = False
    timeout: Optional[int] = None

    @classmethod
    def from_result(cls, result: DetectionResult) -> "ExecuteParams":
        command = result.str_param("command")
        if not command:
            raise BadRequest("command not specified", suggestion="Say which command to run, e.g. 'run ls -la'")

        timeout = result.param("timeout")
        if timeout is not None:
            timeout = _as_int(timeout, "timeout")
        return cls(command=command, background=_as_bool(result.param("background", False)), timeout=timeout)

    def tool_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"command": self.command}
        if self.background:
            params["background"] = True
        if self.timeout is not None:
            params["timeout"] = self.timeout
        return params


@dataclass(frozen=True)
class SearchParams:
    query: str
    pattern: str

    @classmethod
    def from_result(cls, result: DetectionResult, fallback_query: str = "") -> "SearchParams":
        query = result.str_param("query") or fallback_query
        if not query:
            raise BadRequest(
                "could not determine what to search for",
                suggestion="Try 'search for ProcessMessage' or 'find database connection'",
            )
        return cls(query=query, pattern=result.str_param("pattern") or query)


@dataclass(frozen=True)
class AnalyzeParams:
    target: str

    @classmethod
    def from_result(cls, result: DetectionResult, default_target: str) -> "AnalyzeParams":
        return cls(target=result.str_param("target") or default_target)


@dataclass(frozen=True)
class GitParams:
    operation: str = "status"
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_result(cls, result: DetectionResult) -> "GitParams":
        operation = result.str_param("operation", "status").lower()
        extra = {k: v for k, v in result.parameters.items() if k != "operation"}
        if extra.get("count") is not None:
            extra["count"] = _as_int(extra["count"], "count")
        return cls(operation=operation, extra=extra)

    def tool_params(self) -> dict[str, Any]:
        return {"operation": self.operation, **self.extra}


@dataclass(frozen=True)
class WebSearchParams:
    query: str

    @classmethod
    def from_result(cls, result: DetectionResult, fallback_query: str = "") -> "WebSearchParams":
        query = result.str_param("query") or fallback_query
        if not query:
            raise BadRequest("search query not specified")
        return cls(query=query)
