"""Tool base class and result type."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ollama_code.errors import BadRequest


@dataclass
class ToolResult:
    """Result of a tool execution.

    Attributes:
        success: Whether the tool succeeded.
        message: Human-readable summary or output.
        error: Error message if failed.
        data: Structured payload for handlers (content, matches, output...).
    """
    success: bool
    message: str = ""
    error: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str = "", **data: Any) -> "ToolResult":
        """Create a successful result."""
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: str, message: str = "", **data: Any) -> "ToolResult":
        """Create a failed result."""
        return cls(success=False, message=message, error=error, data=data)


class Tool(ABC):
    """Base class for all tools.

    To create a new tool:
    1. Subclass Tool
    2. Set name, description and required_params
    3. Implement execute()
    4. Register an instance with a ToolRegistry
    """

    name: str = "base"
    description: str = "Base tool"
    required_params: tuple[str, ...] = ()

    def __init__(self, work_dir: Optional[Path] = None):
        self.work_dir = Path(work_dir or Path.cwd()).resolve()

    def _resolve_path(self, path: str) -> Path:
        """Resolve `path` relative to the tool's working directory."""
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self.work_dir / p
        return p.resolve()

    def _relative(self, path: Path) -> str:
        """Path relative to the working directory when possible."""
        try:
            return str(path.relative_to(self.work_dir))
        except ValueError:
            return str(path)

    def run(self, params: dict[str, Any]) -> ToolResult:
        """Validate required parameters, then execute."""
        for key in self.required_params:
            value = params.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                return ToolResult.fail(f"missing required parameter: {key}")
        try:
            return self.execute(params)
        except BadRequest as e:
            return ToolResult.fail(e.message)

    @staticmethod
    def int_param(params: dict[str, Any], key: str, default: int) -> int:
        """Positive integer parameter, `default` when absent.

        Raises:
            BadRequest: If the value is not a positive integer.
        """
        value = params.get(key)
        if value is None or value == "":
            return default
        try:
            number = int(value)
        except (TypeError, ValueError) as e:
            raise BadRequest(f"invalid {key}: {value!r}") from e
        if number < 1:
            raise BadRequest(f"invalid {key}: {value!r}")
        return number

    @abstractmethod
    def execute(self, params: dict[str, Any]) -> ToolResult:
        """Execute the tool.

        Args:
            params: Tool-specific parameters.

        Returns:
            ToolResult with success status and message/error.
        """
        pass

    def describe(self) -> str:
        required = f" (requires: {', '.join(self.required_params)})" if self.required_params else ""
        return f"- {self.name}: {self.description}{required}"
