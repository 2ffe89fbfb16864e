"""Handler interface and the collaborator record handlers operate on.

Handlers only reach the outside world through `Dependencies`. Every
collaborator is typed by a small capability protocol so tests can pass
in-memory fakes instead of real registries, terminals or HTTP clients.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Protocol

from ollama_code.errors import ExternalFailure
from ollama_code.mode import OperationMode

if TYPE_CHECKING:
    from ollama_code.intent.types import DetectionResult
    from ollama_code.llm.base import CompletionOptions, Message
    from ollama_code.tools.base import ToolResult


MAX_RECENT_FILES = 10


# =============================================================================
# Capability contracts
# =============================================================================

class ToolExecutor(Protocol):
    def execute(self, name: str, params: Optional[dict[str, Any]] = None) -> "ToolResult": ...

    def has(self, name: str) -> bool: ...


class Confirmation(Protocol):
    def confirm(self, message: str) -> bool: ...

    def confirm_with_preview(self, message: str, preview: str) -> bool: ...

    def confirm_dangerous(self, message: str, warning: str = "") -> bool: ...

class CompletionClient(Protocol):
    def complete(self, prompt: str, options: "Optional[CompletionOptions]" = None) -> str: ...

    def complete_with_history(
        self, messages: "list[Message]", options: "Optional[CompletionOptions]" = None
    ) -> str: ...


class WebSearchClient(Protocol):
    def search(self, query: str) -> Any: ...


class TodoTracker(Protocol):
    def add(self, content: str, active_form: str = "") -> str: ...

    def complete(self, todo_id: str) -> None: ...

    def delete(self, todo_id: str) -> None: ...


class DiffComputer(Protocol):
    def compute_diff(self, file_path: str, old_content: str, new_content: str) -> Any: ...


class DiffPreviewer(Protocol):
    def preview(self, diff: Any) -> str: ...


class Cache(Protocol):
    def get(self, key: str) -> tuple[Any, bool]: ...

    def set(self, key: str, value: Any) -> None: ...


class Detector(Protocol):
    def detect(
        self,
        user_message: str,
        work_dir: str = "",
        recent_files: Optional[list[str]] = None,
        history: "Optional[list[Message]]" = None,
    ) -> "DetectionResult": ...


# =============================================================================
# Dependencies
# =============================================================================

@dataclass
class Dependencies:
    """Collaborators available to a handler for one dispatch.

    `history` and `recent_files` are shared with the dispatcher: handlers
    append to `recent_files` through `add_recent_file` and the change is
    visible to the next message.
    """
    tools: ToolExecutor
    llm: Optional[CompletionClient] = None
    confirmation: Optional[Confirmation] = None
    mode: OperationMode = OperationMode.INTERACTIVE
    work_dir: str = ""
    web_search: Optional[WebSearchClient] = None
    intent_detector: Optional[Detector] = None
    todo_manager: Optional[TodoTracker] = None
    diff_manager: Optional[DiffComputer] = None
    preview_manager: Optional[DiffPreviewer] = None
    cache_manager: Optional[Cache] = None
    history: "list[Message]" = field(default_factory=list)
    recent_files: list[str] = field(default_factory=list)

    def add_recent_file(self, path: str) -> None:
        """Move `path` to the end of the recent list, keeping the newest entries."""
        if path in self.recent_files:
            self.recent_files.remove(path)
        self.recent_files.append(path)
        del self.recent_files[:-MAX_RECENT_FILES]

    def confirm(self, message: str) -> bool:
        """Ask for confirmation; with no confirmation collaborator, proceed."""
        if self.confirmation is None:
            return True
        return self.confirmation.confirm(message)

    def confirm_with_preview(self, message: str, preview: str) -> bool:
        if self.confirmation is None:
            return True
        return self.confirmation.confirm_with_preview(message, preview)

    def start_todo(self, content: str, active_form: str = "") -> str:
        """Track an operation; returns "" when no TODO manager is configured."""
        if self.todo_manager is None:
            return ""
        return self.todo_manager.add(content, active_form)

    def finish_todo(self, todo_id: str, success: bool) -> None:
        """Complete a tracked operation, or drop it when it did not happen."""
        if not todo_id or self.todo_manager is None:
            return
        if success:
            self.todo_manager.complete(todo_id)
        else:
            self.todo_manager.delete(todo_id)


# =============================================================================
# Handler
# =============================================================================

class Handler(ABC):
    """Base class for per-intent orchestrators.

    A handler returns the user-facing text. Outcomes the user caused
    (cancelled confirmation, mode restrictions) are returned as text;
    missing parameters raise BadRequest and tool or service failures
    raise ExternalFailure.
    """

    name: str = "base"

    @abstractmethod
    def handle(self, deps: Dependencies, result: "DetectionResult") -> str:
        """Process one classified message.

        Args:
            deps: Collaborators for this dispatch.
            result: Classified intent, parameters and the original message.

        Returns:
            Text shown to the user.
        """
        pass

    @staticmethod
    def require_llm(deps: Dependencies) -> CompletionClient:
        if deps.llm is None:
            raise ExternalFailure("no completion client configured")
        return deps.llm


def run_tool(deps: Dependencies, name: str, params: dict[str, Any]) -> "ToolResult":
    """Execute a tool and convert a failed result into ExternalFailure."""
    result = deps.tools.execute(name, params)
    if not result.success:
        detail = f"\n{result.message}" if result.message else ""
        raise ExternalFailure(f"{name} failed: {result.error}{detail}")
    return result
