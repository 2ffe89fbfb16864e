"""Tool system.

Provides:
- ToolRegistry with named dispatch
- Tool base class and ToolResult
- Built-in tools: file_reader, file_writer, command_executor,
  code_searcher, project_analyzer, git_operations

Adding a new tool:
1. Subclass Tool, set name/description/required_params, implement execute()
2. Register an instance with the ToolRegistry
"""

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ollama_code.tools.base import Tool, ToolResult
from ollama_code.tools.command import CommandExecutorTool
from ollama_code.tools.files import FileReaderTool, FileWriterTool
from ollama_code.tools.git import GitOperationsTool
from ollama_code.tools.project import ProjectAnalyzerTool
from ollama_code.tools.registry import ToolRegistry
from ollama_code.tools.search import CodeSearcherTool

if TYPE_CHECKING:
    from ollama_code.bgtask import Supervisor
    from ollama_code.observability import Observability


def build_default_registry(
    work_dir: Optional[Path] = None,
    supervisor: "Optional[Supervisor]" = None,
    observability: "Optional[Observability]" = None,
    command_timeout: int = 120,
) -> ToolRegistry:
    """Create a registry with every built-in tool rooted at `work_dir`."""
    wrapper = observability.tool_wrapper() if observability is not None else None
    registry = ToolRegistry(wrapper=wrapper)
    registry.register(FileReaderTool(work_dir))
    registry.register(FileWriterTool(work_dir))
    registry.register(CommandExecutorTool(work_dir, supervisor=supervisor, timeout=command_timeout))
    registry.register(CodeSearcherTool(work_dir))
    registry.register(ProjectAnalyzerTool(work_dir))
    registry.register(GitOperationsTool(work_dir))
    return registry


__all__ = [
    "Tool",
    "ToolResult",
    "ToolRegistry",
    "FileReaderTool",
    "FileWriterTool",
    "CommandExecutorTool",
    "CodeSearcherTool",
    "ProjectAnalyzerTool",
    "GitOperationsTool",
    "build_default_registry",
]
