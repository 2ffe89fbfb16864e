"""Per-intent handlers and their registry."""

from ollama_code.handlers.base import Dependencies, Handler, run_tool
from ollama_code.handlers.execute import ExecuteHandler, is_dangerous
from ollama_code.handlers.files import FileReadHandler, FileWriteHandler, is_multi_file_request
from ollama_code.handlers.git import GitHandler
from ollama_code.handlers.registry import HandlerRegistry
from ollama_code.handlers.search import AnalyzeHandler, SearchHandler, extract_search_query
from ollama_code.handlers.web import QuestionHandler, WebSearchHandler, format_search_results
from ollama_code.intent.types import Intent


def default_handlers() -> dict[Intent, Handler]:
    """One handler instance per routable intent."""
    return {
        Intent.READ_FILE: FileReadHandler(),
        Intent.WRITE_FILE: FileWriteHandler(),
        Intent.EXECUTE_COMMAND: ExecuteHandler(),
        Intent.SEARCH_CODE: SearchHandler(),
        Intent.ANALYZE_PROJECT: AnalyzeHandler(),
        Intent.GIT_OPERATION: GitHandler(),
        Intent.WEB_SEARCH: WebSearchHandler(),
        Intent.QUESTION: QuestionHandler(),
    }


__all__ = [
    "Dependencies",
    "Handler",
    "HandlerRegistry",
    "FileReadHandler",
    "FileWriteHandler",
    "ExecuteHandler",
    "SearchHandler",
    "AnalyzeHandler",
    "GitHandler",
    "WebSearchHandler",
    "QuestionHandler",
    "default_handlers",
    "run_tool",
    "is_dangerous",
    "is_multi_file_request",
    "extract_search_query",
    "format_search_results",
]
