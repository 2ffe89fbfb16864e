"""search_code and analyze_project handlers."""

from ollama_code.handlers.base import Dependencies, Handler, run_tool
from ollama_code.handlers.params import AnalyzeParams, SearchParams
from ollama_code.intent.types import DetectionResult
from ollama_code.tools.base import ToolResult


# Checked in order; longer phrases come before their prefixes
SEARCH_PREFIXES = (
    "busca a função ", "busca função ", "busca o ", "busca a ", "busca ", "buscar ",
    "procure por ", "procure ", "procura ", "procurar ",
    "encontre a ", "encontre o ", "encontre ", "encontrar ",
    "onde está a ", "onde está o ", "onde está ",
    "acha a ", "acha o ", "acha ", "achar ",
    "search for ", "search ", "find ", "locate ", "look for ",
)

SEARCH_VERBS = (
    "busca", "buscar", "procure", "procurar", "encontre", "encontrar",
    "acha", "achar", "search", "find", "locate", "look",
)

MAX_SHOWN_MATCHES = 20


def extract_search_query(message: str) -> str:
    """Pull the search term out of a free-form request.

    Strips a leading search verb (Portuguese or English) and surrounding
    quotes. When that leaves almost nothing, the whole lower-cased message
    is used instead.
    """
    if not message:
        return ""
    lowered = message.lower().strip()

    query = lowered
    for prefix in SEARCH_PREFIXES:
        if query.startswith(prefix):
            query = query[len(prefix):]
            break
    query = query.strip("\"'` \t\r\n")

    if len(query) < 2 or query == lowered:
        words = lowered.split()
        if len(words) > 1 and words[0] in SEARCH_VERBS:
            query = " ".join(words[1:])
        if len(query) < 2:
            query = lowered
    return query.strip()


class SearchHandler(Handler):
    """Search the codebase and list matching lines."""

    name = "search"

    def handle(self, deps: Dependencies, result: DetectionResult) -> str:
        params = SearchParams.from_result(result, extract_search_query(result.user_message))
        tool_result = run_tool(deps, "code_searcher", {"query": params.query, "pattern": params.pattern})
        return self.format_result(tool_result, params.query)

    def format_result(self, result: ToolResult, query: str) -> str:
        matches = result.data.get("matches") or []
        count = result.data.get("count", len(matches))
        output = [result.message, ""]

        if not matches:
            output.append("Tip: refine the search or use more specific terms.")
            return "\n".join(output)

        output.append(f'Results for "{query}":')
        output.append("")
        for match in matches[:MAX_SHOWN_MATCHES]:
            output.append(f"  {match.get('file')}:{match.get('line')}")
            text = str(match.get("text") or "").strip()
            if text:
                if len(text) > 100:
                    text = text[:100] + "..."
                output.append(f"     {text}")
        if len(matches) > MAX_SHOWN_MATCHES:
            output.append(f"\n... and {len(matches) - MAX_SHOWN_MATCHES} more results")
        output.append(f"\nTotal: {count} matches")
        return "\n".join(output)


class AnalyzeHandler(Handler):
    """Summarize the project layout."""

    name = "analyze"

    def handle(self, deps: Dependencies, result: DetectionResult) -> str:
        params = AnalyzeParams.from_result(result, deps.work_dir or ".")
        tool_result = run_tool(deps, "project_analyzer", {"target": params.target})
        return tool_result.message
