"""web_search and question handlers."""

from typing import Any

from ollama_code.errors import ExternalFailure
from ollama_code.handlers.base import Dependencies, Handler
from ollama_code.handlers.params import WebSearchParams
from ollama_code.intent.types import DetectionResult
from ollama_code.llm.base import Message


SEARCH_KEYWORDS = ("pesquisar", "pesquise", "buscar", "procurar", "search", "find", "lookup")
LEADING_PREPOSITIONS = ("por ", "sobre ", "for ", "about ")
NO_RESULTS = "No results found."
MAX_SOURCES = 3
HISTORY_LIMIT = 10


def extract_web_query(message: str) -> str:
    """Text after the first search keyword, minus a leading preposition."""
    lowered = message.lower()
    for keyword in SEARCH_KEYWORDS:
        if keyword in lowered:
            query = lowered.split(keyword, 1)[1].strip()
            for preposition in LEADING_PREPOSITIONS:
                if query.startswith(preposition):
                    query = query[len(preposition):]
                    break
            return query.strip()
    return ""


def _field(item: dict, name: str) -> str:
    value = item.get(name) or item.get(name.capitalize()) or item.get(name.upper())
    return str(value) if value else ""


def format_result_items(items: list[Any]) -> list[str]:
    lines = []
    for i, item in enumerate(items, 1):
        if not isinstance(item, dict):
            lines.append(f"{i}. {item}")
            lines.append("")
            continue
        lines.append(f"{i}. **{_field(item, 'title') or _field(item, 'url')}**")
        if snippet := _field(item, "snippet"):
            lines.append(f"   {snippet}")
        if url := _field(item, "url"):
            lines.append(f"   {url}")
        lines.append("")
    return lines


def format_search_results(query: str, results: Any) -> str:
    """Render the three result shapes: text, a list of records, or {"results": [...]}."""
    header = f"Search results for: {query}"
    if isinstance(results, str):
        body = [results] if results.strip() else []
    elif isinstance(results, dict):
        items = results.get("results")
        if isinstance(items, list):
            body = format_result_items(items)
        else:
            body = [f"**{key}:** {value}" for key, value in results.items()]
    elif isinstance(results, list):
        body = format_result_items(results)
    else:
        body = [str(results)] if results is not None else []

    if not body:
        body = [NO_RESULTS]
    return "\n".join([header, "", *body]).rstrip()


def _result_items(results: Any) -> list[dict]:
    if isinstance(results, dict) and isinstance(results.get("results"), list):
        results = results["results"]
    if isinstance(results, list):
        return [r for r in results if isinstance(r, dict)]
    return []


class WebSearchHandler(Handler):
    """Search the web and answer from the results.

    Args:
        summarize: Ask the LLM for a short answer built from the snippets.
    """

    name = "websearch"

    def __init__(self, summarize: bool = True):
        self.summarize = summarize

    def handle(self, deps: Dependencies, result: DetectionResult) -> str:
        params = WebSearchParams.from_result(result, extract_web_query(result.user_message))
        if deps.web_search is None:
            raise ExternalFailure("web search client not configured")

        results = self._search(deps, params.query)

        if self.summarize and deps.llm is not None:
            summary = self._summarize(deps, params.query, results)
            if summary:
                return summary
        return format_search_results(params.query, results)

    def _search(self, deps: Dependencies, query: str) -> Any:
        """Query the client, serving repeats from `deps.cache_manager`; failures are not cached."""
        if deps.cache_manager is None:
            return deps.web_search.search(query)
        key = "websearch:" + " ".join(query.lower().split())
        cached, hit = deps.cache_manager.get(key)
        if hit:
            return cached
        results = deps.web_search.search(query)
        deps.cache_manager.set(key, results)
        return results

    def _summarize(self, deps: Dependencies, query: str, results: Any) -> str:
        """LLM answer plus sources, or "" to fall back to the plain listing."""
        items = _result_items(results)
        snippets = [_field(i, "snippet") for i in items if _field(i, "snippet")]
        if not snippets:
            return ""

        prompt = [
            "Using the page excerpts below, give a short, direct answer to the user's question.\n",
            f"Question: {query}\n",
            "Excerpts:\n",
        ]
        prompt.extend(f"=== Source {n} ===\n{s}\n" for n, s in enumerate(snippets, 1))
        prompt.append(
            "\nInstructions:\n"
            "- Answer in 2-4 sentences with the specific facts (numbers, names, dates)\n"
            "- Do not say 'according to the results'\n"
            "- Do not list sources, they are added automatically\n\n"
            "Answer:"
        )
        try:
            summary = deps.llm.complete("\n".join(prompt)).strip()
        except ExternalFailure:
            return ""

        sources = []
        for item in items:
            if url := _field(item, "url"):
                title = _field(item, "title")
                sources.append(f"- {title}: {url}" if title else f"- {url}")
        if not sources:
            return summary
        return summary + "\n\nSources:\n" + "\n".join(sources[:MAX_SOURCES])


class QuestionHandler(Handler):
    """Answer free-form questions with recent conversation as context."""

    name = "question"

    def handle(self, deps: Dependencies, result: DetectionResult) -> str:
        llm = self.require_llm(deps)
        messages = [
            Message("system", f"You are a helpful coding assistant. Working directory: {deps.work_dir}"),
            *deps.history[-HISTORY_LIMIT:],
            Message("user", result.user_message),
        ]
        return llm.complete_with_history(messages)
