"""Code search tool."""

import re
from pathlib import Path
from typing import Any, Iterator

from ollama_code.tools.base import Tool, ToolResult


# Directories never descended into
SKIP_DIRS = {
    ".git", ".hg", ".svn", "node_modules", "__pycache__", ".venv", "venv",
    "env", ".tox", ".mypy_cache", ".pytest_cache", "dist", "build",
    ".idea", ".vscode", "target", "vendor", ".ollama-code",
}

SEARCHABLE_EXTENSIONS = {
    ".py", ".js", ".ts", ".tsx", ".jsx", ".vue", ".svelte",
    ".html", ".css", ".scss", ".less",
    ".json", ".yaml", ".yml", ".toml", ".ini", ".cfg",
    ".md", ".txt", ".rst",
    ".sh", ".bash", ".zsh",
    ".c", ".cpp", ".h", ".hpp", ".cc", ".cs",
    ".java", ".kt", ".scala",
    ".go", ".rs", ".rb", ".php", ".pl",
    ".sql", ".graphql", ".xml",
}

SEARCHABLE_NAMES = {
    "Makefile", "Dockerfile", "Jenkinsfile", "Gemfile", "Rakefile", "Procfile",
}


def iter_source_files(root: Path) -> Iterator[Path]:
    """Yield searchable files under `root`, sorted, skipping vendored and hidden dirs."""
    try:
        entries = sorted(root.iterdir(), key=lambda p: p.name.lower())
    except OSError:
        return
    for entry in entries:
        if entry.is_dir():
            # Symlinked directories can loop back into the tree
            if entry.is_symlink() or entry.name in SKIP_DIRS or entry.name.startswith("."):
                continue
            yield from iter_source_files(entry)
        elif entry.suffix.lower() in SEARCHABLE_EXTENSIONS or entry.name in SEARCHABLE_NAMES:
            yield entry


class CodeSearcherTool(Tool):
    """Search text files under the working directory for a pattern."""

    name = "code_searcher"
    description = "Search the codebase for a text or regex pattern"
    required_params = ("query",)

    MAX_RESULTS = 50
    MAX_LINE_LENGTH = 200

    def execute(self, params: dict[str, Any]) -> ToolResult:
        query = params["query"]
        pattern = params.get("pattern") or query
        max_results = self.int_param(params, "max_results", self.MAX_RESULTS)

        # Fall back to a literal search when the pattern is not a valid regex
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error:
            regex = re.compile(re.escape(pattern), re.IGNORECASE)

        matches = []
        files_with_matches = set()
        truncated = False
        for file_path in iter_source_files(self.work_dir):
            try:
                content = file_path.read_text(encoding="utf-8", errors="ignore")
            except OSError:
                continue
            for line_num, line in enumerate(content.splitlines(), 1):
                if not regex.search(line):
                    continue
                if len(matches) >= max_results:
                    truncated = True
                    break
                text = line.strip()
                if len(text) > self.MAX_LINE_LENGTH:
                    text = text[:self.MAX_LINE_LENGTH] + "..."
                rel = self._relative(file_path)
                matches.append({"file": rel, "line": line_num, "text": text})
                files_with_matches.add(rel)
            if truncated:
                break

        if not matches:
            return ToolResult.ok(f"No matches found for '{query}'", matches=[], count=0, query=query)

        message = f"Found {len(matches)} matches for '{query}' in {len(files_with_matches)} files"
        if truncated:
            message += f" (limited to {max_results} results)"
        return ToolResult.ok(message, matches=matches, count=len(matches), query=query, truncated=truncated)
