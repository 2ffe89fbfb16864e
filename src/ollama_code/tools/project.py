"""Project analysis tool."""

from collections import Counter
from pathlib import Path
from typing import Any

from ollama_code.tools.base import Tool, ToolResult
from ollama_code.tools.search import SKIP_DIRS
from ollama_code.validators.cleaner import LANGUAGE_BY_EXTENSION


NOTABLE_FILES = (
    "README.md", "README.rst", "pyproject.toml", "setup.py", "requirements.txt",
    "package.json", "go.mod", "Cargo.toml", "pom.xml", "build.gradle",
    "Makefile", "Dockerfile", "docker-compose.yml", ".gitignore",
)


class ProjectAnalyzerTool(Tool):
    """Summarize the layout and composition of a directory."""

    name = "project_analyzer"
    description = "Analyze project structure, languages and notable files"
    required_params = ()

    TREE_DEPTH = 3
    MAX_TREE_LINES = 200

    def execute(self, params: dict[str, Any]) -> ToolResult:
        root = self._resolve_path(params.get("target") or ".")
        display = self._relative(root)

        if not root.exists():
            return ToolResult.fail(f"path not found: {display}")
        if not root.is_dir():
            return ToolResult.fail(f"not a directory: {display}")

        tree_lines = [f"{root.name}/"]
        self._build_tree(root, tree_lines, "", 0)
        if len(tree_lines) > self.MAX_TREE_LINES:
            tree_lines = tree_lines[:self.MAX_TREE_LINES] + ["..."]

        stats = self._collect_stats(root)
        notable = [name for name in NOTABLE_FILES if (root / name).exists()]

        lines = [f"Project: {display}", "", "Structure:", *tree_lines, ""]
        lines.append(
            f"Files: {stats['files']}  Directories: {stats['directories']}  "
            f"Lines: {stats['total_lines']}"
        )
        if stats["languages"]:
            lines.append("Languages:")
            for lang, count in stats["languages"].items():
                lines.append(f"  {lang}: {count} files")
        if notable:
            lines.append("Notable files: " + ", ".join(notable))

        return ToolResult.ok(
            "\n".join(lines),
            path=display,
            tree="\n".join(tree_lines),
            stats=stats,
            notable_files=notable,
        )

    def _build_tree(self, dir_path: Path, lines: list[str], prefix: str, depth: int) -> None:
        """Recursively render `dir_path` with box-drawing connectors."""
        if depth >= self.TREE_DEPTH:
            return
        try:
            entries = sorted(dir_path.iterdir(), key=lambda x: (not x.is_dir(), x.name.lower()))
        except PermissionError:
            lines.append(f"{prefix}[permission denied]")
            return

        entries = [e for e in entries if not e.name.startswith(".") and e.name not in SKIP_DIRS]
        for i, entry in enumerate(entries):
            is_last = i == len(entries) - 1
            connector = "└── " if is_last else "├── "
            if entry.is_dir():
                lines.append(f"{prefix}{connector}{entry.name}/")
                if entry.is_symlink():
                    continue
                self._build_tree(entry, lines, prefix + ("    " if is_last else "│   "), depth + 1)
            else:
                lines.append(f"{prefix}{connector}{entry.name}")

    def _collect_stats(self, root: Path) -> dict[str, Any]:
        files = 0
        directories = 0
        total_lines = 0
        languages: Counter = Counter()

        stack = [root]
        while stack:
            current = stack.pop()
            try:
                entries = list(current.iterdir())
            except OSError:
                continue
            for entry in entries:
                if entry.name.startswith(".") or entry.name in SKIP_DIRS:
                    continue
                if entry.is_dir():
                    if entry.is_symlink():
                        continue
                    directories += 1
                    stack.append(entry)
                    continue
                files += 1
                lang = LANGUAGE_BY_EXTENSION.get(entry.suffix.lower())
                if not lang:
                    continue
                languages[lang] += 1
                try:
                    with open(entry, "rb") as f:
                        total_lines += sum(1 for _ in f)
                except OSError:
                    pass

        return {
            "files": files,
            "directories": directories,
            "total_lines": total_lines,
            "languages": dict(languages.most_common()),
        }
