"""Strip markdown fences and normalize generated source code."""

from pathlib import Path


LANGUAGE_BY_EXTENSION = {
    ".go": "go",
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".rs": "rust",
    ".c": "c",
    ".cpp": "cpp",
    ".h": "c",
    ".hpp": "cpp",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".sh": "bash",
    ".bash": "bash",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".xml": "xml",
    ".md": "markdown",
}

C_STYLE = {"go", "java", "c", "cpp", "javascript", "typescript", "rust", "csharp"}
HASH_STYLE = {"python", "bash", "ruby", "yaml"}

FENCE = "```"


class CodeCleaner:
    """Turns model output into file content.

    Models frequently wrap code in markdown fences even when told not to.
    `clean` removes a leading fence (optionally tagged with the file's
    language), a trailing fence, surrounding whitespace, and converts
    CRLF/CR line endings to LF. Cleaning already-clean content is a no-op.
    """

    def clean(self, content: str, file_path: str = "") -> str:
        """Clean generated content destined for `file_path`."""
        lang = self.detect_language(file_path)
        text = self.normalize_line_endings(content).strip()

        previous = None
        while text != previous:
            previous = text
            text = self._strip_fences(text, lang).strip()
        return text

    def _strip_fences(self, content: str, lang: str) -> str:
        patterns = [f"{FENCE}{lang}\n", f"{FENCE}{lang}", f"{FENCE}\n", FENCE]
        for pattern in patterns:
            content = content.removeprefix(pattern)
            content = content.removesuffix(FENCE)
        return content

    @staticmethod
    def normalize_line_endings(content: str) -> str:
        return content.replace("\r\n", "\n").replace("\r", "\n")

    @staticmethod
    def detect_language(file_path: str) -> str:
        """Map a file extension to a fence language tag ("" if unknown)."""
        if not file_path:
            return ""
        return LANGUAGE_BY_EXTENSION.get(Path(file_path).suffix.lower(), "")

    def remove_comments(self, content: str, language: str) -> str:
        """Drop line comments (and C block comments) plus blank lines.

        This is a line-based approximation: comment markers inside string
        literals are treated as comments too.
        """
        if language in C_STYLE:
            return self._remove_c_comments(content)
        if language in HASH_STYLE:
            return self._remove_hash_comments(content)
        return content

    def _remove_c_comments(self, content: str) -> str:
        result = []
        in_block = False
        for line in content.split("\n"):
            if "/*" in line:
                in_block = True
            if not in_block:
                idx = line.find("//")
                if idx >= 0:
                    line = line[:idx]
                if line.strip():
                    result.append(line)
            if "*/" in line:
                in_block = False
        return "\n".join(result)

    def _remove_hash_comments(self, content: str) -> str:
        result = []
        for line in content.split("\n"):
            idx = line.find("#")
            if idx >= 0:
                line = line[:idx]
            if line.strip():
                result.append(line)
        return "\n".join(result)

    @staticmethod
    def add_line_numbers(content: str, start: int = 1) -> str:
        """Prefix every line with a right-aligned line number."""
        return "\n".join(
            f"{i:4d} | {line}" for i, line in enumerate(content.split("\n"), start)
        )
