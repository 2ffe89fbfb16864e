"""read_file and write_file handlers."""

from ollama_code.errors import BadRequest, ExternalFailure, ParseFailure
from ollama_code.handlers.base import Dependencies, Handler, run_tool
from ollama_code.handlers.params import ReadFileParams, WriteFileParams
from ollama_code.intent.types import DetectionResult
from ollama_code.validators import CodeCleaner, FileValidator, JSONValidator


PREVIEW_LINES = 20
RAW_PREVIEW_CHARS = 500

ANALYSIS_KEYWORDS = (
    "analise", "analisa", "analyze", "analyse",
    "explique", "explica", "explain",
    "revise", "revisa", "review",
    "o que faz", "what does",
)

MULTI_FILE_KEYWORDS = (
    "separados", "separadas",
    "múltiplos arquivos", "multiplos arquivos",
    "vários arquivos", "varios arquivos",
    "html, css e javascript", "html, css e js",
    "html e css separados", "html e css separadas",
    "html, css", "css, js", "html, js",
    "arquivo html e css", "arquivo css e js",
    "com estrutura de pastas",
    "projeto completo",
    "full-stack",
    "frontend e backend",
    "cliente e servidor",
    "3 arquivos", "três arquivos",
    "multiple files", "separate files",
)

READONLY_MESSAGE = (
    "Operation blocked: read-only mode\n"
    "To allow changes, switch mode:\n"
    "  --mode interactive  (asks for confirmation)\n"
    "  --mode autonomous   (applies changes automatically)"
)
CANCELLED_MESSAGE = "Operation cancelled"


def wants_analysis(message: str) -> bool:
    lowered = message.lower()
    return any(keyword in lowered for keyword in ANALYSIS_KEYWORDS)


def is_multi_file_request(message: str) -> bool:
    lowered = message.lower()
    return any(keyword in lowered for keyword in MULTI_FILE_KEYWORDS)


def format_content_preview(content: str, limit: int = PREVIEW_LINES) -> str:
    lines = content.replace("\r", "").split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    out = ["File contents:", "", "```"]
    out.extend(f"{i:4d} | {line}" for i, line in enumerate(lines[:limit], 1))
    if len(lines) > limit:
        out.append(f"\n... and {len(lines) - limit} more lines")
    out.append("```")
    out.append(f"\nTotal: {len(lines)} lines")
    return "\n".join(out)


# =============================================================================
# read_file
# =============================================================================

class FileReadHandler(Handler):
    """Read a file and show a numbered preview, or an LLM analysis on request."""

    name = "file_read"

    def handle(self, deps: Dependencies, result: DetectionResult) -> str:
        params = ReadFileParams.from_result(result)
        tool_result = run_tool(deps, "file_reader", {"file_path": params.file_path})
        deps.add_recent_file(params.file_path)

        content = tool_result.data.get("content")
        if not isinstance(content, str):
            return tool_result.message

        output = tool_result.message + "\n\n"
        if wants_analysis(result.user_message) and deps.llm is not None:
            return output + "File analysis:\n\n" + self._analyze(deps, params.file_path, content)
        return output + format_content_preview(content)

    def _analyze(self, deps: Dependencies, file_path: str, content: str) -> str:
        prompt = (
            "You are a coding assistant. Analyze the following file and provide:\n"
            "1. A summary of what the file does\n"
            "2. Its main components, functions or classes\n"
            "3. The technologies and languages used\n"
            "4. Any important observations\n\n"
            f"File: {file_path}\n"
            f"Content:\n{content}\n\n"
            "Keep the analysis concise and useful."
        )
        try:
            return deps.llm.complete(prompt).strip()
        except ExternalFailure:
            # The file was read; fall back to showing it
            return format_content_preview(content)


# =============================================================================
# write_file
# =============================================================================

class FileWriteHandler(Handler):
    """Write one file, or generate one or several files through the LLM."""

    name = "file_write"

    def __init__(self):
        self.file_validator = FileValidator()
        self.json_validator = JSONValidator()
        self.cleaner = CodeCleaner()

    def handle(self, deps: Dependencies, result: DetectionResult) -> str:
        # Mode gate comes before anything else, including LLM generation
        if not deps.mode.allows_writes():
            return READONLY_MESSAGE

        params = WriteFileParams.from_result(result)
        if is_multi_file_request(result.user_message):
            return self._write_many(deps, result.user_message)
        if not params.content:
            return self._generate_and_write(deps, result.user_message, params.file_path)
        return self._write_single(deps, params.file_path, params.content, params.mode)

    def _write_single(self, deps: Dependencies, file_path: str, content: str, mode: str = "create") -> str:
        if not self.file_validator.is_valid(file_path):
            raise BadRequest(f"invalid file name: {file_path!r}")

        content = self.cleaner.clean(content, file_path)
        todo_id = deps.start_todo(f"Write file: {file_path}", f"Writing {file_path}")

        if deps.mode.requires_confirmation():
            preview = self._preview(deps, file_path, content)
            if not deps.confirm_with_preview(f"Write file {file_path}?", preview):
                deps.finish_todo(todo_id, success=False)
                return CANCELLED_MESSAGE

        params = {"file_path": file_path, "content": content}
        if mode != "create":
            params["mode"] = mode
        try:
            tool_result = run_tool(deps, "file_writer", params)
        except ExternalFailure:
            deps.finish_todo(todo_id, success=False)
            raise

        deps.finish_todo(todo_id, success=True)
        deps.add_recent_file(file_path)
        return tool_result.message

    def _preview(self, deps: Dependencies, file_path: str, content: str) -> str:
        """Diff against the current file when possible, else the raw content."""
        if deps.diff_manager is not None and deps.preview_manager is not None and deps.tools.has("file_reader"):
            current = deps.tools.execute("file_reader", {"file_path": file_path})
            old_content = current.data.get("content") if current.success else None
            if old_content:
                diff = deps.diff_manager.compute_diff(file_path, old_content, content)
                return deps.preview_manager.preview(diff)

        if len(content) > RAW_PREVIEW_CHARS:
            return content[:RAW_PREVIEW_CHARS] + "\n...(truncated)"
        return content

    # =========================================================================
    # LLM generation
    # =========================================================================

    def _generate_and_write(self, deps: Dependencies, user_message: str, suggested_path: str) -> str:
        llm = self.require_llm(deps)
        response = llm.complete(self._generation_prompt(deps, user_message, suggested_path))

        try:
            parsed = self.json_validator.parse(response)
        except ParseFailure:
            # Not JSON: treat the whole response as the file body
            if not suggested_path:
                raise BadRequest("file path not specified")
            return self._write_single(deps, suggested_path, response)

        file_path = parsed.get("file_path")
        if not isinstance(file_path, str) or not file_path.strip():
            file_path = suggested_path or self.file_validator.extract_filename(user_message)
            if not file_path:
                raise BadRequest("could not determine the file path")

        content = parsed.get("content")
        if not isinstance(content, str) or not content:
            content = response
        return self._write_single(deps, file_path.strip(), content)

    @staticmethod
    def _recent_block(deps: Dependencies, limit: int = 5) -> str:
        if not deps.recent_files:
            return ""
        recent = list(reversed(deps.recent_files))[:limit]
        return "Recent files:\n" + "".join(f"- {f}\n" for f in recent) + "\n"

    def _generation_prompt(self, deps: Dependencies, user_message: str, suggested_path: str) -> str:
        parts = [
            "Generate file content based on the following request:\n\n",
            f"User request: {user_message}\n\n",
        ]
        if suggested_path:
            parts.append(f"Suggested file path: {suggested_path}\n\n")
        parts.append(f"Working directory: {deps.work_dir}\n\n")
        parts.append(self._recent_block(deps))
        parts.append(
            "Output a JSON object with 'file_path' and 'content' fields.\n"
            "Example:\n"
            "{\n"
            '  "file_path": "example.py",\n'
            '  "content": "def main():\\n    pass\\n"\n'
            "}\n"
        )
        return "".join(parts)

    # =========================================================================
    # Multi-file generation
    # =========================================================================

    def _write_many(self, deps: Dependencies, user_message: str) -> str:
        llm = self.require_llm(deps)
        response = llm.complete(self._multi_file_prompt(deps, user_message))

        try:
            parsed = self.json_validator.parse(response)
        except ParseFailure:
            return self._generate_and_write(deps, user_message, "")
        if "files" not in parsed:
            return self._generate_and_write(deps, user_message, "")

        files = parsed["files"]
        if not isinstance(files, list) or not files:
            raise ExternalFailure("invalid response format: expected an array of files")

        if deps.mode.requires_confirmation():
            paths = [
                f["file_path"] for f in files
                if isinstance(f, dict) and isinstance(f.get("file_path"), str) and f["file_path"]
            ]
            question = f"Create {len(paths)} file(s)?\n  - " + "\n  - ".join(paths)
            if not deps.confirm(question):
                return CANCELLED_MESSAGE

        created: list[str] = []
        failed: list[str] = []
        for entry in files:
            if not isinstance(entry, dict):
                failed.append("entry with invalid format")
                continue
            file_path = entry.get("file_path") if isinstance(entry.get("file_path"), str) else ""
            content = entry.get("content") if isinstance(entry.get("content"), str) else ""
            if not file_path or not content:
                failed.append(f"{file_path} (missing file_path or content)")
                continue
            if not self.file_validator.is_valid(file_path):
                failed.append(f"{file_path} (invalid name)")
                continue

            tool_result = deps.tools.execute(
                "file_writer",
                {"file_path": file_path, "content": self.cleaner.clean(content, file_path)},
            )
            if not tool_result.success:
                failed.append(f"{file_path} (error: {tool_result.error})")
                continue
            deps.add_recent_file(file_path)
            created.append(file_path)

        if not created:
            raise ExternalFailure("no files were created: " + "; ".join(failed))

        lines = ["Multi-file project created!", "", f"Files created ({len(created)}):"]
        lines.extend(f"  ✓ {path}" for path in created)
        if failed:
            lines.append("")
            lines.append(f"Failures ({len(failed)}):")
            lines.extend(f"  ✗ {item}" for item in failed)
        return "\n".join(lines)

    def _multi_file_prompt(self, deps: Dependencies, user_message: str) -> str:
        return "".join([
            "Generate multiple coordinated files based on the following request:\n\n",
            f"User request: {user_message}\n\n",
            f"Working directory: {deps.work_dir}\n\n",
            self._recent_block(deps),
            "Output a JSON object with a 'files' array. Each file must have 'file_path' and 'content'.\n\n",
            "IMPORTANT RULES:\n",
            "1. Create ALL files requested by the user\n",
            "2. If the user asks for separate HTML, CSS and JavaScript: create 3 files\n",
            '3. HTML must reference CSS with <link rel="stylesheet" href="...">\n',
            '4. HTML must reference JS with <script src="..."></script>\n',
            "5. Use conventional file names (index.html, style.css, script.js)\n",
            "6. Each file must have complete, working content\n",
            "7. Use relative paths for links between files\n\n",
            "Example output:\n",
            '{"files": [\n',
            '  {"file_path": "index.html", "content": "<!DOCTYPE html>..."},\n',
            '  {"file_path": "style.css", "content": "body { font-family: Arial; }"},\n',
            '  {"file_path": "script.js", "content": "console.log(\'Hello\');"}\n',
            "]}\n\n",
            "Now generate the files:\n",
        ])
