"""File reader and writer tools."""

from typing import Any

from ollama_code.tools.base import Tool, ToolResult


# Refuse to load files larger than this into a prompt
MAX_READ_BYTES = 1_000_000


class FileReaderTool(Tool):
    """Read a text file."""

    name = "file_reader"
    description = "Read the contents of a text file"
    required_params = ("file_path",)

    def execute(self, params: dict[str, Any]) -> ToolResult:
        path = self._resolve_path(params["file_path"])
        display = self._relative(path)

        if not path.exists():
            return ToolResult.fail(f"file not found: {display}")
        if path.is_dir():
            return ToolResult.fail(f"not a file: {display} is a directory")

        size = path.stat().st_size
        if size > MAX_READ_BYTES:
            return ToolResult.fail(f"file too large: {display} ({size} bytes, limit {MAX_READ_BYTES})")

        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            return ToolResult.fail(f"cannot read {display}: {e}")

        lines = content.count("\n") + (1 if content and not content.endswith("\n") else 0)
        return ToolResult.ok(
            f"Read {display} ({lines} lines)",
            content=content,
            path=display,
            lines=lines,
            size=size,
        )


class FileWriterTool(Tool):
    """Create, overwrite or append to a file."""

    name = "file_writer"
    description = "Write content to a file (mode: create or append)"
    required_params = ("file_path",)

    def execute(self, params: dict[str, Any]) -> ToolResult:
        path = self._resolve_path(params["file_path"])
        display = self._relative(path)
        content = params.get("content") or ""
        mode = params.get("mode") or "create"

        if mode not in ("create", "append"):
            return ToolResult.fail(f"invalid write mode: {mode}")
        if path.is_dir():
            return ToolResult.fail(f"cannot write {display}: is a directory")

        existed = path.exists()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if mode == "append":
                with open(path, "a", encoding="utf-8") as f:
                    f.write(content)
            else:
                path.write_text(content, encoding="utf-8")
        except OSError as e:
            return ToolResult.fail(f"cannot write {display}: {e}")

        if mode == "append":
            message = f"Appended {len(content)} bytes to {display}"
        elif existed:
            message = f"Updated {display}"
        else:
            message = f"Created {display}"
        return ToolResult.ok(message, path=display, bytes=len(content.encode("utf-8")), created=not existed)
