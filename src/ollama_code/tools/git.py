"""Git operations tool."""

import subprocess
from typing import Any

from ollama_code.tools.base import Tool, ToolResult


READONLY_OPERATIONS = ("status", "diff", "log", "branch", "show")
SUPPORTED_OPERATIONS = READONLY_OPERATIONS + (
    "add", "commit", "push", "pull", "checkout", "reset", "rebase", "merge", "stash",
)


def _as_list(value: Any) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return str(value).split()


class GitOperationsTool(Tool):
    """Run a git subcommand in the working directory."""

    name = "git_operations"
    description = "Run git operations: " + ", ".join(SUPPORTED_OPERATIONS)
    required_params = ("operation",)

    def execute(self, params: dict[str, Any]) -> ToolResult:
        operation = str(params["operation"]).strip().lower()
        if operation not in SUPPORTED_OPERATIONS:
            return ToolResult.fail(f"unsupported git operation: {operation}")

        args = self._build_args(operation, params)
        if isinstance(args, ToolResult):
            return args

        try:
            result = self._run_git(*args)
        except FileNotFoundError:
            return ToolResult.fail("git is not installed")
        except subprocess.TimeoutExpired:
            return ToolResult.fail(f"git {operation} timed out")

        output = result.stdout.rstrip("\n")
        if result.returncode != 0:
            return ToolResult.fail(
                result.stderr.strip() or f"git {operation} exited with code {result.returncode}",
                output=output,
                operation=operation,
                exit_code=result.returncode,
            )
        return ToolResult.ok(output, output=output, operation=operation, exit_code=0)

    def _build_args(self, operation: str, params: dict[str, Any]):
        """Translate handler parameters into git argv, or a failed result."""
        extra = _as_list(params.get("args"))

        if operation == "status":
            return ["status", "--short", "--branch", *extra]
        if operation == "diff":
            files = _as_list(params.get("files") or params.get("file"))
            staged = ["--cached"] if params.get("staged") else []
            return ["diff", *staged, *extra, *(["--", *files] if files else [])]
        if operation == "log":
            count = self.int_param(params, "count", 10)
            return ["log", "--oneline", "--decorate", f"-n{count}", *extra]
        if operation == "add":
            files = _as_list(params.get("files") or params.get("file")) or ["."]
            return ["add", "--", *files]
        if operation == "commit":
            message = params.get("message")
            if not message:
                return ToolResult.fail("commit requires a message")
            return ["commit", "-m", str(message), *extra]
        if operation in ("checkout", "merge", "rebase"):
            target = params.get("branch") or params.get("target")
            if not target and not extra:
                return ToolResult.fail(f"{operation} requires a branch")
            return [operation, *([str(target)] if target else []), *extra]
        if operation == "reset":
            target = params.get("target")
            return ["reset", *extra, *([str(target)] if target else [])]
        if operation == "branch":
            name = params.get("branch")
            return ["branch", *([str(name)] if name else []), *extra]
        # push, pull, show, stash
        return [operation, *extra]

    def _run_git(self, *args: str) -> subprocess.CompletedProcess:
        """Run a git command."""
        return subprocess.run(
            ["git", *args],
            cwd=self.work_dir,
            capture_output=True,
            text=True,
            timeout=120,
        )
