"""git_operation handler."""

from ollama_code.handlers.base import Dependencies, Handler, run_tool
from ollama_code.handlers.params import GitParams
from ollama_code.intent.types import DetectionResult
from ollama_code.tools.git import READONLY_OPERATIONS


RISKY_OPERATIONS = ("push", "reset", "rebase", "merge", "checkout")
MAX_DIFF_LINES = 50

_TITLES = {
    "status": "Repository status:",
    "log": "Commit history:",
    "diff": "Changes:",
    "branch": "Branches:",
}


class GitHandler(Handler):
    """Forward git operations to the git tool, gated by mode."""

    name = "git"

    def handle(self, deps: Dependencies, result: DetectionResult) -> str:
        params = GitParams.from_result(result)
        operation = params.operation

        if not deps.mode.allows_writes() and operation not in READONLY_OPERATIONS:
            return (
                f"Operation blocked: 'git {operation}' modifies the repository in read-only mode\n"
                "Allowed: " + ", ".join(READONLY_OPERATIONS) + "\n"
                "Switch to --mode interactive or --mode autonomous to run it."
            )

        if operation in RISKY_OPERATIONS and deps.mode.requires_confirmation():
            if not deps.confirm(f"Run git operation: {operation}?"):
                return "Operation cancelled"

        tool_result = run_tool(deps, "git_operations", params.tool_params())
        return self.format_result(operation, str(tool_result.data.get("output") or ""))

    def format_result(self, operation: str, output: str) -> str:
        if not output.strip():
            if operation == "status":
                return "Nothing to commit, working tree clean"
            if operation == "diff":
                return "No changes detected"
            return f"git {operation}: done (no output)"

        if operation == "diff":
            lines = output.split("\n")
            body = "\n".join(lines[:MAX_DIFF_LINES])
            if len(lines) > MAX_DIFF_LINES:
                body += f"\n\n... and {len(lines) - MAX_DIFF_LINES} more lines"
            return f"{_TITLES['diff']}\n\n```diff\n{body}\n```"

        title = _TITLES.get(operation, f"git {operation}:")
        return f"{title}\n\n```\n{output}\n```"
