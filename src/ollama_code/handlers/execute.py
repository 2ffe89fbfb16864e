"""execute_command handler."""

from ollama_code.errors import BadRequest, ExternalFailure
from ollama_code.handlers.base import Dependencies, Handler, run_tool
from ollama_code.handlers.params import ExecuteParams
from ollama_code.intent.types import DetectionResult


DANGEROUS_PATTERNS = (
    "rm -rf",
    "rm -fr",
    "mkfs",
    "dd if=",
    ":(){ :|:& };:",
    "> /dev/",
    "chmod -r 777",
    "chown -r",
)


def is_dangerous(command: str) -> bool:
    """Check a command against the destructive pattern list (case-insensitive)."""
    lowered = command.lower()
    return any(pattern in lowered for pattern in DANGEROUS_PATTERNS)


class ExecuteHandler(Handler):
    """Run a shell command, asking first when it looks destructive."""

    name = "execute"

    def handle(self, deps: Dependencies, result: DetectionResult) -> str:
        params = ExecuteParams.from_result(result)
        todo_id = deps.start_todo(f"Run command: {params.command}", f"Running {params.command}")

        if is_dangerous(params.command):
            if not deps.mode.requires_confirmation():
                deps.finish_todo(todo_id, success=False)
                raise BadRequest(
                    f"dangerous command requires interactive mode: {params.command}",
                    suggestion="Restart with --mode interactive to confirm it manually",
                )
            confirmed = deps.confirmation is not None and deps.confirmation.confirm_dangerous(
                f"Run: {params.command}", warning="This command matches a destructive pattern."
            )
            if not confirmed:
                deps.finish_todo(todo_id, success=False)
                return "Command cancelled by user"

        try:
            tool_result = run_tool(deps, "command_executor", params.tool_params())
        except ExternalFailure:
            deps.finish_todo(todo_id, success=False)
            raise

        deps.finish_todo(todo_id, success=True)
        return tool_result.message
