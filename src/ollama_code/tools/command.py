"""Shell command tool."""

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from ollama_code.bgtask.supervisor import shell_argv
from ollama_code.tools.base import Tool, ToolResult

if TYPE_CHECKING:
    from ollama_code.bgtask.supervisor import Supervisor


# Lines of output kept in the message shown to the user
MAX_OUTPUT_LINES = 200


def _truncate(output: str, limit: int = MAX_OUTPUT_LINES) -> str:
    lines = output.splitlines()
    if len(lines) <= limit:
        return output
    return "\n".join(lines[:limit]) + f"\n... ({len(lines) - limit} more lines)"


class CommandExecutorTool(Tool):
    """Execute a shell command, in the foreground or as a background task."""

    name = "command_executor"
    description = "Execute a shell command and return its output"
    required_params = ("command",)

    def __init__(
        self,
        work_dir: Optional[Path] = None,
        supervisor: "Optional[Supervisor]" = None,
        timeout: int = 120,
    ):
        super().__init__(work_dir)
        self.supervisor = supervisor
        self.timeout = timeout

    def execute(self, params: dict[str, Any]) -> ToolResult:
        command = params["command"].strip()

        if params.get("background"):
            if self.supervisor is None:
                return ToolResult.fail("background execution is not available")
            task = self.supervisor.start_shell(command, str(self.work_dir))
            return ToolResult.ok(f"Started background task {task.id}: {command}", task_id=task.id)

        timeout = self.int_param(params, "timeout", self.timeout)
        try:
            completed = subprocess.run(
                shell_argv(command),
                cwd=self.work_dir,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return ToolResult.fail(f"command timed out after {timeout}s", command=command)
        except OSError as e:
            return ToolResult.fail(f"cannot run command: {e}", command=command)

        output = completed.stdout
        if completed.stderr:
            output += ("\n" if output and not output.endswith("\n") else "") + "[stderr]\n" + completed.stderr
        output = _truncate(output.rstrip("\n"))

        data = dict(
            command=command,
            stdout=completed.stdout,
            stderr=completed.stderr,
            exit_code=completed.returncode,
        )
        if completed.returncode != 0:
            return ToolResult.fail(f"command exited with code {completed.returncode}", message=output, **data)
        return ToolResult.ok(output, **data)
