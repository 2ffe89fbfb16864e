"""Background-task supervision."""

from ollama_code.bgtask.supervisor import READ_CHUNK, Supervisor, shell_argv
from ollama_code.bgtask.task import BackgroundTask, TaskStatus

__all__ = [
    "BackgroundTask",
    "TaskStatus",
    "Supervisor",
    "shell_argv",
    "READ_CHUNK",
]
