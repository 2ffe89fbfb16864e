"""Background task state: lifecycle, output buffers and completion signal."""

import threading
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from ollama_code.locks import RWLock

if TYPE_CHECKING:
    import subprocess


class TaskStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    KILLED = "killed"

    def __str__(self) -> str:
        return self.value

    def is_terminal(self) -> bool:
        return self is not TaskStatus.RUNNING


class BackgroundTask:
    """A subprocess tracked by the supervisor.

    Output is kept as two append-only byte buffers, each with a read
    cursor used by `get_new_output`. The `done` event is set exactly once,
    right after the task reaches a terminal status.
    """

    def __init__(self, command: str, args: Optional[list[str]] = None, work_dir: str = ""):
        self.id = str(uuid.uuid4())
        self.command = command
        self.args = list(args or [])
        self.work_dir = work_dir
        self.status = TaskStatus.RUNNING
        self.exit_code: Optional[int] = None
        self.error = ""
        self.started_at = datetime.now()
        self.completed_at: Optional[datetime] = None
        self.process: "Optional[subprocess.Popen]" = None

        self._stdout = bytearray()
        self._stderr = bytearray()
        self._stdout_pos = 0
        self._stderr_pos = 0
        self._output_lock = RWLock()

        self._state_lock = threading.Lock()
        self._done = threading.Event()
        self._done_guard = threading.Lock()

    def __repr__(self) -> str:
        return f"BackgroundTask(id={self.id!r}, command={self.command!r}, status={self.status.value})"

    # --- Output ---

    def write_stdout(self, data: bytes) -> None:
        with self._output_lock.write():
            self._stdout.extend(data)

    def write_stderr(self, data: bytes) -> None:
        with self._output_lock.write():
            self._stderr.extend(data)

    def get_new_output(self) -> tuple[bytes, bytes]:
        """Bytes appended since the previous call, advancing both cursors."""
        with self._output_lock.write():
            stdout = bytes(self._stdout[self._stdout_pos:])
            stderr = bytes(self._stderr[self._stderr_pos:])
            self._stdout_pos = len(self._stdout)
            self._stderr_pos = len(self._stderr)
        return stdout, stderr

    def get_full_output(self) -> tuple[bytes, bytes]:
        """Entire buffers; cursors are left untouched."""
        with self._output_lock.read():
            return bytes(self._stdout), bytes(self._stderr)

    # --- Lifecycle ---

    @property
    def done(self) -> threading.Event:
        return self._done

    def is_done(self) -> bool:
        return self._done.is_set()

    def close_done(self) -> bool:
        """Fire the completion signal; only the first call has an effect.

        Returns:
            True if this call fired the signal.
        """
        with self._done_guard:
            if self._done.is_set():
                return False
            self._done.set()
            return True

    def finish(
        self,
        status: TaskStatus,
        exit_code: Optional[int] = None,
        error: str = "",
        on_finish: Optional[Callable[[TaskStatus], None]] = None,
    ) -> bool:
        """Apply the terminal transition if the task is still running.

        Status, exit code, error and completed_at are all written, and
        `on_finish` has run, before the done signal fires.

        Returns:
            True if this call performed the transition.
        """
        if not status.is_terminal():
            raise ValueError(f"not a terminal status: {status}")
        with self._state_lock:
            if self.status.is_terminal():
                return False
            self.status = status
            self.exit_code = exit_code
            self.error = error
            self.completed_at = datetime.now()
        if on_finish is not None:
            on_finish(status)
        self.close_done()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until done; False if `timeout` seconds elapsed first."""
        return self._done.wait(timeout)

    def is_terminal(self) -> bool:
        return self.status.is_terminal()

    def is_success(self) -> bool:
        return self.status is TaskStatus.COMPLETED and self.exit_code == 0

    def duration(self) -> timedelta:
        """Run time so far, or total run time once finished."""
        end = self.completed_at or datetime.now()
        return end - self.started_at

    @property
    def command_line(self) -> str:
        return " ".join([self.command, *self.args])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "command": self.command,
            "args": list(self.args),
            "work_dir": self.work_dir,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": round(self.duration().total_seconds(), 3),
        }
