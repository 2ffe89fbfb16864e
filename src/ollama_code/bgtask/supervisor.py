"""Background-task supervisor: launch, stream, wait, kill and clean up."""

import os
import subprocess
import threading
from datetime import datetime, timedelta
from typing import IO, Callable, Optional, Union

import structlog

from ollama_code.bgtask.task import BackgroundTask, TaskStatus
from ollama_code.errors import AlreadyTerminated, NotFound, WaitTimeout
from ollama_code.locks import RWLock


READ_CHUNK = 4096

log = structlog.get_logger(__name__)


def shell_argv(command_line: str) -> list[str]:
    """Argument vector running `command_line` through the platform shell."""
    if os.name == "nt":
        return ["cmd", "/c", command_line]
    return ["sh", "-c", command_line]


def _pump(stream: IO[bytes], sink: Callable[[bytes], None]) -> None:
    """Copy a pipe into a task buffer in fixed-size chunks until EOF."""
    try:
        while True:
            chunk = stream.read1(READ_CHUNK) if hasattr(stream, "read1") else stream.read(READ_CHUNK)
            if not chunk:
                break
            sink(chunk)
    finally:
        stream.close()


class Supervisor:
    """Tracks background subprocesses.

    `start` registers the task and returns at once; a worker thread
    launches the process, drains stdout and stderr on two reader threads
    and applies the terminal transition after the process has exited and
    both readers have finished.
    """

    def __init__(self):
        self._lock = RWLock()
        self._tasks: dict[str, BackgroundTask] = {}
        self._total_started = 0
        self._total_completed = 0
        self._total_failed = 0
        self._total_killed = 0

    # --- Launch ---

    def start(self, command: str, args: Optional[list[str]] = None, work_dir: str = "") -> BackgroundTask:
        """Register a new running task and launch it on a worker thread."""
        task = BackgroundTask(command, args, work_dir)

        with self._lock.write():
            self._tasks[task.id] = task
            self._total_started += 1

        worker = threading.Thread(target=self._execute, args=(task,), name=f"bgtask-{task.id[:8]}", daemon=True)
        worker.start()
        log.debug("task_started", task_id=task.id, command=task.command_line)
        return task

    def start_shell(self, command_line: str, work_dir: str = "") -> BackgroundTask:
        """Start a command line through `sh -c` (or `cmd /c` on Windows)."""
        argv = shell_argv(command_line)
        return self.start(argv[0], argv[1:], work_dir)

    def _execute(self, task: BackgroundTask) -> None:
        try:
            process = subprocess.Popen(
                [task.command, *task.args],
                cwd=task.work_dir or None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            self._complete(task, TaskStatus.FAILED, error=f"start command: {e}")
            return

        task.process = process
        if task.status is TaskStatus.KILLED:
            # Killed before the process existed.
            process.kill()

        readers = [
            threading.Thread(target=_pump, args=(process.stdout, task.write_stdout), daemon=True),
            threading.Thread(target=_pump, args=(process.stderr, task.write_stderr), daemon=True),
        ]
        for reader in readers:
            reader.start()

        try:
            returncode = process.wait()
        except OSError as e:
            for reader in readers:
                reader.join()
            self._complete(task, TaskStatus.FAILED, error=str(e))
            return

        for reader in readers:
            reader.join()

        if returncode == 0:
            self._complete(task, TaskStatus.COMPLETED, exit_code=0)
        else:
            self._complete(
                task,
                TaskStatus.FAILED,
                exit_code=returncode,
                error=f"command exited with code {returncode}",
            )

    def _complete(self, task: BackgroundTask, status: TaskStatus, exit_code: Optional[int] = None, error: str = "") -> None:
        if task.finish(status, exit_code, error, on_finish=self._on_task_complete):
            log.debug("task_finished", task_id=task.id, status=task.status.value, exit_code=exit_code)

    def _on_task_complete(self, status: TaskStatus) -> None:
        with self._lock.write():
            if status is TaskStatus.COMPLETED:
                self._total_completed += 1
            elif status is TaskStatus.FAILED:
                self._total_failed += 1
            elif status is TaskStatus.KILLED:
                self._total_killed += 1

    # --- Queries ---

    def get(self, task_id: str) -> BackgroundTask:
        """Look up a task.

        Raises:
            NotFound: If no task has this id.
        """
        with self._lock.read():
            task = self._tasks.get(task_id)
        if task is None:
            raise NotFound(f"task not found: {task_id}")
        return task

    def list(self) -> list[BackgroundTask]:
        with self._lock.read():
            return list(self._tasks.values())

    def list_by_status(self, status: TaskStatus) -> "list[BackgroundTask]":
        with self._lock.read():
            return [t for t in self._tasks.values() if t.status is status]

    def get_new_output(self, task_id: str) -> tuple[bytes, bytes]:
        return self.get(task_id).get_new_output()

    def get_full_output(self, task_id: str) -> tuple[bytes, bytes]:
        return self.get(task_id).get_full_output()

    # --- Control ---

    def kill(self, task_id: str) -> None:
        """Mark a running task as killed and stop its process.

        Raises:
            NotFound: If no task has this id.
            AlreadyTerminated: If the task already reached a terminal state.
        """
        task = self.get(task_id)
        if task.is_terminal():
            raise AlreadyTerminated(task.status.value)

        if not self._terminate(task):
            # Lost the race against the worker's own transition.
            raise AlreadyTerminated(task.status.value)
        log.info("task_killed", task_id=task.id)

    def _terminate(self, task: BackgroundTask) -> bool:
        """Move `task` to KILLED, then stop its process; False if it had already finished."""
        if not task.finish(TaskStatus.KILLED, error="task killed", on_finish=self._on_task_complete):
            return False
        process = task.process
        if process is not None and process.poll() is None:
            try:
                process.kill()
            except ProcessLookupError:
                log.debug("task_process_gone", task_id=task.id)
        return True

    def wait(self, task_id: str) -> Optional[str]:
        """Block until the task is done; return its error, if any."""
        task = self.get(task_id)
        task.wait()
        return task.error or None

    def wait_with_timeout(self, task_id: str, timeout: Union[float, timedelta]) -> Optional[str]:
        """Like `wait`, but give up after `timeout` without touching the task.

        Raises:
            WaitTimeout: If the task is still running when the timer fires.
        """
        seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
        task = self.get(task_id)
        if not task.wait(seconds):
            raise WaitTimeout(seconds)
        return task.error or None

    def cleanup(self, older_than: Union[float, timedelta]) -> int:
        """Remove terminal tasks that completed before now - older_than.

        Returns:
            Number of tasks removed.
        """
        if not isinstance(older_than, timedelta):
            older_than = timedelta(seconds=older_than)
        cutoff = datetime.now() - older_than

        removed = 0
        with self._lock.write():
            for task_id, task in list(self._tasks.items()):
                if not task.is_terminal() or task.completed_at is None:
                    continue
                if task.completed_at < cutoff:
                    task.close_done()
                    del self._tasks[task_id]
                    removed += 1
        if removed:
            log.debug("tasks_cleaned", removed=removed)
        return removed

    def clear_all(self) -> None:
        """Forget every task.

        Running tasks are killed first, so waiters on removed tasks wake up
        to a terminal status.
        """
        with self._lock.write():
            tasks = list(self._tasks.values())
            self._tasks.clear()
        for task in tasks:
            if not task.is_terminal():
                self._terminate(task)
            task.close_done()

    def shutdown(self) -> None:
        """Kill every running task."""
        for task in self.list_by_status(TaskStatus.RUNNING):
            try:
                self.kill(task.id)
            except (AlreadyTerminated, NotFound):
                continue

    def stats(self) -> dict:
        with self._lock.read():
            tasks = list(self._tasks.values())
            completed = self._total_completed
            failed = self._total_failed
            killed = self._total_killed
            started = self._total_started

        by_status = {status: 0 for status in TaskStatus}
        for task in tasks:
            by_status[task.status] += 1

        finished = completed + failed + killed
        return {
            "total_tasks": len(tasks),
            "running_tasks": by_status[TaskStatus.RUNNING],
            "completed_tasks": by_status[TaskStatus.COMPLETED],
            "failed_tasks": by_status[TaskStatus.FAILED],
            "killed_tasks": by_status[TaskStatus.KILLED],
            "total_started": started,
            "total_completed": completed,
            "total_failed": failed,
            "total_killed": killed,
            "success_rate": completed / finished * 100 if finished else 0.0,
        }
