"""TODO tracking for long-running operations."""

import json
import threading
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

import structlog

from ollama_code.config import config_dir
from ollama_code.errors import BadRequest, NotFound


log = structlog.get_logger(__name__)

TODOS_FILE_NAME = "todos.json"


class TodoStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    def __str__(self) -> str:
        return self.value


@dataclass
class Todo:
    """A single tracked item."""
    id: str
    content: str
    status: TodoStatus = TodoStatus.PENDING
    active_form: str = ""
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Todo":
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            status=TodoStatus(data.get("status", "pending")),
            active_form=data.get("active_form", ""),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


def default_todos_path() -> Path:
    return config_dir() / TODOS_FILE_NAME


class TodoManager:
    """Ordered TODO list, persisted as a JSON array when a path is given.

    Args:
        path: JSON file to persist to. None keeps the list in memory only.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._todos: list[Todo] = []
        self._lock = threading.Lock()
        if self.path is not None:
            self._todos = self._load()

    @classmethod
    def default(cls) -> "TodoManager":
        """Manager backed by ~/.ollama-code/todos.json."""
        return cls(default_todos_path())

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load(self) -> list[Todo]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [Todo.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError) as e:
            log.warning("todos_load_failed", path=str(self.path), error=str(e))
            return []

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([t.to_dict() for t in self._todos], indent=2)
        self.path.write_text(payload + "\n", encoding="utf-8")

    # =========================================================================
    # Operations
    # =========================================================================

    def add(self, content: str, active_form: str = "") -> str:
        """Add a pending TODO and return its id."""
        if not content.strip():
            raise BadRequest("todo content cannot be empty")
        now = datetime.now().isoformat()
        todo = Todo(
            id=str(uuid.uuid4()),
            content=content,
            active_form=active_form or content,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._todos.append(todo)
            self._save()
        return todo.id

    def _find(self, todo_id: str) -> Todo:
        for todo in self._todos:
            if todo.id == todo_id:
                return todo
        raise NotFound(f"todo not found: {todo_id}")

    def update(self, todo_id: str, status: TodoStatus) -> None:
        with self._lock:
            todo = self._find(todo_id)
            todo.status = TodoStatus(status)
            todo.updated_at = datetime.now().isoformat()
            self._save()

    def complete(self, todo_id: str) -> None:
        self.update(todo_id, TodoStatus.COMPLETED)

    def set_in_progress(self, todo_id: str) -> None:
        self.update(todo_id, TodoStatus.IN_PROGRESS)

    def get(self, todo_id: str) -> Todo:
        with self._lock:
            return self._find(todo_id)

    def delete(self, todo_id: str) -> None:
        with self._lock:
            todo = self._find(todo_id)
            self._todos.remove(todo)
            self._save()

    def list(self) -> list[Todo]:
        with self._lock:
            return list(self._todos)

    def list_by_status(self, status: TodoStatus) -> "list[Todo]":
        with self._lock:
            return [t for t in self._todos if t.status == status]

    def count(self) -> int:
        with self._lock:
            return len(self._todos)

    def summary(self) -> dict[TodoStatus, int]:
        """Count of TODOs per status (every status present, possibly zero)."""
        counts = {status: 0 for status in TodoStatus}
        with self._lock:
            for todo in self._todos:
                counts[todo.status] += 1
        return counts

    def clear(self) -> None:
        with self._lock:
            self._todos = []
            self._save()
