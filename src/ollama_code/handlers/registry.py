"""Intent to handler routing."""

from typing import TYPE_CHECKING, Optional

from ollama_code.errors import AlreadyRegistered, NotFound
from ollama_code.intent.types import Intent
from ollama_code.locks import RWLock

if TYPE_CHECKING:
    from ollama_code.handlers.base import Dependencies, Handler
    from ollama_code.intent.types import DetectionResult


class HandlerRegistry:
    """Concurrent-safe mapping from intent to handler, with an optional default.

    The lock only guards the lookup. Handlers run after it is released,
    so a slow handler never blocks registration or other dispatches.
    """

    def __init__(self):
        self._lock = RWLock()
        self._handlers: dict[Intent, "Handler"] = {}
        self._default: Optional["Handler"] = None

    def register(self, intent: Intent, handler: "Handler") -> None:
        """Bind `handler` to `intent`.

        Raises:
            AlreadyRegistered: If the intent already has a handler.
        """
        with self._lock.write():
            if intent in self._handlers:
                raise AlreadyRegistered(f"handler already registered for intent: {intent}")
            self._handlers[intent] = handler

    def register_default(self, handler: "Handler") -> None:
        """Set the handler used for intents with no registration."""
        with self._lock.write():
            self._default = handler

    def get_handler(self, intent: Intent) -> Optional["Handler"]:
        """Handler for `intent`, the default on a miss, or None."""
        with self._lock.read():
            return self._handlers.get(intent, self._default)

    def has(self, intent: Intent) -> bool:
        with self._lock.read():
            return intent in self._handlers

    def list(self) -> list[Intent]:
        """Snapshot of registered intents (the default is not included)."""
        with self._lock.read():
            return list(self._handlers)

    def handle(self, deps: "Dependencies", result: "DetectionResult") -> str:
        """Route `result` to its handler and run it.

        Raises:
            NotFound: If no handler matches and no default is set.
        """
        handler = self.get_handler(result.intent)
        if handler is None:
            raise NotFound(f"no handler for intent: {result.intent}")
        return handler.handle(deps, result)
