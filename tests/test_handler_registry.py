"""Tests for intent to handler routing."""

import threading

import pytest

from ollama_code.errors import AlreadyRegistered, NotFound
from ollama_code.handlers import HandlerRegistry, default_handlers
from ollama_code.handlers.base import Handler
from ollama_code.intent.types import Intent


class NamedHandler(Handler):
    def __init__(self, name):
        self.name = name

    def handle(self, deps, result):
        return f"{self.name}:{result.user_message}"


class TestHandlerRegistry:
    """Tests for HandlerRegistry."""

    def test_routes_by_intent(self, make_deps, make_result):
        """The handler bound to the intent runs."""
        registry = HandlerRegistry()
        registry.register(Intent.READ_FILE, NamedHandler("reader"))
        registry.register(Intent.WRITE_FILE, NamedHandler("writer"))

        response = registry.handle(make_deps(), make_result(Intent.WRITE_FILE, "make a.py"))

        assert response == "writer:make a.py"

    def test_duplicate_registration(self):
        """An intent can only be bound once."""
        registry = HandlerRegistry()
        registry.register(Intent.QUESTION, NamedHandler("a"))

        with pytest.raises(AlreadyRegistered):
            registry.register(Intent.QUESTION, NamedHandler("b"))

    def test_default_handler(self, make_deps, make_result):
        """Unregistered intents fall back to the default."""
        registry = HandlerRegistry()
        registry.register_default(NamedHandler("fallback"))

        assert registry.handle(make_deps(), make_result(Intent.UNKNOWN, "??")) == "fallback:??"
        assert registry.has(Intent.UNKNOWN) is False

    def test_no_handler(self, make_deps, make_result):
        """Without a match or default, dispatch raises NotFound."""
        with pytest.raises(NotFound, match="no handler for intent: git_operation"):
            HandlerRegistry().handle(make_deps(), make_result(Intent.GIT_OPERATION))

    def test_list(self):
        """list returns registered intents only."""
        registry = HandlerRegistry()
        registry.register(Intent.SEARCH_CODE, NamedHandler("s"))
        registry.register_default(NamedHandler("d"))

        assert registry.list() == [Intent.SEARCH_CODE]

    def test_handlers_run_outside_lock(self, make_deps, make_result):
        """A handler may register another handler while it runs."""
        registry = HandlerRegistry()

        class Registering(Handler):
            def handle(self, deps, result):
                registry.register(Intent.WEB_SEARCH, NamedHandler("late"))
                return "ok"

        registry.register(Intent.QUESTION, Registering())

        assert registry.handle(make_deps(), make_result(Intent.QUESTION)) == "ok"
        assert registry.has(Intent.WEB_SEARCH)

    def test_concurrent_registration(self):
        """Concurrent registrations of distinct intents all succeed."""
        registry = HandlerRegistry()
        intents = [i for i in Intent if i is not Intent.UNKNOWN]

        threads = [
            threading.Thread(target=registry.register, args=(intent, NamedHandler(intent.value)))
            for intent in intents
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(i.value for i in registry.list()) == sorted(i.value for i in intents)

    def test_default_handlers_cover_intents(self):
        """Every routable intent has a built-in handler."""
        handlers = default_handlers()

        assert set(handlers) == {i for i in Intent if i is not Intent.UNKNOWN}
