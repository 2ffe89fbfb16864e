"""Pytest fixtures for Ollama-Code-Py tests."""

import pytest
from pathlib import Path
from tempfile import TemporaryDirectory

from ollama_code.confirmation import AutoConfirmation
from ollama_code.handlers.base import Dependencies
from ollama_code.intent.types import DetectionResult, Intent
from ollama_code.llm.base import MockLLMClient
from ollama_code.mode import OperationMode
from ollama_code.todos import TodoManager
from ollama_code.tools.base import ToolResult


class FakeToolRegistry:
    """In-memory tool executor that records every call.

    `results` maps a tool name to a ToolResult, or to a callable taking
    the params and returning one. Unknown tools answer with a failure.
    """

    def __init__(self, results=None):
        self.results = dict(results or {})
        self.calls = []

    def execute(self, name, params=None):
        params = dict(params or {})
        self.calls.append((name, params))
        result = self.results.get(name)
        if result is None:
            return ToolResult.fail(f"Unknown tool: {name}")
        if callable(result):
            return result(params)
        return result

    def has(self, name):
        return name in self.results

    def calls_to(self, name):
        return [params for tool, params in self.calls if tool == name]


class FakeWebSearch:
    """Returns canned results and remembers queries."""

    def __init__(self, results=None, error=None):
        self.results = results if results is not None else []
        self.error = error
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.results


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def sample_file(temp_dir):
    """Create a sample Python file for testing."""
    file_path = temp_dir / "sample.py"
    content = """def hello():
    print("Hello, World!")

class Greeter:
    def greet(self, name):
        return f"Hello, {name}!"

if __name__ == "__main__":
    hello()
"""
    file_path.write_text(content)
    return file_path


@pytest.fixture
def sample_project(temp_dir):
    """Create a small multi-language project tree."""
    (temp_dir / "src").mkdir()
    (temp_dir / "src" / "app.py").write_text("def process_user(user):\n    return user\n")
    (temp_dir / "src" / "util.go").write_text("package util\n\nfunc ProcessUser() {}\n")
    (temp_dir / "README.md").write_text("# Sample\n")
    (temp_dir / "node_modules").mkdir()
    (temp_dir / "node_modules" / "lib.js").write_text("function process_user() {}\n")
    return temp_dir


@pytest.fixture
def tools():
    return FakeToolRegistry()


@pytest.fixture
def llm():
    return MockLLMClient()


@pytest.fixture
def todo_manager():
    """TODO manager that never touches the disk."""
    return TodoManager()


@pytest.fixture
def make_deps(tools, llm, todo_manager):
    """Factory for handler dependencies with in-memory collaborators."""

    def _make(mode=OperationMode.AUTONOMOUS, confirmation=None, **overrides):
        values = dict(
            tools=tools,
            llm=llm,
            confirmation=confirmation if confirmation is not None else AutoConfirmation(True),
            mode=mode,
            work_dir="/project",
            todo_manager=todo_manager,
        )
        values.update(overrides)
        return Dependencies(**values)

    return _make


@pytest.fixture
def make_result():
    """Factory for classification results."""

    def _make(intent, message="", /, confidence=0.9, **parameters):
        return DetectionResult(
            intent=intent if isinstance(intent, Intent) else Intent.parse(intent),
            confidence=confidence,
            parameters=parameters,
            user_message=message,
        )

    return _make


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Clean environment variables and isolate the home directory."""
    env_vars = [
        "OLLAMA_CODE_MODE",
        "OLLAMA_CODE_LOG_LEVEL",
        "OLLAMA_CODE_LOG_FORMAT",
        "OLLAMA_CODE_MODEL",
        "OLLAMA_CODE_URL",
        "OLLAMA_CODE_PROVIDER",
        "OLLAMA_CODE_API_KEY",
        "OLLAMA_CODE_BASE_URL",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
