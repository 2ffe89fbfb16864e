"""Tests for the per-intent handlers."""

import json

import pytest

from conftest import FakeToolRegistry, FakeWebSearch
from ollama_code.cache import CacheManager
from ollama_code.confirmation import AutoConfirmation
from ollama_code.diff import DiffManager, PreviewManager
from ollama_code.errors import BadRequest, ExternalFailure
from ollama_code.handlers import (
    AnalyzeHandler,
    Dependencies,
    ExecuteHandler,
    FileReadHandler,
    FileWriteHandler,
    GitHandler,
    QuestionHandler,
    SearchHandler,
    WebSearchHandler,
    extract_search_query,
    format_search_results,
    is_dangerous,
    is_multi_file_request,
    run_tool,
)
from ollama_code.handlers.base import MAX_RECENT_FILES
from ollama_code.handlers.web import NO_RESULTS, extract_web_query
from ollama_code.intent.types import Intent
from ollama_code.llm.base import Message, ModelError
from ollama_code.mode import OperationMode
from ollama_code.todos import TodoStatus
from ollama_code.tools.base import ToolResult


def written(params):
    return ToolResult.ok(f"Created {params['file_path']}", path=params["file_path"])


# ============================================================================
# Dependencies Tests
# ============================================================================

class TestDependencies:
    """Tests for the shared handler collaborators."""

    def test_recent_files_move_to_end(self, make_deps):
        """Re-adding a file moves it to the newest position."""
        deps = make_deps()
        deps.add_recent_file("a.py")
        deps.add_recent_file("b.py")
        deps.add_recent_file("a.py")

        assert deps.recent_files == ["b.py", "a.py"]

    def test_recent_files_capped(self, make_deps):
        """Only the newest entries are kept."""
        deps = make_deps()
        for i in range(MAX_RECENT_FILES + 3):
            deps.add_recent_file(f"f{i}.py")

        assert len(deps.recent_files) == MAX_RECENT_FILES
        assert deps.recent_files[0] == "f3.py"

    def test_confirm_without_collaborator(self):
        """With no confirmation configured the operation proceeds."""
        deps = Dependencies(tools=FakeToolRegistry())

        assert deps.confirm("sure?") is True
        assert deps.confirm_with_preview("sure?", "preview") is True
        assert deps.start_todo("anything") == ""

    def test_run_tool_failure(self, make_deps, tools):
        """A failed tool result becomes ExternalFailure with its output."""
        tools.results["command_executor"] = ToolResult.fail("command exited with code 1", "boom")

        with pytest.raises(ExternalFailure) as exc_info:
            run_tool(make_deps(), "command_executor", {"command": "false"})
        assert str(exc_info.value) == "command_executor failed: command exited with code 1\nboom"


# ============================================================================
# ExecuteHandler Tests
# ============================================================================

class TestExecuteHandler:
    """Tests for execute_command."""

    def test_runs_safe_command(self, make_deps, make_result, tools, todo_manager):
        """A safe command runs once with exactly the classified parameters."""
        tools.results["command_executor"] = ToolResult.ok("total 0\ndrwxr-xr-x .")
        confirmation = AutoConfirmation(True)

        response = ExecuteHandler().handle(
            make_deps(confirmation=confirmation),
            make_result(Intent.EXECUTE_COMMAND, "run ls -la", command="ls -la"),
        )

        assert response == "total 0\ndrwxr-xr-x ."
        assert tools.calls == [("command_executor", {"command": "ls -la"})]
        assert confirmation.prompts == []
        assert len(todo_manager.list_by_status(TodoStatus.COMPLETED)) == 1

    def test_safe_command_interactive_no_prompt(self, make_deps, make_result, tools):
        """Safe commands are not confirmed even in interactive mode."""
        tools.results["command_executor"] = ToolResult.ok("ok")
        confirmation = AutoConfirmation(False)

        ExecuteHandler().handle(
            make_deps(OperationMode.INTERACTIVE, confirmation),
            make_result(Intent.EXECUTE_COMMAND, command="ls -la"),
        )

        assert confirmation.prompts == []
        assert len(tools.calls) == 1

    def test_dangerous_command_autonomous(self, make_deps, make_result, tools, todo_manager):
        """Dangerous commands are refused outside interactive mode."""
        tools.results["command_executor"] = ToolResult.ok("")

        with pytest.raises(BadRequest, match="dangerous"):
            ExecuteHandler().handle(make_deps(), make_result(Intent.EXECUTE_COMMAND, command="rm -rf /"))

        assert tools.calls == []
        assert todo_manager.count() == 0

    def test_dangerous_command_declined(self, make_deps, make_result, tools, todo_manager):
        """Declining in interactive mode cancels without running."""
        tools.results["command_executor"] = ToolResult.ok("")
        confirmation = AutoConfirmation(False)

        response = ExecuteHandler().handle(
            make_deps(OperationMode.INTERACTIVE, confirmation),
            make_result(Intent.EXECUTE_COMMAND, command="sudo rm -rf build"),
        )

        assert response == "Command cancelled by user"
        assert len(confirmation.prompts) == 1
        assert tools.calls == []
        assert todo_manager.count() == 0

    def test_dangerous_command_confirmed(self, make_deps, make_result, tools):
        """Confirming in interactive mode runs the command."""
        tools.results["command_executor"] = ToolResult.ok("removed")

        response = ExecuteHandler().handle(
            make_deps(OperationMode.INTERACTIVE, AutoConfirmation(True)),
            make_result(Intent.EXECUTE_COMMAND, command="rm -rf build"),
        )

        assert response == "removed"
        assert len(tools.calls) == 1

    def test_dangerous_uses_strict_prompt(self, make_deps, make_result, tools):
        """Dangerous commands go through the type-yes prompt, not the plain one."""
        tools.results["command_executor"] = ToolResult.ok("")
        asked = []

        class Strict:
            def confirm(self, message):
                return True

            def confirm_with_preview(self, message, preview):
                return True

            def confirm_dangerous(self, message, warning=""):
                asked.append((message, warning))
                return False

        response = ExecuteHandler().handle(
            make_deps(OperationMode.INTERACTIVE, Strict()),
            make_result(Intent.EXECUTE_COMMAND, command="rm -rf build"),
        )

        assert response == "Command cancelled by user"
        assert asked == [("Run: rm -rf build", "This command matches a destructive pattern.")]
        assert tools.calls == []

    def test_dangerous_without_confirmation_collaborator(self, make_result, tools):
        """Dangerous commands need an actual confirmation."""
        tools.results["command_executor"] = ToolResult.ok("")
        deps = Dependencies(tools=tools, mode=OperationMode.INTERACTIVE)

        response = ExecuteHandler().handle(deps, make_result(Intent.EXECUTE_COMMAND, command="mkfs /dev/sda1"))

        assert response == "Command cancelled by user"
        assert tools.calls == []

    def test_missing_command(self, make_deps, make_result):
        """A missing command is a bad request."""
        with pytest.raises(BadRequest, match="command not specified"):
            ExecuteHandler().handle(make_deps(), make_result(Intent.EXECUTE_COMMAND, "run something"))

    def test_tool_failure(self, make_deps, make_result, tools, todo_manager):
        """Tool failures propagate and drop the TODO."""
        tools.results["command_executor"] = ToolResult.fail("command exited with code 2", "no such file")

        with pytest.raises(ExternalFailure, match="command exited with code 2"):
            ExecuteHandler().handle(make_deps(), make_result(Intent.EXECUTE_COMMAND, command="cat missing"))
        assert todo_manager.count() == 0

    def test_background_and_timeout_forwarded(self, make_deps, make_result, tools):
        """Optional execution parameters reach the tool."""
        tools.results["command_executor"] = ToolResult.ok("Started background task t1")

        ExecuteHandler().handle(
            make_deps(),
            make_result(Intent.EXECUTE_COMMAND, command="npm run dev", background="true", timeout="30"),
        )

        assert tools.calls == [("command_executor", {"command": "npm run dev", "background": True, "timeout": 30})]

    def test_invalid_timeout(self, make_deps, make_result, tools):
        """A non-numeric timeout is a bad request."""
        with pytest.raises(BadRequest, match="invalid timeout"):
            ExecuteHandler().handle(make_deps(), make_result(Intent.EXECUTE_COMMAND, command="ls", timeout="soon"))

        assert tools.calls == []

    @pytest.mark.parametrize("command,expected", [
        ("rm -rf /", True),
        ("RM -RF /tmp/x", True),
        ("dd if=/dev/zero of=/dev/sda", True),
        ("echo hi > /dev/null", True),
        ("ls -la", False),
        ("git status", False),
    ])
    def test_is_dangerous(self, command, expected):
        """The pattern check is case-insensitive."""
        assert is_dangerous(command) is expected


# ============================================================================
# FileReadHandler Tests
# ============================================================================

class TestFileReadHandler:
    """Tests for read_file."""

    def test_preview(self, make_deps, make_result, tools):
        """Content is shown with line numbers and the file becomes recent."""
        tools.results["file_reader"] = ToolResult.ok("Read main.py (2 lines)", content="import os\nprint(1)\n")
        deps = make_deps()

        response = FileReadHandler().handle(deps, make_result(Intent.READ_FILE, "show main.py", file_path="main.py"))

        assert response.startswith("Read main.py (2 lines)")
        assert "   1 | import os" in response
        assert "   2 | print(1)" in response
        assert "Total: 2 lines" in response
        assert deps.recent_files == ["main.py"]
        assert tools.calls == [("file_reader", {"file_path": "main.py"})]

    def test_long_file_preview(self, make_deps, make_result, tools):
        """Only the first 20 lines are shown."""
        content = "".join(f"line {i}\n" for i in range(1, 31))
        tools.results["file_reader"] = ToolResult.ok("Read big.txt (30 lines)", content=content)

        response = FileReadHandler().handle(make_deps(), make_result(Intent.READ_FILE, file_path="big.txt"))

        assert "  20 | line 20" in response
        assert "line 21" not in response
        assert "... and 10 more lines" in response

    def test_analysis_on_request(self, make_deps, make_result, tools, llm):
        """Analysis keywords send the file to the LLM."""
        tools.results["file_reader"] = ToolResult.ok("Read main.py (1 lines)", content="print(1)\n")
        llm.add_response("It prints 1.")

        response = FileReadHandler().handle(
            make_deps(), make_result(Intent.READ_FILE, "explain main.py", file_path="main.py")
        )

        assert "File analysis:" in response
        assert response.endswith("It prints 1.")
        assert "print(1)" in llm.last_messages[-1].content

    def test_analysis_failure_falls_back(self, make_deps, make_result, tools, llm):
        """An LLM failure still shows the file."""
        tools.results["file_reader"] = ToolResult.ok("Read main.py (1 lines)", content="print(1)\n")
        llm.add_error(ModelError("mock", "m"))

        response = FileReadHandler().handle(
            make_deps(), make_result(Intent.READ_FILE, "analyze main.py", file_path="main.py")
        )

        assert "   1 | print(1)" in response

    def test_missing_path(self, make_deps, make_result):
        """file_path is required."""
        with pytest.raises(BadRequest, match="file_path not specified"):
            FileReadHandler().handle(make_deps(), make_result(Intent.READ_FILE, "read it"))

    def test_missing_file(self, make_deps, make_result, tools):
        """Tool failures propagate."""
        tools.results["file_reader"] = ToolResult.fail("file not found: ghost.py")

        with pytest.raises(ExternalFailure, match="file not found"):
            FileReadHandler().handle(make_deps(), make_result(Intent.READ_FILE, file_path="ghost.py"))


# ============================================================================
# FileWriteHandler Tests
# ============================================================================

class TestFileWriteHandler:
    """Tests for write_file."""

    def test_readonly_blocks(self, make_deps, make_result, tools, llm):
        """Readonly mode refuses before any tool or LLM call."""
        tools.results["file_writer"] = written

        response = FileWriteHandler().handle(
            make_deps(OperationMode.READONLY),
            make_result(Intent.WRITE_FILE, "create a.py", file_path="a.py", content="x = 1"),
        )

        assert "interactive" in response
        assert "autonomous" in response
        assert tools.calls == []
        assert llm.calls == []

    def test_write_given_content(self, make_deps, make_result, tools, todo_manager):
        """Explicit content is cleaned and written without prompting in autonomous mode."""
        tools.results["file_writer"] = written
        confirmation = AutoConfirmation(True)
        deps = make_deps(confirmation=confirmation)

        response = FileWriteHandler().handle(
            deps,
            make_result(Intent.WRITE_FILE, "create a.py", file_path="a.py", content="```python\nx = 1\n```"),
        )

        assert response == "Created a.py"
        assert tools.calls == [("file_writer", {"file_path": "a.py", "content": "x = 1"})]
        assert confirmation.prompts == []
        assert deps.recent_files == ["a.py"]
        assert len(todo_manager.list_by_status(TodoStatus.COMPLETED)) == 1

    def test_append_mode(self, make_deps, make_result, tools):
        """Append mode is forwarded to the tool."""
        tools.results["file_writer"] = ToolResult.ok("Appended 6 bytes to log.txt")

        FileWriteHandler().handle(
            make_deps(),
            make_result(Intent.WRITE_FILE, file_path="log.txt", content="line 2", mode="append"),
        )

        assert tools.calls_to("file_writer") == [{"file_path": "log.txt", "content": "line 2", "mode": "append"}]

    def test_interactive_preview_diff(self, make_deps, make_result, tools):
        """Interactive writes show a diff against the current file."""
        tools.results["file_reader"] = ToolResult.ok("Read a.py", content="x = 1\n")
        tools.results["file_writer"] = written

        previews = []

        class Recording:
            def confirm(self, message):
                return True

            def confirm_with_preview(self, message, preview):
                previews.append((message, preview))
                return True

        deps = make_deps(
            OperationMode.INTERACTIVE,
            Recording(),
            diff_manager=DiffManager(),
            preview_manager=PreviewManager(color=False),
        )
        FileWriteHandler().handle(deps, make_result(Intent.WRITE_FILE, file_path="a.py", content="x = 2\n"))

        message, preview = previews[0]
        assert message == "Write file a.py?"
        assert "Changes: +1 -1" in preview
        assert "+x = 2" in preview

    def test_interactive_preview_new_file(self, make_deps, make_result, tools):
        """A new file previews its (truncated) content."""
        tools.results["file_writer"] = written
        previews = []

        class Recording:
            def confirm(self, message):
                return True

            def confirm_with_preview(self, message, preview):
                previews.append(preview)
                return True

        FileWriteHandler().handle(
            make_deps(OperationMode.INTERACTIVE, Recording()),
            make_result(Intent.WRITE_FILE, file_path="big.txt", content="y" * 600),
        )

        assert previews[0] == "y" * 500 + "\n...(truncated)"

    def test_interactive_declined(self, make_deps, make_result, tools, todo_manager):
        """Declining cancels the write and drops the TODO."""
        tools.results["file_writer"] = written

        response = FileWriteHandler().handle(
            make_deps(OperationMode.INTERACTIVE, AutoConfirmation(False)),
            make_result(Intent.WRITE_FILE, file_path="a.py", content="x = 1"),
        )

        assert response == "Operation cancelled"
        assert tools.calls_to("file_writer") == []
        assert todo_manager.count() == 0

    def test_invalid_file_name(self, make_deps, make_result, tools):
        """Names with forbidden characters are rejected."""
        tools.results["file_writer"] = written

        with pytest.raises(BadRequest, match="invalid file name"):
            FileWriteHandler().handle(
                make_deps(), make_result(Intent.WRITE_FILE, file_path="what?.py", content="x")
            )
        assert tools.calls == []

    def test_generate_from_json(self, make_deps, make_result, tools, llm):
        """Without content, the LLM proposes path and content."""
        tools.results["file_writer"] = written
        llm.add_response(json.dumps({"file_path": "hello.py", "content": "print('hello')\n"}))

        response = FileWriteHandler().handle(
            make_deps(), make_result(Intent.WRITE_FILE, "create a hello world script")
        )

        assert response == "Created hello.py"
        assert tools.calls_to("file_writer") == [{"file_path": "hello.py", "content": "print('hello')"}]
        assert "create a hello world script" in llm.last_messages[-1].content

    def test_generate_plain_response(self, make_deps, make_result, tools, llm):
        """A non-JSON answer is used as the body of the suggested file."""
        tools.results["file_writer"] = written
        llm.add_response("```python\nprint('hi')\n```")

        FileWriteHandler().handle(
            make_deps(), make_result(Intent.WRITE_FILE, "write hi.py", file_path="hi.py")
        )

        assert tools.calls_to("file_writer") == [{"file_path": "hi.py", "content": "print('hi')"}]

    def test_generate_without_path(self, make_deps, make_result, llm):
        """A non-JSON answer with no path is a bad request."""
        llm.add_response("just some text")

        with pytest.raises(BadRequest):
            FileWriteHandler().handle(make_deps(), make_result(Intent.WRITE_FILE, "write something"))

    def test_multi_file(self, make_deps, make_result, tools, llm):
        """Multi-file requests are confirmed once and written file by file."""
        tools.results["file_writer"] = written
        llm.add_response(json.dumps({"files": [
            {"file_path": "index.html", "content": "<html></html>"},
            {"file_path": "style.css", "content": "body {}"},
            {"file_path": "script.js", "content": "console.log(1);"},
        ]}))
        confirmation = AutoConfirmation(True)
        deps = make_deps(OperationMode.INTERACTIVE, confirmation)

        response = FileWriteHandler().handle(
            deps, make_result(Intent.WRITE_FILE, "create a landing page with html, css e javascript separados")
        )

        assert len(confirmation.prompts) == 1
        assert confirmation.prompts[0] == "Create 3 file(s)?\n  - index.html\n  - style.css\n  - script.js"
        assert [p["file_path"] for p in tools.calls_to("file_writer")] == ["index.html", "style.css", "script.js"]
        assert "Files created (3):" in response
        assert "  ✓ style.css" in response
        assert deps.recent_files == ["index.html", "style.css", "script.js"]

    def test_multi_file_declined(self, make_deps, make_result, tools, llm):
        """Declining the batch writes nothing."""
        tools.results["file_writer"] = written
        llm.add_response(json.dumps({"files": [{"file_path": "a.html", "content": "x"}]}))

        response = FileWriteHandler().handle(
            make_deps(OperationMode.INTERACTIVE, AutoConfirmation(False)),
            make_result(Intent.WRITE_FILE, "create multiple files for a site"),
        )

        assert response == "Operation cancelled"
        assert tools.calls_to("file_writer") == []

    def test_multi_file_partial_failure(self, make_deps, make_result, tools, llm):
        """Per-file failures are listed; created files are still reported."""
        def writer(params):
            if params["file_path"] == "b.js":
                return ToolResult.fail("disk full")
            return written(params)

        tools.results["file_writer"] = writer
        llm.add_response(json.dumps({"files": [
            {"file_path": "a.html", "content": "x"},
            {"file_path": "b.js", "content": "y"},
            {"file_path": "c.css", "content": ""},
        ]}))

        response = FileWriteHandler().handle(
            make_deps(), make_result(Intent.WRITE_FILE, "generate separate files")
        )

        assert "Files created (1):" in response
        assert "Failures (2):" in response
        assert "b.js (error: disk full)" in response

    def test_multi_file_nothing_created(self, make_deps, make_result, tools, llm):
        """When every file fails the request fails."""
        tools.results["file_writer"] = ToolResult.fail("read-only file system")
        llm.add_response(json.dumps({"files": [{"file_path": "a.html", "content": "x"}]}))

        with pytest.raises(ExternalFailure, match="no files were created"):
            FileWriteHandler().handle(make_deps(), make_result(Intent.WRITE_FILE, "multiple files please"))

    def test_multi_file_falls_back_to_single(self, make_deps, make_result, tools, llm):
        """A single-file answer to a multi-file request is still written."""
        tools.results["file_writer"] = written
        llm.add_response(json.dumps({"file_path": "only.html", "content": "<p></p>"}))
        llm.add_response(json.dumps({"file_path": "only.html", "content": "<p></p>"}))

        response = FileWriteHandler().handle(
            make_deps(), make_result(Intent.WRITE_FILE, "projeto completo em html")
        )

        assert response == "Created only.html"

    def test_is_multi_file_request(self):
        """Multi-file phrases in Portuguese and English are recognized."""
        assert is_multi_file_request("crie html, css e js separados") is True
        assert is_multi_file_request("Create SEPARATE FILES for each class") is True
        assert is_multi_file_request("create main.py") is False


# ============================================================================
# Search and Analyze Tests
# ============================================================================

class TestSearchHandler:
    """Tests for search_code and analyze_project."""

    @pytest.mark.parametrize("message,expected", [
        ("search for ProcessMessage", "processmessage"),
        ("find 'database connection'", "database connection"),
        ("procure por handler", "handler"),
        ("onde está a função processUser", "função processuser"),
        ("TODO", "todo"),
    ])
    def test_extract_search_query(self, message, expected):
        """Leading search verbs and quotes are removed."""
        assert extract_search_query(message) == expected

    def test_formats_matches(self, make_deps, make_result, tools):
        """Matches are listed as file:line with the line text."""
        tools.results["code_searcher"] = ToolResult.ok(
            "Found 2 matches for 'process' in 2 files",
            matches=[
                {"file": "src/app.py", "line": 3, "text": "def process(user):"},
                {"file": "src/util.go", "line": 10, "text": "func Process() {}"},
            ],
            count=2,
        )

        response = SearchHandler().handle(
            make_deps(), make_result(Intent.SEARCH_CODE, "find process", query="process")
        )

        assert tools.calls == [("code_searcher", {"query": "process", "pattern": "process"})]
        assert "  src/app.py:3" in response
        assert "     def process(user):" in response
        assert "Total: 2 matches" in response

    def test_query_from_message(self, make_deps, make_result, tools):
        """Without a query parameter the message is used."""
        tools.results["code_searcher"] = ToolResult.ok("No matches found for 'userservice'", matches=[], count=0)

        response = SearchHandler().handle(make_deps(), make_result(Intent.SEARCH_CODE, "search for UserService"))

        assert tools.calls_to("code_searcher")[0]["query"] == "userservice"
        assert "Tip:" in response

    def test_truncates_listing(self, make_deps, make_result, tools):
        """At most 20 matches are listed."""
        matches = [{"file": "a.py", "line": i, "text": "x"} for i in range(1, 31)]
        tools.results["code_searcher"] = ToolResult.ok("Found 30 matches", matches=matches, count=30)

        response = SearchHandler().handle(make_deps(), make_result(Intent.SEARCH_CODE, query="x"))

        assert "a.py:20" in response
        assert "a.py:21" not in response
        assert "... and 10 more results" in response

    def test_analyze_defaults_to_work_dir(self, make_deps, make_result, tools):
        """The project analyzer runs on the working directory by default."""
        tools.results["project_analyzer"] = ToolResult.ok("Project: .\n\nStructure:\nproject/")

        response = AnalyzeHandler().handle(make_deps(), make_result(Intent.ANALYZE_PROJECT))

        assert tools.calls == [("project_analyzer", {"target": "/project"})]
        assert response.startswith("Project: .")

    def test_analyze_target(self, make_deps, make_result, tools):
        """An explicit target is forwarded."""
        tools.results["project_analyzer"] = ToolResult.ok("Project: src")

        AnalyzeHandler().handle(make_deps(), make_result(Intent.ANALYZE_PROJECT, target="src"))

        assert tools.calls_to("project_analyzer") == [{"target": "src"}]


# ============================================================================
# GitHandler Tests
# ============================================================================

class TestGitHandler:
    """Tests for git_operation."""

    def test_status(self, make_deps, make_result, tools):
        """Status is the default operation and is allowed in readonly mode."""
        tools.results["git_operations"] = ToolResult.ok("## main\n M a.py", output="## main\n M a.py")

        response = GitHandler().handle(make_deps(OperationMode.READONLY), make_result(Intent.GIT_OPERATION))

        assert tools.calls == [("git_operations", {"operation": "status"})]
        assert response.startswith("Repository status:")
        assert " M a.py" in response

    def test_clean_status(self, make_deps, make_result, tools):
        """Empty status output reads as a clean tree."""
        tools.results["git_operations"] = ToolResult.ok("", output="")

        response = GitHandler().handle(make_deps(), make_result(Intent.GIT_OPERATION, operation="status"))

        assert response == "Nothing to commit, working tree clean"

    def test_readonly_blocks_mutation(self, make_deps, make_result, tools):
        """Mutating operations are refused in readonly mode."""
        tools.results["git_operations"] = ToolResult.ok("")

        response = GitHandler().handle(
            make_deps(OperationMode.READONLY), make_result(Intent.GIT_OPERATION, operation="commit", message="x")
        )

        assert response.startswith("Operation blocked")
        assert tools.calls == []

    def test_risky_operation_declined(self, make_deps, make_result, tools):
        """Risky operations are confirmed in interactive mode."""
        tools.results["git_operations"] = ToolResult.ok("")
        confirmation = AutoConfirmation(False)

        response = GitHandler().handle(
            make_deps(OperationMode.INTERACTIVE, confirmation), make_result(Intent.GIT_OPERATION, operation="push")
        )

        assert response == "Operation cancelled"
        assert confirmation.prompts == ["Run git operation: push?"]
        assert tools.calls == []

    def test_parameters_forwarded(self, make_deps, make_result, tools):
        """Extra parameters reach the tool unchanged."""
        tools.results["git_operations"] = ToolResult.ok("[main abc123] fix", output="[main abc123] fix")

        GitHandler().handle(make_deps(), make_result(Intent.GIT_OPERATION, operation="commit", message="fix"))

        assert tools.calls == [("git_operations", {"operation": "commit", "message": "fix"})]

    def test_count_converted(self, make_deps, make_result, tools):
        """A numeric count string is forwarded as an int."""
        tools.results["git_operations"] = ToolResult.ok("abc123 fix", output="abc123 fix")

        GitHandler().handle(make_deps(), make_result(Intent.GIT_OPERATION, operation="log", count="5"))

        assert tools.calls == [("git_operations", {"operation": "log", "count": 5})]

    def test_invalid_count(self, make_deps, make_result, tools):
        """A non-numeric count is rejected before the tool runs."""
        with pytest.raises(BadRequest, match="invalid count"):
            GitHandler().handle(make_deps(), make_result(Intent.GIT_OPERATION, operation="log", count="five"))

        assert tools.calls == []

    def test_long_diff_truncated(self, make_deps, make_result, tools):
        """Diffs are cut after 50 lines."""
        output = "\n".join(f"+line {i}" for i in range(80))
        tools.results["git_operations"] = ToolResult.ok(output, output=output)

        response = GitHandler().handle(make_deps(), make_result(Intent.GIT_OPERATION, operation="diff"))

        assert response.startswith("Changes:\n\n```diff")
        assert "+line 49" in response
        assert "+line 50" not in response
        assert "... and 30 more lines" in response

    def test_git_failure(self, make_deps, make_result, tools):
        """Git errors propagate as ExternalFailure."""
        tools.results["git_operations"] = ToolResult.fail("fatal: not a git repository")

        with pytest.raises(ExternalFailure, match="not a git repository"):
            GitHandler().handle(make_deps(), make_result(Intent.GIT_OPERATION, operation="log"))


# ============================================================================
# Web Search and Question Tests
# ============================================================================

RESULTS = [
    {"title": "Rust async book", "url": "https://rust-lang.github.io/async-book/", "snippet": "Async in Rust uses futures."},
    {"title": "Tokio", "url": "https://tokio.rs", "snippet": "Tokio is an async runtime."},
    {"title": "async-std", "url": "https://async.rs", "snippet": "An async standard library."},
    {"title": "smol", "url": "https://github.com/smol-rs/smol", "snippet": "A small async runtime."},
]


class TestWebSearchHandler:
    """Tests for web_search."""

    def test_summary_with_sources(self, make_deps, make_result, llm):
        """The LLM answer is followed by at most three sources."""
        search = FakeWebSearch(RESULTS)
        llm.add_response("Rust async is built on futures and runtimes such as Tokio.")

        response = WebSearchHandler().handle(
            make_deps(web_search=search), make_result(Intent.WEB_SEARCH, query="rust async")
        )

        assert search.queries == ["rust async"]
        assert response.startswith("Rust async is built on futures")
        assert "Sources:\n- Rust async book: https://rust-lang.github.io/async-book/" in response
        assert "https://async.rs" in response
        assert "smol" not in response
        assert "Async in Rust uses futures." in llm.last_messages[-1].content

    def test_plain_listing(self, make_deps, make_result):
        """Without summarizing the results are listed."""
        response = WebSearchHandler(summarize=False).handle(
            make_deps(web_search=FakeWebSearch(RESULTS[:1])), make_result(Intent.WEB_SEARCH, query="rust async")
        )

        assert response.startswith("Search results for: rust async")
        assert "1. **Rust async book**" in response
        assert "   Async in Rust uses futures." in response

    def test_llm_failure_falls_back(self, make_deps, make_result, llm):
        """A failed summary falls back to the listing."""
        llm.add_error(ModelError("mock", "m"))

        response = WebSearchHandler().handle(
            make_deps(web_search=FakeWebSearch(RESULTS)), make_result(Intent.WEB_SEARCH, query="rust")
        )

        assert response.startswith("Search results for: rust")

    def test_cached_results_reused(self, make_deps, make_result):
        """Repeated queries are served from the cache manager."""
        search = FakeWebSearch(RESULTS[:1])
        deps = make_deps(web_search=search, cache_manager=CacheManager(ttl=60))
        handler = WebSearchHandler(summarize=False)

        first = handler.handle(deps, make_result(Intent.WEB_SEARCH, query="rust async"))
        second = handler.handle(deps, make_result(Intent.WEB_SEARCH, query="Rust  Async"))

        assert search.queries == ["rust async"]
        assert "1. **Rust async book**" in first
        assert "1. **Rust async book**" in second

    def test_failed_search_not_cached(self, make_deps, make_result):
        """A failing search is retried on the next request."""
        search = FakeWebSearch(error=ExternalFailure("web search failed: HTTP 503"))
        deps = make_deps(web_search=search, cache_manager=CacheManager(ttl=60))

        for _ in range(2):
            with pytest.raises(ExternalFailure):
                WebSearchHandler().handle(deps, make_result(Intent.WEB_SEARCH, query="rust"))

        assert search.queries == ["rust", "rust"]

    def test_query_from_message(self, make_deps, make_result):
        """Without a query parameter it is extracted from the message."""
        search = FakeWebSearch([])

        response = WebSearchHandler().handle(
            make_deps(web_search=search), make_result(Intent.WEB_SEARCH, "pesquise sobre rust async")
        )

        assert search.queries == ["rust async"]
        assert NO_RESULTS in response

    def test_no_client(self, make_deps, make_result):
        """Web search must be configured."""
        with pytest.raises(ExternalFailure, match="not configured"):
            WebSearchHandler().handle(make_deps(), make_result(Intent.WEB_SEARCH, query="x"))

    def test_search_failure(self, make_deps, make_result):
        """Search errors propagate."""
        search = FakeWebSearch(error=ExternalFailure("web search failed: HTTP 503"))

        with pytest.raises(ExternalFailure, match="503"):
            WebSearchHandler().handle(make_deps(web_search=search), make_result(Intent.WEB_SEARCH, query="x"))

    def test_missing_query(self, make_deps, make_result):
        """A message with nothing to search for is a bad request."""
        with pytest.raises(BadRequest):
            WebSearchHandler().handle(
                make_deps(web_search=FakeWebSearch()), make_result(Intent.WEB_SEARCH, "hello")
            )

    @pytest.mark.parametrize("message,expected", [
        ("search for python decorators", "python decorators"),
        ("pesquise sobre rust async", "rust async"),
        ("look up nothing", ""),
    ])
    def test_extract_web_query(self, message, expected):
        """The text after the search keyword is the query."""
        assert extract_web_query(message) == expected


class TestFormatSearchResults:
    """Tests for the three result shapes."""

    def test_text(self):
        """Text results are shown as-is."""
        assert format_search_results("q", "some answer") == "Search results for: q\n\nsome answer"

    def test_list(self):
        """A list of records is numbered."""
        text = format_search_results("q", [{"title": "T", "url": "https://u", "snippet": "S"}])

        assert "1. **T**\n   S\n   https://u" in text

    def test_dict_with_results(self):
        """A mapping with a results list is formatted like a list."""
        text = format_search_results("q", {"results": [{"Title": "Cap", "URL": "https://c"}]})

        assert "1. **Cap**" in text
        assert "https://c" in text

    def test_plain_dict(self):
        """Other mappings are shown key by key."""
        assert "**answer:** 42" in format_search_results("q", {"answer": 42})

    @pytest.mark.parametrize("empty", ["", [], {"results": []}, None])
    def test_empty(self, empty):
        """Empty results say so."""
        assert format_search_results("q", empty).endswith(NO_RESULTS)


class TestQuestionHandler:
    """Tests for free-form questions."""

    def test_history_included(self, make_deps, make_result, llm):
        """System prompt, the last ten history entries and the question are sent."""
        llm.add_response("REST is an architectural style.")
        history = [Message("user" if i % 2 == 0 else "assistant", f"m{i}") for i in range(14)]
        deps = make_deps(history=history)

        response = QuestionHandler().handle(deps, make_result(Intent.QUESTION, "what is REST?"))

        messages = llm.last_messages
        assert response == "REST is an architectural style."
        assert messages[0].role == "system"
        assert "/project" in messages[0].content
        assert [m.content for m in messages[1:-1]] == [f"m{i}" for i in range(4, 14)]
        assert messages[-1] == Message("user", "what is REST?")

    def test_requires_llm(self, make_deps, make_result):
        """Questions need a completion client."""
        with pytest.raises(ExternalFailure):
            QuestionHandler().handle(make_deps(llm=None), make_result(Intent.QUESTION, "hi"))
