"""Tests for intent classification."""

import json

import pytest

from ollama_code.errors import ParseFailure
from ollama_code.intent import (
    SYSTEM_PROMPT,
    DetectionResult,
    Intent,
    IntentDetector,
    build_user_prompt,
    parse_response,
)
from ollama_code.llm.base import Message, MockLLMClient


class TestIntent:
    """Tests for the Intent enum."""

    def test_parse_known(self):
        """Wire values map to members."""
        assert Intent.parse("read_file") is Intent.READ_FILE
        assert Intent.parse(" WEB_SEARCH ") is Intent.WEB_SEARCH
        assert Intent.parse(Intent.QUESTION) is Intent.QUESTION

    def test_parse_unknown(self):
        """Anything else is UNKNOWN."""
        assert Intent.parse("make_coffee") is Intent.UNKNOWN
        assert Intent.parse(None) is Intent.UNKNOWN


class TestDetectionResult:
    """Tests for DetectionResult."""

    def test_round_trip(self):
        """to_dict/from_dict preserve every field."""
        result = DetectionResult(
            intent=Intent.WRITE_FILE,
            confidence=0.8,
            parameters={"file_path": "a.py", "content": "x = 1"},
            reasoning="user asked for a file",
            user_message="create a.py",
        )

        assert DetectionResult.from_dict(json.loads(json.dumps(result.to_dict()))) == result

    def test_confidence_is_clamped(self):
        """Confidence is kept within [0, 1]."""
        assert DetectionResult.from_dict({"intent": "question", "confidence": 3}).confidence == 1.0
        assert DetectionResult.from_dict({"intent": "question", "confidence": -1}).confidence == 0.0

    def test_missing_intent(self):
        """A record without an intent cannot be decoded."""
        with pytest.raises(ParseFailure):
            DetectionResult.from_dict({"confidence": 0.9})

    def test_bad_parameters(self):
        """Parameters must be an object."""
        with pytest.raises(ParseFailure):
            DetectionResult.from_dict({"intent": "question", "parameters": ["a"]})

    def test_str_param(self):
        """String parameters are trimmed; blanks and non-strings use the default."""
        result = DetectionResult(Intent.READ_FILE, 0.9, {"file_path": "  a.py ", "n": 3, "empty": " "})

        assert result.str_param("file_path") == "a.py"
        assert result.str_param("n", "dflt") == "dflt"
        assert result.str_param("empty") == ""
        assert result.param("n") == 3

    def test_fallback(self):
        """The fallback is a question with confidence 0.5."""
        result = DetectionResult.fallback()

        assert result.intent is Intent.QUESTION
        assert result.confidence == 0.5
        assert result.parameters == {}


class TestParseResponse:
    """Tests for decoding classifier output."""

    def test_plain_json(self):
        """Bare JSON is decoded."""
        result = parse_response('{"intent": "execute_command", "confidence": 0.95, "parameters": {"command": "ls -la"}}')

        assert result.intent is Intent.EXECUTE_COMMAND
        assert result.parameters == {"command": "ls -la"}

    def test_fenced_json(self):
        """Markdown fences are stripped."""
        result = parse_response('```json\n{"intent": "read_file", "confidence": 0.9}\n```')

        assert result.intent is Intent.READ_FILE

    def test_json_inside_prose(self):
        """The first balanced object is used."""
        result = parse_response('Sure. {"intent": "git_operation", "confidence": 0.7} Hope it helps.')

        assert result.intent is Intent.GIT_OPERATION

    def test_not_json(self):
        """Prose without JSON fails to parse."""
        with pytest.raises(ParseFailure):
            parse_response("I think you want to read a file.")


class TestPrompts:
    """Tests for prompt construction."""

    def test_user_prompt_contents(self):
        """The prompt carries directory, recent files, history and message."""
        history = [Message("user", "read main.py"), Message("assistant", "x" * 300)]
        prompt = build_user_prompt("now explain it", "/work", ["main.py", "util.py"], history)

        assert "Current directory: /work" in prompt
        assert "Recent files: main.py, util.py" in prompt
        assert "user: read main.py" in prompt
        assert "assistant: " + "x" * 200 + "..." in prompt
        assert '"now explain it"' in prompt

    def test_user_prompt_without_context(self):
        """Empty context renders placeholders."""
        prompt = build_user_prompt("hello", ".")

        assert "Recent files: none" in prompt
        assert "(none)" in prompt

    def test_history_window(self):
        """Only the last four history entries are included."""
        history = [Message("user", f"message {i}") for i in range(6)]
        prompt = build_user_prompt("next", ".", [], history)

        assert "message 1" not in prompt
        assert "message 2" in prompt
        assert "message 5" in prompt


class TestIntentDetector:
    """Tests for IntentDetector."""

    def test_detects_from_llm_answer(self):
        """The LLM answer is decoded into a result."""
        llm = MockLLMClient(['{"intent": "search_code", "confidence": 0.88, "parameters": {"query": "processUser"}}'])
        result = IntentDetector(llm).detect("where is processUser", "/work")

        assert result.intent is Intent.SEARCH_CODE
        assert result.confidence == 0.88
        assert result.parameters["query"] == "processUser"

    def test_request_options(self):
        """Classification uses the system prompt and a low temperature."""
        llm = MockLLMClient(['{"intent": "question", "confidence": 0.9}'])
        IntentDetector(llm).detect_simple("what is REST?")

        messages = llm.last_messages
        assert messages[0].role == "system"
        assert messages[0].content == SYSTEM_PROMPT
        assert llm.last_options.temperature == 0.1
        assert llm.last_options.max_tokens == 500

    def test_unparseable_answer_falls_back(self):
        """A non-JSON answer becomes a question with confidence 0.5."""
        llm = MockLLMClient(["hello there!"])
        result = IntentDetector(llm).detect("hello")

        assert result.intent is Intent.QUESTION
        assert result.confidence == 0.5

    def test_llm_errors_propagate(self):
        """Completion failures are not swallowed."""
        from ollama_code.llm.base import ConnectionError as LLMConnectionError

        llm = MockLLMClient()
        llm.add_error(LLMConnectionError("mock", "refused"))
        llm.add_error(LLMConnectionError("mock", "refused"))
        llm.add_error(LLMConnectionError("mock", "refused"))
        llm.retry_delay = 0

        with pytest.raises(LLMConnectionError):
            IntentDetector(llm).detect("hello")
