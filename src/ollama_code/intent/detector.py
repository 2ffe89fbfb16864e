"""LLM-backed intent classifier."""

import json
from typing import Optional, Sequence

import structlog

from ollama_code.errors import ParseFailure
from ollama_code.intent.prompts import (
    NO_CONVERSATION,
    NO_RECENT_FILES,
    SYSTEM_PROMPT,
    USER_PROMPT_TEMPLATE,
)
from ollama_code.intent.types import DetectionResult
from ollama_code.llm.base import CompletionOptions, LLMClient, Message
from ollama_code.validators.jsonparse import find_balanced


log = structlog.get_logger(__name__)

HISTORY_WINDOW = 4
HISTORY_SNIPPET = 200
DETECTION_TEMPERATURE = 0.1
DETECTION_MAX_TOKENS = 500


def format_conversation(history: Optional[Sequence[Message]]) -> str:
    """Last few history entries, each truncated, one per line."""
    if not history:
        return NO_CONVERSATION
    lines = []
    for message in list(history)[-HISTORY_WINDOW:]:
        content = message.content
        if len(content) > HISTORY_SNIPPET:
            content = content[:HISTORY_SNIPPET] + "..."
        lines.append(f"{message.role}: {content}")
    return "\n".join(lines)


def build_user_prompt(
    user_message: str,
    work_dir: str,
    recent_files: Optional[Sequence[str]] = None,
    history: Optional[Sequence[Message]] = None,
) -> str:
    files = ", ".join(recent_files) if recent_files else NO_RECENT_FILES
    return USER_PROMPT_TEMPLATE.format(
        work_dir=work_dir,
        recent_files=files,
        conversation=format_conversation(history),
        message=user_message,
    )


def strip_fences(response: str) -> str:
    text = response.strip()
    text = text.removeprefix("```json")
    text = text.removeprefix("```")
    text = text.removesuffix("```")
    return text.strip()


def parse_response(response: str) -> DetectionResult:
    """Decode a classifier response.

    Raises:
        ParseFailure: If no detection record can be decoded.
    """
    text = strip_fences(response)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        block = find_balanced(text)
        if block is None:
            raise ParseFailure(f"classifier response is not JSON: {e}") from e
        try:
            data = json.loads(block)
        except json.JSONDecodeError as inner:
            raise ParseFailure(f"classifier response is not JSON: {inner}") from inner
    return DetectionResult.from_dict(data)


class IntentDetector:
    """Classifies user messages by asking the completion service.

    Completion errors propagate to the caller; an unparseable answer
    yields a `question` fallback instead.
    """

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def detect(
        self,
        user_message: str,
        work_dir: str = ".",
        recent_files: Optional[Sequence[str]] = None,
        history: Optional[Sequence[Message]] = None,
    ) -> DetectionResult:
        prompt = build_user_prompt(user_message, work_dir, recent_files, history)
        options = CompletionOptions(
            temperature=DETECTION_TEMPERATURE,
            max_tokens=DETECTION_MAX_TOKENS,
            system_prompt=SYSTEM_PROMPT,
        )
        response = self.llm.complete(prompt, options)

        try:
            return parse_response(response)
        except ParseFailure as e:
            log.debug("intent_parse_fallback", error=str(e))
            return DetectionResult.fallback()

    def detect_simple(self, user_message: str) -> DetectionResult:
        """Classify without any context."""
        return self.detect(user_message, ".", [], [])
