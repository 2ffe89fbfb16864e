"""Recover JSON objects from model responses that wrap them in prose."""

import json
import re
from typing import Any, Optional

from ollama_code.errors import ParseFailure


_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def find_balanced(text: str, open_char: str = "{", close_char: str = "}") -> Optional[str]:
    """Return the first balanced `open_char`...`close_char` block in `text`.

    Brackets inside JSON string literals are ignored so a value such as
    ``"a } b"`` does not end the block early.
    """
    start = text.find(open_char)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == open_char:
                depth += 1
            elif ch == close_char:
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this opener; try the next one.
        start = text.find(open_char, start + 1)
    return None


class JSONValidator:
    """Parses JSON out of free-form model output."""

    def extract(self, content: str, open_char: str = "{", close_char: str = "}") -> str:
        """Pull the most likely JSON payload out of `content`.

        A fenced ```json block wins; otherwise the first balanced block.
        Returns "" when nothing resembling JSON is present.
        """
        for match in _FENCED_JSON.finditer(content):
            body = match.group(1).strip()
            if body.startswith(open_char):
                return body
        return find_balanced(content, open_char, close_char) or ""

    def parse(self, content: str) -> dict[str, Any]:
        """Decode a JSON object, falling back to extraction.

        Raises:
            ParseFailure: If no JSON object can be recovered.
        """
        try:
            value = json.loads(content)
        except (json.JSONDecodeError, TypeError) as e:
            extracted = self.extract(content or "")
            if not extracted:
                raise ParseFailure(f"no JSON object found: {e}") from e
            try:
                value = json.loads(extracted)
            except json.JSONDecodeError as inner:
                raise ParseFailure(f"invalid JSON: {inner}") from inner

        if not isinstance(value, dict):
            raise ParseFailure(f"expected JSON object, got {type(value).__name__}")
        return value

    def parse_array(self, content: str) -> list[Any]:
        """Decode a JSON array, falling back to extraction."""
        try:
            value = json.loads(content)
        except (json.JSONDecodeError, TypeError) as e:
            extracted = self.extract(content or "", "[", "]")
            if not extracted:
                raise ParseFailure(f"no JSON array found: {e}") from e
            try:
                value = json.loads(extracted)
            except json.JSONDecodeError as inner:
                raise ParseFailure(f"invalid JSON: {inner}") from inner

        if not isinstance(value, list):
            raise ParseFailure(f"expected JSON array, got {type(value).__name__}")
        return value

    @staticmethod
    def is_valid(content: str) -> bool:
        try:
            json.loads(content)
        except (json.JSONDecodeError, TypeError):
            return False
        return True

    @staticmethod
    def prettify(content: str) -> str:
        """Re-indent a JSON document with two spaces.

        Raises:
            ParseFailure: If `content` is not valid JSON.
        """
        try:
            return json.dumps(json.loads(content), indent=2, ensure_ascii=False)
        except json.JSONDecodeError as e:
            raise ParseFailure(f"invalid JSON: {e}") from e
