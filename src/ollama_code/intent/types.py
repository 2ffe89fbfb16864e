"""Intent taxonomy and classification result."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ollama_code.errors import ParseFailure


class Intent(Enum):
    """Closed set of user goals the dispatcher knows how to route."""
    READ_FILE = "read_file"
    WRITE_FILE = "write_file"
    EXECUTE_COMMAND = "execute_command"
    SEARCH_CODE = "search_code"
    ANALYZE_PROJECT = "analyze_project"
    GIT_OPERATION = "git_operation"
    WEB_SEARCH = "web_search"
    QUESTION = "question"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Any) -> "Intent":
        """Map a wire value to an Intent; anything unrecognized is UNKNOWN."""
        if isinstance(value, Intent):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class DetectionResult:
    """Outcome of classifying one user message.

    `parameters` stays an untyped mapping here; each handler validates the
    keys it understands. `user_message` is filled in by the dispatcher,
    not by the classifier.
    """
    intent: Intent
    confidence: float
    parameters: dict[str, Any] = field(default_factory=dict)
    reasoning: str = ""
    user_message: str = ""

    def param(self, key: str, default: Any = None) -> Any:
        return self.parameters.get(key, default)

    def str_param(self, key: str, default: str = "") -> str:
        """String parameter, or `default` when absent, blank or not a string."""
        value = self.parameters.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return default

    def to_dict(self) -> dict[str, Any]:
        data = {
            "intent": self.intent.value,
            "confidence": self.confidence,
            "parameters": dict(self.parameters),
            "reasoning": self.reasoning,
        }
        if self.user_message:
            data["user_message"] = self.user_message
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "DetectionResult":
        """Build a result from decoded JSON.

        Raises:
            ParseFailure: If `data` is not a mapping with an intent field.
        """
        if not isinstance(data, dict):
            raise ParseFailure(f"expected JSON object, got {type(data).__name__}")
        if "intent" not in data:
            raise ParseFailure("missing 'intent' field")

        try:
            confidence = float(data.get("confidence", 0.0))
        except (TypeError, ValueError) as e:
            raise ParseFailure(f"invalid confidence: {data.get('confidence')!r}") from e
        confidence = min(max(confidence, 0.0), 1.0)

        parameters = data.get("parameters") or {}
        if not isinstance(parameters, dict):
            raise ParseFailure("'parameters' must be an object")

        return cls(
            intent=Intent.parse(data["intent"]),
            confidence=confidence,
            parameters={str(k): v for k, v in parameters.items()},
            reasoning=str(data.get("reasoning") or ""),
            user_message=str(data.get("user_message") or ""),
        )

    @classmethod
    def fallback(cls, reasoning: str = "Fallback: could not detect a specific intent") -> "DetectionResult":
        """Result used when the classifier response cannot be parsed."""
        return cls(intent=Intent.QUESTION, confidence=0.5, parameters={}, reasoning=reasoning)
