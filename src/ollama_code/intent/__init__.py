"""Intent classification."""

from ollama_code.intent.detector import IntentDetector, build_user_prompt, parse_response
from ollama_code.intent.prompts import SYSTEM_PROMPT, USER_PROMPT_TEMPLATE
from ollama_code.intent.types import DetectionResult, Intent

__all__ = [
    "Intent",
    "DetectionResult",
    "IntentDetector",
    "build_user_prompt",
    "parse_response",
    "SYSTEM_PROMPT",
    "USER_PROMPT_TEMPLATE",
]
