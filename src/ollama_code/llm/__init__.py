"""LLM subsystem.

Provides:
- LLMClient base class and CompletionOptions
- OllamaClient (native /api/chat over httpx)
- OpenAICompatibleClient (openai SDK)
- MockLLMClient for testing
- LLMError classes for structured error handling
"""

from typing import TYPE_CHECKING, Optional

from ollama_code.llm.base import (
    CompletionOptions,
    LLMClient,
    Message,
    MockLLMClient,
    # Error classes
    LLMError,
    APIKeyError,
    ConnectionError,
    RateLimitError,
    ModelError,
    ContextLengthError,
    ResponseParseError,
)
from ollama_code.llm.ollama import OllamaClient
from ollama_code.llm.openai import OpenAICompatibleClient

if TYPE_CHECKING:
    from ollama_code.config import Config
    from ollama_code.observability.wrappers import LLMWrapper


def create_client(config: "Config", wrapper: "Optional[LLMWrapper]" = None) -> LLMClient:
    """Build the completion client selected by `config.llm_provider`."""
    if config.llm_provider == "openai":
        client: LLMClient = OpenAICompatibleClient(
            model=config.model,
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=config.timeout,
        )
    else:
        client = OllamaClient(
            base_url=config.ollama_url,
            model=config.model,
            timeout=config.timeout,
        )
    client.wrapper = wrapper
    client.default_options = CompletionOptions(temperature=config.temperature, max_tokens=config.max_tokens)
    return client


__all__ = [
    # Core classes
    "LLMClient",
    "CompletionOptions",
    "Message",
    "create_client",
    # Clients
    "OllamaClient",
    "OpenAICompatibleClient",
    "MockLLMClient",
    # Errors
    "LLMError",
    "APIKeyError",
    "ConnectionError",
    "RateLimitError",
    "ModelError",
    "ContextLengthError",
    "ResponseParseError",
]
