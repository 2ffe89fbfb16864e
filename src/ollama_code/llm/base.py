"""Completion-service interface, message types and errors."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

import structlog

from ollama_code.errors import ExternalFailure

if TYPE_CHECKING:
    from ollama_code.observability.wrappers import LLMWrapper


log = structlog.get_logger(__name__)


# =============================================================================
# LLM Error Classes
# =============================================================================

class LLMError(ExternalFailure):
    """Base exception for completion-service errors."""

    def __init__(self, message: str, provider: str = "", suggestion: str = ""):
        self.provider = provider
        super().__init__(message, suggestion)

    def format_message(self) -> str:
        parts = [f"[{self.provider}] {self.message}" if self.provider else self.message]
        if self.suggestion:
            parts.append(f"\n  Suggestion: {self.suggestion}")
        return "".join(parts)


class APIKeyError(LLMError):
    """API key is missing or rejected."""

    def __init__(self, provider: str):
        super().__init__(
            message="API key missing or rejected",
            provider=provider,
            suggestion="Set OLLAMA_CODE_API_KEY or llm.api_key in ~/.ollama-code/config.json",
        )


class ConnectionError(LLMError):
    """Failed to reach the completion service."""

    def __init__(self, provider: str, details: str = ""):
        super().__init__(
            message=f"Connection failed: {details}" if details else "Connection failed",
            provider=provider,
            suggestion="Check that the server is running and the URL is correct",
        )


class RateLimitError(LLMError):
    """Rate limit exceeded."""

    def __init__(self, provider: str, retry_after: int = 0):
        msg = "Rate limit exceeded"
        if retry_after:
            msg += f" (retry after {retry_after}s)"
        super().__init__(
            message=msg,
            provider=provider,
            suggestion="Wait a moment and try again",
        )
        self.retry_after = retry_after


class ModelError(LLMError):
    """Model not found on the server."""

    def __init__(self, provider: str, model: str):
        self.model = model
        super().__init__(
            message=f"Model '{model}' not available",
            provider=provider,
            suggestion=f"Pull it first (ollama pull {model}) or pick another model",
        )


class ContextLengthError(LLMError):
    """Prompt plus history exceed the model's context window."""

    def __init__(self, provider: str, limit: int = 0):
        msg = "Context length exceeded"
        if limit:
            msg += f" (limit: {limit} tokens)"
        super().__init__(
            message=msg,
            provider=provider,
            suggestion="Shorten the request or clear the conversation history",
        )


class ResponseParseError(LLMError):
    """The service answered with something that is not a completion."""

    def __init__(self, provider: str, details: str = ""):
        super().__init__(
            message=f"Failed to parse response: {details}" if details else "Failed to parse response",
            provider=provider,
            suggestion="This may be a temporary server issue - try again",
        )


# =============================================================================
# Request types
# =============================================================================

ROLES = ("system", "user", "assistant")


@dataclass
class Message:
    """A chat message."""
    role: str  # "system", "user" or "assistant"
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionOptions:
    """Sampling options for one request."""
    temperature: float = 0.7
    max_tokens: int = 2048
    system_prompt: str = ""


StreamCallback = Callable[[str], None]


class LLMClient(ABC):
    """Abstract completion client.

    Attributes:
        provider: Short provider name used in error messages.
        model: Model identifier sent with each request.
        max_retries: Maximum attempts for transient failures.
        retry_delay: Base delay between retries (exponential backoff).
        wrapper: Optional instrumentation applied to every request.
        default_options: Options used when a call passes none.
    """

    provider: str = "base"
    model: str = ""
    max_retries: int = 3
    retry_delay: float = 1.0
    wrapper: "Optional[LLMWrapper]" = None
    default_options: Optional[CompletionOptions] = None

    def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        """Single-turn completion of `prompt`."""
        return self.complete_with_history([Message("user", prompt)], options)

    def complete_with_history(self, messages: list[Message], options: Optional[CompletionOptions] = None) -> str:
        """Completion over an ordered message list."""
        options = self._resolve(options)
        messages = self._with_system(messages, options)
        return self._instrumented(lambda: self._retry_with_backoff(self._chat, messages, options))

    def complete_streaming(
        self,
        prompt: str,
        callback: StreamCallback,
        options: Optional[CompletionOptions] = None,
    ) -> str:
        """Stream a completion, passing each chunk to `callback`.

        Returns:
            The concatenated response body.
        """
        options = self._resolve(options)
        messages = self._with_system([Message("user", prompt)], options)
        return self._instrumented(lambda: self._stream(messages, options, callback))

    @abstractmethod
    def _chat(self, messages: list[Message], options: CompletionOptions) -> str:
        """Send one non-streaming request."""
        pass

    @abstractmethod
    def _stream(self, messages: list[Message], options: CompletionOptions, callback: StreamCallback) -> str:
        """Send one streaming request."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the service can be reached."""
        pass

    def _resolve(self, options: Optional[CompletionOptions]) -> CompletionOptions:
        return options or self.default_options or CompletionOptions()

    @staticmethod
    def _with_system(messages: list[Message], options: CompletionOptions) -> list[Message]:
        if not options.system_prompt:
            return list(messages)
        return [Message("system", options.system_prompt), *messages]

    def _instrumented(self, fn: Callable[[], str]) -> str:
        if self.wrapper is None:
            return fn()
        return self.wrapper.wrap_llm_request(self.model, fn)

    def _retry_with_backoff(self, func, *args, **kwargs):
        """Execute function with exponential backoff retry.

        Only rate limits and connection failures are retried.
        """
        last_error = None
        for attempt in range(self.max_retries):
            try:
                return func(*args, **kwargs)
            except RateLimitError as e:
                last_error = e
                wait_time = e.retry_after if e.retry_after else (self.retry_delay * (2 ** attempt))
            except ConnectionError as e:
                last_error = e
                wait_time = self.retry_delay * (2 ** attempt)
            if attempt < self.max_retries - 1:
                log.warning("llm_retry", provider=self.provider, attempt=attempt + 1, wait_seconds=wait_time)
                time.sleep(wait_time)

        raise last_error


class MockLLMClient(LLMClient):
    """Canned-response client for tests.

    Responses are returned in order; once exhausted the last user message
    is echoed. Queued exceptions are raised instead of answering.
    """

    provider = "mock"
    model = "mock-model"

    def __init__(self, responses: Optional[list] = None):
        self.responses: list = list(responses or [])
        self.response_index = 0
        self.calls: list[tuple[list[Message], CompletionOptions]] = []

    def add_response(self, response: str) -> None:
        """Add a canned response."""
        self.responses.append(response)

    def add_error(self, error: Exception) -> None:
        """Queue an exception to be raised by the next request."""
        self.responses.append(error)

    def _next(self, messages: list[Message]) -> str:
        if self.response_index < len(self.responses):
            item = self.responses[self.response_index]
            self.response_index += 1
            if isinstance(item, Exception):
                raise item
            return item
        last_user = next((m.content for m in reversed(messages) if m.role == "user"), "No message")
        return f"[Mock] Received: {last_user}"

    def _chat(self, messages: list[Message], options: CompletionOptions) -> str:
        self.calls.append((messages, options))
        return self._next(messages)

    def _stream(self, messages: list[Message], options: CompletionOptions, callback: StreamCallback) -> str:
        self.calls.append((messages, options))
        text = self._next(messages)
        for word in text.split(" "):
            callback(word + " ")
        return text

    def is_available(self) -> bool:
        return True

    @property
    def last_messages(self) -> list[Message]:
        return self.calls[-1][0] if self.calls else []

    @property
    def last_options(self) -> Optional[CompletionOptions]:
        return self.calls[-1][1] if self.calls else None
