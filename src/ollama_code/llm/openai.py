"""OpenAI-compatible chat client (OpenAI, vLLM, LM Studio, Ollama's /v1)."""

from typing import Optional, Union

import httpx
import openai

from ollama_code.llm.base import (
    APIKeyError,
    CompletionOptions,
    ConnectionError,
    ContextLengthError,
    LLMClient,
    LLMError,
    Message,
    ModelError,
    RateLimitError,
    ResponseParseError,
    StreamCallback,
)


def _parse_openai_error(e: Exception, model: str = "", provider: str = "openai") -> LLMError:
    """Convert OpenAI SDK exceptions to structured LLMError."""
    error_str = str(e).lower()

    if isinstance(e, openai.AuthenticationError):
        return APIKeyError(provider)
    if isinstance(e, openai.RateLimitError):
        return RateLimitError(provider)
    if isinstance(e, openai.NotFoundError):
        return ModelError(provider, model)
    if isinstance(e, openai.BadRequestError):
        if "context_length" in error_str or "maximum context" in error_str:
            return ContextLengthError(provider)
        return LLMError(str(e), provider, "Check your request format")
    if isinstance(e, openai.APIConnectionError):
        return ConnectionError(provider, str(e))
    return LLMError(str(e), provider)


class OpenAICompatibleClient(LLMClient):
    """Chat-completions client for any OpenAI-compatible endpoint.

    The API key is optional because local servers usually ignore it.
    """

    provider = "openai"

    def __init__(
        self,
        model: str,
        base_url: str = "",
        api_key: str = "",
        timeout: float = 300.0,
        verify: Union[bool, str] = True,
        http_client: Optional[httpx.Client] = None,
    ):
        self.model = model
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.verify = verify
        self._http_client = http_client
        self._client: Optional[openai.OpenAI] = None

    @property
    def client(self) -> openai.OpenAI:
        """Lazy-load the OpenAI client."""
        if self._client is None:
            kwargs = {
                "api_key": self.api_key or "not-needed",
                "timeout": self.timeout,
                "max_retries": 0,  # retries handled by _retry_with_backoff
            }
            if self.base_url:
                kwargs["base_url"] = self.base_url
            if self._http_client is not None:
                kwargs["http_client"] = self._http_client
            elif self.verify is not True:
                kwargs["http_client"] = httpx.Client(verify=self.verify)
            self._client = openai.OpenAI(**kwargs)
        return self._client

    def is_available(self) -> bool:
        return bool(self.base_url or self.api_key)

    def _chat(self, messages: list[Message], options: CompletionOptions) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[m.to_dict() for m in messages],
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
        except openai.APIError as e:
            raise _parse_openai_error(e, self.model, self.provider) from e

        if not response.choices:
            raise ResponseParseError(self.provider, "no choices in response")
        return response.choices[0].message.content or ""

    def _stream(self, messages: list[Message], options: CompletionOptions, callback: StreamCallback) -> str:
        parts: list[str] = []
        try:
            stream = self.client.chat.completions.create(
                model=self.model,
                messages=[m.to_dict() for m in messages],
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                stream=True,
            )
            for chunk in stream:
                if not chunk.choices:
                    continue
                piece = chunk.choices[0].delta.content
                if piece:
                    parts.append(piece)
                    callback(piece)
        except openai.APIError as e:
            raise _parse_openai_error(e, self.model, self.provider) from e
        return "".join(parts)
