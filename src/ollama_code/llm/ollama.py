"""Ollama chat client over HTTP."""

import json
from typing import Optional, Union

import httpx

from ollama_code.llm.base import (
    CompletionOptions,
    ConnectionError,
    LLMClient,
    LLMError,
    Message,
    ModelError,
    RateLimitError,
    ResponseParseError,
    StreamCallback,
)


DEFAULT_URL = "http://localhost:11434"
DEFAULT_MODEL = "qwen2.5-coder:7b"
DEFAULT_TIMEOUT = 300.0


class OllamaClient(LLMClient):
    """Client for a local or remote Ollama server (`/api/chat`).

    Args:
        base_url: Server URL.
        model: Model tag, e.g. "qwen2.5-coder:7b".
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use httpx.MockTransport).
        verify: SSL verification (True, False, or a CA bundle path).
    """

    provider = "ollama"

    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
        verify: Union[bool, str] = True,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport
        self._verify = verify
        self._client: Optional[httpx.Client] = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-load the HTTP client."""
        if self._client is None:
            kwargs = {"base_url": self.base_url, "timeout": self.timeout}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            else:
                kwargs["verify"] = self._verify
            self._client = httpx.Client(**kwargs)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _payload(self, messages: list[Message], options: CompletionOptions, stream: bool) -> dict:
        return {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "stream": stream,
            "options": {
                "temperature": options.temperature,
                "num_predict": options.max_tokens,
            },
        }

    def _check_status(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        response.read()
        detail = response.text.strip()
        try:
            detail = response.json().get("error", detail)
        except ValueError:
            pass
        if response.status_code == 404:
            raise ModelError(self.provider, self.model)
        if response.status_code == 429:
            raise RateLimitError(self.provider)
        raise LLMError(f"HTTP {response.status_code}: {detail}", self.provider)

    def _chat(self, messages: list[Message], options: CompletionOptions) -> str:
        try:
            response = self.client.post("/api/chat", json=self._payload(messages, options, stream=False))
            self._check_status(response)
            data = response.json()
        except httpx.TimeoutException as e:
            raise ConnectionError(self.provider, f"timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise ConnectionError(self.provider, str(e)) from e
        except ValueError as e:
            raise ResponseParseError(self.provider, str(e)) from e

        if "error" in data:
            raise LLMError(str(data["error"]), self.provider)
        try:
            return data["message"]["content"]
        except (KeyError, TypeError) as e:
            raise ResponseParseError(self.provider, f"missing message.content ({e})") from e

    def _stream(self, messages: list[Message], options: CompletionOptions, callback: StreamCallback) -> str:
        parts: list[str] = []
        try:
            with self.client.stream("POST", "/api/chat", json=self._payload(messages, options, stream=True)) as response:
                self._check_status(response)
                for line in response.iter_lines():
                    if not line.strip():
                        continue
                    chunk = json.loads(line)
                    if "error" in chunk:
                        raise LLMError(str(chunk["error"]), self.provider)
                    piece = (chunk.get("message") or {}).get("content", "")
                    if piece:
                        parts.append(piece)
                        callback(piece)
                    if chunk.get("done"):
                        break
        except httpx.TimeoutException as e:
            raise ConnectionError(self.provider, f"timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise ConnectionError(self.provider, str(e)) from e
        except ValueError as e:
            raise ResponseParseError(self.provider, str(e)) from e
        return "".join(parts)

    def list_models(self) -> list[str]:
        """Names of the models installed on the server."""
        try:
            response = self.client.get("/api/tags")
            self._check_status(response)
            data = response.json()
        except httpx.TransportError as e:
            raise ConnectionError(self.provider, str(e)) from e
        except ValueError as e:
            raise ResponseParseError(self.provider, str(e)) from e
        return [m.get("name", "") for m in data.get("models", [])]

    def is_available(self) -> bool:
        try:
            self.list_models()
        except LLMError:
            return False
        return True
