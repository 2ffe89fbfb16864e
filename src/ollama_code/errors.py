"""Error vocabulary shared by the dispatch pipeline, tools and supervisor."""


class OllamaCodeError(Exception):
    """Base exception for all runtime errors."""

    def __init__(self, message: str, suggestion: str = ""):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.format_message())

    def format_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n  Suggestion: {self.suggestion}"
        return self.message


class BadRequest(OllamaCodeError):
    """A required parameter is missing or malformed."""
    pass


class NotFound(OllamaCodeError):
    """Unknown task id, tool, or intent with no default handler."""
    pass


class AlreadyRegistered(OllamaCodeError):
    """A name or intent is already bound in a registry."""
    pass


class AlreadyTerminated(OllamaCodeError):
    """Kill was requested for a task that already reached a terminal state."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"task already terminated with status: {status}")


class WaitTimeout(OllamaCodeError):
    """Waiting on a background task exceeded its deadline."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"wait timeout after {timeout}s")


class ExternalFailure(OllamaCodeError):
    """A tool, completion service, or web search reported failure."""
    pass


class ParseFailure(OllamaCodeError):
    """A model response could not be decoded."""
    pass
