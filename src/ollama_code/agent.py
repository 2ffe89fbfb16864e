"""Dispatch entry point: classify a message, route it, remember the exchange."""

from pathlib import Path
from typing import Optional

from ollama_code.bgtask import Supervisor
from ollama_code.cache import CacheManager
from ollama_code.config import Config
from ollama_code.confirmation import ConsoleConfirmation
from ollama_code.diff import DiffManager, PreviewManager
from ollama_code.errors import BadRequest
from ollama_code.handlers import HandlerRegistry, QuestionHandler, default_handlers
from ollama_code.handlers.base import Confirmation, Dependencies, ToolExecutor, WebSearchClient
from ollama_code.intent import IntentDetector
from ollama_code.intent.types import DetectionResult
from ollama_code.llm.base import CompletionOptions, LLMClient, Message
from ollama_code.mode import OperationMode
from ollama_code.observability import Observability
from ollama_code.todos import TodoManager
from ollama_code.tools import build_default_registry
from ollama_code.websearch import DuckDuckGoSearch


# Messages kept in memory (user and assistant turns)
MAX_HISTORY = 50


class Agent:
    """Owns the conversation state and the handler pipeline.

    Args:
        config: Loaded configuration (mode, model, timeouts).
        llm: Completion client used for classification and answers.
        tools: Tool registry; built-in tools rooted at `work_dir` when omitted.
        confirmation: Prompt used before side effects; console when omitted.
        work_dir: Directory the tools operate in.
        web_search: Web search client; DuckDuckGo when enabled in config.
        todo_manager: TODO tracker; in-memory when omitted.
        observability: Shared logger/metrics/tracer.
        supervisor: Background-task supervisor for background commands.
    """

    def __init__(
        self,
        config: Config,
        llm: LLMClient,
        tools: Optional[ToolExecutor] = None,
        confirmation: Optional[Confirmation] = None,
        work_dir: Optional[Path] = None,
        web_search: Optional[WebSearchClient] = None,
        todo_manager: Optional[TodoManager] = None,
        observability: Optional[Observability] = None,
        supervisor: Optional[Supervisor] = None,
    ):
        self.config = config
        self.mode: OperationMode = config.mode
        self.work_dir = Path(work_dir or Path.cwd()).resolve()
        self.observability = observability or Observability(config.log_level, config.log_format)
        self.log = self.observability.logger.with_component("agent")

        self.llm = llm
        if isinstance(llm, LLMClient):
            if llm.wrapper is None:
                llm.wrapper = self.observability.llm_wrapper()
            if llm.default_options is None:
                llm.default_options = CompletionOptions(temperature=config.temperature, max_tokens=config.max_tokens)

        self.supervisor = supervisor or Supervisor()
        self.tools = tools or build_default_registry(
            self.work_dir, self.supervisor, self.observability, config.command_timeout
        )
        self.confirmation = confirmation or ConsoleConfirmation()
        if web_search is None and config.websearch_enabled:
            web_search = DuckDuckGoSearch(config.websearch_max_results, config.websearch_timeout)
        self.web_search = web_search
        self.cache: Optional[CacheManager] = None
        if config.cache_enabled:
            self.cache = CacheManager(ttl=config.cache_ttl * 60, wrapper=self.observability.cache_wrapper())
        self.todo_manager = todo_manager or TodoManager()
        self.diff_manager = DiffManager()
        self.preview_manager = PreviewManager()

        self.detector = IntentDetector(llm)
        self._intent_wrapper = self.observability.intent_wrapper()
        self.handlers = HandlerRegistry()
        for intent, handler in default_handlers().items():
            self.handlers.register(intent, self.observability.handler_wrapper(handler, handler.name))
        self.handlers.register_default(self.observability.handler_wrapper(QuestionHandler(), "question"))

        self.history: list[Message] = []
        self.recent_files: list[str] = []

    def set_mode(self, mode: OperationMode) -> None:
        self.mode = mode
        self.log.info("mode_changed", mode=str(mode))

    def dependencies(self) -> Dependencies:
        """Collaborators for one dispatch; history and recent files are shared lists."""
        return Dependencies(
            tools=self.tools,
            llm=self.llm,
            confirmation=self.confirmation,
            mode=self.mode,
            work_dir=str(self.work_dir),
            web_search=self.web_search,
            intent_detector=self.detector,
            todo_manager=self.todo_manager,
            diff_manager=self.diff_manager,
            preview_manager=self.preview_manager,
            cache_manager=self.cache,
            history=self.history,
            recent_files=self.recent_files,
        )

    def detect(self, message: str) -> DetectionResult:
        """Classify `message` with the current conversation as context."""
        result = self._intent_wrapper.wrap_intent_detection(
            lambda: self.detector.detect(
                message, str(self.work_dir), list(self.recent_files), list(self.history)
            )
        )
        result.user_message = message
        return result

    def process_message(self, message: str) -> str:
        """Handle one user message and return the reply.

        Raises:
            BadRequest: If the message is empty or a required parameter is missing.
            NotFound: If no handler matches the detected intent.
            ExternalFailure: If a tool or the completion service fails.
        """
        message = message.strip()
        if not message:
            raise BadRequest("empty message")

        result = self.detect(message)
        self.log.debug(
            "dispatch",
            intent=str(result.intent),
            confidence=result.confidence,
            parameters=sorted(result.parameters),
        )
        response = self.handlers.handle(self.dependencies(), result)
        self._remember(message, response)
        return response

    def _remember(self, message: str, response: str) -> None:
        self.history.append(Message("user", message))
        self.history.append(Message("assistant", response))
        del self.history[:-MAX_HISTORY]

    def clear_history(self) -> None:
        self.history.clear()
        self.recent_files.clear()

    def shutdown(self) -> None:
        """Stop background tasks, drop cached results and release HTTP clients."""
        self.supervisor.shutdown()
        if self.cache is not None:
            self.cache.clear()
        if isinstance(self.web_search, DuckDuckGoSearch):
            self.web_search.close()
