"""User configuration management."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import structlog

from ollama_code.mode import OperationMode, parse_mode


log = structlog.get_logger(__name__)

CONFIG_DIR_NAME = ".ollama-code"
CONFIG_FILE_NAME = "config.json"


def config_dir() -> Path:
    """Directory holding config.json and todos.json."""
    return Path.home() / CONFIG_DIR_NAME


@dataclass
class ConfigSource:
    """Track where config values came from."""
    global_config: Optional[Path] = None
    local_config: Optional[Path] = None
    loaded_from: str = "default"  # "default", "global", "local", "env"
    errors: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        parts = []
        if self.global_config:
            parts.append(f"Global: {self.global_config}")
        if self.local_config:
            parts.append(f"Local: {self.local_config}")
        parts.append(f"Active: {self.loaded_from}")
        if self.errors:
            parts.append(f"Errors: {', '.join(self.errors)}")
        return " | ".join(parts)


@dataclass
class Config:
    """Ollama-Code-Py configuration."""

    # App settings
    mode: OperationMode = OperationMode.INTERACTIVE
    log_level: str = "info"
    log_format: str = "text"  # "text" or "json"

    # Ollama settings
    ollama_url: str = "http://localhost:11434"
    model: str = "qwen2.5-coder:7b"
    temperature: float = 0.7
    max_tokens: int = 2048
    timeout: float = 300.0

    # Alternative backend
    llm_provider: str = "ollama"  # "ollama" or "openai"
    api_key: str = ""
    base_url: str = ""  # OpenAI-compatible endpoint

    # Web search
    websearch_enabled: bool = True
    websearch_max_results: int = 5
    websearch_timeout: float = 15.0

    # Web search result cache
    cache_enabled: bool = True
    cache_ttl: int = 15  # minutes

    # Execution
    command_timeout: int = 120

    # Config source tracking (not loaded from file)
    _source: ConfigSource = field(default_factory=ConfigSource)

    @classmethod
    def load(cls, work_dir: Optional[Path] = None) -> "Config":
        """Load configuration from files and environment.

        Load order (later overrides earlier):
        1. Global config (~/.ollama-code/config.json)
        2. Local config (.ollama-code/config.json in the working directory)
        3. Environment variables (OLLAMA_CODE_*)
        """
        config = cls()
        config._source = ConfigSource()

        global_config = cls.get_global_config_path()
        if global_config.exists():
            success, error = config._load_from_file(global_config)
            if success:
                config._source.global_config = global_config
                config._source.loaded_from = "global"
            elif error:
                config._source.errors.append(f"global: {error}")
                log.warning("config_load_failed", path=str(global_config), error=error)

        local_config = Path(work_dir or Path.cwd()) / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        if local_config.exists() and local_config != global_config:
            success, error = config._load_from_file(local_config)
            if success:
                config._source.local_config = local_config
                config._source.loaded_from = "local"
            elif error:
                config._source.errors.append(f"local: {error}")
                log.warning("config_load_failed", path=str(local_config), error=error)

        overrides = config._load_from_env()
        if overrides:
            config._source.loaded_from = "env"
            log.debug("config_env_overrides", variables=overrides)

        return config

    @classmethod
    def get_global_config_path(cls) -> Path:
        return config_dir() / CONFIG_FILE_NAME

    @property
    def source(self) -> ConfigSource:
        return self._source

    def _load_from_file(self, path: Path) -> tuple[bool, str]:
        """Load configuration from a JSON file.

        Returns:
            Tuple of (success: bool, error_message: str)
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return False, f"File not found: {path}"
        except (OSError, json.JSONDecodeError) as e:
            return False, str(e)

        if not isinstance(data, dict):
            return False, "top-level JSON value must be an object"

        try:
            self._apply(data)
        except (TypeError, ValueError) as e:
            return False, f"invalid value: {e}"
        return True, ""

    def _apply(self, data: dict) -> None:
        app = data.get("app") or {}
        if app.get("mode"):
            self.mode = parse_mode(app["mode"])
        if app.get("log_level"):
            self.log_level = str(app["log_level"]).lower()
        if app.get("log_format"):
            self.log_format = str(app["log_format"]).lower()

        ollama = data.get("ollama") or {}
        if ollama.get("url"):
            self.ollama_url = ollama["url"]
        if ollama.get("model"):
            self.model = ollama["model"]
        if "temperature" in ollama:
            self.temperature = float(ollama["temperature"])
        if "max_tokens" in ollama:
            self.max_tokens = int(ollama["max_tokens"])
        if "timeout" in ollama:
            self.timeout = float(ollama["timeout"])

        llm = data.get("llm") or {}
        if llm.get("provider"):
            self.llm_provider = llm["provider"]
        if llm.get("api_key"):
            self.api_key = llm["api_key"]
        if llm.get("base_url"):
            self.base_url = llm["base_url"]

        websearch = data.get("websearch") or {}
        if "enabled" in websearch:
            self.websearch_enabled = bool(websearch["enabled"])
        if "max_results" in websearch:
            self.websearch_max_results = int(websearch["max_results"])
        if "timeout" in websearch:
            self.websearch_timeout = float(websearch["timeout"])

        cache = data.get("cache") or {}
        if "enabled" in cache:
            self.cache_enabled = bool(cache["enabled"])
        if "ttl" in cache:
            self.cache_ttl = int(cache["ttl"])

        execution = data.get("execution") or {}
        if "command_timeout" in execution:
            self.command_timeout = int(execution["command_timeout"])

    def _load_from_env(self) -> list[str]:
        """Load configuration from environment variables.

        Returns:
            List of environment variables that were applied.
        """
        overrides = []

        if mode := os.environ.get("OLLAMA_CODE_MODE"):
            self.mode = parse_mode(mode)
            overrides.append("OLLAMA_CODE_MODE")
        if level := os.environ.get("OLLAMA_CODE_LOG_LEVEL"):
            self.log_level = level.lower()
            overrides.append("OLLAMA_CODE_LOG_LEVEL")
        if fmt := os.environ.get("OLLAMA_CODE_LOG_FORMAT"):
            self.log_format = fmt.lower()
            overrides.append("OLLAMA_CODE_LOG_FORMAT")
        if model := os.environ.get("OLLAMA_CODE_MODEL"):
            self.model = model
            overrides.append("OLLAMA_CODE_MODEL")
        if url := os.environ.get("OLLAMA_CODE_URL"):
            self.ollama_url = url
            overrides.append("OLLAMA_CODE_URL")
        if provider := os.environ.get("OLLAMA_CODE_PROVIDER"):
            self.llm_provider = provider.lower()
            overrides.append("OLLAMA_CODE_PROVIDER")
        if key := os.environ.get("OLLAMA_CODE_API_KEY"):
            self.api_key = key
            overrides.append("OLLAMA_CODE_API_KEY")
        if base_url := os.environ.get("OLLAMA_CODE_BASE_URL"):
            self.base_url = base_url
            overrides.append("OLLAMA_CODE_BASE_URL")
            if self.llm_provider == "ollama":
                self.llm_provider = "openai"

        return overrides

    def to_dict(self) -> dict:
        """Serialize to the config.json layout."""
        return {
            "app": {
                "mode": self.mode.value,
                "log_level": self.log_level,
                "log_format": self.log_format,
            },
            "ollama": {
                "url": self.ollama_url,
                "model": self.model,
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
                "timeout": self.timeout,
            },
            "llm": {
                "provider": self.llm_provider,
                "api_key": self.api_key,
                "base_url": self.base_url,
            },
            "websearch": {
                "enabled": self.websearch_enabled,
                "max_results": self.websearch_max_results,
                "timeout": self.websearch_timeout,
            },
            "cache": {
                "enabled": self.cache_enabled,
                "ttl": self.cache_ttl,
            },
            "execution": {
                "command_timeout": self.command_timeout,
            },
        }

    def save(self, path: Optional[Path] = None) -> Path:
        """Write the configuration as JSON (global path by default)."""
        path = path or self.get_global_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")
        return path

    def show_config_info(self) -> str:
        """Human-readable summary of the active configuration."""
        lines = [
            f"Mode:      {self.mode.value} ({self.mode.description})",
            f"Provider:  {self.llm_provider}",
            f"Model:     {self.model}",
        ]
        if self.llm_provider == "openai":
            lines.append(f"Base URL:  {self.base_url or '(OpenAI default)'}")
            lines.append(f"API key:   {'set' if self.api_key else 'NOT SET'}")
        else:
            lines.append(f"Server:    {self.ollama_url}")
        lines.append(f"Logging:   {self.log_level} ({self.log_format})")
        lines.append(f"Source:    {self._source}")
        return "\n".join(lines)
