"""
Configuration Management
========================

All tunable knobs live here, typed and validated in one place.

The orchestration core itself only reads AgentConfig. ProviderConfig and
ToolSettings belong to the concrete backend and the built-in tools, and
are kept separate so that the core never depends on credentials or on
the local filesystem layout.

Values come from environment variables (a .env file is loaded first).
Every config object is a frozen dataclass, and AgentConfig validates
itself on construction, raising ConfigError for values the agent loop
cannot work with.

Usage:
    from gamecode.utils.config import get_config

    config = get_config()
    print(config.agent.capable_model_id)
    print(config.agent.retry.max_attempts)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from gamecode.errors import ConfigError


def _required(name: str) -> str:
    """
    Get a required environment variable.

    Raises:
        ConfigError: If the variable is not set
    """
    value = os.getenv(name)
    if not value:
        raise ConfigError(
            f"Missing required environment variable: {name}\n"
            f"Please ensure {name} is set in your .env file."
        )
    return value


def _optional(name: str, default: str) -> str:
    return os.getenv(name, default)


def _optional_int(name: str, default: int) -> int:
    """
    Get an optional integer environment variable.

    Raises:
        ConfigError: If the variable is set but is not an integer
    """
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _optional_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}") from None


def _optional_bool(name: str, default: bool) -> bool:
    """True if the value is 'true', '1' or 'yes' (case-insensitive)."""
    value = os.getenv(name)
    if not value:
        return default
    return value.strip().lower() in ("true", "1", "yes")


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff for transient backend failures.

    The n-th retry waits initial_backoff_seconds * multiplier ** (n - 1),
    capped at max_backoff_seconds. max_attempts counts the first request,
    so max_attempts=1 disables retries entirely.
    """
    max_attempts: int = 4
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0
    multiplier: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigError("retry.max_attempts must be at least 1")
        if self.initial_backoff_seconds < 0 or self.max_backoff_seconds < 0:
            raise ConfigError("retry backoff durations must not be negative")
        if self.multiplier < 1:
            raise ConfigError("retry.multiplier must be at least 1")


@dataclass(frozen=True)
class AgentConfig:
    """
    Settings for one AgentManager session. Immutable for its lifetime.

    Attributes:
        capable_model_id: Model used for reasoning turns
        fast_model_id: Cheaper model used to summarize old history
        max_context_size: Budget for the conversation, in estimated tokens
        max_tool_call_rounds_per_turn: Model requests allowed per turn
        retry: Backoff policy for transient backend failures
        min_trailing_messages: Recent messages never folded into a summary
        concurrent_tools: Run the tool calls of one round concurrently
        round_delay_seconds: Pause between rounds to avoid throttling
    """
    capable_model_id: str = "gpt-4o"
    fast_model_id: str = "gpt-4o-mini"
    max_context_size: int = 32000
    max_tool_call_rounds_per_turn: int = 5
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    min_trailing_messages: int = 4
    concurrent_tools: bool = True
    round_delay_seconds: float = 0.0

    def __post_init__(self):
        if not self.capable_model_id or not self.fast_model_id:
            raise ConfigError("Both capable_model_id and fast_model_id must be set")
        if self.max_context_size <= 0:
            raise ConfigError("max_context_size must be positive")
        if self.max_tool_call_rounds_per_turn < 1:
            raise ConfigError("max_tool_call_rounds_per_turn must be at least 1")
        if self.min_trailing_messages < 0:
            raise ConfigError("min_trailing_messages must not be negative")
        if self.round_delay_seconds < 0:
            raise ConfigError("round_delay_seconds must not be negative")


@dataclass(frozen=True)
class ProviderConfig:
    """OpenAI-compatible endpoint settings."""
    api_key: str
    base_url: str | None = None        # None means api.openai.com
    request_timeout_seconds: float = 60.0


@dataclass(frozen=True)
class ToolSettings:
    """Settings for the built-in tools."""
    working_directory: Path = field(default_factory=Path.cwd)
    timeout_seconds: float = 30.0
    fetch_max_chars: int = 20000

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ConfigError("tool timeout must be positive")


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

    Access via:
        config = get_config()
        config.agent.max_context_size
        config.provider.api_key
        config.tools.working_directory
    """
    agent: AgentConfig
    provider: ProviderConfig
    tools: ToolSettings
    log_level: str = "info"


def load_config() -> Config:
    """
    Load and validate configuration from the environment.

    Returns:
        Config: The validated configuration

    Raises:
        ConfigError: If required values are missing or invalid
    """
    load_dotenv()

    agent = AgentConfig(
        capable_model_id=_optional("GAMECODE_CAPABLE_MODEL", "gpt-4o"),
        fast_model_id=_optional("GAMECODE_FAST_MODEL", "gpt-4o-mini"),
        max_context_size=_optional_int("GAMECODE_MAX_CONTEXT_SIZE", 32000),
        max_tool_call_rounds_per_turn=_optional_int("GAMECODE_MAX_TOOL_ROUNDS", 5),
        retry=RetryPolicy(
            max_attempts=_optional_int("GAMECODE_RETRY_MAX_ATTEMPTS", 4),
            initial_backoff_seconds=_optional_float("GAMECODE_RETRY_INITIAL_BACKOFF", 1.0),
            max_backoff_seconds=_optional_float("GAMECODE_RETRY_MAX_BACKOFF", 30.0),
        ),
        min_trailing_messages=_optional_int("GAMECODE_MIN_TRAILING_MESSAGES", 4),
        concurrent_tools=_optional_bool("GAMECODE_CONCURRENT_TOOLS", True),
        round_delay_seconds=_optional_float("GAMECODE_ROUND_DELAY", 0.0),
    )

    return Config(
        agent=agent,
        provider=ProviderConfig(
            api_key=_required("OPENAI_API_KEY"),
            base_url=os.getenv("OPENAI_BASE_URL") or None,
            request_timeout_seconds=_optional_float("GAMECODE_REQUEST_TIMEOUT", 60.0),
        ),
        tools=ToolSettings(
            working_directory=Path(_optional("GAMECODE_WORKDIR", os.getcwd())).expanduser().resolve(),
            timeout_seconds=_optional_float("GAMECODE_TOOL_TIMEOUT", 30.0),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """Get the configuration, loading it on first access."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration so the next access reloads it."""
    global _config_instance
    _config_instance = None
