"""
Error Taxonomy
==============

Exceptions raised by the orchestration core.

Only two families ever cross a public boundary as exceptions:

- ConfigError: bad configuration or a duplicate tool registration.
  Raised at startup and never recovered.
- BackendError: the model backend failed. Transient kinds are retried
  by the backend; whatever is left after retries reaches the caller as a
  turn-level failure.

Tool failures are never raised. The executor converts them into
ToolResult failures that are folded back into the conversation.
"""


class GamecodeError(Exception):
    """Base class for all errors raised by gamecode."""


class ConfigError(GamecodeError):
    """Invalid configuration or tool registry setup."""


class BackendError(GamecodeError):
    """
    A request to the model backend failed.

    Attributes:
        provider: Name of the backend that raised the error
        retryable: Whether the retry policy may try again
    """

    retryable = False

    def __init__(self, message: str, provider: str = "backend"):
        super().__init__(message)
        self.provider = provider


class RateLimitedError(BackendError):
    """The provider throttled the request."""

    retryable = True


class BackendTimeoutError(BackendError):
    """The request timed out or the connection dropped."""

    retryable = True


class UnauthorizedError(BackendError):
    """Credentials were rejected. Never retried."""


class ProviderError(BackendError):
    """Any other provider failure, including malformed requests."""

    def __init__(self, message: str, provider: str = "backend", status_code: int | None = None):
        super().__init__(message, provider)
        self.status_code = status_code


__all__ = [
    "GamecodeError",
    "ConfigError",
    "BackendError",
    "RateLimitedError",
    "BackendTimeoutError",
    "UnauthorizedError",
    "ProviderError",
]
