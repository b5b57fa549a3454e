"""
Model Backends
==============

A backend turns a conversation snapshot into a model reply:

    response = await backend.send(context, model="gpt-4o")

The model is chosen by the caller on every request. The agent asks for
its capable model on reasoning turns and its fast model for summaries;
the backend never picks one on its own.

Error Contract:
    send() raises one of four BackendError kinds so the retry policy can
    tell them apart:

    - RateLimitedError     retried with backoff
    - BackendTimeoutError  retried with backoff
    - UnauthorizedError    raised immediately
    - ProviderError        raised immediately (including bad requests)

Retry Loop:
    attempt 1 ──fails transiently──► wait initial_backoff
    attempt 2 ──fails transiently──► wait initial_backoff * multiplier
    ...
    attempt max_attempts ──fails──► original error re-raised

Concrete providers subclass Backend and implement _send_once(); the
retry loop and logging live here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Sequence

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gamecode.agent.messages import ConversationContext, Message, render_transcript
from gamecode.errors import BackendError, BackendTimeoutError, RateLimitedError
from gamecode.utils.config import RetryPolicy
from gamecode.utils.logger import Logger

logger = Logger("Backend")

SUMMARY_SYSTEM_PROMPT = (
    "You compress conversation history for an AI assistant that uses tools. "
    "Keep every fact, file name, decision and open task the assistant may need later. "
    "Drop pleasantries and repetition."
)

SUMMARY_REQUEST = (
    "Please summarize the following conversation concisely while preserving "
    "all important information:\n\n{transcript}"
)


@dataclass(frozen=True)
class ModelResponse:
    """
    A reply from the model.

    Attributes:
        text: The reply text, possibly containing tool directives
        stop_reason: Why generation stopped, as reported by the provider
        model: The model that produced the reply
        raw_usage: Provider token usage, when reported
    """
    text: str
    stop_reason: str | None = None
    model: str = ""
    raw_usage: dict[str, Any] | None = field(default=None)


class Backend(ABC):
    """
    Base class for model backends.

    Subclasses implement _send_once(), which performs one request and
    raises a BackendError subclass on failure.

    Example:
        class MyBackend(Backend):
            name = "my-provider"

            async def _send_once(self, context, model):
                ...
                return ModelResponse(text=reply, stop_reason="stop", model=model)
    """

    name = "backend"

    def __init__(self, retry_policy: RetryPolicy | None = None):
        self.retry_policy = retry_policy or RetryPolicy()

    @abstractmethod
    async def _send_once(self, context: ConversationContext, model: str) -> ModelResponse:
        """Perform a single request without retrying."""

    async def send(self, context: ConversationContext, model: str) -> ModelResponse:
        """
        Send the conversation to the model, retrying transient failures.

        Args:
            context: Snapshot of the conversation
            model: Model identifier to use for this request

        Returns:
            The model's reply

        Raises:
            BackendError: When the request fails for good
        """
        policy = self.retry_policy
        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_exponential(
                multiplier=policy.initial_backoff_seconds,
                exp_base=policy.multiplier,
                max=policy.max_backoff_seconds,
            ),
            retry=retry_if_exception_type((RateLimitedError, BackendTimeoutError)),
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            response = await retrying(self._send_once, context, model)
        except BackendError as e:
            logger.error(f"Request to {model} failed", e)
            raise

        logger.debug(f"Received {len(response.text)} chars from {model}", {"stop_reason": response.stop_reason})
        return response

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"{self.name} request failed, retrying "
            f"(attempt {retry_state.attempt_number}/{self.retry_policy.max_attempts}, "
            f"backoff {delay:.2f}s)",
            {"error_type": type(error).__name__, "error_message": str(error)},
        )

    async def summarize(self, messages: Sequence[Message], model: str) -> str:
        """
        Ask the model for a summary of a slice of history.

        Raises:
            BackendError: If the request fails after retries
        """
        request = Message.user(SUMMARY_REQUEST.format(transcript=render_transcript(messages)))
        context = ConversationContext(
            system_prompt=SUMMARY_SYSTEM_PROMPT,
            messages=(request,),
            size=request.size,
        )
        response = await self.send(context, model)
        return response.text.strip()


__all__ = ["Backend", "ModelResponse"]
