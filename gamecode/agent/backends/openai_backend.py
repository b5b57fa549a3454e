"""
OpenAI-Compatible Backend
=========================

Sends conversations to any endpoint that speaks the OpenAI chat
completions API (OpenAI itself, or a compatible gateway via base_url).

Tools are not passed through the provider's native function calling.
The model sees the tool catalogue in the system prompt and answers with
text directives, which keeps every provider on the same code path.

Message Mapping:
    USER         → {"role": "user"}
    ASSISTANT    → {"role": "assistant"}
    summary      → {"role": "system"} prefixed "Summary of previous conversation"
    TOOL_RESULT  → {"role": "user"} wrapped in a <tool_result> tag

Exception Mapping:
    openai.RateLimitError                             → RateLimitedError
    openai.APITimeoutError, openai.APIConnectionError → BackendTimeoutError
    openai.AuthenticationError, PermissionDeniedError → UnauthorizedError
    any other openai.APIError                         → ProviderError

The SDK's own retries are disabled; Backend.send() owns the retry policy.
"""

import openai
from openai import AsyncOpenAI

from gamecode.agent.backends import Backend, ModelResponse
from gamecode.agent.messages import ConversationContext, Message, Role
from gamecode.errors import (
    BackendTimeoutError,
    ProviderError,
    RateLimitedError,
    UnauthorizedError,
)
from gamecode.utils.config import ProviderConfig, RetryPolicy
from gamecode.utils.logger import Logger

logger = Logger("OpenAIBackend")


def to_openai_messages(context: ConversationContext) -> list[dict]:
    """
    Serialize a conversation snapshot for the chat completions API.

    Returns:
        List of message dicts, system prompt first
    """
    result = []
    if context.system_prompt:
        result.append({"role": "system", "content": context.system_prompt})

    for message in context.messages:
        result.append(_to_openai_message(message))
    return result


def _to_openai_message(message: Message) -> dict:
    if message.is_summary:
        return {"role": "system", "content": f"Summary of previous conversation:\n{message.content}"}
    if message.role is Role.TOOL_RESULT:
        return {
            "role": "user",
            "content": (
                f"<tool_result name=\"{message.tool_name}\" id=\"{message.tool_call_id}\">\n"
                f"{message.content}\n</tool_result>"
            ),
        }
    return {"role": message.role.value, "content": message.content}


class OpenAIBackend(Backend):
    """
    Backend for OpenAI-compatible chat completion endpoints.

    Example:
        backend = OpenAIBackend(config.provider, config.agent.retry)
        response = await backend.send(context, model=config.agent.capable_model_id)
    """

    name = "openai"

    def __init__(
        self,
        provider: ProviderConfig,
        retry_policy: RetryPolicy | None = None,
        client: AsyncOpenAI | None = None,
    ):
        """
        Args:
            provider: Endpoint, credentials and request timeout
            retry_policy: Backoff policy for transient failures
            client: Pre-built client (mainly for tests)
        """
        super().__init__(retry_policy)
        self.client = client or AsyncOpenAI(
            api_key=provider.api_key,
            base_url=provider.base_url,
            timeout=provider.request_timeout_seconds,
            max_retries=0,
        )
        logger.info(f"OpenAI backend ready ({provider.base_url or 'api.openai.com'})")

    async def _send_once(self, context: ConversationContext, model: str) -> ModelResponse:
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=to_openai_messages(context),
            )
        except openai.RateLimitError as e:
            raise RateLimitedError(str(e), self.name) from e
        except (openai.APITimeoutError, openai.APIConnectionError) as e:
            # APITimeoutError subclasses APIConnectionError; both are transient
            raise BackendTimeoutError(str(e), self.name) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise UnauthorizedError(str(e), self.name) from e
        except openai.APIStatusError as e:
            raise ProviderError(str(e), self.name, status_code=e.status_code) from e
        except openai.APIError as e:
            raise ProviderError(str(e), self.name) from e

        if not response.choices:
            raise ProviderError("Response contained no choices", self.name)

        choice = response.choices[0]
        usage = response.usage.model_dump() if response.usage is not None else None
        return ModelResponse(
            text=choice.message.content or "",
            stop_reason=choice.finish_reason,
            model=response.model or model,
            raw_usage=usage,
        )

    async def close(self) -> None:
        await self.client.close()
