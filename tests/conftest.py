"""
Pytest Configuration and Fixtures
"""

import asyncio
from typing import Callable, Iterable, Union

import pytest
from pydantic import Field

from gamecode.agent.backends import SUMMARY_SYSTEM_PROMPT, Backend, ModelResponse
from gamecode.agent.messages import ConversationContext
from gamecode.tools import ToolArguments, ToolRegistry, ToolResult, ToolSpec
from gamecode.tools.basic import echo_tool
from gamecode.utils.config import AgentConfig, RetryPolicy

Reply = Union[str, Exception, Callable[[ConversationContext, str], str]]


def no_wait_retry(max_attempts: int = 3) -> RetryPolicy:
    return RetryPolicy(max_attempts=max_attempts, initial_backoff_seconds=0, max_backoff_seconds=0)


class ScriptedBackend(Backend):
    """
    Backend stub that replays a script of replies.

    Each reply is a string, an exception to raise, or a callable
    receiving (context, model). The last reply repeats once the script
    runs out. Summarization requests are answered separately.
    """

    name = "scripted"

    def __init__(
        self,
        replies: Iterable[Reply] = ("Done.",),
        summary: Reply = "Earlier: the user asked about files.",
        retry_policy: RetryPolicy | None = None,
    ):
        super().__init__(retry_policy or no_wait_retry())
        self.replies = list(replies)
        self.summary = summary
        self.requests: list[tuple[ConversationContext, str]] = []
        self.summary_requests: list[tuple[ConversationContext, str]] = []

    async def _send_once(self, context: ConversationContext, model: str) -> ModelResponse:
        if context.system_prompt == SUMMARY_SYSTEM_PROMPT:
            self.summary_requests.append((context, model))
            reply = self.summary
        else:
            self.requests.append((context, model))
            reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]

        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(context, model)
        return ModelResponse(text=reply, stop_reason="stop", model=model)


class WaitArgs(ToolArguments):
    label: str
    seconds: float = Field(default=0.0, ge=0)


def make_wait_tool(completed: list[str]) -> ToolSpec:
    """A tool that sleeps, then records its label in completion order."""
    async def _wait(args: WaitArgs) -> ToolResult:
        await asyncio.sleep(args.seconds)
        completed.append(args.label)
        return ToolResult.ok(f"waited:{args.label}")

    return ToolSpec(name="wait", description="Sleep then report", parameters=WaitArgs, execute=_wait)


def directive(name: str, body: str = "{}") -> str:
    return f'<tool_call name="{name}">{body}</tool_call>'


@pytest.fixture
def agent_config() -> AgentConfig:
    return AgentConfig(
        capable_model_id="capable-model",
        fast_model_id="fast-model",
        max_context_size=4000,
        max_tool_call_rounds_per_turn=3,
        retry=no_wait_retry(),
        min_trailing_messages=2,
    )


@pytest.fixture
def registry() -> ToolRegistry:
    """A registry holding only the echo tool (not yet frozen)."""
    registry = ToolRegistry()
    registry.register(echo_tool)
    return registry
