"""
Agent Core
==========

The AgentManager runs one conversation session: it owns the history,
talks to the model backend and dispatches tool calls.

Turn State Machine:

    AWAITING_USER_INPUT
         │ process_turn(user_input)
         ▼
    REQUESTING_MODEL ◄──────────────┐
         │                          │
         ├── no tool calls ──► TURN_COMPLETE
         │                          │
         ▼                          │
    EXECUTING_TOOLS ── results ─────┘
         │
         └── round limit reached ──► TURN_COMPLETE (aborted: TOO_MANY_ROUNDS)

Each pass through REQUESTING_MODEL and EXECUTING_TOOLS is one round. The
model's output is untrusted and may never stop asking for tools, so a
turn allows at most max_tool_call_rounds_per_turn rounds.

Turn Boundaries:
    History compression only happens when a turn starts (after the user
    message is appended) and when it ends. Mid-turn, the model is still
    reacting to tool output and the history is left alone.

Failure Handling:
    - Tool failures are folded into the history as tool results.
    - Backend failures that survive the retry policy propagate to the
      caller as BackendError. The history up to that point is kept.
    - Running out of rounds and cancellation end the turn normally with
      an ABORTED or CANCELLED status.
"""

import asyncio
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Sequence

from gamecode.agent.backends import Backend
from gamecode.agent.context import CompressionOutcome, ContextManager
from gamecode.agent.events import (
    ContextCompressed,
    EventBus,
    ToolCompleted,
    ToolDispatched,
    TurnCompleted,
    TurnStarted,
)
from gamecode.agent.messages import Message, ToolCall
from gamecode.agent.parser import DIRECTIVE_INSTRUCTIONS, ToolCallParser
from gamecode.agent.tools_executor import ToolExecutor
from gamecode.errors import BackendError
from gamecode.tools import ToolRegistry, ToolResult
from gamecode.utils.config import AgentConfig
from gamecode.utils.logger import Logger

logger = Logger("Agent")


class TurnState(str, Enum):
    AWAITING_USER_INPUT = "awaiting_user_input"
    REQUESTING_MODEL = "requesting_model"
    EXECUTING_TOOLS = "executing_tools"
    TURN_COMPLETE = "turn_complete"


class TurnStatus(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


class AbortReason(str, Enum):
    TOO_MANY_ROUNDS = "too_many_rounds"


@dataclass(frozen=True)
class TurnResult:
    """
    Outcome of one turn.

    Attributes:
        status: How the turn ended
        message: The final assistant text (directives removed when the
            turn did not complete normally)
        tool_results: Every tool result of the turn, in execution order
        rounds: Number of model requests made
        degraded: History had to be truncated because summarizing failed
        abort_reason: Set when status is ABORTED
    """
    status: TurnStatus
    message: str
    tool_results: tuple[ToolResult, ...] = field(default_factory=tuple)
    rounds: int = 0
    degraded: bool = False
    abort_reason: AbortReason | None = None

    @property
    def completed(self) -> bool:
        return self.status is TurnStatus.COMPLETED

    @property
    def aborted(self) -> bool:
        return self.status is TurnStatus.ABORTED


class AgentManager:
    """
    Orchestrates one agent session.

    Sessions are independent; several AgentManagers may share one frozen
    ToolRegistry and one Backend and run concurrently.

    Example:
        registry = build_default_registry(config.tools)
        backend = OpenAIBackend(config.provider, config.agent.retry)
        agent = AgentManager(config.agent, backend, registry)

        result = await agent.process_turn("List the files in src/")
        print(result.message)
    """

    BASE_SYSTEM_PROMPT = """You are a helpful assistant with access to tools that can run on the user's computer.
Respond to the user's queries directly when possible, and use tools when appropriate to complete tasks.

{directive_instructions}

Available tools:
{tool_catalogue}"""

    def __init__(
        self,
        config: AgentConfig,
        backend: Backend,
        registry: ToolRegistry,
        system_prompt: str | None = None,
        events: EventBus | None = None,
        tool_timeout_seconds: float | None = 30.0,
    ):
        """
        Args:
            config: Session settings
            backend: Model backend (shared safely between sessions)
            registry: Tool registry; frozen here if the caller has not
            system_prompt: Override for the generated system prompt
            events: Bus to publish turn events on
            tool_timeout_seconds: Per-tool time limit
        """
        self.config = config
        self.backend = backend
        self.registry = registry.freeze()
        self.events = events or EventBus()

        self.parser = ToolCallParser(registry.names())
        self.tool_executor = ToolExecutor(registry, timeout_seconds=tool_timeout_seconds)
        self.context = ContextManager(
            max_context_size=config.max_context_size,
            min_trailing_messages=config.min_trailing_messages,
            system_prompt=system_prompt if system_prompt is not None else self.build_system_prompt(registry),
        )

        self.state = TurnState.AWAITING_USER_INPUT
        self._cancel_requested = False
        self._turn_lock = asyncio.Lock()

        logger.info(
            f"Agent initialized with model: {config.capable_model_id}",
            {"fast_model": config.fast_model_id, "tools": registry.names()},
        )

    @classmethod
    def build_system_prompt(cls, registry: ToolRegistry) -> str:
        return cls.BASE_SYSTEM_PROMPT.format(
            directive_instructions=DIRECTIVE_INSTRUCTIONS,
            tool_catalogue=registry.describe() or "(none)",
        )

    @property
    def tool_names(self) -> list[str]:
        return self.registry.names()

    # ==========================================================================
    # Turn Processing
    # ==========================================================================

    async def process_turn(self, user_input: str) -> TurnResult:
        """
        Run one turn: from the user's message to the final answer.

        Args:
            user_input: The user's message

        Returns:
            TurnResult describing how the turn ended

        Raises:
            BackendError: If the backend fails after retries
        """
        async with self._turn_lock:
            self._cancel_requested = False
            logger.info(f"Processing input: {user_input[:50]}...")
            await self.events.emit(TurnStarted(user_input))

            self.context.append(Message.user(user_input))
            degraded = await self._compress_history()

            try:
                result = await self._run_rounds()
            except BackendError:
                logger.warning("Turn failed; history up to the failure is kept")
                self._set_state(TurnState.AWAITING_USER_INPUT)
                raise

            degraded = await self._compress_history() or degraded
            if degraded:
                result = replace(result, degraded=True)

            self._set_state(TurnState.TURN_COMPLETE)
            logger.info(
                f"Turn {result.status.value} after {result.rounds} rounds",
                {"tool_results": len(result.tool_results), "degraded": result.degraded},
            )
            await self.events.emit(TurnCompleted(result))
            self._set_state(TurnState.AWAITING_USER_INPUT)
            return result

    async def _run_rounds(self) -> TurnResult:
        max_rounds = self.config.max_tool_call_rounds_per_turn
        tool_results: list[ToolResult] = []
        rounds = 0
        last_text = ""

        while True:
            if self._cancel_requested:
                logger.info("Turn cancelled between rounds")
                return TurnResult(
                    status=TurnStatus.CANCELLED,
                    message=self.parser.strip_directives(last_text),
                    tool_results=tuple(tool_results),
                    rounds=rounds,
                )

            if rounds >= max_rounds:
                logger.warning(f"Reached max tool rounds ({max_rounds}), aborting turn")
                return TurnResult(
                    status=TurnStatus.ABORTED,
                    message=self.parser.strip_directives(last_text),
                    tool_results=tuple(tool_results),
                    rounds=rounds,
                    abort_reason=AbortReason.TOO_MANY_ROUNDS,
                )

            if rounds and self.config.round_delay_seconds:
                await asyncio.sleep(self.config.round_delay_seconds)

            rounds += 1
            self._set_state(TurnState.REQUESTING_MODEL)
            logger.debug(f"Round {rounds}/{max_rounds}")

            response = await self.backend.send(self.context.snapshot(), self.config.capable_model_id)
            last_text = response.text
            self.context.append(Message.assistant(response.text))

            calls = self.parser.extract(response.text)
            if not calls:
                return TurnResult(
                    status=TurnStatus.COMPLETED,
                    message=response.text,
                    tool_results=tuple(tool_results),
                    rounds=rounds,
                )

            if self._cancel_requested:
                # Nothing dispatched yet, so nothing to wait for
                logger.info(f"Turn cancelled before dispatching {len(calls)} tool calls")
                continue

            self._set_state(TurnState.EXECUTING_TOOLS)
            results = await self.execute_tools(calls)
            tool_results.extend(results)

    async def execute_tools(self, calls: Sequence[ToolCall]) -> list[ToolResult]:
        """
        Execute one round of tool calls and fold the results into the history.

        Results are appended in the order the calls were extracted, however
        the concurrent executions finish.
        """
        async def on_dispatch(call: ToolCall) -> None:
            await self.events.emit(ToolDispatched(call.name, dict(call.arguments), call.id))

        async def on_complete(call: ToolCall, result: ToolResult) -> None:
            await self.events.emit(ToolCompleted(call.name, result))

        results = await self.tool_executor.execute_all(
            list(calls),
            concurrent=self.config.concurrent_tools,
            on_dispatch=on_dispatch,
            on_complete=on_complete,
        )

        for result in results:
            self.context.append(Message.tool_result(result.to_message(), result.tool_call_id, result.tool_name))
        return results

    async def _compress_history(self) -> bool:
        """Compress at a turn boundary. Returns True if degraded."""
        outcome: CompressionOutcome = await self.context.compress_if_needed(self._summarize)
        if outcome.compressed:
            await self.events.emit(ContextCompressed(outcome.removed, outcome.size_after, outcome.degraded))
        return outcome.degraded

    async def _summarize(self, messages: Sequence[Message]) -> str:
        return await self.backend.summarize(messages, self.config.fast_model_id)

    # ==========================================================================
    # Session Control
    # ==========================================================================

    def cancel(self) -> None:
        """
        Ask the running turn to stop at the next round boundary.

        Tool calls already dispatched finish and their results are kept.
        """
        self._cancel_requested = True

    def clear_history(self) -> None:
        """Start the conversation over."""
        self.context.clear()

    def _set_state(self, state: TurnState) -> None:
        if state is not self.state:
            logger.debug(f"State {self.state.value} -> {state.value}")
            self.state = state
