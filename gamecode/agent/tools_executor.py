"""
Tool Executor
=============

Runs the tool calls extracted from a model reply.

For each call the executor:
1. Resolves the tool in the registry
2. Validates the arguments against the tool's pydantic model
3. Runs the tool inside a failure boundary, with a timeout
4. Returns a ToolResult bound to the call's id

Failure Isolation:
    Nothing a tool does can escape as an exception. Unknown names,
    malformed directives, invalid arguments, raised exceptions and
    timeouts all become failed ToolResults, which are folded into the
    conversation so the model can react. One call failing never affects
    its siblings.

Timeouts:
    A coroutine tool that times out is cancelled. A synchronous tool runs
    in a worker thread, which cannot be interrupted: the call is reported
    as failed, but the thread keeps going and its side effects (a file
    write, say) may still happen afterwards. The failure message says so.

Ordering:
    Calls from one reply may run concurrently, but execute_all always
    returns results in the order the calls were given, independent of
    which tool finished first.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from gamecode.agent.messages import ToolCall
from gamecode.tools import ErrorKind, ToolRegistry, ToolResult, ToolSpec
from gamecode.utils.logger import Logger

logger = Logger("ToolExecutor")


def format_validation_error(error: ValidationError) -> str:
    """Render a pydantic ValidationError as one line per problem."""
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


def _runs_in_thread(spec: ToolSpec) -> bool:
    return not inspect.iscoroutinefunction(spec.execute)


class ToolExecutor:
    """
    Executes tool calls against a registry.

    Example:
        executor = ToolExecutor(registry, timeout_seconds=30)

        results = await executor.execute_all(calls)
        for result in results:
            context.append(Message.tool_result(result.to_message(), ...))
    """

    def __init__(self, registry: ToolRegistry, timeout_seconds: float | None = 30.0):
        """
        Args:
            registry: Registry to resolve tool names in
            timeout_seconds: Per-call time limit; None disables it
        """
        self.registry = registry
        self.timeout_seconds = timeout_seconds

    async def execute(self, call: ToolCall) -> ToolResult:
        """
        Execute a single tool call. Never raises (except on cancellation).

        Returns:
            ToolResult carrying call.id and call.name
        """
        spec = self.registry.lookup(call.name)
        if spec is None:
            logger.warning(f"Unknown tool requested: {call.name}")
            return ToolResult.fail(
                ErrorKind.UNKNOWN_TOOL,
                f"Tool '{call.name}' not found. Available tools: {', '.join(self.registry.names())}"
            ).for_call(call.id, call.name)

        if call.is_malformed:
            return ToolResult.fail(
                ErrorKind.PARSE_ERROR,
                f"Could not parse arguments for '{call.name}': {call.parse_error}. Directive was: {call.raw}"
            ).for_call(call.id, call.name)

        try:
            arguments = spec.parameters.model_validate(call.arguments)
        except ValidationError as e:
            logger.warning(f"Invalid arguments for {call.name}")
            return ToolResult.fail(
                ErrorKind.INVALID_ARGUMENTS,
                f"Invalid arguments for '{call.name}': {format_validation_error(e)}"
            ).for_call(call.id, call.name)

        logger.info(f"Executing tool: {call.name}")
        try:
            output = await self._invoke(spec, arguments)
        except asyncio.TimeoutError:
            logger.warning(f"Tool {call.name} timed out after {self.timeout_seconds}s")
            message = f"Tool '{call.name}' timed out after {self.timeout_seconds} seconds"
            if _runs_in_thread(spec):
                message += "; it could not be stopped and may still complete in the background"
            result = ToolResult.fail(ErrorKind.EXECUTION_ERROR, message)
        except Exception as e:
            logger.error(f"Tool execution failed: {call.name}", e)
            result = ToolResult.fail(ErrorKind.EXECUTION_ERROR, f"{type(e).__name__}: {e}")
        else:
            result = self._normalize(call, output)

        if result.success:
            logger.debug(f"Tool {call.name} succeeded")
        else:
            logger.warning(f"Tool {call.name} failed: {result.error}")

        return result.for_call(call.id, call.name)

    async def _invoke(self, spec: ToolSpec, arguments: Any) -> Any:
        """Run the tool, in a worker thread if it is synchronous."""
        if _runs_in_thread(spec):
            pending = self._run_sync(spec, arguments)
        else:
            pending = spec.execute(arguments)
        return await asyncio.wait_for(pending, timeout=self.timeout_seconds)

    @staticmethod
    async def _run_sync(spec: ToolSpec, arguments: Any) -> Any:
        output = await asyncio.to_thread(spec.execute, arguments)
        if inspect.isawaitable(output):
            output = await output
        return output

    @staticmethod
    def _normalize(call: ToolCall, output: Any) -> ToolResult:
        if isinstance(output, ToolResult):
            if output.success and not isinstance(output.output, str):
                return ToolResult.fail(
                    ErrorKind.EXECUTION_ERROR,
                    f"Tool '{call.name}' returned non-text output of type {type(output.output).__name__}"
                )
            return output
        if isinstance(output, str):
            return ToolResult.ok(output)
        return ToolResult.fail(
            ErrorKind.EXECUTION_ERROR,
            f"Tool '{call.name}' returned {type(output).__name__}, expected ToolResult or str"
        )

    async def execute_all(
        self,
        calls: list[ToolCall],
        concurrent: bool = True,
        on_dispatch: Callable[[ToolCall], Awaitable[None]] | None = None,
        on_complete: Callable[[ToolCall, ToolResult], Awaitable[None]] | None = None,
    ) -> list[ToolResult]:
        """
        Execute several tool calls.

        Args:
            calls: Calls in extraction order
            concurrent: Run the calls concurrently instead of one by one
            on_dispatch: Awaited just before each call starts
            on_complete: Awaited as soon as each call finishes

        Returns:
            One ToolResult per call, in the same order as calls
        """
        async def run(call: ToolCall) -> ToolResult:
            if on_dispatch:
                await on_dispatch(call)
            result = await self.execute(call)
            if on_complete:
                await on_complete(call, result)
            return result

        if not concurrent:
            return [await run(call) for call in calls]

        # gather() returns results in argument order, not completion order
        results = await asyncio.gather(*(run(call) for call in calls))
        return list(results)

    def get_available_tools(self) -> list[str]:
        return self.registry.names()

    def has_tool(self, name: str) -> bool:
        return name in self.registry
