"""
Tests for ToolExecutor: failure isolation, validation, timeouts and ordering.
"""

import asyncio
import time

import pytest

from gamecode.agent.messages import ToolCall
from gamecode.agent.tools_executor import ToolExecutor
from gamecode.tools import ErrorKind, ToolRegistry, ToolResult, ToolSpec
from gamecode.tools.basic import echo_tool

from tests.conftest import make_wait_tool


def _boom(args):
    raise RuntimeError("disk on fire")


async def _slow(args):
    await asyncio.sleep(5)
    return "never"


def _wrong_type(args):
    return 42


def _kindless_failure(args):
    return ToolResult(success=False, error="boom")


def _missing_output(args):
    return ToolResult(success=True, output=None)


def _blocking(args):
    time.sleep(0.5)
    return "finished late"


@pytest.fixture
def executor() -> ToolExecutor:
    registry = ToolRegistry()
    registry.register(echo_tool)
    registry.register(ToolSpec(name="boom", description="Always raises", execute=_boom))
    registry.register(ToolSpec(name="slow", description="Sleeps too long", execute=_slow))
    registry.register(ToolSpec(name="wrong_type", description="Returns an int", execute=_wrong_type))
    registry.register(ToolSpec(name="kindless", description="Fails without a kind", execute=_kindless_failure))
    registry.register(ToolSpec(name="missing_output", description="Succeeds with no text", execute=_missing_output))
    registry.register(ToolSpec(name="blocking", description="Blocks a thread", execute=_blocking))
    return ToolExecutor(registry.freeze(), timeout_seconds=0.2)


class TestExecute:
    @pytest.mark.asyncio
    async def test_success_is_bound_to_call(self, executor):
        call = ToolCall(name="echo", arguments={"text": "hello"})
        result = await executor.execute(call)

        assert result.success
        assert result.output == "hello"
        assert result.tool_call_id == call.id
        assert result.tool_name == "echo"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, executor):
        result = await executor.execute(ToolCall(name="nope"))

        assert result.error_kind is ErrorKind.UNKNOWN_TOOL
        assert "echo" in result.error

    @pytest.mark.asyncio
    async def test_unknown_tool_reported_before_parse_error(self, executor):
        result = await executor.execute(ToolCall(name="nope", parse_error="invalid JSON"))
        assert result.error_kind is ErrorKind.UNKNOWN_TOOL

    @pytest.mark.asyncio
    async def test_malformed_call(self, executor):
        result = await executor.execute(ToolCall(name="echo", parse_error="invalid JSON: oops"))

        assert result.error_kind is ErrorKind.PARSE_ERROR
        assert "invalid JSON: oops" in result.error

    @pytest.mark.asyncio
    async def test_missing_argument(self, executor):
        result = await executor.execute(ToolCall(name="echo", arguments={}))

        assert result.error_kind is ErrorKind.INVALID_ARGUMENTS
        assert "text" in result.error

    @pytest.mark.asyncio
    async def test_unexpected_argument(self, executor):
        result = await executor.execute(ToolCall(name="echo", arguments={"text": "a", "loud": True}))
        assert result.error_kind is ErrorKind.INVALID_ARGUMENTS

    @pytest.mark.asyncio
    async def test_raised_exception_is_contained(self, executor):
        result = await executor.execute(ToolCall(name="boom"))

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert "disk on fire" in result.error

    @pytest.mark.asyncio
    async def test_timeout(self, executor):
        result = await executor.execute(ToolCall(name="slow"))

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_non_string_output_is_an_error(self, executor):
        result = await executor.execute(ToolCall(name="wrong_type"))

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert "int" in result.error

    @pytest.mark.asyncio
    async def test_failure_without_kind_becomes_execution_error(self, executor):
        result = await executor.execute(ToolCall(name="kindless"))

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert result.to_message() == "Error (execution_error): boom"

    @pytest.mark.asyncio
    async def test_success_without_text_is_an_error(self, executor):
        result = await executor.execute(ToolCall(name="missing_output"))

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert "NoneType" in result.error

    @pytest.mark.asyncio
    async def test_async_timeout_does_not_warn_about_background_work(self, executor):
        result = await executor.execute(ToolCall(name="slow"))
        assert "background" not in result.error

    @pytest.mark.asyncio
    async def test_sync_timeout_says_work_may_continue(self, executor):
        result = await executor.execute(ToolCall(name="blocking"))

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert "timed out" in result.error
        assert "may still complete in the background" in result.error

    def test_introspection(self, executor):
        assert executor.has_tool("echo")
        assert not executor.has_tool("nope")
        assert executor.get_available_tools()[0] == "echo"


class TestExecuteAll:
    @pytest.mark.asyncio
    async def test_failures_do_not_affect_siblings(self, executor):
        calls = [
            ToolCall(name="nope"),
            ToolCall(name="echo", arguments={"text": "still here"}),
            ToolCall(name="boom"),
        ]
        results = await executor.execute_all(calls)

        assert [r.success for r in results] == [False, True, False]
        assert results[1].output == "still here"
        assert [r.tool_call_id for r in results] == [c.id for c in calls]

    @pytest.mark.asyncio
    async def test_results_follow_call_order_not_completion_order(self):
        completed: list[str] = []
        registry = ToolRegistry()
        registry.register(make_wait_tool(completed))
        executor = ToolExecutor(registry.freeze())

        calls = [
            ToolCall(name="wait", arguments={"label": "a", "seconds": 0.1}),
            ToolCall(name="wait", arguments={"label": "b", "seconds": 0}),
            ToolCall(name="wait", arguments={"label": "c", "seconds": 0.05}),
        ]
        results = await executor.execute_all(calls, concurrent=True)

        assert completed == ["b", "c", "a"]
        assert [r.output for r in results] == ["waited:a", "waited:b", "waited:c"]

    @pytest.mark.asyncio
    async def test_sequential_mode(self):
        completed: list[str] = []
        registry = ToolRegistry()
        registry.register(make_wait_tool(completed))
        executor = ToolExecutor(registry.freeze())

        calls = [
            ToolCall(name="wait", arguments={"label": "a", "seconds": 0.05}),
            ToolCall(name="wait", arguments={"label": "b", "seconds": 0}),
        ]
        await executor.execute_all(calls, concurrent=False)

        assert completed == ["a", "b"]

    @pytest.mark.asyncio
    async def test_hooks_are_called(self, executor):
        dispatched: list[str] = []
        finished: list[ToolResult] = []

        async def on_dispatch(call):
            dispatched.append(call.name)

        async def on_complete(call, result):
            finished.append(result)

        await executor.execute_all(
            [ToolCall(name="echo", arguments={"text": "x"}), ToolCall(name="boom")],
            on_dispatch=on_dispatch,
            on_complete=on_complete,
        )

        assert sorted(dispatched) == ["boom", "echo"]
        assert len(finished) == 2

    @pytest.mark.asyncio
    async def test_empty(self, executor):
        assert await executor.execute_all([]) == []
