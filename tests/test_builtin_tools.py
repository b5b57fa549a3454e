"""
Tests for the built-in filesystem, process and network tools.
"""

import httpx
import pytest
from pydantic import ValidationError

from gamecode.agent.messages import ToolCall
from gamecode.agent.tools_executor import ToolExecutor
from gamecode.tools import ErrorKind, build_default_registry
from gamecode.tools.filesystem import resolve_path
from gamecode.tools.network import FetchUrlArgs, fetch_url
from gamecode.tools.process import check_command
from gamecode.utils.config import ToolSettings


@pytest.fixture
def executor(tmp_path) -> ToolExecutor:
    registry = build_default_registry(ToolSettings(working_directory=tmp_path, timeout_seconds=10))
    return ToolExecutor(registry, timeout_seconds=10)


async def _run(executor: ToolExecutor, name: str, **arguments):
    return await executor.execute(ToolCall(name=name, arguments=arguments))


class TestFilesystemTools:
    @pytest.mark.asyncio
    async def test_write_then_read(self, executor, tmp_path):
        written = await _run(executor, "write_file", path="notes/today.md", content="- buy milk")

        assert written.success
        assert written.output.startswith("Successfully wrote 10 characters")
        assert (tmp_path / "notes" / "today.md").read_text() == "- buy milk"

        read = await _run(executor, "read_file", path="notes/today.md")
        assert read.output == "- buy milk"

    @pytest.mark.asyncio
    async def test_read_missing_file(self, executor):
        result = await _run(executor, "read_file", path="missing.txt")

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert result.error.startswith("Error reading file")

    @pytest.mark.asyncio
    async def test_list_directory(self, executor, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "b.txt").write_text("b")
        (tmp_path / "a.txt").write_text("a")

        result = await _run(executor, "list_directory")

        lines = result.output.splitlines()
        assert lines[0] == f"Contents of {tmp_path}:"
        assert lines[1:] == ["a.txt (file)", "b.txt (file)", "src (dir)"]

    @pytest.mark.asyncio
    async def test_list_missing_directory(self, executor):
        result = await _run(executor, "list_directory", path="nowhere")
        assert result.error.startswith("Directory does not exist")

    def test_resolve_path(self, tmp_path):
        assert resolve_path("'a.txt'", tmp_path) == tmp_path / "a.txt"
        assert resolve_path(str(tmp_path / "b"), tmp_path.parent) == tmp_path / "b"


class TestExecuteCommand:
    def test_allow_list(self):
        assert check_command(["ls", "-la"]) is None
        assert "not allowed" in check_command(["rm", "-rf", "/"])
        assert check_command([]) == "Empty command"

    @pytest.mark.parametrize("argument", ["|", "&&", ";rm", "$(whoami)", "`id`", "> out.txt"])
    def test_unsafe_arguments(self, argument):
        assert "unsafe" in check_command(["echo", argument])

    @pytest.mark.asyncio
    async def test_runs_in_working_directory(self, executor, tmp_path):
        (tmp_path / "marker.txt").write_text("x")

        result = await _run(executor, "execute_command", command="ls")

        assert result.success
        assert "marker.txt" in result.output

    @pytest.mark.asyncio
    async def test_echo(self, executor):
        result = await _run(executor, "execute_command", command="echo 'hello world'")
        assert result.output == "hello world\n"

    @pytest.mark.asyncio
    async def test_disallowed_command(self, executor):
        result = await _run(executor, "execute_command", command="rm -rf .")

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert "not allowed" in result.error

    @pytest.mark.asyncio
    async def test_unbalanced_quotes(self, executor):
        result = await _run(executor, "execute_command", command="echo 'oops")
        assert result.error_kind is ErrorKind.INVALID_ARGUMENTS

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, executor):
        result = await _run(executor, "execute_command", command="ls does-not-exist")

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert "exited with status" in result.error


def _transport(status: int = 200, text: str = "hello world") -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text=text)

    return httpx.MockTransport(handler)


class TestFetchUrl:
    @pytest.mark.asyncio
    async def test_success(self):
        result = await fetch_url(FetchUrlArgs(url="https://example.test/"), transport=_transport())

        assert result.success
        assert result.output == "HTTP 200\nhello world"

    @pytest.mark.asyncio
    async def test_truncation(self):
        args = FetchUrlArgs(url="https://example.test/", max_chars=5)
        result = await fetch_url(args, transport=_transport(text="x" * 12))

        assert result.output == "HTTP 200\nxxxxx\n... [truncated 7 characters]"

    @pytest.mark.asyncio
    async def test_error_status(self):
        result = await fetch_url(FetchUrlArgs(url="https://example.test/"), transport=_transport(404, "not found"))

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert result.error.startswith("HTTP 404")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await fetch_url(FetchUrlArgs(url="https://example.test/"), transport=httpx.MockTransport(handler))

        assert result.error_kind is ErrorKind.EXECUTION_ERROR
        assert "connection refused" in result.error

    def test_rejects_other_schemes(self):
        with pytest.raises(ValidationError):
            FetchUrlArgs(url="file:///etc/passwd")
