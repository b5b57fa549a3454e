"""
Basic Tools
===========

Tools with no side effects. echo is mostly useful for checking that a
model follows the directive format, and as a fixture in tests.
"""

from pydantic import Field

from gamecode.tools import ToolArguments, ToolResult, ToolSpec


class EchoArgs(ToolArguments):
    text: str = Field(description="The text to echo back")


def _echo(args: EchoArgs) -> ToolResult:
    """Return the input text unchanged."""
    return ToolResult.ok(args.text)


echo_tool = ToolSpec(
    name="echo",
    description="Echoes back the input text",
    parameters=EchoArgs,
    execute=_echo,
)


def register_tools(registry, settings) -> None:
    registry.register(echo_tool)
