"""
Tools System
============

Tools are the capabilities the model can invoke on the local
environment: reading and writing files, running commands, fetching URLs.

Each tool is described by a ToolSpec:
- name: unique, case-sensitive identifier the model uses in directives
- description: what the tool does (shown to the model)
- parameters: a pydantic model class describing the arguments
- execute: callable receiving the validated arguments model

How Tools Are Used:
1. Tools are registered once at startup into a ToolRegistry
2. The registry is frozen and shared read-only by every session
3. The model requests a tool with a directive in its reply
4. The executor validates the arguments and runs the tool
5. The ToolResult is folded back into the conversation

This module provides:
- ErrorKind and ToolResult for standardized outcomes
- ToolSpec for defining tools
- ToolRegistry for managing available tools
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from pydantic import BaseModel, ConfigDict

from gamecode.errors import ConfigError
from gamecode.utils.logger import Logger

logger = Logger("Tools")


class ErrorKind(str, Enum):
    """Why a tool call failed."""
    UNKNOWN_TOOL = "unknown_tool"
    INVALID_ARGUMENTS = "invalid_arguments"
    EXECUTION_ERROR = "execution_error"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class ToolResult:
    """
    Outcome of one tool call: Success(output) or Failure(error_kind, error).

    Tools usually build results with ToolResult.ok() / ToolResult.fail()
    and leave tool_call_id empty; the executor fills in the id of the
    call that produced it.

    Attributes:
        success: Whether the tool executed successfully
        output: The result text on success
        error_kind: Failure category when success is False
            (EXECUTION_ERROR if the tool left it out)
        error: Failure message when success is False
        tool_call_id: Id of the originating ToolCall
        tool_name: Name of the tool that was called
    """
    success: bool
    output: str = ""
    error_kind: ErrorKind | None = None
    error: str | None = None
    tool_call_id: str = ""
    tool_name: str = ""

    def __post_init__(self):
        if not self.success and self.error_kind is None:
            object.__setattr__(self, "error_kind", ErrorKind.EXECUTION_ERROR)

    @classmethod
    def ok(cls, output: str) -> "ToolResult":
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "ToolResult":
        return cls(success=False, error_kind=kind, error=message)

    def for_call(self, tool_call_id: str, tool_name: str) -> "ToolResult":
        """Return a copy bound to the given tool call."""
        return replace(self, tool_call_id=tool_call_id, tool_name=tool_name)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "tool_call_id": self.tool_call_id,
            "tool_name": self.tool_name,
            "success": self.success,
            "output": self.output,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error": self.error,
        }

    def to_message(self) -> str:
        """Format the outcome as text for the model."""
        if self.success:
            return self.output
        kind = self.error_kind or ErrorKind.EXECUTION_ERROR
        return f"Error ({kind.value}): {self.error or 'no details'}"


class ToolArguments(BaseModel):
    """
    Base class for tool argument models.

    Unknown keys are rejected so that a misspelled argument surfaces as
    INVALID_ARGUMENTS instead of being silently ignored.
    """
    model_config = ConfigDict(extra="forbid")


class NoArguments(ToolArguments):
    """Argument model for tools that take no arguments."""


ToolOutput = Union[ToolResult, str]
ToolFunction = Callable[[Any], Union[ToolOutput, Awaitable[ToolOutput]]]


@dataclass(frozen=True)
class ToolSpec:
    """
    Definition of a tool.

    Example:
        class ReadFileArgs(ToolArguments):
            path: str

        async def read_file(args: ReadFileArgs) -> ToolResult:
            ...
            return ToolResult.ok(text)

        spec = ToolSpec(
            name="read_file",
            description="Read the contents of a file",
            parameters=ReadFileArgs,
            execute=read_file,
        )

    execute may be a plain function or a coroutine function, and may
    return a ToolResult or a bare string (treated as success).
    """
    name: str
    description: str
    execute: ToolFunction
    parameters: type[BaseModel] = field(default=NoArguments)

    def json_schema(self) -> dict:
        """JSON schema of the arguments, as shown to the model."""
        schema = self.parameters.model_json_schema()
        schema.pop("title", None)
        return schema


class ToolRegistry:
    """
    Registry of available tools, keyed by name.

    The registry has a build phase and a read phase. Tools are registered
    during startup; freeze() then makes the registry read-only so it can
    be shared by reference between sessions without locking.

    Example:
        registry = ToolRegistry()
        registry.register(echo_spec)
        registry.register(read_file_spec)
        registry.freeze()

        spec = registry.lookup("read_file")
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._tools: dict[str, ToolSpec] = {}
        self._frozen = False

    def register(self, spec: ToolSpec) -> None:
        """
        Register a tool.

        Raises:
            ConfigError: If the name is already taken or the registry is frozen
        """
        if self._frozen:
            raise ConfigError(f"Cannot register '{spec.name}': registry is frozen")
        if not spec.name:
            raise ConfigError("Tool name must not be empty")
        if spec.name in self._tools:
            raise ConfigError(f"Tool '{spec.name}' is already registered")

        self._tools[spec.name] = spec
        logger.debug(f"Registered tool: {spec.name}")

    def freeze(self) -> "ToolRegistry":
        """End the build phase. Returns self for chaining."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, name: str) -> ToolSpec | None:
        """Get a tool by its exact name, or None if not registered."""
        return self._tools.get(name)

    def names(self) -> list[str]:
        """Names of all registered tools, in registration order."""
        return list(self._tools)

    def get_all(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def describe(self) -> str:
        """
        Build the tool catalogue included in the system prompt.

        Returns:
            One section per tool with its description and argument schema
        """
        sections = []
        for spec in self._tools.values():
            schema = json.dumps(spec.json_schema(), sort_keys=True)
            sections.append(f"- {spec.name}: {spec.description}\n  arguments schema: {schema}")
        return "\n".join(sections)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def build_default_registry(settings=None) -> ToolRegistry:
    """
    Create a frozen registry holding every built-in tool.

    Args:
        settings: ToolSettings for the built-in tools; defaults are used
            when omitted

    Returns:
        A frozen ToolRegistry
    """
    # Imported here: the tool modules import ToolSpec from this package.
    from gamecode.tools import basic, filesystem, network, process
    from gamecode.utils.config import ToolSettings

    settings = settings or ToolSettings()
    registry = ToolRegistry()
    for module in (basic, filesystem, process, network):
        module.register_tools(registry, settings)

    logger.info(f"Registered {len(registry)} tools")
    return registry.freeze()


__all__ = [
    "ErrorKind",
    "NoArguments",
    "ToolArguments",
    "ToolRegistry",
    "ToolResult",
    "ToolSpec",
    "build_default_registry",
]
