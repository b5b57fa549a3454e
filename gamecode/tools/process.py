"""
Process Tools
=============

Runs a restricted set of read-only shell commands.

Security Model:
- Only allow-listed programs can be started
- The command is split with shell quoting rules but never run through a
  shell, so pipes, redirects and substitutions have no effect
- Arguments that look like shell control syntax are rejected outright,
  which gives the model a clear error instead of a confusing one
"""

import asyncio
import shlex
from functools import partial
from pathlib import Path

from pydantic import Field

from gamecode.tools import ErrorKind, ToolArguments, ToolResult, ToolSpec
from gamecode.utils.logger import Logger

logger = Logger("ProcessTools")

ALLOWED_COMMANDS = ("ls", "dir", "find", "grep", "cat", "head", "tail", "echo", "pwd")

_UNSAFE_PREFIXES = (";", "&&", "||", "|", ">", "<")
_UNSAFE_FRAGMENTS = ("$(", "`", "${")


class ExecuteCommandArgs(ToolArguments):
    command: str = Field(description="Command line to execute, e.g. 'grep -n TODO main.py'")


def check_command(parts: list[str]) -> str | None:
    """
    Check a split command line against the allow-list.

    Returns:
        An error message, or None if the command may run
    """
    if not parts:
        return "Empty command"

    if parts[0] not in ALLOWED_COMMANDS:
        return (
            f"Command '{parts[0]}' is not allowed for security reasons. "
            f"Allowed commands are: {', '.join(ALLOWED_COMMANDS)}"
        )

    for arg in parts[1:]:
        if arg.startswith(_UNSAFE_PREFIXES) or any(f in arg for f in _UNSAFE_FRAGMENTS):
            return f"Argument '{arg}' contains potentially unsafe characters"

    return None


async def _execute_command(args: ExecuteCommandArgs, working_directory: Path) -> ToolResult:
    try:
        parts = shlex.split(args.command)
    except ValueError as e:
        return ToolResult.fail(ErrorKind.INVALID_ARGUMENTS, f"Could not parse command: {e}")

    problem = check_command(parts)
    if problem:
        return ToolResult.fail(ErrorKind.EXECUTION_ERROR, problem)

    logger.debug(f"Running {parts!r} in {working_directory}")
    proc = await asyncio.create_subprocess_exec(
        *parts,
        cwd=str(working_directory),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        # The executor cancels us on timeout; don't leave the child running.
        proc.kill()
        await proc.wait()
        raise

    out = stdout.decode("utf-8", errors="replace")
    err = stderr.decode("utf-8", errors="replace")

    result = out
    if err:
        result = f"{result}\n\nErrors:\n{err}" if result else err
    if not result:
        result = "Command executed successfully with no output"

    if proc.returncode != 0:
        return ToolResult.fail(
            ErrorKind.EXECUTION_ERROR,
            f"Command exited with status {proc.returncode}: {result}"
        )
    return ToolResult.ok(result)


def register_tools(registry, settings) -> None:
    registry.register(ToolSpec(
        name="execute_command",
        description=(
            "Execute a read-only shell command in the working directory. "
            f"Allowed programs: {', '.join(ALLOWED_COMMANDS)}"
        ),
        parameters=ExecuteCommandArgs,
        execute=partial(_execute_command, working_directory=settings.working_directory),
    ))
