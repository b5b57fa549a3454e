"""
Filesystem Tools
================

Tools for reading, writing and listing files.

Relative paths are resolved against the configured working directory;
absolute paths are used as given. The functions are synchronous, so the
executor runs them in a worker thread and they never block the event
loop.

Available tools:
- read_file: Read a text file
- write_file: Write a text file, creating parent directories
- list_directory: List the entries of a directory
"""

from functools import partial
from pathlib import Path

from pydantic import Field

from gamecode.tools import ErrorKind, ToolArguments, ToolResult, ToolSpec
from gamecode.utils.logger import Logger

logger = Logger("FilesystemTools")


def resolve_path(raw: str, working_directory: Path) -> Path:
    """
    Resolve a path argument against the working directory.

    Surrounding quotes are stripped, since models often quote paths.
    """
    value = raw.strip().strip("\"'")
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = working_directory / path
    return path


# ==============================================================================
# Tool: Read File
# ==============================================================================

class ReadFileArgs(ToolArguments):
    path: str = Field(description="Path to the file to read")


def _read_file(args: ReadFileArgs, working_directory: Path) -> ToolResult:
    path = resolve_path(args.path, working_directory)
    try:
        return ToolResult.ok(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading file: {path}", e)
        return ToolResult.fail(ErrorKind.EXECUTION_ERROR, f"Error reading file: {e}")


# ==============================================================================
# Tool: Write File
# ==============================================================================

class WriteFileArgs(ToolArguments):
    path: str = Field(description="Path to the file to write")
    content: str = Field(description="Content to write to the file")


def _write_file(args: WriteFileArgs, working_directory: Path) -> ToolResult:
    path = resolve_path(args.path, working_directory)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(args.content, encoding="utf-8")
    except OSError as e:
        logger.error(f"Error writing file: {path}", e)
        return ToolResult.fail(ErrorKind.EXECUTION_ERROR, f"Error writing to file: {e}")

    return ToolResult.ok(f"Successfully wrote {len(args.content)} characters to file: {path}")


# ==============================================================================
# Tool: List Directory
# ==============================================================================

class ListDirectoryArgs(ToolArguments):
    path: str = Field(default=".", description="Directory to list (defaults to the working directory)")


def _list_directory(args: ListDirectoryArgs, working_directory: Path) -> ToolResult:
    path = resolve_path(args.path, working_directory)
    if not path.exists():
        return ToolResult.fail(ErrorKind.EXECUTION_ERROR, f"Directory does not exist: {path}")
    if not path.is_dir():
        return ToolResult.fail(ErrorKind.EXECUTION_ERROR, f"Not a directory: {path}")

    lines = [f"Contents of {path}:"]
    for entry in sorted(path.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            kind = "dir"
        elif entry.is_file():
            kind = "file"
        else:
            kind = "other"
        lines.append(f"{entry.name} ({kind})")

    return ToolResult.ok("\n".join(lines))


def register_tools(registry, settings) -> None:
    """Register the filesystem tools bound to the configured working directory."""
    root = settings.working_directory

    registry.register(ToolSpec(
        name="read_file",
        description="Read the contents of a file from the filesystem",
        parameters=ReadFileArgs,
        execute=partial(_read_file, working_directory=root),
    ))
    registry.register(ToolSpec(
        name="write_file",
        description="Write content to a file on the filesystem, creating parent directories",
        parameters=WriteFileArgs,
        execute=partial(_write_file, working_directory=root),
    ))
    registry.register(ToolSpec(
        name="list_directory",
        description="List files and directories in a specified path",
        parameters=ListDirectoryArgs,
        execute=partial(_list_directory, working_directory=root),
    ))
