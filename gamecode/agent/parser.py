"""
Tool Call Parser
================

Extracts tool invocations from free-text model replies.

The model is asked to request tools with a tool_call tag:

    <tool_call name="read_file">{"path": "notes.txt"}</tool_call>

    <tool_call name="write_file">
    path=out/todo.md
    content="- ship it"
    </tool_call>

Two further spellings seen in practice are accepted as well:

    <tool_call>{"name": "read_file", "arguments": {"path": "notes.txt"}}</tool_call>

    ```tool
    {"name": "read_file", "arguments": {"path": "notes.txt"}}
    ```

Parsing Policy:
    Model output is untrusted, so this is a tolerant, best-effort parser:

    - Text that does not form a recognized directive is ordinary prose
      and is ignored here.
    - Tool names are not checked against the registry. An unknown name
      becomes a ToolCall that the executor rejects with UNKNOWN_TOOL.
    - A recognized directive with undecodable arguments becomes a ToolCall
      with parse_error set, never an exception.
"""

import json
import re
from typing import Any, Iterable

from gamecode.agent.messages import ToolCall
from gamecode.utils.logger import Logger

logger = Logger("Parser")

_TAG_PATTERN = re.compile(
    r"<tool_call(?:\s+name\s*=\s*[\"']?(?P<name>[\w.\-]+)[\"']?)?\s*>"
    r"(?P<body>.*?)"
    r"</tool_call\s*>",
    re.DOTALL,
)

_FENCE_PATTERN = re.compile(r"```tool[ \t]*\n(?P<body>.*?)```", re.DOTALL)

# Used to salvage the tool name from a JSON body that fails to decode
_NAME_FIELD = re.compile(r"\"name\"\s*:\s*\"(?P<name>[\w.\-]+)\"")

_KEY = re.compile(r"^[A-Za-z_][\w\-]*$")

DIRECTIVE_INSTRUCTIONS = """To use a tool, write a directive on its own lines:

<tool_call name="TOOL_NAME">{"argument": "value"}</tool_call>

The body is a JSON object with the tool's arguments. You may request several
tools in one reply; they run in the order written. Tool results are returned
in the next message. When no further tools are needed, answer the user
directly without any directive."""


def extract(text: str, known_tool_names: Iterable[str] = ()) -> list[ToolCall]:
    """
    Extract tool calls from a model reply.

    Args:
        text: The reply text
        known_tool_names: Registered tool names, used only for diagnostics

    Returns:
        ToolCalls in the order their directives appear (possibly empty)
    """
    if not text:
        return []

    found: list[tuple[int, int, ToolCall]] = []
    for match in _TAG_PATTERN.finditer(text):
        call = _from_tag(match)
        if call is not None:
            found.append((match.start(), match.end(), call))
    for match in _FENCE_PATTERN.finditer(text):
        call = _from_json_envelope(match.group("body"), match.group(0))
        if call is not None:
            found.append((match.start(), match.end(), call))

    found.sort(key=lambda item: item[0])

    calls: list[ToolCall] = []
    last_end = -1
    for start, end, call in found:
        if start < last_end:
            # A directive nested inside another one, e.g. a tag in a fence
            continue
        calls.append(call)
        last_end = end

    known = set(known_tool_names)
    for call in calls:
        if known and call.name not in known:
            logger.debug(f"Directive names unregistered tool '{call.name}'")
        if call.is_malformed:
            logger.warning(f"Malformed arguments for '{call.name}': {call.parse_error}")

    if calls:
        logger.debug(f"Extracted {len(calls)} tool calls")
    return calls


def strip_directives(text: str) -> str:
    """Return the reply with every tool directive removed."""
    stripped = _FENCE_PATTERN.sub("", _TAG_PATTERN.sub("", text))
    return re.sub(r"\n{3,}", "\n\n", stripped).strip()


def _from_tag(match: re.Match) -> ToolCall | None:
    name = match.group("name")
    body = match.group("body")
    raw = match.group(0)

    if not name:
        return _from_json_envelope(body, raw)

    arguments, error = decode_arguments(body)
    return ToolCall(name=name, arguments=arguments, parse_error=error, raw=raw)


def _from_json_envelope(body: str, raw: str) -> ToolCall | None:
    """Parse a {"name": ..., "arguments": {...}} body."""
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        salvaged = _NAME_FIELD.search(body)
        if salvaged is None:
            logger.debug("Ignoring directive without a recognizable tool name")
            return None
        return ToolCall(name=salvaged.group("name"), parse_error=f"invalid JSON: {e}", raw=raw)

    if not isinstance(data, dict) or not isinstance(data.get("name"), str) or not data["name"]:
        logger.debug("Ignoring directive without a recognizable tool name")
        return None

    arguments = data.get("arguments", data.get("args", {}))
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        return ToolCall(name=data["name"], parse_error="arguments must be a JSON object", raw=raw)
    return ToolCall(name=data["name"], arguments=arguments, raw=raw)


def decode_arguments(body: str) -> tuple[dict[str, Any], str | None]:
    """
    Decode a directive body into an arguments mapping.

    Accepts a JSON object, key=value lines, or nothing at all.

    Returns:
        (arguments, parse_error). On error the arguments are empty.
    """
    body = body.strip()
    if not body:
        return {}, None

    if body.startswith("{"):
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            return {}, f"invalid JSON: {e}"
        if not isinstance(data, dict):
            return {}, "arguments must be a JSON object"
        return data, None

    return _decode_key_values(body)


def _decode_key_values(body: str) -> tuple[dict[str, Any], str | None]:
    arguments: dict[str, Any] = {}
    raw_values: dict[str, str] = {}
    current: str | None = None

    for line in body.splitlines():
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and _KEY.match(key):
            current = key
            raw_values[key] = value.strip()
        elif current is not None:
            # Continuation of a multi-line value
            raw_values[current] += "\n" + line
        elif line.strip():
            return {}, f"expected key=value, got {line.strip()!r}"

    for key, value in raw_values.items():
        arguments[key] = _decode_value(value.rstrip())
    return arguments, None


def _decode_value(value: str) -> Any:
    """
    Decode a key=value right-hand side.

    JSON strings, objects and arrays are decoded; single quotes are
    stripped; everything else stays a string and is left to the tool's
    argument model to coerce.
    """
    if value[:1] in ('"', "{", "["):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


class ToolCallParser:
    """
    Parser bound to a set of registered tool names.

    Example:
        parser = ToolCallParser(registry.names())
        calls = parser.extract(response.text)
    """

    def __init__(self, known_tool_names: Iterable[str] = ()):
        self.known_tool_names = frozenset(known_tool_names)

    def extract(self, text: str) -> list[ToolCall]:
        return extract(text, self.known_tool_names)

    def strip_directives(self, text: str) -> str:
        return strip_directives(text)
