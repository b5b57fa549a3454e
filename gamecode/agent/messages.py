"""
Conversation Data Model
=======================

The types that flow through one agent session:

- Message: one entry of the conversation history (immutable)
- ToolCall: a tool invocation extracted from a model reply
- ConversationContext: a read-only snapshot of the history handed to
  the backend

Size Estimate:
    The context budget is counted in approximate tokens. No tokenizer is
    assumed; a token is taken to be about four characters of text, which
    is close enough for budgeting across common models.
"""

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Approximate token count of a piece of text."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class Role(str, Enum):
    """Who produced a message."""
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool_result"


@dataclass(frozen=True)
class Message:
    """
    A single message in the conversation.

    Attributes:
        role: Who sent the message
        content: The message text
        tool_call_id: For TOOL_RESULT messages, the originating call id
        tool_name: For TOOL_RESULT messages, the tool that ran
        is_summary: Marks the synthetic message produced by compression
    """
    role: Role
    content: str
    tool_call_id: str | None = None
    tool_name: str | None = None
    is_summary: bool = False

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(Role.ASSISTANT, content)

    @classmethod
    def tool_result(cls, content: str, tool_call_id: str, tool_name: str) -> "Message":
        return cls(Role.TOOL_RESULT, content, tool_call_id=tool_call_id, tool_name=tool_name)

    @classmethod
    def summary(cls, content: str) -> "Message":
        return cls(Role.ASSISTANT, content, is_summary=True)

    @property
    def size(self) -> int:
        return estimate_tokens(self.content)


def new_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class ToolCall:
    """
    A tool invocation requested by the model.

    A directive whose arguments could not be decoded still becomes a
    ToolCall, with parse_error set, so the failed attempt is visible in
    the transcript instead of silently vanishing.

    Attributes:
        id: Unique id used to pair the call with its result
        name: The tool name as written by the model
        arguments: Decoded arguments (empty when parse_error is set)
        parse_error: Why the argument encoding could not be decoded
        raw: The directive text exactly as it appeared in the reply
    """
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_call_id)
    parse_error: str | None = None
    raw: str = ""

    @property
    def is_malformed(self) -> bool:
        return self.parse_error is not None


@dataclass(frozen=True)
class ConversationContext:
    """
    Read-only view of the conversation passed to a backend.

    Attributes:
        system_prompt: Instructions placed before the history
        messages: The history, oldest first
        size: Estimated tokens of system prompt plus messages
    """
    system_prompt: str
    messages: tuple[Message, ...]
    size: int

    def __len__(self) -> int:
        return len(self.messages)


def render_transcript(messages) -> str:
    """
    Render messages as tagged plain text.

    Used when the history itself becomes the input of a request, e.g.
    when asking the fast model for a summary.
    """
    parts = []
    for message in messages:
        if message.is_summary:
            parts.append(f"<summary>\n{message.content}\n</summary>")
        elif message.role is Role.TOOL_RESULT:
            parts.append(f"<tool_result name=\"{message.tool_name}\" id=\"{message.tool_call_id}\">\n"
                         f"{message.content}\n</tool_result>")
        else:
            parts.append(f"<{message.role.value}>\n{message.content}\n</{message.role.value}>")
    return "\n\n".join(parts)
