"""
Agent System
============

The orchestration core. For every user turn the agent:
1. Appends the user's message to the conversation history
2. Sends the history to the model backend
3. Extracts tool directives from the reply
4. Executes the requested tools and folds their results back in
5. Repeats until the model answers without tools (or the round limit hits)

This module provides:
- AgentManager: Runs turns for one session
- ContextManager: Bounded history with compression
- ToolCallParser: Finds tool directives in model output
- ToolExecutor: Validates and runs tool calls
"""

from gamecode.agent.core import AbortReason, AgentManager, TurnResult, TurnState, TurnStatus
from gamecode.agent.context import CompressionOutcome, ContextManager
from gamecode.agent.messages import ConversationContext, Message, Role, ToolCall
from gamecode.agent.parser import ToolCallParser
from gamecode.agent.tools_executor import ToolExecutor

__all__ = [
    "AbortReason",
    "AgentManager",
    "CompressionOutcome",
    "ContextManager",
    "ConversationContext",
    "Message",
    "Role",
    "ToolCall",
    "ToolCallParser",
    "ToolExecutor",
    "TurnResult",
    "TurnState",
    "TurnStatus",
]
