"""
Turn Lifecycle Events
=====================

The agent publishes what it is doing so that a front end (a terminal
printer, an animated view) can follow along. The core never depends on
who is listening and works the same with no listeners at all.

Event sequence for one turn:

    TurnStarted
      ToolDispatched(name, arguments)    ┐ once per tool call,
      ToolCompleted(name, result)        ┘ per round
      ContextCompressed(...)             only when history was compressed
    TurnCompleted(result)

Listeners may be plain functions or coroutine functions. A listener that
raises is logged and skipped; it cannot break the turn.
"""

import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from gamecode.tools import ToolResult
from gamecode.utils.logger import Logger

if TYPE_CHECKING:
    from gamecode.agent.core import TurnResult

logger = Logger("Events")


@dataclass(frozen=True)
class TurnStarted:
    user_input: str
    type: str = field(default="turn_started", init=False)


@dataclass(frozen=True)
class ToolDispatched:
    name: str
    arguments: dict[str, Any]
    tool_call_id: str
    type: str = field(default="tool_dispatched", init=False)


@dataclass(frozen=True)
class ToolCompleted:
    name: str
    result: ToolResult
    type: str = field(default="tool_completed", init=False)


@dataclass(frozen=True)
class ContextCompressed:
    removed: int
    size: int
    degraded: bool
    type: str = field(default="context_compressed", init=False)


@dataclass(frozen=True)
class TurnCompleted:
    result: "TurnResult"
    type: str = field(default="turn_completed", init=False)


TurnEvent = Union[TurnStarted, ToolDispatched, ToolCompleted, ContextCompressed, TurnCompleted]
Listener = Callable[[TurnEvent], Union[None, Awaitable[None]]]


class EventBus:
    """
    Publish/subscribe for turn events.

    Example:
        bus = EventBus()
        bus.subscribe(lambda event: print(event.type))
        await bus.emit(TurnStarted("hello"))
    """

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Add a listener.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def emit(self, event: TurnEvent) -> None:
        for listener in list(self._listeners):
            try:
                outcome = listener(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(f"Event listener failed on {event.type}", e)

    def __len__(self) -> int:
        return len(self._listeners)
