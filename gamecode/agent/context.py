"""
Context Management
==================

Owns the conversation history of one agent session and keeps it within
a token budget.

Token Budget:
    The budget (max_context_size) covers the system prompt plus every
    message in the history, using the estimate from messages.py. Messages
    are appended freely during a turn; the manager is asked to compress
    at turn boundaries, never while the model is still reacting to tool
    results.

Compression:

    before:  [m1 m2 m3 m4 m5 m6 m7 m8 m9 m10]      size > budget
              └──────── prefix ───────┘ └ trailing ┘
    after:   [summary m7 m8 m9 m10]                size <= budget

    1. The oldest messages (all but the last min_trailing_messages) are
       sent to a summarizer, normally the fast model.
    2. The prefix is replaced by one summary message in a single step.
    3. If the trailing messages alone would not fit, the window shrinks
       (never below the newest message) and more goes into the summary.
    4. If the result is still over budget, content is lost: the oldest
       messages are dropped, then the summary or a lone oversized
       message is clipped.

    When the summarizer fails, step 4 alone is applied. Whenever step 4
    loses anything the outcome is flagged as degraded. Either way the
    history ends within budget.
"""

from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Sequence

from gamecode.agent.messages import (
    CHARS_PER_TOKEN,
    ConversationContext,
    Message,
    estimate_tokens,
    render_transcript,
)
from gamecode.errors import BackendError, ConfigError
from gamecode.utils.logger import Logger

logger = Logger("Context")

TRUNCATION_MARKER = "\n[... truncated to fit the context budget]"

Summarizer = Callable[[Sequence[Message]], Awaitable[str]]


@dataclass(frozen=True)
class CompressionOutcome:
    """
    What compress_if_needed() did.

    Attributes:
        compressed: Whether the history was changed
        degraded: History content was dropped or clipped, not summarized
        removed: Number of messages removed from the history
        size_before: Estimated size before compression
        size_after: Estimated size after compression
    """
    compressed: bool = False
    degraded: bool = False
    removed: int = 0
    size_before: int = 0
    size_after: int = 0


class ContextManager:
    """
    Bounded, ordered conversation history.

    Example:
        context = ContextManager(max_context_size=8000, system_prompt=prompt)
        context.append(Message.user("What's in setup.cfg?"))

        response = await backend.send(context.snapshot(), model)
        ...
        outcome = await context.compress_if_needed(summarizer)
        if outcome.degraded:
            print("history was truncated")
    """

    def __init__(
        self,
        max_context_size: int,
        min_trailing_messages: int = 4,
        system_prompt: str = "",
    ):
        """
        Args:
            max_context_size: Budget in estimated tokens
            min_trailing_messages: Recent messages kept verbatim by summaries
            system_prompt: Instructions sent ahead of the history

        Raises:
            ConfigError: If the system prompt alone does not fit the budget
        """
        if max_context_size <= 0:
            raise ConfigError("max_context_size must be positive")

        self.max_context_size = max_context_size
        self.min_trailing_messages = min_trailing_messages
        self._system_prompt = system_prompt
        self._system_size = estimate_tokens(system_prompt)

        if self._system_size >= max_context_size:
            raise ConfigError(
                f"System prompt (~{self._system_size} tokens) leaves no room "
                f"in a context budget of {max_context_size}"
            )

        self._messages: list[Message] = []
        self._size = self._system_size

    # ==========================================================================
    # History
    # ==========================================================================

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def size(self) -> int:
        """Estimated tokens of system prompt plus history."""
        return self._size

    @property
    def over_budget(self) -> bool:
        return self._size > self.max_context_size

    def append(self, message: Message) -> None:
        """
        Add a message to the end of the history.

        Going over budget here is allowed (compression waits for the turn
        boundary) but is always logged.
        """
        self._messages.append(message)
        self._size += message.size

        if self.over_budget:
            logger.warning(
                f"Context over budget ({self._size}/{self.max_context_size}), "
                f"compression pending"
            )

    def snapshot(self) -> ConversationContext:
        """Read-only view of the current history for a backend request."""
        return ConversationContext(
            system_prompt=self._system_prompt,
            messages=tuple(self._messages),
            size=self._size,
        )

    def render_transcript(self) -> str:
        """The current history as tagged plain text."""
        return render_transcript(self._messages)

    def clear(self) -> None:
        """Drop the whole history (the system prompt stays)."""
        self._replace([])
        logger.info("Conversation history cleared")

    def _replace(self, messages: list[Message]) -> None:
        """Swap in a new history in one step and recompute the size."""
        self._messages = messages
        self._size = self._system_size + sum(m.size for m in messages)

    # ==========================================================================
    # Compression
    # ==========================================================================

    async def compress_if_needed(self, summarizer: Summarizer) -> CompressionOutcome:
        """
        Bring the history back within budget if it has grown past it.

        Args:
            summarizer: Async callable turning a list of messages into
                summary text; BackendError from it triggers the fallback

        Returns:
            CompressionOutcome describing what happened
        """
        size_before = self._size
        if not self.over_budget:
            return CompressionOutcome(size_before=size_before, size_after=size_before)

        count_before = len(self._messages)
        split = self._split_point()
        degraded = False

        if split == 0:
            logger.warning("Nothing older than the trailing window to summarize")
        else:
            prefix = self._messages[:split]
            trailing = self._messages[split:]
            logger.info(
                f"Compressing {len(prefix)} messages",
                {"size": size_before, "budget": self.max_context_size, "kept": len(trailing)},
            )
            try:
                summary = await summarizer(prefix)
            except BackendError as e:
                logger.warning(f"Summarization failed, falling back to truncation: {e}")
                degraded = True
            else:
                if summary.strip():
                    self._replace([Message.summary(summary.strip())] + trailing)
                else:
                    logger.warning("Summarizer returned nothing, falling back to truncation")
                    degraded = True

        if self.over_budget and self.hard_truncate():
            degraded = True

        outcome = CompressionOutcome(
            compressed=True,
            degraded=degraded,
            removed=max(count_before - len(self._messages), 0),
            size_before=size_before,
            size_after=self._size,
        )
        logger.info(
            f"Context compressed {size_before} -> {self._size}",
            {"removed": outcome.removed, "degraded": degraded},
        )
        return outcome

    def _split_point(self) -> int:
        """
        Index where the verbatim trailing window starts.

        Normally the last min_trailing_messages are kept. When those alone
        leave no room in the budget, the window shrinks (down to the newest
        message) so that the rest goes into the summary instead of being
        dropped later.
        """
        count = len(self._messages)
        split = max(count - self.min_trailing_messages, 0)
        trailing_size = self._system_size + sum(m.size for m in self._messages[split:])

        while split < count - 1 and trailing_size >= self.max_context_size:
            trailing_size -= self._messages[split].size
            split += 1

        if count - split < min(self.min_trailing_messages, count):
            logger.warning(f"Trailing window shrunk to {count - split} messages to fit the budget")
        return split

    def hard_truncate(self) -> int:
        """
        Cut the history down to the budget, losing content.

        A leading summary message is kept as long as possible. First the
        oldest other messages are dropped until a single one is left, then
        the summary is clipped to the room that remains (or dropped when
        there is none), and finally a lone message that is still too large
        is clipped itself.

        Returns:
            Number of messages dropped or clipped (0 if nothing was lost)
        """
        budget = self.max_context_size - self._system_size
        messages = list(self._messages)
        summary = messages.pop(0) if messages and messages[0].is_summary else None
        rest_size = sum(m.size for m in messages)
        dropped = 0
        clipped = 0

        while len(messages) > 1 and rest_size > budget:
            rest_size -= messages.pop(0).size
            dropped += 1

        if summary is not None:
            room = budget - rest_size
            if summary.size > room:
                if room * CHARS_PER_TOKEN > len(TRUNCATION_MARKER):
                    summary = _clip(summary, room * CHARS_PER_TOKEN)
                    clipped += 1
                else:
                    summary = None
                    dropped += 1
            if summary is not None:
                messages.insert(0, summary)

        if rest_size > budget and summary is None and messages:
            messages[-1] = _clip(messages[-1], budget * CHARS_PER_TOKEN)
            clipped += 1

        self._replace(messages)
        if dropped or clipped:
            logger.warning(
                "History truncated to fit the context budget",
                {"dropped": dropped, "clipped": clipped},
            )
        return dropped + clipped


def _clip(message: Message, max_chars: int) -> Message:
    """Shorten a message's content to at most max_chars characters."""
    if max_chars > len(TRUNCATION_MARKER):
        content = message.content[:max_chars - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
    else:
        content = message.content[:max(max_chars, 0)]
    return replace(message, content=content)
