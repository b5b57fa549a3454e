"""
gamecode - Headless Runner
==========================

Runs an agent session in the terminal. It:
1. Loads configuration
2. Builds the tool registry and the model backend
3. Creates the agent and subscribes a printer to its events
4. Reads user turns from stdin until EOF or /quit

Run with:
    python -m gamecode.main

Or after installing:
    gamecode

Commands:
    /clear   forget the conversation so far
    /quit    exit
"""

import asyncio
import signal
import sys

from gamecode.agent import AgentManager, TurnStatus
from gamecode.agent.backends.openai_backend import OpenAIBackend
from gamecode.agent.events import ContextCompressed, ToolCompleted, ToolDispatched
from gamecode.errors import BackendError, ConfigError
from gamecode.tools import build_default_registry
from gamecode.utils.config import get_config
from gamecode.utils.logger import Logger

main_logger = Logger("Main")

PROMPT = "you> "


def print_event(event) -> None:
    """Show tool activity on stdout between the user's input and the answer."""
    if isinstance(event, ToolDispatched):
        print(f"  -> {event.name} {event.arguments}")
    elif isinstance(event, ToolCompleted):
        status = "ok" if event.result.success else f"failed: {event.result.error}"
        print(f"  <- {event.name} {status}")
    elif isinstance(event, ContextCompressed):
        note = " (truncated)" if event.degraded else ""
        print(f"  [history compressed{note}]")


async def _read_line(prompt: str) -> str | None:
    """Read one line from stdin without blocking the event loop."""
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


async def main() -> int:
    """
    Main async entry point.

    Returns:
        Process exit code
    """
    try:
        config = get_config()
    except ConfigError as e:
        main_logger.error("Invalid configuration", e)
        return 1

    Logger.set_level(config.log_level)

    registry = build_default_registry(config.tools)
    backend = OpenAIBackend(config.provider, config.agent.retry)
    agent = AgentManager(
        config.agent,
        backend,
        registry,
        tool_timeout_seconds=config.tools.timeout_seconds,
    )
    agent.events.subscribe(print_event)

    # Ctrl+C stops the current turn at the next round boundary
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, agent.cancel)
    except NotImplementedError:
        pass

    main_logger.info(f"Working directory: {config.tools.working_directory}")

    try:
        while True:
            line = await _read_line(PROMPT)
            if line is None or line.strip() == "/quit":
                break
            if not line.strip():
                continue
            if line.strip() == "/clear":
                agent.clear_history()
                continue

            try:
                result = await agent.process_turn(line)
            except BackendError as e:
                main_logger.error("Turn failed", e)
                continue

            if result.message:
                print(result.message)
            if result.status is TurnStatus.ABORTED:
                print(f"[turn stopped: {result.abort_reason.value}]")
            elif result.status is TurnStatus.CANCELLED:
                print("[turn cancelled]")
    finally:
        await backend.close()

    return 0


def run():
    """Synchronous entry point for the gamecode command."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
