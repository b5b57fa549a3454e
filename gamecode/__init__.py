"""
gamecode - Agent Orchestration Core
===================================

Mediates a conversation between a person, a large language model and a
set of tools acting on the local machine.

This package provides:
- An agent loop with bounded tool rounds and cancellation
- Token-budgeted history with summarization by a fast model
- A tolerant parser for tool directives in model output
- A tool registry and executor with validation and failure isolation
- A backend abstraction with retry and exponential backoff
"""

__version__ = "0.2.0"
