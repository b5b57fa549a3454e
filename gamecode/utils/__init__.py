"""
Utilities Module
================

Common utilities shared across the package:
- logger: Context-prefixed logging with levels
- config: Typed, validated configuration
"""

from gamecode.utils.logger import Logger, logger
from gamecode.utils.config import AgentConfig, Config, RetryPolicy, get_config

__all__ = ["Logger", "logger", "AgentConfig", "Config", "RetryPolicy", "get_config"]
