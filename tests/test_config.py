"""
Tests for configuration loading and validation.
"""

import pytest

from gamecode.errors import ConfigError
from gamecode.utils.config import AgentConfig, RetryPolicy, get_config, load_config, reset_config


@pytest.fixture
def env(monkeypatch):
    for name in (
        "GAMECODE_CAPABLE_MODEL",
        "GAMECODE_FAST_MODEL",
        "GAMECODE_MAX_CONTEXT_SIZE",
        "GAMECODE_MAX_TOOL_ROUNDS",
        "GAMECODE_RETRY_MAX_ATTEMPTS",
        "GAMECODE_CONCURRENT_TOOLS",
        "OPENAI_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    reset_config()
    yield monkeypatch
    reset_config()


class TestAgentConfig:
    def test_defaults(self):
        config = AgentConfig()

        assert config.max_tool_call_rounds_per_turn == 5
        assert config.min_trailing_messages == 4
        assert config.retry.max_attempts == 4

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_context_size": 0},
            {"max_tool_call_rounds_per_turn": 0},
            {"capable_model_id": ""},
            {"min_trailing_messages": -1},
            {"round_delay_seconds": -1.0},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ConfigError):
            AgentConfig(**overrides)

    @pytest.mark.parametrize(
        "overrides",
        [{"max_attempts": 0}, {"initial_backoff_seconds": -1}, {"multiplier": 0.5}],
    )
    def test_invalid_retry_policy(self, overrides):
        with pytest.raises(ConfigError):
            RetryPolicy(**overrides)


class TestLoadConfig:
    def test_from_environment(self, env, tmp_path):
        env.setenv("GAMECODE_CAPABLE_MODEL", "big-model")
        env.setenv("GAMECODE_MAX_TOOL_ROUNDS", "7")
        env.setenv("GAMECODE_CONCURRENT_TOOLS", "no")
        env.setenv("GAMECODE_WORKDIR", str(tmp_path))

        config = load_config()

        assert config.agent.capable_model_id == "big-model"
        assert config.agent.fast_model_id == "gpt-4o-mini"
        assert config.agent.max_tool_call_rounds_per_turn == 7
        assert config.agent.concurrent_tools is False
        assert config.provider.api_key == "sk-test"
        assert config.provider.base_url is None
        assert config.tools.working_directory == tmp_path.resolve()

    def test_missing_api_key(self, env):
        env.setenv("OPENAI_API_KEY", "")

        with pytest.raises(ConfigError, match="OPENAI_API_KEY"):
            load_config()

    def test_non_integer(self, env):
        env.setenv("GAMECODE_MAX_CONTEXT_SIZE", "lots")

        with pytest.raises(ConfigError, match="GAMECODE_MAX_CONTEXT_SIZE"):
            load_config()

    def test_get_config_is_cached(self, env):
        assert get_config() is get_config()
