"""Tests for schema-driven configuration loading."""

import os
from pathlib import Path

import pytest

from keyrelay.core.config import (
    Config,
    ConfigError,
    ConfigSchema,
    EnvVarSpec,
    load_env_var,
    temporary_config,
    validate_all,
)


@pytest.mark.unit
class TestLoadEnvVar:
    def test_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("KEYRELAY_REQUEST_TIMEOUT", raising=False)
        assert load_env_var(ConfigSchema.KEYRELAY_REQUEST_TIMEOUT) == 60.0

    def test_float_coercion(self, monkeypatch):
        monkeypatch.setenv("KEYRELAY_REQUEST_TIMEOUT", "12.5")
        assert load_env_var(ConfigSchema.KEYRELAY_REQUEST_TIMEOUT) == 12.5

    def test_tuple_coercion_strips_blanks(self, monkeypatch):
        monkeypatch.setenv("KEYRELAY_PROVIDER_ORDER", " deepseek, ,gemini ")
        assert load_env_var(ConfigSchema.KEYRELAY_PROVIDER_ORDER) == ("deepseek", "gemini")

    def test_bool_coercion(self, monkeypatch):
        spec = EnvVarSpec(name="KEYRELAY_TEST_FLAG", default=False, type_hint=bool, description="")
        monkeypatch.setenv("KEYRELAY_TEST_FLAG", "Yes")
        assert load_env_var(spec) is True

    def test_unconvertible_value_raises(self, monkeypatch):
        monkeypatch.setenv("KEYRELAY_DEFAULT_MAX_TOKENS", "lots")

        with pytest.raises(ConfigError) as exc_info:
            load_env_var(ConfigSchema.KEYRELAY_DEFAULT_MAX_TOKENS)

        assert exc_info.value.env_var == "KEYRELAY_DEFAULT_MAX_TOKENS"
        assert exc_info.value.value == "lots"

    def test_validator_rejects_out_of_range(self, monkeypatch):
        monkeypatch.setenv("KEYRELAY_DEFAULT_TEMPERATURE", "3.5")

        with pytest.raises(ConfigError, match="Validation failed"):
            load_env_var(ConfigSchema.KEYRELAY_DEFAULT_TEMPERATURE)

    def test_validate_all_collects_every_error(self, monkeypatch):
        monkeypatch.setenv("KEYRELAY_REQUEST_TIMEOUT", "-1")
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        names = {e.env_var for e in validate_all()}

        assert names == {"KEYRELAY_REQUEST_TIMEOUT", "LOG_LEVEL"}


@pytest.mark.unit
class TestConfig:
    def test_defaults(self):
        cfg = Config()

        assert cfg.log_level == "INFO"
        assert cfg.provider_order == ()
        assert cfg.default_max_tokens == 4000
        assert cfg.default_temperature == 0.7
        assert cfg.openrouter_title == "keyrelay"

    def test_state_file_under_home(self, tmp_path):
        cfg = Config()

        assert cfg.home_dir == tmp_path / "home"
        assert cfg.state_file == tmp_path / "home" / "state.json"

    def test_home_expands_user(self, monkeypatch):
        monkeypatch.setenv("KEYRELAY_HOME", "~/relay-state")

        assert Config().home_dir == Path.home() / "relay-state"

    def test_invalid_value_fails_fast(self, monkeypatch):
        monkeypatch.setenv("KEYRELAY_REQUEST_TIMEOUT", "0")

        with pytest.raises(ConfigError):
            Config()

    def test_reset_singleton_rebinds_package_config(self, monkeypatch):
        import keyrelay.core.config as config_package

        monkeypatch.setenv("KEYRELAY_REQUEST_TIMEOUT", "7")
        Config.reset_singleton()

        assert config_package.config.request_timeout == 7.0


@pytest.mark.unit
class TestTemporaryConfig:
    def test_overrides_and_restores(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "AIza-real-key-0001")

        with temporary_config({"KEYRELAY_DEFAULT_MAX_TOKENS": "99"}) as cfg:
            assert cfg.default_max_tokens == 99
            assert "GEMINI_API_KEY" not in os.environ

        assert os.environ["GEMINI_API_KEY"] == "AIza-real-key-0001"
        assert "KEYRELAY_DEFAULT_MAX_TOKENS" not in os.environ

    def test_can_keep_provider_keys(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "AIza-real-key-0001")

        with temporary_config(clear_provider_keys=False):
            assert os.environ["GEMINI_API_KEY"] == "AIza-real-key-0001"
