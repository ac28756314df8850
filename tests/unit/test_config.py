"""Unit tests for config."""

import os
from unittest.mock import patch

import pytest

from imgblend.core.config import (
    DEFAULT_GEMINI_BASE_URL,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_GENERATION_TIMEOUT,
    DEFAULT_IMAGE_PROVIDER,
    DEFAULT_OPENROUTER_MODEL,
    KNOWN_IMAGE_PROVIDERS,
    Config,
    get_config,
    set_config,
)
from imgblend.utils.exceptions import ConfigurationError


@pytest.mark.unit
class TestConfig:
    def test_defaults(self):
        c = Config()
        assert c.image_provider == DEFAULT_IMAGE_PROVIDER == "gemini"
        assert c.model == DEFAULT_GEMINI_MODEL == "gemini-2.5-flash-image"
        assert c.generation_timeout == DEFAULT_GENERATION_TIMEOUT
        assert c.max_retries == 0
        assert c.debug_api is False

    def test_validate_raises_when_no_api_key(self):
        c = Config(gemini_api_key="")
        with pytest.raises(ConfigurationError) as exc_info:
            c.validate()
        assert "API key" in str(exc_info.value)
        assert "GEMINI_API_KEY" in str(exc_info.value)

    def test_validate_openrouter_needs_its_own_key(self):
        c = Config(gemini_api_key="g-key", image_provider="openrouter")
        with pytest.raises(ConfigurationError) as exc_info:
            c.validate()
        assert "OPENROUTER_API_KEY" in str(exc_info.value)

    def test_validate_raises_when_openrouter_key_bad_prefix(self):
        c = Config(openrouter_api_key="invalid", image_provider="openrouter")
        with pytest.raises(ConfigurationError) as exc_info:
            c.validate()
        assert "sk-" in str(exc_info.value)

    def test_validate_sets_validated(self):
        c = Config(gemini_api_key="g-key")
        c.validate()
        assert c.is_valid() is True

    def test_validate_unknown_provider_raises(self):
        c = Config(gemini_api_key="g-key", image_provider="unknown")
        with pytest.raises(ConfigurationError) as exc_info:
            c.validate()
        assert "Unknown image_provider" in str(exc_info.value)

    def test_validate_rejects_non_positive_timeout(self):
        c = Config(gemini_api_key="g-key", generation_timeout=0)
        with pytest.raises(ConfigurationError) as exc_info:
            c.validate()
        assert "generation_timeout" in str(exc_info.value)

    def test_validate_rejects_negative_retries(self):
        c = Config(gemini_api_key="g-key", max_retries=-1)
        with pytest.raises(ConfigurationError):
            c.validate()

    def test_repr_does_not_contain_api_key(self):
        c = Config(gemini_api_key="g-secret", openrouter_api_key="sk-secret")
        r = repr(c)
        assert "g-secret" not in r
        assert "sk-secret" not in r

    def test_model_falls_back_to_provider_default(self):
        c = Config(image_provider="openrouter")
        assert c.model == DEFAULT_OPENROUTER_MODEL
        c.set_image_model("google/other")
        assert c.model == "google/other"

    def test_set_provider_resets_model(self):
        c = Config(image_model="gemini-custom")
        c.set_provider("openrouter")
        assert c.image_provider == "openrouter"
        assert c.model == DEFAULT_OPENROUTER_MODEL

    def test_set_provider_unknown_raises(self):
        c = Config()
        with pytest.raises(ConfigurationError):
            c.set_provider("ollama")
        assert c.image_provider == "gemini"

    def test_set_api_key_empty_raises(self):
        c = Config(gemini_api_key="g-key")
        with pytest.raises(ConfigurationError):
            c.set_api_key("")
        assert c.gemini_api_key == "g-key"

    def test_set_api_key_targets_selected_provider(self):
        c = Config(image_provider="openrouter")
        c.set_api_key("sk-new")
        assert c.openrouter_api_key == "sk-new"
        assert c.gemini_api_key == ""

    def test_set_api_key_success_clears_validated(self):
        c = Config(gemini_api_key="old")
        c.validate()
        c.set_api_key("new")
        assert c.gemini_api_key == "new"
        assert c.is_valid() is False

    def test_set_image_model_empty_raises(self):
        c = Config()
        with pytest.raises(ConfigurationError):
            c.set_image_model("")
        assert c.model == DEFAULT_GEMINI_MODEL

    def test_known_image_providers_constant(self):
        assert KNOWN_IMAGE_PROVIDERS == ("gemini", "openrouter")


@pytest.mark.unit
class TestConfigFromEnv:
    def test_from_env_uses_env_vars(self):
        with patch.dict(
            os.environ,
            {
                "GEMINI_API_KEY": "g-from-env",
                "OPENROUTER_API_KEY": "sk-from-env",
                "IMGBLEND_PROVIDER": "OpenRouter",
                "IMGBLEND_MODEL": "custom/model",
                "IMGBLEND_TIMEOUT": "60",
                "IMGBLEND_MAX_RETRIES": "2",
                "IMGBLEND_RETRY_BACKOFF": "0.5",
                "IMGBLEND_DEBUG_API": "yes",
            },
            clear=True,
        ):
            c = Config.from_env()
        assert c.gemini_api_key == "g-from-env"
        assert c.openrouter_api_key == "sk-from-env"
        assert c.image_provider == "openrouter"
        assert c.model == "custom/model"
        assert c.generation_timeout == 60
        assert c.max_retries == 2
        assert c.retry_backoff == 0.5
        assert c.debug_api is True

    def test_from_env_defaults_when_env_empty(self):
        with patch.dict(os.environ, {}, clear=True):
            c = Config.from_env()
        assert c.gemini_api_key == ""
        assert c.image_provider == "gemini"
        assert c.gemini_base_url == DEFAULT_GEMINI_BASE_URL
        assert c.generation_timeout == DEFAULT_GENERATION_TIMEOUT
        assert c.max_retries == 0
        assert c.debug_api is False

    def test_from_env_api_key_fallback(self):
        with patch.dict(os.environ, {"API_KEY": "legacy-key"}, clear=True):
            c = Config.from_env()
        assert c.gemini_api_key == "legacy-key"

    def test_from_env_gemini_key_wins_over_fallback(self):
        with patch.dict(os.environ, {"API_KEY": "legacy", "GEMINI_API_KEY": "primary"}, clear=True):
            c = Config.from_env()
        assert c.gemini_api_key == "primary"

    def test_from_env_bad_integer_raises(self):
        with patch.dict(os.environ, {"IMGBLEND_TIMEOUT": "soon"}, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                Config.from_env()
        assert "IMGBLEND_TIMEOUT" in str(exc_info.value)

    def test_from_env_bad_float_raises(self):
        with patch.dict(os.environ, {"IMGBLEND_RETRY_BACKOFF": "x"}, clear=True):
            with pytest.raises(ConfigurationError):
                Config.from_env()


@pytest.mark.unit
class TestConfigGlobals:
    def test_set_config_then_get_config_returns_set(self):
        from imgblend.core import config as config_mod

        c = Config(gemini_api_key="set")
        set_config(c)
        try:
            cfg = get_config()
            assert cfg is c
            assert cfg.gemini_api_key == "set"
        finally:
            config_mod._global_config = None

    def test_get_config_calls_from_env_when_global_none(self):
        from imgblend.core import config as config_mod

        with patch.object(Config, "from_env") as from_env:
            from_env.return_value = Config(gemini_api_key="stub")
            orig = config_mod._global_config
            config_mod._global_config = None
            try:
                cfg = get_config()
                assert cfg.gemini_api_key == "stub"
                from_env.assert_called_once()
            finally:
                config_mod._global_config = orig
