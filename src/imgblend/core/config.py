"""
Configuration management for imgblend.

This module handles API keys, provider and model selection, timeouts and the
retry policy for blend requests.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from imgblend.logging_config import get_logger
from imgblend.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Default configuration constants
DEFAULT_IMAGE_PROVIDER = "gemini"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-image"
DEFAULT_OPENROUTER_MODEL = "google/gemini-2.5-flash-image-preview"
DEFAULT_GENERATION_TIMEOUT = 180

DEFAULT_MODELS = {
    "gemini": DEFAULT_GEMINI_MODEL,
    "openrouter": DEFAULT_OPENROUTER_MODEL,
}

# Provider ids accepted by validate(); do not import from imgblend.core.providers (circular import)
KNOWN_IMAGE_PROVIDERS = ("gemini", "openrouter")

# Env var holding the key for each provider (named in error messages)
API_KEY_ENV_VARS = {
    "gemini": "GEMINI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


def _int_env(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return default
    try:
        return int(val)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {val!r}.") from e


def _float_env(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return default
    try:
        return float(val)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {val!r}.") from e


@dataclass
class Config:
    """Configuration for imgblend."""

    # API keys are excluded from repr to avoid leaking secrets
    gemini_api_key: str = field(default="", repr=False)
    openrouter_api_key: str = field(default="", repr=False)
    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    openrouter_base_url: str = DEFAULT_OPENROUTER_BASE_URL

    # Provider / model. Empty image_model means the provider default.
    image_provider: str = DEFAULT_IMAGE_PROVIDER
    image_model: str = ""

    generation_timeout: int = DEFAULT_GENERATION_TIMEOUT  # seconds, per HTTP call

    # Retry policy for transient failures; 0 means a failure is terminal
    max_retries: int = 0
    retry_backoff: float = 1.0  # seconds; doubled after each attempt

    # Debug: log raw API payload/response with image data truncated
    debug_api: bool = False

    _validated: bool = field(default=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create a Config instance from environment variables.

        Environment variables:
            GEMINI_API_KEY: Key for the gemini provider (API_KEY is accepted as fallback)
            OPENROUTER_API_KEY: Key for the openrouter provider
            IMGBLEND_PROVIDER: gemini (default) or openrouter
            IMGBLEND_MODEL: Optional model id for the selected provider
            GEMINI_BASE_URL / OPENROUTER_BASE_URL: Optional endpoint overrides
            IMGBLEND_TIMEOUT: Request timeout in seconds (default 180)
            IMGBLEND_MAX_RETRIES: Retries for transient failures (default 0)
            IMGBLEND_RETRY_BACKOFF: Initial backoff in seconds (default 1.0)
            IMGBLEND_DEBUG_API: 1/true/yes to log request/response bodies

        Returns:
            Config instance populated from environment

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        debug_api = os.getenv("IMGBLEND_DEBUG_API", "").strip().lower() in ("1", "true", "yes")
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", ""),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY", ""),
            gemini_base_url=os.getenv("GEMINI_BASE_URL") or DEFAULT_GEMINI_BASE_URL,
            openrouter_base_url=os.getenv("OPENROUTER_BASE_URL") or DEFAULT_OPENROUTER_BASE_URL,
            image_provider=(os.getenv("IMGBLEND_PROVIDER") or DEFAULT_IMAGE_PROVIDER).strip().lower(),
            image_model=os.getenv("IMGBLEND_MODEL", ""),
            generation_timeout=_int_env("IMGBLEND_TIMEOUT", DEFAULT_GENERATION_TIMEOUT),
            max_retries=_int_env("IMGBLEND_MAX_RETRIES", 0),
            retry_backoff=_float_env("IMGBLEND_RETRY_BACKOFF", 1.0),
            debug_api=debug_api,
        )

    @property
    def model(self) -> str:
        """Model id to send: image_model if set, else the provider default."""
        return self.image_model or DEFAULT_MODELS.get(self.image_provider, "")

    def api_key_for(self, provider: str | None = None) -> str:
        """Return the configured API key for provider (default: image_provider)."""
        provider = provider or self.image_provider
        if provider == "openrouter":
            return self.openrouter_api_key
        return self.gemini_api_key

    def validate(self) -> None:
        """
        Validate the configuration.

        Fails fast on a missing key so the user sees a configuration problem
        instead of an authentication failure from the service.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        logger.debug("Validating config provider=%s", self.image_provider)

        provider = self.image_provider
        if provider not in KNOWN_IMAGE_PROVIDERS:
            raise ConfigurationError(
                f"Unknown image_provider: {provider!r}. "
                f"Must be one of: {', '.join(KNOWN_IMAGE_PROVIDERS)}."
            )
        if not self.api_key_for(provider):
            env_name = API_KEY_ENV_VARS[provider]
            raise ConfigurationError(
                f"API key for {provider} is not configured. "
                f"Set the {env_name} environment variable or provide it explicitly."
            )
        if provider == "openrouter" and not self.openrouter_api_key.startswith("sk-"):
            raise ConfigurationError(
                "OpenRouter API key appears to be invalid. It should start with 'sk-'."
            )
        if self.generation_timeout <= 0:
            raise ConfigurationError(
                f"generation_timeout must be positive, got {self.generation_timeout}."
            )
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must not be negative, got {self.max_retries}.")
        if self.retry_backoff < 0:
            raise ConfigurationError(
                f"retry_backoff must not be negative, got {self.retry_backoff}."
            )

        self._validated = True

    def is_valid(self) -> bool:
        """
        Check if configuration has been validated.

        Returns:
            True if validate() has been called successfully
        """
        return self._validated

    def set_api_key(self, api_key: str, provider: str | None = None) -> None:
        """
        Set the API key for a provider (default: the selected one).

        Raises:
            ConfigurationError: If the key is empty
        """
        if not api_key:
            raise ConfigurationError("API key cannot be empty")
        if (provider or self.image_provider) == "openrouter":
            self.openrouter_api_key = api_key
        else:
            self.gemini_api_key = api_key
        self._validated = False

    def set_provider(self, provider: str) -> None:
        """Select the image provider; resets the model to that provider's default."""
        if provider not in KNOWN_IMAGE_PROVIDERS:
            raise ConfigurationError(
                f"Unknown image_provider: {provider!r}. "
                f"Must be one of: {', '.join(KNOWN_IMAGE_PROVIDERS)}."
            )
        self.image_provider = provider
        self.image_model = ""
        self._validated = False

    def set_image_model(self, model: str) -> None:
        """
        Set the image model for the selected provider.

        Raises:
            ConfigurationError: If model is empty
        """
        if not model:
            raise ConfigurationError("Model ID cannot be empty")

        self.image_model = model


# Global configuration instance
_global_config: Config | None = None


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        The global Config instance
    """
    global _global_config
    if _global_config is None:
        _global_config = Config.from_env()
    return _global_config


def set_config(config: Config) -> None:
    """
    Set the global configuration instance.

    Args:
        config: The Config instance to use globally
    """
    global _global_config
    _global_config = config
