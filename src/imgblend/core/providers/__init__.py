"""
Image generation providers: protocol, registry, and built-in implementations.

Built-in providers are registered lazily on first get_registry() call to avoid
circular imports with core.image_gen.
"""

from imgblend.core.providers.base import ImageGenerationProvider as ImageGenerationProvider
from imgblend.core.providers.registry import (
    ProviderRegistry,
)
from imgblend.core.providers.registry import (
    get_registry as _get_registry_impl,
)

PROVIDER_GEMINI = "gemini"
PROVIDER_OPENROUTER = "openrouter"
KNOWN_IMAGE_PROVIDERS = (PROVIDER_GEMINI, PROVIDER_OPENROUTER)

_builtins_registered = False


def _register_builtins(reg: ProviderRegistry) -> None:
    """Register built-in providers. Called once when registry is first used."""
    global _builtins_registered
    if _builtins_registered:
        return
    from imgblend.core.providers.gemini import GeminiProvider
    from imgblend.core.providers.openrouter import OpenRouterProvider

    reg.register(PROVIDER_GEMINI, GeminiProvider())
    reg.register(PROVIDER_OPENROUTER, OpenRouterProvider())
    _builtins_registered = True


def get_registry() -> ProviderRegistry:
    """Return the global provider registry and ensure built-ins are registered."""
    reg = _get_registry_impl()
    _register_builtins(reg)
    return reg
