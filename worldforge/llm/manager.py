"""LLM manager: builds providers from configured API keys."""

import logging

from ..config import Config
from .anthropic_provider import AnthropicProvider
from .google_provider import GoogleProvider
from .openai_provider import OpenAIProvider
from .provider import LLMProvider

logger = logging.getLogger(__name__)

_PROVIDER_CLASSES: dict[str, type[LLMProvider]] = {
    "google": GoogleProvider,
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
}


class LLMManager:
    """Lazily constructs and caches one provider instance per name."""

    def __init__(self, primary_provider: str | None = None):
        self.primary_provider = primary_provider or Config.get_primary_provider()
        self._providers: dict[str, LLMProvider] = {}

    def list_available_providers(self) -> list[str]:
        return Config.get_available_providers()

    def get_provider(self, name: str | None = None) -> LLMProvider:
        """Get (or build) a provider.  Raises ValueError when none is usable."""
        name = (name or self.primary_provider or "").lower()
        if name in self._providers:
            return self._providers[name]

        provider_cls = _PROVIDER_CLASSES.get(name)
        if provider_cls is None:
            raise ValueError(
                f"Unknown or unconfigured LLM provider '{name}'. "
                f"Available: {', '.join(self.list_available_providers()) or 'none'}"
            )
        api_key = Config.get_api_key(name)
        if not api_key:
            raise ValueError(f"No API key configured for provider '{name}'")

        provider = provider_cls(api_key=api_key)
        self._providers[name] = provider
        logger.info(f"Initialized LLM provider: {name} (default model {provider.default_model})")
        return provider

    def get_creative_model(self) -> str:
        return Config.GENERATION_MODEL or self.get_provider().get_creative_model()


_manager: LLMManager | None = None


def get_llm_manager() -> LLMManager:
    """Get the process-wide LLM manager."""
    global _manager
    if _manager is None:
        _manager = LLMManager()
    return _manager


def reset_llm_manager():
    """Drop the cached manager (after configuration changes, or in tests)."""
    global _manager
    _manager = None
