"""Abstract LLM provider interface."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Standard response from any LLM provider."""

    content: str
    """The text content of the response."""

    model: str = ""
    """The model that generated this response."""

    usage: dict[str, int] = field(default_factory=dict)
    """Token usage: {prompt_tokens, completion_tokens, total_tokens}."""

    raw_response: Any = None
    """The raw response object from the provider."""


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Implementations run the vendor SDK's blocking call in the default
    executor so that generation never blocks the event loop.
    """

    def __init__(self, api_key: str, default_model: str | None = None):
        """Initialize the provider.

        Args:
            api_key: API key for the provider
            default_model: Default model to use
        """
        self.api_key = api_key
        self.default_model = default_model or self.get_default_model()
        self._client = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'anthropic', 'google', 'openai')."""
        pass

    @abstractmethod
    def get_default_model(self) -> str:
        """Get the default model for this provider."""
        pass

    @abstractmethod
    def get_creative_model(self) -> str:
        """Get the creative/quality model used for world generation."""
        pass

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a text completion.

        Args:
            messages: List of messages [{role: str, content: str}]
            system: System prompt
            model: Model to use (defaults to provider default)
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature

        Returns:
            LLMResponse with the completion
        """
        pass

    def _ensure_client(self):
        """Ensure the client is initialized (lazy loading)."""
        if self._client is None:
            self._init_client()

    @abstractmethod
    def _init_client(self):
        """Initialize the provider's client."""
        pass
