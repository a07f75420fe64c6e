"""Content generator: the single text-in/text-out seam used by every phase."""

import logging
import time

from ..config import Config
from ..exceptions import GenerationError
from .manager import get_llm_manager
from .provider import LLMProvider

logger = logging.getLogger(__name__)


class ContentGenerator:
    """Turns a prompt into raw model text.

    Provider failures surface as GenerationError.  There is no retry:
    a failed call fails the phase, and the job is retried as a whole.
    """

    def __init__(
        self,
        provider: LLMProvider | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float = 0.8,
    ):
        self._provider = provider
        self._model = model
        self.max_tokens = max_tokens or Config.GENERATION_MAX_TOKENS
        self.temperature = temperature
        self.last_usage: dict[str, int] = {}

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = get_llm_manager().get_provider()
        return self._provider

    @property
    def model(self) -> str:
        if self._model:
            return self._model
        return Config.GENERATION_MODEL or self.provider.get_creative_model()

    async def generate(self, prompt: str, system_instruction: str | None = None) -> str:
        """Generate text for one prompt."""
        start = time.monotonic()
        try:
            provider = self.provider
            response = await provider.complete(
                messages=[{"role": "user", "content": prompt}],
                system=system_instruction,
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except GenerationError:
            raise
        except Exception as e:
            logger.error(f"Content generation failed: {type(e).__name__}: {e}")
            raise GenerationError(f"Content generation failed: {e}") from e

        self.last_usage = response.usage or {}
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug(
            f"Generated {len(response.content)} chars in {elapsed_ms}ms "
            f"(prompt {len(prompt)} chars, usage {self.last_usage})"
        )
        if not response.content or not response.content.strip():
            raise GenerationError("Content generator returned an empty response")
        return response.content
