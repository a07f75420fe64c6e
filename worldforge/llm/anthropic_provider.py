"""Anthropic Claude LLM provider."""

import asyncio
import logging
import os

from .provider import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider implementation."""

    @property
    def name(self) -> str:
        return "anthropic"

    def get_default_model(self) -> str:
        return "claude-sonnet-4-5"

    def get_creative_model(self) -> str:
        """Sonnet by default; ANTHROPIC_CREATIVE_MODEL=opus switches to Opus."""
        preference = os.getenv("ANTHROPIC_CREATIVE_MODEL", "sonnet").lower()
        if preference == "opus":
            return "claude-opus-4-6"
        return "claude-sonnet-4-5"

    def _init_client(self):
        """Initialize the Anthropic client."""
        import anthropic
        self._client = anthropic.Anthropic(api_key=self.api_key)

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a text completion using Claude."""
        self._ensure_client()

        model_name = model or self.default_model
        kwargs = {
            "model": model_name,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system or "",
            "messages": messages,
        }

        loop = asyncio.get_running_loop()

        # Streaming avoids the SDK's long-request refusal for large max_tokens
        def _stream_and_collect():
            full_text = ""
            with self._client.messages.stream(**kwargs) as stream:
                for text in stream.text_stream:
                    full_text += text
                final_message = stream.get_final_message()
            return full_text, final_message

        full_text, final_message = await loop.run_in_executor(None, _stream_and_collect)

        usage = {}
        if final_message is not None and getattr(final_message, "usage", None):
            usage = {
                "prompt_tokens": final_message.usage.input_tokens,
                "completion_tokens": final_message.usage.output_tokens,
                "total_tokens": final_message.usage.input_tokens + final_message.usage.output_tokens,
            }

        return LLMResponse(
            content=full_text,
            model=model_name,
            usage=usage,
            raw_response=final_message,
        )
