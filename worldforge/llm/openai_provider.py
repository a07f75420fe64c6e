"""OpenAI ChatGPT LLM provider."""

import asyncio
import logging

from .provider import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI ChatGPT provider implementation."""

    @property
    def name(self) -> str:
        return "openai"

    def get_default_model(self) -> str:
        return "gpt-5.2"

    def get_creative_model(self) -> str:
        return "gpt-5.2"

    def _init_client(self):
        """Initialize the OpenAI client."""
        import openai
        self._client = openai.OpenAI(api_key=self.api_key)

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a text completion using ChatGPT."""
        self._ensure_client()

        model_name = model or self.default_model

        full_messages = []
        if system:
            full_messages.append({"role": "system", "content": system})
        full_messages.extend(messages)

        # GPT-5 / o-series reject temperature and use max_completion_tokens
        if "gpt-5" in model_name or model_name.startswith("o"):
            kwargs = {
                "model": model_name,
                "messages": full_messages,
                "max_completion_tokens": max_tokens,
                "stream": True,
                "stream_options": {"include_usage": True},
            }
        else:
            kwargs = {
                "model": model_name,
                "messages": full_messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "stream": True,
                "stream_options": {"include_usage": True},
            }

        def _stream_and_collect():
            stream = self._client.chat.completions.create(**kwargs)
            full_text = ""
            final_usage = None
            for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    full_text += chunk.choices[0].delta.content
                if getattr(chunk, "usage", None):
                    final_usage = chunk.usage
            return full_text, final_usage

        loop = asyncio.get_running_loop()
        full_text, final_usage = await loop.run_in_executor(None, _stream_and_collect)

        usage = {}
        if final_usage is not None:
            usage = {
                "prompt_tokens": final_usage.prompt_tokens,
                "completion_tokens": final_usage.completion_tokens,
                "total_tokens": final_usage.total_tokens,
            }

        return LLMResponse(content=full_text, model=model_name, usage=usage)
