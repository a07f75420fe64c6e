"""Google Gemini LLM provider using the google.genai SDK."""

import asyncio
import logging

from .provider import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class GoogleProvider(LLMProvider):
    """Google Gemini provider.

    Streams the response and concatenates chunks, which avoids the
    truncation seen on long single-shot JSON payloads.
    """

    @property
    def name(self) -> str:
        return "google"

    def get_default_model(self) -> str:
        return "gemini-3-flash-preview"

    def get_creative_model(self) -> str:
        return "gemini-3-pro-preview"

    def _init_client(self):
        """Initialize the Google GenAI client."""
        from google import genai
        self._client = genai.Client(api_key=self.api_key)

    @staticmethod
    def _build_contents(messages: list[dict[str, str]]) -> list[dict]:
        """Convert [{role, content}] to Gemini contents (assistant -> model)."""
        contents = []
        for msg in messages:
            role = "model" if msg["role"] == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": msg["content"]}]})
        return contents

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a text completion using Gemini."""
        self._ensure_client()

        model_name = model or self.default_model
        contents = self._build_contents(messages)

        config = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }
        if system:
            config["system_instruction"] = system

        loop = asyncio.get_running_loop()

        def _stream_and_collect():
            stream = self._client.models.generate_content_stream(
                model=model_name,
                contents=contents,
                config=config,
            )
            full_text = ""
            last_chunk = None
            for chunk in stream:
                full_text += chunk.text or ""
                last_chunk = chunk
            return full_text, last_chunk

        full_text, last_chunk = await loop.run_in_executor(None, _stream_and_collect)

        usage = {}
        metadata = getattr(last_chunk, "usage_metadata", None) if last_chunk else None
        if metadata:
            usage = {
                "prompt_tokens": getattr(metadata, "prompt_token_count", 0) or 0,
                "completion_tokens": getattr(metadata, "candidates_token_count", 0) or 0,
                "total_tokens": getattr(metadata, "total_token_count", 0) or 0,
            }

        return LLMResponse(
            content=full_text,
            model=model_name,
            usage=usage,
            raw_response=last_chunk,
        )
