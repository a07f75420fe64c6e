"""LLM provider package - multi-provider support for WorldForge."""

from .generator import ContentGenerator
from .manager import LLMManager, get_llm_manager, reset_llm_manager
from .provider import LLMProvider, LLMResponse

__all__ = [
    "ContentGenerator", "LLMProvider", "LLMResponse",
    "LLMManager", "get_llm_manager", "reset_llm_manager",
]
