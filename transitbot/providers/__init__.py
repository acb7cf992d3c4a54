"""LLM provider abstraction module."""

from transitbot.providers.base import CompletionError, LLMProvider, LLMResponse
from transitbot.providers.litellm_provider import LiteLLMProvider

__all__ = ["CompletionError", "LLMProvider", "LLMResponse", "LiteLLMProvider"]
