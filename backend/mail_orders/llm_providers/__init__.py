"""LLM Backend Adapter implementations"""

from .anthropic_provider import AnthropicProvider
from .base_provider import BaseLLMProvider, LLMResponse
from .google_provider import GoogleProvider

__all__ = [
    "BaseLLMProvider",
    "LLMResponse",
    "AnthropicProvider",
    "GoogleProvider",
]
