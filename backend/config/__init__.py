"""Backend configuration module"""

from .llm_config import (
    AIProvider,
    LLMConfig,
    LLMModel,
    get_provider_info,
    load_llm_config,
)
from .parsing_config import (
    SUPPORTED_LANGUAGES,
    ParsingConfig,
    load_parsing_config,
)

__all__ = [
    "AIProvider",
    "LLMConfig",
    "LLMModel",
    "load_llm_config",
    "get_provider_info",
    "ParsingConfig",
    "SUPPORTED_LANGUAGES",
    "load_parsing_config",
]
