"""
LLM Configuration Management
Handles environment variables, validation, and backend selection for the
LLM fallback used by the hybrid order parser
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

ENV_PATH = Path(__file__).parent.parent / ".env"

if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


class AIProvider(str, Enum):
    """Supported LLM backends"""
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


class LLMModel(str, Enum):
    """Known models by backend"""
    # Anthropic
    CLAUDE_SONNET = "claude-3-5-sonnet-20241022"
    CLAUDE_HAIKU = "claude-3-5-haiku-20241022"

    # Google
    GEMINI_FLASH = "gemini-1.5-flash"
    GEMINI_PRO = "gemini-1.5-pro"


DEFAULT_MODELS = {
    AIProvider.ANTHROPIC: LLMModel.CLAUDE_HAIKU.value,
    AIProvider.GOOGLE: LLMModel.GEMINI_FLASH.value,
}

PROVIDER_API_KEY_VARS = {
    AIProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    AIProvider.GOOGLE: "GOOGLE_API_KEY",
}


@dataclass
class LLMConfig:
    """LLM Configuration object"""
    provider: AIProvider
    model: str
    api_key: str
    timeout: int = 30
    batch_size_override: Optional[int] = None  # Override provider chunk size
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization"""
        self.validate()

    def validate(self):
        """Validate LLM configuration"""
        if not self.provider:
            raise ValueError("LLM_PROVIDER is required")

        if not self.api_key:
            raise ValueError(f"API key required for provider: {self.provider.value}")

        if self.timeout <= 0:
            raise ValueError("LLM_TIMEOUT must be greater than 0")

        if self.batch_size_override is not None and self.batch_size_override <= 0:
            raise ValueError("LLM_BATCH_SIZE must be greater than 0")

        if self.provider == AIProvider.ANTHROPIC:
            if not self.model.startswith("claude"):
                raise ValueError(f"Invalid Anthropic model: {self.model}")

        elif self.provider == AIProvider.GOOGLE:
            if not self.model.startswith("gemini"):
                raise ValueError(f"Invalid Google model: {self.model}")

    @property
    def batch_size(self) -> int:
        """Chunk size used by batch analysis"""
        if self.batch_size_override:
            return self.batch_size_override
        return get_provider_info(self.provider)["batch_size"]


def load_llm_config() -> Optional[LLMConfig]:
    """
    Load LLM configuration from environment variables.

    Environment Variables:
    - LLM_PROVIDER: anthropic|google (LLM fallback disabled when unset)
    - LLM_MODEL: Model name (defaults per provider)
    - LLM_API_KEY: API key (falls back to ANTHROPIC_API_KEY / GOOGLE_API_KEY)
    - LLM_TIMEOUT: Request timeout in seconds (default: 30)
    - LLM_BATCH_SIZE: Override chunk size for batch analysis (optional)
    - LLM_DEBUG: Debug mode (default: false)

    Returns:
        LLMConfig object or None if the LLM backend is not configured
    """
    if ENV_PATH.exists():
        load_dotenv(ENV_PATH, override=True)

    provider_str = os.getenv("LLM_PROVIDER", "").strip().lower()

    if not provider_str:
        return None

    try:
        provider = AIProvider(provider_str)
    except ValueError:
        raise ValueError(
            f"Invalid LLM_PROVIDER: {provider_str}. "
            f"Must be one of: {', '.join([p.value for p in AIProvider])}"
        )

    api_key = os.getenv("LLM_API_KEY", "").strip()
    if not api_key:
        api_key = os.getenv(PROVIDER_API_KEY_VARS[provider], "").strip()

    model = os.getenv("LLM_MODEL", "").strip() or DEFAULT_MODELS[provider]

    timeout = int(os.getenv("LLM_TIMEOUT", "30"))

    batch_size_override = None
    batch_size_env = os.getenv("LLM_BATCH_SIZE", "").strip()
    if batch_size_env:
        batch_size_override = int(batch_size_env)

    debug = os.getenv("LLM_DEBUG", "false").lower() == "true"

    return LLMConfig(
        provider=provider,
        model=model,
        api_key=api_key,
        timeout=timeout,
        batch_size_override=batch_size_override,
        debug=debug,
    )


def get_provider_info(provider: AIProvider) -> Dict[str, Any]:
    """Get backend tuning: chunk size, concurrency and inter-chunk delays (seconds)"""

    provider_info = {
        AIProvider.ANTHROPIC: {
            "name": "Anthropic Claude",
            "batch_size": 3,
            "max_workers": 1,
            "initial_delay": 3.0,
            "min_delay": 2.0,
            "max_delay": 10.0,
            "rate_limit_cooldown": 5.0,
            "cost_per_1k_input_tokens": 0.0008,
            "cost_per_1k_output_tokens": 0.004,
            "supported_models": [m.value for m in LLMModel if "CLAUDE" in m.name],
        },
        AIProvider.GOOGLE: {
            "name": "Google Gemini",
            "batch_size": 20,
            "max_workers": 20,
            "initial_delay": 1.0,
            "min_delay": 0.5,
            "max_delay": 10.0,
            "rate_limit_cooldown": 5.0,
            "cost_per_1k_input_tokens": 0.000075,
            "cost_per_1k_output_tokens": 0.0003,
            "supported_models": [m.value for m in LLMModel if "GEMINI" in m.name],
        },
    }

    return provider_info.get(provider, {})
