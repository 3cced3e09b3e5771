"""
Parsing Configuration
Routing thresholds, confidence weights and text limits for the hybrid order parser
"""

import os
from dataclasses import dataclass, field
from typing import Dict

from dotenv import load_dotenv

from .llm_config import ENV_PATH

SUPPORTED_LANGUAGES = ("nl", "en", "de", "fr")

DEFAULT_FIELD_WEIGHTS = {
    "order_number": 0.4,
    "amount": 0.3,
    "estimated_delivery": 0.1,
    "tracking_number": 0.1,
    "status": 0.1,
}


@dataclass(frozen=True)
class ParsingConfig:
    """Hybrid parser tuning"""
    high_confidence_threshold: float = 0.8
    low_confidence_threshold: float = 0.7
    field_weights: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_FIELD_WEIGHTS)
    )
    base_language: str = "nl"
    classification_text_limit: int = 2000
    llm_text_limit: int = 5000
    min_detection_length: int = 20

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Validate thresholds, weights and language"""
        for name in ("high_confidence_threshold", "low_confidence_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

        if self.low_confidence_threshold > self.high_confidence_threshold:
            raise ValueError(
                "low_confidence_threshold cannot exceed high_confidence_threshold"
            )

        if any(weight < 0 for weight in self.field_weights.values()):
            raise ValueError("Field weights must be non-negative")

        if abs(sum(self.field_weights.values()) - 1.0) > 1e-6:
            raise ValueError("Field weights must sum to 1.0")

        if self.base_language not in SUPPORTED_LANGUAGES:
            raise ValueError(
                f"Unsupported base language: {self.base_language}. "
                f"Must be one of: {', '.join(SUPPORTED_LANGUAGES)}"
            )

        if self.classification_text_limit <= 0 or self.llm_text_limit <= 0:
            raise ValueError("Text limits must be greater than 0")


def load_parsing_config() -> ParsingConfig:
    """
    Load parsing configuration from environment variables.

    Environment Variables:
    - PARSING_HIGH_CONFIDENCE: regex-only threshold (default: 0.8)
    - PARSING_LOW_CONFIDENCE: hybrid threshold (default: 0.7)
    - PARSING_BASE_LANGUAGE: fallback language code (default: nl)
    - PARSING_TEXT_LIMIT: characters used for classification (default: 2000)
    - PARSING_LLM_TEXT_LIMIT: characters sent to the LLM backend (default: 5000)

    Returns:
        ParsingConfig object
    """
    if ENV_PATH.exists():
        load_dotenv(ENV_PATH, override=True)

    return ParsingConfig(
        high_confidence_threshold=float(os.getenv("PARSING_HIGH_CONFIDENCE", "0.8")),
        low_confidence_threshold=float(os.getenv("PARSING_LOW_CONFIDENCE", "0.7")),
        base_language=os.getenv("PARSING_BASE_LANGUAGE", "nl").strip().lower(),
        classification_text_limit=int(os.getenv("PARSING_TEXT_LIMIT", "2000")),
        llm_text_limit=int(os.getenv("PARSING_LLM_TEXT_LIMIT", "5000")),
    )
