"""Tests for LLM and parsing configuration."""

import pytest

from config.llm_config import (
    AIProvider,
    LLMConfig,
    get_provider_info,
    load_llm_config,
)
from config.parsing_config import DEFAULT_FIELD_WEIGHTS, ParsingConfig, load_parsing_config

LLM_ENV_VARS = (
    "LLM_PROVIDER", "LLM_MODEL", "LLM_API_KEY", "LLM_TIMEOUT", "LLM_BATCH_SIZE",
    "LLM_DEBUG", "ANTHROPIC_API_KEY", "GOOGLE_API_KEY",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in LLM_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ============================================================================
# LLM CONFIG
# ============================================================================


def test_no_provider_disables_llm(clean_env):
    assert load_llm_config() is None


def test_load_anthropic_config_from_env(clean_env):
    clean_env.setenv("LLM_PROVIDER", "anthropic")
    clean_env.setenv("ANTHROPIC_API_KEY", "sk-test")
    clean_env.setenv("LLM_BATCH_SIZE", "2")

    config = load_llm_config()

    assert config.provider == AIProvider.ANTHROPIC
    assert config.api_key == "sk-test"
    assert config.model.startswith("claude")
    assert config.batch_size == 2


def test_llm_api_key_wins_over_provider_key(clean_env):
    clean_env.setenv("LLM_PROVIDER", "google")
    clean_env.setenv("LLM_API_KEY", "generic")
    clean_env.setenv("GOOGLE_API_KEY", "specific")

    config = load_llm_config()

    assert config.api_key == "generic"
    assert config.batch_size == 20


def test_invalid_provider_raises(clean_env):
    clean_env.setenv("LLM_PROVIDER", "openai")
    with pytest.raises(ValueError, match="Invalid LLM_PROVIDER"):
        load_llm_config()


def test_missing_api_key_raises(clean_env):
    clean_env.setenv("LLM_PROVIDER", "anthropic")
    with pytest.raises(ValueError, match="API key required"):
        load_llm_config()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"provider": AIProvider.ANTHROPIC, "model": "gemini-1.5-flash", "api_key": "k"},
        {"provider": AIProvider.GOOGLE, "model": "claude-3-5-haiku-20241022", "api_key": "k"},
        {"provider": AIProvider.GOOGLE, "model": "gemini-1.5-flash", "api_key": "k", "timeout": 0},
        {"provider": AIProvider.GOOGLE, "model": "gemini-1.5-flash", "api_key": "k", "batch_size_override": 0},
    ],
)
def test_llm_config_validation(kwargs):
    with pytest.raises(ValueError):
        LLMConfig(**kwargs)


def test_provider_tuning():
    anthropic = get_provider_info(AIProvider.ANTHROPIC)
    google = get_provider_info(AIProvider.GOOGLE)

    assert anthropic["batch_size"] == 3
    assert anthropic["max_workers"] == 1
    assert (anthropic["min_delay"], anthropic["max_delay"]) == (2.0, 10.0)
    assert google["batch_size"] == 20
    assert google["max_workers"] == 20
    assert google["initial_delay"] < anthropic["initial_delay"]


# ============================================================================
# PARSING CONFIG
# ============================================================================


def test_parsing_defaults():
    config = ParsingConfig()

    assert config.high_confidence_threshold == 0.8
    assert config.low_confidence_threshold == 0.7
    assert config.field_weights == DEFAULT_FIELD_WEIGHTS
    assert config.base_language == "nl"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"high_confidence_threshold": 1.5},
        {"low_confidence_threshold": 0.9, "high_confidence_threshold": 0.8},
        {"field_weights": {"order_number": 0.5, "amount": 0.3}},
        {"field_weights": {"order_number": 1.2, "amount": -0.2}},
        {"base_language": "es"},
        {"classification_text_limit": 0},
    ],
)
def test_parsing_config_validation(kwargs):
    with pytest.raises(ValueError):
        ParsingConfig(**kwargs)


def test_load_parsing_config_from_env(monkeypatch):
    monkeypatch.setenv("PARSING_HIGH_CONFIDENCE", "0.9")
    monkeypatch.setenv("PARSING_LOW_CONFIDENCE", "0.6")
    monkeypatch.setenv("PARSING_BASE_LANGUAGE", "EN")

    config = load_parsing_config()

    assert config.high_confidence_threshold == 0.9
    assert config.low_confidence_threshold == 0.6
    assert config.base_language == "en"
