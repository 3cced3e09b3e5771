"""Core test fixtures for the order parsing tests.

Provides reusable fixtures for the retailer registry, email construction,
a scripted LLM backend and sample email loading.

No test talks to a real LLM backend: FakeProvider implements complete()
from a script and records every prompt it receives.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from config.llm_config import AIProvider
from mail_orders.email_content import EmailContent
from mail_orders.language_detector import LanguageDetector
from mail_orders.llm_providers.base_provider import BaseLLMProvider, LLMResponse
from mail_orders.order_parsers import build_default_registry
from mail_orders.order_parsing import EmailClassifier, HybridOrderParser

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ============================================================================
# FAKE LLM BACKEND
# ============================================================================


class FakeProvider(BaseLLMProvider):
    """LLM backend driven by a responder function.

    Args:
        responder: Callable taking the prompt and returning the response
            text, or raising to simulate a backend failure. A plain string
            is returned for every prompt.
        provider_type: AIProvider whose batch tuning to use (None keeps
            the base defaults: chunk size 1, sequential)
    """

    def __init__(self, responder, provider_type: AIProvider = None, **kwargs):
        self.provider = provider_type
        self.responder = responder
        self.prompts = []
        kwargs.setdefault("sleep", lambda seconds: None)
        super().__init__(api_key="test-key", model="fake-model", **kwargs)

    def complete(self, prompt: str, system_prompt: str = None) -> LLMResponse:
        self.prompts.append(prompt)
        if callable(self.responder):
            content = self.responder(prompt)
        else:
            content = self.responder
        return LLMResponse(content=content, input_tokens=10, output_tokens=5, total_tokens=15)

    def validate_api_key(self) -> bool:
        return True

    def calculate_cost(self, tokens_in: int, tokens_out: int) -> float:
        return 0.0


class SleepRecorder:
    """Drop-in for time.sleep that records requested delays."""

    def __init__(self):
        self.calls = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# ============================================================================
# PIPELINE FIXTURES
# ============================================================================


@pytest.fixture(scope="session")
def registry():
    """Sealed registry with every declared merchant and carrier extractor."""
    return build_default_registry()


@pytest.fixture(scope="session")
def detector():
    """Language detector (model load is slow, share it across tests)."""
    return LanguageDetector()


@pytest.fixture
def classifier(registry, detector):
    return EmailClassifier(registry, detector)


@pytest.fixture
def make_parser(registry, detector):
    """Factory for HybridOrderParser with an optional fake backend."""

    def _make(provider=None, **kwargs):
        kwargs.setdefault("detector", detector)
        return HybridOrderParser(registry, provider=provider, **kwargs)

    return _make


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def fake_provider(sleep_recorder):
    """Factory for FakeProvider instances that record sleeps."""

    def _make(responder, provider_type=None, **kwargs):
        kwargs.setdefault("sleep", sleep_recorder)
        return FakeProvider(responder, provider_type=provider_type, **kwargs)

    return _make


@pytest.fixture
def make_email():
    """Factory for EmailContent with sensible defaults."""

    def _make(subject="", body="", sender="Shop <info@shop.example>",
              email_id="msg-1", date="Wed, 15 Jan 2025 10:30:00 +0100", html=""):
        return EmailContent.from_dict({
            "id": email_id,
            "subject": subject,
            "from": sender,
            "date": date,
            "textBody": body,
            "htmlBody": html,
        })

    return _make


# ============================================================================
# SAMPLE EMAILS
# ============================================================================


def load_email_fixture(fixture_name: str) -> dict[str, Any]:
    """Load an email fixture from the sample_emails directory.

    Args:
        fixture_name: Name of email fixture file (e.g., 'coolblue_confirmation.json')

    Returns:
        dict: Collaborator-shaped email (id, subject, from, date, htmlBody, textBody)

    Example:
        email = load_email_fixture('coolblue_confirmation.json')
        assert email['from'].endswith('coolblue.nl>')
    """
    file_path = FIXTURES_DIR / "sample_emails" / fixture_name

    if not file_path.exists():
        raise FileNotFoundError(f"Email fixture not found: {file_path}")

    with open(file_path, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def sample_email():
    """Load a sample email by file name as an EmailContent."""

    def _load(fixture_name: str) -> EmailContent:
        return EmailContent.from_dict(load_email_fixture(fixture_name))

    return _load
