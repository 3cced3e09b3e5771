"""
Language Detector

Maps email text (and optionally the sender domain) onto one of the
supported language codes. Merchants with a known regional domain decide the
language outright; otherwise a statistical detector restricted to the
supported languages is consulted. Detection is local and deterministic.
"""

from typing import Optional

from lingua import Language, LanguageDetectorBuilder

from mail_orders.locale_terms import BASE_LANGUAGE
from mail_orders.logging_config import get_logger

logger = get_logger(__name__)

MIN_SAMPLE_LENGTH = 20

# Detector language -> internal code
LANGUAGE_CODES = (
    (Language.DUTCH, "nl"),
    (Language.ENGLISH, "en"),
    (Language.GERMAN, "de"),
    (Language.FRENCH, "fr"),
)

# Merchant domains whose mail is always written in one language
DOMAIN_LANGUAGE_OVERRIDES = {
    "coolblue.nl": "nl",
    "coolblue.be": "nl",
    "bol.com": "nl",
    "wehkamp.nl": "nl",
    "postnl.nl": "nl",
    "zalando.nl": "nl",
    "zalando.de": "de",
    "zalando.fr": "fr",
    "amazon.nl": "nl",
    "amazon.de": "de",
    "amazon.fr": "fr",
    "amazon.com": "en",
    "amazon.co.uk": "en",
}

# Country TLDs that pin the language when no explicit override exists
TLD_LANGUAGES = (
    (".nl", "nl"),
    (".de", "de"),
    (".at", "de"),
    (".fr", "fr"),
    (".co.uk", "en"),
)


def _domain_language(domain: str) -> Optional[str]:
    domain = domain.lower().strip().lstrip("@")
    if not domain:
        return None

    for known, language in DOMAIN_LANGUAGE_OVERRIDES.items():
        if domain == known or domain.endswith("." + known):
            return language

    for suffix, language in TLD_LANGUAGES:
        if domain.endswith(suffix):
            return language

    return None


class LanguageDetector:
    """Supported-language detector with domain overrides.

    Build once and share; the underlying model is read-only after construction.
    """

    def __init__(self, base_language: str = BASE_LANGUAGE,
                 min_sample_length: int = MIN_SAMPLE_LENGTH):
        self.base_language = base_language
        self.min_sample_length = min_sample_length
        self._detector = LanguageDetectorBuilder.from_languages(
            *[language for language, _ in LANGUAGE_CODES]
        ).build()

    def detect(self, text: str, sender_domain: Optional[str] = None) -> str:
        """
        Detect the language of an email.

        Args:
            text: Subject plus body (first ~2000 characters are enough)
            sender_domain: Optional sender domain hint

        Returns:
            Two-letter language code; the base language when inconclusive
        """
        if sender_domain:
            override = _domain_language(sender_domain)
            if override:
                return override

        sample = (text or "").strip()
        if len(sample) < self.min_sample_length:
            return self.base_language

        detected = self._detector.detect_language_of(sample)
        for language, code in LANGUAGE_CODES:
            if detected == language:
                return code

        logger.debug("Language detection inconclusive, using base language")
        return self.base_language
