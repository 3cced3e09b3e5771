"""
Order Email Pre-filter

Cheap keyword classification that runs before any extraction:
1. A registered merchant extractor accepting the email short-circuits
   everything (confidence 0.9)
2. Reject vocabulary (newsletters, marketing, social, account security, job
   alerts) or a marketing sender address rejects the email (confidence 1.0)
3. Otherwise retail signal terms are counted; each adds 0.25 confidence
"""

from typing import Optional

from config.parsing_config import ParsingConfig
from mail_orders.email_content import EmailContent
from mail_orders.language_detector import LanguageDetector
from mail_orders.locale_terms import find_reject_terms, find_terms, get_locale_patterns
from mail_orders.logging_config import get_logger
from mail_orders.models import ClassificationResult
from mail_orders.order_parsers.registry import RetailerRegistry

logger = get_logger(__name__)

KNOWN_MERCHANT_CONFIDENCE = 0.9
REJECT_CONFIDENCE = 1.0
SIGNAL_WEIGHT = 0.25

# Sender mailboxes that only send marketing, even from merchant domains
MARKETING_SENDER_PREFIXES = (
    "newsletter@",
    "nieuwsbrief@",
    "marketing@",
    "promo@",
    "promotions@",
    "deals@",
    "offers@",
    "aanbiedingen@",
    "angebote@",
    "news@",
)


def find_marketing_sender(sender_address: str) -> Optional[str]:
    """Marketing mailbox prefix of a sender address, if any."""
    sender_address = (sender_address or "").lower()
    for prefix in MARKETING_SENDER_PREFIXES:
        if sender_address.startswith(prefix):
            return prefix
    return None


class EmailClassifier:
    """Decides whether an email is worth extracting.

    Holds the registry and detector it was built with; classify() has no
    other state and can be called from multiple threads.
    """

    def __init__(self, registry: RetailerRegistry,
                 detector: Optional[LanguageDetector] = None,
                 config: Optional[ParsingConfig] = None):
        self.registry = registry
        self.config = config or ParsingConfig()
        self.detector = detector or LanguageDetector(
            base_language=self.config.base_language,
            min_sample_length=self.config.min_detection_length,
        )

    def classify(self, email: EmailContent) -> ClassificationResult:
        """
        Classify one email.

        Args:
            email: Email content

        Returns:
            ClassificationResult with language, verdict and matched patterns
        """
        text = email.full_text(self.config.classification_text_limit)
        language = self.detector.detect(text, email.sender_domain)
        trace = {"accepted_patterns": [], "rejected_patterns": []}

        extractor = self.registry.find_extractor(email, language)
        if extractor is not None:
            trace["accepted_patterns"].append(f"extractor:{extractor.name}")
            logger.debug(
                f"Known merchant extractor matched: {extractor.name}",
                extra={"email_id": email.id, "retailer": extractor.name, "language": language},
            )
            return ClassificationResult(
                is_potential_order=True,
                confidence=KNOWN_MERCHANT_CONFIDENCE,
                language=language,
                matched_retailer=extractor.name,
                selected_extractor=extractor,
                trace=trace,
            )

        rejected = find_reject_terms(text, language)
        marketing_sender = find_marketing_sender(email.sender_address)
        if marketing_sender:
            rejected.append(f"sender:{marketing_sender}")

        if rejected:
            trace["rejected_patterns"].extend(rejected)
            logger.debug(
                f"Rejected as non-order: {', '.join(rejected[:3])}",
                extra={"email_id": email.id, "language": language},
            )
            return ClassificationResult(
                is_potential_order=False,
                confidence=REJECT_CONFIDENCE,
                language=language,
                trace=trace,
            )

        signals = find_terms(text, get_locale_patterns(language).retail_terms)
        trace["accepted_patterns"].extend(signals)

        # Sender owned by a merchant whose subject check failed
        domain_owner = self.registry.find_by_domain(email.sender_domain)

        return ClassificationResult(
            is_potential_order=bool(signals),
            confidence=min(1.0, len(signals) * SIGNAL_WEIGHT),
            language=language,
            matched_retailer=domain_owner.name if domain_owner else None,
            trace=trace,
        )
