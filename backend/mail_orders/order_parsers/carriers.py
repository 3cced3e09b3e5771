"""
Carrier Notification Extractors

DHL and PostNL send tracking notifications on behalf of merchants. These
mails carry a tracking code, a delivery window and sometimes the merchant
name ("namens Coolblue"), but never an order number or amount, so the
carrier extractors only fill tracking, delivery and status fields.
"""

import re
from typing import Optional

from mail_orders.email_content import EmailContent
from mail_orders.models import OrderStatus
from mail_orders.order_parsers.base import (
    TRACKING_LABEL_PATTERNS,
    PatternExtractor,
    compile_patterns,
    same_for_all_languages,
)
from mail_orders.order_parsers.registry import register_retailer

DHL_DOMAINS = ["dhl.nl", "dhl.com", "dhl.de", "dhlparcel.nl", "dhl-parcel.nl"]
POSTNL_DOMAINS = ["postnl.nl", "postnl.com", "postnl.be"]

DHL_TRACKING_CODE = r"(JVGL\d{16})"
POSTNL_TRACKING_CODE = r"\b(3S[A-Z0-9]{10,})\b"

CARRIER_KEYWORDS = {
    "nl": ["pakket", "zending", "bezorg", "onderweg", "track", "afgeleverd"],
    "de": ["paket", "sendung", "zustellung", "unterwegs", "geliefert"],
    "fr": ["colis", "livraison", "envoi", "suivi", "livré"],
    "en": ["parcel", "package", "shipment", "delivery", "tracking", "delivered"],
}

# Merchant named in the notification body; names start with a capital
MERCHANT_MENTION_PATTERNS = [
    r"namens\s+((?-i:[A-Z0-9])[^\n.,]{1,49}?)\s+(?:wordt|is)\b",
    r"\bvoor\s+((?-i:[A-Z0-9])[^\n.,]{1,49}?)\s+wordt\b",
    r"bestelling\s+(?:van|bij)\s+((?-i:[A-Z0-9])[^\n.,]{1,49}?)(?:[.,\n]|\s+wordt)",
    r"\bim auftrag von\s+((?-i:[A-Z0-9])[^\n.,]{1,49}?)[.,\n]",
    r"\bde la part de\s+((?-i:[A-Z0-9])[^\n.,]{1,49}?)[.,\n]",
    r"\bon behalf of\s+((?-i:[A-Z0-9])[^\n.,]{1,49}?)[.,\n]",
]


class CarrierExtractor(PatternExtractor):
    """Pattern extractor that also accepts forwarded mail by tracking code.

    Merchants sometimes forward carrier notifications from their own
    domain; a carrier tracking code in the subject is enough to claim those.
    """

    def __init__(self, *args, code_pattern: str, **kwargs):
        kwargs.setdefault("default_status", OrderStatus.SHIPPED)
        kwargs.setdefault("extract_items", False)
        super().__init__(*args, **kwargs)
        self.code_pattern = re.compile(code_pattern, re.IGNORECASE)

    def can_handle(self, email: EmailContent, language: Optional[str] = None) -> bool:
        if super().can_handle(email, language):
            return True
        return bool(self.code_pattern.search(email.subject or ""))


def _tracking_patterns(code_pattern: str):
    return compile_patterns(same_for_all_languages([code_pattern] + TRACKING_LABEL_PATTERNS))


@register_retailer
def dhl_extractor() -> CarrierExtractor:
    return CarrierExtractor(
        name="DHL",
        domains=DHL_DOMAINS,
        order_number_patterns={},
        order_keywords=CARRIER_KEYWORDS,
        tracking_patterns=_tracking_patterns(DHL_TRACKING_CODE),
        subject_patterns=[r"\bdhl\b"],
        retailer_patterns=MERCHANT_MENTION_PATTERNS,
        carrier="DHL",
        code_pattern=DHL_TRACKING_CODE,
    )


@register_retailer
def postnl_extractor() -> CarrierExtractor:
    return CarrierExtractor(
        name="PostNL",
        domains=POSTNL_DOMAINS,
        order_number_patterns={},
        order_keywords=CARRIER_KEYWORDS,
        tracking_patterns=_tracking_patterns(POSTNL_TRACKING_CODE),
        subject_patterns=[r"\bpostnl\b"],
        retailer_patterns=MERCHANT_MENTION_PATTERNS,
        carrier="PostNL",
        code_pattern=POSTNL_TRACKING_CODE,
    )
