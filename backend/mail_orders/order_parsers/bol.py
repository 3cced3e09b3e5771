"""
Bol.com Order Email Extractor

Dutch-language marketplace. Order numbers are 8 to 10 digits starting
with 3 or 4; tracking codes arrive in separate carrier mails.
"""

from mail_orders.order_parsers.base import PatternExtractor, same_for_all_languages
from mail_orders.order_parsers.registry import register_retailer

BOL_DOMAINS = ["bol.com"]

BOL_ORDER_ID = r"([34]\d{7,9})"

ORDER_KEYWORDS = {
    "nl": ["bestelbevestiging", "order bevestiging", "je bestelling", "bestelnummer",
           "bestelling", "verzonden", "bezorgd"],
    "en": ["order confirmation", "your order", "order number", "shipped", "delivered"],
}

ORDER_NUMBER_PATTERNS = same_for_all_languages([
    r"(?:bestelnummer|order number)[:\s]*" + BOL_ORDER_ID + r"\b",
    r"\b" + BOL_ORDER_ID + r"\b",
])


@register_retailer
def bol_extractor() -> PatternExtractor:
    return PatternExtractor(
        name="Bol.com",
        domains=BOL_DOMAINS,
        order_number_patterns=ORDER_NUMBER_PATTERNS,
        order_keywords=ORDER_KEYWORDS,
    )
