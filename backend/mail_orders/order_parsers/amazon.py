"""
Amazon Order Email Extractor

Covers the Dutch, German, French and English storefronts. Amazon order IDs
have the fixed shape 123-1234567-1234567.
"""

from mail_orders.order_parsers.base import PatternExtractor
from mail_orders.order_parsers.registry import register_retailer

AMAZON_DOMAINS = ["amazon.nl", "amazon.de", "amazon.fr", "amazon.com", "amazon.co.uk", "amazon.com.be"]

AMAZON_ORDER_ID = r"(\d{3}-\d{7}-\d{7})"

ORDER_KEYWORDS = {
    "nl": ["bestelling", "verzending", "bezorging", "pakket", "geleverd", "verzonden"],
    "de": ["bestellung", "versand", "lieferung", "paket", "geliefert", "zugestellt"],
    "fr": ["commande", "expédition", "livraison", "colis", "livré"],
    "en": ["order", "shipment", "delivery", "package", "delivered", "dispatched"],
}

ORDER_NUMBER_PATTERNS = {
    "nl": [
        r"(?:bestelnummer|bestellingsreferentie)[:\s#]+" + AMAZON_ORDER_ID,
        r"orderID=" + AMAZON_ORDER_ID,
        r"\border[:\s#]+" + AMAZON_ORDER_ID,
        r"\b" + AMAZON_ORDER_ID + r"\b",
    ],
    "de": [
        r"(?:bestellnummer|bestellungsreferenz|bestell-nr\.?)[:\s#]+" + AMAZON_ORDER_ID,
        r"orderID=" + AMAZON_ORDER_ID,
        r"\b" + AMAZON_ORDER_ID + r"\b",
    ],
    "fr": [
        r"(?:numéro de commande|référence de commande|n° de commande)[:\s#]+" + AMAZON_ORDER_ID,
        r"orderID=" + AMAZON_ORDER_ID,
        r"\b" + AMAZON_ORDER_ID + r"\b",
    ],
    "en": [
        r"order (?:number|id|#)[:\s#]*" + AMAZON_ORDER_ID,
        r"orderID=" + AMAZON_ORDER_ID,
        r"\border[:\s#]+" + AMAZON_ORDER_ID,
        r"\b" + AMAZON_ORDER_ID + r"\b",
    ],
}

# Amazon uses its own status phrasing on top of the shared vocabulary
STATUS_SETS = {
    "nl": (
        ("delivered", ("is bezorgd", "is geleverd", "afgeleverd")),
        ("shipped", ("is verzonden", "verzonden", "onderweg", "verstuurd")),
        ("confirmed", ("bedankt voor je bestelling", "bevestigd", "geplaatst")),
    ),
    "de": (
        ("delivered", ("wurde zugestellt", "wurde geliefert")),
        ("shipped", ("wurde versandt", "versandt", "unterwegs", "auf dem weg")),
        ("confirmed", ("vielen dank für ihre bestellung", "bestätigt", "aufgegeben")),
    ),
    "fr": (
        ("delivered", ("a été livré", "a été livrée")),
        ("shipped", ("a été expédié", "expédié", "expédiée", "en cours d'acheminement")),
        ("confirmed", ("merci pour votre commande", "confirmée", "passée")),
    ),
    "en": (
        ("delivered", ("has been delivered", "was delivered", "delivered:")),
        ("shipped", ("has shipped", "dispatched", "shipped", "on the way")),
        ("confirmed", ("thank you for your order", "order confirmation", "ordered", "confirmed")),
    ),
}


@register_retailer
def amazon_extractor() -> PatternExtractor:
    return PatternExtractor(
        name="Amazon",
        domains=AMAZON_DOMAINS,
        order_number_patterns=ORDER_NUMBER_PATTERNS,
        order_keywords=ORDER_KEYWORDS,
        status_sets=STATUS_SETS,
    )
