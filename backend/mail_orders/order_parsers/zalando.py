"""
Zalando Order Email Extractor

Zalando serves nl/be/de/fr storefronts. Order numbers look like
10102938475612-0001 or 1234-5678-9012; shipments usually go out with DHL.
Return confirmations are reported as delivered, since the parcel reached
the customer before it was sent back.
"""

from mail_orders.order_parsers.base import ORDER_ID, PatternExtractor
from mail_orders.order_parsers.registry import register_retailer

ZALANDO_DOMAINS = ["zalando.nl", "zalando.be", "zalando.com", "zalando.de", "zalando.fr"]

ZALANDO_ORDER_ID = r"\b([A-Z0-9]{8,}-[A-Z0-9]{4,})\b"
ZALANDO_GROUPED_ID = r"\b(\d{4}-\d{4}-\d{4})\b"

ORDER_KEYWORDS = {
    "nl": ["bestelling", "verzending", "bezorging", "pakket", "geleverd", "retour"],
    "de": ["bestellung", "versand", "lieferung", "paket", "geliefert", "retoure"],
    "fr": ["commande", "expédition", "livraison", "colis", "livré", "retour"],
    "en": ["order", "shipment", "delivery", "package", "delivered", "return"],
}

ORDER_NUMBER_PATTERNS = {
    "nl": [
        r"bestelnummer[:\s]+" + ORDER_ID,
        ZALANDO_ORDER_ID,
        ZALANDO_GROUPED_ID,
        r"\border[:\s]+#?" + ORDER_ID,
        r"referentie[:\s]+" + ORDER_ID,
    ],
    "de": [
        r"bestellnummer[:\s]+" + ORDER_ID,
        r"bestell-nr\.?[:\s]+" + ORDER_ID,
        ZALANDO_ORDER_ID,
        ZALANDO_GROUPED_ID,
        r"referenz[:\s]+" + ORDER_ID,
    ],
    "fr": [
        r"numéro de commande[:\s]+" + ORDER_ID,
        r"n° de commande[:\s]+" + ORDER_ID,
        ZALANDO_ORDER_ID,
        ZALANDO_GROUPED_ID,
        r"référence[:\s]+" + ORDER_ID,
    ],
    "en": [
        r"order number[:\s]+" + ORDER_ID,
        ZALANDO_ORDER_ID,
        ZALANDO_GROUPED_ID,
        r"\border[:\s]+#?" + ORDER_ID,
        r"reference[:\s]+" + ORDER_ID,
    ],
}

STATUS_SETS = {
    "nl": (
        ("delivered", ("is bezorgd", "is geleverd", "retour ontvangen", "retourzending")),
        ("shipped", ("is verzonden", "onderweg", "verzonden")),
        ("confirmed", ("bedankt voor je bestelling", "bevestigd", "ontvangen")),
    ),
    "de": (
        ("delivered", ("wurde zugestellt", "wurde geliefert", "retoure erhalten")),
        ("shipped", ("wurde versandt", "unterwegs", "versandt")),
        ("confirmed", ("vielen dank für deine bestellung", "bestätigt", "erhalten")),
    ),
    "fr": (
        ("delivered", ("a été livré", "a été livrée", "retour reçu")),
        ("shipped", ("a été expédié", "en cours de livraison", "expédié")),
        ("confirmed", ("merci pour ta commande", "merci pour votre commande", "confirmée")),
    ),
    "en": (
        ("delivered", ("has been delivered", "was delivered", "return received")),
        ("shipped", ("has been shipped", "on its way", "shipped")),
        ("confirmed", ("thank you for your order", "confirmed", "received")),
    ),
}


@register_retailer
def zalando_extractor() -> PatternExtractor:
    return PatternExtractor(
        name="Zalando",
        domains=ZALANDO_DOMAINS,
        order_number_patterns=ORDER_NUMBER_PATTERNS,
        order_keywords=ORDER_KEYWORDS,
        status_sets=STATUS_SETS,
        tracking_carrier="DHL",
    )
