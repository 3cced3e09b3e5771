"""
Coolblue Order Email Extractor

Coolblue mails order confirmations, shipping notices and delivery
confirmations from coolblue.nl / coolblue.be, mostly in Dutch with German,
French and English variants. Order numbers are 8 digits, e.g.
"Je bestelling (90276634)".
"""

from mail_orders.order_parsers.base import ORDER_ID, PatternExtractor
from mail_orders.order_parsers.registry import register_retailer

COOLBLUE_DOMAINS = ["coolblue.nl", "coolblue.be", "coolblue.de"]

ORDER_KEYWORDS = {
    "nl": ["bestelling", "bezorging", "verzonden", "onderweg", "geleverd",
           "bezorgd", "factuur", "bedankt voor je bestelling", "komt eraan", "pakket"],
    "de": ["bestellung", "lieferung", "versandt", "unterwegs", "geliefert",
           "rechnung", "danke für ihre bestellung", "paket"],
    "fr": ["commande", "livraison", "expédié", "en cours", "livré",
           "facture", "merci pour votre commande", "colis"],
    "en": ["order", "delivery", "shipped", "on the way", "delivered",
           "invoice", "thank you for your order", "package"],
}

ORDER_NUMBER_PATTERNS = {
    "nl": [
        r"bestelnummer[:\s]+" + ORDER_ID,
        r"ordernummer[:\s]+" + ORDER_ID,
        r"bestelling\s*\((\d{6,10})\)",
        r"\border[:\s]+#?" + ORDER_ID,
        r"\bnummer[:\s]+" + ORDER_ID,
        r"\b(\d{8})\b",
    ],
    "de": [
        r"bestellnummer[:\s]+" + ORDER_ID,
        r"auftragsnummer[:\s]+" + ORDER_ID,
        r"bestell-nr\.?[:\s]+" + ORDER_ID,
        r"bestellung\s*\((\d{6,10})\)",
        r"\border[:\s]+(\d{6,10})",
        r"\b(\d{8})\b",
    ],
    "fr": [
        r"numéro de commande[:\s]+" + ORDER_ID,
        r"n° de commande[:\s]+" + ORDER_ID,
        r"commande\s*\((\d{6,10})\)",
        r"référence[:\s]+" + ORDER_ID,
        r"\bcommande[:\s]+(\d{6,10})",
        r"\b(\d{8})\b",
    ],
    "en": [
        r"order number[:\s]+" + ORDER_ID,
        r"order\s*\((\d{6,10})\)",
        r"\border[:\s]+#?" + ORDER_ID,
        r"reference[:\s]+" + ORDER_ID,
        r"\b(\d{8})\b",
    ],
}


@register_retailer
def coolblue_extractor() -> PatternExtractor:
    return PatternExtractor(
        name="Coolblue",
        domains=COOLBLUE_DOMAINS,
        order_number_patterns=ORDER_NUMBER_PATTERNS,
        order_keywords=ORDER_KEYWORDS,
    )
