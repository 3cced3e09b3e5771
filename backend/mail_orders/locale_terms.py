"""
Locale Term Tables

Per-language vocabulary used by the pre-filter, the retailer extractors and
the LLM prompts:
- reject terms (newsletters, marketing, social, account security, job alerts)
- retail signal terms (order, shipping and payment vocabulary)
- subject keywords that mark an email as order-related
- field labels (order number, total, delivery)
- status vocabulary, tested most terminal status first

Tables are immutable and built once at import time.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from mail_orders.models import OrderStatus

SUPPORTED_LANGUAGES = ("nl", "en", "de", "fr")
BASE_LANGUAGE = "nl"

# Languages that write 1.234,56
DECIMAL_COMMA_LANGUAGES = frozenset({"nl", "de", "fr"})


@dataclass(frozen=True)
class LocalePatternSet:
    """Vocabulary for one language"""
    language: str
    reject_terms: tuple[str, ...]
    retail_terms: tuple[str, ...]
    order_keywords: tuple[str, ...]
    order_terms: tuple[str, ...]
    total_terms: tuple[str, ...]
    delivery_terms: tuple[str, ...]
    status_sets: tuple[tuple[OrderStatus, tuple[str, ...]], ...]
    status_terms: Mapping[str, OrderStatus]
    currency_symbols: tuple[str, ...] = ("€", "EUR")

    @property
    def decimal_comma(self) -> bool:
        return self.language in DECIMAL_COMMA_LANGUAGES


# Cross-language rejects (social networks, account security, promotions)
UNIVERSAL_REJECT_TERMS = (
    "unsubscribe",
    "newsletter",
    "linkedin",
    "twitter",
    "facebook",
    "instagram",
    "password reset",
    "verify email",
    "verify your email",
    "2fa",
    "two-factor",
    "survey",
    "review request",
    "promo code",
    "coupon",
    "flash sale",
    "black friday",
    "cyber monday",
    "% off",
    "percent off",
    "limited time",
    "last chance",
    "act now",
    "don't miss",
)


def _status_sets(delivered, shipped, confirmed):
    return (
        (OrderStatus.DELIVERED, tuple(delivered)),
        (OrderStatus.SHIPPED, tuple(shipped)),
        (OrderStatus.CONFIRMED, tuple(confirmed)),
    )


def _status_terms(status_sets) -> Mapping[str, OrderStatus]:
    terms = {}
    for status, words in status_sets:
        for word in words:
            terms.setdefault(word, status)
    return MappingProxyType(terms)


_NL_STATUS = _status_sets(
    delivered=["is bezorgd", "is geleverd", "afgeleverd"],
    shipped=["verzonden", "onderweg", "komt naar je toe", "verstuurd", "wordt bezorgd"],
    confirmed=["bevestigd", "geplaatst", "bedankt voor je bestelling", "besteld"],
)

_EN_STATUS = _status_sets(
    delivered=["has been delivered", "was delivered", "has arrived"],
    shipped=["shipped", "on the way", "dispatched", "in transit", "out for delivery"],
    confirmed=["confirmed", "placed", "thank you for your order", "ordered"],
)

_DE_STATUS = _status_sets(
    delivered=["wurde zugestellt", "wurde geliefert", "ist angekommen"],
    shipped=["versandt", "verschickt", "unterwegs", "auf dem weg"],
    confirmed=["bestätigt", "aufgegeben", "danke für ihre bestellung", "vielen dank für deine bestellung"],
)

_FR_STATUS = _status_sets(
    delivered=["a été livré", "a été livrée", "a été déposé"],
    shipped=["expédié", "expédiée", "en cours de livraison", "envoyé"],
    confirmed=["confirmé", "confirmée", "passée", "merci pour votre commande"],
)


LOCALE_PATTERNS: Mapping[str, LocalePatternSet] = MappingProxyType({
    "nl": LocalePatternSet(
        language="nl",
        reject_terms=(
            "afmelden", "uitschrijven", "nieuwsbrief", "advertentie",
            "aanbieding", "uitverkoop", "opruiming", "bespaar",
            "vacature", "sollicitatie", "wachtwoord reset", "wachtwoord opnieuw instellen",
        ),
        retail_terms=(
            "bestelling", "bestelnummer", "ordernummer", "verzending",
            "verzonden", "levering", "bezorging", "pakket", "factuur",
            "betaling", "track & trace", "bol.com", "coolblue", "zalando",
            "amazon", "wehkamp",
        ),
        order_keywords=(
            "bestelling", "bezorging", "verzonden", "onderweg", "geleverd",
            "bezorgd", "factuur", "bedankt voor je bestelling", "komt eraan",
            "pakket", "bevestiging",
        ),
        order_terms=("bestelnummer", "ordernummer", "order number"),
        total_terms=("totaal", "totaalbedrag", "te betalen", "bedrag"),
        delivery_terms=("bezorging", "levering", "verzending", "verwachte leverdatum"),
        status_sets=_NL_STATUS,
        status_terms=_status_terms(_NL_STATUS),
    ),
    "en": LocalePatternSet(
        language="en",
        reject_terms=(
            "advertisement", "promotion",
            "special offer", "job alert", "job opening", "webinar",
        ),
        retail_terms=(
            "order", "shipping", "delivery", "package", "shipment",
            "tracking", "invoice", "purchase", "receipt",
        ),
        order_keywords=(
            "order", "delivery", "shipped", "on the way", "delivered",
            "invoice", "thank you for your order", "package", "shipment",
        ),
        order_terms=("order number", "order id", "reference number", "order #"),
        total_terms=("total", "amount", "total amount", "amount due", "grand total"),
        delivery_terms=("delivery", "shipping", "estimated delivery", "arrival", "expected"),
        status_sets=_EN_STATUS,
        status_terms=_status_terms(_EN_STATUS),
        currency_symbols=("€", "EUR", "$", "USD", "£", "GBP"),
    ),
    "de": LocalePatternSet(
        language="de",
        reject_terms=(
            "abmelden", "werbung", "gutschein", "sonderangebot",
            "stellenangebot", "passwort zurücksetzen",
        ),
        retail_terms=(
            "bestellung", "bestellnummer", "versand", "lieferung", "paket",
            "sendung", "rechnung", "zahlung",
        ),
        order_keywords=(
            "bestellung", "lieferung", "versandt", "unterwegs", "geliefert",
            "zugestellt", "rechnung", "danke für ihre bestellung", "paket",
        ),
        order_terms=("bestellnummer", "auftragsnummer", "bestell-nr"),
        total_terms=("gesamtbetrag", "summe", "gesamt", "betrag"),
        delivery_terms=("lieferung", "zustellung", "voraussichtliche lieferung", "versand"),
        status_sets=_DE_STATUS,
        status_terms=_status_terms(_DE_STATUS),
    ),
    "fr": LocalePatternSet(
        language="fr",
        reject_terms=(
            "se désabonner", "désabonner", "désinscrire",
            "publicité", "offre d'emploi", "réinitialiser votre mot de passe",
            "soldes",
        ),
        retail_terms=(
            "commande", "livraison", "expédition", "colis", "facture",
            "suivi", "paiement",
        ),
        order_keywords=(
            "commande", "livraison", "expédié", "en cours", "livré",
            "facture", "merci pour votre commande", "colis",
        ),
        order_terms=("numéro de commande", "n° de commande", "référence"),
        total_terms=("total", "montant", "montant total", "prix total"),
        delivery_terms=("livraison", "expédition", "livraison prévue", "date de livraison"),
        status_sets=_FR_STATUS,
        status_terms=_status_terms(_FR_STATUS),
    ),
})


def get_locale_patterns(language: str) -> LocalePatternSet:
    """Vocabulary for a language, falling back to the base language."""
    return LOCALE_PATTERNS.get(language) or LOCALE_PATTERNS[BASE_LANGUAGE]


def find_terms(text: str, terms) -> list[str]:
    """Terms that occur in text as case-insensitive substrings, in table order."""
    lowered = text.lower()
    return [term for term in terms if term in lowered]


def find_reject_terms(text: str, language: str) -> list[str]:
    """Language-specific and universal reject terms present in text."""
    patterns = get_locale_patterns(language)
    found = find_terms(text, patterns.reject_terms)
    found.extend(term for term in find_terms(text, UNIVERSAL_REJECT_TERMS) if term not in found)
    return found


def detect_status(text: str, language: str, status_sets=None):
    """
    Derive order status from status vocabulary.

    Returns:
        Tuple of (status, matched_term); matched_term is None when nothing
        matched and the status defaulted to confirmed
    """
    sets = status_sets or get_locale_patterns(language).status_sets
    lowered = text.lower()
    for status, terms in sets:
        for term in terms:
            if term in lowered:
                return status, term
    return OrderStatus.CONFIRMED, None
