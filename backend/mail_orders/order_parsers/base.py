"""
Order Parser Base - Shared Pattern Helpers

Contains:
- The capability contract every retailer extractor satisfies
- PatternExtractor, a data-driven extractor configured per merchant
- Default per-language field patterns shared by merchants
- Confidence scoring and line item extraction helpers
"""

import re
from datetime import date
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Protocol, Sequence, runtime_checkable

from config.parsing_config import DEFAULT_FIELD_WEIGHTS
from mail_orders.email_content import EmailContent
from mail_orders.locale_terms import SUPPORTED_LANGUAGES, detect_status, get_locale_patterns
from mail_orders.models import (
    ExtractionAttempt,
    ExtractionRecord,
    LineItem,
    OrderStatus,
    ParseMethod,
)
from mail_orders.normalizers import detect_currency, parse_locale_date, parse_locale_number

# Token captured as an order number: starts alphanumeric, contains a digit
ORDER_ID = r"((?=[A-Z0-9\-]*\d)[A-Z0-9][A-Z0-9\-]{3,})"

# Token captured as a tracking code: at least 8 characters with a digit
TRACKING_ID = r"((?=[A-Z0-9]*\d)[A-Z0-9]{8,})"

# Amount, either space/dot grouped (1 234,56 / 1.234,56) or any digit run with separators
AMOUNT_VALUE = r"(\d{1,3}(?:[ \u00a0\u202f.]\d{3})+(?:,\d{1,2})?|\d[\d.,]*)"

CURRENCY_PREFIX = r"[:\s]*(?:€|EUR|\$|USD|£|GBP)?\s*"

# Numeric (15-01-2025, 15.01.2025, 2025-01-15) or written (15 januari 2025) date
DATE_TOKEN = r"(\d{4}-\d{1,2}-\d{1,2}|\d{1,2}[\s\-/.]+[^\W_]+\.?[\s\-/.]+\d{2,4})"

FIELD_ORDER_NUMBER = "order_number"
FIELD_AMOUNT = "amount"
FIELD_DELIVERY = "estimated_delivery"
FIELD_TRACKING = "tracking_number"
FIELD_STATUS = "status"

PatternTable = Mapping[str, tuple]


def compile_patterns(table: Mapping[str, Sequence[str]], flags: int = re.IGNORECASE) -> PatternTable:
    """Compile a {language: [regex, ...]} table into an immutable mapping."""
    return MappingProxyType({
        language: tuple(re.compile(pattern, flags) for pattern in patterns)
        for language, patterns in table.items()
    })


def patterns_for(table: PatternTable, language: str) -> tuple:
    """Patterns for a language, falling back to English then the first table entry."""
    if language in table:
        return table[language]
    if "en" in table:
        return table["en"]
    return next(iter(table.values()), ())


def same_for_all_languages(patterns: Sequence[str]) -> dict[str, Sequence[str]]:
    return {language: patterns for language in SUPPORTED_LANGUAGES}


DEFAULT_AMOUNT_PATTERNS = compile_patterns({
    "nl": [
        r"\btotaal(?:bedrag)?(?:\s+incl\.?\s+btw)?" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"\bte betalen" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"\bbedrag" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"€\s*" + AMOUNT_VALUE,
        AMOUNT_VALUE + r"\s*€",
    ],
    "de": [
        r"\bgesamtbetrag(?:\s+inkl\.?\s+mwst\.?)?" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"\b(?:summe|gesamt)" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"\bbetrag" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"€\s*" + AMOUNT_VALUE,
        AMOUNT_VALUE + r"\s*€",
    ],
    "fr": [
        r"\b(?:montant|prix) total(?:\s+ttc)?" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"\btotal(?:\s+ttc)?" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"\bmontant" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"€\s*" + AMOUNT_VALUE,
        AMOUNT_VALUE + r"\s*€",
    ],
    "en": [
        r"\b(?:order|grand) total" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"\btotal(?: amount)?" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"\bamount(?: due)?" + CURRENCY_PREFIX + AMOUNT_VALUE,
        r"(?:€|\$|£)\s*" + AMOUNT_VALUE,
        AMOUNT_VALUE + r"\s*€",
    ],
})

DEFAULT_DELIVERY_PATTERNS = compile_patterns({
    "nl": [
        r"(?:verwachte\s+)?(?:bezorg|lever|ontvang|verwacht)\w*.*?" + DATE_TOKEN,
    ],
    "de": [
        r"(?:voraussichtlich\w*\s+)?(?:liefer|zustell|erwartet|versand)\w*.*?" + DATE_TOKEN,
    ],
    "fr": [
        r"(?:livraison|livré|expédition|attendu|prévu)\w*.*?" + DATE_TOKEN,
    ],
    "en": [
        r"(?:estimated\s+)?(?:deliver|arriv|expected|shipping)\w*.*?" + DATE_TOKEN,
    ],
})

TRACKING_LABEL_PATTERNS = [
    r"track\s*(?:&|and|en)?\s*trace(?:[\s-]?code)?[:\s#]+" + TRACKING_ID,
    r"(?:pakketcode|barcode|zendingnummer|zendingscode)[:\s#]+" + TRACKING_ID,
    r"sendungsnummer[:\s#]+" + TRACKING_ID,
    r"(?:numéro de suivi|suivi)[:\s#]+" + TRACKING_ID,
    r"tracking(?:[\s-]?(?:number|nummer|code|id))?[:\s#]+" + TRACKING_ID,
]

DEFAULT_TRACKING_PATTERNS = compile_patterns(same_for_all_languages(TRACKING_LABEL_PATTERNS))

# Line items: "2x Product name   € 19,99" or "Product name € 19,99"
ITEM_LINE = re.compile(
    r"^[ \t]*(?:(\d{1,3})[ \t]*[x×][ \t]+)?([^\n€]{3,200}?)[ \t]+(?:€|EUR)[ \t]*" + AMOUNT_VALUE + r"[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)

SKIP_ITEM_TERMS = (
    "totaal", "subtotaal", "verzend", "bezorgkosten", "korting", "btw", "bedrag",
    "total", "subtotal", "shipping", "discount", "vat", "tax", "amount",
    "gesamt", "summe", "versand", "rabatt", "mwst", "betrag",
    "livraison", "remise", "tva", "montant",
)


def score_confidence(fields_filled: Iterable[str], weights: Optional[Mapping[str, float]] = None) -> float:
    """Sum of weights of filled fields, capped at 1.0."""
    weights = weights or DEFAULT_FIELD_WEIGHTS
    score = sum(weights.get(name, 0.0) for name in set(fields_filled))
    return round(min(score, 1.0), 4)


def first_match(patterns: Iterable, text: str):
    """First (pattern, match) over ordered patterns, or (None, None)."""
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return pattern, match
    return None, None


def extract_line_items(text: str, language: str) -> list[LineItem]:
    """Product lines with a trailing euro price; totals and fees are skipped."""
    items = []
    for match in ITEM_LINE.finditer(text):
        name = match.group(2).strip(" \t-:*")
        lowered = name.lower()
        if len(name) < 3 or any(term in lowered for term in SKIP_ITEM_TERMS):
            continue
        quantity = int(match.group(1)) if match.group(1) else 1
        if quantity <= 0:
            continue
        items.append(LineItem(
            name=name,
            quantity=quantity,
            price=parse_locale_number(match.group(3), language),
        ))
    return items


def domain_matches(sender_domain: str, domains: Iterable[str]) -> bool:
    """Exact or subdomain match ('email.coolblue.nl' matches 'coolblue.nl')."""
    if not sender_domain:
        return False
    sender_domain = sender_domain.lower()
    return any(
        sender_domain == domain or sender_domain.endswith("." + domain)
        for domain in domains
    )


@runtime_checkable
class RetailerExtractor(Protocol):
    """Capability contract for merchant-specific extractors."""

    name: str
    domains: tuple

    def can_handle(self, email: EmailContent, language: Optional[str] = None) -> bool:
        ...

    def extract(self, text: str, retailer: Optional[str], language: str,
                received_date: Optional[str] = None) -> ExtractionAttempt:
        ...


class PatternExtractor:
    """Regex extractor driven by per-language pattern tables.

    Each merchant module builds one of these with its own domains, subject
    keywords and order number formats; amount, delivery and tracking
    patterns default to the shared tables above. Instances are stateless.
    """

    def __init__(
        self,
        name: str,
        domains: Sequence[str],
        order_number_patterns: Mapping[str, Sequence[str]],
        order_keywords: Optional[Mapping[str, Sequence[str]]] = None,
        amount_patterns: Optional[PatternTable] = None,
        delivery_patterns: Optional[PatternTable] = None,
        tracking_patterns: Optional[PatternTable] = None,
        status_sets: Optional[Mapping[str, tuple]] = None,
        subject_patterns: Sequence[str] = (),
        retailer_patterns: Sequence[str] = (),
        carrier: Optional[str] = None,
        tracking_carrier: Optional[str] = None,
        default_status: OrderStatus = OrderStatus.CONFIRMED,
        extract_items: bool = True,
    ):
        self.name = name
        self.domains = tuple(domain.lower() for domain in domains)
        self.order_number_patterns = compile_patterns(order_number_patterns)
        self.order_keywords = MappingProxyType({
            language: tuple(keyword.lower() for keyword in keywords)
            for language, keywords in (order_keywords or {}).items()
        })
        self.amount_patterns = amount_patterns or DEFAULT_AMOUNT_PATTERNS
        self.delivery_patterns = delivery_patterns or DEFAULT_DELIVERY_PATTERNS
        self.tracking_patterns = tracking_patterns or DEFAULT_TRACKING_PATTERNS
        self.status_sets = MappingProxyType({
            language: tuple((OrderStatus(status), tuple(terms)) for status, terms in sets)
            for language, sets in (status_sets or {}).items()
        })
        self.subject_patterns = tuple(re.compile(p, re.IGNORECASE) for p in subject_patterns)
        self.retailer_patterns = tuple(re.compile(p, re.IGNORECASE) for p in retailer_patterns)
        self.carrier = carrier
        self.tracking_carrier = tracking_carrier
        self.default_status = OrderStatus(default_status)
        self.extract_items = extract_items

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r})"

    def keywords_for(self, language: Optional[str]) -> tuple:
        if language is None:
            keywords = set(get_locale_patterns("en").order_keywords)
            for language_code in SUPPORTED_LANGUAGES:
                keywords.update(self.keywords_for(language_code))
            return tuple(sorted(keywords))
        if language in self.order_keywords:
            return self.order_keywords[language]
        return get_locale_patterns(language).order_keywords

    def can_handle(self, email: EmailContent, language: Optional[str] = None) -> bool:
        """Sender domain is ours and the subject looks order-related."""
        if not domain_matches(email.sender_domain, self.domains):
            return False

        subject = (email.subject or "").lower()
        if any(keyword in subject for keyword in self.keywords_for(language)):
            return True
        return any(pattern.search(email.subject or "") for pattern in self.subject_patterns)

    def extract(self, text: str, retailer: Optional[str], language: str,
                received_date: Optional[str] = None,
                weights: Optional[Mapping[str, float]] = None) -> ExtractionAttempt:
        """
        Run the ordered field patterns over text.

        Args:
            text: Subject and body text
            retailer: Retailer name resolved by the classifier (optional)
            language: Detected language code
            received_date: Email received date (YYYY-MM-DD) used as order date
            weights: Confidence weight table (defaults to the standard weights)

        Returns:
            ExtractionAttempt; record is None when no scored field was found
        """
        fields_filled = []
        patterns_matched = []

        order_number = None
        pattern, match = first_match(patterns_for(self.order_number_patterns, language), text)
        if match:
            order_number = match.group(1).strip("-").upper()
            fields_filled.append(FIELD_ORDER_NUMBER)
            patterns_matched.append(f"{FIELD_ORDER_NUMBER}: {pattern.pattern}")

        amount, currency = self._extract_amount(text, language, patterns_matched)
        if amount is not None:
            fields_filled.append(FIELD_AMOUNT)

        estimated_delivery = self._extract_delivery(text, language, patterns_matched)
        if estimated_delivery:
            fields_filled.append(FIELD_DELIVERY)

        tracking_number = None
        pattern, match = first_match(patterns_for(self.tracking_patterns, language), text)
        if match:
            tracking_number = match.group(1).upper()
            fields_filled.append(FIELD_TRACKING)
            patterns_matched.append(f"{FIELD_TRACKING}: {pattern.pattern}")

        status, status_term = detect_status(text, language, self.status_sets.get(language))
        if status_term:
            patterns_matched.append(f"{FIELD_STATUS}: {status_term}")
        else:
            status = self.default_status

        found_any = bool(fields_filled)
        # Status always counts: it is either detected or defaulted
        fields_filled.append(FIELD_STATUS)

        confidence = score_confidence(fields_filled, weights)
        if not found_any or confidence <= 0:
            return ExtractionAttempt(record=None, confidence=0.0, method=ParseMethod.REGEX,
                                     fields_filled=[], patterns_matched=patterns_matched)

        carrier = self.carrier
        if carrier is None and tracking_number and self.tracking_carrier:
            carrier = self.tracking_carrier

        items = extract_line_items(text, language) if self.extract_items else []

        record = ExtractionRecord(
            retailer=self._resolve_retailer(text, retailer),
            order_date=received_date or date.today().isoformat(),
            language=language,
            order_number=order_number,
            amount=amount,
            currency=currency,
            status=status,
            estimated_delivery=estimated_delivery,
            tracking_number=tracking_number,
            carrier=carrier,
            items=items or None,
            confidence=confidence,
        )

        return ExtractionAttempt(
            record=record,
            confidence=confidence,
            method=ParseMethod.REGEX,
            fields_filled=fields_filled,
            patterns_matched=patterns_matched,
        )

    def _extract_amount(self, text, language, patterns_matched):
        for pattern in patterns_for(self.amount_patterns, language):
            for match in pattern.finditer(text):
                amount = parse_locale_number(match.group(1), language)
                if amount > 0:
                    patterns_matched.append(f"{FIELD_AMOUNT}: {pattern.pattern}")
                    context = text[max(0, match.start() - 5):match.end() + 5]
                    return amount, detect_currency(context)
        return None, "EUR"

    def _extract_delivery(self, text, language, patterns_matched):
        for pattern in patterns_for(self.delivery_patterns, language):
            for match in pattern.finditer(text):
                delivery = parse_locale_date(match.group(1), language)
                if delivery:
                    patterns_matched.append(f"{FIELD_DELIVERY}: {pattern.pattern}")
                    return delivery
        return None

    def _resolve_retailer(self, text, retailer):
        for pattern in self.retailer_patterns:
            match = pattern.search(text)
            if match:
                name = match.group(1).strip(" .,:")
                if name:
                    return name
        return retailer or self.name
