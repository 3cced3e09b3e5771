"""
Number/Date Normalizer

Locale-aware parsing of amounts and dates pulled out of email text by the
retailer extractors and returned by the LLM backend. Both parsers are total:
bad input gives 0.0 / None, never an exception.
"""

import re
from datetime import date
from typing import Optional

from mail_orders.locale_terms import DECIMAL_COMMA_LANGUAGES

# Currency symbols and codes stripped before parsing
CURRENCY_PATTERN = re.compile(r"[€$£¥]|\b(?:EUR|USD|GBP)\b", re.IGNORECASE)

# A comma followed by exactly 1-2 digits with no further digits, or
# dot-grouped thousands followed by a decimal comma
DECIMAL_COMMA_PATTERN = re.compile(r"^\d+,\d{1,2}(?!\d)|^\d{1,3}(?:\.\d{3})+,\d{1,2}(?!\d)")

# Dot-grouped thousands without decimals (1.234)
DOT_GROUPED_PATTERN = re.compile(r"^\d{1,3}(?:\.\d{3})+$")

# Comma-grouped thousands with optional decimal dot (1,234.56)
COMMA_GROUPED_PATTERN = re.compile(r"^\d{1,3}(?:,\d{3})+(?:\.\d+)?$")

LEADING_NUMBER = re.compile(r"^\d+(?:\.\d+)?")

CURRENCY_SYMBOLS = (
    ("€", "EUR"),
    ("£", "GBP"),
    ("$", "USD"),
)


def parse_locale_number(value, language: str = "nl") -> float:
    """
    Parse an amount string written in the given language's convention.

    Decimal-comma languages (nl, de, fr) read '1.234,56' as 1234.56 and
    '89,99' as 89.99. Dot-decimal languages (en) only accept commas as
    thousands separators in '1,234.56'; anything else is read up to the
    first character that cannot continue a plain decimal number.

    Args:
        value: Raw amount text (may include currency symbols)
        language: Two-letter language code

    Returns:
        Parsed non-negative float, or 0.0 when the value is not a number
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else 0.0

    cleaned = CURRENCY_PATTERN.sub("", str(value))
    cleaned = re.sub(r"[\s']", "", cleaned)
    # Drop trailing separators and signs ("89,99." / "-12,00")
    cleaned = cleaned.strip(".,-+")

    if not cleaned or not cleaned[0].isdigit():
        return 0.0

    if language in DECIMAL_COMMA_LANGUAGES:
        match = DECIMAL_COMMA_PATTERN.match(cleaned)
        if match:
            cleaned = match.group(0).replace(".", "").replace(",", ".")
        elif DOT_GROUPED_PATTERN.match(cleaned):
            cleaned = cleaned.replace(".", "")
        else:
            cleaned = cleaned.replace(",", "")
    elif COMMA_GROUPED_PATTERN.match(cleaned):
        cleaned = cleaned.replace(",", "")

    number = LEADING_NUMBER.match(cleaned)
    if not number:
        return 0.0

    try:
        result = float(number.group(0))
    except ValueError:
        return 0.0

    return result if result > 0 else 0.0


def detect_currency(text: str, default: str = "EUR") -> str:
    """Currency code from the first symbol or code present in text."""
    if not text:
        return default

    positions = []
    for symbol, code in CURRENCY_SYMBOLS:
        for marker in (symbol, code):
            index = text.find(marker)
            if index >= 0:
                positions.append((index, code))

    if not positions:
        return default
    return min(positions)[1]


MONTH_NAMES = {
    "nl": {
        "januari": 1, "jan": 1, "februari": 2, "feb": 2, "maart": 3, "mrt": 3,
        "april": 4, "apr": 4, "mei": 5, "juni": 6, "jun": 6, "juli": 7, "jul": 7,
        "augustus": 8, "aug": 8, "september": 9, "sep": 9, "sept": 9,
        "oktober": 10, "okt": 10, "november": 11, "nov": 11, "december": 12, "dec": 12,
    },
    "de": {
        "januar": 1, "jan": 1, "jänner": 1, "februar": 2, "feb": 2, "märz": 3, "mär": 3,
        "april": 4, "apr": 4, "mai": 5, "juni": 6, "jun": 6, "juli": 7, "jul": 7,
        "august": 8, "aug": 8, "september": 9, "sep": 9, "sept": 9,
        "oktober": 10, "okt": 10, "november": 11, "nov": 11, "dezember": 12, "dez": 12,
    },
    "fr": {
        "janvier": 1, "janv": 1, "février": 2, "fevrier": 2, "févr": 2, "mars": 3,
        "avril": 4, "avr": 4, "mai": 5, "juin": 6, "juillet": 7, "juil": 7,
        "août": 8, "aout": 8, "septembre": 9, "sept": 9, "octobre": 10, "oct": 10,
        "novembre": 11, "nov": 11, "décembre": 12, "decembre": 12, "déc": 12,
    },
    "en": {
        "january": 1, "jan": 1, "february": 2, "feb": 2, "march": 3, "mar": 3,
        "april": 4, "apr": 4, "may": 5, "june": 6, "jun": 6, "july": 7, "jul": 7,
        "august": 8, "aug": 8, "september": 9, "sep": 9, "sept": 9,
        "october": 10, "oct": 10, "november": 11, "nov": 11, "december": 12, "dec": 12,
    },
}

# Ordered numeric patterns per language; each yields (day, month, year) group names
DATE_PATTERNS = {
    "nl": (
        re.compile(r"\b(?P<day>\d{1,2})(?P<sep>[/.-])(?P<month>\d{1,2})(?P=sep)(?P<year>\d{4}|\d{2})\b"),
        re.compile(r"\b(?P<year>\d{4})[/-](?P<month>\d{1,2})[/-](?P<day>\d{1,2})\b"),
    ),
    "de": (
        re.compile(r"\b(?P<day>\d{1,2})\.\s?(?P<month>\d{1,2})\.\s?(?P<year>\d{4}|\d{2})\b"),
        re.compile(r"\b(?P<year>\d{4})[.-](?P<month>\d{1,2})[.-](?P<day>\d{1,2})\b"),
    ),
    "fr": (
        re.compile(r"\b(?P<day>\d{1,2})/(?P<month>\d{1,2})/(?P<year>\d{4}|\d{2})\b"),
        re.compile(r"\b(?P<year>\d{4})[/-](?P<month>\d{1,2})[/-](?P<day>\d{1,2})\b"),
    ),
    "en": (
        re.compile(r"\b(?P<day>\d{1,2})(?P<sep>[/-])(?P<month>\d{1,2})(?P=sep)(?P<year>\d{4}|\d{2})\b"),
        re.compile(r"\b(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})\b"),
    ),
}

WRITTEN_DAY_FIRST = re.compile(
    r"\b(?P<day>\d{1,2})(?:st|nd|rd|th|er|e)?\.?\s+(?P<month>[^\W\d_]{3,10})\.?,?\s+(?P<year>\d{4})\b"
)
WRITTEN_MONTH_FIRST = re.compile(
    r"\b(?P<month>[^\W\d_]{3,10})\.?\s+(?P<day>\d{1,2})(?:st|nd|rd|th)?,?\s+(?P<year>\d{4})\b"
)


def _build_date(year: int, month: int, day: int) -> Optional[str]:
    if year < 100:
        year += 2000
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_locale_date(value: str, language: str = "nl") -> Optional[str]:
    """
    Parse a date written in the given language's convention.

    Numeric patterns are tried first (day-month-year, then year-month-day),
    then written month names ('15 januari 2025', 'January 15, 2025').

    Args:
        value: Raw date text
        language: Two-letter language code

    Returns:
        YYYY-MM-DD string, or None when no pattern yields a valid date
    """
    if not value:
        return None

    text = str(value).strip()

    for pattern in DATE_PATTERNS.get(language, DATE_PATTERNS["nl"]):
        match = pattern.search(text)
        if not match:
            continue
        result = _build_date(
            int(match.group("year")), int(match.group("month")), int(match.group("day"))
        )
        if result:
            return result

    months = MONTH_NAMES.get(language, MONTH_NAMES["nl"])
    lowered = text.lower()
    for pattern in (WRITTEN_DAY_FIRST, WRITTEN_MONTH_FIRST):
        for match in pattern.finditer(lowered):
            month = months.get(match.group("month").rstrip("."))
            if month is None:
                continue
            result = _build_date(int(match.group("year")), month, int(match.group("day")))
            if result:
                return result

    return None


def normalize_iso_date(value) -> Optional[str]:
    """Accept ISO dates or timestamps ('2025-01-15T10:00:00Z') and keep the date part."""
    if not value:
        return None
    match = re.match(r"^\s*(\d{4})-(\d{2})-(\d{2})", str(value))
    if not match:
        return None
    return _build_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
