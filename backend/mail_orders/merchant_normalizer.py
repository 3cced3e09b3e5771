"""
Merchant Name Normalizer
Standardizes retailer names so LLM-reported or sender-derived names line up
with the names the retailer registry knows.
"""

import difflib
import re

# Names that should always map to one canonical form
MERCHANT_MAPPINGS: dict[str, str] = {
    "bol": "Bol.com",
    "bolcom": "Bol.com",
    "coolblue": "Coolblue",
    "zalando": "Zalando",
    "amazon": "Amazon",
    "amazon eu": "Amazon",
    "dhl": "DHL",
    "dhl parcel": "DHL",
    "dhl ecommerce": "DHL",
    "postnl": "PostNL",
}

SIMILARITY_THRESHOLD = 0.8

LEGAL_SUFFIXES = r"\b(?:b\.?v|n\.?v|gmbh|ag|sarl|sas|ltd|inc|llc|s\.?a)\b\.?"


def normalize_retailer_name(name: str) -> str:
    """
    Reduce a retailer name to a comparison key.

    Lowercases, drops mail prefixes, domain suffixes, legal suffixes and
    punctuation: 'Coolblue B.V.' -> 'coolblue', 'www.bol.com' -> 'bol',
    'Amazon.de' -> 'amazon'.
    """
    if not name:
        return ""

    key = name.lower().strip()
    key = re.sub(r"^(?:www\.|mail\.|email\.|no-?reply@|info@)", "", key)
    key = re.sub(r"\.(?:com|nl|be|de|fr|at|co\.uk|eu)\b", "", key)
    key = re.sub(LEGAL_SUFFIXES, "", key)
    key = re.sub(r"[^\w\s]", " ", key)
    key = re.sub(r"\s+", " ", key)

    return key.strip()


def string_similarity(a: str, b: str) -> float:
    """Similarity ratio in [0, 1] between two normalized names."""
    a = normalize_retailer_name(a)
    b = normalize_retailer_name(b)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return difflib.SequenceMatcher(None, a[:100], b[:100]).ratio()


def find_similar_names(name: str, candidates, threshold: float = SIMILARITY_THRESHOLD) -> list[tuple[str, float]]:
    """
    Candidates similar to name, best first.

    Args:
        name: Name to look up
        candidates: Iterable of known names
        threshold: Minimum similarity ratio

    Returns:
        List of (candidate, score) tuples sorted by score descending
    """
    scored = []
    for candidate in candidates:
        score = string_similarity(name, candidate)
        if score >= threshold:
            scored.append((candidate, score))

    return sorted(scored, key=lambda pair: (-pair[1], pair[0]))


def canonical_retailer_name(name: str) -> str:
    """Apply fixed mappings, otherwise return the trimmed input."""
    if not name:
        return ""
    return MERCHANT_MAPPINGS.get(normalize_retailer_name(name), name.strip())
