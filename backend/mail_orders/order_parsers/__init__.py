"""
Order Parsers - Retailer Pattern Registry and Merchant Extractors

One module per merchant family:
- coolblue.py: Coolblue (nl/be/de)
- amazon.py: Amazon storefronts (nl/de/fr/com/co.uk)
- zalando.py: Zalando (nl/be/de/fr)
- bol.py: Bol.com
- carriers.py: DHL and PostNL tracking notifications

Usage:
    from mail_orders.order_parsers import build_default_registry

    registry = build_default_registry()
    extractor = registry.find_extractor(email, language="nl")
    if extractor:
        attempt = extractor.extract(email.full_text(), extractor.name, "nl")
"""

from .base import PatternExtractor, RetailerExtractor, score_confidence
from .registry import (
    RETAILER_FACTORIES,
    RetailerRegistry,
    build_default_registry,
    register_retailer,
)

# Import merchant modules to trigger @register_retailer decorators.
# Merchants come before carriers so a merchant claims its own mail first.
from . import coolblue
from . import amazon
from . import zalando
from . import bol
from . import carriers

__all__ = [
    "PatternExtractor",
    "RetailerExtractor",
    "RetailerRegistry",
    "RETAILER_FACTORIES",
    "build_default_registry",
    "register_retailer",
    "score_confidence",
]
