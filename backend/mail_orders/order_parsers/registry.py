"""
Retailer Pattern Registry

Merchant modules declare their extractor factories with @register_retailer;
build_default_registry() instantiates them into a RetailerRegistry that is
sealed before any email is classified. Pipelines receive the registry
explicitly, so tests can build one with a custom extractor set.
"""

from typing import Callable, Iterator, Optional

from mail_orders.email_content import EmailContent
from mail_orders.error_tracking import RegistryFrozenError
from mail_orders.logging_config import get_logger
from mail_orders.merchant_normalizer import (
    canonical_retailer_name,
    find_similar_names,
    normalize_retailer_name,
)
from mail_orders.order_parsers.base import RetailerExtractor, domain_matches

logger = get_logger(__name__)

ExtractorFactory = Callable[[], RetailerExtractor]

# Factories in declaration order; merchants are declared before carriers
RETAILER_FACTORIES: list[ExtractorFactory] = []


def register_retailer(factory: ExtractorFactory) -> ExtractorFactory:
    """Decorator to declare an extractor factory for the default registry."""
    RETAILER_FACTORIES.append(factory)
    return factory


class RetailerRegistry:
    """Lookup from merchant identity to extractor.

    Keyed by normalized merchant name. Writable until freeze() is called,
    read-only afterwards.
    """

    def __init__(self, extractors=()):
        self._extractors: dict[str, RetailerExtractor] = {}
        self._frozen = False
        for extractor in extractors:
            self.register(extractor)

    def __len__(self) -> int:
        return len(self._extractors)

    def __iter__(self) -> Iterator[RetailerExtractor]:
        return iter(self._extractors.values())

    def __contains__(self, name: str) -> bool:
        return normalize_retailer_name(name) in self._extractors

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, extractor: RetailerExtractor) -> None:
        """Add an extractor; names must be unique after normalization."""
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {extractor.name}: registry is frozen"
            )
        if not isinstance(extractor, RetailerExtractor):
            raise TypeError(f"Not a retailer extractor: {extractor!r}")

        key = normalize_retailer_name(extractor.name)
        if not key:
            raise ValueError("Extractor name is required")
        if key in self._extractors:
            raise ValueError(f"Extractor already registered: {extractor.name}")

        self._extractors[key] = extractor
        logger.debug(f"Registered retailer extractor: {extractor.name}")

    def freeze(self) -> "RetailerRegistry":
        """Seal the registry; later register() calls raise RegistryFrozenError."""
        self._frozen = True
        return self

    def find_extractor(self, email: EmailContent, language: Optional[str] = None) -> Optional[RetailerExtractor]:
        """First extractor whose can_handle accepts the email."""
        for extractor in self._extractors.values():
            if extractor.can_handle(email, language):
                return extractor
        return None

    def find_by_domain(self, sender_domain: str) -> Optional[RetailerExtractor]:
        """Extractor owning a sender domain, regardless of subject."""
        for extractor in self._extractors.values():
            if domain_matches(sender_domain, extractor.domains):
                return extractor
        return None

    def get_extractor(self, name: str) -> Optional[RetailerExtractor]:
        """Extractor by name, tolerating spelling and suffix differences."""
        key = normalize_retailer_name(canonical_retailer_name(name))
        if key in self._extractors:
            return self._extractors[key]

        similar = find_similar_names(key, self._extractors.keys())
        if similar:
            return self._extractors[similar[0][0]]
        return None

    def get_all_names(self) -> list[str]:
        return [extractor.name for extractor in self._extractors.values()]

    def resolve_retailer_name(self, name: Optional[str]) -> Optional[str]:
        """Registered display name for a reported retailer, else its canonical form."""
        if not name:
            return None
        extractor = self.get_extractor(name)
        if extractor is not None:
            return extractor.name
        return canonical_retailer_name(name) or None


def build_default_registry() -> RetailerRegistry:
    """Instantiate every declared merchant extractor into a sealed registry."""
    # Importing the package runs the @register_retailer declarations
    import mail_orders.order_parsers  # noqa: F401

    registry = RetailerRegistry(factory() for factory in RETAILER_FACTORIES)
    logger.info(f"Retailer registry built with {len(registry)} extractors")
    return registry.freeze()
