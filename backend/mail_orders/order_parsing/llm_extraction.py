"""
LLM-based Extraction

Builds the configured LLM backend and maps its camelCase answers onto
ExtractionRecord. The backend is free-form JSON, so every field is coerced:
string amounts go through the locale normalizer, unknown statuses are mapped
onto the three lifecycle states and malformed items are dropped.
"""

from datetime import date
from typing import Any, Optional

from config.llm_config import AIProvider, LLMConfig, load_llm_config
from mail_orders.email_content import EmailContent
from mail_orders.llm_providers import AnthropicProvider, BaseLLMProvider, GoogleProvider
from mail_orders.logging_config import get_logger
from mail_orders.merchant_normalizer import canonical_retailer_name
from mail_orders.models import ExtractionRecord, LineItem, OrderStatus
from mail_orders.normalizers import normalize_iso_date, parse_locale_date, parse_locale_number

logger = get_logger(__name__)

PROVIDER_CLASSES = {
    AIProvider.ANTHROPIC: AnthropicProvider,
    AIProvider.GOOGLE: GoogleProvider,
}

DEFAULT_LLM_CONFIDENCE = 0.5

# Statuses models report outside the confirmed/shipped/delivered enum
STATUS_ALIASES = {
    "ordered": OrderStatus.CONFIRMED,
    "placed": OrderStatus.CONFIRMED,
    "pending": OrderStatus.CONFIRMED,
    "processing": OrderStatus.CONFIRMED,
    "in_transit": OrderStatus.SHIPPED,
    "in transit": OrderStatus.SHIPPED,
    "dispatched": OrderStatus.SHIPPED,
    "out_for_delivery": OrderStatus.SHIPPED,
    "on_the_way": OrderStatus.SHIPPED,
    "arrived": OrderStatus.DELIVERED,
    "returned": OrderStatus.DELIVERED,
}


def get_llm_provider(config: Optional[LLMConfig] = None, **kwargs) -> Optional[BaseLLMProvider]:
    """
    Construct the configured LLM backend.

    Args:
        config: LLM configuration (loaded from the environment when omitted)
        **kwargs: Extra provider arguments (text_limit, sleep)

    Returns:
        Provider instance, or None when no backend is configured
    """
    config = config or load_llm_config()
    if not config:
        logger.info("LLM backend not configured, hybrid parser runs regex-only")
        return None

    ProviderClass = PROVIDER_CLASSES.get(config.provider)
    if not ProviderClass:
        logger.warning(f"Unknown LLM provider: {config.provider}")
        return None

    provider = ProviderClass(
        api_key=config.api_key,
        model=config.model,
        timeout=config.timeout,
        debug=config.debug,
        batch_size=config.batch_size,
        **kwargs,
    )
    logger.info(f"LLM backend ready: {config.provider.value} ({config.model})")
    return provider


def email_payload(email: EmailContent, language: str, key: Optional[str] = None,
                  missing_fields=None, retailer: Optional[str] = None) -> dict[str, Any]:
    """Content dict handed to the LLM backend for one email."""
    payload = {
        "id": key or email.id,
        "subject": email.subject,
        "sender": email.sender,
        "date": email.date.isoformat() if email.date else None,
        "body": email.body,
        "language": language,
    }
    if missing_fields:
        payload["missing_fields"] = list(missing_fields)
    if retailer:
        payload["retailer"] = retailer
    return payload


def llm_failed(result: Optional[dict[str, Any]]) -> bool:
    """True when the backend call itself failed (as opposed to answering 'not an order')."""
    if not result:
        return True
    debug_info = result.get("debugInfo") or {}
    return bool(debug_info.get("error"))


def coerce_status(value: Any) -> Optional[OrderStatus]:
    if not value:
        return None
    key = str(value).strip().lower()
    try:
        return OrderStatus(key)
    except ValueError:
        return STATUS_ALIASES.get(key) or STATUS_ALIASES.get(key.replace(" ", "_"))


def coerce_amount(value: Any, language: str) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    amount = parse_locale_number(value, language)
    return amount if amount > 0 else None


def coerce_confidence(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return DEFAULT_LLM_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_LLM_CONFIDENCE
    return min(1.0, max(0.0, confidence))


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def sanitize_items(items: Any, language: str) -> Optional[list[LineItem]]:
    """Line items with a name, a positive integer quantity and a non-negative price."""
    if not isinstance(items, list):
        return None

    result = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name = _text(item.get("name"))
        if not name:
            continue
        try:
            quantity = int(float(item.get("quantity") or 1))
        except (TypeError, ValueError, OverflowError):
            quantity = 1
        price = coerce_amount(item.get("price"), language) or 0.0
        result.append(LineItem(name=name, quantity=max(quantity, 1), price=price))

    return result or None


def record_from_llm(order_data: dict[str, Any], language: str,
                    fallback_retailer: Optional[str] = None,
                    received_date: Optional[str] = None,
                    registry=None) -> Optional[ExtractionRecord]:
    """
    Map a backend orderData dict onto an ExtractionRecord.

    Args:
        order_data: orderData (or missingFields) from the backend
        language: Detected language, used for string amounts and dates
        fallback_retailer: Retailer known from the classifier or regex attempt
        received_date: Email received date (YYYY-MM-DD), wins over orderDate
        registry: RetailerRegistry used to map names onto registered merchants

    Returns:
        ExtractionRecord, or None when no retailer can be determined
    """
    order_data = order_data or {}

    retailer = _text(order_data.get("retailer")) or fallback_retailer
    if retailer and registry is not None:
        retailer = registry.resolve_retailer_name(retailer)
    elif retailer:
        retailer = canonical_retailer_name(retailer)
    if not retailer:
        logger.debug("LLM result has no retailer, discarding")
        return None

    estimated_delivery = order_data.get("estimatedDelivery")
    estimated_delivery = (
        normalize_iso_date(estimated_delivery)
        or parse_locale_date(estimated_delivery, language)
    )

    currency = _text(order_data.get("currency"))
    currency = currency.upper() if currency and len(currency) == 3 else "EUR"

    tracking_number = _text(order_data.get("trackingNumber"))

    return ExtractionRecord(
        retailer=retailer,
        order_date=(
            received_date
            or normalize_iso_date(order_data.get("orderDate"))
            or date.today().isoformat()
        ),
        language=language,
        order_number=_text(order_data.get("orderNumber")),
        amount=coerce_amount(order_data.get("amount"), language),
        currency=currency,
        status=coerce_status(order_data.get("status")) or OrderStatus.CONFIRMED,
        estimated_delivery=estimated_delivery,
        tracking_number=tracking_number.upper() if tracking_number else None,
        carrier=_text(order_data.get("carrier")),
        items=sanitize_items(order_data.get("items"), language),
        confidence=coerce_confidence(order_data.get("confidence")),
    )
