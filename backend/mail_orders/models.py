"""
Data models for order extraction.

ExtractionRecord is the canonical output handed to callers; the other types
carry intermediate results between classifier, extractors, LLM backend and
router.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

ORDER_FIELDS = (
    "order_number",
    "amount",
    "estimated_delivery",
    "tracking_number",
    "status",
)


class OrderStatus(str, Enum):
    """Order lifecycle, ordered from least to most terminal"""
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


class ParseMethod(str, Enum):
    """Where the final record came from"""
    REGEX = "regex"
    AI = "ai"
    HYBRID = "hybrid"


class Outcome(str, Enum):
    """Terminal state of one routed email"""
    OK = "ok"
    NOT_AN_ORDER = "not_an_order"
    FAILED = "failed"


@dataclass(frozen=True)
class LineItem:
    """One purchased product line"""
    name: str
    quantity: int = 1
    price: float = 0.0

    def __post_init__(self):
        if not self.name:
            raise ValueError("Line item name is required")
        if self.quantity <= 0:
            raise ValueError(f"Line item quantity must be positive: {self.quantity}")
        if self.price < 0:
            raise ValueError(f"Line item price must be non-negative: {self.price}")


@dataclass
class ExtractionRecord:
    """Structured purchase-order facts extracted from one email"""
    retailer: str
    order_date: str
    language: str
    order_number: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "EUR"
    status: OrderStatus = OrderStatus.CONFIRMED
    estimated_delivery: Optional[str] = None
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    items: Optional[list[LineItem]] = None
    confidence: float = 0.0

    def __post_init__(self):
        self.status = OrderStatus(self.status)
        self.confidence = min(1.0, max(0.0, float(self.confidence)))
        if self.amount is not None and self.amount < 0:
            raise ValueError(f"Order amount must be non-negative: {self.amount}")
        if self.confidence > 0 and not self.retailer:
            raise ValueError("A record with confidence needs a retailer")

    def missing_fields(self) -> list[str]:
        """Scored fields that are still empty (status counts as filled)."""
        return [
            name for name in ORDER_FIELDS
            if name != "status" and getattr(self, name) in (None, "")
        ]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class ClassificationResult:
    """Pre-filter verdict for one email"""
    is_potential_order: bool
    confidence: float
    language: str
    matched_retailer: Optional[str] = None
    selected_extractor: Any = None
    trace: dict[str, list[str]] = field(
        default_factory=lambda: {"accepted_patterns": [], "rejected_patterns": []}
    )


@dataclass
class ExtractionAttempt:
    """Result of one extractor run (pattern or LLM)"""
    record: Optional[ExtractionRecord]
    confidence: float
    method: ParseMethod = ParseMethod.REGEX
    fields_filled: list[str] = field(default_factory=list)
    patterns_matched: list[str] = field(default_factory=list)


@dataclass
class RoutingResult:
    """Terminal outcome of routing one email through the hybrid parser"""
    record: Optional[ExtractionRecord]
    confidence: float
    method: ParseMethod
    processing_time_ms: int = 0
    trace: dict[str, Any] = field(default_factory=dict)
    outcome: Outcome = Outcome.OK
    reason: Optional[str] = None
    email_id: Optional[str] = None

    @classmethod
    def ok(cls, record: ExtractionRecord, method: ParseMethod, **kwargs) -> "RoutingResult":
        return cls(record=record, confidence=record.confidence, method=method,
                   outcome=Outcome.OK, **kwargs)

    @classmethod
    def not_an_order(cls, reason: str = "rejected:not_order", **kwargs) -> "RoutingResult":
        kwargs.setdefault("method", ParseMethod.REGEX)
        return cls(record=None, confidence=0.0, outcome=Outcome.NOT_AN_ORDER,
                   reason=reason, **kwargs)

    @classmethod
    def failed(cls, reason: str, **kwargs) -> "RoutingResult":
        kwargs.setdefault("method", ParseMethod.REGEX)
        return cls(record=None, confidence=0.0, outcome=Outcome.FAILED,
                   reason=reason, **kwargs)

    @property
    def is_order(self) -> bool:
        return self.outcome == Outcome.OK and self.record is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "email_id": self.email_id,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "record": self.record.to_dict() if self.record else None,
            "confidence": self.confidence,
            "method": self.method.value,
            "processing_time_ms": self.processing_time_ms,
            "trace": self.trace,
        }
