"""Statistics tracking for hybrid order parsing runs.

Aggregates routing results in memory:
- Per-method counts (regex, ai, hybrid)
- Per-outcome, per-language and per-retailer counts
- Field extraction rates (order_number, amount, delivery, tracking, items)
- Error type aggregation from routing traces
- Performance metrics (processing time, confidence)

Usage:
    from mail_orders.statistics_tracker import ParsingStatistics

    stats = ParsingStatistics()
    for result in parser.classify_and_extract_batch(emails):
        stats.record_result(result)

    logger.info(stats.get_summary())
"""

from collections import defaultdict
from typing import Any

from mail_orders.models import ORDER_FIELDS, Outcome, RoutingResult

TRACKED_FIELDS = tuple(name for name in ORDER_FIELDS if name != "status") + ("items",)


class ParsingStatistics:
    """Tracks statistics over a set of routing results.

    Attributes:
        total: Number of results recorded
        by_outcome: Dict of {outcome: count}
        by_method: Dict of {method: count} for extracted orders
        by_language: Dict of {language: count}
        by_retailer: Dict of {retailer: count} for extracted orders
        field_extraction: Dict of {field: {attempted: N, success: N}}
        errors: Dict of {error_type: count}
        processing_times: Per-email processing time in ms
        confidences: Confidence of each extracted order
    """

    def __init__(self):
        self.total = 0
        self.by_outcome = defaultdict(int)
        self.by_method = defaultdict(int)
        self.by_language = defaultdict(int)
        self.by_retailer = defaultdict(int)
        self.field_extraction = {
            name: {"attempted": 0, "success": 0} for name in TRACKED_FIELDS
        }
        self.errors = defaultdict(int)
        self.processing_times = []
        self.confidences = []

    @classmethod
    def from_results(cls, results) -> "ParsingStatistics":
        stats = cls()
        for result in results:
            stats.record_result(result)
        return stats

    def record_result(self, result: RoutingResult) -> None:
        """Record one routing result.

        Args:
            result: RoutingResult from HybridOrderParser
        """
        self.total += 1
        self.by_outcome[result.outcome.value] += 1
        self.processing_times.append(result.processing_time_ms)

        language = result.trace.get("language")
        if language:
            self.by_language[language] += 1

        for key in ("error", "llm_error"):
            error = result.trace.get(key)
            if isinstance(error, dict):
                self.record_error(error.get("error_type", "unknown"))
            elif error:
                self.record_error("unknown")

        if result.outcome != Outcome.OK or result.record is None:
            return

        record = result.record
        self.by_method[result.method.value] += 1
        self.by_retailer[record.retailer] += 1
        self.confidences.append(result.confidence)

        for name, extracted in self._extract_field_flags(record).items():
            self.field_extraction[name]["attempted"] += 1
            if extracted:
                self.field_extraction[name]["success"] += 1

    def record_error(self, error_type: str) -> None:
        """Record an error by type.

        Args:
            error_type: Error type (api_error, timeout, rate_limit, etc.)
        """
        self.errors[error_type] += 1

    def _extract_field_flags(self, record) -> dict[str, bool]:
        return {
            name: getattr(record, name) not in (None, "", [])
            for name in TRACKED_FIELDS
        }

    def to_dict(self) -> dict[str, Any]:
        """Export statistics.

        Returns:
            Dictionary with aggregated statistics:
            {
                "total": 10,
                "by_outcome": {"ok": 7, "not_an_order": 3},
                "by_method": {"regex": 5, "hybrid": 1, "ai": 1},
                "by_language": {"nl": 8, "en": 2},
                "by_retailer": {"Coolblue": 4, ...},
                "field_extraction": {"amount": {"attempted": 7, "success": 6}, ...},
                "errors": {"rate_limit": 1},
                "performance": {"avg_processing_time_ms": 12, "avg_confidence": 0.81}
            }
        """
        avg_processing_time_ms = None
        if self.processing_times:
            avg_processing_time_ms = int(sum(self.processing_times) / len(self.processing_times))

        avg_confidence = None
        if self.confidences:
            avg_confidence = round(sum(self.confidences) / len(self.confidences), 4)

        return {
            "total": self.total,
            "by_outcome": dict(self.by_outcome),
            "by_method": dict(self.by_method),
            "by_language": dict(self.by_language),
            "by_retailer": dict(self.by_retailer),
            "field_extraction": self.field_extraction,
            "errors": dict(self.errors),
            "performance": {
                "avg_processing_time_ms": avg_processing_time_ms,
                "avg_confidence": avg_confidence,
            },
        }

    def get_summary(self) -> str:
        """Get human-readable summary of statistics.

        Returns:
            Summary string for logging/display
        """
        if self.total == 0:
            return "No emails parsed"

        orders = self.by_outcome.get(Outcome.OK.value, 0)
        order_rate = orders / self.total * 100

        lines = [
            f"Orders: {orders}/{self.total} ({order_rate:.1f}%)",
            f"Methods: {', '.join(f'{k}={v}' for k, v in sorted(self.by_method.items())) or 'none'}",
            f"Retailers: {len(self.by_retailer)}",
        ]

        for name, counts in self.field_extraction.items():
            if counts["attempted"] > 0:
                rate = counts["success"] / counts["attempted"] * 100
                lines.append(
                    f"  {name}: {counts['success']}/{counts['attempted']} ({rate:.1f}%)"
                )

        return "\n".join(lines)
