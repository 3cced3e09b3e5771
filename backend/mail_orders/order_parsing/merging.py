"""
Result Merging

Combines a pattern extraction with an LLM extraction of the same email.
Pattern values always win; the LLM only fills fields the patterns missed.
"""

import dataclasses

from mail_orders.models import ExtractionRecord, OrderStatus

# Fields the LLM may fill when the pattern extraction left them empty
FILLABLE_FIELDS = (
    "order_number",
    "amount",
    "estimated_delivery",
    "tracking_number",
    "carrier",
    "items",
)

STATUS_RANK = {
    OrderStatus.CONFIRMED: 0,
    OrderStatus.SHIPPED: 1,
    OrderStatus.DELIVERED: 2,
}


def _is_empty(value) -> bool:
    return value is None or value == "" or value == []


def merge_status(regex_status: OrderStatus, ai_status: OrderStatus) -> OrderStatus:
    """Keep the pattern status unless it is the default and the LLM is more specific."""
    if regex_status != OrderStatus.CONFIRMED:
        return regex_status
    if ai_status is not None and STATUS_RANK[ai_status] > STATUS_RANK[regex_status]:
        return ai_status
    return regex_status


def merge_records(regex_record: ExtractionRecord, ai_record: ExtractionRecord) -> tuple:
    """
    Merge an LLM record into a pattern record.

    Args:
        regex_record: Record from the retailer extractor
        ai_record: Record mapped from the LLM answer

    Returns:
        Tuple of (merged_record, filled_fields); confidence is the higher of both
    """
    merged = dataclasses.replace(
        regex_record,
        items=list(regex_record.items) if regex_record.items else regex_record.items,
    )
    filled = []

    for name in FILLABLE_FIELDS:
        if _is_empty(getattr(merged, name)) and not _is_empty(getattr(ai_record, name)):
            value = getattr(ai_record, name)
            setattr(merged, name, list(value) if name == "items" else value)
            filled.append(name)

    if "amount" in filled:
        merged.currency = ai_record.currency

    merged.status = merge_status(regex_record.status, ai_record.status)
    merged.confidence = max(regex_record.confidence, ai_record.confidence)

    return merged, filled
