"""Tests for extraction records, routing results and email content."""

from datetime import datetime

import pytest

from mail_orders.email_content import (
    EmailContent,
    extract_sender_domain,
    html_to_text,
    parse_email_date,
    parse_sender_email,
)
from mail_orders.models import (
    ExtractionRecord,
    LineItem,
    OrderStatus,
    Outcome,
    ParseMethod,
    RoutingResult,
)

# ============================================================================
# EXTRACTION RECORD
# ============================================================================


def make_record(**overrides):
    values = {"retailer": "Coolblue", "order_date": "2025-01-15", "language": "nl"}
    values.update(overrides)
    return ExtractionRecord(**values)


def test_record_defaults():
    record = make_record()

    assert record.currency == "EUR"
    assert record.status == OrderStatus.CONFIRMED
    assert record.confidence == 0.0


def test_record_rejects_negative_amount():
    with pytest.raises(ValueError):
        make_record(amount=-1.0)


@pytest.mark.parametrize("confidence,expected", [(1.7, 1.0), (-0.2, 0.0), (0.45, 0.45)])
def test_record_confidence_is_clamped(confidence, expected):
    assert make_record(confidence=confidence).confidence == expected


def test_record_with_confidence_needs_retailer():
    with pytest.raises(ValueError):
        make_record(retailer="", confidence=0.4)


def test_record_status_accepts_strings():
    assert make_record(status="shipped").status == OrderStatus.SHIPPED


def test_missing_fields_ignores_status():
    record = make_record(order_number="90276634", amount=89.99)
    assert record.missing_fields() == ["estimated_delivery", "tracking_number"]


def test_record_to_dict_serializes_status():
    data = make_record(status=OrderStatus.DELIVERED, items=[LineItem("Kabel", 2, 9.99)]).to_dict()

    assert data["status"] == "delivered"
    assert data["items"] == [{"name": "Kabel", "quantity": 2, "price": 9.99}]


@pytest.mark.parametrize(
    "kwargs",
    [{"name": ""}, {"name": "Kabel", "quantity": 0}, {"name": "Kabel", "price": -1.0}],
)
def test_line_item_validation(kwargs):
    with pytest.raises(ValueError):
        LineItem(**kwargs)


# ============================================================================
# ROUTING RESULT
# ============================================================================


def test_routing_result_ok_takes_record_confidence():
    result = RoutingResult.ok(make_record(confidence=0.8), ParseMethod.REGEX, email_id="m1")

    assert result.outcome == Outcome.OK
    assert result.confidence == 0.8
    assert result.is_order


def test_routing_result_not_an_order():
    result = RoutingResult.not_an_order(email_id="m1")

    assert result.outcome == Outcome.NOT_AN_ORDER
    assert result.record is None
    assert result.confidence == 0.0
    assert result.reason == "rejected:not_order"
    assert not result.is_order


def test_routing_result_failed_to_dict():
    data = RoutingResult.failed("failed:ai_failed", method=ParseMethod.AI).to_dict()

    assert data["outcome"] == "failed"
    assert data["method"] == "ai"
    assert data["record"] is None
    assert data["reason"] == "failed:ai_failed"


# ============================================================================
# EMAIL CONTENT
# ============================================================================


def test_parse_sender_email():
    assert parse_sender_email('"Coolblue" <noreply@coolblue.nl>') == ("noreply@coolblue.nl", "Coolblue")
    assert parse_sender_email("orders@bol.com") == ("orders@bol.com", "")
    assert parse_sender_email("") == ("", "")



@pytest.mark.parametrize(
    "header,expected",
    [
        ("newsletter@shop.example", ("newsletter@shop.example", "")),
        ("Coolblue <noreply@coolblue.nl>", ("noreply@coolblue.nl", "Coolblue")),
        ("<orders@bol.com>", ("orders@bol.com", "")),
    ],
)
def test_parse_sender_email_keeps_full_local_part(header, expected):
    assert parse_sender_email(header) == expected


def test_extract_sender_domain():
    assert extract_sender_domain("noreply@Email.Coolblue.NL") == "email.coolblue.nl"
    assert extract_sender_domain("no-domain") == ""


def test_html_to_text_drops_scripts_and_keeps_blocks():
    html = "<html><head><style>p{}</style></head><body><p>Bestelnummer: 123</p><script>x()</script><p>Totaal &euro; 5,00</p></body></html>"
    assert html_to_text(html) == "Bestelnummer: 123\nTotaal € 5,00"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("Wed, 15 Jan 2025 10:30:00 +0100", "2025-01-15"),
        ("2025-01-15T10:30:00Z", "2025-01-15"),
        (datetime(2025, 1, 15, 8, 0), "2025-01-15"),
    ],
)
def test_parse_email_date(value, expected):
    assert parse_email_date(value).date().isoformat() == expected


def test_parse_email_date_invalid():
    assert parse_email_date("not a date") is None
    assert parse_email_date("") is None


@pytest.mark.parametrize("value", [10**20, float("inf"), -10**20])
def test_parse_email_date_out_of_range_timestamp(value):
    assert parse_email_date(value) is None


def test_email_content_from_dict_prefers_text_body():
    email = EmailContent.from_dict({
        "id": "m1",
        "subject": "Je bestelling",
        "from": "Coolblue <noreply@coolblue.nl>",
        "date": "Wed, 15 Jan 2025 10:30:00 +0100",
        "textBody": "Platte tekst",
        "htmlBody": "<p>HTML</p>",
    })

    assert email.body == "Platte tekst"
    assert email.sender_address == "noreply@coolblue.nl"
    assert email.sender_domain == "coolblue.nl"
    assert email.received_date == "2025-01-15"


def test_email_content_falls_back_to_html():
    email = EmailContent(id="m1", subject="Order", html_body="<p>Totaal: € 5,00</p>")

    assert email.body == "Totaal: € 5,00"
    assert email.full_text() == "Order\n\nTotaal: € 5,00"
    assert email.full_text(5) == "Order"
    assert email.received_date is None
