"""Tests for the merchant and carrier pattern extractors.

Validates, per merchant:
- Email acceptance (sender domain plus order-related subject)
- Order number, amount, delivery and tracking extraction
- Status derivation and confidence scoring
"""

import pytest

from mail_orders.models import LineItem, OrderStatus
from mail_orders.order_parsers.base import score_confidence


def extractor_for(registry, name):
    extractor = registry.get_extractor(name)
    assert extractor is not None, f"{name} is not registered"
    return extractor


# ============================================================================
# COOLBLUE
# ============================================================================


def test_coolblue_dutch_confirmation(registry, sample_email):
    """Test Dutch order confirmation from a known merchant.

    Order number, amount and the always-present status reach the
    high-confidence threshold.
    """
    email = sample_email("coolblue_confirmation.json")
    coolblue = extractor_for(registry, "Coolblue")

    assert coolblue.can_handle(email, "nl")

    attempt = coolblue.extract(email.full_text(), "Coolblue", "nl", received_date=email.received_date)
    record = attempt.record

    assert record.order_number == "90276634"
    assert record.amount == pytest.approx(89.99)
    assert record.currency == "EUR"
    assert record.status == OrderStatus.CONFIRMED
    assert record.retailer == "Coolblue"
    assert record.order_date == "2025-01-15"
    assert attempt.confidence == pytest.approx(0.8)
    assert attempt.confidence >= 0.7
    assert set(attempt.fields_filled) == {"order_number", "amount", "status"}


def test_coolblue_extracts_line_items(registry, sample_email):
    email = sample_email("coolblue_confirmation.json")
    attempt = extractor_for(registry, "Coolblue").extract(email.full_text(), "Coolblue", "nl")

    assert attempt.record.items == [
        LineItem(name="Philips Hue White Ambiance E27", quantity=1, price=39.99),
        LineItem(name="Sonos Era 100", quantity=1, price=50.0),
    ]


def test_coolblue_order_number_from_subject(registry, make_email):
    email = make_email(
        subject="Je bestelling (90276634) is verzonden",
        body="Hoi, je pakket komt eraan.",
        sender="Coolblue <noreply@coolblue.nl>",
    )
    attempt = extractor_for(registry, "Coolblue").extract(email.full_text(), "Coolblue", "nl")

    assert attempt.record.order_number == "90276634"
    assert attempt.record.status == OrderStatus.SHIPPED


def test_coolblue_rejects_other_domains(registry, make_email):
    email = make_email(subject="Je bestelling", sender="Shop <noreply@coolblue-deals.example>")
    assert not extractor_for(registry, "Coolblue").can_handle(email, "nl")


def test_coolblue_requires_order_subject(registry, make_email):
    email = make_email(subject="Onze laptop tips", sender="Coolblue <tips@coolblue.nl>")
    assert not extractor_for(registry, "Coolblue").can_handle(email, "nl")


def test_coolblue_accepts_subdomains(registry, make_email):
    email = make_email(subject="Je bestelling", sender="Coolblue <noreply@email.coolblue.be>")
    assert extractor_for(registry, "Coolblue").can_handle(email, "nl")


# ============================================================================
# AMAZON
# ============================================================================


def test_amazon_english_shipping_notice(registry, sample_email):
    email = sample_email("amazon_shipped_en.json")
    amazon = extractor_for(registry, "Amazon")

    assert amazon.can_handle(email, "en")

    attempt = amazon.extract(email.full_text(), "Amazon", "en", received_date=email.received_date)
    record = attempt.record

    assert record.order_number == "112-1234567-1234567"
    assert record.amount == pytest.approx(125.50)
    assert record.currency == "USD"
    assert record.estimated_delivery == "2025-01-17"
    assert record.status == OrderStatus.SHIPPED
    assert record.order_date == "2025-01-14"
    assert attempt.confidence == pytest.approx(0.9)


def test_amazon_german_amount_with_thousands(registry):
    text = (
        "Ihre Bestellung wurde versandt\n\n"
        "Bestellnummer: 302-1234567-7654321\n"
        "Gesamtbetrag: 1.234,56 €"
    )
    record = extractor_for(registry, "Amazon").extract(text, "Amazon", "de").record

    assert record.order_number == "302-1234567-7654321"
    assert record.amount == pytest.approx(1234.56)
    assert record.status == OrderStatus.SHIPPED


# ============================================================================
# ZALANDO / BOL.COM
# ============================================================================


def test_zalando_tracking_implies_dhl(registry):
    text = (
        "Je bestelling is verzonden\n\n"
        "Bestelnummer: 10102938475612-0001\n"
        "Totaalbedrag: € 119,90\n"
        "Track & Trace: JVGL0624229100530600"
    )
    record = extractor_for(registry, "Zalando").extract(text, "Zalando", "nl").record

    assert record.order_number == "10102938475612-0001"
    assert record.amount == pytest.approx(119.90)
    assert record.tracking_number == "JVGL0624229100530600"
    assert record.carrier == "DHL"
    assert record.status == OrderStatus.SHIPPED
    assert record.confidence == pytest.approx(0.9)


def test_zalando_return_counts_as_delivered(registry):
    text = "Je retourzending voor bestelling 1234-5678-9012 is ontvangen."
    record = extractor_for(registry, "Zalando").extract(text, "Zalando", "nl").record

    assert record.order_number == "1234-5678-9012"
    assert record.status == OrderStatus.DELIVERED


def test_bol_order_number(registry, make_email):
    email = make_email(
        subject="Bestelbevestiging",
        body="Bedankt voor je bestelling.\nBestelnummer: 4123456789\nTotaal: € 24,99",
        sender="bol.com <klantenservice@bol.com>",
    )
    bol = extractor_for(registry, "bol")

    assert bol.name == "Bol.com"
    assert bol.can_handle(email, "nl")

    record = bol.extract(email.full_text(), "Bol.com", "nl").record

    assert record.order_number == "4123456789"
    assert record.amount == pytest.approx(24.99)


# ============================================================================
# CARRIERS
# ============================================================================


def test_dhl_tracking_only_notification(registry, sample_email):
    """Test carrier mail with tracking code but no order number or amount.

    Extraction still succeeds; confidence only counts tracking and status.
    """
    email = sample_email("dhl_tracking.json")
    dhl = extractor_for(registry, "DHL")

    assert dhl.can_handle(email, "nl")

    attempt = dhl.extract(email.full_text(), "DHL", "nl", received_date=email.received_date)
    record = attempt.record

    assert record.tracking_number == "JVGL0624229100530600"
    assert record.amount is None
    assert record.order_number is None
    assert record.carrier == "DHL"
    assert record.retailer == "Coolblue"
    assert record.status == OrderStatus.SHIPPED
    assert attempt.confidence == pytest.approx(0.2)
    assert set(attempt.fields_filled) == {"tracking_number", "status"}


def test_carrier_never_invents_order_numbers(registry):
    text = "Namens Wehkamp wordt je pakket bezorgd. Bestelnummer 4123456789. Track & Trace: JVGL0624229100530600"
    record = extractor_for(registry, "DHL").extract(text, "DHL", "nl").record

    assert record.order_number is None
    assert record.retailer == "Wehkamp"


def test_carrier_defaults_to_shipped(registry):
    text = "Track & Trace: JVGL0624229100530600"
    record = extractor_for(registry, "DHL").extract(text, "DHL", "nl").record

    assert record.status == OrderStatus.SHIPPED
    assert record.retailer == "DHL"
    assert record.confidence == pytest.approx(0.2)


def test_postnl_claims_forwarded_mail_by_code(registry, make_email):
    email = make_email(
        subject="Je zending 3SDEVC1234567 is onderweg",
        body="Volg je zending met code 3SDEVC1234567.",
        sender="Webshop <noreply@webshop.example>",
    )
    postnl = extractor_for(registry, "PostNL")

    assert postnl.can_handle(email, "nl")

    record = postnl.extract(email.full_text(), "PostNL", "nl").record
    assert record.tracking_number == "3SDEVC1234567"
    assert record.carrier == "PostNL"


# ============================================================================
# SHARED BEHAVIOUR
# ============================================================================


def test_no_scored_fields_yields_no_record(registry):
    attempt = extractor_for(registry, "Coolblue").extract("Hallo daar", "Coolblue", "nl")

    assert attempt.record is None
    assert attempt.confidence == 0.0

    assert attempt.fields_filled == []


def test_default_status_counts_towards_confidence(registry):
    """Test status weight is added even when no status wording is present."""
    text = "Bestelnummer: 90276634\nTotaal: € 89,99"
    attempt = extractor_for(registry, "Coolblue").extract(text, "Coolblue", "nl")

    assert attempt.record.status == OrderStatus.CONFIRMED
    assert attempt.confidence == pytest.approx(0.8)
    assert set(attempt.fields_filled) == {"order_number", "amount", "status"}
    assert not any(match.startswith("status:") for match in attempt.patterns_matched)


def test_partial_order_without_amount_is_medium_confidence(registry, sample_email):
    email = sample_email("coolblue_order_partial.json")
    attempt = extractor_for(registry, "Coolblue").extract(email.full_text(), "Coolblue", "nl")

    assert attempt.record.amount is None
    assert attempt.record.estimated_delivery == "2025-01-17"
    assert attempt.record.tracking_number == "JVGL0624229100530600"
    assert attempt.confidence == pytest.approx(0.7)
    assert attempt.record.missing_fields() == ["amount"]


def test_zero_amount_is_not_a_field(registry):
    text = "Bestelnummer: 90276634\nTotaal: € 0,00"
    attempt = extractor_for(registry, "Coolblue").extract(text, "Coolblue", "nl")

    assert attempt.record.amount is None
    assert "amount" not in attempt.fields_filled


def test_extraction_is_idempotent(registry, sample_email):
    email = sample_email("coolblue_confirmation.json")
    coolblue = extractor_for(registry, "Coolblue")

    first = coolblue.extract(email.full_text(), "Coolblue", "nl", received_date="2025-01-15")
    second = coolblue.extract(email.full_text(), "Coolblue", "nl", received_date="2025-01-15")

    assert first.record == second.record
    assert first.record.to_dict() == second.record.to_dict()


def test_custom_weights_change_confidence(registry):
    text = "Bestelnummer: 90276634"
    weights = {"order_number": 1.0, "amount": 0.0, "estimated_delivery": 0.0,
               "tracking_number": 0.0, "status": 0.0}
    attempt = extractor_for(registry, "Coolblue").extract(text, "Coolblue", "nl", weights=weights)

    assert attempt.confidence == 1.0


def test_score_confidence():
    assert score_confidence([]) == 0.0
    assert score_confidence(["order_number", "amount"]) == pytest.approx(0.7)
    assert score_confidence(["order_number", "order_number"]) == pytest.approx(0.4)
    assert score_confidence(
        ["order_number", "amount", "estimated_delivery", "tracking_number", "status"]
    ) == pytest.approx(1.0)
