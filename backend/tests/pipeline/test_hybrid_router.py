"""Tests for HybridOrderParser routing.

Covers the three confidence paths (regex, hybrid, ai), LLM failure
fallbacks, rejection short-circuits, per-email error isolation and batch
ordering. The LLM backend is always a FakeProvider.
"""

import json

import pytest

from config.parsing_config import ParsingConfig
from mail_orders.error_tracking import BackendFailure, RegistryNotPopulatedError
from mail_orders.models import Outcome, OrderStatus, ParseMethod
from mail_orders.order_parsers import RetailerRegistry
from mail_orders.order_parsers.base import PatternExtractor
from mail_orders.order_parsing import HybridOrderParser

MISSING_FIELDS_RESPONSE = json.dumps({
    "missingFields": {
        "amount": "89,99",
        "currency": "EUR",
    }
})

DHL_RESPONSE = json.dumps({
    "isOrder": True,
    "orderData": {
        "retailer": "Coolblue",
        "orderNumber": None,
        "status": "in_transit",
        "trackingNumber": "JVGL0624229100530600",
        "carrier": "DHL",
        "confidence": 0.6,
    },
    "debugInfo": {"language": "nl", "emailType": "shipping"},
})

WEBSHOP_RESPONSE = json.dumps({
    "isOrder": True,
    "orderData": {
        "orderNumber": "W-558812",
        "retailer": "Wehkamp",
        "amount": "54,95",
        "currency": "EUR",
        "status": "confirmed",
        "confidence": 0.85,
    },
    "debugInfo": {"language": "nl", "emailType": "confirmation"},
})

NOT_AN_ORDER_RESPONSE = json.dumps({
    "isOrder": False,
    "debugInfo": {"language": "nl", "emailType": "marketing"},
})


def scripted_responder(prompt):
    """Answer incremental prompts with missing fields, full prompts per email."""
    if '"missingFields"' in prompt:
        return MISSING_FIELDS_RESPONSE
    if "W-558812" in prompt:
        return WEBSHOP_RESPONSE
    return DHL_RESPONSE


def failing_responder(prompt):
    raise BackendFailure("Internal server error")


class BrokenExtractor(PatternExtractor):
    def extract(self, text, retailer, language, received_date=None, weights=None):
        raise RuntimeError("pattern table corrupted")


# ============================================================================
# HIGH CONFIDENCE (REGEX)
# ============================================================================


def test_high_confidence_regex_result(make_parser, sample_email):
    result = make_parser().classify_and_extract(sample_email("coolblue_confirmation.json"))

    assert result.outcome == Outcome.OK
    assert result.method == ParseMethod.REGEX
    assert result.confidence == pytest.approx(0.8)
    assert result.record.order_number == "90276634"
    assert result.record.amount == pytest.approx(89.99)
    assert result.email_id == "18d0c2a9f1e4b7a1"
    assert result.trace["decision"] == "regex:high_confidence:0.80"
    assert result.trace["extractor"] == "Coolblue"
    assert result.trace["language"] == "nl"
    assert "llm_used" not in result.trace


def test_high_confidence_never_calls_llm(make_parser, fake_provider, sample_email):
    provider = fake_provider(scripted_responder)
    make_parser(provider).classify_and_extract(sample_email("coolblue_confirmation.json"))

    assert provider.prompts == []


def test_thresholds_are_configurable(make_parser, sample_email):
    config = ParsingConfig(high_confidence_threshold=0.9, low_confidence_threshold=0.5)
    result = make_parser(config=config).classify_and_extract(
        sample_email("coolblue_confirmation.json")
    )

    assert result.trace["decision"] == "regex:llm_fallback_failed:0.80"


# ============================================================================
# MEDIUM CONFIDENCE (HYBRID)
# ============================================================================


def test_hybrid_fills_missing_fields(make_parser, fake_provider, sample_email):
    provider = fake_provider(scripted_responder)
    result = make_parser(provider).classify_and_extract(sample_email("coolblue_order_partial.json"))

    assert result.outcome == Outcome.OK
    assert result.method == ParseMethod.HYBRID
    assert result.trace["decision"] == "hybrid:medium_confidence:0.70"
    assert result.trace["merged_fields"] == ["amount"]
    assert result.trace["llm_used"] is True

    record = result.record
    assert record.order_number == "90276634"
    assert record.amount == pytest.approx(89.99)
    assert record.estimated_delivery == "2025-01-17"
    assert record.tracking_number == "JVGL0624229100530600"
    assert result.confidence == pytest.approx(0.7)


def test_hybrid_asks_only_for_missing_fields(make_parser, fake_provider, sample_email):
    provider = fake_provider(scripted_responder)
    make_parser(provider).classify_and_extract(sample_email("coolblue_order_partial.json"))

    prompt = provider.prompts[0]
    assert "- amount:" in prompt
    assert "- orderNumber:" not in prompt
    assert "- estimatedDelivery:" not in prompt
    assert "- trackingNumber:" not in prompt
    assert "- status:" not in prompt
    assert "Retailer: Coolblue" in prompt


def test_hybrid_without_backend_keeps_regex_result(make_parser, sample_email):
    result = make_parser().classify_and_extract(sample_email("coolblue_order_partial.json"))

    assert result.method == ParseMethod.REGEX
    assert result.trace["decision"] == "regex:llm_fallback_failed:0.70"
    assert result.trace["llm_used"] is False
    assert result.trace["llm_error"] == "LLM backend not configured"
    assert result.record.order_number == "90276634"


def test_hybrid_backend_failure_keeps_regex_result(make_parser, fake_provider, sample_email):
    result = make_parser(fake_provider(failing_responder)).classify_and_extract(
        sample_email("coolblue_order_partial.json")
    )

    assert result.outcome == Outcome.OK
    assert result.method == ParseMethod.REGEX
    assert result.trace["decision"] == "regex:llm_fallback_failed:0.70"
    assert result.trace["llm_error"]["stage"] == "llm"
    assert result.trace["llm_error"]["error_type"] == "api_error"


def test_hybrid_empty_answer_is_no_enhancement(make_parser, fake_provider, sample_email):
    provider = fake_provider('{"missingFields": null}')
    result = make_parser(provider).classify_and_extract(sample_email("coolblue_order_partial.json"))

    assert result.method == ParseMethod.REGEX
    assert result.trace["decision"] == "regex:llm_no_enhancement:0.70"


# ============================================================================
# LOW CONFIDENCE (AI)
# ============================================================================


def test_carrier_mail_goes_to_full_extraction(make_parser, fake_provider, sample_email):
    provider = fake_provider(scripted_responder)
    result = make_parser(provider).classify_and_extract(sample_email("dhl_tracking.json"))

    assert result.outcome == Outcome.OK
    assert result.method == ParseMethod.AI
    assert result.trace["decision"] == "ai:low_confidence:0.20"
    assert result.trace["regex_confidence"] == pytest.approx(0.2)
    assert result.confidence == pytest.approx(0.6)

    record = result.record
    assert record.retailer == "Coolblue"
    assert record.status == OrderStatus.SHIPPED
    assert record.tracking_number == "JVGL0624229100530600"
    assert record.order_date == "2025-01-16"
    assert '"isOrder"' in provider.prompts[0]


def test_ai_not_an_order(make_parser, fake_provider, sample_email):
    result = make_parser(fake_provider(NOT_AN_ORDER_RESPONSE)).classify_and_extract(
        sample_email("dhl_tracking.json")
    )

    assert result.outcome == Outcome.NOT_AN_ORDER
    assert result.method == ParseMethod.AI
    assert result.record is None
    assert result.reason == "ai:not_order"
    assert result.trace["email_type"] == "marketing"


def test_ai_failure_falls_back_to_regex_record(make_parser, fake_provider, sample_email):
    result = make_parser(fake_provider(failing_responder)).classify_and_extract(
        sample_email("dhl_tracking.json")
    )

    assert result.outcome == Outcome.OK
    assert result.method == ParseMethod.REGEX
    assert result.trace["decision"] == "regex:ai_failed:0.20"
    assert result.record.tracking_number == "JVGL0624229100530600"
    assert result.confidence == pytest.approx(0.2)


def test_unknown_webshop_without_backend_fails(make_parser, sample_email):
    result = make_parser().classify_and_extract(sample_email("webshop_order.json"))

    assert result.outcome == Outcome.FAILED
    assert result.method == ParseMethod.AI
    assert result.record is None
    assert result.reason == "failed:ai_failed"
    assert result.trace["classification_confidence"] == 1.0


def test_unknown_webshop_extracted_by_llm(make_parser, fake_provider, sample_email):
    provider = fake_provider(scripted_responder)
    result = make_parser(provider).classify_and_extract(sample_email("webshop_order.json"))

    assert result.outcome == Outcome.OK
    assert result.method == ParseMethod.AI
    assert result.trace["decision"] == "ai:low_confidence:0.00"
    assert result.record.retailer == "Wehkamp"
    assert result.record.order_number == "W-558812"
    assert result.record.amount == pytest.approx(54.95)
    assert result.record.order_date == "2025-01-18"
    assert "Ordernummer: W-558812" in provider.prompts[0]


def test_unmappable_answer_falls_back(make_parser, fake_provider, sample_email):
    """Test an order answer without any retailer cannot become a record."""
    provider = fake_provider('{"isOrder": true, "orderData": {"orderNumber": "W-558812"}}')
    result = make_parser(provider).classify_and_extract(sample_email("webshop_order.json"))

    assert result.outcome == Outcome.FAILED
    assert result.reason == "failed:ai_failed"
    assert result.trace["llm_error"] == "LLM answer could not be mapped to an order record"


# ============================================================================
# REJECTION / ERRORS
# ============================================================================


def test_rejected_email_skips_llm(make_parser, fake_provider, sample_email):
    provider = fake_provider(scripted_responder)
    result = make_parser(provider).classify_and_extract(sample_email("coolblue_newsletter.json"))

    assert result.outcome == Outcome.NOT_AN_ORDER
    assert result.reason == "rejected:not_order"
    assert result.confidence == 0.0
    assert result.trace["decision"] == "rejected:not_order"
    assert provider.prompts == []


def test_empty_registry_is_refused():
    with pytest.raises(RegistryNotPopulatedError):
        HybridOrderParser(RetailerRegistry())
    with pytest.raises(RegistryNotPopulatedError):
        HybridOrderParser(None)


def test_extractor_error_is_isolated(registry, detector, sample_email):
    broken_registry = RetailerRegistry([
        BrokenExtractor(name="Coolblue", domains=["coolblue.nl"], order_number_patterns={}),
        registry.get_extractor("Amazon"),
    ]).freeze()
    parser = HybridOrderParser(broken_registry, detector=detector)

    broken, amazon = parser.classify_and_extract_batch([
        sample_email("coolblue_confirmation.json"),
        sample_email("amazon_shipped_en.json"),
    ])

    assert broken.outcome == Outcome.FAILED
    assert broken.reason == "failed:parsing_error"
    assert broken.trace["error"]["stage"] == "extract"
    assert amazon.outcome == Outcome.OK
    assert amazon.record.order_number == "112-1234567-1234567"


def test_accepts_collaborator_dicts(make_parser):
    result = make_parser().classify_and_extract({
        "id": "dict-1",
        "subject": "Bedankt voor je bestelling",
        "from": "Coolblue <noreply@coolblue.nl>",
        "date": "2025-01-15T10:30:00+01:00",
        "textBody": "Bedankt voor je bestelling.\nBestelnummer: 90276634\nTotaal: € 89,99",
    })

    assert result.email_id == "dict-1"
    assert result.method == ParseMethod.REGEX
    assert result.record.order_date == "2025-01-15"



def test_default_status_order_stays_on_patterns(make_parser, fake_provider):
    """Test order number and amount without status wording skip the LLM."""
    provider = fake_provider(scripted_responder)
    result = make_parser(provider).classify_and_extract({
        "id": "dict-2",
        "subject": "Je bestelling 90276634",
        "from": "Coolblue <noreply@coolblue.nl>",
        "date": "2025-01-15T10:30:00+01:00",
        "textBody": "Bestelnummer: 90276634\nTotaal: € 89,99",
    })

    assert result.method == ParseMethod.REGEX
    assert result.record.status == OrderStatus.CONFIRMED
    assert result.confidence == pytest.approx(0.8)
    assert result.trace["decision"] == "regex:high_confidence:0.80"
    assert provider.prompts == []


def test_unreadable_input_is_isolated(make_parser):
    good = {
        "id": "good",
        "subject": "Bedankt voor je bestelling",
        "from": "Coolblue <noreply@coolblue.nl>",
        "date": "2025-01-15T10:30:00+01:00",
        "textBody": "Bedankt voor je bestelling.\nBestelnummer: 90276634\nTotaal: € 89,99",
    }

    first, bad_date, garbage, last = make_parser().classify_and_extract_batch([
        good,
        dict(good, id="bad-date", date=10**20),
        "not an email",
        dict(good, id="last"),
    ])

    assert first.outcome == Outcome.OK
    assert bad_date.outcome == Outcome.OK
    assert bad_date.email_id == "bad-date"
    assert bad_date.record.order_number == "90276634"
    assert garbage.outcome == Outcome.FAILED
    assert garbage.reason == "failed:parsing_error"
    assert garbage.trace["error"]["stage"] == "batch"
    assert last.outcome == Outcome.OK
    assert last.email_id == "last"


# ============================================================================
# BATCH
# ============================================================================


BATCH_FIXTURES = [
    "coolblue_confirmation.json",
    "coolblue_newsletter.json",
    "coolblue_order_partial.json",
    "dhl_tracking.json",
    "webshop_order.json",
]


@pytest.fixture
def batch_results(make_parser, fake_provider, sample_email):
    provider = fake_provider(scripted_responder)
    calls = []
    analyze = provider.batch_analyze_emails

    def spy(payloads):
        calls.append([payload["id"] for payload in payloads])
        return analyze(payloads)

    provider.batch_analyze_emails = spy
    parser = make_parser(provider)
    results = parser.classify_and_extract_batch([sample_email(name) for name in BATCH_FIXTURES])
    return parser, results, calls


def test_batch_keeps_input_order(batch_results, sample_email):
    _, results, _ = batch_results

    assert [result.email_id for result in results] == [
        sample_email(name).id for name in BATCH_FIXTURES
    ]
    assert [result.trace["decision"] for result in results] == [
        "regex:high_confidence:0.80",
        "rejected:not_order",
        "hybrid:medium_confidence:0.70",
        "ai:low_confidence:0.20",
        "ai:low_confidence:0.00",
    ]


def test_batch_sends_one_backend_call(batch_results):
    _, _, calls = batch_results

    assert calls == [["18d0c2a9f1e4b7a2#2", "18d0d51c22a0f3c9#3", "18d1022f7ac4e901#4"]]


def test_batch_results_obey_routing_rules(batch_results):
    _, results, _ = batch_results

    for result in results:
        assert 0.0 <= result.confidence <= 1.0
        assert result.processing_time_ms >= 0
        if result.outcome == Outcome.OK:
            assert result.record is not None
            assert result.record.retailer
            assert result.confidence == result.record.confidence
        else:
            assert result.record is None
            assert result.confidence == 0.0


def test_batch_statistics(batch_results):
    parser, results, _ = batch_results
    stats = parser.get_parsing_stats(results).to_dict()

    assert stats["total"] == 5
    assert stats["by_outcome"] == {"ok": 4, "not_an_order": 1}
    assert stats["by_method"] == {"regex": 1, "hybrid": 1, "ai": 2}
    assert stats["by_retailer"] == {"Coolblue": 3, "Wehkamp": 1}
    assert stats["by_language"] == {"nl": 5}


def test_empty_batch(make_parser):
    assert make_parser().classify_and_extract_batch([]) == []
