"""
Hybrid Order Parser

Routes each email through the extraction pipeline:
classify → select retailer extractor → pattern extraction → threshold
decision → optional LLM call → merge → RoutingResult.

Threshold decision on the pattern confidence (defaults 0.8 / 0.7):
- confidence >= high: pattern result as-is (method regex)
- low <= confidence < high: LLM asked for the missing fields only; merged
  result (method hybrid), or the pattern result when the LLM fails
- confidence < low: LLM asked for a full extraction (method ai), or the
  pattern result as a last resort when the LLM fails

Every result carries a decision string in its trace, e.g.
'regex:high_confidence:0.80' or 'ai:low_confidence:0.20'.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from config.parsing_config import ParsingConfig
from mail_orders.email_content import EmailContent
from mail_orders.error_tracking import (
    ErrorStage,
    ExtractionError,
    RegistryNotPopulatedError,
)
from mail_orders.language_detector import LanguageDetector
from mail_orders.llm_providers import BaseLLMProvider
from mail_orders.logging_config import get_logger
from mail_orders.models import (
    ClassificationResult,
    ExtractionAttempt,
    ParseMethod,
    RoutingResult,
)
from mail_orders.order_parsers.registry import RetailerRegistry
from mail_orders.statistics_tracker import ParsingStatistics

from .filtering import EmailClassifier
from .llm_extraction import email_payload, llm_failed, record_from_llm
from .merging import merge_records

logger = get_logger(__name__)

EmailInput = Union[EmailContent, dict]

LLM_HYBRID = "hybrid"
LLM_FULL = "ai"


@dataclass
class _RoutingState:
    """Per-email state carried between the pattern and LLM phases"""
    email: EmailContent
    started: float
    key: str
    classification: Optional[ClassificationResult] = None
    attempt: Optional[ExtractionAttempt] = None
    llm_mode: Optional[str] = None
    trace: dict[str, Any] = field(default_factory=dict)
    result: Optional[RoutingResult] = None

    @property
    def regex_confidence(self) -> float:
        return self.attempt.confidence if self.attempt else 0.0

    @property
    def regex_record(self):
        return self.attempt.record if self.attempt else None


def _placeholder_email(email: Any) -> EmailContent:
    """Stand-in carrying only the id, used when the input cannot be converted."""
    if isinstance(email, EmailContent):
        return email
    email_id = email.get("id") if isinstance(email, dict) else None
    return EmailContent(id=str(email_id or ""))


def _decision(label: str, confidence: float) -> str:
    return f"{label}:{confidence:.2f}"


class HybridOrderParser:
    """Classify-and-extract pipeline over a sealed retailer registry.

    Args:
        registry: Populated RetailerRegistry (see build_default_registry)
        provider: LLM backend; None runs the pipeline without LLM calls
        config: Thresholds, weights and text limits
        detector: Language detector (built from config when omitted)
        classifier: Pre-filter (built from registry and detector when omitted)

    Raises:
        RegistryNotPopulatedError: The registry has no extractors
    """

    def __init__(self, registry: RetailerRegistry,
                 provider: Optional[BaseLLMProvider] = None,
                 config: Optional[ParsingConfig] = None,
                 detector: Optional[LanguageDetector] = None,
                 classifier: Optional[EmailClassifier] = None):
        if registry is None or len(registry) == 0:
            raise RegistryNotPopulatedError(
                "Retailer registry is empty; build it before parsing emails"
            )

        self.registry = registry
        self.provider = provider
        self.config = config or ParsingConfig()
        self.classifier = classifier or EmailClassifier(registry, detector, self.config)

    def classify_and_extract(self, email: EmailInput) -> RoutingResult:
        """
        Route a single email.

        Args:
            email: EmailContent or collaborator dict (subject, from, date, htmlBody, textBody)

        Returns:
            RoutingResult; never raises for per-email failures
        """
        state = self._prepare(email, 0)
        if state.result is None:
            llm_result = None
            if self.provider is not None:
                llm_result = self.provider.analyze_email(self._payload(state))
            self._finish(state, llm_result)
        return state.result

    def classify_and_extract_batch(self, emails) -> list[RoutingResult]:
        """
        Route many emails; LLM work is sent as one batch to the backend.

        Args:
            emails: Iterable of EmailContent or collaborator dicts

        Returns:
            RoutingResults in input order
        """
        states = [self._prepare(email, index) for index, email in enumerate(emails)]
        pending = [state for state in states if state.result is None]

        llm_results = {}
        if pending and self.provider is not None:
            logger.info(f"Sending {len(pending)}/{len(states)} emails to the LLM backend")
            llm_results = self.provider.batch_analyze_emails(
                [self._payload(state) for state in pending]
            )

        for state in pending:
            self._finish(state, llm_results.get(state.key))

        results = [state.result for state in states]
        logger.info(
            f"Batch routed: {sum(1 for r in results if r.is_order)}/{len(results)} orders"
        )
        return results

    def get_parsing_stats(self, results) -> ParsingStatistics:
        """Aggregate statistics over routing results."""
        return ParsingStatistics.from_results(results)

    def _prepare(self, email: EmailInput, index: int) -> _RoutingState:
        """Classification and pattern extraction; sets state.result when no LLM call is needed."""
        started = time.perf_counter()
        state = _RoutingState(
            email=_placeholder_email(email), started=started, key=f"email#{index}"
        )

        stage = ErrorStage.BATCH
        try:
            if isinstance(email, dict):
                email = EmailContent.from_dict(email)
            if not isinstance(email, EmailContent):
                raise TypeError(f"Unsupported email input: {type(email).__name__}")
            state.email = email
            state.key = f"{email.id or 'email'}#{index}"

            stage = ErrorStage.EXTRACT
            self._route_patterns(state)
        except Exception as e:  # per-email failure must not affect the batch
            error = ExtractionError.from_exception(
                e, stage, context={"email_id": state.email.id}
            )
            error.log()
            state.trace["error"] = error.to_dict()
            state.trace["decision"] = "failed:parsing_error"
            state.result = RoutingResult.failed("failed:parsing_error", **self._common(state))

        return state

    def _route_patterns(self, state: _RoutingState) -> None:
        email = state.email
        classification = self.classifier.classify(email)
        state.classification = classification
        state.trace.update({
            "language": classification.language,
            "classification_confidence": classification.confidence,
            "accepted_patterns": list(classification.trace["accepted_patterns"]),
            "rejected_patterns": list(classification.trace["rejected_patterns"]),
        })

        if not classification.is_potential_order:
            state.trace["decision"] = "rejected:not_order"
            state.result = RoutingResult.not_an_order("rejected:not_order", **self._common(state))
            return

        extractor = classification.selected_extractor
        if extractor is not None:
            state.trace["extractor"] = extractor.name
            state.attempt = extractor.extract(
                email.full_text(),
                classification.matched_retailer,
                classification.language,
                received_date=email.received_date,
                weights=self.config.field_weights,
            )
            state.trace["regex_confidence"] = state.attempt.confidence
            state.trace["fields_filled"] = list(state.attempt.fields_filled)
            state.trace["patterns_matched"] = list(state.attempt.patterns_matched)

        confidence = state.regex_confidence
        log_extra = {
            "email_id": email.id,
            "retailer": classification.matched_retailer,
            "language": classification.language,
        }

        if state.regex_record is not None and confidence >= self.config.high_confidence_threshold:
            state.trace["decision"] = _decision("regex:high_confidence", confidence)
            state.result = RoutingResult.ok(
                state.regex_record, ParseMethod.REGEX, **self._common(state)
            )
            logger.debug(f"Regex extraction accepted ({confidence:.2f})",
                         extra={**log_extra, "parse_method": "regex"})
            return

        if state.regex_record is not None and confidence >= self.config.low_confidence_threshold:
            state.llm_mode = LLM_HYBRID
        else:
            state.llm_mode = LLM_FULL

    def _payload(self, state: _RoutingState) -> dict[str, Any]:
        classification = state.classification
        if state.llm_mode == LLM_HYBRID:
            record = state.regex_record
            return email_payload(
                state.email, classification.language, key=state.key,
                missing_fields=record.missing_fields(), retailer=record.retailer,
            )
        return email_payload(
            state.email, classification.language, key=state.key,
            retailer=classification.matched_retailer,
        )

    def _finish(self, state: _RoutingState, llm_result: Optional[dict[str, Any]]) -> None:
        """Apply the LLM answer (or its absence) and set state.result."""
        try:
            if state.llm_mode == LLM_HYBRID:
                self._finish_hybrid(state, llm_result)
            else:
                self._finish_ai(state, llm_result)
        except Exception as e:  # per-email failure must not affect the batch
            error = ExtractionError.from_exception(
                e, ErrorStage.MERGE, context={"email_id": state.email.id}
            )
            error.log()
            state.trace["error"] = error.to_dict()
            state.trace["decision"] = "failed:parsing_error"
            state.result = RoutingResult.failed("failed:parsing_error", **self._common(state))

    def _record_llm_outcome(self, state: _RoutingState, llm_result) -> bool:
        """Trace the LLM call; returns True when it produced a usable answer."""
        state.trace["llm_used"] = self.provider is not None
        if self.provider is None:
            state.trace["llm_error"] = "LLM backend not configured"
            return False
        if llm_failed(llm_result):
            debug_info = (llm_result or {}).get("debugInfo") or {}
            state.trace["llm_error"] = {
                "stage": ErrorStage.LLM.value,
                "error_type": debug_info.get("errorType", "unknown"),
                "message": debug_info.get("error", "No result from LLM backend"),
            }
            return False
        return True

    def _llm_record(self, state: _RoutingState, llm_result, fallback_retailer):
        if not llm_result.get("isOrder") or not llm_result.get("orderData"):
            return None
        return record_from_llm(
            llm_result["orderData"],
            state.classification.language,
            fallback_retailer=fallback_retailer,
            received_date=state.email.received_date,
            registry=self.registry,
        )

    def _finish_hybrid(self, state: _RoutingState, llm_result) -> None:
        regex_record = state.regex_record
        confidence = state.regex_confidence

        if not self._record_llm_outcome(state, llm_result):
            state.trace["decision"] = _decision("regex:llm_fallback_failed", confidence)
            state.result = RoutingResult.ok(regex_record, ParseMethod.REGEX, **self._common(state))
            return

        ai_record = self._llm_record(state, llm_result, regex_record.retailer)
        if ai_record is None:
            state.trace["decision"] = _decision("regex:llm_no_enhancement", confidence)
            state.result = RoutingResult.ok(regex_record, ParseMethod.REGEX, **self._common(state))
            return

        merged, filled = merge_records(regex_record, ai_record)
        state.trace["llm_confidence"] = ai_record.confidence
        state.trace["merged_fields"] = filled
        state.trace["decision"] = _decision("hybrid:medium_confidence", confidence)
        state.result = RoutingResult.ok(merged, ParseMethod.HYBRID, **self._common(state))

    def _finish_ai(self, state: _RoutingState, llm_result) -> None:
        regex_record = state.regex_record
        confidence = state.regex_confidence

        if not self._record_llm_outcome(state, llm_result):
            self._fall_back_to_regex(state)
            return

        if not llm_result.get("isOrder"):
            state.trace["decision"] = "ai:not_order"
            state.trace["email_type"] = (llm_result.get("debugInfo") or {}).get("emailType")
            state.result = RoutingResult.not_an_order(
                "ai:not_order", **self._common(state, ParseMethod.AI)
            )
            return

        fallback_retailer = (
            regex_record.retailer if regex_record else state.classification.matched_retailer
        )
        ai_record = self._llm_record(state, llm_result, fallback_retailer)
        if ai_record is None:
            state.trace["llm_error"] = "LLM answer could not be mapped to an order record"
            self._fall_back_to_regex(state)
            return

        state.trace["llm_confidence"] = ai_record.confidence
        state.trace["decision"] = _decision("ai:low_confidence", confidence)
        state.result = RoutingResult.ok(ai_record, ParseMethod.AI, **self._common(state))

    def _fall_back_to_regex(self, state: _RoutingState) -> None:
        """Low-confidence path without a usable LLM answer."""
        if state.regex_record is None:
            state.trace["decision"] = "failed:ai_failed"
            state.result = RoutingResult.failed(
                "failed:ai_failed", **self._common(state, ParseMethod.AI)
            )
            return

        state.trace["decision"] = _decision("regex:ai_failed", state.regex_confidence)
        state.result = RoutingResult.ok(state.regex_record, ParseMethod.REGEX, **self._common(state))

    def _common(self, state: _RoutingState, method: Optional[ParseMethod] = None) -> dict[str, Any]:
        """Fields shared by every RoutingResult built for this email."""
        common = {
            "email_id": state.email.id,
            "trace": state.trace,
            "processing_time_ms": int((time.perf_counter() - state.started) * 1000),
        }
        if method is not None:
            common["method"] = method
        return common
