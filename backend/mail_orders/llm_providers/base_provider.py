"""
Base LLM Provider Abstract Class
Defines the interface that all LLM backends implement, plus the shared
single-email and batch analysis built on top of complete()
"""

import json
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Optional

from config.llm_config import AIProvider, get_provider_info
from mail_orders.error_tracking import (
    BackendFailure,
    ErrorStage,
    ErrorType,
    ExtractionError,
    RateLimited,
)
from mail_orders.logging_config import get_logger
from mail_orders.llm_providers.prompts import (
    DEFAULT_TEXT_LIMIT,
    SYSTEM_PROMPT,
    build_incremental_prompt,
    build_multilingual_prompt,
)

logger = get_logger(__name__)


@dataclass
class LLMResponse:
    """Simple response from LLM completion"""

    content: str  # The text content of the response
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0  # Cost in USD


def degraded_result(error: Exception, error_type: ErrorType = ErrorType.API_ERROR) -> dict[str, Any]:
    """Result entry for an email whose analysis failed."""
    return {
        "isOrder": False,
        "debugInfo": {
            "language": "unknown",
            "emailType": "error",
            "error": str(error) or type(error).__name__,
            "errorType": error_type.value,
        },
    }


def extract_json(text: str) -> dict[str, Any]:
    """
    Pull the JSON object out of a model response.

    Handles ```json fenced blocks and prose around the outermost {...}.

    Raises:
        BackendFailure: No parseable JSON object in the response
    """
    if not text:
        raise BackendFailure("Empty response from LLM backend")

    json_str = text
    if "```json" in text:
        json_str = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        json_str = text.split("```")[1].split("```")[0]

    start = json_str.find("{")
    end = json_str.rfind("}")
    if start == -1 or end <= start:
        raise BackendFailure("No JSON found in LLM response")

    try:
        data = json.loads(json_str[start:end + 1])
    except json.JSONDecodeError as e:
        raise BackendFailure(f"Invalid JSON in LLM response: {e}") from e

    if not isinstance(data, dict):
        raise BackendFailure("LLM response JSON is not an object")
    return data


def normalize_analysis(data: dict[str, Any], language: str) -> dict[str, Any]:
    """Bring full and incremental answers into the {isOrder, orderData, debugInfo} shape."""
    if "missingFields" in data:
        order_data = data.get("missingFields") or {}
        return {
            "isOrder": isinstance(order_data, dict),
            "orderData": order_data if isinstance(order_data, dict) else {},
            "debugInfo": {"language": language, "emailType": "incremental"},
        }

    result = {"isOrder": bool(data.get("isOrder", False))}

    order_data = data.get("orderData")
    if isinstance(order_data, dict):
        if result["isOrder"] and not order_data.get("confidence"):
            order_data["confidence"] = 0.5
        result["orderData"] = order_data

    debug_info = data.get("debugInfo")
    result["debugInfo"] = debug_info if isinstance(debug_info, dict) else {
        "language": language,
        "emailType": "unknown",
    }
    return result


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers.

    Subclasses implement complete() against their SDK and translate SDK
    errors into BackendFailure / RateLimited. Everything else (prompting,
    response parsing, batching and backoff) lives here so both backends
    share one contract.
    """

    provider: AIProvider = None

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: int = 30,
        debug: bool = False,
        batch_size: Optional[int] = None,
        text_limit: int = DEFAULT_TEXT_LIMIT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize LLM provider.

        Args:
            api_key: API key for the provider
            model: Model name/ID
            timeout: Request timeout in seconds
            debug: Enable debug logging
            batch_size: Chunk size override for batch analysis
            text_limit: Maximum body characters sent per email
            sleep: Delay function used between chunks (injectable for tests)
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.debug = debug
        self.text_limit = text_limit
        self.sleep = sleep

        info = get_provider_info(self.provider) if self.provider else {}
        self.batch_size = batch_size or info.get("batch_size", 1)
        self.max_workers = info.get("max_workers", 1)
        self.initial_delay = info.get("initial_delay", 1.0)
        self.min_delay = info.get("min_delay", 0.0)
        self.max_delay = info.get("max_delay", 10.0)
        self.rate_limit_cooldown = info.get("rate_limit_cooldown", 0.0)

    @abstractmethod
    def complete(self, prompt: str, system_prompt: str = None) -> LLMResponse:
        """
        Simple completion API for single prompt.

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt

        Returns:
            LLMResponse with content and token/cost info

        Raises:
            RateLimited: Backend signalled rate limiting
            BackendFailure: Any other backend error
        """

    @abstractmethod
    def validate_api_key(self) -> bool:
        """
        Validate that the API key is valid and the provider is accessible.

        Returns:
            True if valid, False otherwise
        """

    @abstractmethod
    def calculate_cost(self, tokens_in: int, tokens_out: int) -> float:
        """
        Calculate estimated cost for a request.

        Args:
            tokens_in: Input tokens
            tokens_out: Output tokens

        Returns:
            Estimated cost in USD
        """

    def build_prompt(self, content: dict[str, Any]) -> str:
        """Full prompt, or an incremental one when content lists missing_fields."""
        language = content.get("language") or "en"
        body = (content.get("body") or "")[:self.text_limit]
        email_text = (
            f"From: {content.get('sender', '')}\n"
            f"Subject: {content.get('subject', '')}\n"
            f"Date: {content.get('date') or ''}\n\n"
            f"{body}"
        )

        missing_fields = content.get("missing_fields")
        if missing_fields:
            context = ""
            if content.get("retailer"):
                context = f"Retailer: {content['retailer']}"
            return build_incremental_prompt(language, email_text, missing_fields,
                                            context=context, max_length=self.text_limit)

        return build_multilingual_prompt(language, email_text, max_length=self.text_limit)

    def _analyze(self, content: dict[str, Any]) -> dict[str, Any]:
        """Analyze one email; raises BackendFailure / RateLimited on failure."""
        prompt = self.build_prompt(content)
        response = self.complete(prompt, system_prompt=SYSTEM_PROMPT)

        data = extract_json(response.content)
        result = normalize_analysis(data, content.get("language") or "unknown")

        if self.debug:
            logger.debug(
                f"LLM analysis: isOrder={result['isOrder']} "
                f"tokens={response.total_tokens} cost=${response.cost:.6f}",
                extra={"email_id": content.get("id")},
            )
        return result

    def analyze_email(self, content: dict[str, Any]) -> dict[str, Any]:
        """
        Analyze a single email.

        Args:
            content: Dict with id, subject, sender, date, body, language and
                optionally missing_fields and retailer

        Returns:
            {"isOrder": bool, "orderData": {...}, "debugInfo": {...}}; failures
            come back as a degraded entry with debugInfo.error, never raised
        """
        try:
            return self._analyze(content)
        except Exception as e:  # adapter boundary: nothing propagates past here
            error = ExtractionError.from_exception(
                e, ErrorStage.LLM, context={"email_id": content.get("id")}
            )
            error.log()
            return degraded_result(e, error.error_type)

    def _analyze_for_batch(self, content: dict[str, Any]) -> tuple[dict[str, Any], bool]:
        """Analyze one email of a chunk; returns (result, rate_limited)."""
        try:
            return self._analyze(content), False
        except RateLimited as e:
            logger.warning(f"Rate limited while analyzing email {content.get('id')}: {e}")
            return degraded_result(e, ErrorType.RATE_LIMIT), True
        except Exception as e:  # one failed email must not abort the chunk
            error = ExtractionError.from_exception(
                e, ErrorStage.BATCH, context={"email_id": content.get("id")}
            )
            error.log()
            return degraded_result(e, error.error_type), error.error_type == ErrorType.RATE_LIMIT

    def _run_chunk(self, chunk: list[dict[str, Any]]) -> tuple[dict[str, Any], bool]:
        results = {}
        rate_limited = False

        if self.max_workers <= 1 or len(chunk) == 1:
            for content in chunk:
                result, limited = self._analyze_for_batch(content)
                results[content["id"]] = result
                rate_limited = rate_limited or limited
            return results, rate_limited

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(chunk))) as executor:
            futures = {
                executor.submit(self._analyze_for_batch, content): content["id"]
                for content in chunk
            }
            for future in as_completed(futures):
                result, limited = future.result()
                results[futures[future]] = result
                rate_limited = rate_limited or limited

        return results, rate_limited

    def batch_analyze_emails(self, emails: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
        """
        Analyze many emails in chunks with an adaptive inter-chunk delay.

        The delay shrinks by 10% after a clean chunk (never below min_delay)
        and doubles after a rate-limited chunk (never above max_delay), with
        an extra cooldown pause. A delay is always inserted between chunks.

        Args:
            emails: Content dicts as accepted by analyze_email, each with a unique id

        Returns:
            Dict mapping email id to its analysis result
        """
        results: dict[str, dict[str, Any]] = {}
        if not emails:
            return results

        delay = self.initial_delay
        total = len(emails)

        for start in range(0, total, self.batch_size):
            chunk = emails[start:start + self.batch_size]
            chunk_start = time.time()

            chunk_results, rate_limited = self._run_chunk(chunk)
            results.update(chunk_results)

            if rate_limited:
                delay = min(self.max_delay, delay * 2)
                logger.warning(
                    f"LLM backend rate limited, increasing delay to {delay:.1f}s"
                )
                self.sleep(self.rate_limit_cooldown)
            else:
                delay = max(self.min_delay, delay * 0.9)

            if start + self.batch_size < total:
                self.sleep(delay)

            elapsed_ms = int((time.time() - chunk_start) * 1000)
            logger.info(
                f"LLM analyzed {len(results)}/{total} emails (chunk took {elapsed_ms}ms)"
            )

        return results

    @staticmethod
    def _estimate_tokens(text: str) -> int:
        """Rough estimate of tokens (1 token ≈ 4 characters)."""
        return max(1, len(text) // 4)
