"""
Google Gemini Provider Implementation
Uses Google Gemini models via Google API
"""

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from config.llm_config import AIProvider
from mail_orders.error_tracking import BackendFailure, RateLimited, is_rate_limit_message
from mail_orders.logging_config import get_logger

from .base_provider import BaseLLMProvider, LLMResponse

logger = get_logger(__name__)


class GoogleProvider(BaseLLMProvider):
    """Google Gemini LLM provider implementation.

    Gemini tolerates larger batches: chunks of 20 run in parallel with a
    shorter inter-chunk delay (see get_provider_info).
    """

    provider = AIProvider.GOOGLE

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        timeout: int = 30,
        debug: bool = False,
        **kwargs,
    ):
        """
        Initialize Google Gemini provider.

        Args:
            api_key: Google API key
            model: Gemini model to use
            timeout: Request timeout in seconds
            debug: Enable debug logging
            **kwargs: batch_size, text_limit, sleep (see BaseLLMProvider)
        """
        super().__init__(api_key, model, timeout, debug, **kwargs)

        genai.configure(api_key=api_key)
        self.model_obj = genai.GenerativeModel(model)

    def validate_api_key(self) -> bool:
        """
        Validate Google API key by making a simple request.

        Returns:
            True if valid, False otherwise
        """
        try:
            response = self.model_obj.generate_content("Say 'OK'")
            return bool(response.text)
        except (google_exceptions.GoogleAPIError, ValueError) as e:
            logger.warning(f"Google API validation failed: {e}")
            return False

    def calculate_cost(self, tokens_in: int, tokens_out: int) -> float:
        """
        Calculate cost for Google Gemini API call.

        Uses pricing from Google (as of latest update):
        - Gemini 1.5 Pro: $3.50/1M input, $10.50/1M output tokens
        - Gemini 1.5 Flash: $0.075/1M input, $0.30/1M output tokens

        Args:
            tokens_in: Input tokens used
            tokens_out: Output tokens generated

        Returns:
            Estimated cost in USD
        """
        pricing = {
            "gemini-1.5-pro": {"input": 0.0035, "output": 0.0105},
            "gemini-1.5-flash": {"input": 0.000075, "output": 0.00030},
        }

        # Default to Flash (cheapest)
        input_cost_per_1k = 0.000075
        output_cost_per_1k = 0.00030

        for model_name, costs in pricing.items():
            if model_name in self.model.lower():
                input_cost_per_1k = costs["input"]
                output_cost_per_1k = costs["output"]
                break

        total_cost = (tokens_in / 1000) * input_cost_per_1k + (
            tokens_out / 1000
        ) * output_cost_per_1k

        return round(total_cost, 6)

    def complete(self, prompt: str, system_prompt: str = None) -> LLMResponse:
        """
        Simple completion API for single prompt.

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt

        Returns:
            LLMResponse with content and token/cost info

        Raises:
            RateLimited: Quota exhausted (HTTP 429)
            BackendFailure: Any other API error or a blocked/empty response
        """
        # Gemini doesn't have separate system messages, combine them
        full_prompt = prompt
        if system_prompt:
            full_prompt = f"{system_prompt}\n\n{prompt}"

        try:
            response = self.model_obj.generate_content(
                full_prompt,
                generation_config=genai.types.GenerationConfig(
                    temperature=0.1,
                    max_output_tokens=4096,
                    response_mime_type="application/json",
                ),
                request_options={"timeout": self.timeout},
            )
            # Raises ValueError when the candidate was blocked
            content = response.text
        except google_exceptions.ResourceExhausted as e:
            raise RateLimited(f"Gemini quota exhausted: {e}") from e
        except google_exceptions.GoogleAPIError as e:
            if is_rate_limit_message(str(e)):
                raise RateLimited(f"Gemini rate limit: {e}") from e
            raise BackendFailure(f"Gemini API error: {e}") from e
        except ValueError as e:
            raise BackendFailure(f"Gemini returned no usable text: {e}") from e

        # Estimate tokens (Gemini doesn't always provide counts)
        input_tokens = self._estimate_tokens(full_prompt)
        output_tokens = self._estimate_tokens(content)

        return LLMResponse(
            content=content,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            cost=self.calculate_cost(input_tokens, output_tokens),
        )
