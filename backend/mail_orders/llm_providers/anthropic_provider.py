"""
Anthropic Provider Implementation
Uses Claude models via Anthropic API
"""

import time
from typing import Optional

import anthropic

from config.llm_config import AIProvider
from mail_orders.error_tracking import BackendFailure, RateLimited, is_rate_limit_message
from mail_orders.logging_config import get_logger

from .base_provider import BaseLLMProvider, LLMResponse

logger = get_logger(__name__)


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude LLM provider implementation.

    Token rate limits are tight, so batches run sequentially in chunks of 3
    with a 2-10 second inter-chunk delay (see get_provider_info).
    """

    provider = AIProvider.ANTHROPIC

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-haiku-20241022",
        timeout: int = 30,
        debug: bool = False,
        api_base_url: Optional[str] = None,
        **kwargs,
    ):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            model: Claude model to use
            timeout: Request timeout in seconds
            debug: Enable debug logging
            api_base_url: Custom API base URL (for proxies)
            **kwargs: batch_size, text_limit, sleep (see BaseLLMProvider)
        """
        super().__init__(api_key, model, timeout, debug, **kwargs)
        self.client = anthropic.Anthropic(api_key=api_key)
        if api_base_url:
            self.client.base_url = api_base_url

    def validate_api_key(self) -> bool:
        """
        Validate Anthropic API key by making a simple request.

        Returns:
            True if valid, False otherwise
        """
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=10,
                messages=[
                    {"role": "user", "content": "Say 'OK'"}
                ]
            )
            return bool(response)
        except anthropic.APIError as e:
            logger.warning(f"Anthropic API validation failed: {e}")
            return False

    def calculate_cost(self, tokens_in: int, tokens_out: int) -> float:
        """
        Calculate cost for Anthropic API call.

        Uses pricing from Anthropic (as of latest update):
        - Claude 3.5 Sonnet: $3/1M input, $15/1M output tokens
        - Claude 3.5 Haiku: $0.80/1M input, $4/1M output tokens

        Args:
            tokens_in: Input tokens used
            tokens_out: Output tokens generated

        Returns:
            Estimated cost in USD
        """
        pricing = {
            "claude-3-5-sonnet": {"input": 0.003, "output": 0.015},
            "claude-3-5-haiku": {"input": 0.0008, "output": 0.004},
            "claude-3-haiku": {"input": 0.00025, "output": 0.00125},
        }

        # Default to Haiku
        input_cost_per_1k = 0.0008
        output_cost_per_1k = 0.004

        for model_name, costs in pricing.items():
            if model_name in self.model:
                input_cost_per_1k = costs["input"]
                output_cost_per_1k = costs["output"]
                break

        total_cost = (tokens_in / 1000) * input_cost_per_1k + (tokens_out / 1000) * output_cost_per_1k

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
            RateLimited: HTTP 429 or rate limit error from the API
            BackendFailure: Any other API, connection or timeout error
        """
        kwargs = {
            "model": self.model,
            "max_tokens": 4096,
            "temperature": 0.1,
            "messages": [{"role": "user", "content": prompt}],
            "timeout": self.timeout,
        }

        if system_prompt:
            kwargs["system"] = system_prompt

        start_time = time.time()

        try:
            response = self.client.messages.create(**kwargs)
        except anthropic.RateLimitError as e:
            raise RateLimited(f"Anthropic rate limit: {e}") from e
        except anthropic.APIError as e:
            if is_rate_limit_message(str(e)):
                raise RateLimited(f"Anthropic rate limit: {e}") from e
            raise BackendFailure(f"Anthropic API error: {e}") from e

        if self.debug:
            logger.debug(f"Anthropic completion took {(time.time() - start_time) * 1000:.0f}ms")

        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        if not response.content:
            raise BackendFailure("Anthropic returned an empty response")
        content = response.content[0].text

        return LLMResponse(
            content=content,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            cost=self.calculate_cost(input_tokens, output_tokens),
        )
