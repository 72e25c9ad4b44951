"""Resilient Anthropic Client — one retry loop around AsyncAnthropic.messages.create.

Invariants:
    - Every SDK failure is classified once (_classify) into retryable or fatal
    - 429 waits for Retry-After when the header is present, else backoff
    - 5xx, 529 overloaded and dropped connections are retried up to max_retries
    - Timeouts and other 4xx fail on the first attempt
    - Callers only ever see AIServiceError (core/errors.py)

Design Decisions:
    - SDK retries disabled (max_retries=0): the policy lives here so that
      exhaustion is reported with the last Retry-After hint
    - Descriptions are a single short completion, so no streaming support
"""

import asyncio
import logging
import random
from typing import NamedTuple

import anthropic
from anthropic import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    InternalServerError,
    RateLimitError,
)

from ideabox.core.errors import AIServiceError, ErrorContext

logger = logging.getLogger(__name__)

# 529 has no dedicated exception class in the SDK
_OVERLOADED_STATUS = 529


class _Verdict(NamedTuple):
    retryable: bool
    error_type: str
    retry_after_ms: int | None = None


def _retry_after_ms(error: APIStatusError) -> int | None:
    value = error.response.headers.get("retry-after")
    if value and value.isdigit():
        return int(value) * 1000
    return None


def _classify(error: APIError) -> _Verdict:
    if isinstance(error, RateLimitError):
        return _Verdict(True, "rate_limit", _retry_after_ms(error))
    # APITimeoutError subclasses APIConnectionError: match it first
    if isinstance(error, APITimeoutError):
        return _Verdict(False, "timeout")
    if isinstance(error, (APIConnectionError, InternalServerError)):
        return _Verdict(True, "connection_error")
    if isinstance(error, APIStatusError) and error.status_code == _OVERLOADED_STATUS:
        return _Verdict(True, "connection_error")
    return _Verdict(False, "client_error")


class ResilientAnthropicClient:
    def __init__(
        self,
        api_key: str,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 30_000,
        timeout_seconds: int = 60,
    ):
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout_seconds, max_retries=0,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def create_message(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: list,
        temperature: float | None = None,
        context: ErrorContext | None = None,
    ):
        """messages.create with retries; raises AIServiceError when out of options."""
        request: dict = {
            "model": model, "max_tokens": max_tokens,
            "system": system, "messages": messages,
        }
        if temperature is not None:
            request["temperature"] = temperature

        attempt = 0
        while True:
            try:
                response = await self.client.messages.create(**request)
            except APIError as e:
                verdict = _classify(e)
                if not verdict.retryable or attempt >= self.max_retries:
                    raise self._failure(e, verdict, context) from e
                delay = verdict.retry_after_ms or self._backoff(attempt)
                logger.warning(
                    f"Anthropic {verdict.error_type}, retrying in {delay}ms",
                    extra={"attempt": attempt + 1, "model": model},
                )
                await asyncio.sleep(delay / 1000)
                attempt += 1
                continue

            logger.info(
                "Anthropic API success",
                extra={
                    "attempt": attempt + 1,
                    "input_tokens": response.usage.input_tokens,
                    "output_tokens": response.usage.output_tokens,
                },
            )
            return response

    def _failure(
        self, error: APIError, verdict: _Verdict, context: ErrorContext | None,
    ) -> AIServiceError:
        if verdict.error_type == "rate_limit":
            message = "Rate limit exceeded after retries"
        elif verdict.error_type == "connection_error":
            message = f"Transient failure after {self.max_retries} retries: {error}"
        elif verdict.error_type == "timeout":
            message = "API timeout"
        else:
            message = str(error)
        return AIServiceError(
            message, verdict.error_type,
            retry_after_ms=verdict.retry_after_ms, context=context,
        )

    def _backoff(self, attempt: int) -> int:
        """Exponential delay in ms, capped, with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311
