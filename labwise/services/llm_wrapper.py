"""
Shared language-model call wrapper with opt-in retry and error management.
"""
import logging
import time
from typing import Any, Callable

from openai import APIConnectionError, APIStatusError, APITimeoutError, RateLimitError

logger = logging.getLogger(__name__)


class LLMCallError(Exception):
    """Base exception for LLM call errors."""
    pass


class LLMTimeoutError(LLMCallError):
    """Exception raised when LLM call times out."""
    pass


class LLMRateLimitError(LLMCallError):
    """Exception raised when rate limit is hit."""
    pass


def _is_retryable(error: Exception) -> bool:
    if isinstance(error, (RateLimitError, APITimeoutError, APIConnectionError)):
        return True
    if isinstance(error, APIStatusError):
        return 500 <= error.status_code < 600
    return False


def call_llm_with_retry(
    call: Callable[[], Any],
    max_retries: int = 0,
    base_delay: float = 1.0,
    context: str = "",
) -> Any:
    """
    Invoke ``call`` once, plus up to ``max_retries`` retries on transient errors.

    The default of zero retries keeps one call per pipeline stage; retries add
    latency and cost, so they are only enabled through configuration.

    Raises:
        LLMTimeoutError: If the last attempt timed out
        LLMRateLimitError: If the last attempt hit a rate limit
        LLMCallError: For any other failure
    """
    attempts = max(0, max_retries) + 1

    for attempt in range(attempts):
        try:
            start_time = time.time()
            response = call()
            logger.debug(
                "LLM call successful. Context: %s. Attempt: %d/%d. Time: %.2fs",
                context, attempt + 1, attempts, time.time() - start_time,
            )
            return response
        except Exception as e:
            if _is_retryable(e) and attempt < attempts - 1:
                delay = base_delay * (2 ** attempt)  # Exponential backoff
                logger.warning(
                    "Transient error (%s). Context: %s. Retrying in %.1fs (attempt %d/%d)",
                    type(e).__name__, context, delay, attempt + 1, attempts,
                )
                time.sleep(delay)
                continue

            logger.error("LLM call failed. Context: %s. Attempt: %d/%d. Error: %s", context, attempt + 1, attempts, e)
            if isinstance(e, APITimeoutError):
                raise LLMTimeoutError(f"LLM call timed out. Context: {context}") from e
            if isinstance(e, RateLimitError):
                raise LLMRateLimitError(f"Rate limit exceeded after {attempt + 1} attempt(s). Context: {context}") from e
            raise LLMCallError(f"LLM call failed after {attempt + 1} attempt(s). Context: {context}. Error: {e}") from e

    # Should not reach here, but just in case
    raise LLMCallError(f"LLM call failed after {attempts} attempt(s). Context: {context}")
