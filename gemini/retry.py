"""Gemini API Retry Logic

Exponential backoff with jitter for Gemini calls, built on tenacity.
Only errors that is_retryable_error() accepts are retried; the last error is
re-raised unchanged once the attempts are used up.
"""

from __future__ import annotations

import random
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)

from api.utils.debug import print__gemini_debug
from gemini.constants import DEFAULT_RETRY_BASE_DELAY_MS, DEFAULT_RETRY_MAX_DELAY_MS
from gemini.errors import GeminiRateLimitError, is_retryable_error

T = TypeVar("T")


# ==============================================================================
# BACKOFF CALCULATION
# ==============================================================================
def calculate_delay_ms(
    attempt: int, base_delay_ms: int, max_delay_ms: int, jitter_factor: float
) -> float:
    """Delay before retry number ``attempt`` (0-based): capped base * 2**attempt plus jitter."""
    capped_delay = min(base_delay_ms * (2**attempt), max_delay_ms)
    jitter = capped_delay * jitter_factor * random.random()
    return capped_delay + jitter


def _backoff_wait(base_delay_ms: int, max_delay_ms: int, jitter_factor: float):
    def wait(retry_state: RetryCallState) -> float:
        delay_ms = calculate_delay_ms(
            retry_state.attempt_number - 1, base_delay_ms, max_delay_ms, jitter_factor
        )
        error = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after_ms = getattr(error, "retry_after_ms", None)
        if retry_after_ms:
            delay_ms = max(delay_ms, retry_after_ms)
        return delay_ms / 1000

    return wait


def _should_retry(retry_on_rate_limit: bool):
    def predicate(error: BaseException) -> bool:
        if isinstance(error, GeminiRateLimitError) and not retry_on_rate_limit:
            return False
        return is_retryable_error(error)

    return predicate


def _log_retry(max_retries: int):
    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        delay_ms = round(retry_state.next_action.sleep * 1000)
        print__gemini_debug(
            f"⏳ Attempt {retry_state.attempt_number}/{max_retries + 1} failed. "
            f"Retrying in {delay_ms}ms - {type(error).__name__}: {error}"
        )

    return before_sleep


# ==============================================================================
# PUBLIC API
# ==============================================================================
async def with_gemini_retry(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay_ms: int = DEFAULT_RETRY_BASE_DELAY_MS,
    max_delay_ms: int = DEFAULT_RETRY_MAX_DELAY_MS,
    jitter_factor: float = 0.1,
    retry_on_rate_limit: bool = True,
) -> T:
    """Await ``fn()`` with retries on transient failures.

    Args:
        fn: Zero-argument coroutine function performing the Gemini call
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        base_delay_ms: Base delay of the exponential backoff
        max_delay_ms: Upper bound of a single delay before jitter
        jitter_factor: Fraction of the delay added at random
        retry_on_rate_limit: When False, GeminiRateLimitError is raised at once

    Returns:
        Whatever ``fn()`` returns

    Raises:
        The last error raised by ``fn()``
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=_backoff_wait(base_delay_ms, max_delay_ms, jitter_factor),
        retry=retry_if_exception(_should_retry(retry_on_rate_limit)),
        before_sleep=_log_retry(max_retries),
        reraise=True,
    )

    async for attempt in retrying:
        with attempt:
            return await fn()


def create_retry_wrapper(**config):
    """Return a function that applies with_gemini_retry with preset settings."""

    async def wrapper(fn: Callable[[], Awaitable[T]]) -> T:
        return await with_gemini_retry(fn, **config)

    return wrapper
