"""Gemini API Error Types

Typed exceptions for failures of Gemini calls, a keyword based classifier that
turns SDK / transport exceptions into them, and the user-facing message for
each class.
"""

from __future__ import annotations

from typing import Optional

# Substrings (lower case) that mark an untyped exception as transient
RETRYABLE_PATTERNS = [
    "network",
    "timeout",
    "econnreset",
    "econnrefused",
    "socket hang up",
    "socket closed",
    "etimedout",
    "enotfound",
    "service unavailable",
    "503",
    "500",
    "502",
    "504",
    "internal server error",
    "bad gateway",
    "gateway timeout",
]


# ==============================================================================
# EXCEPTION HIERARCHY
# ==============================================================================
class GeminiError(Exception):
    """Base class for all Gemini-related errors."""

    retryable = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.cause = cause


class GeminiSafetyError(GeminiError):
    """Content blocked by safety filters. The user has to rephrase."""

    def __init__(
        self,
        message: str = "Content blocked by safety filters",
        category: Optional[str] = None,
        probability: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause=cause)
        self.category = category
        self.probability = probability


class GeminiRateLimitError(GeminiError):
    retryable = True

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        retry_after_ms: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, status_code=429, cause=cause)
        self.retry_after_ms = retry_after_ms


class GeminiQuotaError(GeminiError):
    def __init__(
        self,
        message: str = "API quota exceeded. Please check your usage limits.",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, status_code=429, cause=cause)


class GeminiAuthError(GeminiError):
    def __init__(
        self,
        message: str = "Invalid or missing API key",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, status_code=401, cause=cause)


class GeminiModelError(GeminiError):
    """The requested model is unavailable; retryable unless stated otherwise."""

    def __init__(
        self,
        message: str = "Model is unavailable",
        model: Optional[str] = None,
        retryable: bool = True,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, status_code=503, cause=cause)
        self.model = model
        self.retryable = retryable


class GeminiValidationError(GeminiError):
    def __init__(
        self,
        message: str = "Invalid request parameters",
        field: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, status_code=400, cause=cause)
        self.field = field


class GeminiNetworkError(GeminiError):
    retryable = True

    def __init__(
        self,
        message: str = "Network error occurred",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause=cause)


class GeminiTimeoutError(GeminiError):
    retryable = True

    def __init__(
        self,
        message: str = "Request timed out",
        timeout_ms: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, status_code=504, cause=cause)
        self.timeout_ms = timeout_ms


class GeminiRecitationError(GeminiError):
    def __init__(
        self,
        message: str = "Response blocked due to potential recitation of training data",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause=cause)


class GeminiTokenLimitError(GeminiError):
    def __init__(
        self,
        message: str = "Content exceeds token limits",
        token_count: Optional[int] = None,
        max_tokens: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, status_code=400, cause=cause)
        self.token_count = token_count
        self.max_tokens = max_tokens


# ==============================================================================
# ERROR DETECTION UTILITIES
# ==============================================================================
def is_retryable_error(error: BaseException) -> bool:
    """Return True when retrying the failed call may succeed."""
    if isinstance(error, GeminiError):
        return error.retryable

    message = str(error).lower()
    return any(pattern in message for pattern in RETRYABLE_PATTERNS)


def parse_gemini_error(error: BaseException) -> GeminiError:
    """Classify an arbitrary exception into the matching GeminiError subclass.

    The checks run in a fixed order; the first keyword match wins. A
    GeminiError is returned unchanged.
    """
    if isinstance(error, GeminiError):
        return error

    original_message = str(error)
    message = original_message.lower()

    if "safety" in message or "blocked by safety" in message:
        return GeminiSafetyError(original_message, cause=error)

    if "rate limit" in message or "429" in message or "too many requests" in message:
        return GeminiRateLimitError(original_message, cause=error)

    if "quota" in message:
        return GeminiQuotaError(original_message, cause=error)

    if "api key" in message or "unauthorized" in message or "401" in message:
        return GeminiAuthError(original_message, cause=error)

    if "timeout" in message or "504" in message:
        return GeminiTimeoutError(original_message, cause=error)

    if "recitation" in message:
        return GeminiRecitationError(original_message, cause=error)

    if "network" in message or "econnreset" in message or "econnrefused" in message:
        return GeminiNetworkError(original_message, cause=error)

    if "token" in message and "limit" in message:
        return GeminiTokenLimitError(original_message, cause=error)

    return GeminiError(original_message, cause=error)


_FRIENDLY_MESSAGES = [
    (
        GeminiSafetyError,
        "I can't process that request due to safety guidelines. "
        "Please try rephrasing your question.",
    ),
    (
        GeminiRateLimitError,
        "The service is experiencing high demand. Please wait a moment and try again.",
    ),
    (GeminiQuotaError, "API usage limits have been reached. Please try again later."),
    (
        GeminiAuthError,
        "There was an authentication issue. Please check your API configuration.",
    ),
    (GeminiTimeoutError, "The request took too long to complete. Please try again."),
    (
        GeminiRecitationError,
        "Unable to generate a response for this query. Please try a different approach.",
    ),
    (
        GeminiNetworkError,
        "A network error occurred. Please check your connection and try again.",
    ),
    (
        GeminiTokenLimitError,
        "The content is too long. Please try with a shorter message.",
    ),
]


def get_user_friendly_message(error: Optional[BaseException]) -> str:
    for error_class, friendly_message in _FRIENDLY_MESSAGES:
        if isinstance(error, error_class):
            return friendly_message

    if error is not None and str(error):
        return str(error)

    return "An unexpected error occurred. Please try again."
