"""
Fallback taxonomy - turns a terminal dispatch error into a user-safe reply.

Every backend or network failure ends up here once the dispatch loop is
exhausted. The result carries the diagnostic message and HTTP semantics for
logs and errorDetails, plus the assistant-style text the chat UI renders.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from errors import ErrorCode, RetryExhaustedError, UpstreamError

UNAVAILABLE_TEXT = (
    "I apologize, but I'm currently experiencing connectivity issues. The AI service is taking "
    "longer than expected to respond. Please try sending your message again in a moment."
)
AUTH_TEXT = "I'm experiencing authentication issues. Please contact support if this continues."
BAD_REQUEST_TEXT = "I had trouble understanding your request. Could you please rephrase it?"
RATE_LIMIT_TEXT = "I'm currently handling many requests. Please wait a moment and try again."
GATEWAY_TIMEOUT_TEXT = (
    "Your request is taking longer than expected to process. This might be due to high server load. "
    "Please try again with a shorter message or wait a moment before retrying."
)
UPSTREAM_ERROR_TEXT = "I encountered an unexpected error while processing your request. Please try again."
GENERIC_TEXT = "I apologize, but I'm unable to process your request right now. Please try again later."


@dataclass(frozen=True)
class FallbackDecision:
    code: ErrorCode
    message: str
    status: int
    fallback_text: str
    upstream_status: Optional[int] = None


def _transport(code: ErrorCode, upstream_status: Optional[int] = None) -> FallbackDecision:
    return FallbackDecision(
        code=code,
        message="AI service is temporarily unavailable due to timeout or connectivity issues.",
        status=503,
        fallback_text=UNAVAILABLE_TEXT,
        upstream_status=upstream_status,
    )


def classify_failure(error: BaseException) -> FallbackDecision:
    """Map the last dispatch error onto the fallback taxonomy."""
    if isinstance(error, RetryExhaustedError) and error.last_error is not None:
        error = error.last_error

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return _transport(ErrorCode.UPSTREAM_TIMEOUT)

    if not isinstance(error, UpstreamError):
        return FallbackDecision(
            code=ErrorCode.INTERNAL_UNEXPECTED,
            message="Failed to generate AI response",
            status=500,
            fallback_text=GENERIC_TEXT,
        )

    if error.error_type in ("connection", "timeout"):
        return _transport(error.code)

    status = error.status_code
    if status == 401:
        return FallbackDecision(
            code=ErrorCode.UPSTREAM_AUTH_FAILED,
            message="Authentication issue with AI service.",
            status=500,
            fallback_text=AUTH_TEXT,
            upstream_status=status,
        )
    if status == 400:
        return FallbackDecision(
            code=ErrorCode.UPSTREAM_BAD_REQUEST,
            message="Invalid request format.",
            status=400,
            fallback_text=BAD_REQUEST_TEXT,
            upstream_status=status,
        )
    if status == 429:
        return FallbackDecision(
            code=ErrorCode.UPSTREAM_RATE_LIMITED,
            message="AI service rate limit exceeded.",
            status=429,
            fallback_text=RATE_LIMIT_TEXT,
            upstream_status=status,
        )
    if status == 504:
        return FallbackDecision(
            code=ErrorCode.UPSTREAM_GATEWAY_TIMEOUT,
            message="AI service gateway timeout. The request took too long to process.",
            status=504,
            fallback_text=GATEWAY_TIMEOUT_TEXT,
            upstream_status=status,
        )
    if status is not None and status > 504:
        return _transport(error.code, upstream_status=status)

    if error.upstream_message:
        return FallbackDecision(
            code=error.code,
            message=f"AI service error: {error.upstream_message}",
            status=500,
            fallback_text=UPSTREAM_ERROR_TEXT,
            upstream_status=status,
        )

    return FallbackDecision(
        code=error.code,
        message="Failed to generate AI response",
        status=500,
        fallback_text=GENERIC_TEXT,
        upstream_status=status,
    )
