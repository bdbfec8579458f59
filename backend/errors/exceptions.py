"""
Custom exception hierarchy for the Belto AI gateway.

All exceptions inherit from BeltoError and include:
- code: ErrorCode for categorization
- message: Human-readable error message
- details: Optional additional context
- recoverable: Whether the user can retry/fix the issue
- context: Additional key-value pairs for debugging
"""

from typing import Any, Optional
from .codes import ErrorCode


class BeltoError(Exception):
    """Base exception for all gateway errors.

    Attributes:
        code: The ErrorCode categorizing this error
        message: Human-readable error message
        details: Optional additional context for the user
        recoverable: Whether the error can be resolved by user action
        context: Additional debugging information
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        self.message = message
        self.details = details
        self.context = context if context else None

        # Allow overriding class defaults
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ValidationError(BeltoError):
    """Malformed inbound request (the only error surfaced as a real 4xx)."""

    code = ErrorCode.VALIDATION_INVALID_FORMAT
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        **context: Any,
    ):
        ctx = {**context}
        if parameter:
            ctx["parameter"] = parameter
        if expected:
            ctx["expected"] = expected
        if received:
            ctx["received"] = received
        super().__init__(message, details, **ctx)


class UpstreamError(BeltoError):
    """Failure while calling an AI inference backend.

    error_type is one of "connection", "timeout", "status" or "invalid".
    For "status" errors, status_code carries the backend's HTTP status and
    upstream_message whatever error message the backend put in its body.
    """

    code = ErrorCode.UPSTREAM_UNAVAILABLE
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        error_type: str = "connection",
        status_code: Optional[int] = None,
        upstream_message: Optional[str] = None,
        endpoint: Optional[str] = None,
        **context: Any,
    ):
        if error_type == "timeout":
            code = ErrorCode.UPSTREAM_TIMEOUT
        elif error_type == "invalid":
            code = ErrorCode.UPSTREAM_RESPONSE_INVALID
        elif error_type == "status":
            code = _code_for_status(status_code)
        else:
            code = ErrorCode.UPSTREAM_UNAVAILABLE

        self.error_type = error_type
        self.status_code = status_code
        self.upstream_message = upstream_message

        ctx = {**context}
        if endpoint:
            ctx["endpoint"] = endpoint
        if status_code:
            ctx["status_code"] = status_code
        super().__init__(message, details, code=code, **ctx)


def _code_for_status(status_code: Optional[int]) -> ErrorCode:
    if status_code == 400:
        return ErrorCode.UPSTREAM_BAD_REQUEST
    if status_code == 401:
        return ErrorCode.UPSTREAM_AUTH_FAILED
    if status_code == 429:
        return ErrorCode.UPSTREAM_RATE_LIMITED
    if status_code == 504:
        return ErrorCode.UPSTREAM_GATEWAY_TIMEOUT
    if status_code and status_code >= 500:
        return ErrorCode.UPSTREAM_SERVER_ERROR
    return ErrorCode.UPSTREAM_UNAVAILABLE


class ContextFetchError(BeltoError):
    """Lecture context could not be fetched. Never reaches the caller."""

    code = ErrorCode.CONTEXT_FETCH_FAILED
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        lecture_id: Optional[str] = None,
        status_code: Optional[int] = None,
        invalid_payload: bool = False,
        **context: Any,
    ):
        code = ErrorCode.CONTEXT_PAYLOAD_INVALID if invalid_payload else ErrorCode.CONTEXT_FETCH_FAILED
        ctx = {**context}
        if lecture_id:
            ctx["lecture_id"] = lecture_id
        if status_code:
            ctx["status_code"] = status_code
        super().__init__(message, details, code=code, **ctx)


class ConfigurationError(BeltoError):
    """Server-side configuration is missing or invalid."""

    code = ErrorCode.INTERNAL_CONFIG_ERROR
    recoverable = False

    def __init__(self, message: str, details: Optional[str] = None, setting: Optional[str] = None, **context: Any):
        ctx = {**context}
        if setting:
            ctx["setting"] = setting
        super().__init__(message, details, **ctx)


class RetryExhaustedError(BeltoError):
    """Every attempt of a retried operation failed."""

    code = ErrorCode.DISPATCH_EXHAUSTED
    recoverable = True

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException] = None, **context: Any):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message, details=str(last_error) if last_error else None, attempts=attempts, **context)
