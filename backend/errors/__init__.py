"""
Belto Gateway Error Handling Module

Provides standardized error codes, exceptions, and response builders
for consistent error handling across the AI proxy.

Usage:
    from errors import (
        # Error codes
        ErrorCode,

        # Exceptions
        BeltoError,
        ValidationError,
        UpstreamError,
        ContextFetchError,
        ConfigurationError,
        RetryExhaustedError,

        # Response builders
        chat_response,
        fallback_response,
        error_details,
        error_response,

        # Decorators
        handle_async_errors,
        log_error,
    )

Example:
    from errors import UpstreamError, handle_async_errors

    @handle_async_errors("context_fetch")
    async def fetch_context(...):
        if response.status_code != 200:
            raise ContextFetchError("Context endpoint failed", status_code=response.status_code)
        ...
"""

from .codes import ErrorCode
from .exceptions import (
    BeltoError,
    ValidationError,
    UpstreamError,
    ContextFetchError,
    ConfigurationError,
    RetryExhaustedError,
)
from .response import (
    zero_usage,
    chat_response,
    fallback_response,
    error_details,
    error_response,
)
from .handlers import (
    handle_async_errors,
    log_error,
)

__all__ = [
    # Error codes
    "ErrorCode",
    # Exceptions
    "BeltoError",
    "ValidationError",
    "UpstreamError",
    "ContextFetchError",
    "ConfigurationError",
    "RetryExhaustedError",
    # Response builders
    "zero_usage",
    "chat_response",
    "fallback_response",
    "error_details",
    "error_response",
    # Decorators
    "handle_async_errors",
    "log_error",
]
