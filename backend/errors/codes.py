"""
Error codes for the Belto AI gateway.

Provides a standardized taxonomy of error codes organized by category.
Use these codes consistently across all error responses.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for the gateway.

    Categories:
    - VALIDATION_*: Malformed inbound chat requests
    - UPSTREAM_*: Failures talking to an AI inference backend
    - CONTEXT_*: Lecture context enrichment failures (always swallowed)
    - DISPATCH_*: Dispatch loop outcomes
    - INTERNAL_*: Internal/unexpected errors
    """

    # Validation errors (input checking)
    VALIDATION_NO_MESSAGES = "VALIDATION_NO_MESSAGES"
    VALIDATION_INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"

    # Upstream errors (AI backends)
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
    UPSTREAM_AUTH_FAILED = "UPSTREAM_AUTH_FAILED"
    UPSTREAM_BAD_REQUEST = "UPSTREAM_BAD_REQUEST"
    UPSTREAM_RATE_LIMITED = "UPSTREAM_RATE_LIMITED"
    UPSTREAM_GATEWAY_TIMEOUT = "UPSTREAM_GATEWAY_TIMEOUT"
    UPSTREAM_SERVER_ERROR = "UPSTREAM_SERVER_ERROR"
    UPSTREAM_RESPONSE_INVALID = "UPSTREAM_RESPONSE_INVALID"

    # Context enrichment errors
    CONTEXT_FETCH_FAILED = "CONTEXT_FETCH_FAILED"
    CONTEXT_PAYLOAD_INVALID = "CONTEXT_PAYLOAD_INVALID"

    # Dispatch outcomes
    DISPATCH_EXHAUSTED = "DISPATCH_EXHAUSTED"
    DISPATCH_DEADLINE_EXCEEDED = "DISPATCH_DEADLINE_EXCEEDED"

    # Internal errors (unexpected failures)
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
    INTERNAL_CONFIG_ERROR = "INTERNAL_CONFIG_ERROR"
