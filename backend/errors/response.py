"""
Wire payload builders for the AI proxy.

Every chat outcome the client sees is built here, so the success payload,
the degraded fallback envelope and the rare hard error share one shape.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .codes import ErrorCode
from .exceptions import BeltoError


def zero_usage() -> Dict[str, int]:
    """Token usage block reported when nothing was generated."""
    return {"total_tokens": 0, "prompt_tokens": 0, "completion_tokens": 0}


def chat_response(content: str, token_usage: Optional[Dict[str, Any]] = None) -> dict:
    """Build the success payload.

    Example:
        >>> chat_response("Hello!", {"total_tokens": 12})
        {
            "response": "Hello!",
            "tokenUsage": {"total_tokens": 12, "prompt_tokens": 0, "completion_tokens": 0}
        }
    """
    usage = zero_usage()
    if token_usage:
        for key in usage:
            value = token_usage.get(key)
            if isinstance(value, int):
                usage[key] = value
    return {"response": content, "tokenUsage": usage}


def error_details(
    message: str,
    code: ErrorCode | str,
    status: Optional[int] = None,
    timestamp: Optional[datetime] = None,
) -> dict:
    """Build the diagnostic block attached to a fallback response."""
    timestamp = timestamp or datetime.now(timezone.utc)
    return {
        "message": message,
        "code": code.value if isinstance(code, ErrorCode) else code,
        "status": status,
        "timestamp": timestamp.isoformat(),
    }


def fallback_response(fallback_text: str, details: dict) -> dict:
    """Build the degraded envelope returned when every dispatch attempt failed.

    The envelope is success-shaped: the chat UI renders ``response`` like any
    assistant message and uses ``isError`` only for styling.
    """
    return {
        "response": fallback_text,
        "tokenUsage": zero_usage(),
        "isError": True,
        "errorDetails": details,
    }


def error_response(error: BeltoError | Exception | str) -> dict:
    """Build a hard error payload (``{"error": ...}``) for 4xx/5xx responses."""
    if isinstance(error, BeltoError):
        return {"error": error.message}
    return {"error": str(error)}
