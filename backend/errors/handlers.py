"""
Error handling decorators and utilities for the gateway.

Provides a decorator for best-effort async operations whose failures must
never reach the caller.
"""

import logging
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from .exceptions import BeltoError

# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., Any])


def handle_async_errors(operation: str, default: Any = None, logger: Optional[logging.Logger] = None):
    """Decorator that logs any exception and returns ``default`` instead.

    Used for optional work (context enrichment) where a failure means
    "proceed without it" rather than "fail the request". Cancellation is not
    an Exception and still propagates.

    Args:
        operation: Name of the operation for log context
        default: Value returned when the wrapped coroutine raises
        logger: Optional logger instance (defaults to an operation logger)

    Example:
        >>> @handle_async_errors("context_fetch")
        ... async def fetch(...):
        ...     raise ContextFetchError("Context endpoint returned 500")
        >>> await fetch(...)   # logs a warning, returns None
    """

    def decorator(func: F) -> F:
        log = logger or logging.getLogger(f"belto.{operation}")

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except BeltoError as e:
                log.warning(f"[{operation}] {e.code.value}: {e}")
                return default
            except Exception as e:
                log.warning(f"[{operation}] Unexpected error: {type(e).__name__}: {e}")
                return default

        return wrapper  # type: ignore

    return decorator


def log_error(
    logger: logging.Logger, error: BaseException, context: Optional[str] = None, include_traceback: bool = True
) -> None:
    """Log an error with consistent formatting.

    Args:
        logger: Logger instance to use
        error: The exception to log
        context: Optional context string to prefix the message
        include_traceback: Whether to include the full stack trace

    Example:
        >>> log_error(logger, err, context="Dispatch")
        # Logs: "[Dispatch] UPSTREAM_TIMEOUT: Upstream request timed out"
    """
    if isinstance(error, BeltoError):
        message = f"{error.code.value}: {error}"
    else:
        message = f"{type(error).__name__}: {error}"

    if context:
        message = f"[{context}] {message}"

    logger.error(message, exc_info=error if include_traceback else None)
