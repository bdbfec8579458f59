"""
Belto Gateway Logging Configuration - Color-Coded Logs

Provides:
- ColorFormatter: ANSI color-coded log output
- Helper functions: log_request_in, log_dispatch, log_endpoint_state, log_fallback
- setup_logging(): Configure application logging

Usage:
    from logging_config import setup_logging, log_dispatch
    setup_logging()
    logger = logging.getLogger(__name__)
    log_dispatch(logger, "start", endpoint=url, attempt=1)
"""

import logging
import sys

# ANSI color codes
COLORS = {
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
    "DIM": "\033[2m",
    # Event colors
    "REQ_IN": "\033[96m",  # Cyan - incoming chat request
    "DISPATCH": "\033[94m",  # Blue - upstream dispatch
    "HEALTH": "\033[95m",  # Magenta - endpoint state changes
    "FALLBACK": "\033[93m",  # Yellow - degraded responses
    "OK": "\033[92m",  # Green - successful responses
    "ERROR": "\033[91m",  # Red - errors
    "WARN": "\033[33m",  # Orange/Yellow - warnings
    "DEBUG": "\033[90m",  # Gray - debug info
}


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    LEVEL_COLORS = {
        logging.DEBUG: COLORS["DEBUG"],
        logging.INFO: COLORS["RESET"],
        logging.WARNING: COLORS["WARN"],
        logging.ERROR: COLORS["ERROR"],
        logging.CRITICAL: COLORS["ERROR"] + COLORS["BOLD"],
    }

    def format(self, record: logging.LogRecord) -> str:
        # Apply level-based color
        color = self.LEVEL_COLORS.get(record.levelno, COLORS["RESET"])

        # Format: timestamp [LEVEL] message (no module name for compactness)
        timestamp = self.formatTime(record, "%H:%M:%S")
        level = record.levelname[:4]

        formatted = (
            f"{COLORS['DIM']}{timestamp}{COLORS['RESET']} "
            f"[{color}{level}{COLORS['RESET']}] "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure colored logging for the application."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter())

    # Configure root logger
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# =============================================================================
# COLORED LOG HELPER FUNCTIONS
# =============================================================================


def log_request_in(logger: logging.Logger, category: str, timeout_s: float, **context) -> None:
    """Log an incoming chat request after classification.

    Args:
        logger: Logger instance
        category: Classification category (regular, rag_enhanced, ...)
        timeout_s: Per-attempt timeout budget
        **context: Additional context (messages, lecture, reason, etc.)
    """
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    logger.info(f"{COLORS['REQ_IN']}>>> CHAT{COLORS['RESET']} {category} timeout={timeout_s:.0f}s [{ctx}]")


def log_dispatch(
    logger: logging.Logger,
    state: str,
    endpoint: str = "",
    attempt: int = 0,
    duration_ms: float = 0,
    error: str = "",
) -> None:
    """Log one upstream dispatch attempt.

    Args:
        logger: Logger instance
        state: 'start', 'end' or 'fail'
        endpoint: Endpoint URL
        attempt: Attempt number (1-based)
        duration_ms: Round-trip time (for end/fail states)
        error: Error summary (for fail state)
    """
    if state == "start":
        logger.info(f"{COLORS['DISPATCH']}>>> DISPATCH{COLORS['RESET']} attempt {attempt} -> {endpoint}")
    elif state == "end":
        logger.info(
            f"{COLORS['OK']}<<< DISPATCH{COLORS['RESET']} attempt {attempt} "
            f"{endpoint} ok in {duration_ms:.0f}ms"
        )
    else:
        logger.warning(
            f"{COLORS['ERROR']}<<< DISPATCH{COLORS['RESET']} attempt {attempt} "
            f"{endpoint} failed after {duration_ms:.0f}ms: {error}"
        )


def log_endpoint_state(logger: logging.Logger, endpoint: str, available: bool, reason: str = "") -> None:
    """Log an endpoint availability transition.

    Args:
        logger: Logger instance
        endpoint: Endpoint URL
        available: New availability
        reason: Why the state changed
    """
    state = "AVAILABLE" if available else "UNAVAILABLE"
    suffix = f" ({reason})" if reason else ""
    logger.info(f"{COLORS['HEALTH']}*** ENDPOINT{COLORS['RESET']} {endpoint} -> {state}{suffix}")


def log_fallback(logger: logging.Logger, code: str, message: str, attempts: int = 0) -> None:
    """Log a degraded (fallback) response.

    Args:
        logger: Logger instance
        code: ErrorCode value
        message: Diagnostic message
        attempts: Number of dispatch attempts made
    """
    logger.warning(
        f"{COLORS['FALLBACK']}<<< FALLBACK{COLORS['RESET']} {code} after {attempts} attempt(s): {message}"
    )
