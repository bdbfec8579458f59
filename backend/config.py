"""
Runtime Configuration for the Belto AI gateway.

Provides a singleton RuntimeConfig class holding the dispatch tunables
(endpoints, timeouts, health thresholds, context budgets). Values default
from environment variables and can be adjusted at runtime via update().

Usage:
    from config import runtime_config
    timeout = runtime_config.timeout_base_s
    runtime_config.update(dispatch_backoff_s=1.0)
"""

import logging
import os
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS = "http://localhost:9999/v1/chat/completions"

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant named BELTO. "
    "Use previous conversation history to maintain context."
)


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


def _env_float(*keys: str, default: float) -> float:
    return float(_first_env(*keys, default=str(default)))


def _env_int(*keys: str, default: int) -> int:
    return int(_first_env(*keys, default=str(default)))


def _env_bool(key: str, default: bool) -> bool:
    return os.environ.get(key, str(default).lower()).strip().lower() == "true"


def parse_endpoints(raw: str) -> List[str]:
    """Split a comma separated endpoint list, dropping blanks and duplicates."""
    endpoints: List[str] = []
    for part in raw.split(","):
        url = part.strip().rstrip("/")
        if url and url not in endpoints:
            endpoints.append(url)
    return endpoints


def _is_http_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


@dataclass
class RuntimeConfig:
    """
    Singleton configuration for runtime-adjustable parameters.

    All values have defaults from environment variables, but can be
    changed at runtime via the update() method. The endpoint list is read
    once when the dispatch services are built, so changing it here only
    takes effect on restart.
    """

    # Upstream credentials and endpoints
    ai_api_key: str = field(default_factory=lambda: os.environ.get("AI_API_KEY", ""))
    ai_endpoints: List[str] = field(
        default_factory=lambda: parse_endpoints(_first_env("AI_ENDPOINTS", default=DEFAULT_ENDPOINTS))
    )
    # Base URL for self-referential calls (lecture context lookup)
    internal_base_url: str = field(
        default_factory=lambda: _first_env(
            "INTERNAL_BASE_URL",
            "APP_BASE_URL",
            default="http://localhost:8000",
        ).rstrip("/")
    )

    # Per-category timeout budgets (seconds)
    timeout_base_s: float = field(default_factory=lambda: _env_float("AI_TIMEOUT_S", default=12.0))
    timeout_file_summarization_s: float = field(
        default_factory=lambda: _env_float("AI_FILE_SUMMARIZATION_TIMEOUT_S", default=45.0)
    )
    timeout_large_content_s: float = field(
        default_factory=lambda: _env_float("AI_LARGE_CONTENT_TIMEOUT_S", default=30.0)
    )  # Also used for rag_enhanced requests
    large_content_threshold: int = field(
        default_factory=lambda: _env_int("AI_LARGE_CONTENT_THRESHOLD", default=5000)
    )  # Total characters across all message fields

    # Endpoint health
    max_consecutive_failures: int = field(
        default_factory=lambda: _env_int("ENDPOINT_MAX_CONSECUTIVE_FAILURES", default=2)
    )
    endpoint_retry_interval_s: float = field(
        default_factory=lambda: _env_float("ENDPOINT_RETRY_INTERVAL_S", default=15.0)
    )  # Probation re-admission during selection
    health_readmit_interval_s: float = field(
        default_factory=lambda: _env_float(
            "HEALTH_READMIT_INTERVAL_S",
            "ENDPOINT_RETRY_INTERVAL_S",
            default=15.0,
        )
    )  # Re-admission during health monitor ticks
    health_check_threshold_s: float = field(
        default_factory=lambda: _env_float("HEALTH_CHECK_THRESHOLD_S", default=60.0)
    )  # Endpoints unchecked for longer get probed; ticks run at half this period
    health_probe_timeout_s: float = field(
        default_factory=lambda: _env_float("HEALTH_PROBE_TIMEOUT_S", default=2.0)
    )
    health_monitor_enabled: bool = field(
        default_factory=lambda: _env_bool("HEALTH_MONITOR_ENABLED", True)
    )

    # Dispatch loop
    dispatch_max_attempts: int = field(default_factory=lambda: _env_int("DISPATCH_MAX_ATTEMPTS", default=2))
    dispatch_backoff_s: float = field(default_factory=lambda: _env_float("DISPATCH_BACKOFF_S", default=0.5))
    request_deadline_s: float = field(
        default_factory=lambda: _env_float("REQUEST_DEADLINE_S", default=0.0)
    )  # 0 = derived from attempts, timeout and backoff

    # Context enrichment sub-budgets (seconds) and prompt bounds
    context_timeout_s: float = field(default_factory=lambda: _env_float("CONTEXT_TIMEOUT_S", default=5.0))
    context_timeout_large_s: float = field(
        default_factory=lambda: _env_float("CONTEXT_TIMEOUT_LARGE_S", default=8.0)
    )
    context_timeout_file_s: float = field(
        default_factory=lambda: _env_float("CONTEXT_TIMEOUT_FILE_S", default=10.0)
    )
    context_max_documents: int = field(default_factory=lambda: _env_int("CONTEXT_MAX_DOCUMENTS", default=3))
    context_max_chars: int = field(default_factory=lambda: _env_int("CONTEXT_MAX_CHARS", default=2000))

    # Generation defaults (used when the request carries no preferences)
    default_model: str = field(default_factory=lambda: _first_env("AI_DEFAULT_MODEL", default="default-model"))
    default_temperature: float = field(
        default_factory=lambda: _env_float("AI_DEFAULT_TEMPERATURE", default=0.7)
    )
    default_max_tokens: int = field(default_factory=lambda: _env_int("AI_DEFAULT_MAX_TOKENS", default=500))
    default_system_prompt: str = field(
        default_factory=lambda: _first_env("AI_DEFAULT_SYSTEM_PROMPT", default=DEFAULT_SYSTEM_PROMPT)
    )

    # Admin / logging
    admin_key: str = field(default_factory=lambda: os.environ.get("ADMIN_KEY", ""), repr=False)
    log_level: str = field(default_factory=lambda: _first_env("LOG_LEVEL", default="INFO").upper())

    # Internal state
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)
    _update_count: int = field(default=0, repr=False)

    # Validation ranges for numeric config values
    _VALIDATION_RANGES: Dict[str, tuple] = field(default_factory=lambda: {
        "timeout_base_s": (1.0, 300.0),
        "timeout_file_summarization_s": (1.0, 600.0),
        "timeout_large_content_s": (1.0, 600.0),
        "large_content_threshold": (100, 1_000_000),
        "max_consecutive_failures": (1, 100),
        "endpoint_retry_interval_s": (0.0, 3600.0),
        "health_readmit_interval_s": (0.0, 3600.0),
        "health_check_threshold_s": (1.0, 3600.0),
        "health_probe_timeout_s": (0.1, 60.0),
        "dispatch_max_attempts": (1, 10),
        "dispatch_backoff_s": (0.0, 30.0),
        "request_deadline_s": (0.0, 1800.0),
        "context_timeout_s": (0.1, 120.0),
        "context_timeout_large_s": (0.1, 120.0),
        "context_timeout_file_s": (0.1, 120.0),
        "context_max_documents": (0, 50),
        "context_max_chars": (100, 100_000),
        "default_temperature": (0.0, 2.0),
        "default_max_tokens": (1, 32768),
    }, repr=False, compare=False)

    # Never exported or changed through update()
    _SECRET_FIELDS = ("ai_api_key", "admin_key")

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Update configuration values at runtime.

        Args:
            **kwargs: Key-value pairs to update (e.g., timeout_base_s=15)

        Returns:
            Dict with 'updated' (changed keys) and 'ignored' (unknown or rejected keys)
        """
        updated = []
        ignored = []

        with self._lock:
            for key, value in kwargs.items():
                if key.startswith("_") or key in self._SECRET_FIELDS:
                    ignored.append(key)
                    continue

                if not hasattr(self, key):
                    ignored.append(key)
                    logger.warning(f"Config ignored unknown key: {key}")
                    continue

                if key == "ai_endpoints":
                    if isinstance(value, str):
                        value = parse_endpoints(value)
                    if not value or not all(isinstance(u, str) and _is_http_url(u) for u in value):
                        ignored.append(key)
                        logger.warning(f"Config rejected invalid endpoint list: {value!r}")
                        continue

                if key == "internal_base_url" and isinstance(value, str):
                    cleaned = value.strip()
                    if not _is_http_url(cleaned):
                        ignored.append(key)
                        logger.warning(f"Config rejected invalid URL: {key}={value!r}")
                        continue
                    value = cleaned.rstrip("/")

                # Validate numeric ranges
                if key in self._VALIDATION_RANGES:
                    lo, hi = self._VALIDATION_RANGES[key]
                    if isinstance(value, bool) or not isinstance(value, (int, float)) or not (lo <= value <= hi):
                        ignored.append(key)
                        logger.warning(f"Config rejected {key}={value} (must be {lo}-{hi})")
                        continue

                old_value = getattr(self, key)
                setattr(self, key, value)
                updated.append(key)
                logger.info(f"Config updated: {key} = {value} (was {old_value})")

            self._update_count += 1

        return {"updated": updated, "ignored": ignored, "update_count": self._update_count}

    def derived_deadline_s(self) -> float:
        """Outer deadline for one chat request.

        Uses request_deadline_s when set, otherwise the worst case of the
        dispatch loop for the slowest category: every attempt hitting the
        file-summarization timeout plus the backoffs in between, plus the
        largest context-fetch sub-budget.
        """
        if self.request_deadline_s > 0:
            return self.request_deadline_s
        attempts = max(1, min(self.dispatch_max_attempts, len(self.ai_endpoints) or 1))
        return (
            attempts * self.timeout_file_summarization_s
            + (attempts - 1) * self.dispatch_backoff_s
            + self.context_timeout_file_s
        )

    def to_dict(self) -> Dict[str, Any]:
        """Export current config as dict (excludes internal fields, redacts secrets)."""
        from dataclasses import fields as dataclass_fields

        result = {}
        for field_info in dataclass_fields(self):
            if field_info.name.startswith("_"):
                continue
            value = getattr(self, field_info.name)
            if field_info.name in self._SECRET_FIELDS:
                value = bool(value)
            result[field_info.name] = value
        return result

    def reset_to_defaults(self) -> Dict[str, Any]:
        """Reset all tunables to environment defaults. Secrets are kept."""
        defaults = RuntimeConfig()
        changes = {}

        with self._lock:
            for key in self.to_dict().keys():
                if key in self._SECRET_FIELDS:
                    continue
                old_value = getattr(self, key)
                new_value = getattr(defaults, key)
                if old_value != new_value:
                    setattr(self, key, new_value)
                    changes[key] = {"old": old_value, "new": new_value}
                    logger.info(f"Config reset: {key}")

            self._update_count += 1

        return {"reset": True, "changes": changes, "update_count": self._update_count}


# Singleton instance
runtime_config = RuntimeConfig()


def get_config() -> RuntimeConfig:
    """Get the singleton config instance."""
    return runtime_config
