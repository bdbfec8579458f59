"""
Endpoint Registry - live health and latency state of the AI backends.

One registry is built at startup from the configured endpoint URLs and
shared by the dispatch orchestrator and the health monitor. The endpoint
set is fixed for the life of the process; a restart resets every endpoint
to "available".

Updates are small per-field assignments without locking. Concurrent
requests may race on the same endpoint and lose an update, which is
acceptable for a routing heuristic.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from errors import ConfigurationError
from logging_config import log_endpoint_state

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_FAILURES = 2


@dataclass
class Endpoint:
    """One upstream AI backend, identified by its URL."""

    url: str
    is_available: bool = True
    fail_count: int = 0
    consecutive_failures: int = 0
    last_response_time_ms: float = 0.0
    last_checked_at: float = 0.0  # epoch seconds

    def to_status(self) -> Dict[str, Any]:
        """Status entry as reported by the health/status query."""
        return {
            "url": self.url,
            "status": "available" if self.is_available else "unavailable",
            "responseTimeMs": round(self.last_response_time_ms),
            "consecutiveFailures": self.consecutive_failures,
            "failCount": self.fail_count,
            "lastCheckedAt": self.last_checked_at,
        }


class EndpointRegistry:
    """Holds the fixed set of candidate endpoints and their health state."""

    def __init__(
        self,
        urls: Sequence[str],
        max_consecutive_failures: int = MAX_CONSECUTIVE_FAILURES,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            urls: Endpoint URLs, in priority order (the first one is the
                  forced fallback when every endpoint is down)
            max_consecutive_failures: Failures in a row before an endpoint
                  is marked unavailable
            clock: Time source in epoch seconds (injectable for tests)
        """
        if not urls:
            raise ConfigurationError(
                "No AI endpoints configured",
                details="Set AI_ENDPOINTS to a comma separated list of chat completion URLs",
                setting="AI_ENDPOINTS",
            )

        self.max_consecutive_failures = max_consecutive_failures
        self._clock = clock
        now = clock()
        self._endpoints: List[Endpoint] = []
        for url in urls:
            if any(e.url == url for e in self._endpoints):
                continue
            self._endpoints.append(Endpoint(url=url, last_checked_at=now))

        logger.info(f"Endpoint registry ready with {len(self._endpoints)} endpoint(s)")

    def __len__(self) -> int:
        return len(self._endpoints)

    def now(self) -> float:
        """Current time from the registry's clock."""
        return self._clock()

    def list(self) -> List[Endpoint]:
        """All endpoints in configuration order (live objects)."""
        return list(self._endpoints)

    def first(self) -> Endpoint:
        """The first configured endpoint."""
        return self._endpoints[0]

    def find(self, url: str) -> Optional[Endpoint]:
        """Look up an endpoint by URL."""
        for endpoint in self._endpoints:
            if endpoint.url == url:
                return endpoint
        return None

    def record_outcome(
        self,
        url: str,
        success: bool,
        response_time_ms: float = 0.0,
        now: Optional[float] = None,
    ) -> Optional[Endpoint]:
        """Fold the outcome of one dispatch attempt or probe into the endpoint state.

        Args:
            url: Endpoint URL
            success: Whether the call succeeded
            response_time_ms: Round-trip latency (only stored on success)
            now: Timestamp override (defaults to the registry clock)

        Returns:
            The updated endpoint, or None for an unknown URL (logged, no-op)
        """
        endpoint = self.find(url)
        if endpoint is None:
            logger.warning(f"Outcome recorded for unknown endpoint {url} - ignored")
            return None

        endpoint.last_checked_at = self._clock() if now is None else now

        if success:
            if not endpoint.is_available:
                log_endpoint_state(logger, url, True, "successful response")
            endpoint.is_available = True
            endpoint.last_response_time_ms = response_time_ms
            endpoint.consecutive_failures = 0
            # Gradually reduce fail count on success
            endpoint.fail_count = max(0, endpoint.fail_count - 1)
        else:
            endpoint.fail_count += 1
            endpoint.consecutive_failures += 1

            if endpoint.is_available and endpoint.consecutive_failures >= self.max_consecutive_failures:
                endpoint.is_available = False
                log_endpoint_state(
                    logger, url, False, f"{endpoint.consecutive_failures} consecutive failures"
                )

        return endpoint

    def readmit(self, endpoint: Endpoint, reason: str = "") -> None:
        """Put an endpoint back into the selectable pool with cleared failure counters."""
        endpoint.is_available = True
        endpoint.fail_count = 0
        endpoint.consecutive_failures = 0
        log_endpoint_state(logger, endpoint.url, True, reason)

    def readmit_expired(self, interval_s: float, now: Optional[float] = None) -> List[Endpoint]:
        """Re-admit every unavailable endpoint whose last check is at least interval_s old.

        Probation policy: no successful probe is required.

        Returns:
            The endpoints that were re-admitted
        """
        now = self._clock() if now is None else now
        readmitted = []
        for endpoint in self._endpoints:
            if not endpoint.is_available and now - endpoint.last_checked_at >= interval_s:
                self.readmit(endpoint, f"probation after {now - endpoint.last_checked_at:.0f}s")
                readmitted.append(endpoint)
        return readmitted

    def available(self) -> List[Endpoint]:
        """Endpoints currently marked available."""
        return [e for e in self._endpoints if e.is_available]

    def status(self) -> Dict[str, Any]:
        """Per-endpoint status plus aggregate counts."""
        entries = [e.to_status() for e in self._endpoints]
        return {
            "endpoints": entries,
            "availableEndpoints": sum(1 for e in entries if e["status"] == "available"),
            "totalEndpoints": len(entries),
        }
