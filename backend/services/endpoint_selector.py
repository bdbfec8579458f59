"""
Endpoint Selector - picks the backend to try next.

Greedy fastest-first selection with a least-recently-checked tie-break:
traffic converges on the empirically fastest healthy backend while ties
still rotate across the others.
"""

import logging
from typing import Optional

from services.endpoint_registry import Endpoint, EndpointRegistry

logger = logging.getLogger(__name__)

RETRY_INTERVAL_S = 15.0


class EndpointSelector:
    """Chooses an endpoint from the registry's current state.

    Selection also performs probation re-admission, so it mutates the
    registry: unavailable endpoints whose last check is old enough are
    returned to the pool before filtering.
    """

    def __init__(self, retry_interval_s: float = RETRY_INTERVAL_S):
        self.retry_interval_s = retry_interval_s

    def select(self, registry: EndpointRegistry, now: Optional[float] = None) -> Endpoint:
        """Return the best endpoint to try next. Never fails for a non-empty registry."""
        now = registry.now() if now is None else now

        registry.readmit_expired(self.retry_interval_s, now=now)

        candidates = registry.available()
        if not candidates:
            # Every endpoint is down: force the first one back so we never wedge
            first = registry.first()
            logger.warning("All endpoints unavailable, resetting the first one for retry")
            registry.readmit(first, "forced, all endpoints unavailable")
            return first

        candidates.sort(key=lambda e: (e.last_response_time_ms, e.last_checked_at))
        return candidates[0]
