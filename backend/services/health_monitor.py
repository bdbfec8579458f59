"""
Health Monitor - background probing of the AI backends.

Runs every half threshold period. Each tick first re-admits endpoints whose
probation has expired, then probes (in parallel) every endpoint that has
not been checked within the threshold. A probe is a HEAD request to the
endpoint's base URL; any HTTP response at all counts as reachable, only
transport errors and timeouts count as failures.

Probe outcomes go through EndpointRegistry.record_outcome, the same path
as dispatch outcomes.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

from config import RuntimeConfig
from services.endpoint_registry import Endpoint, EndpointRegistry
from services.llm_client import base_url_for

logger = logging.getLogger(__name__)


class HealthMonitor:
    """Periodically probes stale endpoints and updates the shared registry."""

    def __init__(
        self,
        registry: EndpointRegistry,
        threshold_s: float = 60.0,
        probe_timeout_s: float = 2.0,
        readmit_interval_s: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            registry: Shared endpoint registry
            threshold_s: Endpoints unchecked for longer than this get probed
            probe_timeout_s: Timeout per probe
            readmit_interval_s: Probation period for unavailable endpoints
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.registry = registry
        self.threshold_s = threshold_s
        self.probe_timeout_s = probe_timeout_s
        self.readmit_interval_s = readmit_interval_s
        self._transport = transport
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(
        cls,
        registry: EndpointRegistry,
        config: RuntimeConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HealthMonitor":
        return cls(
            registry,
            threshold_s=config.health_check_threshold_s,
            probe_timeout_s=config.health_probe_timeout_s,
            readmit_interval_s=config.health_readmit_interval_s,
            transport=transport,
        )

    @property
    def interval_s(self) -> float:
        return self.threshold_s / 2

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def probe(self, endpoint: Endpoint) -> bool:
        """Probe one endpoint and record the outcome. Returns reachability."""
        url = base_url_for(endpoint.url)
        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.probe_timeout_s, transport=self._transport) as client:
                await asyncio.wait_for(client.head(url), timeout=self.probe_timeout_s)
        except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as e:
            logger.debug(f"Health probe failed for {endpoint.url}: {e or type(e).__name__}")
            self.registry.record_outcome(endpoint.url, False, 0)
            return False

        elapsed_ms = (time.perf_counter() - started) * 1000
        self.registry.record_outcome(endpoint.url, True, elapsed_ms)
        return True

    async def tick(self) -> int:
        """Run one monitor pass. Returns the number of endpoints probed."""
        now = self.registry.now()
        self.registry.readmit_expired(self.readmit_interval_s, now=now)

        stale = [e for e in self.registry.list() if now - e.last_checked_at > self.threshold_s]
        if not stale:
            return 0

        logger.debug(f"Health monitor probing {len(stale)} stale endpoint(s)")
        await asyncio.gather(*(self.probe(e) for e in stale))
        return len(stale)

    async def check_all(self) -> dict:
        """Probe every endpoint now and return the registry status."""
        await asyncio.gather(*(self.probe(e) for e in self.registry.list()))
        return self.registry.status()

    async def run_forever(self) -> None:
        """Tick every interval until cancelled."""
        while True:
            await asyncio.sleep(self.interval_s)
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Health monitor tick error: {e}", exc_info=True)

    def start(self) -> None:
        """Start the background loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self.run_forever())
        logger.info(f"Health monitor started (every {self.interval_s:.0f}s, {len(self.registry)} endpoint(s))")

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Health monitor stopped")
