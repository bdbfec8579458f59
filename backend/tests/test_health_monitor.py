"""
Tests for the background HealthMonitor.

Probes go through httpx.MockTransport; the registry runs on a fake clock.
"""

import asyncio

import httpx
import pytest

from services.endpoint_registry import EndpointRegistry
from services.health_monitor import HealthMonitor

from conftest import ENDPOINT_A, ENDPOINT_B


class ProbeRecorder:
    """MockTransport handler that records requests and fails chosen hosts."""

    def __init__(self, down_hosts=(), status_code=200):
        self.down_hosts = set(down_hosts)
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host in self.down_hosts:
            raise httpx.ConnectError("Connection refused", request=request)
        return httpx.Response(self.status_code)


@pytest.fixture
def registry(clock):
    return EndpointRegistry([ENDPOINT_A, ENDPOINT_B], clock=clock)


def _monitor(registry, recorder, **kwargs):
    return HealthMonitor(registry, transport=httpx.MockTransport(recorder), **kwargs)


class TestProbe:
    """Single endpoint probes."""

    def test_head_request_to_base_url(self, registry):
        recorder = ProbeRecorder()
        monitor = _monitor(registry, recorder)

        assert asyncio.run(monitor.probe(registry.first())) is True

        request = recorder.requests[0]
        assert request.method == "HEAD"
        assert str(request.url) == "http://ai-a.test/v1"

    def test_any_status_counts_as_reachable(self, registry):
        monitor = _monitor(registry, ProbeRecorder(status_code=503))

        assert asyncio.run(monitor.probe(registry.first())) is True
        assert registry.first().consecutive_failures == 0

    def test_transport_error_recorded_as_failure(self, registry):
        monitor = _monitor(registry, ProbeRecorder(down_hosts={"ai-a.test"}))

        assert asyncio.run(monitor.probe(registry.first())) is False
        assert registry.first().consecutive_failures == 1
        assert registry.first().fail_count == 1


class TestTick:
    """One monitor pass."""

    def test_fresh_endpoints_not_probed(self, registry):
        recorder = ProbeRecorder()
        monitor = _monitor(registry, recorder, threshold_s=60)

        assert asyncio.run(monitor.tick()) == 0
        assert recorder.requests == []

    def test_stale_endpoints_probed(self, registry, clock):
        recorder = ProbeRecorder(down_hosts={"ai-b.test"})
        monitor = _monitor(registry, recorder, threshold_s=60)

        clock.advance(61)
        assert asyncio.run(monitor.tick()) == 2

        assert {r.url.host for r in recorder.requests} == {"ai-a.test", "ai-b.test"}
        assert registry.find(ENDPOINT_A).last_checked_at == clock.now
        assert registry.find(ENDPOINT_B).consecutive_failures == 1

    def test_repeated_probe_failures_mark_unavailable(self, registry, clock):
        monitor = _monitor(registry, ProbeRecorder(down_hosts={"ai-b.test"}), threshold_s=60, readmit_interval_s=15)

        clock.advance(61)
        asyncio.run(monitor.tick())
        clock.advance(61)
        asyncio.run(monitor.tick())

        assert not registry.find(ENDPOINT_B).is_available

    def test_tick_readmits_expired_endpoints(self, registry, clock):
        registry.record_outcome(ENDPOINT_B, False)
        registry.record_outcome(ENDPOINT_B, False)
        monitor = _monitor(registry, ProbeRecorder(), threshold_s=60, readmit_interval_s=15)

        clock.advance(15)
        asyncio.run(monitor.tick())

        assert registry.find(ENDPOINT_B).is_available
        assert registry.find(ENDPOINT_B).consecutive_failures == 0


class TestCheckAll:
    """On-demand probing of every endpoint."""

    def test_probes_regardless_of_staleness(self, registry):
        recorder = ProbeRecorder(down_hosts={"ai-a.test"})
        monitor = _monitor(registry, recorder)

        status = asyncio.run(monitor.check_all())

        assert len(recorder.requests) == 2
        assert status["totalEndpoints"] == 2
        assert status["availableEndpoints"] == 2
        assert registry.find(ENDPOINT_A).consecutive_failures == 1

    def test_malformed_url_recorded_as_failure(self, clock):
        bad = "http://[::1/v1/chat/completions"
        registry = EndpointRegistry([bad, ENDPOINT_B], clock=clock)
        recorder = ProbeRecorder()
        monitor = _monitor(registry, recorder)

        status = asyncio.run(monitor.check_all())

        assert registry.find(bad).consecutive_failures == 1
        assert registry.find(ENDPOINT_B).consecutive_failures == 0
        assert status["totalEndpoints"] == 2
        assert len(recorder.requests) == 1


class TestLifecycle:
    """Background task start/stop."""

    def test_start_and_stop(self, registry):
        recorder = ProbeRecorder()
        monitor = _monitor(registry, recorder, threshold_s=60)

        async def scenario():
            monitor.start()
            assert monitor.running
            await asyncio.sleep(0)
            await monitor.stop()
            assert not monitor.running

        asyncio.run(scenario())
        # The loop sleeps before its first tick
        assert recorder.requests == []

    def test_stop_without_start(self, registry):
        monitor = _monitor(registry, ProbeRecorder())
        asyncio.run(monitor.stop())
        assert not monitor.running

    def test_interval_is_half_threshold(self, registry):
        assert _monitor(registry, ProbeRecorder(), threshold_s=60).interval_s == 30
