"""
Tests for EndpointRegistry state transitions.
"""

import pytest

from errors import ConfigurationError
from services.endpoint_registry import EndpointRegistry

from conftest import ENDPOINT_A, ENDPOINT_B


@pytest.fixture
def registry(clock):
    return EndpointRegistry([ENDPOINT_A, ENDPOINT_B], clock=clock)


class TestConstruction:
    """Registry setup."""

    def test_all_available_at_start(self, registry, clock):
        assert len(registry) == 2
        for endpoint in registry.list():
            assert endpoint.is_available
            assert endpoint.fail_count == 0
            assert endpoint.consecutive_failures == 0
            assert endpoint.last_checked_at == clock.now

    def test_empty_list_rejected(self):
        with pytest.raises(ConfigurationError):
            EndpointRegistry([])

    def test_duplicates_collapsed(self, clock):
        registry = EndpointRegistry([ENDPOINT_A, ENDPOINT_A, ENDPOINT_B], clock=clock)
        assert [e.url for e in registry.list()] == [ENDPOINT_A, ENDPOINT_B]
        assert registry.first().url == ENDPOINT_A


class TestRecordOutcome:
    """Success and failure bookkeeping."""

    def test_single_failure_keeps_available(self, registry):
        endpoint = registry.record_outcome(ENDPOINT_A, False)
        assert endpoint.is_available
        assert endpoint.consecutive_failures == 1
        assert endpoint.fail_count == 1

    def test_two_consecutive_failures_mark_unavailable(self, registry):
        registry.record_outcome(ENDPOINT_A, False)
        endpoint = registry.record_outcome(ENDPOINT_A, False)
        assert not endpoint.is_available
        assert [e.url for e in registry.available()] == [ENDPOINT_B]

    def test_success_resets_consecutive_and_decays_fail_count(self, registry, clock):
        registry.record_outcome(ENDPOINT_A, False)
        registry.record_outcome(ENDPOINT_A, False)
        clock.advance(3)

        endpoint = registry.record_outcome(ENDPOINT_A, True, response_time_ms=120.0)
        assert endpoint.is_available
        assert endpoint.consecutive_failures == 0
        assert endpoint.fail_count == 1
        assert endpoint.last_response_time_ms == 120.0
        assert endpoint.last_checked_at == clock.now

    def test_fail_count_never_negative(self, registry):
        endpoint = registry.record_outcome(ENDPOINT_A, True, response_time_ms=10.0)
        assert endpoint.fail_count == 0

    def test_failure_does_not_touch_latency(self, registry):
        registry.record_outcome(ENDPOINT_A, True, response_time_ms=80.0)
        endpoint = registry.record_outcome(ENDPOINT_A, False)
        assert endpoint.last_response_time_ms == 80.0

    def test_unknown_url_is_noop(self, registry):
        assert registry.record_outcome("http://unknown.test/v1/chat/completions", False) is None
        assert all(e.fail_count == 0 for e in registry.list())


class TestReadmission:
    """Probation re-admission."""

    def test_readmit_after_interval(self, registry, clock):
        registry.record_outcome(ENDPOINT_A, False)
        registry.record_outcome(ENDPOINT_A, False)

        clock.advance(14)
        assert registry.readmit_expired(15) == []

        clock.advance(1)
        readmitted = registry.readmit_expired(15)
        assert [e.url for e in readmitted] == [ENDPOINT_A]

        endpoint = registry.find(ENDPOINT_A)
        assert endpoint.is_available
        assert endpoint.fail_count == 0
        assert endpoint.consecutive_failures == 0

    def test_available_endpoints_untouched(self, registry, clock):
        clock.advance(100)
        assert registry.readmit_expired(15) == []


class TestStatus:
    """Status report."""

    def test_status_counts(self, registry):
        registry.record_outcome(ENDPOINT_B, True, response_time_ms=42.4)
        registry.record_outcome(ENDPOINT_A, False)
        registry.record_outcome(ENDPOINT_A, False)

        status = registry.status()
        assert status["totalEndpoints"] == 2
        assert status["availableEndpoints"] == 1

        by_url = {e["url"]: e for e in status["endpoints"]}
        assert by_url[ENDPOINT_A]["status"] == "unavailable"
        assert by_url[ENDPOINT_A]["consecutiveFailures"] == 2
        assert by_url[ENDPOINT_B]["status"] == "available"
        assert by_url[ENDPOINT_B]["responseTimeMs"] == 42
