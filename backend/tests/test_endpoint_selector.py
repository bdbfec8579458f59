"""
Tests for EndpointSelector ordering, probation and forced re-admission.
"""

import pytest

from services.endpoint_registry import EndpointRegistry
from services.endpoint_selector import EndpointSelector

from conftest import ENDPOINT_A, ENDPOINT_B, ENDPOINT_C


@pytest.fixture
def registry(clock):
    return EndpointRegistry([ENDPOINT_A, ENDPOINT_B, ENDPOINT_C], clock=clock)


@pytest.fixture
def selector():
    return EndpointSelector(retry_interval_s=15)


def _fail_twice(registry, url):
    registry.record_outcome(url, False)
    registry.record_outcome(url, False)


class TestSelection:
    """Fastest-first with least-recently-checked tie-break."""

    def test_fresh_registry_picks_first(self, registry, selector):
        assert selector.select(registry).url == ENDPOINT_A

    def test_fastest_wins(self, registry, selector):
        registry.record_outcome(ENDPOINT_A, True, response_time_ms=300)
        registry.record_outcome(ENDPOINT_B, True, response_time_ms=100)
        registry.record_outcome(ENDPOINT_C, True, response_time_ms=200)
        assert selector.select(registry).url == ENDPOINT_B

    def test_two_endpoints_faster_one_wins(self, clock, selector):
        registry = EndpointRegistry([ENDPOINT_A, ENDPOINT_B], clock=clock)
        registry.record_outcome(ENDPOINT_A, True, response_time_ms=500)
        registry.record_outcome(ENDPOINT_B, True, response_time_ms=100)
        assert selector.select(registry).url == ENDPOINT_B

    def test_tie_broken_by_oldest_check(self, registry, selector, clock):
        clock.advance(5)
        registry.record_outcome(ENDPOINT_A, True, response_time_ms=0)
        # B and C still carry the construction timestamp
        assert selector.select(registry).url == ENDPOINT_B

    def test_unavailable_skipped(self, registry, selector):
        _fail_twice(registry, ENDPOINT_A)
        assert selector.select(registry).url == ENDPOINT_B


class TestProbation:
    """Re-admission during selection."""

    def test_readmitted_after_interval(self, registry, selector, clock):
        _fail_twice(registry, ENDPOINT_A)
        _fail_twice(registry, ENDPOINT_B)
        _fail_twice(registry, ENDPOINT_C)

        clock.advance(15)
        selected = selector.select(registry)

        assert all(e.is_available for e in registry.list())
        assert selected.url == ENDPOINT_A

    def test_not_readmitted_before_interval(self, registry, selector, clock):
        _fail_twice(registry, ENDPOINT_A)
        clock.advance(10)
        assert selector.select(registry).url != ENDPOINT_A
        assert not registry.find(ENDPOINT_A).is_available


class TestForcedReadmission:
    """All endpoints down and none expired."""

    def test_first_endpoint_forced_back(self, registry, selector):
        _fail_twice(registry, ENDPOINT_A)
        _fail_twice(registry, ENDPOINT_B)
        _fail_twice(registry, ENDPOINT_C)

        selected = selector.select(registry)

        assert selected.url == ENDPOINT_A
        assert selected.is_available
        assert selected.fail_count == 0
        assert selected.consecutive_failures == 0
        assert not registry.find(ENDPOINT_B).is_available
        assert not registry.find(ENDPOINT_C).is_available
