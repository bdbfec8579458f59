"""
Shared pytest fixtures for the AI gateway tests.
"""

import pytest

from config import RuntimeConfig
from services.llm_client import CompletionResult


ENDPOINT_A = "http://ai-a.test/v1/chat/completions"
ENDPOINT_B = "http://ai-b.test/v1/chat/completions"
ENDPOINT_C = "http://ai-c.test/v1/chat/completions"


class FakeClock:
    """Manually advanced epoch clock. With step > 0 every reading moves it forward."""

    def __init__(self, start: float = 1_000_000.0, step: float = 0.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """
    Scripted stand-in for UpstreamClient.

    Each chat() call consumes the next outcome: a CompletionResult is
    returned, an exception is raised, and an async callable is awaited.
    Once the script runs out every call succeeds with "Hello!".
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    async def chat(self, endpoint_url, messages, model, temperature, max_tokens, timeout):
        self.calls.append({
            "endpoint": endpoint_url,
            "messages": messages,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "timeout": timeout,
        })
        outcome = self.outcomes.pop(0) if self.outcomes else completion("Hello!")
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome()
        return outcome

    async def aclose(self):
        self.closed = True


def completion(content: str = "Hello!", total: int = 12, prompt: int = 8, completion_tokens: int = 4):
    """Build a CompletionResult with usage numbers."""
    return CompletionResult(
        content=content,
        usage={"total_tokens": total, "prompt_tokens": prompt, "completion_tokens": completion_tokens},
    )


def make_config(**overrides) -> RuntimeConfig:
    """Config with test-friendly values (no backoff, no background monitor)."""
    values = {
        "ai_api_key": "test-key",
        "ai_endpoints": [ENDPOINT_A, ENDPOINT_B],
        "internal_base_url": "http://app.test",
        "dispatch_backoff_s": 0.0,
        "health_monitor_enabled": False,
        "admin_key": "admin-secret",
        "request_deadline_s": 0.0,
    }
    values.update(overrides)
    return RuntimeConfig(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return make_config()
