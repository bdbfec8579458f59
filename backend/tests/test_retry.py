"""
Tests for the bounded async retry helper.
"""

import asyncio

import pytest

from errors import RetryExhaustedError
from utils.retry import retry_async


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class TestRetryAsync:
    """Sequential attempts, per-attempt timeout, fixed backoff."""

    def test_first_attempt_succeeds(self):
        sleep = RecordingSleep()

        async def op(attempt):
            return f"ok-{attempt}"

        assert asyncio.run(retry_async(op, max_attempts=3, backoff=0.5, sleep=sleep)) == "ok-1"
        assert sleep.calls == []

    def test_retries_until_success(self):
        sleep = RecordingSleep()
        attempts = []

        async def op(attempt):
            attempts.append(attempt)
            if attempt < 3:
                raise ConnectionError("down")
            return "ok"

        assert asyncio.run(retry_async(op, max_attempts=3, backoff=0.5, sleep=sleep)) == "ok"
        assert attempts == [1, 2, 3]
        assert sleep.calls == [0.5, 0.5]

    def test_exhausted_carries_last_error(self):
        sleep = RecordingSleep()

        async def op(attempt):
            raise ValueError(f"failure {attempt}")

        with pytest.raises(RetryExhaustedError) as exc_info:
            asyncio.run(retry_async(op, max_attempts=2, backoff=0.5, sleep=sleep))

        assert exc_info.value.attempts == 2
        assert str(exc_info.value.last_error) == "failure 2"
        # No sleep after the final attempt
        assert sleep.calls == [0.5]

    def test_attempt_timeout(self):
        async def op(attempt):
            if attempt == 1:
                await asyncio.sleep(1)
            return "ok"

        result = asyncio.run(retry_async(op, max_attempts=2, attempt_timeout=0.05, sleep=RecordingSleep()))
        assert result == "ok"

    def test_timeout_is_last_error(self):
        async def op(attempt):
            await asyncio.sleep(1)

        with pytest.raises(RetryExhaustedError) as exc_info:
            asyncio.run(retry_async(op, max_attempts=1, attempt_timeout=0.05))

        assert isinstance(exc_info.value.last_error, asyncio.TimeoutError)

    def test_non_retryable_propagates(self):
        calls = []

        async def op(attempt):
            calls.append(attempt)
            raise KeyError("fatal")

        with pytest.raises(KeyError):
            asyncio.run(retry_async(op, max_attempts=3, retry_on=(ConnectionError,), sleep=RecordingSleep()))
        assert calls == [1]

    def test_on_failure_callback(self):
        seen = []

        async def op(attempt):
            raise ConnectionError(str(attempt))

        with pytest.raises(RetryExhaustedError):
            asyncio.run(retry_async(
                op,
                max_attempts=2,
                on_failure=lambda attempt, error: seen.append((attempt, str(error))),
                sleep=RecordingSleep(),
            ))
        assert seen == [(1, "1"), (2, "2")]

    def test_at_least_one_attempt(self):
        calls = []

        async def op(attempt):
            calls.append(attempt)
            return "ok"

        assert asyncio.run(retry_async(op, max_attempts=0)) == "ok"
        assert calls == [1]
