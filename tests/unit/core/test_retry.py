"""
Unit tests for call_with_retry.
"""

import pytest

from core.domain.exceptions import (
    ExternalServiceError,
    PaymentDeclinedError,
    TransientExternalServiceError,
)
from core.infrastructure.retry import call_with_retry


class Flaky:
    def __init__(self, failures, error=TransientExternalServiceError):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error("boom")
        return "ok"


@pytest.mark.asyncio
class TestCallWithRetry:
    """Test cases for call_with_retry."""

    async def test_returns_first_success(self):
        func = Flaky(0)
        assert await call_with_retry("test.op", func, attempts=3, backoff=0) == "ok"
        assert func.calls == 1

    async def test_retries_transient_failures(self):
        func = Flaky(2)
        assert await call_with_retry("test.op", func, attempts=3, backoff=0) == "ok"
        assert func.calls == 3

    async def test_gives_up_after_attempts(self):
        func = Flaky(5)
        with pytest.raises(TransientExternalServiceError):
            await call_with_retry("test.op", func, attempts=3, backoff=0)
        assert func.calls == 3

    async def test_decline_is_not_retried(self):
        func = Flaky(1, error=PaymentDeclinedError)
        with pytest.raises(PaymentDeclinedError):
            await call_with_retry("test.op", func, attempts=3, backoff=0)
        assert func.calls == 1

    async def test_other_external_errors_are_not_retried(self):
        func = Flaky(1, error=ExternalServiceError)
        with pytest.raises(ExternalServiceError):
            await call_with_retry("test.op", func, attempts=3, backoff=0)
        assert func.calls == 1

    async def test_at_least_one_attempt(self):
        func = Flaky(0)
        assert await call_with_retry("test.op", func, attempts=0, backoff=0) == "ok"
