"""Tests for emwin_tg.utils.retry."""

from __future__ import annotations

import pytest

from emwin_tg.core.exceptions import ArchiveFormatError, FetchError, RetryExhausted
from emwin_tg.utils.retry import RetryConfig, with_retry


class Flaky:
    """Async callable that fails a set number of times before succeeding."""

    def __init__(self, failures: int, result: str = "ok"):
        self.failures = failures
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise FetchError("https://example.com/a.zip", f"HTTP 503 (call {self.calls})")
        return self.result


# =============================================================================
# RetryConfig
# =============================================================================


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_defaults(self):
        """Three attempts, four seconds apart."""
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.delay == 4.0
        assert config.retry_on == (FetchError,)

    def test_invalid_attempts(self):
        """At least one attempt is required."""
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)

    def test_invalid_delay(self):
        """The delay cannot be negative."""
        with pytest.raises(ValueError):
            RetryConfig(delay=-1)

    def test_should_retry(self):
        """Only listed errors, and only while attempts remain."""
        config = RetryConfig(max_attempts=3)
        error = FetchError("u", "boom")

        assert config.should_retry(error, attempt=1)
        assert config.should_retry(error, attempt=2)
        assert not config.should_retry(error, attempt=3)
        assert not config.should_retry(ValueError("bug"), attempt=1)


# =============================================================================
# with_retry
# =============================================================================


class TestWithRetry:
    """Tests for with_retry."""

    async def test_first_try(self):
        """A success needs no retries."""
        func = Flaky(failures=0)

        assert await with_retry(func, RetryConfig(delay=0)) == "ok"
        assert func.calls == 1

    async def test_fail_twice_then_succeed(self):
        """Two failures are absorbed by the third attempt."""
        func = Flaky(failures=2)

        assert await with_retry(func, RetryConfig(delay=0)) == "ok"
        assert func.calls == 3

    async def test_exhausted(self):
        """Three failures raise RetryExhausted carrying the last error."""
        func = Flaky(failures=5)

        with pytest.raises(RetryExhausted) as exc_info:
            await with_retry(func, RetryConfig(delay=0))

        assert func.calls == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, FetchError)
        assert "call 3" in str(exc_info.value.last_error)

    async def test_single_attempt(self):
        """With one attempt there is no retry."""
        func = Flaky(failures=1)

        with pytest.raises(RetryExhausted):
            await with_retry(func, RetryConfig(max_attempts=1, delay=0))
        assert func.calls == 1

    async def test_non_retryable_propagates(self):
        """Errors outside retry_on are raised immediately."""
        calls = 0

        async def broken():
            nonlocal calls
            calls += 1
            raise ArchiveFormatError("File is not a zip file")

        with pytest.raises(ArchiveFormatError):
            await with_retry(broken, RetryConfig(delay=0))
        assert calls == 1

    async def test_on_retry_callback(self):
        """The callback sees every failure that will be retried."""
        seen = []
        config = RetryConfig(
            delay=0,
            on_retry=lambda exc, attempt, delay: seen.append((attempt, delay)),
        )

        with pytest.raises(RetryExhausted):
            await with_retry(Flaky(failures=5), config)

        assert seen == [(1, 0), (2, 0)]

    async def test_fixed_delay(self, monkeypatch):
        """Every pause is the configured delay."""
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        monkeypatch.setattr("emwin_tg.utils.retry.asyncio.sleep", fake_sleep)

        with pytest.raises(RetryExhausted):
            await with_retry(Flaky(failures=5), RetryConfig(delay=4.0))

        assert sleeps == [4.0, 4.0]

    async def test_logs_failed_attempts(self, caplog):
        """Each retried failure is logged as a warning."""
        with caplog.at_level("WARNING", logger="emwin_tg.utils.retry"):
            await with_retry(Flaky(failures=1), RetryConfig(delay=0), label="txtmin02.zip")

        assert "txtmin02.zip" in caplog.text
        assert "attempt 1/3" in caplog.text
