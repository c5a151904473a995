"""Tests for retry logic."""

import httpx
import pytest

from md2docx.errors.exceptions import TransientError
from md2docx.errors.retry import build_retrying, classify_http_error, compute_wait
from md2docx.types import RetryConfig, RetryStrategy


class TestClassifyHttpError:
    def test_status_error(self):
        request = httpx.Request("GET", "https://example.com/a.png")
        response = httpx.Response(503, request=request)
        err = classify_http_error(httpx.HTTPStatusError("unavailable", request=request, response=response))
        assert isinstance(err, TransientError)
        assert err.error_type == "http_status"
        assert err.http_status == 503

    def test_timeout(self):
        err = classify_http_error(httpx.ReadTimeout("timed out"))
        assert err.error_type == "timeout"

    def test_connection_error(self):
        err = classify_http_error(httpx.ConnectError("refused"))
        assert err.error_type == "connection"

    def test_unknown(self):
        err = classify_http_error(RuntimeError("weird"))
        assert err.error_type == "unknown"
        assert isinstance(err.original, RuntimeError)


class TestComputeWait:
    def test_linear_backoff(self):
        assert compute_wait(0, RetryStrategy.LINEAR, initial_wait=1.0) == 1.0
        assert compute_wait(1, RetryStrategy.LINEAR, initial_wait=1.0) == 2.0
        assert compute_wait(2, RetryStrategy.LINEAR, initial_wait=1.0) == 3.0

    def test_exponential_backoff(self):
        assert compute_wait(0, RetryStrategy.EXPONENTIAL, initial_wait=1.0) == 1.0
        assert compute_wait(3, RetryStrategy.EXPONENTIAL, initial_wait=1.0) == 8.0

    def test_fixed(self):
        assert compute_wait(5, RetryStrategy.FIXED, initial_wait=2.0) == 2.0

    def test_capped(self):
        assert compute_wait(20, RetryStrategy.EXPONENTIAL, initial_wait=1.0) == 60.0

    def test_jitter_adds_at_most_quarter(self):
        for _ in range(20):
            w = compute_wait(1, RetryStrategy.LINEAR, initial_wait=1.0, jitter=True)
            assert 2.0 <= w <= 2.5

    def test_default_is_linear(self):
        assert compute_wait(1) == 2.0


class TestBuildRetrying:
    async def test_retries_transient_until_success(self):
        calls = 0

        async def flaky():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise TransientError("try again")
            return "ok"

        result = None
        async for attempt in build_retrying(RetryConfig(max_attempts=3, initial_wait=0.0)):
            with attempt:
                result = await flaky()
        assert result == "ok"
        assert calls == 3

    async def test_reraises_after_max_attempts(self):
        calls = 0
        with pytest.raises(TransientError):
            async for attempt in build_retrying(RetryConfig(max_attempts=2, initial_wait=0.0)):
                with attempt:
                    calls += 1
                    raise TransientError("always")
        assert calls == 2

    async def test_other_errors_not_retried(self):
        calls = 0
        with pytest.raises(ValueError):
            async for attempt in build_retrying(RetryConfig(max_attempts=3, initial_wait=0.0)):
                with attempt:
                    calls += 1
                    raise ValueError("fatal")
        assert calls == 1
