"""Retry policy for network image fetches."""

from __future__ import annotations

import logging
import random

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from md2docx.errors.exceptions import TransientError
from md2docx.types import RetryConfig, RetryStrategy

logger = logging.getLogger(__name__)

_MAX_WAIT = 60.0  # seconds


def classify_http_error(exc: Exception) -> TransientError:
    """Convert an httpx exception to a retryable TransientError.

    Every failed attempt is retried, so the classification only decides the
    ``error_type`` reported in logs and the final error message.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return TransientError(
            f"HTTP {status} from {exc.request.url}",
            error_type="http_status",
            http_status=status,
            original=exc,
        )
    if isinstance(exc, httpx.TimeoutException):
        return TransientError(str(exc) or "request timed out", error_type="timeout", original=exc)
    if isinstance(exc, httpx.TransportError):
        return TransientError(str(exc) or "connection failed", error_type="connection", original=exc)
    return TransientError(str(exc), error_type="unknown", original=exc)


def compute_wait(
    attempt: int,
    strategy: RetryStrategy = RetryStrategy.LINEAR,
    initial_wait: float = 1.0,
    jitter: bool = False,
) -> float:
    """Compute the wait after the zero-based ``attempt`` failed."""
    if strategy == RetryStrategy.EXPONENTIAL:
        wait = initial_wait * (2**attempt)
    elif strategy == RetryStrategy.LINEAR:
        wait = initial_wait * (attempt + 1)
    else:  # FIXED
        wait = initial_wait

    if jitter:
        wait += random.uniform(0, wait * 0.25)

    return min(wait, _MAX_WAIT)


def build_retrying(config: RetryConfig) -> AsyncRetrying:
    """Build a tenacity controller that retries TransientError per ``config``."""

    def _wait(state: RetryCallState) -> float:
        return compute_wait(
            state.attempt_number - 1,
            config.strategy,
            config.initial_wait,
            jitter=config.strategy == RetryStrategy.EXPONENTIAL,
        )

    def _log_retry(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "Attempt %d/%d failed: %s. Retrying in %.1fs",
            state.attempt_number,
            config.max_attempts,
            exc,
            state.next_action.sleep if state.next_action else 0.0,
        )

    return AsyncRetrying(
        retry=retry_if_exception_type(TransientError),
        stop=stop_after_attempt(config.max_attempts),
        wait=_wait,
        before_sleep=_log_retry,
        reraise=True,
    )
