"""Async dispatcher with settle-all semantics."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ConcurrencyPool:
    """Starts one coroutine per item, all at once.

    Every item runs to completion independently; a failure is returned in
    place of that item's result instead of cancelling the others, and a slow
    item never delays the start of another. Limits on network concurrency
    belong to the fetcher, which holds them per request attempt.
    """

    async def settle(
        self,
        fn: Callable[..., Awaitable[R]],
        items: Sequence[T],
        **kwargs: Any,
    ) -> list[R | Exception]:
        """Apply ``fn`` to every item concurrently and wait for all outcomes.

        Returns results and exceptions in input order.
        """
        results = await asyncio.gather(*(fn(item, **kwargs) for item in items), return_exceptions=True)

        settled: list[R | Exception] = []
        for item, result in zip(items, results, strict=True):
            if isinstance(result, Exception):
                logger.debug("Item %r failed: %s", item, result)
            elif isinstance(result, BaseException):
                # Cancellation and interpreter exits are not per-item failures
                raise result
            settled.append(result)
        return settled
