"""Concurrency control for issuing a fixed number of requests.

Two modes are available:

- **batch** (default): requests are issued in consecutive batches of
  ``concurrency_limit``. A batch is fully joined before the next one
  starts, so in-flight concurrency drops while stragglers finish.
- **window**: a continuous pool keeps up to ``concurrency_limit`` requests
  in flight at all times. This changes the measured throughput compared to
  batch mode and is opt-in.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from duelbench._internal.errors import ConfigError
from duelbench._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from duelbench.engine.executor import RequestOutcome

logger = get_logger("engine.driver")


def batch_sizes(total_count: int, concurrency_limit: int) -> list[int]:
    """Split ``total_count`` requests into consecutive batch sizes.

    Args:
        total_count: Number of requests to issue.
        concurrency_limit: Maximum batch size. Must be >= 1.

    Returns:
        Batch sizes in issue order; only the last one may be smaller.

    Raises:
        ConfigError: If ``concurrency_limit`` is below 1.
    """
    if concurrency_limit < 1:
        msg = f"concurrency_limit must be >= 1, got {concurrency_limit}"
        raise ConfigError(msg)
    full, rest = divmod(max(total_count, 0), concurrency_limit)
    sizes = [concurrency_limit] * full
    if rest:
        sizes.append(rest)
    return sizes


class ConcurrencyDriver:
    """Issues requests against one URL under a fixed concurrency ceiling.

    Attributes:
        mode: ``"batch"`` or ``"window"``.
    """

    def __init__(
        self,
        execute: Callable[[str], Awaitable[RequestOutcome]],
        *,
        mode: str = "batch",
    ) -> None:
        """Initialize the driver.

        Args:
            execute: Coroutine function issuing one request, normally
                ``RequestExecutor.execute``.
            mode: ``"batch"`` or ``"window"``.

        Raises:
            ConfigError: If ``mode`` is unknown.
        """
        if mode not in ("batch", "window"):
            msg = f"mode must be 'batch' or 'window', got {mode!r}"
            raise ConfigError(msg)
        self._execute = execute
        self.mode = mode

    async def drive(
        self,
        total_count: int,
        url: str,
        concurrency_limit: int,
        on_result: Callable[[RequestOutcome], None] | None = None,
    ) -> list[RequestOutcome]:
        """Issue ``total_count`` requests and deliver each outcome.

        In batch mode ``on_result`` is called after each batch is joined,
        in completion order within the batch; every result of batch *b* is
        delivered before batch *b+1* starts. In window mode it is called as
        soon as each request completes.

        Args:
            total_count: Number of requests to issue.
            url: Target URL.
            concurrency_limit: Maximum requests in flight.
            on_result: Optional callback invoked once per outcome.

        Returns:
            All outcomes in delivery order.
        """
        if self.mode == "window":
            return await self._drive_window(total_count, url, concurrency_limit, on_result)
        return await self._drive_batches(total_count, url, concurrency_limit, on_result)

    async def _drive_batches(
        self,
        total_count: int,
        url: str,
        concurrency_limit: int,
        on_result: Callable[[RequestOutcome], None] | None,
    ) -> list[RequestOutcome]:
        results: list[RequestOutcome] = []
        sizes = batch_sizes(total_count, concurrency_limit)

        for index, size in enumerate(sizes):
            settled = await self._run_batch(size, url)
            results.extend(settled)
            if on_result is not None:
                for outcome in settled:
                    on_result(outcome)
            logger.debug("Batch %d/%d settled (%d requests)", index + 1, len(sizes), size)

        return results

    async def _run_batch(self, size: int, url: str) -> list[RequestOutcome]:
        """Launch ``size`` requests together and return them in settle order."""
        tasks = [asyncio.create_task(self._execute(url)) for _ in range(size)]
        settled: list[RequestOutcome] = []
        try:
            for next_done in asyncio.as_completed(tasks):
                settled.append(await next_done)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return settled

    async def _drive_window(
        self,
        total_count: int,
        url: str,
        concurrency_limit: int,
        on_result: Callable[[RequestOutcome], None] | None,
    ) -> list[RequestOutcome]:
        if concurrency_limit < 1:
            msg = f"concurrency_limit must be >= 1, got {concurrency_limit}"
            raise ConfigError(msg)

        results: list[RequestOutcome] = []
        remaining = max(total_count, 0)

        async def _slot() -> None:
            nonlocal remaining
            while remaining > 0:
                remaining -= 1
                outcome = await self._execute(url)
                results.append(outcome)
                if on_result is not None:
                    on_result(outcome)

        workers = [
            asyncio.create_task(_slot(), name=f"driver-slot-{i}")
            for i in range(min(concurrency_limit, remaining))
        ]
        if not workers:
            return results

        done, pending = await asyncio.wait(workers, return_when=asyncio.FIRST_EXCEPTION)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
        for task in done:
            exc = task.exception()
            if exc is not None:
                raise exc

        return results
