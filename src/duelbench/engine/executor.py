"""Single-request execution that turns every result into a ``RequestOutcome``."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

from duelbench._internal.logging import get_logger
from duelbench._version import __version__

if TYPE_CHECKING:
    from duelbench._internal.config import BenchmarkConfig
    from duelbench._internal.types import Headers

logger = get_logger("engine.executor")

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": f"duelbench/{__version__}",
    "Content-Type": "application/json",
}


@dataclass
class RequestOutcome:
    """Normalized result of one HTTP request.

    Attributes:
        succeeded: True iff a 2xx response arrived within the timeout.
        elapsed_ms: Wall-clock time from issuance to the end of the body
            (or to the failure).
        status_code: HTTP status, 0 if no response was received.
        byte_count: Size of the response body read, 0 without a response.
        error: Diagnostic for failures without a response, None otherwise.
    """

    succeeded: bool
    elapsed_ms: float
    status_code: int = 0
    byte_count: int = 0
    error: str | None = None


class RequestExecutor:
    """Issues the configured request and captures every failure as data.

    Must be used as an async context manager; it owns the
    ``aiohttp.ClientSession`` shared by all requests of a run.

    Attributes:
        method: HTTP method sent with every request.
        headers: Headers sent with every request.
    """

    def __init__(
        self,
        *,
        method: str = "GET",
        body: str = "",
        headers: Headers | None = None,
        timeout: float = 5.0,
        pool_size: int = 10,
    ) -> None:
        """Initialize the executor.

        Args:
            method: HTTP method. Defaults to GET.
            body: Request body, only sent for non-GET methods.
            headers: Extra headers merged over the default set.
            timeout: Per-request timeout in seconds.
            pool_size: Maximum open connections.
        """
        self.method = method.upper()
        self.headers: dict[str, str] = {**DEFAULT_HEADERS, **(headers or {})}
        self._body = body if self.method != "GET" and body else None
        self._timeout_seconds = timeout
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._pool_size = pool_size
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_config(cls, config: BenchmarkConfig) -> RequestExecutor:
        """Build an executor from a benchmark configuration."""
        return cls(
            method=config.method,
            body=config.body,
            headers=config.headers,
            timeout=config.request_timeout,
            pool_size=config.concurrency,
        )

    async def __aenter__(self) -> RequestExecutor:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=self._pool_size),
            timeout=self._timeout,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def execute(self, url: str) -> RequestOutcome:
        """Send one request to ``url`` and reduce the result to an outcome.

        Timeouts and transport errors produce a failed outcome with
        ``status_code == 0``. A response with a non-2xx status is a failure
        with its real status code and no error message. The body is always
        read to the end so the connection can be reused.

        Args:
            url: Full target URL.

        Returns:
            The request outcome.

        Raises:
            RuntimeError: If used outside of an async context manager.
        """
        if self._session is None:
            msg = "RequestExecutor must be used as an async context manager"
            raise RuntimeError(msg)

        start = time.monotonic()
        try:
            async with self._session.request(
                self.method,
                url,
                headers=self.headers,
                data=self._body,
            ) as resp:
                payload = await resp.read()
                status_code = resp.status
        except TimeoutError:
            elapsed_ms = (time.monotonic() - start) * 1000
            return RequestOutcome(
                succeeded=False,
                elapsed_ms=elapsed_ms,
                error=f"TimeoutError: no response within {self._timeout_seconds * 1000:.0f}ms",
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.debug("Request to %s failed", url, exc_info=True)
            return RequestOutcome(
                succeeded=False,
                elapsed_ms=elapsed_ms,
                error=f"{type(exc).__name__}: {exc}",
            )

        elapsed_ms = (time.monotonic() - start) * 1000
        return RequestOutcome(
            succeeded=200 <= status_code < 300,
            elapsed_ms=elapsed_ms,
            status_code=status_code,
            byte_count=len(payload),
        )
