"""Shared test fixtures for the duelbench test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from duelbench.engine.executor import RequestOutcome
from duelbench.metrics.aggregator import StatsAggregator

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator

    from duelbench.metrics.models import RunSummary


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Benchmark target handlers
# =============================================================================

OK_BODY = b'{"status":"ok"}'


async def _ok_handler(request: web.Request) -> web.Response:
    """200 after roughly 10ms."""
    await asyncio.sleep(0.01)
    return web.Response(body=OK_BODY, content_type="application/json")


async def _error_handler(request: web.Request) -> web.Response:
    """500 after roughly 5ms."""
    await asyncio.sleep(0.005)
    return web.json_response({"error": True}, status=500)


async def _slow_handler(request: web.Request) -> web.Response:
    """Answer far later than any test timeout."""
    await asyncio.sleep(2.0)
    return web.json_response({"status": "late"})


async def _echo_handler(request: web.Request) -> web.Response:
    """Echo back request details as JSON."""
    body = await request.read()
    return web.json_response(
        {
            "method": request.method,
            "path": str(request.path),
            "headers": dict(request.headers),
            "body": body.decode("utf-8", errors="replace"),
        },
        status=200,
    )


def _create_bench_app() -> web.Application:
    """Build the target app with all test routes."""
    app = web.Application()
    app.router.add_route("*", "/ok", _ok_handler)
    app.router.add_route("*", "/error", _error_handler)
    app.router.add_route("*", "/slow", _slow_handler)
    app.router.add_route("*", "/echo{path:.*}", _echo_handler)
    return app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def bench_server() -> AsyncIterator[str]:
    """Aiohttp target server on the test's event loop.

    Returns the base URL (e.g., 'http://127.0.0.1:54321').
    """
    app = _create_bench_app()
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield f"http://127.0.0.1:{port}"
    await runner.cleanup()


@pytest.fixture
def refused_url() -> str:
    """URL of a local port nobody listens on."""
    return f"http://127.0.0.1:{_get_free_port()}"


@pytest.fixture
def sync_bench_server() -> Iterator[str]:
    """Target server running in a background thread.

    For tests where the code under test blocks the main thread with its
    own ``asyncio.run``.
    """
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        app = _create_bench_app()
        runner = web.AppRunner(app)
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield f"http://127.0.0.1:{port}"

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


# =============================================================================
# Summary builders
# =============================================================================


def make_outcome(
    elapsed_ms: float = 10.0,
    status_code: int = 200,
    byte_count: int = 100,
    error: str | None = None,
) -> RequestOutcome:
    """Create a RequestOutcome; success follows the status code."""
    return RequestOutcome(
        succeeded=200 <= status_code < 300,
        elapsed_ms=elapsed_ms,
        status_code=status_code,
        byte_count=byte_count if status_code else 0,
        error=error,
    )


def make_summary(
    label: str = "Server A",
    latencies: list[float] | None = None,
    failures: int = 0,
    requested_total: int | None = None,
) -> RunSummary:
    """Build a frozen summary from successful latencies plus 500 failures."""
    latencies = [10.0] * 10 if latencies is None else latencies
    total = requested_total if requested_total is not None else len(latencies) + failures
    aggregator = StatsAggregator(label, f"http://{label.lower().replace(' ', '-')}/", total)
    aggregator.start()
    for latency in latencies:
        aggregator.record(make_outcome(elapsed_ms=latency))
    for _ in range(failures):
        aggregator.record(make_outcome(elapsed_ms=5.0, status_code=500))
    return aggregator.finish()


@pytest.fixture
def outcome_factory() -> Callable[..., RequestOutcome]:
    """The ``make_outcome`` helper."""
    return make_outcome


@pytest.fixture
def summary_factory() -> Callable[..., RunSummary]:
    """The ``make_summary`` helper."""
    return make_summary
