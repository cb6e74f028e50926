"""Integration tests for RequestExecutor against a local aiohttp server."""

from __future__ import annotations

import pytest

from duelbench.engine.executor import DEFAULT_HEADERS, RequestExecutor

OK_BODY_SIZE = len(b'{"status":"ok"}')


class TestExecute:
    """Tests for reducing responses and failures to outcomes."""

    async def test_success(self, bench_server: str) -> None:
        async with RequestExecutor() as executor:
            outcome = await executor.execute(f"{bench_server}/ok")
        assert outcome.succeeded
        assert outcome.status_code == 200
        assert outcome.byte_count == OK_BODY_SIZE
        assert outcome.error is None
        assert outcome.elapsed_ms >= 5.0

    async def test_http_error_keeps_status(self, bench_server: str) -> None:
        async with RequestExecutor() as executor:
            outcome = await executor.execute(f"{bench_server}/error")
        assert not outcome.succeeded
        assert outcome.status_code == 500
        assert outcome.error is None
        assert outcome.byte_count > 0

    @pytest.mark.timeout(10)
    async def test_timeout_has_no_status(self, bench_server: str) -> None:
        async with RequestExecutor(timeout=0.2) as executor:
            outcome = await executor.execute(f"{bench_server}/slow")
        assert not outcome.succeeded
        assert outcome.status_code == 0
        assert outcome.byte_count == 0
        assert outcome.error == "TimeoutError: no response within 200ms"
        assert outcome.elapsed_ms >= 150.0

    async def test_connection_refused(self, refused_url: str) -> None:
        async with RequestExecutor() as executor:
            outcome = await executor.execute(f"{refused_url}/")
        assert not outcome.succeeded
        assert outcome.status_code == 0
        assert outcome.error is not None
        assert outcome.error.startswith("Client")

    async def test_post_with_body(self, bench_server: str) -> None:
        async with RequestExecutor(method="post", body='{"a": 1}') as executor:
            outcome = await executor.execute(f"{bench_server}/echo")
        assert outcome.succeeded
        assert executor.method == "POST"
        assert outcome.byte_count > 0

    async def test_requires_context_manager(self, bench_server: str) -> None:
        executor = RequestExecutor()
        with pytest.raises(RuntimeError, match="async context manager"):
            await executor.execute(f"{bench_server}/ok")


class TestHeaders:
    """Tests for the header set."""

    def test_default_headers(self) -> None:
        executor = RequestExecutor()
        assert executor.headers == DEFAULT_HEADERS
        assert executor.headers["User-Agent"].startswith("duelbench/")
        assert executor.headers["Content-Type"] == "application/json"

    def test_extra_headers_merged(self) -> None:
        executor = RequestExecutor(headers={"X-Trace": "1", "Content-Type": "text/plain"})
        assert executor.headers["X-Trace"] == "1"
        assert executor.headers["Content-Type"] == "text/plain"
        assert "User-Agent" in executor.headers
