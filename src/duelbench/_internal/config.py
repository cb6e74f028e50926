"""Configuration for a duelbench comparison."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from duelbench._internal.errors import ConfigError

if TYPE_CHECKING:
    from duelbench._internal.types import Headers

DRIVE_MODES = ("batch", "window")
HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


@dataclass(frozen=True)
class BenchmarkConfig:
    """Settings shared by both benchmark runs.

    Attributes:
        server_a_url: Base URL of the first server.
        server_b_url: Base URL of the second server.
        server_a_label: Display name of the first server.
        server_b_label: Display name of the second server.
        warmup_requests: Throwaway requests issued before measuring.
        benchmark_requests: Requests issued during the measured phase.
        concurrency: Requests in flight at once (batch size in batch mode).
        request_timeout: Per-request timeout in seconds.
        path: Request path appended to each server URL.
        method: HTTP method used for every request.
        body: Request body, sent only for non-GET methods when non-empty.
        headers: Extra headers added to the fixed header set.
        max_error_samples: Error messages kept per run.
        mode: ``"batch"`` (synchronized batches) or ``"window"``
            (a fixed pool of ``concurrency`` worker tasks, each issuing its
            next request as soon as its previous one settles).
        output: File the text report is written to, stdout when None.
        json_output: Optional path of a machine-readable export.
    """

    server_a_url: str = "http://localhost:3000"
    server_b_url: str = "http://localhost:3001"
    server_a_label: str = "Server A"
    server_b_label: str = "Server B"
    warmup_requests: int = 10
    benchmark_requests: int = 100_000
    concurrency: int = 10
    request_timeout: float = 5.0
    path: str = "/"
    method: str = "GET"
    body: str = ""
    headers: Headers = field(default_factory=dict)
    max_error_samples: int = 100
    mode: str = "batch"
    output: Path | None = None
    json_output: Path | None = None

    @property
    def server_a_target(self) -> str:
        """Full URL requested on the first server."""
        return join_url(self.server_a_url, self.path)

    @property
    def server_b_target(self) -> str:
        """Full URL requested on the second server."""
        return join_url(self.server_b_url, self.path)


def join_url(base_url: str, path: str) -> str:
    """Join a base URL and a request path with exactly one slash."""
    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def validate_config(config: BenchmarkConfig) -> BenchmarkConfig:
    """Check value ranges of a configuration.

    Args:
        config: Configuration to validate.

    Returns:
        The same configuration, for chaining.

    Raises:
        ConfigError: If any value is out of range.
    """
    for name, url in (("server_a_url", config.server_a_url), ("server_b_url", config.server_b_url)):
        if not url.startswith(("http://", "https://")):
            msg = f"{name} must be an http(s) URL, got: {url!r}"
            raise ConfigError(msg)

    if config.warmup_requests < 0:
        msg = f"warmup_requests must be >= 0, got: {config.warmup_requests}"
        raise ConfigError(msg)

    if config.benchmark_requests < 1:
        msg = f"benchmark_requests must be >= 1, got: {config.benchmark_requests}"
        raise ConfigError(msg)

    if config.concurrency < 1:
        msg = f"concurrency must be >= 1, got: {config.concurrency}"
        raise ConfigError(msg)

    if config.request_timeout <= 0:
        msg = f"request_timeout must be positive, got: {config.request_timeout}"
        raise ConfigError(msg)

    if config.method.upper() not in HTTP_METHODS:
        msg = f"method must be one of {', '.join(HTTP_METHODS)}, got: {config.method!r}"
        raise ConfigError(msg)

    if config.max_error_samples < 0:
        msg = f"max_error_samples must be >= 0, got: {config.max_error_samples}"
        raise ConfigError(msg)

    if config.mode not in DRIVE_MODES:
        msg = f"mode must be one of {', '.join(DRIVE_MODES)}, got: {config.mode!r}"
        raise ConfigError(msg)

    if config.server_a_label == config.server_b_label:
        msg = f"server labels must differ, both are {config.server_a_label!r}"
        raise ConfigError(msg)

    return config


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got: {raw!r}"
        raise ConfigError(msg) from None


def _float_from_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None


def load_config() -> BenchmarkConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        DUELBENCH_SERVER_A: First server base URL.
        DUELBENCH_SERVER_B: Second server base URL.
        DUELBENCH_WARMUP: Warmup request count (default: 10).
        DUELBENCH_REQUESTS: Measured request count (default: 100000).
        DUELBENCH_CONCURRENCY: Concurrency limit (default: 10).
        DUELBENCH_TIMEOUT: Request timeout in seconds (default: 5.0).
        DUELBENCH_PATH: Request path (default: ``/``).
        DUELBENCH_METHOD: HTTP method (default: GET).
        DUELBENCH_BODY: Request body for non-GET methods.

    Returns:
        A validated BenchmarkConfig.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    defaults = BenchmarkConfig()
    config = BenchmarkConfig(
        server_a_url=os.environ.get("DUELBENCH_SERVER_A", defaults.server_a_url),
        server_b_url=os.environ.get("DUELBENCH_SERVER_B", defaults.server_b_url),
        warmup_requests=_int_from_env("DUELBENCH_WARMUP", defaults.warmup_requests),
        benchmark_requests=_int_from_env("DUELBENCH_REQUESTS", defaults.benchmark_requests),
        concurrency=_int_from_env("DUELBENCH_CONCURRENCY", defaults.concurrency),
        request_timeout=_float_from_env("DUELBENCH_TIMEOUT", defaults.request_timeout),
        path=os.environ.get("DUELBENCH_PATH", defaults.path),
        method=os.environ.get("DUELBENCH_METHOD", defaults.method).upper(),
        body=os.environ.get("DUELBENCH_BODY", defaults.body),
    )
    return validate_config(config)
