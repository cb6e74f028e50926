"""Shared type aliases for duelbench."""

from __future__ import annotations

from collections.abc import Callable

# HTTP headers dictionary.
Headers = dict[str, str]

# Progress callback: (completed, total).
ProgressCallback = Callable[[int, int], None]
