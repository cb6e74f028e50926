"""JSON export of a comparison, and loading it back for re-rendering."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any

from duelbench._internal.errors import DuelBenchError
from duelbench._internal.logging import get_logger
from duelbench.metrics.models import ComparisonResult, RunSummary, Verdict

logger = get_logger("report.export")

EXPORT_VERSION = 1


def comparison_to_json(comparison: ComparisonResult) -> dict[str, Any]:
    """Build the export document.

    An infinite improvement (lower score of 0) is stored as ``null``.
    """
    data = comparison.to_dict()
    verdict = data["verdict"]
    if math.isinf(verdict["improvement_percent"]):
        verdict["improvement_percent"] = None
    return {"version": EXPORT_VERSION, **data}


def write_json(comparison: ComparisonResult, path: Path) -> Path:
    """Write ``comparison`` to ``path`` as indented JSON.

    Args:
        comparison: The comparison to export.
        path: Destination file; parent directories are created.

    Returns:
        The path written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(comparison_to_json(comparison), fh, indent=2)
    logger.info("Comparison exported to %s", path)
    return path


def load_json(path: Path) -> ComparisonResult:
    """Read an export produced by :func:`write_json`.

    Args:
        path: Export file.

    Returns:
        The rebuilt comparison.

    Raises:
        DuelBenchError: If the file is not a valid export.
    """
    try:
        with path.open(encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"Cannot read export {path}: {exc}"
        raise DuelBenchError(msg) from exc

    try:
        verdict_data = dict(data["verdict"])
        if verdict_data.get("improvement_percent") is None:
            verdict_data["improvement_percent"] = math.inf
        return ComparisonResult(
            server_a=RunSummary.from_dict(data["server_a"]),
            server_b=RunSummary.from_dict(data["server_b"]),
            score_a=float(data["score_a"]),
            score_b=float(data["score_b"]),
            percent_a=float(data["percent_a"]),
            percent_b=float(data["percent_b"]),
            verdict=Verdict(**verdict_data),
        )
    except (KeyError, TypeError, ValueError) as exc:
        msg = f"Not a duelbench export: {path} ({exc!r})"
        raise DuelBenchError(msg) from exc
