"""Condense a JSONL epoch log into a deterministic summary."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List, Mapping

import numpy as np

_SKIP = {"epoch", "seed"}


def read_records(path: str | Path) -> List[Mapping[str, object]]:
    path = Path(path)
    if not path.exists():
        return []
    records = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if line:
            records.append(json.loads(line))
    return records


def _numeric_series(records: Iterable[Mapping[str, object]]) -> Mapping[str, list[float]]:
    series: dict[str, list[float]] = {}
    for record in records:
        for key, value in record.items():
            if key in _SKIP or isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                series.setdefault(key, []).append(float(value))
    return series


def summarise(records: List[Mapping[str, object]], *, tail: int = 10) -> Mapping[str, object]:
    tail_window = min(tail, len(records))
    metrics: dict[str, Mapping[str, float]] = {}
    for name, values in _numeric_series(records).items():
        arr = np.asarray(values, dtype=np.float64)
        tail_arr = arr[-tail_window:] if tail_window else arr
        metrics[name] = {
            "min": float(np.min(arr)),
            "max": float(np.max(arr)),
            "first": float(arr[0]),
            "last": float(arr[-1]),
            "tail_mean": float(np.mean(tail_arr)),
        }
    best_epoch = None
    costs = [r for r in records if isinstance(r.get("cost"), (int, float))]
    if costs:
        best = min(costs, key=lambda r: float(r["cost"]))  # type: ignore[arg-type]
        best_epoch = int(best.get("epoch", 0))  # type: ignore[arg-type]
    return {
        "version": 1,
        "epochs": len(records),
        "tail_window": tail_window,
        "best_epoch": best_epoch,
        "metrics": metrics,
    }


def write_summary(metrics_jsonl: str | Path, out_summary_json: str | Path, *, tail: int = 10) -> str:
    """Write a deterministic summary of ``metrics_jsonl`` and return its path."""

    out_path = Path(out_summary_json)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    summary = summarise(read_records(metrics_jsonl), tail=tail)
    out_path.write_text(json.dumps(summary, sort_keys=True, indent=2))
    return str(out_path)


__all__ = ["read_records", "summarise", "write_summary"]
