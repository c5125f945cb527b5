"""Metric helpers for the training loop."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping

import numpy as np

from ..core.types import Array


def round_half_away(values: Array) -> Array:
    """Round to the nearest integer, ties away from zero."""

    values = np.asarray(values, dtype=np.float64)
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def rounded_matches(predictions: Array, targets: Array) -> int:
    """Count elements whose rounded prediction equals the rounded target."""

    return int(np.sum(round_half_away(predictions) == round_half_away(targets)))


def rounded_accuracy(predictions: Array, targets: Array) -> float:
    predictions = np.asarray(predictions).reshape(-1)
    targets = np.asarray(targets).reshape(-1)
    if predictions.size == 0:
        return 0.0
    return rounded_matches(predictions, targets) / float(predictions.size)


def class_accuracy(predictions: Array, targets: Array) -> float:
    """Fraction of rows whose arg-max agrees between predictions and targets."""

    predictions = np.atleast_2d(predictions)
    targets = np.atleast_2d(targets)
    if predictions.shape[0] == 0:
        return 0.0
    return float(np.mean(predictions.argmax(axis=1) == targets.argmax(axis=1)))


def mean_absolute_error(predictions: Array, targets: Array) -> float:
    diff = np.asarray(predictions, dtype=np.float64) - np.asarray(targets, dtype=np.float64)
    if diff.size == 0:
        return 0.0
    return float(np.mean(np.abs(diff)))


_METRICS = {
    "accuracy": rounded_accuracy,
    "class_accuracy": class_accuracy,
    "mae": mean_absolute_error,
}


def compute_metrics(names: Iterable[str], predictions: Array, targets: Array) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        key = name.lower()
        if key not in _METRICS:
            raise KeyError(f"Unknown metric: {name}")
        results[key] = float(_METRICS[key](predictions, targets))
    return results


__all__ = [
    "class_accuracy",
    "compute_metrics",
    "round_half_away",
    "rounded_accuracy",
    "rounded_matches",
]
