"""Two-class point clouds sampled over a square canvas.

Each item keeps the ``point`` it was sampled at and turns it into an input
vector through a list of feature names. The first class gets target ``[1]``
and the second ``[0]``; each class contributes ``count // 2`` items.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, Sequence, Tuple

import numpy as np

from ..dataset import DataItem, Dataset
from ..registry import DatasetSpec, register_dataset

Point = Tuple[float, float]
PointSampler = Callable[[np.random.Generator, float], Point]

# Canvas spans [-HALF_SIDE, HALF_SIDE] on both axes.
HALF_SIDE = 10.0

FEATURES: Dict[str, Callable[[float, float], float]] = {
    "x": lambda x, y: x,
    "y": lambda x, y: y,
    "x2": lambda x, y: x * x,
    "y2": lambda x, y: y * y,
    "sinx": lambda x, y: math.sin(x),
    "siny": lambda x, y: math.sin(y),
}


def point_features(point: Point, features: Sequence[str]) -> list[float]:
    x, y = point
    try:
        return [FEATURES[name](x, y) for name in features]
    except KeyError as exc:
        available = ", ".join(sorted(FEATURES))
        raise KeyError(f"Unknown input feature {exc.args[0]!r}. Available features: {available}") from exc


def _inside(point: Point, half: float) -> bool:
    return -half <= point[0] <= half and -half <= point[1] <= half


def _sample(rng: np.random.Generator, sampler: PointSampler, half: float) -> Point:
    point = sampler(rng, half)
    while not _inside(point, half):
        point = sampler(rng, half)
    return point


# Gaussian: opposite quadrants -------------------------------------------------


def _lower_left(rng: np.random.Generator, half: float) -> Point:
    return float(rng.uniform(-half, 0.0)), float(rng.uniform(-half, 0.0))


def _upper_right(rng: np.random.Generator, half: float) -> Point:
    return float(rng.uniform(0.0, half)), float(rng.uniform(0.0, half))


# Circle in circle: a disc of radius half/2 inside a ring out to half ------------


def _inner_disc(rng: np.random.Generator, half: float) -> Point:
    radius = half / 2
    x = float(rng.uniform(-radius, radius))
    limit = math.sqrt(max(radius**2 - x**2, 0.0))
    return x, float(rng.uniform(-limit, limit))


def _outer_ring(rng: np.random.Generator, half: float) -> Point:
    inner = half / 2
    x = float(rng.uniform(-half, half))
    upper = math.sqrt(max(half**2 - x**2, 0.0))
    lower = 0.0 if abs(x) > inner else math.sqrt(inner**2 - x**2)
    y = float(rng.uniform(lower, upper))
    if rng.random() < 0.5:
        y = -y
    return x, y


# Quarters: upper-left + lower-right versus the other two quadrants --------------


def _quarters_first(rng: np.random.Generator, half: float) -> Point:
    x = float(rng.uniform(-half, half))
    abs_y = float(rng.uniform(0.0, half))
    return x, abs_y if x < 0 else -abs_y


def _quarters_second(rng: np.random.Generator, half: float) -> Point:
    x = float(rng.uniform(-half, half))
    abs_y = float(rng.uniform(0.0, half))
    return x, -abs_y if x < 0 else abs_y


# Spiral: two interleaved arms with theta = radius -------------------------------


def _spiral_arm(sign: float) -> PointSampler:
    def sampler(rng: np.random.Generator, half: float) -> Point:
        radius = float(rng.uniform(0.0, half))
        theta = radius
        return sign * radius * math.cos(theta), sign * radius * math.sin(theta)

    return sampler


_SAMPLERS: Dict[str, Tuple[PointSampler, PointSampler]] = {
    "gaussian": (_lower_left, _upper_right),
    "circle_in_circle": (_inner_disc, _outer_ring),
    "quarters": (_quarters_first, _quarters_second),
    "spiral": (_spiral_arm(1.0), _spiral_arm(-1.0)),
}

_DEFAULT_FEATURES = {
    "gaussian": ("x", "y"),
    "circle_in_circle": ("x", "y", "sinx", "siny"),
    "quarters": ("x", "y", "sinx", "siny"),
    "spiral": ("x", "y", "x2", "y2", "sinx", "siny"),
}


def make_planar(
    kind: str,
    count: int,
    *,
    features: Sequence[str] | None = None,
    seed: int = 0,
    half_side: float = HALF_SIDE,
) -> Dataset:
    if kind not in _SAMPLERS:
        available = ", ".join(sorted(_SAMPLERS))
        raise KeyError(f"Unknown planar dataset {kind!r}. Available: {available}")
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    features = tuple(features or _DEFAULT_FEATURES[kind])
    rng = np.random.default_rng(seed)
    first, second = _SAMPLERS[kind]
    items = []
    for sampler, label in ((first, 1.0), (second, 0.0)):
        for _ in range(count // 2):
            point = _sample(rng, sampler, half_side)
            items.append(
                DataItem.from_values(point_features(point, features), [label], point=point)
            )
    return Dataset(items)


def _factory(kind: str, default_count: int):
    def factory(
        count: int = default_count,
        seed: int = 0,
        features: Sequence[str] | None = None,
        half_side: float = HALF_SIDE,
        **_: object,
    ) -> DatasetSpec:
        chosen = tuple(features or _DEFAULT_FEATURES[kind])
        dataset = make_planar(kind, count, features=chosen, seed=seed, half_side=half_side)
        provenance = {
            "type": "planar",
            "kind": kind,
            "count": count,
            "seed": seed,
            "features": list(chosen),
            "half_side": half_side,
        }
        return DatasetSpec(name=kind, dataset=dataset, provenance=provenance, task_type="binary")

    return factory


register_dataset("gaussian", _factory("gaussian", 100))
register_dataset("circle_in_circle", _factory("circle_in_circle", 400))
register_dataset("quarters", _factory("quarters", 400))
register_dataset("spiral", _factory("spiral", 400))


__all__ = ["FEATURES", "HALF_SIDE", "make_planar", "point_features"]
