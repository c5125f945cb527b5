"""Loss registry used by the training loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..core.types import Array

ElementLoss = Callable[[Array, Array], Array]
CostFn = Callable[[float, int], float]

# Predictions are clamped into [BCE_EPS, 1 - BCE_EPS] before taking logs.
BCE_EPS = 1e-7


@dataclass(frozen=True)
class LossFunction:
    """Per-element loss paired with its batch/epoch cost aggregation."""

    name: str
    element: ElementLoss
    aggregate: CostFn

    def loss(self, prediction, expectation):
        return self.element(prediction, expectation)

    def cost(self, total: float, output_count: int) -> float:
        if output_count <= 0:
            return 0.0
        return float(self.aggregate(float(total), int(output_count)))


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, LossFunction] = {}

    def register(self, name: str, element: ElementLoss, aggregate: CostFn) -> None:
        self._registry[name] = LossFunction(name, element, aggregate)

    def alias(self, alias: str, name: str) -> None:
        self._registry[alias] = self._registry[name]

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str | LossFunction) -> LossFunction:
        if isinstance(name, LossFunction):
            return name
        key = str(name).lower()
        if key not in self._registry:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}")
        return self._registry[key]


REGISTRY = LossRegistry()


def _mse(prediction: Array, expectation: Array) -> Array:
    return (np.subtract(expectation, prediction)) ** 2


def _mse_cost(total: float, count: int) -> float:
    return total / count


def _bce(prediction: Array, expectation: Array) -> Array:
    p = np.clip(prediction, BCE_EPS, 1.0 - BCE_EPS)
    e = np.asarray(expectation)
    return -(e * np.log(p) + (1.0 - e) * np.log(1.0 - p))


def _bce_cost(total: float, count: int) -> float:
    return -total / count


REGISTRY.register("mse", _mse, _mse_cost)
REGISTRY.register("bce", _bce, _bce_cost)
REGISTRY.alias("mean_squared", "mse")
REGISTRY.alias("binary_cross_entropy", "bce")


def get_loss(name: str | LossFunction) -> LossFunction:
    return REGISTRY.resolve(name)


__all__ = ["BCE_EPS", "LossFunction", "LossRegistry", "REGISTRY", "get_loss"]
