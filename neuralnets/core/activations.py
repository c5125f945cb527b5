"""Activation functions and their derivatives.

Derivatives are expressed in terms of the already-computed forward output of
a neuron rather than its raw weighted sum, which is all the backward pass
keeps around.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from .types import Array

Kernel = Callable[[Array], Array]


@dataclass(frozen=True)
class ActivationFunction:
    """Named transfer function paired with its output-space derivative."""

    name: str
    fn: Kernel
    grad: Kernel

    def activate(self, x):
        return self.fn(x)

    def derivative(self, output):
        return self.grad(output)


class ActivationRegistry:
    """Central registry for activation functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, ActivationFunction] = {}

    def register(self, name: str, fn: Kernel, grad: Kernel) -> None:
        self._registry[name] = ActivationFunction(name, fn, grad)

    def get(self, name: str | ActivationFunction) -> ActivationFunction:
        if isinstance(name, ActivationFunction):
            return name
        key = str(name).lower()
        if key not in self._registry:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown activation {name!r}. Available activations: {available}")
        return self._registry[key]

    def alias(self, alias: str, name: str) -> None:
        self._registry[alias] = self._registry[name]

    def names(self) -> Iterable[str]:
        return sorted(self._registry)


REGISTRY = ActivationRegistry()


def sigmoid(x: Array) -> Array:
    # exp(-x) overflows to inf for very negative x; 1/(1+inf) is the exact limit.
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


def sigmoid_deriv(output: Array) -> Array:
    return output * (1.0 - output)


def tanh(x: Array) -> Array:
    return np.tanh(x)


def tanh_deriv(output: Array) -> Array:
    return 1.0 - output**2


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def relu_deriv(output: Array) -> Array:
    return np.where(output <= 0, 0.0, 1.0)


def identity(x: Array) -> Array:
    return x


def identity_deriv(output: Array) -> Array:
    return np.ones_like(output)


REGISTRY.register("sigmoid", sigmoid, sigmoid_deriv)
REGISTRY.register("tanh", tanh, tanh_deriv)
REGISTRY.register("relu", relu, relu_deriv)
REGISTRY.register("identity", identity, identity_deriv)
# Names used by older configs
REGISTRY.alias("plain", "identity")
REGISTRY.alias("rectified_linear", "relu")


def get_activation(name: str | ActivationFunction) -> ActivationFunction:
    return REGISTRY.get(name)


__all__ = [
    "ActivationFunction",
    "ActivationRegistry",
    "REGISTRY",
    "get_activation",
    "identity",
    "relu",
    "sigmoid",
    "tanh",
]
