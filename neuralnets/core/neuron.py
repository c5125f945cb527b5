"""Learnable unit owned by a dense layer."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .types import DTYPE, Array


@dataclass
class Neuron:
    """Weights, bias and the gradient accumulators pending for them."""

    weights: Array
    bias: float = 0.0
    weights_delta: Array = field(default=None, repr=False)  # type: ignore[assignment]
    bias_delta: float = 0.0
    total_bias_delta: float = 0.0
    output: float = 0.0

    def __post_init__(self) -> None:
        self.weights = np.array(self.weights, dtype=DTYPE).reshape(-1)
        if self.weights_delta is None:
            self.weights_delta = np.zeros_like(self.weights)
        else:
            self.weights_delta = np.array(self.weights_delta, dtype=DTYPE).reshape(-1)
        self.bias = DTYPE(self.bias)

    @classmethod
    def random(cls, input_size: int, rng: np.random.Generator, weight_range: float = 1.0) -> "Neuron":
        weights = rng.uniform(-weight_range, weight_range, size=input_size).astype(DTYPE)
        return cls(weights=weights, bias=0.0)

    @property
    def input_size(self) -> int:
        return int(self.weights.size)

    def reset_deltas(self) -> None:
        self.weights_delta.fill(0.0)
        self.total_bias_delta = DTYPE(0.0)


__all__ = ["Neuron"]
