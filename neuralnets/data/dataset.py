"""Input/target pairs and the shuffle-and-batch protocol used for training."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..core.types import Array, Shape, ShapeError, Tensor, as_tensor


@dataclass(frozen=True)
class DataItem:
    """A training example.

    ``point`` is the planar coordinate an item was sampled from, when it
    came from one of the planar generators. The engine itself never reads it.
    """

    input: Tensor
    target: Tensor
    point: Optional[Tuple[float, float]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "input", as_tensor(self.input))
        object.__setattr__(self, "target", as_tensor(self.target))

    @classmethod
    def from_values(
        cls,
        input: Iterable[float],
        target: Iterable[float],
        *,
        input_shape: Shape | None = None,
        target_shape: Shape | None = None,
        point: Tuple[float, float] | None = None,
    ) -> "DataItem":
        inputs = Tensor(input_shape, input) if input_shape else Tensor.vector(input)
        targets = Tensor(target_shape, target) if target_shape else Tensor.vector(target)
        return cls(inputs, targets, point)

    @classmethod
    def from_decimal(cls, value: int, label: bool, width: int | None = None) -> "DataItem":
        """Binary digits of ``value`` (most significant first) with a 0/1 target."""

        if value < 0:
            raise ValueError(f"value must be non-negative, got {value}")
        digits = [int(bit) for bit in bin(value)[2:]] if value else [0]
        if width is not None:
            if len(digits) > width:
                raise ShapeError(f"{value} needs {len(digits)} bits, more than width={width}")
            digits = [0] * (width - len(digits)) + digits
        return cls(Tensor.vector(digits), Tensor.vector([1.0 if label else 0.0]))


class Dataset:
    """Ordered, immutable collection of :class:`DataItem`."""

    def __init__(self, items: Iterable[DataItem] = ()) -> None:
        self.items: Tuple[DataItem, ...] = tuple(items)
        if self.items:
            first = self.items[0]
            for index, item in enumerate(self.items):
                if len(item.input) != len(first.input) or len(item.target) != len(first.target):
                    raise ShapeError(
                        f"Item {index} has input/target widths "
                        f"{len(item.input)}/{len(item.target)}, expected "
                        f"{len(first.input)}/{len(first.target)}"
                    )

    @classmethod
    def from_arrays(cls, inputs: Array | Sequence, targets: Array | Sequence) -> "Dataset":
        x = np.asarray(inputs, dtype=np.float32)
        y = np.asarray(targets, dtype=np.float32)
        if x.shape[0] != y.shape[0]:
            raise ShapeError(f"Got {x.shape[0]} inputs but {y.shape[0]} targets")
        x = x.reshape(x.shape[0], -1)
        y = y.reshape(y.shape[0], -1)
        return cls(DataItem(Tensor.vector(a), Tensor.vector(b)) for a, b in zip(x, y))

    @property
    def input_size(self) -> int:
        return len(self.items[0].input) if self.items else 0

    @property
    def output_size(self) -> int:
        return len(self.items[0].target) if self.items else 0

    def arrays(self) -> Tuple[Array, Array]:
        """Stack inputs and targets into ``(n, d_in)`` and ``(n, d_out)`` arrays."""

        if not self.items:
            return np.zeros((0, 0), dtype=np.float32), np.zeros((0, 0), dtype=np.float32)
        x = np.stack([item.input.body for item in self.items])
        y = np.stack([item.target.body for item in self.items])
        return x, y

    def shuffle(self, rng: np.random.Generator | None = None) -> "Dataset":
        """Return a new dataset holding the same items in a uniform random order."""

        rng = rng if rng is not None else np.random.default_rng()
        order = rng.permutation(len(self.items))
        return Dataset(self.items[i] for i in order)

    def take_batches(self, size: int) -> Iterator[List[DataItem]]:
        """Yield contiguous slices of ``size`` items; the last may be shorter."""

        if size < 1:
            raise ValueError(f"Batch size must be >= 1, got {size}")
        return (list(self.items[start : start + size]) for start in range(0, len(self.items), size))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[DataItem]:
        return iter(self.items)

    def __getitem__(self, index: int) -> DataItem:
        return self.items[index]

    def __repr__(self) -> str:
        return f"Dataset(items={len(self.items)}, d_in={self.input_size}, d_out={self.output_size})"


__all__ = ["DataItem", "Dataset"]
