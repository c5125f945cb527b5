"""Core typing contracts for neuralnets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np

Array = np.ndarray

DTYPE = np.float32


class ContractError(ValueError):
    """Raised when a caller breaks a structural contract of the engine."""


class ShapeError(ContractError):
    """Raised when a buffer length disagrees with its declared shape."""


@dataclass(frozen=True)
class Shape:
    """Logical layout of a flat buffer."""

    width: int
    height: Optional[int] = None
    depth: Optional[int] = None

    def __post_init__(self) -> None:
        if self.depth is not None and self.height is None:
            raise ShapeError("A shape with a depth must also declare a height")
        for name in ("width", "height", "depth"):
            value = getattr(self, name)
            if value is not None and int(value) < 0:
                raise ShapeError(f"Shape {name} must be non-negative, got {value}")

    @property
    def kind(self) -> str:
        if self.depth is not None:
            return "threeD"
        if self.height is not None:
            return "twoD"
        return "oneD"

    @property
    def size(self) -> int:
        return int(self.width) * int(self.height or 1) * int(self.depth or 1)


class Tensor:
    """Flat float32 buffer tagged with a :class:`Shape`.

    The body is read-only once constructed; operations that transform a
    tensor build a new one. Two tensors compare equal when their flat bodies
    match element for element, whatever their shapes.
    """

    __slots__ = ("shape", "body")

    def __init__(self, shape: Shape, body: Iterable[float] | Array) -> None:
        flat = np.array(body, dtype=DTYPE).reshape(-1)
        if shape.size != flat.size:
            raise ShapeError(
                f"Tensor body of length {flat.size} does not conform to "
                f"{shape.kind} shape of size {shape.size}"
            )
        flat.setflags(write=False)
        self.shape = shape
        self.body = flat

    @classmethod
    def vector(cls, values: Iterable[float] | Array) -> "Tensor":
        flat = np.array(values, dtype=DTYPE).reshape(-1)
        return cls(Shape(width=int(flat.size)), flat)

    @classmethod
    def one_hot(cls, label: int, count: int) -> "Tensor":
        """Classifier target with a single ``1`` at ``label``."""

        if not 0 <= label < count:
            raise ContractError(f"Label {label} must be less than the class count {count}")
        body = np.zeros(count, dtype=DTYPE)
        body[label] = 1.0
        return cls(Shape(width=count), body)

    def get(self, x: int, y: int | None = None, z: int | None = None) -> float:
        width = self.shape.width
        _check_coordinate("x", x, width)
        if y is None:
            return float(self.body[x])
        _check_coordinate("y", y, self.shape.height or 1)
        if z is None:
            return float(self.body[x + y * width])
        if self.shape.depth is None:
            raise ShapeError("Three-coordinate access requires a threeD shape")
        _check_coordinate("z", z, self.shape.depth)
        return float(self.body[z + (x + y * width) * self.shape.depth])

    def argmax(self) -> int:
        if self.body.size == 0:
            raise ContractError("Cannot take the arg-max of an empty tensor")
        return int(np.argmax(self.body))

    def tolist(self) -> List[float]:
        return [float(v) for v in self.body]

    def __len__(self) -> int:
        return int(self.body.size)

    def __iter__(self):
        return iter(self.tolist())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tensor):
            return NotImplemented
        return bool(np.array_equal(self.body, other.body))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Tensor(shape={self.shape!r}, body={self.tolist()!r})"


def _check_coordinate(axis: str, value: int, extent: int) -> None:
    if not 0 <= value < extent:
        raise ShapeError(f"Coordinate {axis}={value} is outside [0, {extent})")


def as_tensor(value: Tensor | Iterable[float] | Array) -> Tensor:
    """Return ``value`` as a tensor, wrapping plain sequences as 1D vectors."""

    if isinstance(value, Tensor):
        return value
    return Tensor.vector(value)


@dataclass(frozen=True)
class EpochStats:
    """Aggregate figures reported once per training epoch."""

    epoch: int
    cost: float
    accuracy: float

    def as_metrics(self) -> dict:
        return {"cost": float(self.cost), "accuracy": float(self.accuracy)}


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`neuralnets.training.pipelines.run_pipeline`."""

    epochs: int
    final_cost: float
    metrics_path: str
    manifest_path: str
    summary_path: str = ""


__all__ = [
    "Array",
    "ContractError",
    "DTYPE",
    "EpochStats",
    "RunResult",
    "Shape",
    "ShapeError",
    "Tensor",
    "as_tensor",
]
