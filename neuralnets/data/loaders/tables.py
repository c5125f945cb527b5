"""Small truth-table datasets."""

from __future__ import annotations

from ..dataset import DataItem, Dataset
from ..registry import DatasetSpec, register_dataset


def _is_prime(value: int) -> bool:
    if value < 2:
        return False
    return all(value % d for d in range(2, int(value**0.5) + 1))


def make_prime(bits: int = 4) -> Dataset:
    """Every ``bits``-bit number, labelled 1 when it is prime."""

    return Dataset(
        DataItem.from_decimal(value, _is_prime(value), width=bits) for value in range(2**bits)
    )


def make_separable() -> Dataset:
    return Dataset(
        [
            DataItem.from_values([0.0, 0.0], [0.0]),
            DataItem.from_values([1.0, 1.0], [1.0]),
            DataItem.from_values([1.0, 0.0], [0.5]),
            DataItem.from_values([0.0, 1.0], [0.5]),
        ]
    )


def make_xor() -> Dataset:
    return Dataset(
        [
            DataItem.from_values([0.0, 0.0], [0.0]),
            DataItem.from_values([0.0, 1.0], [1.0]),
            DataItem.from_values([1.0, 0.0], [1.0]),
            DataItem.from_values([1.0, 1.0], [0.0]),
        ]
    )


@register_dataset("prime")
def _prime(bits: int = 4, **_: object) -> DatasetSpec:
    return DatasetSpec(
        name="prime",
        dataset=make_prime(bits),
        provenance={"type": "table", "bits": bits},
    )


@register_dataset("separable")
def _separable(**_: object) -> DatasetSpec:
    return DatasetSpec(
        name="separable",
        dataset=make_separable(),
        provenance={"type": "table"},
        task_type="regression",
    )


@register_dataset("xor")
def _xor(**_: object) -> DatasetSpec:
    return DatasetSpec(name="xor", dataset=make_xor(), provenance={"type": "table"})


__all__ = ["make_prime", "make_separable", "make_xor"]
