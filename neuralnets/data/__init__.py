"""Dataset containers and the dataset registry."""

from __future__ import annotations

from . import loaders as _loaders  # noqa: F401
from .dataset import DataItem, Dataset
from .registry import DatasetSpec, available_datasets, get_dataset, register_dataset

__all__ = [
    "DataItem",
    "Dataset",
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
