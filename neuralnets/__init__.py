"""neuralnets public API."""

from .core import activations  # noqa: F401
from .core.layers import Dense, DenseSpec, Dropout, DropoutSpec, Layer, build_layer
from .core.types import ContractError, EpochStats, RunResult, Shape, ShapeError, Tensor
from .data import DataItem, Dataset, get_dataset
from .training.losses import get_loss
from .training.network import Network
from .training.pipelines import load_config, load_preset, presets, run_pipeline
from .training.records import decode_network, encode_network

__all__ = [
    "ContractError",
    "DataItem",
    "Dataset",
    "Dense",
    "DenseSpec",
    "Dropout",
    "DropoutSpec",
    "EpochStats",
    "Layer",
    "Network",
    "RunResult",
    "Shape",
    "ShapeError",
    "Tensor",
    "activations",
    "build_layer",
    "decode_network",
    "encode_network",
    "get_dataset",
    "get_loss",
    "load_config",
    "load_preset",
    "presets",
    "run_pipeline",
]
