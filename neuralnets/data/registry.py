"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

from .dataset import Dataset


@dataclass(frozen=True)
class DatasetSpec:
    """A built dataset plus the metadata needed to reproduce it.

    Attributes
    ----------
    name:
        Registry identifier the dataset was built from.
    dataset:
        The in-memory :class:`~neuralnets.data.dataset.Dataset`.
    provenance:
        Options the factory was called with, recorded in run manifests.
    task_type:
        ``"binary"``, ``"multiclass"`` or ``"regression"``; only used to pick
        reporting metrics.
    """

    name: str
    dataset: Dataset
    provenance: Dict[str, Any] = field(default_factory=dict)
    task_type: str = "binary"

    @property
    def d_in(self) -> int:
        return self.dataset.input_size

    @property
    def d_out(self) -> int:
        return self.dataset.output_size


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("xor")
        def make_xor(**kwargs):
            ...

    or directly::

        register_dataset("xor", make_xor)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str | None = None, /, **options: Any) -> DatasetSpec:
    """Return the :class:`DatasetSpec` built by the factory registered as ``dataset``."""

    if dataset is None:
        if "name" in options:
            dataset = str(options.pop("name"))
        else:
            raise TypeError("Dataset name must be provided")

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset: {dataset}. Available datasets: {available}")

    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if spec.task_type not in {"regression", "multiclass", "binary"}:
        raise ValueError(f"Invalid task type: {spec.task_type}")
    if not isinstance(spec.dataset, Dataset):
        raise TypeError("DatasetSpec.dataset must be a Dataset")


__all__ = [
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
