"""Layer stack with a mini-batch SGD training loop."""

from __future__ import annotations

import threading
import warnings
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np

from ..core.layers import Dropout, Layer, LayerSpec, build_layer
from ..core.parallel import KernelPool
from ..core.types import EpochStats, ShapeError, Tensor, as_tensor
from ..data.dataset import DataItem, Dataset
from .losses import LossFunction, get_loss
from .metrics import rounded_matches

StopSignal = Union[threading.Event, Callable[[], bool]]


class Network:
    """Ordered stack of layers trained with plain mini-batch SGD.

    ``train`` walks every epoch as: shuffle, split into batches, and for each
    example run forward, backward and gradient accumulation; once a batch is
    done every layer applies its averaged deltas. Observers registered in
    ``callbacks`` are notified after each epoch with
    ``(epoch, {"cost": ..., "accuracy": ...})``.
    """

    def __init__(
        self,
        layers: Sequence[LayerSpec | Mapping[str, object] | Layer],
        loss: str | LossFunction = "mse",
        learning_rate: float = 0.1,
        epochs: int = 1,
        batch_size: int = 1,
        *,
        seed: int | None = None,
        weight_range: float = 1.0,
        workers: int = 1,
        min_parallel: int = 64,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        if not layers:
            raise ValueError("A network needs at least one layer")
        if learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {learning_rate}")
        if epochs < 0:
            raise ValueError(f"epochs must be >= 0, got {epochs}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        self._rng = np.random.default_rng(seed)
        self.layers: List[Layer] = [
            build_layer(spec, rng=self._rng, weight_range=weight_range) for spec in layers
        ]
        for previous, layer in zip(self.layers[:-1], self.layers[1:]):
            if previous.output_size != layer.input_size:
                raise ShapeError(
                    f"{layer.describe()} takes {layer.input_size} inputs but the "
                    f"preceding layer produces {previous.output_size}"
                )
        self.pool = KernelPool(workers=workers, min_parallel=min_parallel)
        for layer in self.layers:
            layer.pool = self.pool
            # Dropout masks draw from the network rng so a seed fixes every run.
            if isinstance(layer, Dropout):
                layer.rng = self._rng

        self.loss = get_loss(loss)
        self._learning_rate = float(learning_rate)
        self._epochs = int(epochs)
        self._batch_size = int(batch_size)
        self.callbacks = list(callbacks or [])
        self.history: List[EpochStats] = []
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._training_thread: Optional[int] = None

    # ------------------------------------------------------------------
    # Hyperparameters are fixed for the lifetime of the network

    @property
    def learning_rate(self) -> float:
        return self._learning_rate

    @property
    def epochs(self) -> int:
        return self._epochs

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def input_size(self) -> int:
        return self.layers[0].input_size

    @property
    def output_size(self) -> int:
        return self.layers[-1].output_size

    @property
    def is_training(self) -> bool:
        return self._lock.locked()

    # ------------------------------------------------------------------
    # Public API

    def train(self, dataset: Dataset | Iterable[DataItem], *, stop: StopSignal | None = None) -> float:
        """Train for the configured epochs and return the last epoch's cost.

        A call made while this network is already training is rejected with a
        ``RuntimeWarning`` and returns ``0.0``. ``stop`` (or :meth:`cancel`)
        is checked between epochs; when it fires, the cost of the last
        completed epoch is returned.
        """

        if not self._lock.acquire(blocking=False):
            warnings.warn(
                "Network is already training; ignoring nested train() call",
                RuntimeWarning,
                stacklevel=2,
            )
            return 0.0
        try:
            self._training_thread = threading.get_ident()
            if not isinstance(dataset, Dataset):
                dataset = Dataset(dataset)
            self._check_dataset(dataset)
            return self._run_epochs(dataset, stop)
        finally:
            self._stop.clear()
            self._training_thread = None
            self._lock.release()

    def cancel(self) -> None:
        """Stop the running :meth:`train` at the next epoch boundary.

        A cancel issued while no training is running applies to the next
        :meth:`train` call, which then returns ``0.0`` without running an epoch.
        """

        self._stop.set()

    def predict(self, input: Tensor | Sequence[float]) -> Tensor:
        """Run a forward pass with dropout disabled.

        Layers cache their outputs for the backward pass, so predicting from
        another thread while :meth:`train` runs raises ``RuntimeError``.
        Callbacks run on the training thread between epochs and may predict.
        """

        if self._lock.locked() and self._training_thread != threading.get_ident():
            raise RuntimeError("Cannot predict from another thread while the network is training")
        return self._forward(as_tensor(input), dropout_enabled=False)

    def predict_class(self, input: Tensor | Sequence[float]) -> int:
        return self.predict(input).argmax()

    def evaluate(self, dataset: Dataset | Iterable[DataItem]) -> Mapping[str, float]:
        """Cost and rounded accuracy over ``dataset`` without touching weights."""

        total = 0.0
        count = 0
        matches = 0
        for item in dataset:
            prediction = self.predict(item.input)
            total += float(np.sum(self.loss.loss(prediction.body, item.target.body)))
            count += len(item.target)
            matches += rounded_matches(prediction.body, item.target.body)
        return {
            "cost": self.loss.cost(total, count),
            "accuracy": matches / count if count else 0.0,
        }

    def add_callback(self, callback: object) -> None:
        self.callbacks.append(callback)

    def parameter_count(self) -> int:
        return sum(layer.parameter_count() for layer in self.layers)

    def summary(self) -> str:
        return "\n".join(layer.describe() for layer in self.layers)

    def close(self) -> None:
        self.pool.close()

    # ------------------------------------------------------------------
    # Internal helpers

    def _run_epochs(self, dataset: Dataset, stop: StopSignal | None) -> float:
        cost = 0.0
        for epoch in range(1, self._epochs + 1):
            if self._should_stop(stop):
                break
            stats = self._train_epoch(dataset, epoch)
            cost = stats.cost
            self.history.append(stats)
            self._emit_epoch(stats)
        return cost

    def _train_epoch(self, dataset: Dataset, epoch: int) -> EpochStats:
        shuffled = dataset.shuffle(self._rng)
        total = 0.0
        count = 0
        matches = 0
        for batch in shuffled.take_batches(self._batch_size):
            for item in batch:
                prediction = self._forward(item.input, dropout_enabled=True)
                total += float(np.sum(self.loss.loss(prediction.body, item.target.body)))
                count += len(item.target)
                matches += rounded_matches(prediction.body, item.target.body)
                self._backward(item.target)
                self._accumulate(item.input)
            for layer in self.layers:
                layer.apply_update(len(batch), self._learning_rate)
        accuracy = matches / count if count else 0.0
        return EpochStats(epoch=epoch, cost=self.loss.cost(total, count), accuracy=accuracy)

    def _forward(self, input: Tensor, *, dropout_enabled: bool) -> Tensor:
        output = input
        for layer in self.layers:
            output = layer.forward(output, dropout_enabled)
        return output

    def _backward(self, expected: Tensor) -> None:
        next_layer: Optional[Layer] = None
        for layer in reversed(self.layers):
            layer.backward(expected if next_layer is None else None, next_layer)
            # Dropout has no weights to propagate errors through.
            if layer.has_parameters:
                next_layer = layer

    def _accumulate(self, input: Tensor) -> None:
        output = input
        for layer in self.layers:
            output = layer.accumulate_gradient(output, self._learning_rate)

    def _check_dataset(self, dataset: Dataset) -> None:
        if not len(dataset):
            return
        if dataset.input_size != self.input_size:
            raise ShapeError(
                f"Dataset inputs have width {dataset.input_size}, network expects {self.input_size}"
            )
        if dataset.output_size != self.output_size:
            raise ShapeError(
                f"Dataset targets have width {dataset.output_size}, network produces {self.output_size}"
            )

    def _should_stop(self, stop: StopSignal | None) -> bool:
        if self._stop.is_set():
            return True
        if stop is None:
            return False
        if hasattr(stop, "is_set"):
            return bool(stop.is_set())  # type: ignore[union-attr]
        return bool(stop())  # type: ignore[operator]

    def _emit_epoch(self, stats: EpochStats) -> None:
        metrics = stats.as_metrics()
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(stats.epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(stats.epoch, metrics)


__all__ = ["Network", "StopSignal"]
