"""Layer variants and the specs used to build them.

Every layer exposes the same four operations, called by the network in this
order for each training example::

    forward -> backward -> accumulate_gradient   (per example)
    apply_update                                 (once per batch)

Layers never hold references to each other. During the backward pass the
network hands each layer the next layer toward the output (``next_layer``)
so it can read that layer's weights and bias deltas.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Union

import numpy as np

from .activations import ActivationFunction, get_activation
from .neuron import Neuron
from .parallel import SERIAL, KernelPool
from .types import DTYPE, Array, ContractError, ShapeError, Tensor, as_tensor


@dataclass(frozen=True)
class DenseSpec:
    """Fully connected layer: ``neuron_count`` neurons over ``input_size`` inputs."""

    input_size: int
    neuron_count: int
    activation: str = "sigmoid"

    kind = "dense"


@dataclass(frozen=True)
class DropoutSpec:
    """Dropout over ``input_size`` values, dropping each with the given percent."""

    input_size: int
    drop_probability_percent: float

    kind = "dropout"


LayerSpec = Union[DenseSpec, DropoutSpec]


class Layer:
    """Base contract shared by all layer kinds."""

    kind = "layer"
    has_parameters = False

    def __init__(self, input_size: int, output_size: int) -> None:
        if input_size < 1 or output_size < 1:
            raise ValueError(
                f"Layer sizes must be positive, got input={input_size} output={output_size}"
            )
        self.input_size = int(input_size)
        self.output_size = int(output_size)
        self.pool: KernelPool = SERIAL

    def forward(self, input: Tensor, dropout_enabled: bool = True) -> Tensor:
        raise NotImplementedError

    def backward(self, expected: Optional[Tensor], next_layer: Optional["Layer"] = None) -> Tensor:
        raise NotImplementedError

    def accumulate_gradient(self, input: Tensor, learning_rate: float) -> Tensor:
        raise NotImplementedError

    def apply_update(self, batch_size: int, learning_rate: float | None = None) -> None:
        raise NotImplementedError

    def parameter_count(self) -> int:
        return 0

    def describe(self) -> str:
        return f"{type(self).__name__}: {self.input_size} -> {self.output_size}"

    def to_record(self) -> Dict[str, object]:
        raise NotImplementedError

    def _check_input(self, input: Tensor) -> Array:
        tensor = as_tensor(input)
        if len(tensor) != self.input_size:
            raise ShapeError(
                f"{type(self).__name__} expects {self.input_size} inputs, got {len(tensor)}"
            )
        return tensor.body


class Dense(Layer):
    """Fully connected layer with one neuron per output."""

    kind = "dense"
    has_parameters = True

    def __init__(
        self,
        input_size: int,
        neuron_count: int,
        activation: str | ActivationFunction = "sigmoid",
        *,
        rng: np.random.Generator | None = None,
        weight_range: float = 1.0,
        neurons: List[Neuron] | None = None,
    ) -> None:
        super().__init__(input_size, neuron_count)
        self.activation = get_activation(activation)
        if neurons is None:
            rng = rng if rng is not None else np.random.default_rng()
            neurons = [Neuron.random(input_size, rng, weight_range) for _ in range(neuron_count)]
        if len(neurons) != neuron_count:
            raise ShapeError(f"Expected {neuron_count} neurons, got {len(neurons)}")
        for neuron in neurons:
            if neuron.input_size != input_size:
                raise ShapeError(
                    f"Neuron has {neuron.input_size} weights but the layer takes {input_size} inputs"
                )
        self.neurons = neurons

    @property
    def weights(self) -> Array:
        """Weight matrix of shape ``(neuron_count, input_size)`` (a copy)."""

        return np.stack([neuron.weights for neuron in self.neurons])

    @property
    def biases(self) -> Array:
        return np.array([neuron.bias for neuron in self.neurons], dtype=DTYPE)

    def outputs(self) -> Tensor:
        return Tensor.vector([neuron.output for neuron in self.neurons])

    def forward(self, input: Tensor, dropout_enabled: bool = True) -> Tensor:
        x = self._check_input(input)
        result = np.empty(self.output_size, dtype=DTYPE)
        activate = self.activation.activate

        def kernel(start: int, stop: int) -> None:
            for i in range(start, stop):
                neuron = self.neurons[i]
                raw = DTYPE(neuron.bias + np.dot(neuron.weights, x))
                neuron.output = DTYPE(activate(raw))
                result[i] = neuron.output

        self.pool.run(self.output_size, kernel)
        return Tensor.vector(result)

    def backward(self, expected: Optional[Tensor], next_layer: Optional[Layer] = None) -> Tensor:
        outputs = np.array([neuron.output for neuron in self.neurons], dtype=DTYPE)
        if next_layer is None:
            if expected is None:
                raise ContractError("The output layer needs the expected values")
            target = as_tensor(expected).body
            if target.size != self.output_size:
                raise ShapeError(
                    f"Expected values of length {target.size} do not match "
                    f"{self.output_size} output neurons"
                )
            errors = outputs - target
        else:
            if not isinstance(next_layer, Dense):
                raise ContractError(
                    f"Errors can only be propagated from a dense layer, got {type(next_layer).__name__}"
                )
            if next_layer.input_size != self.output_size:
                raise ShapeError(
                    f"Next layer takes {next_layer.input_size} inputs but this layer "
                    f"has {self.output_size} neurons"
                )
            errors = np.zeros(self.output_size, dtype=DTYPE)
            for neuron in next_layer.neurons:
                errors += neuron.weights * neuron.bias_delta
        slopes = self.activation.derivative(outputs)
        deltas = (errors * slopes).astype(DTYPE)
        for neuron, delta in zip(self.neurons, deltas):
            neuron.bias_delta = DTYPE(delta)
        return Tensor.vector(outputs)

    def accumulate_gradient(self, input: Tensor, learning_rate: float) -> Tensor:
        x = self._check_input(input)
        lr = DTYPE(learning_rate)

        def kernel(start: int, stop: int) -> None:
            for i in range(start, stop):
                neuron = self.neurons[i]
                step = DTYPE(lr * neuron.bias_delta)
                neuron.weights_delta -= step * x
                neuron.total_bias_delta = DTYPE(neuron.total_bias_delta - step)

        self.pool.run(self.output_size, kernel)
        return self.outputs()

    def apply_update(self, batch_size: int, learning_rate: float | None = None) -> None:
        """Apply the accumulated deltas averaged over ``batch_size`` examples.

        ``learning_rate`` is ignored: the deltas were already scaled by it in
        :meth:`accumulate_gradient`.
        """

        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        scale = DTYPE(batch_size)

        def kernel(start: int, stop: int) -> None:
            for i in range(start, stop):
                neuron = self.neurons[i]
                neuron.weights += neuron.weights_delta / scale
                neuron.bias = DTYPE(neuron.bias + neuron.total_bias_delta / scale)
                neuron.reset_deltas()

        self.pool.run(self.output_size, kernel)

    def parameter_count(self) -> int:
        return self.output_size * (self.input_size + 1)

    def describe(self) -> str:
        return f"Dense layer: {self.output_size} neurons, {self.activation.name}"

    def to_record(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "activation": self.activation.name,
            "input_size": self.input_size,
            "neurons": [
                {
                    "weights": [float(w) for w in neuron.weights],
                    "bias": float(neuron.bias),
                }
                for neuron in self.neurons
            ],
        }

    @classmethod
    def from_record(cls, record: Mapping[str, object]) -> "Dense":
        neurons = [
            Neuron(weights=item["weights"], bias=item["bias"])  # type: ignore[index]
            for item in record["neurons"]  # type: ignore[union-attr]
        ]
        input_size = int(record.get("input_size", neurons[0].input_size if neurons else 0))
        return cls(
            input_size,
            len(neurons),
            str(record["activation"]),
            neurons=neurons,
        )


class Dropout(Layer):
    """Zero each input with a fixed probability while training."""

    kind = "dropout"

    def __init__(
        self,
        input_size: int,
        drop_probability_percent: float,
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        super().__init__(input_size, input_size)
        if not 0.0 <= float(drop_probability_percent) <= 100.0:
            raise ValueError(
                f"drop_probability_percent must be within [0, 100], got {drop_probability_percent}"
            )
        self.drop_probability_percent = float(drop_probability_percent)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.mask = np.zeros(input_size, dtype=bool)
        self._output = Tensor.vector(np.zeros(input_size, dtype=DTYPE))

    @property
    def probability(self) -> float:
        return self.drop_probability_percent / 100.0

    def forward(self, input: Tensor, dropout_enabled: bool = True) -> Tensor:
        x = self._check_input(input)
        if dropout_enabled and self.probability > 0.0:
            self.mask = self.rng.random(self.input_size) < self.probability
            self._output = Tensor.vector(np.where(self.mask, DTYPE(0.0), x))
        else:
            self.mask = np.zeros(self.input_size, dtype=bool)
            self._output = Tensor.vector(x)
        return self._output

    def backward(self, expected: Optional[Tensor], next_layer: Optional[Layer] = None) -> Tensor:
        return self._output

    def accumulate_gradient(self, input: Tensor, learning_rate: float) -> Tensor:
        return self._output

    def apply_update(self, batch_size: int, learning_rate: float | None = None) -> None:
        return None

    def describe(self) -> str:
        return (
            f"Dropout layer: {self.input_size} neurons, "
            f"{self.drop_probability_percent:g}% probability"
        )

    def to_record(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "input_size": self.input_size,
            "drop_probability_percent": self.drop_probability_percent,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, object]) -> "Dropout":
        return cls(int(record["input_size"]), float(record["drop_probability_percent"]))


_LAYER_KINDS: Dict[str, Callable[[Mapping[str, object]], Layer]] = {
    "dense": Dense.from_record,
    "dropout": Dropout.from_record,
}

_KIND_ALIASES = {"fully_connected": "dense", "fullyconnected": "dense", "linear": "dense"}


def _normalise_kind(kind: object) -> str:
    key = str(kind).lower()
    return _KIND_ALIASES.get(key, key)


def spec_from_mapping(config: Mapping[str, object]) -> LayerSpec:
    """Build a layer spec from a config mapping such as ``{"kind": "dense", ...}``."""

    kind = _normalise_kind(config.get("kind", "dense"))
    if kind == "dense":
        return DenseSpec(
            input_size=int(config["input_size"]),
            neuron_count=int(config["neuron_count"]),
            activation=str(config.get("activation", "sigmoid")),
        )
    if kind == "dropout":
        return DropoutSpec(
            input_size=int(config["input_size"]),
            drop_probability_percent=float(config["drop_probability_percent"]),
        )
    available = ", ".join(sorted(_LAYER_KINDS))
    raise ValueError(f"Unknown layer kind {kind!r}. Available kinds: {available}")


def build_layer(
    spec: LayerSpec | Mapping[str, object] | Layer,
    *,
    rng: np.random.Generator | None = None,
    weight_range: float = 1.0,
) -> Layer:
    """Instantiate the layer described by ``spec``."""

    if isinstance(spec, Layer):
        return spec
    if isinstance(spec, Mapping):
        spec = spec_from_mapping(spec)
    if isinstance(spec, DenseSpec):
        return Dense(
            spec.input_size,
            spec.neuron_count,
            spec.activation,
            rng=rng,
            weight_range=weight_range,
        )
    if isinstance(spec, DropoutSpec):
        return Dropout(spec.input_size, spec.drop_probability_percent, rng=rng)
    raise TypeError(f"Unsupported layer spec: {spec!r}")


def layer_from_record(record: Mapping[str, object]) -> Layer:
    kind = _normalise_kind(record.get("kind"))
    if kind not in _LAYER_KINDS:
        available = ", ".join(sorted(_LAYER_KINDS))
        raise ValueError(f"Unknown layer kind {kind!r} in record. Available kinds: {available}")
    return _LAYER_KINDS[kind](record)


__all__ = [
    "Dense",
    "DenseSpec",
    "Dropout",
    "DropoutSpec",
    "Layer",
    "LayerSpec",
    "build_layer",
    "layer_from_record",
    "spec_from_mapping",
]
