import numpy as np
import pytest

from neuralnets.core.activations import get_activation
from neuralnets.core.layers import Dense, DenseSpec, Dropout, build_layer, spec_from_mapping
from neuralnets.core.neuron import Neuron
from neuralnets.core.parallel import KernelPool
from neuralnets.core.types import ContractError, Shape, ShapeError, Tensor


def _single_weight_layer(weight=0.5, bias=0.0):
    return Dense(1, 1, "identity", neurons=[Neuron(weights=[weight], bias=bias)])


def test_tensor_rejects_body_that_does_not_fit_shape():
    with pytest.raises(ShapeError):
        Tensor(Shape(2, 3), range(5))
    assert issubclass(ShapeError, ValueError)


def test_tensor_indexing_follows_row_major_layout():
    flat = Tensor(Shape(2, 3), range(6))
    assert flat.get(1, 2) == 5.0
    assert flat.get(0, 1) == 2.0

    cube = Tensor(Shape(2, 2, 3), range(12))
    assert cube.get(1, 1, 2) == 11.0
    assert cube.get(0, 1, 0) == 6.0


@pytest.mark.parametrize("coords", [(2, 0), (5, 0), (0, 3), (-1,), (-1, 0), (0, -1)])
def test_tensor_indexing_rejects_out_of_range_coordinates(coords):
    flat = Tensor(Shape(2, 3), range(6))
    with pytest.raises(ShapeError):
        flat.get(*coords)


def test_tensor_indexing_checks_depth():
    cube = Tensor(Shape(2, 2, 3), range(12))
    with pytest.raises(ShapeError):
        cube.get(0, 0, 3)
    with pytest.raises(ShapeError):
        Tensor(Shape(2, 3), range(6)).get(0, 0, 0)


def test_tensor_equality_compares_flat_bodies():
    values = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
    assert Tensor(Shape(6), values) == Tensor(Shape(2, 3), values)
    assert Tensor.vector([1.0, 2.0]) != Tensor.vector([1.0, 2.5])


def test_shape_requires_height_before_depth():
    with pytest.raises(ShapeError):
        Shape(2, None, 3)
    assert Shape(4).kind == "oneD"
    assert Shape(4, 2).size == 8
    assert Shape(4, 2, 3).kind == "threeD"


def test_one_hot_places_single_one():
    assert Tensor.one_hot(2, 4).tolist() == [0.0, 0.0, 1.0, 0.0]
    with pytest.raises(ContractError):
        Tensor.one_hot(4, 4)


def test_argmax_picks_largest_output():
    assert Tensor.vector([1.0, 5.0, 3.0]).argmax() == 1


def test_sigmoid_derivative_uses_output():
    sigmoid = get_activation("sigmoid")
    out = sigmoid.activate(np.array([0.0, 2.0]))
    np.testing.assert_allclose(sigmoid.derivative(out), out * (1.0 - out))
    assert sigmoid.derivative(np.array([0.5]))[0] == pytest.approx(0.25)


def test_tanh_derivative_is_one_minus_output_squared():
    tanh = get_activation("tanh")
    x = np.array([-1.5, 0.0, 1.0])
    out = tanh.activate(x)
    np.testing.assert_allclose(tanh.derivative(out), 1.0 - np.tanh(x) ** 2)
    assert tanh.derivative(out)[2] != pytest.approx(1.0 - np.tanh(np.tanh(1.0)) ** 2)


def test_relu_derivative_is_zero_for_non_positive_outputs():
    relu = get_activation("relu")
    out = relu.activate(np.array([-2.0, 0.0, 3.0]))
    assert out.tolist() == [0.0, 0.0, 3.0]
    assert relu.derivative(out).tolist() == [0.0, 0.0, 1.0]


def test_identity_alias_and_unknown_activation():
    assert get_activation("plain").name == "identity"
    with pytest.raises(KeyError, match="Available activations"):
        get_activation("softsign")


def test_dense_forward_is_deterministic_and_cached():
    layer = Dense(2, 3, "identity", neurons=[
        Neuron(weights=[1.0, 0.0], bias=0.0),
        Neuron(weights=[2.0, 1.0], bias=1.0),
        Neuron(weights=[0.0, 1.0], bias=-1.0),
    ])
    first = layer.forward(Tensor.vector([1.0, 2.0]))
    second = layer.forward(Tensor.vector([1.0, 2.0]))
    assert first == second
    assert first.tolist() == [1.0, 5.0, 1.0]
    assert layer.outputs() == first


def test_dense_forward_rejects_wrong_input_width():
    layer = build_layer(DenseSpec(3, 2), rng=np.random.default_rng(0))
    with pytest.raises(ShapeError):
        layer.forward(Tensor.vector([1.0, 2.0]))


def test_weights_stay_within_initial_range():
    layer = Dense(8, 16, rng=np.random.default_rng(3), weight_range=0.25)
    assert layer.weights.shape == (16, 8)
    assert layer.weights.dtype == np.float32
    assert np.all(np.abs(layer.weights) <= 0.25)
    assert np.all(layer.biases == 0.0)


def test_single_step_moves_against_the_gradient():
    layer = _single_weight_layer()
    x, target = Tensor.vector([2.0]), Tensor.vector([3.0])

    # d/dw (w*x + b - t)^2 at w=0.5, b=0, x=2, t=3
    gradient = 2.0 * (0.5 * 2.0 - 3.0) * 2.0

    before = (layer.forward(x).body[0] - 3.0) ** 2
    layer.backward(target)
    layer.accumulate_gradient(x, 0.1)
    layer.apply_update(1)
    after = (layer.forward(x).body[0] - 3.0) ** 2

    change = float(layer.neurons[0].weights[0]) - 0.5
    assert np.sign(change) == -np.sign(gradient)
    assert after < before


def test_apply_update_averages_over_batch_and_resets():
    layer = _single_weight_layer()
    x, target = Tensor.vector([2.0]), Tensor.vector([3.0])
    for _ in range(2):
        layer.forward(x)
        layer.backward(target)
        layer.accumulate_gradient(x, 0.1)

    neuron = layer.neurons[0]
    assert float(neuron.weights_delta[0]) == pytest.approx(0.8, rel=1e-6)
    assert float(neuron.total_bias_delta) == pytest.approx(0.4, rel=1e-6)

    layer.apply_update(2)
    assert float(neuron.weights[0]) == pytest.approx(0.9, rel=1e-6)
    assert float(neuron.bias) == pytest.approx(0.2, rel=1e-6)
    assert float(neuron.weights_delta[0]) == 0.0
    assert float(neuron.total_bias_delta) == 0.0

    with pytest.raises(ValueError):
        layer.apply_update(0)


def test_hidden_layer_error_comes_from_next_layer_weights():
    hidden = Dense(1, 2, "identity", neurons=[
        Neuron(weights=[1.0]),
        Neuron(weights=[2.0]),
    ])
    output = Dense(2, 1, "identity", neurons=[Neuron(weights=[0.5, -1.0])])

    out = output.forward(hidden.forward(Tensor.vector([1.0])))
    assert out.tolist() == [-1.5]

    output.backward(Tensor.vector([0.5]))
    assert float(output.neurons[0].bias_delta) == pytest.approx(-2.0)

    hidden.backward(None, output)
    assert float(hidden.neurons[0].bias_delta) == pytest.approx(0.5 * -2.0)
    assert float(hidden.neurons[1].bias_delta) == pytest.approx(-1.0 * -2.0)


def test_backward_output_layer_requires_expected_values():
    layer = _single_weight_layer()
    layer.forward(Tensor.vector([1.0]))
    with pytest.raises(ContractError):
        layer.backward(None)
    with pytest.raises(ShapeError):
        layer.backward(Tensor.vector([1.0, 2.0]))


def test_dropout_masks_only_when_enabled():
    values = Tensor.vector([1.0, 2.0, 3.0, 4.0])

    always = Dropout(4, 100, rng=np.random.default_rng(0))
    assert always.forward(values).tolist() == [0.0, 0.0, 0.0, 0.0]
    assert always.forward(values, dropout_enabled=False) == values

    never = Dropout(4, 0, rng=np.random.default_rng(0))
    assert never.forward(values) == values

    assert always.parameter_count() == 0
    with pytest.raises(ValueError):
        Dropout(4, 150)


def test_layer_spec_from_mapping_accepts_aliases():
    spec = spec_from_mapping({"kind": "fully_connected", "input_size": 2, "neuron_count": 3})
    assert spec == DenseSpec(2, 3, "sigmoid")
    with pytest.raises(ValueError, match="Available kinds"):
        spec_from_mapping({"kind": "conv", "input_size": 2})


def test_describe_lines():
    dense = Dense(2, 3, "tanh", rng=np.random.default_rng(0))
    assert dense.describe() == "Dense layer: 3 neurons, tanh"
    assert Dropout(16, 5).describe() == "Dropout layer: 16 neurons, 5% probability"
    assert dense.parameter_count() == 9


def test_kernel_pool_covers_every_index_once():
    seen = []
    with KernelPool(workers=3, min_parallel=1) as pool:
        pool.run(10, lambda start, stop: seen.extend(range(start, stop)))
    assert sorted(seen) == list(range(10))


def test_kernel_pool_reraises_kernel_errors():
    def kernel(start, stop):
        if start > 0:
            raise RuntimeError("boom")

    with KernelPool(workers=2, min_parallel=1) as pool:
        with pytest.raises(RuntimeError, match="boom"):
            pool.run(8, kernel)

    with pytest.raises(ValueError):
        KernelPool(workers=-1)
