import types

import numpy as np
import pytest

from neuralnets.core.types import ShapeError, Tensor
from neuralnets.data import DataItem, Dataset, available_datasets, get_dataset
from neuralnets.data.loaders.planar import HALF_SIDE, make_planar


def _numbers(count):
    return Dataset(DataItem.from_values([float(i)], [0.0]) for i in range(count))


def test_take_batches_is_lazy_and_keeps_short_tail():
    batches = _numbers(7).take_batches(3)
    assert isinstance(batches, types.GeneratorType)
    sizes = [len(batch) for batch in batches]
    assert sizes == [3, 3, 1]
    assert list(batches) == []


def test_take_batches_rejects_non_positive_size():
    with pytest.raises(ValueError):
        _numbers(3).take_batches(0)


def test_shuffle_returns_new_permutation():
    data = _numbers(20)
    shuffled = data.shuffle(np.random.default_rng(0))
    original = [item.input.body[0] for item in data]
    reordered = [item.input.body[0] for item in shuffled]
    assert original == [float(i) for i in range(20)]
    assert sorted(reordered) == original
    assert reordered != original


def test_shuffle_is_reproducible_for_a_seed():
    data = _numbers(10)
    a = data.shuffle(np.random.default_rng(5))
    b = data.shuffle(np.random.default_rng(5))
    assert [item.input for item in a] == [item.input for item in b]


def test_dataset_rejects_mixed_widths():
    with pytest.raises(ShapeError):
        Dataset([
            DataItem.from_values([0.0, 1.0], [1.0]),
            DataItem.from_values([0.0], [1.0]),
        ])


def test_from_arrays_and_back():
    data = Dataset.from_arrays([[0, 1], [1, 0], [1, 1]], [1, 1, 0])
    assert len(data) == 3
    assert data.input_size == 2
    assert data.output_size == 1
    x, y = data.arrays()
    assert x.shape == (3, 2)
    assert y.tolist() == [[1.0], [1.0], [0.0]]


def test_from_decimal_is_msb_first_and_padded():
    assert DataItem.from_decimal(5, True).input.tolist() == [1.0, 0.0, 1.0]
    item = DataItem.from_decimal(5, False, width=4)
    assert item.input.tolist() == [0.0, 1.0, 0.0, 1.0]
    assert item.target == Tensor.vector([0.0])
    with pytest.raises(ShapeError):
        DataItem.from_decimal(9, True, width=3)


def test_prime_table_labels():
    data = get_dataset("prime", bits=4).dataset
    assert len(data) == 16
    labels = {int("".join(str(int(b)) for b in item.input.tolist()), 2): item.target.body[0] for item in data}
    assert [n for n, label in sorted(labels.items()) if label == 1.0] == [2, 3, 5, 7, 11, 13]


def test_planar_datasets_are_balanced_and_inside_canvas():
    spec = get_dataset("quarters", count=40, seed=1)
    data = spec.dataset
    assert len(data) == 40
    assert spec.d_in == 4
    assert [item.target.body[0] for item in data] == [1.0] * 20 + [0.0] * 20
    for item in data:
        x, y = item.point
        assert -HALF_SIDE <= x <= HALF_SIDE
        assert -HALF_SIDE <= y <= HALF_SIDE
        assert item.input.body[0] == pytest.approx(x)


def test_quarters_classes_sit_in_opposite_quadrants():
    data = make_planar("quarters", 40, seed=2)
    for item in data:
        x, y = item.point
        if item.target.body[0] == 1.0:
            assert x * y <= 0
        else:
            assert x * y >= 0


def test_planar_generation_is_seeded():
    a = make_planar("spiral", 30, seed=9)
    b = make_planar("spiral", 30, seed=9)
    assert [item.point for item in a] == [item.point for item in b]
    assert a.input_size == 6


def test_unknown_dataset_lists_available():
    assert {"gaussian", "spiral", "prime", "separable", "xor"} <= set(available_datasets())
    with pytest.raises(KeyError, match="Available datasets"):
        get_dataset("moons")
