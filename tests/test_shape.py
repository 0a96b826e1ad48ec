import numpy as np
import pytest

from tensor_bridge.ir.shape import Shape
from tensor_bridge.errors import ShapeMismatch


def test_total_size_is_product_of_dims():
    assert Shape((40, 40, 2)).total_size == 3200
    assert Shape(()).total_size == 1
    assert Shape(()).rank == 0


def test_append_adds_trailing_sample_axis():
    s = Shape((3, 4)).append(5)
    assert s == (3, 4, 5)
    assert s.sub_shape(0, -1) == Shape((3, 4))


def test_prefix():
    assert Shape((3,)).is_prefix_of((3, 1))
    assert not Shape((3,)).is_prefix_of((4, 1))
    assert Shape(()).is_prefix_of((7,))


@pytest.mark.parametrize("dims", [(0,), (3, -1), (2.5,), (True,), (np.bool_(True),)])
def test_rejects_non_positive_or_non_int_dims(dims):
    with pytest.raises(ShapeMismatch):
        Shape(dims)


def test_equality_and_hash():
    assert Shape((1, 2)) == Shape([1, 2])
    assert hash(Shape((1, 2))) == hash(Shape((1, 2)))
    assert Shape((1, 2)) != Shape((2, 1))


def test_accepts_numpy_integer_dims():
    arr = np.zeros((2, 3), dtype=np.float32)
    s = Shape(np.array(arr.shape))
    assert s == (2, 3)
    assert all(type(d) is int for d in s.dims)
    assert Shape((np.int64(2), np.int32(3))) == Shape((2, 3))
