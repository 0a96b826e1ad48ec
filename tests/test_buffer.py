import array
import ctypes
import sys

import numpy as np
import pytest

from tensor_bridge import CopyMode, Value, cpu_device, input_variable
from tensor_bridge.ir.buffer import BufferDescriptor
from tensor_bridge.ir.dtypes import DType
from tensor_bridge.errors import ShapeMismatch


def test_numpy_buffer_is_viewed_not_copied():
    data = np.arange(6, dtype=np.float32)
    desc = BufferDescriptor((3, 2), data)
    assert desc.dtype == DType.FP32
    assert desc.length == 6

    data[0] = 42.0
    assert desc.as_array()[0] == 42.0


def test_element_type_from_buffer_format():
    assert BufferDescriptor((4,), array.array("d", [0.0] * 4)).dtype == DType.FP64
    assert BufferDescriptor((2,), np.zeros(2, dtype=np.int32)).dtype == DType.INT32
    assert BufferDescriptor((3,), (ctypes.c_float * 3)()).dtype == DType.FP32


def test_raw_bytes_need_explicit_dtype():
    raw = bytearray(16)
    with pytest.raises(TypeError):
        BufferDescriptor((4,), raw)
    desc = BufferDescriptor((4,), raw, DType.FP32)
    assert desc.length == 4


def test_declared_dtype_must_match_buffer():
    with pytest.raises(TypeError):
        BufferDescriptor((2,), np.zeros(2, dtype=np.float64), DType.FP32)


def test_element_count_must_match_shape():
    with pytest.raises(ShapeMismatch):
        BufferDescriptor((1000, 1), np.zeros(999, dtype=np.float32))


def test_non_contiguous_rejected():
    data = np.zeros((4, 4), dtype=np.float32)[:, ::2]
    with pytest.raises(TypeError):
        BufferDescriptor((8,), data)


def test_python_sequence_is_packed():
    desc = BufferDescriptor((3, 1), [1.0, 2.0, 3.0])
    np.testing.assert_array_equal(desc.as_array(), [1.0, 2.0, 3.0])


def test_big_endian_buffer_keeps_its_values():
    data = np.array([1.0, 2.0, 3.0], dtype=">f4")
    desc = BufferDescriptor((3,), data)
    assert desc.dtype == DType.FP32
    assert not desc.is_native_order
    np.testing.assert_array_equal(desc.as_array(), [1.0, 2.0, 3.0])


def test_native_order_prefixes_are_normalized():
    native = "<" if sys.byteorder == "little" else ">"
    desc = BufferDescriptor((2,), np.zeros(2, dtype=native + "i4"))
    assert desc.dtype == DType.INT32
    assert desc.is_native_order


def test_foreign_order_value_is_converted_on_copy():
    x = input_variable((3,))
    data = np.array([1.0, 2.0, 3.0], dtype=">f4")
    value = Value.create(BufferDescriptor((3, 1), data), cpu_device())
    assert value.get_dense_data(x) == [[1.0, 2.0, 3.0]]

    data[:] = 0
    assert value.get_dense_data(x) == [[1.0, 2.0, 3.0]]


def test_foreign_order_cannot_be_borrowed():
    data = np.array([1.0, 2.0], dtype=">f8")
    with pytest.raises(TypeError):
        Value.create(BufferDescriptor((2, 1), data), cpu_device(), CopyMode.BORROW)
