import math
import sys
from enum import Enum
from typing import Tuple, Optional

import numpy as np
import torch


class DType(Enum):
    FP32 = "float32"
    FP64 = "float64"
    INT32 = "int32"
    BOOL = "bool"

    @property
    def itemsize(self) -> int:
        """Returns the number of bytes per element."""
        return {
            DType.FP32: 4,
            DType.FP64: 8,
            DType.INT32: 4,
            DType.BOOL: 1,
        }[self]

    @property
    def numpy(self):
        return {
            DType.FP32: np.float32,
            DType.FP64: np.float64,
            DType.INT32: np.int32,
            DType.BOOL: np.bool_,
        }[self]

    @property
    def torch(self):
        return {
            DType.FP32: torch.float32,
            DType.FP64: torch.float64,
            DType.INT32: torch.int32,
            DType.BOOL: torch.bool,
        }[self]


# struct-module format characters exported by the buffer protocol
_BUFFER_FORMATS = {
    "f": DType.FP32,
    "d": DType.FP64,
    "i": DType.INT32,
    "?": DType.BOOL,
}

NATIVE_BYTE_ORDER = "<" if sys.byteorder == "little" else ">"
_BYTE_ORDERS = {"@": "=", "=": "=", "<": "<", ">": ">", "!": ">"}


def parse_buffer_format(fmt: str) -> Tuple[DType, str]:
    """
    Maps a memoryview format string (e.g. 'f', '<f', '>i') to a DType and
    the numpy byte-order character of the data: '=' for native order, else
    '<' or '>'.
    """
    code = fmt
    order = "="
    standard_sizes = False
    if code and code[0] in _BYTE_ORDERS:
        order = _BYTE_ORDERS[code[0]]
        standard_sizes = code[0] != "@"
        code = code[1:]
    # struct 'l' is 4 bytes with an explicit order prefix, C long otherwise
    if code == "l" and (standard_sizes or np.dtype("l").itemsize == 4):
        code = "i"
    if code not in _BUFFER_FORMATS:
        raise TypeError(f"Unsupported buffer format: {fmt!r}")
    if order == NATIVE_BYTE_ORDER:
        order = "="
    return _BUFFER_FORMATS[code], order


def get_size_bytes(shape: Optional[Tuple[int, ...]], dtype: DType) -> int:
    if shape is None:
        raise ValueError("Cannot calculate byte size without a shape")
    if len(shape) == 0:
        return dtype.itemsize
    return math.prod(shape) * dtype.itemsize


class Backend(Enum):
    CPU_NUMPY = "cpu_numpy"
    CPU_TORCH = "cpu_torch"
    GPU_TORCH = "gpu_torch"

    @property
    def is_torch(self) -> bool:
        return self in (Backend.CPU_TORCH, Backend.GPU_TORCH)
