from enum import Enum
from typing import Any, Optional, Sequence, Union

import numpy as np

from .dtypes import DType, parse_buffer_format
from .shape import Shape
from ..errors import ShapeMismatch


class StorageType(Enum):
    TRANSIENT = "transient"  # Argument data (per evaluation)
    PERSISTENT = "persistent"  # Parameters and constants (static)


class BufferDescriptor:
    """
    Non-owning view over caller-supplied contiguous memory plus a Shape.

    Accepts anything exporting the buffer protocol (numpy arrays, array.array,
    bytearray, ctypes arrays). Plain Python sequences are packed into a fresh
    array first since they expose no memory to view.

    The descriptor never copies. Whoever created it keeps the underlying
    storage alive and unchanged for as long as a borrowing Value uses it.
    """

    def __init__(
        self,
        shape: Union[Shape, Sequence[int]],
        data: Any,
        dtype: Optional[DType] = None,
    ):
        self.shape = Shape.of(shape)

        if isinstance(data, (list, tuple)):
            np_dtype = dtype.numpy if dtype is not None else np.float32
            data = np.asarray(data, dtype=np_dtype).reshape(-1)

        view = memoryview(data)
        if not view.c_contiguous:
            raise TypeError("BufferDescriptor requires C-contiguous memory")

        # Raw byte buffers carry no element type, so the caller must name one.
        if view.format in ("B", "b", "c") and dtype is not None:
            resolved, byteorder = dtype, "="
        else:
            resolved, byteorder = parse_buffer_format(view.format)
            if dtype is not None and dtype != resolved:
                raise TypeError(
                    f"Buffer holds {resolved.value} elements, descriptor declared {dtype.value}"
                )

        self.dtype: DType = resolved
        self.byteorder = byteorder
        self.data = view.cast("B")
        if self.data.nbytes % resolved.itemsize != 0:
            raise ShapeMismatch(
                f"Buffer of {self.data.nbytes} bytes is not a whole number of {resolved.value} elements"
            )
        self.length = self.data.nbytes // resolved.itemsize

        if self.length != self.shape.total_size:
            raise ShapeMismatch(
                f"Buffer holds {self.length} elements but shape {self.shape.dims} "
                f"needs {self.shape.total_size}"
            )

    @property
    def is_native_order(self) -> bool:
        return self.byteorder == "="

    @property
    def element_dtype(self) -> np.dtype:
        """numpy dtype of the elements, byte order included."""
        return np.dtype(self.dtype.numpy).newbyteorder(self.byteorder)

    def as_array(self) -> np.ndarray:
        """Zero-copy flat numpy view of the caller's memory, in its own byte order."""
        return np.frombuffer(self.data, dtype=self.element_dtype, count=self.length)

    def release(self):
        self.data.release()

    def __repr__(self):
        return f"BufferDescriptor(shape={self.shape.dims}, dtype={self.dtype.value}, length={self.length})"
