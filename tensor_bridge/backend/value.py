import weakref
from enum import Enum
from typing import Any, List, Optional, Sequence

import numpy as np

from ..config import DEFAULT_COPY_MODE
from ..errors import ShapeMismatch, UnsupportedDevice
from ..ir.buffer import BufferDescriptor
from ..ir.dtypes import Backend, DType, get_size_bytes
from ..ir.node import Variable
from ..ir.shape import Shape
from .device import DeviceDescriptor, use_default_device
from .memory import StorageAllocator, default_allocator


class CopyMode(Enum):
    COPY = "copy"  # Value owns a private copy (default)
    BORROW = "borrow"  # Value reads the caller's memory; caller keeps it alive and unchanged


class Value:
    """
    Engine-side tensor bound to a device.

    Shape is the variable's shape plus one trailing sample axis. Storage is
    laid out (num_samples, *variable_dims), so a flat caller buffer is
    sample-major: all elements of sample 0 first, row-major within a sample.

    A Value created with CopyMode.COPY never aliases caller memory: once
    `create` returns, the caller may free or overwrite its buffer. A
    CopyMode.BORROW Value holds a memoryview on the caller's buffer instead.
    The memoryview pins the exporting object (it cannot be resized or
    reclaimed while pinned) but cannot stop the caller from writing to it;
    contents are read when an evaluation binds the value.
    """

    def __init__(
        self,
        shape: Shape,
        dtype: DType,
        device: DeviceDescriptor,
        storage: Any,
        owns_data: bool,
        allocator: StorageAllocator = default_allocator,
        pin: Optional[memoryview] = None,
    ):
        self.shape = shape
        self.dtype = dtype
        self.device = device
        self.owns_data = owns_data
        self._storage = storage
        self._pin = pin
        if owns_data:
            self._finalizer = weakref.finalize(
                self, allocator.release, device, get_size_bytes(shape.dims, dtype)
            )
        else:
            self._finalizer = None

    # --- Construction ---

    @classmethod
    def create(
        cls,
        descriptor: BufferDescriptor,
        device: Optional[DeviceDescriptor] = None,
        mode: Optional[CopyMode] = None,
        allocator: StorageAllocator = default_allocator,
    ) -> "Value":
        """
        Builds a Value from a caller buffer. COPY (the default) returns a
        self-contained Value. BORROW is zero-copy and only valid on the host
        numpy device.
        """
        if device is None:
            device = use_default_device()
        if mode is None:
            mode = CopyMode(DEFAULT_COPY_MODE)
        device.check_available()

        shape = descriptor.shape
        if shape.rank == 0:
            raise ShapeMismatch("A Value needs at least the trailing sample axis")
        dims = (shape[-1],) + shape.dims[:-1]

        if mode == CopyMode.BORROW:
            if device.backend != Backend.CPU_NUMPY:
                raise UnsupportedDevice(
                    f"Borrowed values must live on the host numpy device, not {device}"
                )
            if not descriptor.is_native_order:
                raise TypeError(
                    "Borrowed buffers must be in native byte order; create the Value with "
                    "CopyMode.COPY to convert it"
                )
            pin = memoryview(descriptor.data)
            flat = np.frombuffer(pin, dtype=descriptor.dtype.numpy, count=descriptor.length)
            return cls(shape, descriptor.dtype, device, flat.reshape(dims), False, allocator, pin)

        storage = allocator.copy_in(descriptor.as_array(), dims, descriptor.dtype, device)
        return cls(shape, descriptor.dtype, device, storage, True, allocator)

    @classmethod
    def from_batch(
        cls,
        variable: Variable,
        samples: Sequence[Sequence[Any]],
        device: Optional[DeviceDescriptor] = None,
        allocator: StorageAllocator = default_allocator,
    ) -> "Value":
        """One sequence per sample, each holding variable.shape.total_size elements."""
        if device is None:
            device = use_default_device()
        if len(samples) == 0:
            raise ShapeMismatch("A batch needs at least one sample")
        per_sample = variable.shape.total_size
        rows = [np.asarray(s, dtype=variable.dtype.numpy).reshape(-1) for s in samples]
        for i, row in enumerate(rows):
            if row.size != per_sample:
                raise ShapeMismatch(
                    f"Sample {i} has {row.size} elements, variable shape {variable.shape.dims} "
                    f"needs {per_sample}"
                )
        dims = (len(rows),) + variable.shape.dims
        storage = allocator.copy_in(np.stack(rows), dims, variable.dtype, device)
        return cls(variable.shape.append(len(rows)), variable.dtype, device, storage, True, allocator)

    @classmethod
    def allocate(
        cls,
        variable: Variable,
        num_samples: int,
        device: DeviceDescriptor,
        allocator: StorageAllocator = default_allocator,
    ) -> "Value":
        """Zero-filled owning Value for `num_samples` samples of `variable`."""
        dims = (num_samples,) + variable.shape.dims
        storage = allocator.allocate(dims, variable.dtype, device)
        return cls(variable.shape.append(num_samples), variable.dtype, device, storage, True, allocator)

    # --- Accessors ---

    @property
    def num_samples(self) -> int:
        return self.shape[-1]

    @property
    def sample_shape(self) -> Shape:
        return self.shape.sub_shape(0, -1)

    @property
    def storage(self) -> Any:
        """
        Engine storage for this value. Used by the evaluator; callers should
        read data through get_dense_data or as_numpy, which return copies.
        """
        if self._storage is None:
            raise RuntimeError("Value has been released")
        return self._storage

    def check_variable(self, variable: Variable):
        if not variable.shape.is_prefix_of(self.shape) or self.shape.rank != variable.shape.rank + 1:
            raise ShapeMismatch(
                f"Value shape {self.shape.dims} does not match variable shape "
                f"{variable.shape.dims} plus a sample axis"
            )
        if variable.dtype != self.dtype:
            raise TypeError(
                f"Value holds {self.dtype.value}, variable expects {variable.dtype.value}"
            )

    def as_numpy(self) -> np.ndarray:
        """Fresh host copy laid out (num_samples, *sample_dims)."""
        return StorageAllocator.to_host(self.storage)

    def get_dense_data(self, variable: Variable) -> List[List[Any]]:
        """
        One flat list per sample. The lists are new Python objects, so they
        stay valid after this Value, the engine or the caller's buffers change.
        """
        self.check_variable(variable)
        host = self.as_numpy().reshape(self.num_samples, -1)
        return host.tolist()

    def release(self):
        """Drops storage (and the pin on a borrowed buffer)."""
        self._storage = None
        self._pin = None
        if self._finalizer is not None:
            self._finalizer()

    def __repr__(self):
        mode = "owned" if self.owns_data else "borrowed"
        return f"Value(shape={self.shape.dims}, dtype={self.dtype.value}, device={self.device}, {mode})"
