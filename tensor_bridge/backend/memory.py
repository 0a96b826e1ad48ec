import threading
from typing import Any, Dict, Tuple

import numpy as np
import torch

from ..config import DEBUG_MEMORY
from ..errors import ShapeMismatch
from ..ir.dtypes import DType, get_size_bytes
from .device import DeviceDescriptor


def is_torch_storage(storage: Any) -> bool:
    return isinstance(storage, torch.Tensor)


class StorageAllocator:
    """
    Hands out engine-owned storage for Values and evaluation intermediates.

    Storage layout is (num_samples, *variable_dims). Host numpy devices get
    numpy arrays, torch devices get torch tensors. Every call returns storage
    that no other Value or caller references.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.live_bytes: Dict[str, int] = {}

    def _track(self, device: DeviceDescriptor, nbytes: int):
        key = str(device)
        with self._lock:
            self.live_bytes[key] = self.live_bytes.get(key, 0) + nbytes
            if DEBUG_MEMORY:
                print(f"[StorageAllocator] {key} {nbytes:+d} bytes -> {self.live_bytes[key]}")

    def release(self, device: DeviceDescriptor, nbytes: int):
        self._track(device, -nbytes)

    def allocate(
        self, dims: Tuple[int, ...], dtype: DType, device: DeviceDescriptor
    ) -> Any:
        device.check_available()
        if device.backend.is_torch:
            storage = torch.zeros(dims, dtype=dtype.torch, device=device.torch_device)
        else:
            storage = np.zeros(dims, dtype=dtype.numpy)
        self._track(device, get_size_bytes(dims, dtype))
        return storage

    def copy_in(
        self,
        host: np.ndarray,
        dims: Tuple[int, ...],
        dtype: DType,
        device: DeviceDescriptor,
    ) -> Any:
        """Copies a host array into fresh storage on `device`."""
        device.check_available()
        if host.size != int(np.prod(dims)):
            raise ShapeMismatch(f"Cannot copy {host.size} elements into shape {dims}")

        # np.array always copies here, so the result never aliases `host`, and
        # converts foreign byte order to native.
        owned = np.array(host, dtype=dtype.numpy, copy=True, order="C").reshape(dims)
        if device.backend.is_torch:
            storage = torch.from_numpy(owned).to(device.torch_device)
        else:
            storage = owned
        self._track(device, get_size_bytes(dims, dtype))
        return storage

    @staticmethod
    def to_host(storage: Any) -> np.ndarray:
        """Fresh host numpy copy of any storage."""
        if is_torch_storage(storage):
            return storage.detach().cpu().numpy().copy()
        return np.array(storage, copy=True)

    @staticmethod
    def stage(storage: Any, device: DeviceDescriptor) -> Any:
        """
        Returns `storage` readable by kernels on `device` without copying when
        it already lives there. The result is only used for the duration of
        one evaluation.
        """
        if device.backend.is_torch:
            if is_torch_storage(storage):
                return storage.to(device.torch_device)
            return torch.from_numpy(np.ascontiguousarray(storage)).to(device.torch_device)
        if is_torch_storage(storage):
            return storage.detach().cpu().numpy()
        return storage

    @staticmethod
    def write_into(dest: Any, src: Any):
        """In-place copy of `src` into existing storage `dest`."""
        if is_torch_storage(dest):
            if not is_torch_storage(src):
                src = torch.from_numpy(np.ascontiguousarray(src))
            dest.copy_(src.reshape(dest.shape))
        else:
            if is_torch_storage(src):
                src = src.detach().cpu().numpy()
            np.copyto(dest, np.reshape(src, dest.shape))


default_allocator = StorageAllocator()
