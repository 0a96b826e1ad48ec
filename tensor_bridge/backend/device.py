from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import torch

from ..config import DEFAULT_DEVICE_OVERRIDE
from ..errors import UnsupportedDevice
from ..ir.dtypes import Backend


class DeviceKind(Enum):
    CPU = "cpu"
    GPU = "gpu"


@dataclass(frozen=True)
class DeviceDescriptor:
    """
    Opaque handle for the compute resource a Value's storage and a
    function's kernels are placed on.

    CPU devices default to the numpy backend. GPU devices always run on torch.
    """

    kind: DeviceKind
    device_id: int = 0
    backend: Backend = Backend.CPU_NUMPY

    @property
    def torch_device(self) -> torch.device:
        if self.kind == DeviceKind.GPU:
            return torch.device("cuda", self.device_id)
        return torch.device("cpu")

    @property
    def is_host(self) -> bool:
        return self.kind == DeviceKind.CPU

    def check_available(self):
        if not isinstance(self.kind, DeviceKind):
            raise UnsupportedDevice(f"Unknown device kind: {self.kind!r}")
        if self.kind == DeviceKind.CPU:
            if self.backend == Backend.GPU_TORCH:
                raise UnsupportedDevice("CPU device cannot use the GPU backend")
            return
        if self.backend != Backend.GPU_TORCH:
            raise UnsupportedDevice(f"GPU device requires the torch backend, got {self.backend}")
        if not torch.cuda.is_available():
            raise UnsupportedDevice("CUDA is not available")
        if self.device_id >= torch.cuda.device_count():
            raise UnsupportedDevice(f"No CUDA device with id {self.device_id}")

    def __str__(self):
        if self.kind == DeviceKind.GPU:
            return f"gpu:{self.device_id}"
        return "cpu" if self.backend == Backend.CPU_NUMPY else "cpu_torch"


def cpu_device() -> DeviceDescriptor:
    return DeviceDescriptor(DeviceKind.CPU)


def cpu_torch_device() -> DeviceDescriptor:
    """Host device running the torch kernels instead of numpy."""
    return DeviceDescriptor(DeviceKind.CPU, backend=Backend.CPU_TORCH)


def gpu_device(device_id: int = 0) -> DeviceDescriptor:
    return DeviceDescriptor(DeviceKind.GPU, device_id, Backend.GPU_TORCH)


def parse_device(text: str) -> DeviceDescriptor:
    text = text.strip().lower()
    if text == "cpu":
        return cpu_device()
    if text == "cpu_torch":
        return cpu_torch_device()
    if text == "gpu" or text == "cuda":
        return gpu_device(0)
    if text.startswith("gpu:") or text.startswith("cuda:"):
        return gpu_device(int(text.split(":", 1)[1]))
    raise UnsupportedDevice(f"Unknown device specification: {text!r}")


_default_device: Optional[DeviceDescriptor] = None


def set_default_device(device: DeviceDescriptor):
    global _default_device
    device.check_available()
    _default_device = device


def use_default_device() -> DeviceDescriptor:
    """The explicitly set default, else the env override, else GPU 0 if CUDA works."""
    if _default_device is not None:
        return _default_device
    if DEFAULT_DEVICE_OVERRIDE:
        return parse_device(DEFAULT_DEVICE_OVERRIDE)
    if torch.cuda.is_available():
        return gpu_device(0)
    return cpu_device()


def devices_compatible(value_device: DeviceDescriptor, eval_device: DeviceDescriptor) -> bool:
    """
    Host values feed any host evaluation, numpy or torch, since both share
    host memory. Accelerator values only feed evaluations on the same device.
    """
    if value_device.is_host:
        return eval_device.is_host
    return value_device == eval_device
