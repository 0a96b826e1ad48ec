# tensor_bridge/backend/registry.py
from typing import Callable, Dict

from ..errors import KernelUnavailableError
from ..ir.dtypes import Backend

# Kernel signature: kernel(inputs, output, attrs) -> None, writing into `output`.
Kernel = Callable


class KernelRegistry:
    # OpType -> Backend -> Kernel
    _kernels: Dict[str, Dict[Backend, Kernel]] = {}

    @classmethod
    def has_kernel(cls, op_type: str, backend: Backend) -> bool:
        return backend in cls._kernels.get(op_type, {})

    @classmethod
    def register(cls, op_type: str, *backends: Backend):
        def decorator(func):
            for backend in backends:
                cls._kernels.setdefault(op_type, {})[backend] = func
            return func

        return decorator

    @classmethod
    def select(cls, op_type: str, backend: Backend) -> Kernel:
        kernel = cls._kernels.get(op_type, {}).get(backend)
        if kernel is None:
            raise KernelUnavailableError(
                f"No kernel registered for '{op_type}' on backend '{backend.value}'"
            )
        return kernel


from .kernels import *
