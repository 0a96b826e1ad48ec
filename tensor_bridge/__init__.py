# Expose main components for easy access
from .ir.shape import Shape
from .ir.dtypes import DType
from .ir.buffer import BufferDescriptor
from .ir.node import Function, Variable, VariableKind
from .ops import *
from .backend.device import (
    DeviceDescriptor,
    DeviceKind,
    cpu_device,
    cpu_torch_device,
    gpu_device,
    set_default_device,
    use_default_device,
)
from .backend.value import CopyMode, Value
from .backend.executor import Evaluator, evaluate
from .context import (
    DeterminismContext,
    force_deterministic_algorithms,
    get_random_seed,
    is_random_seed_fixed,
    reset_random_seed,
    set_fixed_random_seed,
    should_force_deterministic_algorithms,
)
from .persistence import load, save
from .errors import (
    DeviceMismatch,
    KernelUnavailableError,
    PersistenceFormatError,
    ShapeMismatch,
    TensorBridgeError,
    UnboundInput,
    UnknownOutput,
    UnsupportedDevice,
)
