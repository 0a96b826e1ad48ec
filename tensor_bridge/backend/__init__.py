from .device import DeviceDescriptor, DeviceKind, cpu_device, gpu_device, use_default_device
from .value import CopyMode, Value
from .executor import Evaluator, evaluate
