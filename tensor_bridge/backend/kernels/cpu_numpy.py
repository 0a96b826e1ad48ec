# tensor_bridge/backend/kernels/cpu_numpy.py
import numpy as np

from ...ir.dtypes import Backend
from ...ops.atomic_types import OpType
from ..registry import KernelRegistry

# Operands arrive already aligned for broadcasting against `output`.
# Kernels write their result into `output` and keep no reference to any array.


@KernelRegistry.register(OpType.PLUS, Backend.CPU_NUMPY)
def plus_numpy(inputs, output, attrs):
    np.add(inputs[0], inputs[1], out=output)


@KernelRegistry.register(OpType.MINUS, Backend.CPU_NUMPY)
def minus_numpy(inputs, output, attrs):
    np.subtract(inputs[0], inputs[1], out=output)


@KernelRegistry.register(OpType.ELEMENT_TIMES, Backend.CPU_NUMPY)
def element_times_numpy(inputs, output, attrs):
    np.multiply(inputs[0], inputs[1], out=output)


@KernelRegistry.register(OpType.TIMES, Backend.CPU_NUMPY)
def times_numpy(inputs, output, attrs):
    np.matmul(inputs[0], inputs[1], out=output)


@KernelRegistry.register(OpType.ALIAS, Backend.CPU_NUMPY)
def alias_numpy(inputs, output, attrs):
    np.copyto(output, inputs[0])


@KernelRegistry.register(OpType.NEGATE, Backend.CPU_NUMPY)
def negate_numpy(inputs, output, attrs):
    np.negative(inputs[0], out=output)


@KernelRegistry.register(OpType.EXP, Backend.CPU_NUMPY)
def exp_numpy(inputs, output, attrs):
    np.exp(inputs[0], out=output)


@KernelRegistry.register(OpType.SIGMOID, Backend.CPU_NUMPY)
def sigmoid_numpy(inputs, output, attrs):
    # 1 / (1 + exp(-x)), computed in place in the output buffer
    np.negative(inputs[0], out=output)
    np.exp(output, out=output)
    output += 1
    np.reciprocal(output, out=output)


@KernelRegistry.register(OpType.TANH, Backend.CPU_NUMPY)
def tanh_numpy(inputs, output, attrs):
    np.tanh(inputs[0], out=output)


@KernelRegistry.register(OpType.RELU, Backend.CPU_NUMPY)
def relu_numpy(inputs, output, attrs):
    np.maximum(inputs[0], 0, out=output)
