# tensor_bridge/backend/kernels/torch_kernels.py
import torch

from ...ir.dtypes import Backend
from ...ops.atomic_types import OpType
from ..registry import KernelRegistry

TORCH_BACKENDS = (Backend.CPU_TORCH, Backend.GPU_TORCH)


@KernelRegistry.register(OpType.PLUS, *TORCH_BACKENDS)
def plus_torch(inputs, output, attrs):
    torch.add(inputs[0], inputs[1], out=output)


@KernelRegistry.register(OpType.MINUS, *TORCH_BACKENDS)
def minus_torch(inputs, output, attrs):
    torch.sub(inputs[0], inputs[1], out=output)


@KernelRegistry.register(OpType.ELEMENT_TIMES, *TORCH_BACKENDS)
def element_times_torch(inputs, output, attrs):
    torch.mul(inputs[0], inputs[1], out=output)


@KernelRegistry.register(OpType.TIMES, *TORCH_BACKENDS)
def times_torch(inputs, output, attrs):
    output.copy_(torch.matmul(inputs[0], inputs[1]))


@KernelRegistry.register(OpType.ALIAS, *TORCH_BACKENDS)
def alias_torch(inputs, output, attrs):
    output.copy_(inputs[0])


@KernelRegistry.register(OpType.NEGATE, *TORCH_BACKENDS)
def negate_torch(inputs, output, attrs):
    torch.neg(inputs[0], out=output)


@KernelRegistry.register(OpType.EXP, *TORCH_BACKENDS)
def exp_torch(inputs, output, attrs):
    torch.exp(inputs[0], out=output)


@KernelRegistry.register(OpType.SIGMOID, *TORCH_BACKENDS)
def sigmoid_torch(inputs, output, attrs):
    torch.sigmoid(inputs[0], out=output)


@KernelRegistry.register(OpType.TANH, *TORCH_BACKENDS)
def tanh_torch(inputs, output, attrs):
    torch.tanh(inputs[0], out=output)


@KernelRegistry.register(OpType.RELU, *TORCH_BACKENDS)
def relu_torch(inputs, output, attrs):
    torch.clamp(inputs[0], min=0, out=output)
