# tensor_bridge/backend/executor.py
import math
import time
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Tuple

import numpy as np
import torch
from tqdm import tqdm

from ..config import DEBUG_DETAILED, DEBUG_EXECUTION
from ..context import DeterminismContext, resolve_context
from ..errors import (
    DeviceMismatch,
    KernelUnavailableError,
    ShapeMismatch,
    UnboundInput,
    UnknownOutput,
)
from ..ir.graph import get_inputs, get_leaves, topological_sort
from ..ir.node import Function, Variable, VariableKind
from ..ops.atomic_types import OpType
from .device import DeviceDescriptor, devices_compatible, use_default_device
from .memory import StorageAllocator, default_allocator
from .registry import KernelRegistry
from .value import Value

DEBUG = DEBUG_EXECUTION and DEBUG_DETAILED

# Storage plus whether it carries the leading sample axis
Operand = Tuple[Any, bool]


def _align_elementwise(storage: Any, batched: bool, rank: int, out_rank: int, n: int) -> Any:
    """Inserts unit axes after the sample axis so a lower-rank batched operand broadcasts."""
    if not batched or rank == out_rank:
        return storage
    return storage.reshape((n,) + (1,) * (out_rank - rank) + tuple(storage.shape[1:]))


def _times_views(
    func: Function, operands: List[Operand], out: Any, out_batched: bool, n: int
) -> Tuple[List[Any], Any]:
    """Flattens Times operands to (…, M, K) @ (…, K, P) matmul form."""
    (a, a_batched), (b, b_batched) = operands
    a_dims = func.inputs[0].shape.dims
    b_dims = func.inputs[1].shape.dims
    k = a_dims[-1]
    m = math.prod(a_dims[:-1])
    p = math.prod(b_dims[1:])
    a_view = a.reshape((n, m, k) if a_batched else (m, k))
    b_view = b.reshape((n, k, p) if b_batched else (k, p))
    out_view = out.reshape((n, m, p) if out_batched else (m, p))
    return [a_view, b_view], out_view


class Evaluator:
    """
    Runs one function graph over bound Values.

    Holds no per-call state, so a single Evaluator (and the Function it
    runs) can serve concurrent `evaluate` calls from several threads.
    """

    def __init__(self, allocator: StorageAllocator = default_allocator):
        self.allocator = allocator

    # --- Validation (nothing is allocated or written before this passes) ---

    def _validate(
        self,
        func: Function,
        inputs: Mapping[Variable, Value],
        outputs: MutableMapping[Variable, Optional[Value]],
        device: DeviceDescriptor,
    ) -> int:
        arguments = get_inputs(func)
        for var in arguments:
            if var not in inputs or inputs[var] is None:
                raise UnboundInput(f"No value bound for argument {var!r}")

        produced = set(func.outputs)
        for var in outputs:
            if var not in produced:
                raise UnknownOutput(f"{var!r} is not an output of {func!r}")

        for var in arguments:
            value = inputs[var]
            if not devices_compatible(value.device, device):
                raise DeviceMismatch(
                    f"Value for {var!r} lives on {value.device}, evaluation runs on {device}"
                )

        device.check_available()
        for node in topological_sort(func):
            if not KernelRegistry.has_kernel(node.op_type, device.backend):
                raise KernelUnavailableError(
                    f"No kernel for {node.op_type} on backend {device.backend.value}"
                )

        num_samples = None
        for var in arguments:
            value = inputs[var]
            value.check_variable(var)
            if num_samples is None:
                num_samples = value.num_samples
            elif value.num_samples != num_samples:
                raise ShapeMismatch(
                    f"Argument {var!r} has {value.num_samples} samples, others have {num_samples}"
                )
        if num_samples is None:
            num_samples = 1

        for var, value in outputs.items():
            if value is None:
                continue
            value.check_variable(var)
            if value.num_samples != num_samples:
                raise ShapeMismatch(
                    f"Preallocated output for {var!r} holds {value.num_samples} samples, "
                    f"evaluation produces {num_samples}"
                )

        return num_samples

    # --- Execution ---

    def _bind_leaves(
        self, func: Function, inputs: Mapping[Variable, Value], device: DeviceDescriptor
    ) -> Dict[Variable, Operand]:
        bound: Dict[Variable, Operand] = {}
        for var in get_leaves(func):
            if var.kind == VariableKind.INPUT:
                bound[var] = (StorageAllocator.stage(inputs[var].storage, device), True)
            else:
                data = var.value
                if device.backend.is_torch:
                    # Parameter arrays are read-only; torch needs writable memory to wrap.
                    data = data.copy()
                bound[var] = (StorageAllocator.stage(data, device), False)
        return bound

    def _run(
        self,
        func: Function,
        inputs: Mapping[Variable, Value],
        device: DeviceDescriptor,
        num_samples: int,
    ) -> Operand:
        env = self._bind_leaves(func, inputs, device)
        order = topological_sort(func)

        for node in tqdm(order, desc="Evaluating", disable=not DEBUG_EXECUTION):
            start_time = time.perf_counter()
            operands = [env[v] for v in node.inputs]
            out_batched = any(batched for _, batched in operands)
            out_dims = node.output.shape.dims
            if out_batched:
                out_dims = (num_samples,) + out_dims

            if device.backend.is_torch:
                out = torch.zeros(out_dims, dtype=node.output.dtype.torch, device=device.torch_device)
            else:
                out = np.zeros(out_dims, dtype=node.output.dtype.numpy)

            if node.op_type == OpType.TIMES:
                kernel_inputs, out_view = _times_views(node, operands, out, out_batched, num_samples)
            else:
                out_rank = node.output.shape.rank
                kernel_inputs = [
                    _align_elementwise(s, b, v.shape.rank, out_rank, num_samples)
                    for (s, b), v in zip(operands, node.inputs)
                ]
                out_view = out

            kernel = KernelRegistry.select(node.op_type, device.backend)
            kernel(kernel_inputs, out_view, node.attrs)
            env[node.output] = (out, out_batched)

            if DEBUG:
                elapsed = (time.perf_counter() - start_time) * 1000
                print(f"[Evaluator] {node!r} on {device} in {elapsed:.3f} ms")
                print(node.get_details())

        return env[func.output]

    def evaluate(
        self,
        func: Function,
        inputs: Mapping[Variable, Value],
        outputs: MutableMapping[Variable, Optional[Value]],
        device: Optional[DeviceDescriptor] = None,
        context: Optional[DeterminismContext] = None,
    ) -> MutableMapping[Variable, Optional[Value]]:
        """
        Evaluates `func` with `inputs` bound to its arguments and writes the
        requested outputs. Unset output entries receive new Values; set ones
        are written in place. Blocks until the results are written.

        All validation happens before any output is touched, and outputs are
        only written once every kernel has succeeded.
        """
        if device is None:
            device = use_default_device()
        context = resolve_context(context)

        num_samples = self._validate(func, inputs, outputs, device)

        if context.force_deterministic and device.backend.is_torch:
            if not torch.are_deterministic_algorithms_enabled():
                torch.use_deterministic_algorithms(True)

        if DEBUG_EXECUTION:
            print(f"[Evaluator] {func!r}: {len(inputs)} inputs, {num_samples} samples on {device}")

        result, batched = self._run(func, inputs, device, num_samples)
        if not batched:
            # Argument-free graph: present the result as a single sample
            result = result.reshape((1,) + tuple(result.shape))

        for var in list(outputs.keys()):
            existing = outputs[var]
            if existing is None:
                value = Value.allocate(var, num_samples, device, self.allocator)
                StorageAllocator.write_into(value.storage, result)
                outputs[var] = value
            else:
                StorageAllocator.write_into(existing.storage, result)
        return outputs


_default_evaluator = Evaluator()


def evaluate(
    func: Function,
    inputs: Mapping[Variable, Value],
    outputs: MutableMapping[Variable, Optional[Value]],
    device: Optional[DeviceDescriptor] = None,
    context: Optional[DeterminismContext] = None,
) -> MutableMapping[Variable, Optional[Value]]:
    return _default_evaluator.evaluate(func, inputs, outputs, device, context)
