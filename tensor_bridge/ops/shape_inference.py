from typing import Any, Callable, Dict, Sequence, Tuple

from ..errors import ShapeMismatch
from ..ir.dtypes import DType
from ..ir.shape import Shape
from .atomic_types import OpType

_FLOATING = (DType.FP32, DType.FP64)
_NUMERIC = (DType.FP32, DType.FP64, DType.INT32)

# Ops missing here accept every DType
_SUPPORTED_DTYPES = {
    OpType.MINUS: _NUMERIC,
    OpType.TIMES: _NUMERIC,
    OpType.NEGATE: _NUMERIC,
    OpType.RELU: _NUMERIC,
    OpType.EXP: _FLOATING,
    OpType.SIGMOID: _FLOATING,
    OpType.TANH: _FLOATING,
}


def _broadcast_elementwise(a: Shape, b: Shape) -> Shape:
    """Equal shapes, or one side holding a single element."""
    if a == b:
        return a
    if b.total_size == 1 and b.rank <= a.rank:
        return a
    if a.total_size == 1 and a.rank <= b.rank:
        return b
    raise ShapeMismatch(f"Incompatible elementwise operand shapes {a.dims} and {b.dims}")


class ShapeInference:
    _handlers: Dict[str, Callable] = {}

    @classmethod
    def register_handler(cls, *op_types: str):
        def decorator(func):
            for op_type in op_types:
                cls._handlers[op_type] = func
            return func

        return decorator

    @classmethod
    def infer(
        cls, op_type: str, inputs: Sequence[Any], attrs: Dict[str, Any]
    ) -> Tuple[Shape, DType]:
        """Returns the (shape, dtype) of the output of `op_type` applied to `inputs`."""
        handler = cls._handlers.get(op_type)
        if handler is None:
            raise NotImplementedError(f"No shape inference for '{op_type}'")
        shape, dtype = handler(inputs, attrs)
        supported = _SUPPORTED_DTYPES.get(op_type)
        if supported is not None and dtype not in supported:
            raise TypeError(f"'{op_type}' does not support {dtype.value} operands")
        return shape, dtype


def _common_dtype(op_type: str, inputs: Sequence[Any]) -> DType:
    dtypes = {v.dtype for v in inputs}
    if len(dtypes) != 1:
        names = ", ".join(sorted(d.value for d in dtypes))
        raise TypeError(f"'{op_type}' operands have mixed dtypes ({names})")
    return dtypes.pop()


@ShapeInference.register_handler(*OpType.ELEMENTWISE_BINARY)
def _infer_binary(inputs, attrs):
    if len(inputs) != 2:
        raise ValueError("Elementwise binary ops require 2 inputs")
    a, b = inputs
    return _broadcast_elementwise(a.shape, b.shape), _common_dtype("elementwise", inputs)


@ShapeInference.register_handler(*OpType.UNARY)
def _infer_unary(inputs, attrs):
    if len(inputs) != 1:
        raise ValueError("Unary ops require 1 input")
    return inputs[0].shape, inputs[0].dtype


@ShapeInference.register_handler(OpType.TIMES)
def _infer_times(inputs, attrs):
    if len(inputs) != 2:
        raise ValueError("Times requires 2 inputs")
    a, b = inputs
    if a.shape.rank == 0 or b.shape.rank == 0:
        raise ShapeMismatch("Times operands must have rank >= 1")
    if a.shape[-1] != b.shape[0]:
        raise ShapeMismatch(
            f"Times inner dimensions disagree: {a.shape.dims} x {b.shape.dims}"
        )
    return Shape(a.shape[:-1] + b.shape[1:]), _common_dtype(OpType.TIMES, inputs)
