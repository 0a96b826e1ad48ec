"""
Builders for graph leaves and primitive functions.
"""

from typing import Any, Optional, Sequence, Union

import numpy as np

from ..context import DeterminismContext
from ..ir.dtypes import DType
from ..ir.node import Function, Variable, VariableKind
from ..ir.shape import Shape
from .atomic_types import OpType
from .initializers import Initializer, glorot_uniform_initializer

Operand = Union[Variable, Function]


def _as_variable(x: Operand) -> Variable:
    if isinstance(x, Function):
        return x.output
    if isinstance(x, Variable):
        return x
    raise TypeError(f"Expected a Variable or Function, got {type(x).__name__}")


# --- Leaves ---


def input_variable(
    shape: Union[Shape, Sequence[int]], dtype: DType = DType.FP32, name: str = ""
) -> Variable:
    return Variable(VariableKind.INPUT, Shape.of(shape), dtype, name=name)


def parameter(
    shape: Union[Shape, Sequence[int]],
    dtype: DType = DType.FP32,
    initializer: Optional[Initializer] = None,
    device=None,
    name: str = "",
    value: Any = None,
    context: Optional[DeterminismContext] = None,
) -> Variable:
    """
    Learnable leaf. Its data is drawn from `initializer` (Glorot uniform by
    default) unless an explicit `value` is given. Parameter data always lives
    on the host; evaluation stages it onto the evaluation device.
    """
    shape = Shape.of(shape)
    if device is not None:
        device.check_available()
    if value is None:
        if initializer is None:
            initializer = glorot_uniform_initializer()
        value = initializer.generate(shape.dims, dtype, context)
    return Variable(VariableKind.PARAMETER, shape, dtype, name=name, value=value)


def constant(
    value: Any,
    shape: Optional[Union[Shape, Sequence[int]]] = None,
    dtype: DType = DType.FP32,
    name: str = "",
) -> Variable:
    data = np.asarray(value, dtype=dtype.numpy)
    if shape is None:
        shape = data.shape
    elif data.size == 1:
        data = np.full(Shape.of(shape).dims, data.reshape(()), dtype=dtype.numpy)
    return Variable(VariableKind.CONSTANT, Shape.of(shape), dtype, name=name, value=data)


# --- Functions ---


def plus(a: Operand, b: Operand, name: str = "") -> Function:
    return Function(OpType.PLUS, [_as_variable(a), _as_variable(b)], name=name)


def minus(a: Operand, b: Operand, name: str = "") -> Function:
    return Function(OpType.MINUS, [_as_variable(a), _as_variable(b)], name=name)


def element_times(a: Operand, b: Operand, name: str = "") -> Function:
    return Function(OpType.ELEMENT_TIMES, [_as_variable(a), _as_variable(b)], name=name)


def times(a: Operand, b: Operand, name: str = "") -> Function:
    """Matrix product contracting the last axis of `a` with the first axis of `b`."""
    return Function(OpType.TIMES, [_as_variable(a), _as_variable(b)], name=name)


def alias(a: Operand, name: str = "") -> Function:
    """Forwards its input unchanged."""
    return Function(OpType.ALIAS, [_as_variable(a)], name=name)


def negate(a: Operand, name: str = "") -> Function:
    return Function(OpType.NEGATE, [_as_variable(a)], name=name)


def exp(a: Operand, name: str = "") -> Function:
    return Function(OpType.EXP, [_as_variable(a)], name=name)


def sigmoid(a: Operand, name: str = "") -> Function:
    return Function(OpType.SIGMOID, [_as_variable(a)], name=name)


def tanh(a: Operand, name: str = "") -> Function:
    return Function(OpType.TANH, [_as_variable(a)], name=name)


def relu(a: Operand, name: str = "") -> Function:
    return Function(OpType.RELU, [_as_variable(a)], name=name)
