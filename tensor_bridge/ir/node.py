import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .dtypes import DType
from .shape import Shape
from .buffer import StorageType
from ..errors import ShapeMismatch

_uid_counter = itertools.count()


def _next_uid(prefix: str) -> str:
    return f"{prefix}{next(_uid_counter)}"


class VariableKind(Enum):
    INPUT = "input"
    PARAMETER = "parameter"
    CONSTANT = "constant"
    OUTPUT = "output"


@dataclass(frozen=True, eq=False)
class Variable:
    """
    Named slot in a graph. INPUT variables are bound to Values at evaluation,
    PARAMETER and CONSTANT variables carry their data, OUTPUT variables are
    produced by their owner Function.
    """

    kind: VariableKind
    shape: Shape
    dtype: DType = DType.FP32
    name: str = ""
    uid: str = ""
    owner: Optional["Function"] = None
    value: Optional[np.ndarray] = field(default=None, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "shape", Shape.of(self.shape))
        if not self.uid:
            object.__setattr__(self, "uid", _next_uid(self.kind.value.capitalize()))

        if self.kind in (VariableKind.PARAMETER, VariableKind.CONSTANT):
            if self.value is None:
                raise ValueError(f"{self.kind.value} '{self.name}' requires a value")
            # Private read-only copy: the graph never shares data with the caller.
            data = np.array(self.value, dtype=self.dtype.numpy, copy=True)
            if data.size != self.shape.total_size:
                raise ShapeMismatch(
                    f"{self.kind.value} '{self.name}' value has {data.size} elements, "
                    f"shape {self.shape.dims} needs {self.shape.total_size}"
                )
            data = data.reshape(self.shape.dims)
            data.flags.writeable = False
            object.__setattr__(self, "value", data)
        elif self.value is not None:
            raise ValueError(f"{self.kind.value} variables do not carry a value")

    @property
    def storage_type(self) -> StorageType:
        if self.kind in (VariableKind.PARAMETER, VariableKind.CONSTANT):
            return StorageType.PERSISTENT
        return StorageType.TRANSIENT

    @property
    def is_leaf(self) -> bool:
        return self.owner is None

    def __repr__(self):
        label = self.name or self.uid
        return f"{self.kind.value.capitalize()}('{label}', shape={self.shape.dims}, dtype={self.dtype.value})"


@dataclass(frozen=True, eq=False)
class Function:
    """
    Pure computation node. Immutable once built: evaluation reads it and
    never writes to it, so one Function can serve concurrent evaluations.
    """

    op_type: str
    inputs: Tuple[Variable, ...]
    name: str = ""
    attrs: Dict[str, Any] = field(default_factory=dict)
    uid: str = ""
    output: Variable = field(init=False, repr=False)

    def __post_init__(self):
        from ..ops.shape_inference import ShapeInference

        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "attrs", dict(self.attrs))
        if not self.uid:
            object.__setattr__(self, "uid", _next_uid(self.op_type))

        shape, dtype = ShapeInference.infer(self.op_type, self.inputs, self.attrs)
        output = Variable(
            VariableKind.OUTPUT,
            shape,
            dtype,
            name=f"{self.name}_Output" if self.name else "",
            uid=f"{self.uid}_Output0",
            owner=self,
        )
        object.__setattr__(self, "output", output)

    @property
    def outputs(self) -> Tuple[Variable, ...]:
        return (self.output,)

    @property
    def arguments(self) -> List[Variable]:
        """Input-kind leaves of the whole graph, in first-use order."""
        from .graph import get_inputs

        return get_inputs(self)

    @property
    def parameters(self) -> List[Variable]:
        from .graph import get_leaves

        return [v for v in get_leaves(self) if v.kind == VariableKind.PARAMETER]

    @property
    def constants(self) -> List[Variable]:
        from .graph import get_leaves

        return [v for v in get_leaves(self) if v.kind == VariableKind.CONSTANT]

    def evaluate(self, inputs, outputs, device=None, context=None):
        from ..backend.executor import evaluate

        return evaluate(self, inputs, outputs, device, context)

    def save(self, path: Optional[str] = None):
        from .. import persistence

        return persistence.save(self, path)

    @staticmethod
    def load(source, device=None) -> "Function":
        from .. import persistence

        return persistence.load(source, device)

    def get_details(self) -> str:
        header = f"Function: {self.name or self.uid} [{self.op_type}]"
        lines = [header, "-" * len(header)]
        lines.append(f"Output Signature : {self.output.dtype.value} | {self.output.shape.dims}")
        lines.append("Inputs           :")
        for idx, var in enumerate(self.inputs):
            lines.append(f"  [{idx}] {var!r}")
        if self.attrs:
            lines.append("Attributes       :")
            for k, v in self.attrs.items():
                lines.append(f"  {k:<14} : {v}")
        return "\n".join(lines)

    def __repr__(self):
        return f"[{self.output.dtype.value}|{self.output.shape.dims}] {self.op_type}({self.name or self.uid})"
