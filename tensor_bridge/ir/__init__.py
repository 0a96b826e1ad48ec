from .shape import Shape
from .dtypes import DType, Backend
from .buffer import BufferDescriptor, StorageType
from .node import Function, Variable, VariableKind
from .graph import topological_sort, get_inputs, get_leaves

__all__ = [
    "Shape",
    "DType",
    "Backend",
    "BufferDescriptor",
    "StorageType",
    "Function",
    "Variable",
    "VariableKind",
    "topological_sort",
    "get_inputs",
    "get_leaves",
]
