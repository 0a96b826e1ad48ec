import json
from enum import Enum
from typing import Any, Dict, List, Set

import numpy as np

from .dtypes import DType
from .node import Function, Variable, VariableKind
from .shape import Shape


def topological_sort(root: Function) -> List[Function]:
    """
    Returns a linear execution order for the functions feeding 'root'.
    """
    visited: Set[Function] = set()
    order: List[Function] = []

    def _visit(func: Function):
        if func in visited:
            return
        visited.add(func)
        for var in func.inputs:
            if var.owner is not None:
                _visit(var.owner)
        order.append(func)

    _visit(root)
    return order


def get_leaves(root: Function) -> List[Variable]:
    """All leaf variables (inputs, parameters, constants) in first-use order."""
    seen: Set[Variable] = set()
    leaves: List[Variable] = []
    for func in topological_sort(root):
        for var in func.inputs:
            if var.is_leaf and var not in seen:
                seen.add(var)
                leaves.append(var)
    return leaves


def get_inputs(root: Function) -> List[Variable]:
    """Returns all INPUT leaves that must be bound to evaluate this graph."""
    return [v for v in get_leaves(root) if v.kind == VariableKind.INPUT]


# --- Serialization Helpers ---


class GraphEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, np.floating):
            return float(o)
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, Shape):
            return list(o.dims)
        if isinstance(o, Enum):
            return o.value
        return super().default(o)


def graph_to_dict(root: Function) -> Dict[str, Any]:
    """
    Flat description of the graph. Leaf variables take ids 0..L-1 and the
    output of the j-th function (topological order) takes id L+j; the last
    function is the root. Parameter and constant data is not included,
    callers store it separately keyed by variable id.
    """
    leaves = get_leaves(root)
    functions = topological_sort(root)
    var_to_id: Dict[Variable, int] = {v: i for i, v in enumerate(leaves)}
    for j, func in enumerate(functions):
        var_to_id[func.output] = len(leaves) + j

    return {
        "variables": [
            {
                "id": var_to_id[v],
                "uid": v.uid,
                "kind": v.kind.value,
                "name": v.name,
                "shape": list(v.shape.dims),
                "dtype": v.dtype.value,
            }
            for v in leaves
        ],
        "functions": [
            {
                "id": var_to_id[f.output],
                "uid": f.uid,
                "op_type": f.op_type,
                "name": f.name,
                "inputs": [var_to_id[v] for v in f.inputs],
                "attrs": f.attrs,
            }
            for f in functions
        ],
    }


def graph_to_json(root: Function) -> str:
    return json.dumps(graph_to_dict(root), cls=GraphEncoder)


def graph_from_dict(data: Dict[str, Any], values: Dict[int, np.ndarray]) -> Function:
    """
    Rebuilds a graph from graph_to_dict output. `values` maps parameter and
    constant ids to their data. Raises KeyError/ValueError on malformed input.
    """
    by_id: Dict[int, Variable] = {}

    for entry in data["variables"]:
        kind = VariableKind(entry["kind"])
        if kind == VariableKind.OUTPUT:
            raise ValueError(f"Output variable {entry['id']} listed as a leaf")
        value = values[entry["id"]] if kind != VariableKind.INPUT else None
        by_id[entry["id"]] = Variable(
            kind,
            Shape(entry["shape"]),
            DType(entry["dtype"]),
            name=entry["name"],
            uid=entry["uid"],
            value=value,
        )

    if not data["functions"]:
        raise ValueError("Graph contains no functions")

    func = None
    for entry in data["functions"]:
        func = Function(
            entry["op_type"],
            [by_id[i] for i in entry["inputs"]],
            name=entry["name"],
            attrs=entry.get("attrs", {}),
            uid=entry["uid"],
        )
        by_id[entry["id"]] = func.output

    # The last function in topological order is the root
    return func
