"""
Model persistence.

A saved model is a safetensors container: one tensor per parameter or
constant (keyed "var<id>") plus a format marker tensor, with the graph
structure stored as JSON under the header's __metadata__.
"""

import json
import os
import struct
from typing import Any, Dict, Optional, Union

import numpy as np
from safetensors import SafetensorError, safe_open
from safetensors.numpy import load as st_load
from safetensors.numpy import save as st_save
from safetensors.numpy import save_file as st_save_file

from .config import PERSISTENCE_FORMAT_VERSION
from .errors import PersistenceFormatError
from .ir.graph import get_leaves, graph_from_dict, graph_to_json
from .ir.buffer import StorageType
from .ir.node import Function, VariableKind

FORMAT_KEY = "__tensor_bridge_format__"
GRAPH_KEY = "graph"

PathLike = Union[str, os.PathLike]


def _tensor_key(var_id: int) -> str:
    return f"var{var_id}"


def _pack(func: Function):
    tensors: Dict[str, np.ndarray] = {
        FORMAT_KEY: np.array([PERSISTENCE_FORMAT_VERSION], dtype=np.int32)
    }
    leaves = get_leaves(func)
    for var_id, var in enumerate(leaves):
        if var.storage_type == StorageType.PERSISTENT:
            tensors[_tensor_key(var_id)] = np.ascontiguousarray(var.value)
    metadata = {GRAPH_KEY: graph_to_json(func)}
    return tensors, metadata


def save(func: Function, path: Optional[PathLike] = None) -> Optional[bytes]:
    """Returns the serialized model, or writes it to `path` when given."""
    tensors, metadata = _pack(func)
    if path is None:
        return st_save(tensors, metadata=metadata)
    st_save_file(tensors, os.fspath(path), metadata=metadata)
    return None


def _read_metadata(blob: bytes) -> Dict[str, str]:
    # safetensors layout: u64 little-endian header length, then a JSON header
    if len(blob) < 8:
        raise PersistenceFormatError("Saved model is truncated")
    (header_len,) = struct.unpack("<Q", blob[:8])
    if header_len > len(blob) - 8:
        raise PersistenceFormatError("Saved model header is truncated")
    try:
        header = json.loads(blob[8 : 8 + header_len])
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PersistenceFormatError(f"Saved model header is not valid JSON: {e}") from e
    if not isinstance(header, dict):
        raise PersistenceFormatError("Saved model header is not a JSON object")
    return header.get("__metadata__") or {}


def _unpack(tensors: Dict[str, np.ndarray], metadata: Dict[str, str]) -> Function:
    marker = tensors.get(FORMAT_KEY)
    if marker is None or GRAPH_KEY not in metadata:
        raise PersistenceFormatError("Data is not a saved tensor_bridge model")
    if marker.size != 1:
        raise PersistenceFormatError("Saved model format marker is malformed")
    version = int(marker.reshape(-1)[0])
    if version != PERSISTENCE_FORMAT_VERSION:
        raise PersistenceFormatError(
            f"Unsupported model format version {version}, expected {PERSISTENCE_FORMAT_VERSION}"
        )

    try:
        graph = json.loads(metadata[GRAPH_KEY])
        values: Dict[int, Any] = {}
        for entry in graph["variables"]:
            if entry["kind"] != VariableKind.INPUT.value:
                values[entry["id"]] = tensors[_tensor_key(entry["id"])]
        return graph_from_dict(graph, values)
    except (KeyError, ValueError, TypeError, NotImplementedError) as e:
        raise PersistenceFormatError(f"Saved model graph is malformed: {e!r}") from e


def load(source: Union[bytes, bytearray, memoryview, PathLike], device=None) -> Function:
    """
    Rebuilds a function from bytes produced by `save(func)` or from a file
    written by `save(func, path)`. Parameter data is loaded onto the host;
    `device` is only checked for availability.
    """
    if device is not None:
        device.check_available()

    if isinstance(source, (bytes, bytearray, memoryview)):
        blob = bytes(source)
        metadata = _read_metadata(blob)
        try:
            tensors = st_load(blob)
        except SafetensorError as e:
            raise PersistenceFormatError(f"Saved model is corrupt: {e}") from e
        return _unpack(tensors, metadata)

    path = os.fspath(source)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Saved model not found: {path}")
    try:
        with safe_open(path, framework="np") as f:
            metadata = f.metadata() or {}
            tensors = {k: f.get_tensor(k) for k in f.keys()}
    except SafetensorError as e:
        raise PersistenceFormatError(f"Saved model {path} is corrupt: {e}") from e
    return _unpack(tensors, metadata)
