"""
Binary glTF (GLB) container writer.

Packs float sequences into a single binary buffer, one bufferView and
accessor per sequence, and frames the JSON document plus buffer as a
GLB 2.0 file.
"""

import json
import struct
from typing import Any, Dict, List

import numpy as np

GLB_MAGIC = 0x46546C67  # "glTF"
GLB_VERSION = 2
CHUNK_JSON = 0x4E4F534A  # "JSON"
CHUNK_BIN = 0x004E4942  # "BIN\0"

GL_FLOAT = 5126

ACCESSOR_TYPES = {1: "SCALAR", 2: "VEC2", 3: "VEC3", 4: "VEC4"}


def _pad(data: bytes, fill: bytes, alignment: int = 4) -> bytes:
    return data + fill * ((alignment - len(data) % alignment) % alignment)


class GlbContainer:
    """
    Accumulates accessors over one binary buffer.

    Every append_sequence call creates a fresh accessor, even for
    identical data.
    """

    def __init__(self):
        self._buffer = bytearray()
        self.buffer_views: List[Dict[str, Any]] = []
        self.accessors: List[Dict[str, Any]] = []

    def append_sequence(self, values) -> int:
        """
        Append a float sequence and return its accessor index.

        Args:
            values: Array shaped (n,) for SCALAR or (n, k) for VECk

        Returns:
            Index of the new accessor
        """
        arr = np.asarray(values, dtype="<f4")
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2 or arr.shape[1] not in ACCESSOR_TYPES:
            raise ValueError(f"Unsupported sequence shape: {arr.shape}")
        if arr.shape[0] == 0:
            raise ValueError("Cannot append an empty sequence")

        raw = arr.tobytes()
        offset = len(self._buffer)
        self._buffer.extend(_pad(raw, b"\x00"))

        view_index = len(self.buffer_views)
        view: Dict[str, Any] = {"buffer": 0, "byteLength": len(raw)}
        if offset > 0:
            view["byteOffset"] = offset
        self.buffer_views.append(view)

        accessor_index = len(self.accessors)
        self.accessors.append({
            "bufferView": view_index,
            "componentType": GL_FLOAT,
            "count": int(arr.shape[0]),
            "type": ACCESSOR_TYPES[arr.shape[1]],
            "min": [float(v) for v in arr.min(axis=0)],
            "max": [float(v) for v in arr.max(axis=0)],
        })
        return accessor_index

    def to_glb(self, document: Dict[str, Any]) -> bytes:
        """
        Pack ``document`` with this container's buffer into GLB bytes.

        The document's buffers, bufferViews and accessors entries are
        replaced by the container's own.
        """
        gltf = dict(document)
        bin_chunk = bytes(self._buffer)
        if bin_chunk:
            gltf["buffers"] = [{"byteLength": len(bin_chunk)}]
            gltf["bufferViews"] = self.buffer_views
            gltf["accessors"] = self.accessors

        json_chunk = _pad(
            json.dumps(gltf, separators=(",", ":"), ensure_ascii=False).encode("utf-8"),
            b" ",
        )

        total_length = 12 + 8 + len(json_chunk)
        if bin_chunk:
            total_length += 8 + len(bin_chunk)

        parts = [
            struct.pack("<III", GLB_MAGIC, GLB_VERSION, total_length),
            struct.pack("<II", len(json_chunk), CHUNK_JSON),
            json_chunk,
        ]
        if bin_chunk:
            parts.append(struct.pack("<II", len(bin_chunk), CHUNK_BIN))
            parts.append(bin_chunk)
        return b"".join(parts)


def read_glb(data: bytes) -> Dict[str, Any]:
    """
    Parse GLB bytes into the JSON document plus raw binary chunk.

    Returns:
        {"json": document, "bin": bytes}
    """
    magic, version, length = struct.unpack_from("<III", data, 0)
    if magic != GLB_MAGIC or version != GLB_VERSION:
        raise ValueError("Not a GLB 2.0 file")
    if length != len(data):
        raise ValueError(f"GLB length mismatch: header {length}, actual {len(data)}")

    result: Dict[str, Any] = {"json": None, "bin": b""}
    offset = 12
    while offset < length:
        chunk_length, chunk_type = struct.unpack_from("<II", data, offset)
        chunk = data[offset + 8: offset + 8 + chunk_length]
        if chunk_type == CHUNK_JSON:
            result["json"] = json.loads(chunk.decode("utf-8"))
        elif chunk_type == CHUNK_BIN:
            result["bin"] = chunk
        offset += 8 + chunk_length
    return result


def read_accessor(glb: Dict[str, Any], accessor_index: int) -> np.ndarray:
    """Decode a float accessor from a parsed GLB into an array."""
    document = glb["json"]
    accessor = document["accessors"][accessor_index]
    view = document["bufferViews"][accessor["bufferView"]]
    start = view.get("byteOffset", 0)
    raw = glb["bin"][start: start + view["byteLength"]]
    arr = np.frombuffer(raw, dtype="<f4")
    width = {v: k for k, v in ACCESSOR_TYPES.items()}[accessor["type"]]
    if width == 1:
        return arr.copy()
    return arr.reshape(-1, width).copy()
