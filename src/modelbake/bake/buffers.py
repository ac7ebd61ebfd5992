"""Growable byte arenas for flattened index and vertex data.

Each arena appends whole records of a fixed numpy dtype, so the byte layout
of the final buffer is exactly the concatenation of the appended records.
"""

from __future__ import annotations

import numpy as np

from ..pak.errors import E_SIZE, BinaryFormatError
from ..pak.model import IndexType, SKINNED_VERTEX_STRIDE, VERTEX_STRIDE

__all__ = [
    "VERTEX_DTYPE",
    "SKINNED_VERTEX_DTYPE",
    "vertex_dtype",
    "IndexArena",
    "VertexArena",
]

VERTEX_DTYPE = np.dtype([("position", "<f4", 3), ("texcoord", "<f4", 2)])
SKINNED_VERTEX_DTYPE = np.dtype(
    [
        ("position", "<f4", 3),
        ("texcoord", "<f4", 2),
        ("joints", "<u4", 4),
        ("weights", "<f4", 4),
    ]
)


def _check_size(label: str, dtype: np.dtype, expected: int) -> np.dtype:
    if dtype.itemsize != expected:
        raise BinaryFormatError(
            code=E_SIZE,
            message=f"{label} size mismatch: {dtype.itemsize} != {expected}",
        )
    return dtype


_check_size("Vertex", VERTEX_DTYPE, VERTEX_STRIDE)
_check_size("SkinnedVertex", SKINNED_VERTEX_DTYPE, SKINNED_VERTEX_STRIDE)


def vertex_dtype(skinned: bool) -> np.dtype:
    return SKINNED_VERTEX_DTYPE if skinned else VERTEX_DTYPE


class IndexArena:
    """Index buffer narrowed to a single model-wide width.

    The logical (u32) values are kept alongside for the write-mask compiler.
    """

    def __init__(self, index_type: IndexType):
        self.index_type = index_type
        self._data = bytearray()
        self._logical: list[np.ndarray] = []
        self.count = 0

    def append(self, indices: np.ndarray) -> range:
        values = np.asarray(indices, dtype=np.uint32).reshape(-1)
        if values.size and self.index_type is IndexType.U16:
            if int(values.max()) > 0xFFFF:
                raise OverflowError(
                    "Index value does not fit the 16-bit index buffer"
                )
        start = self.count
        self._data += values.astype(self.index_type.dtype).tobytes()
        self._logical.append(values)
        self.count += int(values.size)
        return range(start, self.count)

    def logical(self) -> np.ndarray:
        if not self._logical:
            return np.zeros(0, dtype=np.uint32)
        return np.concatenate(self._logical)

    def take(self) -> bytes:
        return bytes(self._data)


class VertexArena:
    """Interleaved vertex records; strides may differ between appends."""

    def __init__(self) -> None:
        self._data = bytearray()
        self.count = 0

    @property
    def byte_length(self) -> int:
        return len(self._data)

    def append(self, records: np.ndarray) -> int:
        if records.dtype not in (VERTEX_DTYPE, SKINNED_VERTEX_DTYPE):
            raise TypeError(f"Unsupported vertex record layout {records.dtype}")
        first = self.count
        self._data += records.tobytes()
        self.count += len(records)
        return first

    def take(self) -> bytes:
        return bytes(self._data)
