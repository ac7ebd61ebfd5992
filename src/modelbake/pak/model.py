"""Immutable model records registered in a pak.

Buffers are stored little-endian. Matrices are 16 floats in column-major
order, the layout glTF uses and the renderer uploads unchanged.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

__all__ = [
    "IndexType",
    "Mat4",
    "Sphere",
    "Mesh",
    "Model",
    "ModelId",
    "VERTEX_STRIDE",
    "SKINNED_VERTEX_STRIDE",
    "IDENTITY",
]

Mat4 = Tuple[float, ...]

IDENTITY: Mat4 = (
    1.0, 0.0, 0.0, 0.0,
    0.0, 1.0, 0.0, 0.0,
    0.0, 0.0, 1.0, 0.0,
    0.0, 0.0, 0.0, 1.0,
)  # fmt: skip

# position (3 x f32) + texcoord (2 x f32)
VERTEX_STRIDE = 20
# + joints (4 x u32) + weights (4 x f32)
SKINNED_VERTEX_STRIDE = 52


class IndexType(Enum):
    U16 = 0
    U32 = 1

    @property
    def dtype(self) -> np.dtype:
        return np.dtype("<u2") if self is IndexType.U16 else np.dtype("<u4")

    @property
    def size(self) -> int:
        return self.dtype.itemsize


@dataclass(frozen=True, slots=True)
class ModelId:
    value: int

    def __int__(self) -> int:
        return self.value


@dataclass(frozen=True, slots=True)
class Sphere:
    center: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    radius: float = 0.0

    def contains(self, point: Sequence[float], tolerance: float = 1e-5) -> bool:
        return math.dist(self.center, point) <= self.radius + tolerance


@dataclass(frozen=True, slots=True)
class Mesh:
    name: Optional[str]
    index_range: range
    vertex_count: int
    vertex_offset: int
    bounds: Sphere
    transform: Optional[Mat4] = None
    skin: Optional[Dict[str, Mat4]] = None

    @property
    def index_count(self) -> int:
        return len(self.index_range)

    @property
    def stride(self) -> int:
        return SKINNED_VERTEX_STRIDE if self.skin is not None else VERTEX_STRIDE


@dataclass(frozen=True, slots=True)
class Model:
    meshes: Tuple[Mesh, ...]
    index_type: IndexType
    index_buffer: bytes
    vertex_buffer: bytes
    write_mask: bytes = field(repr=False)

    @property
    def index_count(self) -> int:
        return len(self.index_buffer) // self.index_type.size

    @property
    def vertex_count(self) -> int:
        return sum(m.vertex_count for m in self.meshes)

    def vertex_byte_offset(self, mesh_index: int) -> int:
        """Byte position of a mesh's first vertex record in ``vertex_buffer``.

        Skinned and unskinned meshes share the vertex buffer with different
        strides, so the offset is the sum of the preceding meshes' records.
        """
        return sum(
            m.vertex_count * m.stride for m in self.meshes[:mesh_index]
        )

    def indices(self) -> np.ndarray:
        return np.frombuffer(self.index_buffer, dtype=self.index_type.dtype)

    def mesh_indices(self, mesh_index: int) -> np.ndarray:
        r = self.meshes[mesh_index].index_range
        return self.indices()[r.start : r.stop]

    def write_bits(self) -> np.ndarray:
        from ..bake.write_mask import decode_write_mask

        return decode_write_mask(self.write_mask, self.index_count)
