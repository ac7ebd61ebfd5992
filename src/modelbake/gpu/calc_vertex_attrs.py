"""Vertex attribute compute pass contract.

The renderer recomputes per-vertex attributes (normals, tangents) on the GPU
with one invocation per index-stream entry. Every invocation reads its
triangle and accumulates a contribution; only the invocation whose write-mask
bit is set stores the accumulated value for its vertex, so the destination
buffer needs no atomics.

This module records the binding table, the push-constant block and the
pipeline variants the baked buffers must satisfy, and provides a numpy
emulation of the dispatch for checking a model against that contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple
import struct

import numpy as np

from ..bake.buffers import vertex_dtype
from ..bake.write_mask import decode_write_mask
from ..pak.model import IndexType, Mesh, Model

__all__ = [
    "BufferAccess",
    "Binding",
    "PushConstantRange",
    "CALC_VERTEX_ATTRS_BINDINGS",
    "CALC_VERTEX_ATTRS_PUSH_CONSTANTS",
    "PUSH_CONSTANTS_SIZE",
    "CalcVertexAttrsMode",
    "push_constants",
    "DispatchResult",
    "dispatch_reference",
    "dispatch_mesh",
    "mesh_positions",
    "face_normal_contributions",
]


class BufferAccess(Enum):
    READ_ONLY = "read_only"
    READ_WRITE = "read_write"


@dataclass(frozen=True, slots=True)
class Binding:
    binding: int
    name: str
    access: BufferAccess


@dataclass(frozen=True, slots=True)
class PushConstantRange:
    stage: str
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


CALC_VERTEX_ATTRS_BINDINGS: Tuple[Binding, ...] = (
    Binding(0, "index_buffer", BufferAccess.READ_ONLY),
    Binding(1, "src_vertices", BufferAccess.READ_ONLY),
    Binding(2, "dst_vertices", BufferAccess.READ_WRITE),
    Binding(3, "write_mask", BufferAccess.READ_ONLY),
)

# index_count: u32, vertex_count: u32
PUSH_CONSTANTS_SIZE = 8
CALC_VERTEX_ATTRS_PUSH_CONSTANTS: Tuple[PushConstantRange, ...] = (
    PushConstantRange("compute", 0, PUSH_CONSTANTS_SIZE),
)


@dataclass(frozen=True, slots=True)
class CalcVertexAttrsMode:
    """Pipeline variant key: index width and vertex layout."""

    index_type: IndexType
    skin: bool

    @classmethod
    def for_mesh(cls, model: Model, mesh: Mesh) -> "CalcVertexAttrsMode":
        return cls(model.index_type, mesh.skin is not None)

    @property
    def shader_name(self) -> str:
        suffix = "_skin" if self.skin else ""
        return f"calc_vertex_attrs_{self.index_type.name.lower()}{suffix}"


CalcVertexAttrsMode.U16 = CalcVertexAttrsMode(IndexType.U16, False)  # type: ignore[attr-defined]
CalcVertexAttrsMode.U16_SKIN = CalcVertexAttrsMode(IndexType.U16, True)  # type: ignore[attr-defined]
CalcVertexAttrsMode.U32 = CalcVertexAttrsMode(IndexType.U32, False)  # type: ignore[attr-defined]
CalcVertexAttrsMode.U32_SKIN = CalcVertexAttrsMode(IndexType.U32, True)  # type: ignore[attr-defined]


def push_constants(mesh: Mesh) -> bytes:
    out = struct.pack("<II", mesh.index_count, mesh.vertex_count)
    assert len(out) == PUSH_CONSTANTS_SIZE
    return out


@dataclass(slots=True)
class DispatchResult:
    accumulated: np.ndarray
    destination: np.ndarray
    store_counts: np.ndarray


def dispatch_reference(
    indices: np.ndarray,
    write_mask: bytes,
    contributions: np.ndarray,
    first_entry: int = 0,
) -> DispatchResult:
    """Emulate one dispatch over an index stream.

    ``contributions[i]`` is what invocation ``i`` accumulates for the vertex
    ``indices[i]``. Accumulation runs over every invocation; only designated
    writers store into the destination. ``store_counts[v]`` counts the
    stores into slot ``v``.

    ``indices`` may be one mesh's slice of the model index stream; its mask
    bits then start at ``first_entry``, the mesh's ``index_range.start``.
    """
    indices = np.asarray(indices, dtype=np.int64)
    contributions = np.asarray(contributions, dtype=np.float64)
    if contributions.shape[0] != len(indices):
        raise ValueError(
            f"{contributions.shape[0]} contributions for {len(indices)} invocations"
        )
    slots = int(indices.max()) + 1 if len(indices) else 0
    shape = (slots,) + contributions.shape[1:]
    accumulated = np.zeros(shape, dtype=np.float64)
    np.add.at(accumulated, indices, contributions)

    writers = decode_write_mask(write_mask, first_entry + len(indices))[
        first_entry:
    ]
    destination = np.zeros(shape, dtype=np.float64)
    written = indices[writers]
    destination[written] = accumulated[written]
    store_counts = np.bincount(written, minlength=slots)
    return DispatchResult(
        accumulated=accumulated,
        destination=destination,
        store_counts=store_counts,
    )


def dispatch_mesh(
    model: Model, mesh_index: int, contributions: np.ndarray
) -> DispatchResult:
    mesh = model.meshes[mesh_index]
    return dispatch_reference(
        model.mesh_indices(mesh_index),
        model.write_mask,
        contributions,
        first_entry=mesh.index_range.start,
    )


def mesh_positions(model: Model, mesh_index: int) -> np.ndarray:
    mesh = model.meshes[mesh_index]
    records = np.frombuffer(
        model.vertex_buffer,
        dtype=vertex_dtype(mesh.skin is not None),
        count=mesh.vertex_count,
        offset=model.vertex_byte_offset(mesh_index),
    )
    return records["position"].astype(np.float64)


def face_normal_contributions(
    positions: np.ndarray, indices: np.ndarray
) -> np.ndarray:
    """Area-weighted face normal of the triangle each index entry belongs to."""
    tris = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    a, b, c = (positions[tris[:, k]] for k in range(3))
    normals = np.cross(b - a, c - a)
    return np.repeat(normals, 3, axis=0)
