"""Mesh flattening: scene nodes -> model-wide index and vertex buffers.

Two passes over the selected nodes. The first is read-only: it checks every
primitive for a triangle-list topology and the streams it needs, and picks
the model index width. The second emits bytes. A bake therefore fails before
any buffer is filled when the scene is unusable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from ..logging import get_logger
from ..pak.errors import (
    E_PRIMITIVE,
    E_TOPOLOGY,
    MalformedPrimitiveError,
    TopologyError,
    missing_attribute,
)
from ..pak.model import IndexType, Mesh
from ..reporting import get_reporter
from ..scene.reader import PrimitiveData, SceneDocument, SceneNode, Topology
from .bounds import sphere_from_points
from .buffers import IndexArena, VertexArena, vertex_dtype
from .index_width import select_index_type
from .skin import bake_skin, node_transform

__all__ = [
    "MAX_MESHES",
    "MeshFilter",
    "FlattenResult",
    "select_nodes",
    "flatten_meshes",
]

MAX_MESHES = 0xFFFF

# source mesh name -> optional renamed identifier
MeshFilter = Mapping[str, Optional[str]]


@dataclass(slots=True)
class FlattenResult:
    meshes: List[Mesh]
    index_type: IndexType
    index_buffer: bytes
    vertex_buffer: bytes
    # flattened index stream as u32, before narrowing
    logical_indices: np.ndarray
    dropped_meshes: int = 0
    stats: Dict[str, int] = field(default_factory=dict)


def select_nodes(
    doc: SceneDocument, mesh_filter: Optional[MeshFilter] = None
) -> List[SceneNode]:
    """Mesh nodes in document order, restricted to filtered mesh names.

    Without a filter every mesh node is selected, named or not. With a
    non-empty filter unnamed meshes never match.
    """
    nodes = doc.mesh_nodes()
    if not mesh_filter:
        return nodes
    return [
        n
        for n in nodes
        if n.mesh_name is not None and n.mesh_name in mesh_filter
    ]


def _context(node: SceneNode, prim_idx: int) -> Dict[str, Any]:
    return {"node": node.name, "mesh": node.mesh_name, "primitive": prim_idx}


def _check_primitive(
    prim: PrimitiveData, skinned: bool, ctx: Dict[str, Any]
) -> None:
    if prim.mode != Topology.TRIANGLES:
        raise TopologyError(
            code=E_TOPOLOGY,
            message=f"Primitive topology {Topology(prim.mode).name} is not a triangle list",
            context=ctx,
        )
    required = {
        "POSITION": prim.positions,
        "indices": prim.indices,
        "TEXCOORD_0": prim.texcoords,
    }
    if skinned:
        required["JOINTS_0"] = prim.joints
        required["WEIGHTS_0"] = prim.weights
    for attr, stream in required.items():
        if stream is None:
            raise missing_attribute(attr, ctx)

    count = len(prim.positions)
    for attr, stream in required.items():
        if attr != "indices" and len(stream) != count:
            raise MalformedPrimitiveError(
                code=E_PRIMITIVE,
                message=f"{attr} has {len(stream)} elements, POSITION has {count}",
                context=ctx,
            )
    if len(prim.indices) % 3:
        raise MalformedPrimitiveError(
            code=E_PRIMITIVE,
            message=f"Triangle list has {len(prim.indices)} indices",
            context=ctx,
        )
    if len(prim.indices) and int(prim.indices.max()) >= count:
        raise MalformedPrimitiveError(
            code=E_PRIMITIVE,
            message=f"Index {int(prim.indices.max())} out of range for {count} vertices",
            context=ctx,
        )


def _vertex_records(prim: PrimitiveData, skinned: bool) -> np.ndarray:
    records = np.zeros(len(prim.positions), dtype=vertex_dtype(skinned))
    records["position"] = prim.positions
    records["texcoord"] = prim.texcoords
    if skinned:
        records["joints"] = prim.joints
        records["weights"] = prim.weights
    return records


def flatten_meshes(
    doc: SceneDocument, mesh_filter: Optional[MeshFilter] = None
) -> FlattenResult:
    logger = get_logger()
    rep = get_reporter()
    nodes = select_nodes(doc, mesh_filter)

    dropped = 0
    if len(nodes) > MAX_MESHES:
        dropped = len(nodes) - MAX_MESHES
        nodes = nodes[:MAX_MESHES]
        logger.warning(
            "Maximum number of meshes supported per model (%d) reached; "
            "%d others have been skipped",
            MAX_MESHES,
            dropped,
        )

    mesh_vertex_counts = []
    skins = []
    for node in nodes:
        skinned = node.skin is not None
        for prim_idx, prim in enumerate(node.primitives):
            _check_primitive(prim, skinned, _context(node, prim_idx))
        skins.append(bake_skin(node.skin, node=node.name) if skinned else None)
        mesh_vertex_counts.append(sum(len(p.positions) for p in node.primitives))
    index_type = select_index_type(mesh_vertex_counts)

    indices = IndexArena(index_type)
    vertices = VertexArena()
    meshes: List[Mesh] = []

    rep.start_task("bake.flatten", "Flatten meshes", total=len(nodes))
    for node, skin in zip(nodes, skins):
        skinned = skin is not None
        vertex_offset = vertices.count
        index_start = indices.count
        base_vertex = 0
        points = []
        for prim in node.primitives:
            # mesh-relative: offset by the vertices already emitted for this mesh
            indices.append(prim.indices.astype(np.uint32) + np.uint32(base_vertex))
            vertices.append(_vertex_records(prim, skinned))
            points.append(prim.positions)
            base_vertex += len(prim.positions)

        dst_name = mesh_filter.get(node.mesh_name) if mesh_filter else None
        meshes.append(
            Mesh(
                name=dst_name,
                index_range=range(index_start, indices.count),
                vertex_count=base_vertex,
                vertex_offset=vertex_offset,
                bounds=sphere_from_points(
                    np.concatenate(points) if points else np.zeros((0, 3))
                ),
                transform=node_transform(node),
                skin=skin,
            )
        )
        rep.advance(
            "bake.flatten",
            current_item=dst_name or node.mesh_name or f"node#{node.index}",
        )
    rep.end_task(
        "bake.flatten",
        meshes=len(meshes),
        indices=indices.count,
        vertices=vertices.count,
    )

    return FlattenResult(
        meshes=meshes,
        index_type=index_type,
        index_buffer=indices.take(),
        vertex_buffer=vertices.take(),
        logical_indices=indices.logical(),
        dropped_meshes=dropped,
        stats={
            "meshes": len(meshes),
            "indices": indices.count,
            "vertices": vertices.count,
            "vertex_bytes": vertices.byte_length,
        },
    )
