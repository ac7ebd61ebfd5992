"""Scene fixtures for modelbake tests.

Two flavours:
- in-memory ``SceneNode`` / ``PrimitiveData`` builders for flattener tests
- ``GlbBuilder`` writing real binary glTF files with pygltflib, for tests
  that go through the scene reader

Usage:
    from gltf_helper import GlbBuilder, quad, mesh_node
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import numpy as np
from pygltflib import (
    ARRAY_BUFFER,
    ELEMENT_ARRAY_BUFFER,
    FLOAT,
    GLTF2,
    UNSIGNED_INT,
    UNSIGNED_SHORT,
    Accessor,
    Attributes,
    Buffer,
    BufferView,
    Mesh,
    Node,
    Primitive,
    Scene,
    Skin,
)

from modelbake.scene.reader import (
    PrimitiveData,
    SceneDocument,
    SceneNode,
    SkinData,
    Topology,
)

QUAD_POSITIONS = np.array(
    [[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=np.float32
)
QUAD_TEXCOORDS = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=np.float32)
QUAD_INDICES = np.array([0, 1, 2, 0, 2, 3], dtype=np.uint32)


def quad(
    offset: Sequence[float] = (0.0, 0.0, 0.0),
    *,
    skinned: bool = False,
    mode: Topology = Topology.TRIANGLES,
) -> PrimitiveData:
    prim = PrimitiveData(
        mode=mode,
        positions=QUAD_POSITIONS + np.asarray(offset, dtype=np.float32),
        indices=QUAD_INDICES.copy(),
        texcoords=QUAD_TEXCOORDS.copy(),
    )
    if skinned:
        prim.joints = np.array(
            [[0, 1, 2, 0]] * len(QUAD_POSITIONS), dtype=np.uint16
        )
        prim.weights = np.array(
            [[0.5, 0.25, 0.25, 0.0]] * len(QUAD_POSITIONS), dtype=np.float32
        )
    return prim


def joint_skin(names: Sequence[Optional[str]], matrices: Optional[int] = None) -> SkinData:
    count = len(names) if matrices is None else matrices
    ibm = np.tile(np.eye(4, dtype=np.float32).reshape(1, 16), (count, 1))
    ibm[:, 12] = np.arange(count, dtype=np.float32)  # x translation per joint
    return SkinData(joint_names=list(names), inverse_bind_matrices=ibm)


def mesh_node(
    index: int,
    mesh_name: Optional[str],
    primitives: Sequence[PrimitiveData],
    *,
    skin: Optional[SkinData] = None,
    translation: Optional[Sequence[float]] = None,
) -> SceneNode:
    return SceneNode(
        index=index,
        name=f"node_{index}",
        mesh_index=index,
        mesh_name=mesh_name,
        primitives=list(primitives),
        skin=skin,
        translation=None if translation is None else list(translation),
    )


def document(*nodes: SceneNode) -> SceneDocument:
    return SceneDocument(source=None, nodes=list(nodes))


class GlbBuilder:
    """Accumulates accessors into one binary chunk and saves a .glb file."""

    def __init__(self) -> None:
        self.gltf = GLTF2()
        self.gltf.buffers.append(Buffer(byteLength=0))
        self.blob = bytearray()

    def accessor(
        self,
        array: np.ndarray,
        component_type: int,
        type_: str,
        target: Optional[int] = None,
    ) -> int:
        while len(self.blob) % 4:
            self.blob += b"\x00"
        raw = np.ascontiguousarray(array).tobytes()
        self.gltf.bufferViews.append(
            BufferView(
                buffer=0,
                byteOffset=len(self.blob),
                byteLength=len(raw),
                target=target,
            )
        )
        self.blob += raw
        count = array.shape[0] if type_ != "SCALAR" else array.size
        acc = Accessor(
            bufferView=len(self.gltf.bufferViews) - 1,
            componentType=component_type,
            count=int(count),
            type=type_,
        )
        if type_ == "VEC3" and component_type == FLOAT:
            acc.min = [float(v) for v in array.min(axis=0)]
            acc.max = [float(v) for v in array.max(axis=0)]
        self.gltf.accessors.append(acc)
        return len(self.gltf.accessors) - 1

    def primitive(self, prim: PrimitiveData, *, wide_indices: bool = False) -> Primitive:
        attrs = Attributes(
            POSITION=self.accessor(
                prim.positions.astype(np.float32), FLOAT, "VEC3", ARRAY_BUFFER
            )
        )
        if prim.texcoords is not None:
            attrs.TEXCOORD_0 = self.accessor(
                prim.texcoords.astype(np.float32), FLOAT, "VEC2", ARRAY_BUFFER
            )
        if prim.joints is not None:
            attrs.JOINTS_0 = self.accessor(
                prim.joints.astype(np.uint16), UNSIGNED_SHORT, "VEC4", ARRAY_BUFFER
            )
        if prim.weights is not None:
            attrs.WEIGHTS_0 = self.accessor(
                prim.weights.astype(np.float32), FLOAT, "VEC4", ARRAY_BUFFER
            )
        indices = None
        if prim.indices is not None:
            if wide_indices:
                indices = self.accessor(
                    prim.indices.astype(np.uint32), UNSIGNED_INT, "SCALAR",
                    ELEMENT_ARRAY_BUFFER,
                )
            else:
                indices = self.accessor(
                    prim.indices.astype(np.uint16), UNSIGNED_SHORT, "SCALAR",
                    ELEMENT_ARRAY_BUFFER,
                )
        return Primitive(attributes=attrs, indices=indices, mode=int(prim.mode))

    def mesh(self, name: Optional[str], primitives: Sequence[PrimitiveData]) -> int:
        self.gltf.meshes.append(
            Mesh(name=name, primitives=[self.primitive(p) for p in primitives])
        )
        return len(self.gltf.meshes) - 1

    def node(self, **kwargs) -> int:
        self.gltf.nodes.append(Node(**kwargs))
        return len(self.gltf.nodes) - 1

    def skin(self, skin: SkinData) -> int:
        joints = [self.node(name=name) for name in skin.joint_names]
        ibm = None
        if skin.inverse_bind_matrices is not None:
            ibm = self.accessor(
                skin.inverse_bind_matrices.astype(np.float32), FLOAT, "MAT4"
            )
        self.gltf.skins.append(Skin(joints=joints, inverseBindMatrices=ibm))
        return len(self.gltf.skins) - 1

    def add(self, node: SceneNode) -> int:
        """Add a mesh node mirroring an in-memory ``SceneNode``."""
        mesh = self.mesh(node.mesh_name, node.primitives)
        skin = self.skin(node.skin) if node.skin is not None else None
        return self.node(
            name=node.name,
            mesh=mesh,
            skin=skin,
            translation=node.translation,
        )

    def save(self, path: Path) -> Path:
        roots = [
            i for i, n in enumerate(self.gltf.nodes) if n.mesh is not None
        ]
        self.gltf.scenes = [Scene(nodes=roots)]
        self.gltf.scene = 0
        self.gltf.buffers[0].byteLength = len(self.blob)
        self.gltf.set_binary_blob(bytes(self.blob))
        path.parent.mkdir(parents=True, exist_ok=True)
        self.gltf.save(str(path))
        return path


def write_glb(path: Path, *nodes: SceneNode) -> Path:
    builder = GlbBuilder()
    for node in nodes:
        builder.add(node)
    return builder.save(path)
