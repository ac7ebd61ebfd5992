"""glTF scene reader.

Thin adapter over pygltflib that decodes the node, mesh, primitive and skin
data the model baker consumes into numpy arrays. Missing optional streams are
reported as ``None``; deciding whether a stream is required is left to the
baker.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
from pygltflib import GLTF2

from ..logging import get_logger
from ..pak.errors import E_SCENE_READ, SceneReadError

__all__ = [
    "Topology",
    "PrimitiveData",
    "SkinData",
    "SceneNode",
    "SceneDocument",
    "SceneReader",
    "read_scene",
]

# glTF componentType -> numpy dtype (glTF data is always little-endian)
_COMPONENT_DTYPES = {
    5120: np.dtype("<i1"),
    5121: np.dtype("<u1"),
    5122: np.dtype("<i2"),
    5123: np.dtype("<u2"),
    5125: np.dtype("<u4"),
    5126: np.dtype("<f4"),
}

_TYPE_COMPONENTS = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
    "MAT2": 4,
    "MAT3": 9,
    "MAT4": 16,
}

_NORMALIZE_DIVISORS = {
    np.dtype("<i1"): 127.0,
    np.dtype("<u1"): 255.0,
    np.dtype("<i2"): 32767.0,
    np.dtype("<u2"): 65535.0,
}


class Topology(IntEnum):
    POINTS = 0
    LINES = 1
    LINE_LOOP = 2
    LINE_STRIP = 3
    TRIANGLES = 4
    TRIANGLE_STRIP = 5
    TRIANGLE_FAN = 6


@dataclass(slots=True)
class PrimitiveData:
    mode: Topology = Topology.TRIANGLES
    positions: Optional[np.ndarray] = None  # (N, 3) float32
    indices: Optional[np.ndarray] = None  # (M,) uint32
    texcoords: Optional[np.ndarray] = None  # (N, 2) float32
    joints: Optional[np.ndarray] = None  # (N, 4) uint16
    weights: Optional[np.ndarray] = None  # (N, 4) float32


@dataclass(slots=True)
class SkinData:
    joint_names: List[Optional[str]] = field(default_factory=list)
    # (J, 16) float32, column-major per matrix; None when the skin omits them
    inverse_bind_matrices: Optional[np.ndarray] = None


@dataclass(slots=True)
class SceneNode:
    index: int
    name: Optional[str] = None
    mesh_index: Optional[int] = None
    mesh_name: Optional[str] = None
    primitives: List[PrimitiveData] = field(default_factory=list)
    skin: Optional[SkinData] = None
    translation: Optional[List[float]] = None
    rotation: Optional[List[float]] = None  # quaternion x, y, z, w
    scale: Optional[List[float]] = None
    matrix: Optional[List[float]] = None  # column-major

    @property
    def has_mesh(self) -> bool:
        return self.mesh_index is not None


@dataclass(slots=True)
class SceneDocument:
    source: Optional[Path]
    nodes: List[SceneNode] = field(default_factory=list)

    def mesh_nodes(self) -> List[SceneNode]:
        return [n for n in self.nodes if n.has_mesh]


class SceneReader:
    def __init__(self, path: Path):
        self.path = Path(path)
        try:
            gltf = GLTF2.load(str(self.path))
        except Exception as e:  # pygltflib surfaces OS, JSON and struct errors
            raise SceneReadError(
                code=E_SCENE_READ,
                message=f"Unable to read scene file {self.path}: {e}",
                context={"path": str(self.path)},
            ) from e
        if gltf is None:
            raise SceneReadError(
                code=E_SCENE_READ,
                message=f"Unrecognised scene file {self.path}",
                context={"path": str(self.path)},
            )
        self.gltf = gltf
        self._buffers: Dict[int, bytes] = {}

    def _fail(self, message: str, **context: Any) -> SceneReadError:
        return SceneReadError(
            code=E_SCENE_READ,
            message=message,
            context={"path": str(self.path), **context},
        )

    def _buffer_bytes(self, buffer_idx: int) -> bytes:
        cached = self._buffers.get(buffer_idx)
        if cached is not None:
            return cached
        buf = self.gltf.buffers[buffer_idx]
        uri = buf.uri
        if uri is None:
            data = self.gltf.binary_blob()
            if data is None:
                raise self._fail("Buffer has no uri and no GLB blob", buffer=buffer_idx)
        elif uri.startswith("data:"):
            _, payload = uri.split(",", 1)
            data = base64.b64decode(payload)
        else:
            try:
                data = (self.path.parent / uri).read_bytes()
            except OSError as e:
                raise self._fail(
                    f"Unable to read external buffer {uri}: {e}", buffer=buffer_idx
                ) from e
        self._buffers[buffer_idx] = data
        return data

    def accessor_data(self, accessor_idx: Optional[int]) -> Optional[np.ndarray]:
        """Decode an accessor to an (count, components) array.

        Respects bufferView.byteStride (interleaved attributes) and
        accessor.normalized.
        """
        if accessor_idx is None:
            return None
        accessor = self.gltf.accessors[accessor_idx]
        if getattr(accessor, "sparse", None):
            raise self._fail("Sparse accessors are not supported", accessor=accessor_idx)

        dtype = _COMPONENT_DTYPES.get(accessor.componentType)
        components = _TYPE_COMPONENTS.get(accessor.type)
        if dtype is None or components is None:
            raise self._fail(
                f"Unsupported accessor layout {accessor.type}/{accessor.componentType}",
                accessor=accessor_idx,
            )
        count = int(accessor.count or 0)

        if accessor.bufferView is None:
            # glTF: accessors without a buffer view are zero-filled
            arr = np.zeros((count, components), dtype=dtype)
        else:
            view = self.gltf.bufferViews[accessor.bufferView]
            data = self._buffer_bytes(view.buffer)
            start = int(view.byteOffset or 0) + int(accessor.byteOffset or 0)
            element_size = components * dtype.itemsize
            stride = int(view.byteStride or 0) or element_size
            end = start + (count - 1) * stride + element_size if count else start
            if end > len(data):
                raise self._fail(
                    f"Accessor reads past the end of its buffer ({end} > {len(data)})",
                    accessor=accessor_idx,
                )
            if stride == element_size:
                arr = np.frombuffer(data, dtype=dtype, count=count * components, offset=start)
                arr = arr.reshape((count, components))
            else:
                arr = np.empty((count, components), dtype=dtype)
                for i in range(count):
                    arr[i, :] = np.frombuffer(
                        data, dtype=dtype, count=components, offset=start + i * stride
                    )

        if accessor.normalized and dtype in _NORMALIZE_DIVISORS:
            arr = np.maximum(arr.astype(np.float32) / _NORMALIZE_DIVISORS[dtype], -1.0)
        return arr

    def _float_stream(self, accessor_idx: Optional[int], width: int) -> Optional[np.ndarray]:
        arr = self.accessor_data(accessor_idx)
        if arr is None:
            return None
        return np.ascontiguousarray(arr[:, :width], dtype=np.float32)

    def read_primitive(self, prim: Any) -> PrimitiveData:
        attrs = prim.attributes
        indices = self.accessor_data(prim.indices)
        joints = self.accessor_data(getattr(attrs, "JOINTS_0", None))
        mode = prim.mode if prim.mode is not None else Topology.TRIANGLES
        return PrimitiveData(
            mode=Topology(mode),
            positions=self._float_stream(attrs.POSITION, 3),
            indices=(
                None
                if indices is None
                else indices.reshape(-1).astype(np.uint32)
            ),
            texcoords=self._float_stream(getattr(attrs, "TEXCOORD_0", None), 2),
            joints=None if joints is None else joints.astype(np.uint16),
            weights=self._float_stream(getattr(attrs, "WEIGHTS_0", None), 4),
        )

    def read_skin(self, skin_idx: int) -> SkinData:
        skin = self.gltf.skins[skin_idx]
        names = [self.gltf.nodes[j].name for j in skin.joints or []]
        ibm = self.accessor_data(skin.inverseBindMatrices)
        return SkinData(
            joint_names=names,
            inverse_bind_matrices=(
                None if ibm is None else ibm.astype(np.float32)
            ),
        )

    def read(self) -> SceneDocument:
        logger = get_logger()
        doc = SceneDocument(source=self.path)
        for idx, node in enumerate(self.gltf.nodes):
            scene_node = SceneNode(
                index=idx,
                name=node.name,
                translation=node.translation,
                rotation=node.rotation,
                scale=node.scale,
                matrix=node.matrix,
            )
            if node.mesh is not None:
                mesh = self.gltf.meshes[node.mesh]
                scene_node.mesh_index = node.mesh
                scene_node.mesh_name = mesh.name
                scene_node.primitives = [
                    self.read_primitive(p) for p in mesh.primitives
                ]
                if node.skin is not None:
                    scene_node.skin = self.read_skin(node.skin)
            doc.nodes.append(scene_node)
        logger.debug(
            "Read %s: nodes=%d meshes=%d",
            self.path.name,
            len(doc.nodes),
            len(doc.mesh_nodes()),
        )
        return doc


def read_scene(path: str | Path) -> SceneDocument:
    return SceneReader(Path(path)).read()
