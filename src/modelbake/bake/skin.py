"""Skin baking and node transform extraction."""

from __future__ import annotations

from typing import Dict, Optional, Sequence

import numpy as np

from ..pak.errors import E_SKIN, SkinError
from ..pak.model import IDENTITY, Mat4
from ..scene.reader import SceneNode, SkinData

__all__ = ["bake_skin", "node_transform", "trs_matrix"]


def _as_mat4(values: Sequence[float]) -> Mat4:
    # f32 precision, matching the pak encoding
    return tuple(float(v) for v in np.asarray(values, dtype=np.float32).reshape(-1))


def bake_skin(skin: SkinData, *, node: Optional[str] = None) -> Dict[str, Mat4]:
    """Pair joint names with inverse-bind matrices, in joint order."""
    ctx = {"node": node}
    ibm = skin.inverse_bind_matrices
    if ibm is None:
        raise SkinError(
            code=E_SKIN,
            message="Skinned node has no inverse-bind matrices",
            context=ctx,
        )
    matrices = np.asarray(ibm, dtype=np.float32).reshape(-1, 16)
    if len(matrices) != len(skin.joint_names):
        raise SkinError(
            code=E_SKIN,
            message=(
                f"Skin has {len(skin.joint_names)} joints but "
                f"{len(matrices)} inverse-bind matrices"
            ),
            context=ctx,
        )
    joints: Dict[str, Mat4] = {}
    for i, (name, matrix) in enumerate(zip(skin.joint_names, matrices)):
        if not name:
            raise SkinError(
                code=E_SKIN,
                message=f"Joint {i} has no name",
                context=ctx,
            )
        if name in joints:
            raise SkinError(
                code=E_SKIN,
                message=f"Duplicate joint name '{name}'",
                context=ctx,
            )
        joints[name] = _as_mat4(matrix)
    return joints


def trs_matrix(
    translation: Sequence[float],
    rotation: Sequence[float],
    scale: Sequence[float],
) -> np.ndarray:
    """Row-major 4x4 matrix for T * R * S; ``rotation`` is (x, y, z, w)."""
    x, y, z, w = (float(v) for v in rotation)
    rot = np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
            [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
            [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
        ],
        dtype=np.float64,
    )
    m = np.eye(4, dtype=np.float64)
    m[:3, :3] = rot * np.asarray(scale, dtype=np.float64)[None, :]
    m[:3, 3] = np.asarray(translation, dtype=np.float64)
    return m


def node_transform(node: SceneNode) -> Optional[Mat4]:
    """Local transform of a node, or None when it is the identity."""
    if node.matrix is not None:
        flat = _as_mat4(node.matrix)
    else:
        m = trs_matrix(
            node.translation or (0.0, 0.0, 0.0),
            node.rotation or (0.0, 0.0, 0.0, 1.0),
            node.scale or (1.0, 1.0, 1.0),
        )
        # column-major storage
        flat = _as_mat4(m.T.reshape(-1))
    if flat == IDENTITY:
        return None
    return flat
