"""Bounding spheres from mesh point clouds."""

from __future__ import annotations

import numpy as np

from ..pak.model import Sphere

__all__ = ["sphere_from_points"]


def sphere_from_points(points: np.ndarray) -> Sphere:
    """Enclosing sphere centred on the point cloud's axis-aligned box.

    Not minimal, but deterministic and always containing: the radius is the
    largest distance from the box centre, widened to the next float32 so the
    sphere survives storage as f32.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if pts.shape[0] == 0:
        return Sphere()
    center = (pts.min(axis=0) + pts.max(axis=0)) * 0.5
    center = center.astype(np.float32).astype(np.float64)
    radius = float(np.sqrt(((pts - center) ** 2).sum(axis=1)).max())
    radius32 = np.nextafter(np.float32(radius), np.float32(np.inf))
    return Sphere(
        center=(float(center[0]), float(center[1]), float(center[2])),
        radius=float(radius32),
    )
