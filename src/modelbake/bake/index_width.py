"""Model-wide index width selection."""

from __future__ import annotations

from typing import Iterable

from ..pak.model import IndexType

__all__ = ["MAX_U16_VERTICES", "select_index_type"]

MAX_U16_VERTICES = 0xFFFF


def select_index_type(vertex_counts: Iterable[int]) -> IndexType:
    """Pick one index width for every mesh of a model.

    ``vertex_counts`` holds the vertex count of each included mesh. Indices
    are mesh-relative, so a mesh's count bounds every index it emits; for a
    single-primitive mesh it is the primitive's position count. A single
    count above the 16-bit limit switches the whole model to 32-bit indices,
    so the renderer binds one index format per model.
    """
    if all(count <= MAX_U16_VERTICES for count in vertex_counts):
        return IndexType.U16
    return IndexType.U32
