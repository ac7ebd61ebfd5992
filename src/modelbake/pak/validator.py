"""Model invariant validation.

Checks a :class:`Model` against the layout the vertex attribute compute pass
binds: every index in range, triangle lists only, mesh vertex ranges inside
the vertex buffer and a write mask with one designated writer per vertex
of each mesh.

Returns a list of ValidationErrorRecord; an empty list means the model is
valid.
"""

from __future__ import annotations
from typing import List

import numpy as np

from ..bake.write_mask import decode_write_mask, mask_word_count
from .model import Model


class ValidationErrorRecord:
    def __init__(self, code: str, message: str, path: str = "") -> None:
        self.code = code
        self.message = message
        self.path = path

    def __repr__(self) -> str:  # convenience for tests
        return f"ValidationErrorRecord(code={self.code}, path={self.path}, message={self.message})"


def _err(errors: List[ValidationErrorRecord], code: str, message: str, path: str):
    errors.append(ValidationErrorRecord(code, message, path))


def _buffer_phase(model: Model) -> List[ValidationErrorRecord]:
    errors: List[ValidationErrorRecord] = []
    size = model.index_type.size
    if len(model.index_buffer) % size:
        _err(
            errors,
            "E_ALIGN",
            f"Index buffer length {len(model.index_buffer)} is not a multiple of {size}",
            "index_buffer",
        )
    expected_vertex_bytes = sum(m.vertex_count * m.stride for m in model.meshes)
    if len(model.vertex_buffer) != expected_vertex_bytes:
        _err(
            errors,
            "E_STRIDE",
            f"Vertex buffer holds {len(model.vertex_buffer)} bytes, meshes describe {expected_vertex_bytes}",
            "vertex_buffer",
        )
    words = mask_word_count(model.index_count)
    if len(model.write_mask) != words * 4:
        _err(
            errors,
            "E_MASK_LEN",
            f"Write mask has {len(model.write_mask)} bytes, expected {words * 4}",
            "write_mask",
        )
    return errors


def _mesh_phase(model: Model) -> List[ValidationErrorRecord]:
    errors: List[ValidationErrorRecord] = []
    total_vertices = model.vertex_count
    index_count = model.index_count
    indices = model.indices() if not len(model.index_buffer) % model.index_type.size else None
    expected_offset = 0
    for i, mesh in enumerate(model.meshes):
        path = f"meshes[{i}]"
        r = mesh.index_range
        if r.step != 1 or r.start > r.stop or r.stop > index_count:
            _err(errors, "E_INDEX_RANGE", f"Index range {r.start}..{r.stop} outside 0..{index_count}", path)
            continue
        if len(r) % 3:
            _err(errors, "E_TRIANGLES", f"Index range of {len(r)} entries is not a triangle list", path)
        if mesh.vertex_offset != expected_offset:
            _err(
                errors,
                "E_VERTEX_RANGE",
                f"vertex_offset {mesh.vertex_offset} does not follow the previous mesh (expected {expected_offset})",
                path,
            )
        if mesh.vertex_offset + mesh.vertex_count > total_vertices:
            _err(errors, "E_VERTEX_RANGE", "Mesh vertices exceed the vertex buffer", path)
        expected_offset = mesh.vertex_offset + mesh.vertex_count
        if indices is not None and len(r):
            local = indices[r.start : r.stop]
            if int(local.max()) >= mesh.vertex_count:
                _err(
                    errors,
                    "E_INDEX_RANGE",
                    f"Index {int(local.max())} out of range for {mesh.vertex_count} vertices",
                    path,
                )
    return errors


def _mask_phase(model: Model) -> List[ValidationErrorRecord]:
    errors: List[ValidationErrorRecord] = []
    count = model.index_count
    if len(model.write_mask) * 8 < count:
        return errors  # reported by the buffer phase
    bits = decode_write_mask(model.write_mask, count)
    indices = model.indices()
    expected = np.zeros(count, dtype=bool)
    for mesh in model.meshes:
        r = mesh.index_range
        if r.stop > count or not len(r):
            continue
        _, first = np.unique(indices[r.start : r.stop], return_index=True)
        expected[r.start + first] = True
    if not np.array_equal(bits, expected):
        bad = int(np.flatnonzero(bits != expected)[0])
        _err(
            errors,
            "E_MASK_BITS",
            f"Write mask bit {bad} does not mark the first occurrence of index {int(indices[bad])} in its mesh",
            "write_mask",
        )
    padding = np.unpackbits(
        np.frombuffer(model.write_mask, dtype=np.uint8), bitorder="little"
    )[count:]
    if padding.any():
        _err(errors, "E_MASK_BITS", "Write mask padding bits must be clear", "write_mask")
    return errors


def validate_model(model: Model) -> List[ValidationErrorRecord]:
    errors = _buffer_phase(model)
    errors.extend(_mesh_phase(model))
    if not any(e.code in ("E_ALIGN", "E_MASK_LEN") for e in errors):
        errors.extend(_mask_phase(model))
    return errors


__all__ = ["ValidationErrorRecord", "validate_model"]
