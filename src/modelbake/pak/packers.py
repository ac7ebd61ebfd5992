"""Pure binary packing functions for model paks.

All functions are side-effect free and validate sizes.
"""

from __future__ import annotations

import struct
from .constants import (
    DATA_ALIGNMENT,
    DIRECTORY_ENTRY_SIZE,
    FOOTER_MAGIC,
    FOOTER_SIZE,
    FORMAT_VERSION,
    HEADER_SIZE,
    MAGIC,
    MAT4_SIZE,
    MAX_JOINTS,
    MAX_NAME_LENGTH,
    MESH_DESC_SIZE,
    MESH_FLAG_NAME,
    MESH_FLAG_SKIN,
    MESH_FLAG_TRANSFORM,
    MODEL_DESC_SIZE,
)
from .errors import E_BINARY, BinaryFormatError
from .model import Mat4, Mesh, Model

__all__ = [
    "align",
    "pad_bytes",
    "pack_header",
    "pack_footer",
    "pack_directory_entry",
    "pack_model_descriptor",
    "pack_mesh_descriptor",
    "pack_string",
    "pack_mat4",
    "pack_mesh",
    "pack_model",
]


def _check_size(label: str, data: bytes, expected: int) -> bytes:
    if len(data) != expected:
        raise BinaryFormatError(
            code=E_BINARY,
            message=f"{label} size mismatch: {len(data)} != {expected}",
        )
    return data


def align(offset: int, alignment: int) -> int:
    return (offset + alignment - 1) // alignment * alignment


def pad_bytes(length: int, alignment: int) -> bytes:
    return b"\x00" * (align(length, alignment) - length)


def pack_header(model_count: int, directory_offset: int) -> bytes:
    out = (
        MAGIC
        + struct.pack("<II", FORMAT_VERSION, model_count)
        + struct.pack("<Q", directory_offset)
        + b"\x00" * 8
    )
    return _check_size("Header", out, HEADER_SIZE)


def pack_footer(crc32: int = 0) -> bytes:
    out = struct.pack("<II", crc32 & 0xFFFFFFFF, 0) + FOOTER_MAGIC
    return _check_size("Footer", out, FOOTER_SIZE)


def pack_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    if len(raw) > MAX_NAME_LENGTH:
        raise BinaryFormatError(
            code=E_BINARY, message=f"String too long ({len(raw)} bytes)"
        )
    return struct.pack("<H", len(raw)) + raw


def pack_mat4(matrix: Mat4) -> bytes:
    if len(matrix) != 16:
        raise BinaryFormatError(
            code=E_BINARY, message=f"Matrix has {len(matrix)} elements"
        )
    return _check_size("Mat4", struct.pack("<16f", *matrix), MAT4_SIZE)


def pack_directory_entry(
    model_id: int, key: str, offset: int, size: int
) -> bytes:
    raw_key = key.encode("utf-8")
    if len(raw_key) > MAX_NAME_LENGTH:
        raise BinaryFormatError(
            code=E_BINARY, message=f"Key too long ({len(raw_key)} bytes)"
        )
    head = struct.pack("<IHxxQQ", model_id, len(raw_key), offset, size)
    _check_size("DirectoryEntry", head, DIRECTORY_ENTRY_SIZE)
    body = head + raw_key
    return body + pad_bytes(len(body), DATA_ALIGNMENT)


def pack_model_descriptor(model: Model) -> bytes:
    if len(model.meshes) > 0xFFFF:
        raise BinaryFormatError(
            code=E_BINARY, message=f"Too many meshes: {len(model.meshes)}"
        )
    out = struct.pack(
        "<BxHIII",
        model.index_type.value,
        len(model.meshes),
        model.index_count,
        len(model.vertex_buffer),
        len(model.write_mask),
    )
    return _check_size("ModelDesc", out, MODEL_DESC_SIZE)


def _mesh_flags(mesh: Mesh) -> int:
    flags = 0
    if mesh.name is not None:
        flags |= MESH_FLAG_NAME
    if mesh.transform is not None:
        flags |= MESH_FLAG_TRANSFORM
    if mesh.skin is not None:
        flags |= MESH_FLAG_SKIN
    return flags


def pack_mesh_descriptor(mesh: Mesh) -> bytes:
    out = struct.pack(
        "<B3xIIII4f",
        _mesh_flags(mesh),
        mesh.index_range.start,
        mesh.index_range.stop,
        mesh.vertex_count,
        mesh.vertex_offset,
        *mesh.bounds.center,
        mesh.bounds.radius,
    )
    return _check_size("MeshDesc", out, MESH_DESC_SIZE)


def pack_mesh(mesh: Mesh) -> bytes:
    """Fixed descriptor followed by the optional name, transform and skin."""
    out = bytearray(pack_mesh_descriptor(mesh))
    if mesh.name is not None:
        out += pack_string(mesh.name)
    if mesh.transform is not None:
        out += pack_mat4(mesh.transform)
    if mesh.skin is not None:
        if len(mesh.skin) > MAX_JOINTS:
            raise BinaryFormatError(
                code=E_BINARY, message=f"Too many joints: {len(mesh.skin)}"
            )
        out += struct.pack("<H", len(mesh.skin))
        for joint, inverse_bind in mesh.skin.items():
            out += pack_string(joint)
            out += pack_mat4(inverse_bind)
    return bytes(out)


def pack_model(model: Model) -> bytes:
    """Model payload: descriptor, mesh table, then the three buffers.

    Each buffer starts on a 4-byte boundary so it can be bound as a ``uint``
    storage buffer straight from the file.
    """
    out = bytearray(pack_model_descriptor(model))
    for mesh in model.meshes:
        out += pack_mesh(mesh)
    for blob in (model.index_buffer, model.vertex_buffer, model.write_mask):
        out += pad_bytes(len(out), DATA_ALIGNMENT)
        out += blob
    out += pad_bytes(len(out), DATA_ALIGNMENT)
    return bytes(out)

