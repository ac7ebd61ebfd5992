"""Binary pak inspection utilities.

Public functions:
- read_pak(path) -> PakBuf
- inspect_pak(path) -> dict
- validate_pak(path) -> list[str]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
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
    MESH_FLAG_NAME,
    MESH_FLAG_SKIN,
    MESH_FLAG_TRANSFORM,
    MODEL_DESC_SIZE,
)
from .errors import E_BINARY, E_CRC_MISMATCH, BinaryFormatError
from .model import IndexType, Mat4, Mesh, Model, Sphere
from .packers import align
from .store import PakBuf
from .validator import validate_model
from .writer import compute_crc32

__all__ = [
    "parse_header",
    "parse_footer",
    "parse_directory",
    "unpack_model",
    "load_pak",
    "read_pak",
    "inspect_pak",
    "validate_pak",
]


def _fail(message: str, **context: Any) -> BinaryFormatError:
    return BinaryFormatError(code=E_BINARY, message=message, context=context or None)


def _read_exact(data: bytes, offset: int, size: int, label: str) -> bytes:
    end = offset + size
    if offset < 0 or end > len(data):
        raise _fail(f"Out of range read for {label}: {offset}+{size}>{len(data)}")
    return data[offset:end]


def _decode(raw: bytes, label: str) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise _fail(f"Invalid UTF-8 in {label}") from e


def parse_header(data: bytes) -> Dict[str, Any]:
    raw = _read_exact(data, 0, HEADER_SIZE, "header")
    if raw[: len(MAGIC)] != MAGIC:
        raise _fail("Bad pak magic")
    version, model_count, directory_offset = struct.unpack_from("<IIQ", raw, len(MAGIC))
    if version != FORMAT_VERSION:
        raise _fail(f"Unsupported pak version {version}")
    return {
        "version": version,
        "model_count": model_count,
        "directory_offset": directory_offset,
    }


def parse_footer(data: bytes) -> Dict[str, Any]:
    footer_offset = len(data) - FOOTER_SIZE
    raw = _read_exact(data, footer_offset, FOOTER_SIZE, "footer")
    crc32, _ = struct.unpack_from("<II", raw, 0)
    magic = raw[8:]
    if magic != FOOTER_MAGIC:
        raise _fail("Bad footer magic")
    return {"offset": footer_offset, "crc32": crc32}


def parse_directory(data: bytes, header: Dict[str, Any]) -> List[Dict[str, Any]]:
    entries = []
    off = header["directory_offset"]
    for _ in range(header["model_count"]):
        head = _read_exact(data, off, DIRECTORY_ENTRY_SIZE, "directory entry")
        model_id, key_len, offset, size = struct.unpack("<IHxxQQ", head)
        key_raw = _read_exact(data, off + DIRECTORY_ENTRY_SIZE, key_len, "directory key")
        entries.append(
            {
                "id": model_id,
                "key": _decode(key_raw, "directory key"),
                "offset": offset,
                "size": size,
            }
        )
        off = align(off + DIRECTORY_ENTRY_SIZE + key_len, DATA_ALIGNMENT)
    return entries


class _Cursor:
    def __init__(self, data: bytes, offset: int, end: int):
        self.data = data
        self.offset = offset
        self.end = end

    def take(self, size: int, label: str) -> bytes:
        if self.offset + size > self.end:
            raise _fail(f"Model payload truncated reading {label}")
        out = self.data[self.offset : self.offset + size]
        self.offset += size
        return out

    def unpack(self, fmt: str, label: str) -> Tuple[Any, ...]:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt), label))

    def string(self, label: str) -> str:
        (length,) = self.unpack("<H", label)
        return _decode(self.take(length, label), label)

    def mat4(self, label: str) -> Mat4:
        return struct.unpack("<16f", self.take(MAT4_SIZE, label))

    def align(self, alignment: int) -> None:
        self.offset = align(self.offset, alignment)


def _unpack_mesh(cur: _Cursor) -> Mesh:
    flags, start, stop, vertex_count, vertex_offset, cx, cy, cz, radius = cur.unpack(
        "<B3xIIII4f", "mesh descriptor"
    )
    name: Optional[str] = None
    transform: Optional[Mat4] = None
    skin: Optional[Dict[str, Mat4]] = None
    if flags & MESH_FLAG_NAME:
        name = cur.string("mesh name")
    if flags & MESH_FLAG_TRANSFORM:
        transform = cur.mat4("mesh transform")
    if flags & MESH_FLAG_SKIN:
        (joint_count,) = cur.unpack("<H", "joint count")
        skin = {}
        for _ in range(joint_count):
            joint = cur.string("joint name")
            skin[joint] = cur.mat4("inverse bind matrix")
    return Mesh(
        name=name,
        index_range=range(start, stop),
        vertex_count=vertex_count,
        vertex_offset=vertex_offset,
        bounds=Sphere(center=(cx, cy, cz), radius=radius),
        transform=transform,
        skin=skin,
    )


def unpack_model(data: bytes, offset: int, size: int) -> Model:
    cur = _Cursor(data, offset, offset + size)
    index_type_raw, mesh_count, index_count, vertex_bytes, mask_bytes = cur.unpack(
        "<BxHIII", "model descriptor"
    )
    assert struct.calcsize("<BxHIII") == MODEL_DESC_SIZE
    try:
        index_type = IndexType(index_type_raw)
    except ValueError as e:
        raise _fail(f"Unknown index type {index_type_raw}") from e
    meshes = tuple(_unpack_mesh(cur) for _ in range(mesh_count))
    cur.align(DATA_ALIGNMENT)
    index_buffer = cur.take(index_count * index_type.size, "index buffer")
    cur.align(DATA_ALIGNMENT)
    vertex_buffer = cur.take(vertex_bytes, "vertex buffer")
    cur.align(DATA_ALIGNMENT)
    write_mask = cur.take(mask_bytes, "write mask")
    return Model(
        meshes=meshes,
        index_type=index_type,
        index_buffer=index_buffer,
        vertex_buffer=vertex_buffer,
        write_mask=write_mask,
    )


def load_pak(data: bytes, *, verify_crc: bool = True) -> PakBuf:
    header = parse_header(data)
    footer = parse_footer(data)
    if verify_crc:
        actual = compute_crc32(data)
        if actual != footer["crc32"]:
            raise BinaryFormatError(
                code=E_CRC_MISMATCH,
                message=f"CRC mismatch: stored={footer['crc32']:08x} actual={actual:08x}",
            )
    pak = PakBuf()
    for entry in sorted(parse_directory(data, header), key=lambda e: e["id"]):
        if entry["id"] != len(pak):
            raise _fail(f"Directory ids are not sequential at {entry['id']}")
        pak.push_model(entry["key"], unpack_model(data, entry["offset"], entry["size"]))
    return pak


def read_pak(path: str | Path, *, verify_crc: bool = True) -> PakBuf:
    return load_pak(Path(path).read_bytes(), verify_crc=verify_crc)


def inspect_pak(path: str | Path) -> Dict[str, Any]:
    data = Path(path).read_bytes()
    header = parse_header(data)
    footer = parse_footer(data)
    pak = load_pak(data, verify_crc=False)
    models = []
    for key, model_id, model in pak.items():
        models.append(
            {
                "id": int(model_id),
                "key": key,
                "index_type": model.index_type.name,
                "index_count": model.index_count,
                "vertex_count": model.vertex_count,
                "vertex_bytes": len(model.vertex_buffer),
                "write_mask_words": len(model.write_mask) // 4,
                "meshes": [
                    {
                        "name": m.name,
                        "index_range": [m.index_range.start, m.index_range.stop],
                        "vertex_offset": m.vertex_offset,
                        "vertex_count": m.vertex_count,
                        "stride": m.stride,
                        "bounds": {
                            "center": list(m.bounds.center),
                            "radius": m.bounds.radius,
                        },
                        "has_transform": m.transform is not None,
                        "joints": list(m.skin) if m.skin is not None else None,
                    }
                    for m in model.meshes
                ],
            }
        )
    return {
        "file_size": len(data),
        "header": header,
        "footer": {
            "crc32": footer["crc32"],
            "crc_ok": compute_crc32(data) == footer["crc32"],
        },
        "models": models,
    }


def validate_pak(path: str | Path) -> List[str]:
    issues: List[str] = []
    data = Path(path).read_bytes()
    try:
        footer = parse_footer(data)
        if compute_crc32(data) != footer["crc32"]:
            issues.append("footer.crc32: CRC mismatch")
        pak = load_pak(data, verify_crc=False)
    except BinaryFormatError as e:
        issues.append(f"{e.code}: {e.message}")
        return issues
    for key, model_id, model in pak.items():
        for err in validate_model(model):
            issues.append(f"models[{int(model_id)}]({key}).{err.path}: {err.code} {err.message}")
    return issues
