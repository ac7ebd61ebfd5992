"""Manifest generation for model paks.

The manifest is an optional JSON artifact that summarises a written pak. It
is only produced when explicitly requested by the caller / CLI flag.

Contents:
- File metadata (size, CRC32, SHA-256)
- One entry per model: id, content key, index width and buffer sizes
- Aggregate counts
"""

from __future__ import annotations

from pathlib import Path
import json
from typing import Any

from .pak.store import PakBuf

__all__ = ["build_manifest", "manifest_dict"]


def manifest_dict(
    pak: PakBuf,
    *,
    file_size: int,
    pak_crc32: int | None = None,
    file_sha256: str | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    models = []
    meshes = 0
    skinned = 0
    for key, model_id, model in pak.items():
        meshes += len(model.meshes)
        skinned += sum(1 for m in model.meshes if m.skin is not None)
        models.append(
            {
                "id": int(model_id),
                "key": key,
                "index_type": model.index_type.name,
                "meshes": [m.name for m in model.meshes],
                "index_count": model.index_count,
                "vertex_count": model.vertex_count,
                "vertex_bytes": len(model.vertex_buffer),
                "write_mask_bytes": len(model.write_mask),
            }
        )
    d: dict[str, Any] = {
        "version": 1,
        "file_size": file_size,
        "models": models,
        "counts": {
            "models": len(models),
            "meshes": meshes,
            "skinned_meshes": skinned,
        },
        "pak_crc32": pak_crc32,
        "sha256": file_sha256,
    }
    if warnings:
        d["warnings"] = warnings
    return d


def build_manifest(
    pak: PakBuf,
    output_path: Path,
    *,
    file_size: int,
    pak_crc32: int | None = None,
    file_sha256: str | None = None,
    warnings: list[str] | None = None,
) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = manifest_dict(
        pak,
        file_size=file_size,
        pak_crc32=pak_crc32,
        file_sha256=file_sha256,
        warnings=warnings,
    )
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)
        f.write("\n")
    return output_path
