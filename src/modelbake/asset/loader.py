"""Model asset descriptor loading (JSON/YAML)."""

from __future__ import annotations
from pathlib import Path
from typing import Any
import json

import yaml

from ..pak.errors import E_ASSET, AssetError
from .models import MeshRef, ModelAsset


def _fail(path: Path, message: str) -> AssetError:
    return AssetError(code=E_ASSET, message=message, context={"path": str(path)})


def load_asset(path: str | Path) -> ModelAsset:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)
    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() in {".yaml", ".yml"}:
            data: Any = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise _fail(p, f"Unable to parse asset descriptor: {e}") from e
    if not isinstance(data, dict):
        raise _fail(p, "Root of asset descriptor must be an object")
    return parse_asset_dict(data, path=p)


def parse_asset_dict(data: dict[str, Any], path: Path | None = None) -> ModelAsset:
    where = path or Path("<memory>")
    src = data.get("src")
    if not isinstance(src, str) or not src:
        raise _fail(where, "'src' must be a non-empty string")
    meshes_raw = data.get("meshes") or []
    if not isinstance(meshes_raw, list):
        raise _fail(where, "'meshes' must be a list")
    meshes = []
    for i, entry in enumerate(meshes_raw):
        # shorthand: a bare string selects a mesh without renaming it
        if isinstance(entry, str):
            meshes.append(MeshRef(src_name=entry))
            continue
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            raise _fail(where, f"meshes[{i}] must have a string 'name'")
        rename = entry.get("rename")
        if rename is not None and not isinstance(rename, str):
            raise _fail(where, f"meshes[{i}].rename must be a string")
        meshes.append(MeshRef(src_name=entry["name"], dst_name=rename))
    return ModelAsset(src=src, meshes=meshes)


__all__ = ["load_asset", "parse_asset_dict"]
