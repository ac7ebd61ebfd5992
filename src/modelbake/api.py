"""High-level API for modelbake.

``build_pak`` is the one-call path used by the CLI: load every model asset,
bake it into a shared :class:`PakBuf`, write the pak and optionally a
manifest beside it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional
import hashlib

from .asset import load_asset
from .bake.model import bake_model
from .logging import get_logger
from .manifest import build_manifest
from .pak.inspector import (
    inspect_pak as _inspect_pak_impl,
    read_pak,
    validate_pak as _validate_pak_impl,
)
from .pak.model import ModelId
from .pak.store import PakBuf
from .pak.writer import compute_crc32, write_pak
from .reporting import get_reporter, task

__all__ = [
    "BakeOptions",
    "BakeResult",
    "bake_assets",
    "build_pak",
    "inspect_pak",
    "validate_pak",
    "read_pak",
]


@dataclass(slots=True)
class BakeOptions:
    project_dir: Path
    assets: list[Path]
    output_path: Path
    # Optional path; when provided a manifest JSON will be emitted alongside the pak
    manifest_path: Path | None = None


@dataclass(slots=True)
class BakeResult:
    output_file: Path
    bytes_written: int
    model_ids: list[ModelId] = field(default_factory=list)


def _asset_path(project_dir: Path, asset: Path) -> Path:
    return asset if asset.is_absolute() else project_dir / asset


def bake_assets(
    project_dir: str | Path,
    assets: Iterable[str | Path],
    pak: Optional[PakBuf] = None,
) -> tuple[PakBuf, list[ModelId]]:
    """Bake each asset file into ``pak`` (a new store when omitted).

    Returns the store and one model id per asset, in input order. Assets that
    resolve to the same content key share an id.
    """
    project = Path(project_dir)
    pak = pak if pak is not None else PakBuf()
    asset_paths = [_asset_path(project, Path(a)) for a in assets]
    ids: list[ModelId] = []
    with task("bake.assets", "Bake model assets", total=len(asset_paths)):
        for asset_path in asset_paths:
            asset = load_asset(asset_path)
            ids.append(bake_model(project, asset_path, asset, pak))
            get_reporter().advance("bake.assets", current_item=asset_path.name)
    return pak, ids


def build_pak(options: BakeOptions) -> BakeResult:
    logger = get_logger()
    rep = get_reporter()
    pak, ids = bake_assets(options.project_dir, options.assets)
    rep.summary(
        "bake",
        assets=len(options.assets),
        models=len(pak),
        meshes=sum(len(m.meshes) for _, _, m in pak.items()),
    )
    bytes_written = write_pak(pak, options.output_path)
    if options.manifest_path is not None:
        with task("manifest.emit", "Emit manifest"):
            file_bytes = options.output_path.read_bytes()
            pak_crc32 = compute_crc32(file_bytes)
            file_sha256 = hashlib.sha256(file_bytes).hexdigest()
            build_manifest(
                pak,
                options.manifest_path,
                file_size=len(file_bytes),
                pak_crc32=pak_crc32,
                file_sha256=file_sha256,
            )
            logger.info(
                "Emitted manifest: %s (crc32=%s sha256=%s)",
                options.manifest_path.name,
                f"{pak_crc32:08x}",
                file_sha256[:12],
            )
            rep.summary(
                "manifest", crc32=f"{pak_crc32:08x}", sha256=file_sha256[:12]
            )
    logger.info(
        "Built pak: %s (%d bytes, models=%d)",
        options.output_path.name,
        bytes_written,
        len(pak),
    )
    rep.summary(
        "pak",
        file=options.output_path.name,
        bytes=bytes_written,
        models=len(pak),
    )
    return BakeResult(
        output_file=options.output_path,
        bytes_written=bytes_written,
        model_ids=ids,
    )


def inspect_pak(path: str | Path) -> dict:
    return _inspect_pak_impl(path)


def validate_pak(path: str | Path) -> list[str]:
    return _validate_pak_impl(path)
