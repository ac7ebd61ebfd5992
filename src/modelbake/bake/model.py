"""Model baking entry point.

``bake_model`` turns a model asset (a glTF source plus an optional mesh name
filter) into a :class:`Model` registered in a pak. Baking is memoized on the
asset's content key: a key already present in the pak returns its id without
reading the source again.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..asset.models import ModelAsset
from ..logging import get_logger
from ..pak.errors import E_ASSET, AssetError
from ..pak.keys import content_key, get_path
from ..pak.model import Model, ModelId
from ..pak.store import PakBuf
from ..reporting import get_reporter
from ..scene.reader import SceneDocument, read_scene
from .flatten import MeshFilter, flatten_meshes
from .write_mask import compile_write_mask

__all__ = ["build_model", "bake_model"]


def build_model(
    doc: SceneDocument, mesh_filter: Optional[MeshFilter] = None
) -> Model:
    flat = flatten_meshes(doc, mesh_filter)
    write_mask = compile_write_mask(
        (int(i) for i in flat.logical_indices),
        [m.index_range for m in flat.meshes],
    )
    return Model(
        meshes=tuple(flat.meshes),
        index_type=flat.index_type,
        index_buffer=flat.index_buffer,
        vertex_buffer=flat.vertex_buffer,
        write_mask=write_mask,
    )


def bake_model(
    project_dir: str | Path,
    asset_filename: str | Path,
    asset: ModelAsset,
    pak: PakBuf,
) -> ModelId:
    logger = get_logger()
    try:
        key = content_key(project_dir, asset_filename, asset.src)
        src = get_path(Path(asset_filename).parent, asset.src, project_dir)
    except ValueError as e:
        raise AssetError(
            code=E_ASSET,
            message=f"Model source escapes the project directory: {asset.src}",
            context={"asset": str(asset_filename)},
        ) from e

    def _bake() -> Model:
        logger.info("Processing asset: %s", key)
        model = build_model(read_scene(src), asset.mesh_filter())
        get_reporter().summary(
            "model",
            key=key,
            meshes=len(model.meshes),
            index_type=model.index_type.name,
            indices=model.index_count,
            vertices=model.vertex_count,
            mask_words=len(model.write_mask) // 4,
        )
        return model

    model_id, created = pak.get_or_register(key, _bake)
    if not created:
        logger.debug("Asset %s already baked as model %d", key, int(model_id))
    return model_id
