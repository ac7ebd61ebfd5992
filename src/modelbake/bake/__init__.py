from .flatten import MAX_MESHES, FlattenResult, flatten_meshes, select_nodes
from .index_width import select_index_type
from .model import bake_model, build_model
from .write_mask import compile_write_mask, decode_write_mask

__all__ = [
    "MAX_MESHES",
    "FlattenResult",
    "flatten_meshes",
    "select_nodes",
    "select_index_type",
    "bake_model",
    "build_model",
    "compile_write_mask",
    "decode_write_mask",
]
