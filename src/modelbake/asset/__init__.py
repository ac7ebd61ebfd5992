from .models import MeshRef, ModelAsset
from .loader import load_asset, parse_asset_dict

__all__ = ["MeshRef", "ModelAsset", "load_asset", "parse_asset_dict"]
