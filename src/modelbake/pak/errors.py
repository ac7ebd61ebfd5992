"""Error definitions for model baking and pak emission."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

E_SCENE_READ = "E_SCENE_READ"
E_MISSING_ATTRIBUTE = "E_MISSING_ATTRIBUTE"
E_TOPOLOGY = "E_TOPOLOGY"
E_SKIN = "E_SKIN"
E_PRIMITIVE = "E_PRIMITIVE"
E_ASSET = "E_ASSET"
E_BINARY = "E_BINARY"
E_CRC_MISMATCH = "E_CRC_MISMATCH"
E_DUP_KEY = "E_DUP_KEY"
E_SIZE = "E_SIZE"


@dataclass
class PakError(Exception):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}" + (
            f" | ctx={self.context}" if self.context else ""
        )


class BakeError(PakError):
    """Base class for conditions that abort a model bake."""


class SceneReadError(BakeError):
    pass


class MissingAttributeError(BakeError):
    pass


class TopologyError(BakeError):
    pass


class SkinError(BakeError):
    pass


class MalformedPrimitiveError(BakeError):
    pass


class AssetError(PakError):
    pass


class BinaryFormatError(PakError):
    pass


def missing_attribute(
    attribute: str, context: Optional[Dict[str, Any]] = None
) -> MissingAttributeError:
    return MissingAttributeError(
        code=E_MISSING_ATTRIBUTE,
        message=f"Primitive is missing required attribute {attribute}",
        context=context,
    )


__all__ = [
    "PakError",
    "BakeError",
    "SceneReadError",
    "MissingAttributeError",
    "TopologyError",
    "SkinError",
    "MalformedPrimitiveError",
    "AssetError",
    "BinaryFormatError",
    "missing_attribute",
    "E_SCENE_READ",
    "E_MISSING_ATTRIBUTE",
    "E_TOPOLOGY",
    "E_SKIN",
    "E_PRIMITIVE",
    "E_ASSET",
    "E_BINARY",
    "E_CRC_MISMATCH",
    "E_DUP_KEY",
    "E_SIZE",
]
