"""Model asset descriptor."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(slots=True)
class MeshRef:
    src_name: str
    dst_name: Optional[str] = None


@dataclass(slots=True)
class ModelAsset:
    src: str
    meshes: List[MeshRef] = field(default_factory=list)

    def mesh_filter(self) -> Dict[str, Optional[str]]:
        """Source mesh name -> destination name; the first entry wins."""
        names: Dict[str, Optional[str]] = {}
        for mesh in self.meshes:
            names.setdefault(mesh.src_name, mesh.dst_name)
        return names


__all__ = ["MeshRef", "ModelAsset"]
