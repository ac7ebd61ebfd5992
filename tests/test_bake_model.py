from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

import modelbake.bake.model as bake_model_mod
from modelbake.asset import MeshRef, ModelAsset
from modelbake.bake.model import bake_model, build_model
from modelbake.pak.errors import E_ASSET, E_SCENE_READ, AssetError, SceneReadError
from modelbake.pak.model import IndexType, ModelId
from modelbake.pak.store import PakBuf
from modelbake.pak.validator import validate_model
from modelbake.scene.reader import read_scene

from gltf_helper import joint_skin, mesh_node, quad, write_glb


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    write_glb(
        tmp_path / "scenes" / "props.glb",
        mesh_node(0, "Cube", [quad()]),
        mesh_node(1, "Sphere", [quad((0.0, 0.0, 2.0))]),
        mesh_node(2, "Cone", [quad((0.0, 0.0, 4.0))]),
    )
    write_glb(
        tmp_path / "scenes" / "actor.glb",
        mesh_node(
            0,
            "Body",
            [quad(skinned=True)],
            skin=joint_skin(["hip", "spine", "head"]),
            translation=(0.0, 1.0, 0.0),
        ),
    )
    return tmp_path


def test_reader_decodes_glb(project: Path):
    doc = read_scene(project / "scenes" / "props.glb")
    nodes = doc.mesh_nodes()
    assert [n.mesh_name for n in nodes] == ["Cube", "Sphere", "Cone"]
    prim = nodes[1].primitives[0]
    assert prim.indices.dtype == np.uint32
    assert prim.positions[:, 2].tolist() == [2.0] * 4
    assert prim.joints is None


def test_reader_decodes_skin(project: Path):
    doc = read_scene(project / "scenes" / "actor.glb")
    (node,) = doc.mesh_nodes()
    assert node.skin.joint_names == ["hip", "spine", "head"]
    assert node.skin.inverse_bind_matrices.shape == (3, 16)
    assert node.primitives[0].weights.shape == (4, 4)


def test_filtered_model(project: Path):
    doc = read_scene(project / "scenes" / "props.glb")
    model = build_model(doc, {"Cube": "Box", "Sphere": None})
    assert [m.name for m in model.meshes] == ["Box", None]
    assert model.index_type is IndexType.U16
    assert model.index_count == 12
    assert model.vertex_count == 8
    assert len(model.write_mask) == 4
    assert validate_model(model) == []


def test_skinned_model(project: Path):
    model = build_model(read_scene(project / "scenes" / "actor.glb"))
    (mesh,) = model.meshes
    assert mesh.stride == 52
    assert list(mesh.skin) == ["hip", "spine", "head"]
    assert mesh.transform[13] == 1.0
    assert len(model.vertex_buffer) == 4 * 52


def test_bake_is_memoized_on_content_key(project: Path, monkeypatch):
    asset_file = project / "models" / "props.yaml"
    asset = ModelAsset(src="../scenes/props.glb", meshes=[MeshRef("Cube")])
    pak = PakBuf()
    reads = []
    real_read = bake_model_mod.read_scene

    def counting_read(path):
        reads.append(path)
        return real_read(path)

    monkeypatch.setattr(bake_model_mod, "read_scene", counting_read)
    first = bake_model(project, asset_file, asset, pak)
    second = bake_model(project, asset_file, asset, pak)
    assert first == second == ModelId(0)
    assert len(pak) == 1
    assert len(reads) == 1
    assert pak.key(first) == "models/props#scenes/props.glb"


def test_distinct_assets_get_distinct_ids(project: Path):
    pak = PakBuf()
    a = bake_model(project, project / "a.yaml", ModelAsset(src="scenes/props.glb"), pak)
    b = bake_model(project, project / "b.yaml", ModelAsset(src="scenes/actor.glb"), pak)
    assert (a, b) == (ModelId(0), ModelId(1))


def test_source_outside_project_is_rejected(project: Path):
    with pytest.raises(AssetError) as exc:
        bake_model(project, project / "a.yaml", ModelAsset(src="../../x.glb"), PakBuf())
    assert exc.value.code == E_ASSET


def test_unreadable_scene_registers_nothing(project: Path):
    (project / "broken.glb").write_bytes(b"definitely not a binary gltf")
    pak = PakBuf()
    with pytest.raises(SceneReadError) as exc:
        bake_model(project, project / "broken.yaml", ModelAsset(src="broken.glb"), pak)
    assert exc.value.code == E_SCENE_READ
    assert len(pak) == 0
