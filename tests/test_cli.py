from __future__ import annotations

import json
from pathlib import Path

import pytest

from modelbake.cli import main

from gltf_helper import joint_skin, mesh_node, quad, write_glb


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    write_glb(
        tmp_path / "scenes" / "props.glb",
        mesh_node(0, "Cube", [quad()]),
        mesh_node(1, "Sphere", [quad((0.0, 0.0, 2.0))]),
    )
    write_glb(
        tmp_path / "scenes" / "actor.glb",
        mesh_node(0, "Body", [quad(skinned=True)], skin=joint_skin(["hip", "head"])),
    )
    models = tmp_path / "models"
    models.mkdir()
    (models / "props.yaml").write_text(
        "src: ../scenes/props.glb\nmeshes:\n  - name: Cube\n    rename: Box\n",
        encoding="utf-8",
    )
    (models / "actor.json").write_text(
        json.dumps({"src": "/scenes/actor.glb"}), encoding="utf-8"
    )
    return tmp_path


def _bake(project: Path, *extra: str) -> Path:
    out = project / "out" / "models.pak"
    rc = main(
        [
            "-r",
            "silent",
            "bake",
            str(project),
            "models/props.yaml",
            "models/actor.json",
            "models/props.yaml",
            "-o",
            str(out),
            *extra,
        ]
    )
    assert rc == 0
    return out


def test_bake_with_manifest(project: Path):
    manifest = project / "out" / "manifest.json"
    out = _bake(project, "--emit-manifest", str(manifest))
    assert out.exists()
    data = json.loads(manifest.read_text(encoding="utf-8"))
    assert data["counts"]["models"] == 2
    assert data["counts"]["skinned_meshes"] == 1
    assert data["file_size"] == out.stat().st_size
    assert [m["key"] for m in data["models"]] == [
        "models/props#scenes/props.glb",
        "models/actor#scenes/actor.glb",
    ]
    assert data["models"][0]["meshes"] == ["Box"]


def test_inspect_json(project: Path, capsys):
    out = _bake(project)
    capsys.readouterr()
    assert main(["-r", "silent", "inspect", str(out), "--json"]) == 0
    info = json.loads(capsys.readouterr().out)
    assert info["header"]["model_count"] == 2
    assert info["footer"]["crc_ok"]
    assert info["models"][1]["meshes"][0]["stride"] == 52


def test_validate_ok_and_corrupt(project: Path):
    out = _bake(project)
    assert main(["-r", "silent", "validate", str(out)]) == 0
    data = bytearray(out.read_bytes())
    data[40] ^= 0xFF
    out.write_bytes(bytes(data))
    assert main(["-r", "silent", "validate", str(out)]) == 1


def test_json_reporter_emits_pak_summary(project: Path, capsys):
    out = project / "json.pak"
    rc = main(
        ["-r", "json", "bake", str(project), "models/props.yaml", "-o", str(out)]
    )
    assert rc == 0
    events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    summaries = {e["summary_type"]: e for e in events if e["event"] == "summary"}
    assert summaries["pak"]["models"] == 1
    assert summaries["model"]["key"] == "models/props#scenes/props.glb"


def test_bake_error_returns_nonzero(project: Path):
    (project / "models" / "bad.yaml").write_text("src: ../../../elsewhere.glb\n", encoding="utf-8")
    rc = main(
        [
            "-r",
            "silent",
            "bake",
            str(project),
            "models/bad.yaml",
            "-o",
            str(project / "bad.pak"),
        ]
    )
    assert rc == 2
