from __future__ import annotations

from pathlib import Path

import pytest

from modelbake.bake.model import build_model
from modelbake.pak.constants import (
    DIRECTORY_ENTRY_SIZE,
    FOOTER_SIZE,
    HEADER_SIZE,
    MESH_DESC_SIZE,
    MODEL_DESC_SIZE,
)
from modelbake.pak.errors import E_BINARY, E_CRC_MISMATCH, BinaryFormatError
from modelbake.pak.inspector import (
    inspect_pak,
    load_pak,
    parse_header,
    read_pak,
    validate_pak,
)
from modelbake.pak.store import PakBuf
from modelbake.pak.writer import compute_crc32, pak_bytes, write_pak

from gltf_helper import document, joint_skin, mesh_node, quad


def _pak() -> PakBuf:
    pak = PakBuf()
    props = build_model(
        document(
            mesh_node(0, "Cube", [quad()]),
            mesh_node(1, "Sphere", [quad((0.0, 0.0, 3.0))]),
        ),
        {"Cube": "Box", "Sphere": None},
    )
    actor = build_model(
        document(
            mesh_node(
                0,
                "Body",
                [quad(skinned=True)],
                skin=joint_skin(["hip", "spine", "head"]),
                translation=(0.5, 0.0, -2.0),
            ),
            mesh_node(1, "Prop", [quad()]),
        )
    )
    pak.push_model("models/props#scenes/props.glb", props)
    pak.push_model("models/actor#scenes/actor.glb", actor)
    return pak


def test_roundtrip_reproduces_models(tmp_path: Path):
    pak = _pak()
    out = tmp_path / "out.pak"
    size = write_pak(pak, out)
    assert size == out.stat().st_size

    loaded = read_pak(out)
    assert list(loaded.items()) == list(pak.items())


def test_empty_pak_roundtrip(tmp_path: Path):
    out = tmp_path / "empty.pak"
    write_pak(PakBuf(), out)
    assert len(read_pak(out)) == 0
    assert validate_pak(out) == []


def test_output_is_deterministic():
    assert pak_bytes(_pak()) == pak_bytes(_pak())


def test_layout_alignment(tmp_path: Path):
    out = tmp_path / "out.pak"
    write_pak(_pak(), out)
    info = inspect_pak(out)
    assert info["header"]["model_count"] == 2
    assert info["header"]["directory_offset"] % 8 == 0
    assert info["footer"]["crc_ok"]
    assert [m["key"] for m in info["models"]] == [
        "models/props#scenes/props.glb",
        "models/actor#scenes/actor.glb",
    ]
    actor = info["models"][1]
    assert [m["stride"] for m in actor["meshes"]] == [52, 20]
    assert actor["meshes"][0]["joints"] == ["hip", "spine", "head"]
    assert actor["meshes"][0]["has_transform"]


def test_crc_covers_everything_but_its_field():
    data = bytearray(pak_bytes(_pak()))
    crc = compute_crc32(bytes(data))
    data[len(data) - FOOTER_SIZE] ^= 0xFF  # the CRC field itself
    assert compute_crc32(bytes(data)) == crc


def test_corruption_is_detected(tmp_path: Path):
    data = bytearray(pak_bytes(_pak()))
    data[HEADER_SIZE + 40] ^= 0x01
    out = tmp_path / "bad.pak"
    out.write_bytes(bytes(data))
    with pytest.raises(BinaryFormatError) as exc:
        read_pak(out)
    assert exc.value.code == E_CRC_MISMATCH
    assert not inspect_pak(out)["footer"]["crc_ok"]
    assert any("CRC" in issue for issue in validate_pak(out))


def test_bad_magic(tmp_path: Path):
    data = bytearray(pak_bytes(PakBuf()))
    data[:4] = b"XXXX"
    out = tmp_path / "magic.pak"
    out.write_bytes(bytes(data))
    with pytest.raises(BinaryFormatError) as exc:
        read_pak(out)
    assert exc.value.code == E_BINARY


def test_truncated_file(tmp_path: Path):
    out = tmp_path / "short.pak"
    out.write_bytes(pak_bytes(_pak())[:20])
    with pytest.raises(BinaryFormatError):
        read_pak(out)
    assert validate_pak(out)


def test_invalid_utf8_key_is_a_format_error(tmp_path: Path):
    data = bytearray(pak_bytes(_pak()))
    key_at = parse_header(bytes(data))["directory_offset"] + DIRECTORY_ENTRY_SIZE
    data[key_at] = 0xFF
    with pytest.raises(BinaryFormatError) as exc:
        load_pak(bytes(data), verify_crc=False)
    assert exc.value.code == E_BINARY
    out = tmp_path / "key.pak"
    out.write_bytes(bytes(data))
    assert any(issue.startswith("E_BINARY: Invalid UTF-8") for issue in validate_pak(out))


def test_invalid_utf8_mesh_name_is_a_format_error():
    data = bytearray(pak_bytes(_pak()))
    # first model at HEADER_SIZE; its first mesh is named "Box"
    name_at = HEADER_SIZE + MODEL_DESC_SIZE + MESH_DESC_SIZE + 2
    assert bytes(data[name_at : name_at + 3]) == b"Box"
    data[name_at] = 0xC3
    data[name_at + 1] = 0x28
    with pytest.raises(BinaryFormatError) as exc:
        load_pak(bytes(data), verify_crc=False)
    assert exc.value.code == E_BINARY
    assert "mesh name" in exc.value.message
