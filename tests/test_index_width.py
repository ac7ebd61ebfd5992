from __future__ import annotations

import numpy as np

from modelbake.bake.flatten import flatten_meshes
from modelbake.bake.index_width import MAX_U16_VERTICES, select_index_type
from modelbake.pak.model import IndexType
from modelbake.scene.reader import PrimitiveData

from gltf_helper import document, mesh_node, quad


def test_small_meshes_use_16_bit_indices():
    assert select_index_type([4, 300, MAX_U16_VERTICES]) is IndexType.U16


def test_one_large_mesh_widens_whole_model():
    assert select_index_type([4, MAX_U16_VERTICES + 1]) is IndexType.U32


def test_no_meshes_defaults_to_16_bit():
    assert select_index_type([]) is IndexType.U16


def _large_primitive(vertex_count: int) -> PrimitiveData:
    return PrimitiveData(
        positions=np.zeros((vertex_count, 3), dtype=np.float32),
        indices=np.array([0, 1, vertex_count - 1], dtype=np.uint32),
        texcoords=np.zeros((vertex_count, 2), dtype=np.float32),
    )


def test_flatten_narrows_to_selected_width():
    flat = flatten_meshes(document(mesh_node(0, "Quad", [quad()])))
    assert flat.index_type is IndexType.U16
    assert len(flat.index_buffer) == 6 * 2
    assert np.frombuffer(flat.index_buffer, "<u2").tolist() == [0, 1, 2, 0, 2, 3]


def test_flatten_widens_when_a_mesh_exceeds_u16():
    big = MAX_U16_VERTICES + 1
    doc = document(
        mesh_node(0, "Quad", [quad()]),
        mesh_node(1, "Big", [_large_primitive(big)]),
    )
    flat = flatten_meshes(doc)
    assert flat.index_type is IndexType.U32
    indices = np.frombuffer(flat.index_buffer, "<u4")
    assert len(indices) == 9
    assert indices[-1] == big - 1
    assert flat.logical_indices.tolist() == indices.tolist()
