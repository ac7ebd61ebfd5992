"""Binary pak format constants (all values little-endian)."""

from __future__ import annotations

MAGIC = b"MBAKPAK\x00"
FOOTER_MAGIC = b"MBAKEND\x00"
FORMAT_VERSION = 1

HEADER_SIZE = 32  # magic(8) version(u32) model_count(u32) directory_offset(u64) reserved(8)
FOOTER_SIZE = 16  # crc32(u32) reserved(u32) footer magic(8)
MODEL_DESC_SIZE = 16  # index_type(u8) reserved(u8) mesh_count(u16) index_count(u32) vertex_bytes(u32) mask_bytes(u32)
MESH_DESC_SIZE = 36  # flags(u8) pad(3) index range(2 x u32) vertex_count(u32) vertex_offset(u32) sphere(4 x f32)
DIRECTORY_ENTRY_SIZE = 24  # model_id(u32) key_len(u16) pad(2) offset(u64) size(u64), key bytes follow
MAT4_SIZE = 64

MODEL_ALIGNMENT = 16
DATA_ALIGNMENT = 4
DIRECTORY_ALIGNMENT = 8

MESH_FLAG_NAME = 0x1
MESH_FLAG_TRANSFORM = 0x2
MESH_FLAG_SKIN = 0x4

MAX_NAME_LENGTH = 0xFFFF
MAX_JOINTS = 0xFFFF
