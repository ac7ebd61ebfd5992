"""Write-mask compiler.

The write mask lets the vertex attribute compute pass (normals, tangents)
run one invocation per index-stream entry without atomics: every invocation
reads and accumulates, but only the invocation whose bit is set stores the
result for its vertex. Within each mesh exactly one bit is set for each
distinct index value, at its first occurrence in stream order. Indices are
mesh-relative, so the same value in two meshes names two different vertices
and gets a writer in each.

Bit ``i`` of word ``w`` holds entry ``32 * w + i``. Words are little-endian
u32, so the mask can be bound as a plain ``uint[]`` storage buffer.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

import numpy as np

__all__ = [
    "MASK_WORD_BITS",
    "first_occurrences",
    "pack_write_mask",
    "compile_write_mask",
    "decode_write_mask",
    "mask_word_count",
]

MASK_WORD_BITS = 32


def mask_word_count(index_count: int) -> int:
    return (index_count + MASK_WORD_BITS - 1) // MASK_WORD_BITS


def first_occurrences(
    indices: Iterable[int], ranges: Optional[Sequence[range]] = None
) -> List[bool]:
    """Flag the first occurrence of each index value.

    Indices are mesh-relative, so each entry of ``ranges`` (one index range
    per mesh) gets its own seen set. Without ``ranges`` the whole stream is
    one mesh. Entries outside every range stay clear.
    """
    values = list(indices)
    if ranges is None:
        ranges = [range(len(values))]
    flags = [False] * len(values)
    for r in ranges:
        seen: set[int] = set()
        for pos in r:
            idx = values[pos]
            if idx not in seen:
                seen.add(idx)
                flags[pos] = True
    return flags


def pack_write_mask(flags: List[bool]) -> bytes:
    words = mask_word_count(len(flags))
    bits = np.zeros(words * MASK_WORD_BITS, dtype=np.uint8)
    bits[: len(flags)] = np.asarray(flags, dtype=bool)
    # little bit order puts entry 0 of each byte in its least significant bit
    packed = np.packbits(bits, bitorder="little")
    return packed.view("<u4").tobytes()


def compile_write_mask(
    indices: Iterable[int], ranges: Optional[Sequence[range]] = None
) -> bytes:
    return pack_write_mask(first_occurrences(indices, ranges))


def decode_write_mask(mask: bytes, count: int) -> np.ndarray:
    """Unpack the first ``count`` designated-writer flags from a mask."""
    if count > len(mask) * 8:
        raise ValueError(
            f"Write mask of {len(mask)} bytes cannot hold {count} entries"
        )
    raw = np.frombuffer(mask, dtype=np.uint8)
    bits = np.unpackbits(raw, bitorder="little")
    return bits[:count].astype(bool)
