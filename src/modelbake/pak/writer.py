"""Binary writer emitting every model of a :class:`PakBuf` to one file.

Layout: header, model payloads (each on a 16-byte boundary) in id order,
directory, footer. The footer CRC32 covers the whole file except the CRC
field itself.
"""

from __future__ import annotations
from pathlib import Path
import zlib

from ..logging import get_logger
from ..reporting import get_reporter
from .constants import (
    DIRECTORY_ALIGNMENT,
    FOOTER_SIZE,
    HEADER_SIZE,
    MODEL_ALIGNMENT,
)
from .packers import (
    pack_directory_entry,
    pack_footer,
    pack_header,
    pack_model,
    pad_bytes,
)
from .store import PakBuf

__all__ = ["write_pak", "pak_bytes", "compute_crc32"]


def compute_crc32(data: bytes) -> int:
    # Exclude the CRC field (first 4 bytes of the footer)
    crc_field_offset = len(data) - FOOTER_SIZE
    return (
        zlib.crc32(data[:crc_field_offset] + data[crc_field_offset + 4 :])
        & 0xFFFFFFFF
    )


def pak_bytes(pak: PakBuf) -> bytes:
    rep = get_reporter()
    entries = list(pak.items())
    body = bytearray(b"\x00" * HEADER_SIZE)
    directory = bytearray()
    rep.start_task("write.models", "Model payloads", total=len(entries))
    for key, model_id, model in entries:
        body += pad_bytes(len(body), MODEL_ALIGNMENT)
        offset = len(body)
        payload = pack_model(model)
        body += payload
        directory += pack_directory_entry(
            int(model_id), key, offset, len(payload)
        )
        rep.advance("write.models", current_item=key)
    rep.end_task("write.models", bytes=len(body) - HEADER_SIZE)

    body += pad_bytes(len(body), DIRECTORY_ALIGNMENT)
    directory_offset = len(body)
    body += directory
    body[:HEADER_SIZE] = pack_header(len(entries), directory_offset)
    body += pack_footer(0)
    crc = compute_crc32(bytes(body))
    body[-FOOTER_SIZE:] = pack_footer(crc)
    return bytes(body)


def write_pak(pak: PakBuf, output_path: Path) -> int:
    logger = get_logger()
    data = pak_bytes(pak)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    logger.debug(
        "Wrote %s: models=%d bytes=%d crc32=%08x",
        output_path.name,
        len(pak),
        len(data),
        compute_crc32(data),
    )
    return len(data)
