# qpb/container.py
from __future__ import annotations

"""
QPB container codec.

Scanline map packing: 2 bits per scanline, four scanlines per byte, scanline
s at byte s // 4 and bit shift (s % 4) * 2.

File layout (little-endian):
  header   : magic "QPB", u8 version, u16 width, u16 height,
             u8 palette count, u8 palette size
  palettes : per palette, u8 id then palette-size u32 colours (0x00RRGGBB)
  bitmap   : width * height u8 indices, row-major
  map      : ceil(height / 4) bytes of packed scanline map
"""

import struct
from pathlib import Path
from typing import List, Sequence, Union

import numpy as np

from .constants import (
    BAND_COUNT,
    CONTAINER_MAGIC,
    FORMAT_VERSION,
    MAP_BITS_PER_SCANLINE,
    PALETTE_SIZE,
)
from .core_types import BandPalette, ContainerFormatError, QPBContainer, ScanlineMap

_HEADER = struct.Struct("<3sBHHBB")
_SCANLINES_PER_BYTE = 8 // MAP_BITS_PER_SCANLINE
_MAP_MASK = (1 << MAP_BITS_PER_SCANLINE) - 1


def packed_map_size(height: int) -> int:
    """Bytes needed to hold `height` packed scanline entries."""
    return (int(height) + _SCANLINES_PER_BYTE - 1) // _SCANLINES_PER_BYTE


def pack_scanline_map(values: Union[ScanlineMap, Sequence[int]]) -> bytes:
    """Pack band ids 0..3 at 2 bits per scanline, low bits first."""
    arr = np.asarray(values, dtype=np.int64)
    if arr.ndim != 1:
        raise ValueError("scanline map must be 1-D")
    if arr.size and (arr.min() < 0 or arr.max() > _MAP_MASK):
        raise ValueError(f"scanline map values must be in [0, {_MAP_MASK}]")

    padded = np.zeros(packed_map_size(arr.size) * _SCANLINES_PER_BYTE, dtype=np.uint8)
    padded[: arr.size] = arr
    groups = padded.reshape(-1, _SCANLINES_PER_BYTE)
    packed = np.zeros(groups.shape[0], dtype=np.uint8)
    for slot in range(_SCANLINES_PER_BYTE):
        packed |= groups[:, slot] << np.uint8(slot * MAP_BITS_PER_SCANLINE)
    return packed.tobytes()


def unpack_scanline_map(data: bytes, height: int) -> ScanlineMap:
    """Inverse of pack_scanline_map for the first `height` scanlines."""
    raw = np.frombuffer(data, dtype=np.uint8)
    if raw.size < packed_map_size(height):
        raise ValueError(
            f"packed map holds {raw.size} bytes, need {packed_map_size(height)}"
        )
    scanlines = np.arange(int(height))
    shifts = ((scanlines % _SCANLINES_PER_BYTE) * MAP_BITS_PER_SCANLINE).astype(np.uint8)
    return ((raw[scanlines // _SCANLINES_PER_BYTE] >> shifts) & _MAP_MASK).astype(np.uint8)


def encode_container(container: QPBContainer) -> bytes:
    """Serialise a container to .qpb bytes."""
    height, width = container.height, container.width
    if width > 0xFFFF or height > 0xFFFF:
        raise ValueError(f"image {width}x{height} exceeds 65535 in a dimension")
    if len(container.palettes) != BAND_COUNT:
        raise ValueError(f"expected {BAND_COUNT} palettes, got {len(container.palettes)}")
    sizes = {int(np.asarray(p.colors).shape[0]) for p in container.palettes}
    if len(sizes) != 1:
        raise ValueError("palettes must all have the same length")
    palette_size = sizes.pop()
    if not 0 < palette_size <= PALETTE_SIZE:
        raise ValueError(f"palette length must be in [1, {PALETTE_SIZE}]")
    if container.map.shape[0] != height:
        raise ValueError("scanline map length must equal bitmap height")

    parts: List[bytes] = [
        _HEADER.pack(
            CONTAINER_MAGIC,
            int(container.version),
            width,
            height,
            len(container.palettes),
            palette_size,
        )
    ]
    for palette in container.palettes:
        parts.append(struct.pack("<B", int(palette.id)))
        parts.append(np.asarray(palette.colors, dtype="<u4").tobytes())
    parts.append(np.ascontiguousarray(container.bitmap, dtype=np.uint8).tobytes())
    parts.append(pack_scanline_map(container.map))
    return b"".join(parts)


def decode_container(data: bytes) -> QPBContainer:
    """
    Parse .qpb bytes.

    Raises:
      ContainerFormatError: bad magic, unsupported version, wrong counts,
      truncated or oversized payload, or out-of-range indices
    """
    if len(data) < _HEADER.size:
        raise ContainerFormatError("truncated header")
    magic, version, width, height, count, palette_size = _HEADER.unpack_from(data, 0)
    if magic != CONTAINER_MAGIC:
        raise ContainerFormatError(f"bad magic {magic!r}")
    if version != FORMAT_VERSION:
        raise ContainerFormatError(f"unsupported version {version}")
    if count != BAND_COUNT:
        raise ContainerFormatError(f"expected {BAND_COUNT} palettes, found {count}")
    if not 0 < palette_size <= PALETTE_SIZE:
        raise ContainerFormatError(f"invalid palette size {palette_size}")

    palette_bytes = 1 + 4 * palette_size
    expected = (
        _HEADER.size
        + count * palette_bytes
        + width * height
        + packed_map_size(height)
    )
    if len(data) != expected:
        raise ContainerFormatError(f"expected {expected} bytes, got {len(data)}")

    offset = _HEADER.size
    palettes: List[BandPalette] = []
    for _ in range(count):
        (palette_id,) = struct.unpack_from("<B", data, offset)
        colors = np.frombuffer(data, dtype="<u4", count=palette_size, offset=offset + 1)
        palettes.append(BandPalette(id=int(palette_id), colors=colors.astype(np.uint32)))
        offset += palette_bytes

    bitmap = (
        np.frombuffer(data, dtype=np.uint8, count=width * height, offset=offset)
        .reshape(height, width)
        .copy()
    )
    offset += width * height
    if bitmap.size and int(bitmap.max()) >= palette_size:
        raise ContainerFormatError("bitmap index out of palette range")

    scan_map = unpack_scanline_map(data[offset:], height)
    return QPBContainer(
        version=int(version), palettes=tuple(palettes), bitmap=bitmap, map=scan_map
    )


def write_container(path: Path, container: QPBContainer) -> Path:
    """Encode fully in memory, then write, so a failure leaves no partial file."""
    payload = encode_container(container)
    path.write_bytes(payload)
    return path


def read_container(path: Path) -> QPBContainer:
    return decode_container(path.read_bytes())


__all__ = [
    "packed_map_size",
    "pack_scanline_map",
    "unpack_scanline_map",
    "encode_container",
    "decode_container",
    "write_container",
    "read_container",
]
