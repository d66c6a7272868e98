"""Tests for the .qpb container codec."""

import numpy as np
import pytest

from qpb.container import (
    decode_container,
    encode_container,
    pack_scanline_map,
    packed_map_size,
    read_container,
    unpack_scanline_map,
    write_container,
)
from qpb.core_types import BandPalette, ContainerFormatError, QPBContainer


def _container(height=5, width=3, size=64, seed=0):
    gen = np.random.default_rng(seed)
    palettes = tuple(
        BandPalette(id=b, colors=gen.integers(0, 1 << 24, size=size).astype(np.uint32))
        for b in range(4)
    )
    bitmap = gen.integers(0, size, size=(height, width)).astype(np.uint8)
    scan_map = gen.integers(0, 4, size=height).astype(np.uint8)
    return QPBContainer(version=1, palettes=palettes, bitmap=bitmap, map=scan_map)


def test_pack_low_bits_first():
    assert pack_scanline_map([0, 1, 2, 3]) == b"\xe4"
    assert pack_scanline_map([1, 0, 0, 0, 2]) == b"\x01\x02"
    assert pack_scanline_map([]) == b""


def test_unpack_inverts_pack():
    values = np.array([3, 2, 1, 0, 0, 1, 3], dtype=np.uint8)
    packed = pack_scanline_map(values)
    assert len(packed) == packed_map_size(7) == 2
    np.testing.assert_array_equal(unpack_scanline_map(packed, 7), values)


def test_pack_rejects_out_of_range():
    with pytest.raises(ValueError):
        pack_scanline_map([0, 4])


def test_encode_layout():
    qpb = _container(height=5, width=3)
    data = encode_container(qpb)
    assert data[:4] == b"QPB\x01"
    assert data[4:10] == b"\x03\x00\x05\x00\x04\x40"
    assert len(data) == 10 + 4 * (1 + 4 * 64) + 5 * 3 + 2
    # first palette id, then its first colour little-endian
    assert data[10] == 0
    first = int(qpb.palettes[0].colors[0])
    assert data[11:15] == first.to_bytes(4, "little")
    assert data[-2:] == pack_scanline_map(qpb.map)


def test_decode_restores_container():
    qpb = _container(height=9, width=4, seed=3)
    back = decode_container(encode_container(qpb))
    assert back.version == 1
    assert (back.width, back.height) == (4, 9)
    for a, b in zip(qpb.palettes, back.palettes):
        assert a.id == b.id
        np.testing.assert_array_equal(a.colors, b.colors)
    np.testing.assert_array_equal(back.bitmap, qpb.bitmap)
    np.testing.assert_array_equal(back.map, qpb.map)


def test_decode_rejects_bad_magic():
    data = bytearray(encode_container(_container()))
    data[0:3] = b"XYZ"
    with pytest.raises(ContainerFormatError):
        decode_container(bytes(data))


def test_decode_rejects_unknown_version():
    data = bytearray(encode_container(_container()))
    data[3] = 2
    with pytest.raises(ContainerFormatError):
        decode_container(bytes(data))


@pytest.mark.parametrize("end", [3, -20, -1])
def test_decode_rejects_truncated(end):
    data = encode_container(_container())
    with pytest.raises(ContainerFormatError):
        decode_container(data[:end])


def test_decode_rejects_trailing_bytes():
    data = encode_container(_container())
    with pytest.raises(ContainerFormatError):
        decode_container(data + b"\x00")


def test_decode_rejects_index_outside_palette():
    qpb = _container(height=2, width=2)
    data = bytearray(encode_container(qpb))
    bitmap_start = 10 + 4 * (1 + 4 * 64)
    data[bitmap_start] = 64
    with pytest.raises(ContainerFormatError):
        decode_container(bytes(data))


def test_encode_rejects_oversized_dimension():
    qpb = _container(height=1, width=1)
    wide = QPBContainer(
        version=1,
        palettes=qpb.palettes,
        bitmap=np.zeros((1, 65536), dtype=np.uint8),
        map=np.zeros(1, dtype=np.uint8),
    )
    with pytest.raises(ValueError):
        encode_container(wide)


def test_encode_rejects_wrong_palette_count():
    qpb = _container()
    short = QPBContainer(version=1, palettes=qpb.palettes[:3], bitmap=qpb.bitmap, map=qpb.map)
    with pytest.raises(ValueError):
        encode_container(short)


def test_write_then_read(tmp_path):
    qpb = _container(height=6, width=7, seed=9)
    path = write_container(tmp_path / "img.qpb", qpb)
    assert path.stat().st_size == len(encode_container(qpb))
    back = read_container(path)
    np.testing.assert_array_equal(back.bitmap, qpb.bitmap)
    np.testing.assert_array_equal(back.map, qpb.map)
