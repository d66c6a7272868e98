"""Tests for preview rendering."""

import numpy as np

from qpb.core_types import BandPalette, QPBContainer
from qpb.pipeline import ConvertOptions, convert_rgb
from qpb.viewer import palette_table, render_rgb


def _palettes():
    base = np.zeros((4, 64), dtype=np.uint32)
    base[0, 1] = 0x112233
    base[1, 1] = 0xFF0000
    base[2, 5] = 0x00FF00
    base[3, 0] = 0xABCDEF
    return tuple(BandPalette(id=b, colors=base[b]) for b in range(4))


def test_palette_table_rows_follow_ids():
    palettes = _palettes()
    table = palette_table(
        QPBContainer(1, palettes[::-1], np.zeros((1, 1), np.uint8), np.zeros(1, np.uint8))
    )
    assert table.shape == (4, 64)
    assert table[1, 1] == 0xFF0000
    assert table[3, 0] == 0xABCDEF


def test_render_uses_scanline_palette():
    bitmap = np.array([[1, 0], [1, 1], [5, 0], [0, 0], [1, 1]], dtype=np.uint8)
    scan_map = np.array([0, 1, 2, 3, 1], dtype=np.uint8)
    rgb = render_rgb(QPBContainer(1, _palettes(), bitmap, scan_map))
    assert rgb.shape == (5, 2, 3)
    assert rgb.dtype == np.uint8
    np.testing.assert_array_equal(rgb[0, 0], [0x11, 0x22, 0x33])
    np.testing.assert_array_equal(rgb[1, 0], [255, 0, 0])
    np.testing.assert_array_equal(rgb[2, 0], [0, 255, 0])
    np.testing.assert_array_equal(rgb[3, 1], [0xAB, 0xCD, 0xEF])
    np.testing.assert_array_equal(rgb[4, 1], [255, 0, 0])


def test_render_reproduces_two_colour_image(red_blue_8x2):
    qpb = convert_rgb(red_blue_8x2, ConvertOptions(colour_budget=2, seed=0))
    np.testing.assert_array_equal(render_rgb(qpb), red_blue_8x2)
