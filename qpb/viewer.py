# qpb/viewer.py
from __future__ import annotations

"""
Preview rendering by the viewer's rules: load all palettes into one table,
pick the active palette per scanline from the packed 2-bit map, and index it
with the bitmap.
"""

import numpy as np

from .container import pack_scanline_map, unpack_scanline_map
from .core_types import PackedRGB, QPBContainer, U8Image, unpack_rgb


def palette_table(container: QPBContainer) -> PackedRGB:
    """Renderer-visible table [palettes, size] of 0xRRGGBB, row = palette id."""
    size = max(int(np.asarray(p.colors).shape[0]) for p in container.palettes)
    table = np.zeros((len(container.palettes), size), dtype=np.uint32)
    for palette in container.palettes:
        colors = np.asarray(palette.colors, dtype=np.uint32)
        table[int(palette.id), : colors.shape[0]] = colors
    return table


def render_rgb(container: QPBContainer) -> U8Image:
    """Render the container to uint8 (H,W,3) through the packed scanline map."""
    table = palette_table(container)
    active = unpack_scanline_map(pack_scanline_map(container.map), container.height)
    packed = table[active.astype(np.intp)[:, None], container.bitmap.astype(np.intp)]
    return unpack_rgb(packed)


__all__ = ["palette_table", "render_rgb"]
