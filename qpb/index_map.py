# qpb/index_map.py
from __future__ import annotations

"""
Indexed bitmap and scanline map construction.

Every pixel is mapped to the nearest colour of its row's band palette.
"""

from typing import Sequence

import numpy as np

from .constants import BAND_COUNT
from .core_types import BandAssignment, Lab, ScanlineMap, U8Bitmap
from .utils import nearest_palette_indices


def build_indexed_bitmap(
    lab: Lab, palettes: Sequence[Lab], assignments: BandAssignment
) -> U8Bitmap:
    """
    Args:
      lab: float64 [H,W,3]
      palettes: per-band Lab palettes, each [P,3] with P <= 256
      assignments: [H] band id per row
    Returns:
      uint8 [H,W] palette indices
    """
    height, width = int(lab.shape[0]), int(lab.shape[1])
    if assignments.shape[0] != height:
        raise ValueError(
            f"assignments cover {assignments.shape[0]} rows, image has {height}"
        )
    bitmap = np.zeros((height, width), dtype=np.uint8)
    for band, palette in enumerate(palettes):
        rows = np.flatnonzero(assignments == band)
        if rows.size == 0:
            continue
        idx = nearest_palette_indices(lab[rows].reshape(-1, 3), palette)
        bitmap[rows] = idx.reshape(rows.size, width).astype(np.uint8)
    return bitmap


def scanline_map(assignments: BandAssignment, bands: int = BAND_COUNT) -> ScanlineMap:
    """Per-row band ids as uint8, validated to [0, bands)."""
    arr = np.asarray(assignments)
    if arr.size and (arr.min() < 0 or arr.max() >= bands):
        raise ValueError(f"band ids must be in [0, {bands})")
    return arr.astype(np.uint8)


__all__ = ["build_indexed_bitmap", "scanline_map"]
